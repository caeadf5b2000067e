"""Round-trip probe domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProbeOutcome(str, Enum):
    """Classification of one HTTP round trip."""

    SUCCESS = "success"
    CONNECT_FAILURE = "connect_failure"
    BAD_STATUS = "bad_status"
    BODY_MISMATCH = "body_mismatch"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe call against one URL."""

    label: str
    url: str
    verb: str
    outcome: ProbeOutcome
    status_code: int | None = None
    body: bytes | None = None
    error_message: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.outcome is ProbeOutcome.SUCCESS

    @property
    def body_text(self) -> str:
        return (self.body or b"").decode("utf-8", errors="replace")


class ProbeError(Exception):
    """Base class for failed probes; carries the classified result."""

    def __init__(self, result: ProbeResult, message: str) -> None:
        super().__init__(message)
        self.result = result


class ConnectivityError(ProbeError):
    """Raised when the probe URL could not be reached at the transport level."""


class ContentMismatchError(ProbeError):
    """Raised when the probe got a non-200 status or an unexpected body."""

    def __init__(self, result: ProbeResult, message: str, *, want: str | None = None) -> None:
        super().__init__(result, message)
        self.want = want

    @property
    def got(self) -> str:
        return self.result.body_text
