"""Run execution entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from k8s_smoke_tester.diagnostics import DiagnosticsError

SHARED_VOLUME_PATH = "rwx"
PER_INSTANCE_PATH = "rwo"
WORKLOAD_PORT = 8080


class Stage(str, Enum):
    """Ordered verification stages; each one is terminal on failure."""

    RESOLVE = "Resolve"
    PORT_FORWARD = "PortForward"
    INGRESS = "Ingress"
    NODE_PORT_LOOKUP = "NodePortLookup"
    NODE_PORT = "NodePort"
    LOAD_BALANCER = "LoadBalancer"


class StageFailure(Exception):
    """A stage error wrapped with the stage name and load-balancer ingress index."""

    def __init__(
        self, stage: Stage, cause: Exception, *, ingress_index: int | None = None
    ) -> None:
        location = stage.value
        if ingress_index is not None:
            location = f"{location} (ingress index {ingress_index})"
        super().__init__(f"{location} stage failed: {cause}")
        self.stage = stage
        self.cause = cause
        self.ingress_index = ingress_index


@dataclass(frozen=True)
class RunVerdict:
    """Terminal result of one run plus the separately reported diagnostics error."""

    failure: StageFailure | None = None
    diagnostics_error: DiagnosticsError | None = None

    @property
    def passed(self) -> bool:
        return self.failure is None

    @property
    def stage(self) -> Stage | None:
        return self.failure.stage if self.failure else None

    @property
    def cause(self) -> Exception | None:
        return self.failure.cause if self.failure else None
