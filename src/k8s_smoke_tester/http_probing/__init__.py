"""HTTP probing exports."""

from .probe_outcomes import (
    ConnectivityError,
    ContentMismatchError,
    ProbeError,
    ProbeOutcome,
    ProbeResult,
)
from .round_trip_prober import RoundTripProber, build_http_session

__all__ = [
    "ProbeOutcome",
    "ProbeResult",
    "ProbeError",
    "ConnectivityError",
    "ContentMismatchError",
    "RoundTripProber",
    "build_http_session",
]
