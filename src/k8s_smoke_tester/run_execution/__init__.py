"""Run execution domain exports."""

from .connectivity_run_use_case import (
    execute_connectivity_verification_run,
    verify_load_balancer_endpoint,
)
from .run_contracts import RunVerdict, Stage, StageFailure

__all__ = [
    "Stage",
    "StageFailure",
    "RunVerdict",
    "execute_connectivity_verification_run",
    "verify_load_balancer_endpoint",
]
