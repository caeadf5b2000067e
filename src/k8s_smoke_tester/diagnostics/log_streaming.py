"""Diagnostics emitter: copies the tested pod's logs to an output sink."""

from __future__ import annotations

import logging
from typing import BinaryIO

from k8s_smoke_tester.cluster_access.cluster_objects import WorkloadInstance
from k8s_smoke_tester.cluster_access.control_plane import ControlPlaneClient, ControlPlaneError

logger = logging.getLogger(__name__)


class DiagnosticsError(Exception):
    """Raised when pod logs could not be streamed; never changes the verdict."""


def stream_instance_logs(
    control_plane: ControlPlaneClient, instance: WorkloadInstance, sink: BinaryIO
) -> int:
    """Copy the full log of `instance` into `sink` and return the byte count."""
    logger.info("Streaming logs of %s/%s...", instance.namespace, instance.name)
    copied = 0
    try:
        for chunk in control_plane.stream_logs(instance):
            sink.write(chunk)
            copied += len(chunk)
        sink.flush()
    except (ControlPlaneError, OSError) as exc:
        raise DiagnosticsError(
            f"Failed to stream logs of {instance.namespace}/{instance.name}: {exc}"
        ) from exc
    return copied
