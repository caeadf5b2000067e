"""Tunnel session: run a probe while a port-forward to one pod is live."""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from k8s_smoke_tester.cluster_access.cluster_objects import WorkloadInstance
from k8s_smoke_tester.cluster_access.control_plane import ControlPlaneClient

from .cancellation import CancellationError, CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TunnelError(Exception):
    """Raised when the tunnel fails before it became ready."""


class _TunnelEventKind(Enum):
    READY = "ready"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class _TunnelEvent:
    kind: _TunnelEventKind
    error: BaseException | None = None


def with_tunnel(
    control_plane: ControlPlaneClient,
    instance: WorkloadInstance,
    local_port: int,
    remote_port: int,
    body: Callable[[], T],
    *,
    cancellation: CancellationToken | None = None,
) -> T:
    """Open a tunnel to `instance`, run `body` once it is ready, then tear it down.

    The first of three events decides the outcome: the forwarding loop failing
    (`TunnelError`), the run being cancelled (`CancellationError`), or the
    tunnel becoming ready (`body` runs and its result or exception propagates
    unchanged). The forwarder is closed and its thread joined before returning.
    """
    token = cancellation or CancellationToken()
    events: queue.SimpleQueue[_TunnelEvent] = queue.SimpleQueue()
    forwarder = control_plane.open_tunnel(instance, local_port, remote_port)

    def _on_finished(future: Future[None]) -> None:
        events.put(_TunnelEvent(_TunnelEventKind.FINISHED, future.exception()))

    logger.info("Beginning port-forward to %s/%s...", instance.namespace, instance.name)
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="tunnel") as executor:
        unsubscribe = token.subscribe(lambda: events.put(_TunnelEvent(_TunnelEventKind.CANCELLED)))
        try:
            future = executor.submit(
                forwarder.forward_ports, lambda: events.put(_TunnelEvent(_TunnelEventKind.READY))
            )
            future.add_done_callback(_on_finished)
            event = events.get()
            if event.kind is _TunnelEventKind.CANCELLED:
                raise CancellationError("Run was cancelled while waiting for the tunnel.")
            if event.kind is _TunnelEventKind.FINISHED:
                if event.error is not None:
                    raise TunnelError(f"Port-forward failed: {event.error}") from event.error
                raise TunnelError("Port-forward stopped before it became ready.")
            logger.debug("Port-forward ready on local port %d", local_port)
            return body()
        finally:
            unsubscribe()
            forwarder.close()
