"""Capability interface of the orchestration control plane."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Protocol

from .cluster_objects import ServiceObject, WorkloadInstance


class ControlPlaneError(Exception):
    """Raised when a control-plane request fails."""


class ObjectNotFoundError(ControlPlaneError):
    """Raised when a named control-plane object does not exist."""


class TunnelForwarder(Protocol):
    """Background forwarding loop of one tunnel."""

    def forward_ports(self, on_ready: Callable[[], None]) -> None:
        """Block while forwarding; call `on_ready` once the tunnel is usable."""
        ...

    def close(self) -> None:
        """Stop forwarding and make `forward_ports` return."""
        ...


class ControlPlaneClient(Protocol):
    """Lookups and streaming primitives used by the verifier."""

    def get_service(self, namespace: str, name: str) -> ServiceObject: ...

    def list_instances(
        self, namespace: str, selector: Mapping[str, str]
    ) -> list[WorkloadInstance]: ...

    def stream_logs(self, instance: WorkloadInstance) -> Iterator[bytes]: ...

    def open_tunnel(
        self, instance: WorkloadInstance, local_port: int, remote_port: int
    ) -> TunnelForwarder: ...


def format_label_selector(selector: Mapping[str, str]) -> str:
    """Render a selector mapping as `key=value,...` sorted by key."""
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))
