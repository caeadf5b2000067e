"""Control-plane object entities consumed by the verifier."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class WorkloadInstance:
    """Handle to exactly one running pod."""

    name: str
    namespace: str


@dataclass(frozen=True)
class ServicePort:
    """One declared port of a service (`spec.ports[i]`)."""

    port: int
    node_port: int = 0
    name: str | None = None
    protocol: str = "TCP"


@dataclass(frozen=True)
class PortStatus:
    """Provisioning status of one port on a load-balancer ingress point."""

    port: int
    protocol: str = "TCP"
    error: str | None = None


@dataclass(frozen=True)
class LoadBalancerIngress:
    """One provisioned load-balancer ingress point (`status.loadBalancer.ingress[i]`)."""

    hostname: str | None = None
    ip: str | None = None
    ports: tuple[PortStatus, ...] = ()


@dataclass(frozen=True)
class ServiceObject:
    """Subset of a service object needed to build probe URLs."""

    name: str
    namespace: str
    selector: Mapping[str, str] = field(default_factory=dict)
    ports: tuple[ServicePort, ...] = ()
    load_balancer_ingress: tuple[LoadBalancerIngress, ...] = ()
