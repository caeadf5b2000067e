"""Control-plane access exports."""

from .cluster_objects import (
    LoadBalancerIngress,
    PortStatus,
    ServiceObject,
    ServicePort,
    WorkloadInstance,
)
from .control_plane import (
    ControlPlaneClient,
    ControlPlaneError,
    ObjectNotFoundError,
    TunnelForwarder,
    format_label_selector,
)

__all__ = [
    "WorkloadInstance",
    "ServicePort",
    "PortStatus",
    "LoadBalancerIngress",
    "ServiceObject",
    "ControlPlaneClient",
    "ControlPlaneError",
    "ObjectNotFoundError",
    "TunnelForwarder",
    "format_label_selector",
]
