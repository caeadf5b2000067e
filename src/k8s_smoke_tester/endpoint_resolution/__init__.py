"""Endpoint resolution exports."""

from .endpoint_resolver import (
    ProvisioningFault,
    ResolutionError,
    load_balancer_endpoint,
    load_balancer_ingresses,
    node_port_endpoint,
    resolve_instance,
    resolve_service,
)
from .exposure_endpoints import ExposureEndpoint, ExposureKind

__all__ = [
    "ExposureKind",
    "ExposureEndpoint",
    "ResolutionError",
    "ProvisioningFault",
    "resolve_service",
    "resolve_instance",
    "node_port_endpoint",
    "load_balancer_ingresses",
    "load_balancer_endpoint",
]
