"""Endpoint resolver: maps release objects to the endpoints the probes target."""

from __future__ import annotations

from k8s_smoke_tester.cluster_access.cluster_objects import (
    LoadBalancerIngress,
    ServiceObject,
    WorkloadInstance,
)
from k8s_smoke_tester.cluster_access.control_plane import (
    ControlPlaneClient,
    ControlPlaneError,
    ObjectNotFoundError,
    format_label_selector,
)

from .exposure_endpoints import ExposureEndpoint, ExposureKind


class ResolutionError(Exception):
    """Raised when a named object or a selector match is absent."""


class ProvisioningFault(Exception):
    """Raised when an object exists but lacks a field the verifier requires."""

    def __init__(self, message: str, *, ingress_index: int | None = None) -> None:
        super().__init__(message)
        self.ingress_index = ingress_index


def resolve_service(control_plane: ControlPlaneClient, namespace: str, name: str) -> ServiceObject:
    try:
        return control_plane.get_service(namespace, name)
    except ObjectNotFoundError as exc:
        raise ResolutionError(f"Service {namespace}/{name} does not exist") from exc
    except ControlPlaneError as exc:
        raise ResolutionError(f"Failed to get Service {namespace}/{name}: {exc}") from exc


def resolve_instance(
    control_plane: ControlPlaneClient, namespace: str, service_name: str
) -> WorkloadInstance:
    """Return the first pod selected by the named service."""
    service = resolve_service(control_plane, namespace, service_name)
    if not service.selector:
        raise ResolutionError(f"Service {namespace}/{service_name} has no pod selector")
    try:
        instances = control_plane.list_instances(namespace, service.selector)
    except ControlPlaneError as exc:
        raise ResolutionError(f"Failed to list Pods for Service {service_name}: {exc}") from exc
    if not instances:
        raise ResolutionError(
            f"No pods in {namespace} match the selector "
            f"{format_label_selector(service.selector)} of Service {service_name}"
        )
    return instances[0]


def node_port_endpoint(service: ServiceObject, hostname: str) -> ExposureEndpoint:
    """Build the NodePort endpoint from `spec.ports[0].nodePort`."""
    if not service.ports:
        raise ProvisioningFault(f"Service {service.name} declares no ports")
    node_port = service.ports[0].node_port
    if node_port == 0:
        raise ProvisioningFault(f"Service {service.name} does not have a nodePort assigned")
    return ExposureEndpoint(kind=ExposureKind.NODE_PORT, host=hostname, port=node_port)


def load_balancer_ingresses(service: ServiceObject) -> tuple[LoadBalancerIngress, ...]:
    """Return the provisioned ingress points in control-plane order."""
    if not service.load_balancer_ingress:
        raise ProvisioningFault(f"LoadBalancer Service {service.name} has no ingresses")
    return service.load_balancer_ingress


def load_balancer_endpoint(
    service: ServiceObject, index: int, ingress: LoadBalancerIngress
) -> ExposureEndpoint:
    """Validate one ingress point and build its endpoint.

    Only the first port status is inspected; services declaring several ports
    are not disambiguated further.
    """
    host = ingress.hostname or ingress.ip
    if not host:
        raise ProvisioningFault(
            f"LoadBalancer Service ingress at index {index} has neither a hostname nor an IP",
            ingress_index=index,
        )
    if len(ingress.ports) != len(service.ports):
        raise ProvisioningFault(
            f"LoadBalancer Service ingress at index {index} has {len(ingress.ports)} ports "
            f"instead of the expected {len(service.ports)}",
            ingress_index=index,
        )
    if not ingress.ports:
        raise ProvisioningFault(
            f"LoadBalancer Service ingress at index {index} has no port status",
            ingress_index=index,
        )
    port_status = ingress.ports[0]
    if port_status.error:
        raise ProvisioningFault(
            f"LoadBalancer Service ingress at index {index} reports error: {port_status.error}",
            ingress_index=index,
        )
    if port_status.port == 0:
        raise ProvisioningFault(
            f"LoadBalancer Service ingress at index {index} has no port assigned",
            ingress_index=index,
        )
    return ExposureEndpoint(
        kind=ExposureKind.LOAD_BALANCER,
        host=host,
        port=port_status.port,
        ingress_index=index,
    )
