"""Control-plane adapter backed by the official Kubernetes Python client."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.stream import portforward

from k8s_smoke_tester.tunnel_session.pod_port_forwarder import PodPortForwarder, RemoteStream

from .cluster_objects import (
    LoadBalancerIngress,
    PortStatus,
    ServiceObject,
    ServicePort,
    WorkloadInstance,
)
from .control_plane import ControlPlaneError, ObjectNotFoundError, format_label_selector

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"
_LOG_CHUNK_SIZE = 16 * 1024


def load_client_configuration(
    kubeconfig: str | None = None, context: str | None = None
) -> client.Configuration:
    """Load kubeconfig credentials into a fresh client configuration."""
    configuration = client.Configuration()
    try:
        config.load_kube_config(
            config_file=kubeconfig or None,
            context=context or None,
            client_configuration=configuration,
        )
    except (config.ConfigException, OSError) as exc:
        raise ControlPlaneError(f"Failed to load Kubernetes configuration: {exc}") from exc
    return configuration


def current_context_namespace(kubeconfig: str | None = None, context: str | None = None) -> str:
    """Return the namespace of the selected kubeconfig context, or `default`."""
    try:
        contexts, active_context = config.list_kube_config_contexts(config_file=kubeconfig or None)
    except (config.ConfigException, OSError) as exc:
        raise ControlPlaneError(f"Failed to read kubeconfig contexts: {exc}") from exc
    selected = active_context
    if context:
        selected = next((item for item in contexts if item.get("name") == context), None)
        if selected is None:
            raise ControlPlaneError(f"Context {context!r} not found in kubeconfig.")
    return (selected or {}).get("context", {}).get("namespace") or DEFAULT_NAMESPACE


class KubernetesControlPlane:
    """`ControlPlaneClient` implementation talking to a real API server."""

    def __init__(self, configuration: client.Configuration) -> None:
        self._core_v1 = client.CoreV1Api(client.ApiClient(configuration))
        # The stream helpers swap the api client's request function while a
        # websocket is being opened, so tunnels get a client of their own.
        self._tunnel_core_v1 = client.CoreV1Api(client.ApiClient(configuration))

    @classmethod
    def from_kubeconfig(
        cls, kubeconfig: str | None = None, context: str | None = None
    ) -> KubernetesControlPlane:
        return cls(load_client_configuration(kubeconfig, context))

    def get_service(self, namespace: str, name: str) -> ServiceObject:
        try:
            service = self._core_v1.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise ObjectNotFoundError(f"Service {namespace}/{name} not found") from exc
            raise ControlPlaneError(f"Failed to get Service {namespace}/{name}: {exc}") from exc
        return _to_service_object(service)

    def list_instances(
        self, namespace: str, selector: Mapping[str, str]
    ) -> list[WorkloadInstance]:
        label_selector = format_label_selector(selector)
        try:
            pods = self._core_v1.list_namespaced_pod(
                namespace=namespace, label_selector=label_selector
            )
        except ApiException as exc:
            raise ControlPlaneError(
                f"Failed to list Pods in {namespace} matching {label_selector}: {exc}"
            ) from exc
        return [
            WorkloadInstance(name=pod.metadata.name, namespace=pod.metadata.namespace or namespace)
            for pod in pods.items
        ]

    def stream_logs(self, instance: WorkloadInstance) -> Iterator[bytes]:
        try:
            response = self._core_v1.read_namespaced_pod_log(
                name=instance.name,
                namespace=instance.namespace,
                _preload_content=False,
            )
        except ApiException as exc:
            raise ControlPlaneError(
                f"Failed to start streaming logs of {instance.namespace}/{instance.name}: {exc}"
            ) from exc
        try:
            yield from response.stream(_LOG_CHUNK_SIZE, decode_content=True)
        except urllib3.exceptions.HTTPError as exc:
            raise ControlPlaneError(
                f"Failed to stream logs of {instance.namespace}/{instance.name}: {exc}"
            ) from exc
        finally:
            response.release_conn()

    def open_tunnel(
        self, instance: WorkloadInstance, local_port: int, remote_port: int
    ) -> PodPortForwarder:
        def _open_remote_stream() -> RemoteStream:
            logger.debug(
                "Opening port-forward stream to %s/%s:%d",
                instance.namespace,
                instance.name,
                remote_port,
            )
            return portforward(
                self._tunnel_core_v1.connect_get_namespaced_pod_portforward,
                instance.name,
                instance.namespace,
                ports=str(remote_port),
            )

        return PodPortForwarder(
            _open_remote_stream, local_port=local_port, remote_port=remote_port
        )


def _to_service_object(service: Any) -> ServiceObject:
    spec = service.spec
    status = service.status
    load_balancer = getattr(status, "load_balancer", None) if status else None
    return ServiceObject(
        name=service.metadata.name,
        namespace=service.metadata.namespace,
        selector=dict(spec.selector or {}),
        ports=tuple(
            ServicePort(
                port=port.port,
                node_port=port.node_port or 0,
                name=port.name,
                protocol=port.protocol or "TCP",
            )
            for port in spec.ports or []
        ),
        load_balancer_ingress=tuple(
            LoadBalancerIngress(
                hostname=ingress.hostname or None,
                ip=ingress.ip or None,
                ports=tuple(
                    PortStatus(
                        port=port_status.port or 0,
                        protocol=port_status.protocol or "TCP",
                        error=port_status.error,
                    )
                    for port_status in ingress.ports or []
                ),
            )
            for ingress in (load_balancer.ingress if load_balancer else None) or []
        ),
    )
