"""Connectivity verification use-case service."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from k8s_smoke_tester.cluster_access.cluster_objects import ServiceObject, WorkloadInstance
from k8s_smoke_tester.cluster_access.control_plane import ControlPlaneClient
from k8s_smoke_tester.configuration.runtime_settings import RunConfig
from k8s_smoke_tester.diagnostics import DiagnosticsError, stream_instance_logs
from k8s_smoke_tester.endpoint_resolution import (
    ExposureEndpoint,
    ProvisioningFault,
    ResolutionError,
    load_balancer_endpoint,
    load_balancer_ingresses,
    node_port_endpoint,
    resolve_instance,
    resolve_service,
)
from k8s_smoke_tester.http_probing import ConnectivityError, ContentMismatchError, RoundTripProber
from k8s_smoke_tester.tunnel_session import (
    CancellationError,
    CancellationToken,
    TunnelError,
    with_tunnel,
)
from k8s_smoke_tester.tunnel_session.pod_port_forwarder import LOCAL_BIND_ADDRESS

from .run_contracts import (
    PER_INSTANCE_PATH,
    SHARED_VOLUME_PATH,
    WORKLOAD_PORT,
    RunVerdict,
    Stage,
    StageFailure,
)

logger = logging.getLogger(__name__)

_STAGE_ERRORS = (
    ResolutionError,
    ProvisioningFault,
    ConnectivityError,
    ContentMismatchError,
    CancellationError,
    TunnelError,
)


def execute_connectivity_verification_run(
    config: RunConfig,
    *,
    control_plane: ControlPlaneClient,
    prober: RoundTripProber | None = None,
    cancellation: CancellationToken | None = None,
    log_sink: BinaryIO | None = None,
) -> RunVerdict:
    """Verify every exposure path of the release and return the run verdict.

    Stages run strictly in order and the first failure ends the run. The
    tested pod's logs are streamed afterwards whenever a pod was resolved,
    even after a failure.
    """
    resolved_prober = prober or RoundTripProber()
    token = cancellation or CancellationToken()
    instance: WorkloadInstance | None = None
    failure: StageFailure | None = None

    try:
        instance = _resolve_stage(config, control_plane, token)
        _port_forward_stage(config, control_plane, resolved_prober, instance, token)
        _ingress_stage(config, resolved_prober, token)
        service, node_port = _node_port_lookup_stage(config, control_plane, token)
        _node_port_stage(config, resolved_prober, node_port, token)
        _load_balancer_stage(config, resolved_prober, service, token)
    except StageFailure as exc:
        logger.error("%s", exc)
        failure = exc

    diagnostics_error = None
    if instance is not None:
        diagnostics_error = _diagnostics_stage(control_plane, instance, log_sink)
    verdict = RunVerdict(failure=failure, diagnostics_error=diagnostics_error)
    if verdict.passed:
        logger.info("PASSED")
    return verdict


@contextmanager
def _stage(
    stage: Stage, token: CancellationToken, *, ingress_index: int | None = None
) -> Iterator[None]:
    try:
        token.raise_if_cancelled()
        yield
    except _STAGE_ERRORS as exc:
        index = getattr(exc, "ingress_index", None)
        raise StageFailure(
            stage, exc, ingress_index=ingress_index if index is None else index
        ) from exc


def _resolve_stage(
    config: RunConfig, control_plane: ControlPlaneClient, token: CancellationToken
) -> WorkloadInstance:
    logger.info("Finding pod to port-forward...")
    with _stage(Stage.RESOLVE, token):
        instance = resolve_instance(
            control_plane, config.release_namespace, config.deployment_service_name
        )
    logger.info("Found pod %s to port-forward", instance.name)
    return instance


def _port_forward_stage(
    config: RunConfig,
    control_plane: ControlPlaneClient,
    prober: RoundTripProber,
    instance: WorkloadInstance,
    token: CancellationToken,
) -> None:
    logger.info("Testing Port-Forwarding...")
    url = (
        f"http://{LOCAL_BIND_ADDRESS}:{config.tunnel_local_port}/"
        f"{SHARED_VOLUME_PATH}/{config.test_file.name}"
    )
    with _stage(Stage.PORT_FORWARD, token):
        with_tunnel(
            control_plane,
            instance,
            config.tunnel_local_port,
            WORKLOAD_PORT,
            lambda: prober.probe(
                "GET RWX Port-Forward", url, expected_body=config.test_file.contents
            ),
            cancellation=token,
        )


def _ingress_stage(config: RunConfig, prober: RoundTripProber, token: CancellationToken) -> None:
    logger.info("Testing Ingress...")
    ingress = config.ingress
    url = (
        f"{ingress.scheme}://{ingress.connect_hostname}/"
        f"{SHARED_VOLUME_PATH}/{config.test_file.name}"
    )
    with _stage(Stage.INGRESS, token):
        prober.probe(
            "GET RWX Ingress",
            url,
            expected_body=config.test_file.contents,
            host_header=ingress.hostname if ingress.hostname_override else None,
        )


def _node_port_lookup_stage(
    config: RunConfig, control_plane: ControlPlaneClient, token: CancellationToken
) -> tuple[ServiceObject, ExposureEndpoint]:
    logger.info("Getting StatefulSet Service...")
    with _stage(Stage.NODE_PORT_LOOKUP, token):
        service = resolve_service(
            control_plane, config.release_namespace, config.statefulset_service_name
        )
        endpoint = node_port_endpoint(service, config.node_port_hostname)
    return service, endpoint


def _node_port_stage(
    config: RunConfig,
    prober: RoundTripProber,
    endpoint: ExposureEndpoint,
    token: CancellationToken,
) -> None:
    logger.info("Testing NodePort...")
    with _stage(Stage.NODE_PORT, token):
        prober.probe(
            "GET RWX NodePort",
            _shared_url(endpoint, config),
            expected_body=config.test_file.contents,
        )


def _load_balancer_stage(
    config: RunConfig,
    prober: RoundTripProber,
    service: ServiceObject,
    token: CancellationToken,
) -> None:
    logger.info("Testing LoadBalancer...")
    with _stage(Stage.LOAD_BALANCER, token):
        ingresses = load_balancer_ingresses(service)
    for index, ingress in enumerate(ingresses):
        with _stage(Stage.LOAD_BALANCER, token, ingress_index=index):
            endpoint = load_balancer_endpoint(service, index, ingress)
            verify_load_balancer_endpoint(config, prober, endpoint)


def verify_load_balancer_endpoint(
    config: RunConfig, prober: RoundTripProber, endpoint: ExposureEndpoint
) -> None:
    """Read the shared file, then write and read back the per-instance file."""
    contents = config.test_file.contents
    index = endpoint.ingress_index
    per_instance_url = endpoint.url(f"{PER_INSTANCE_PATH}/{config.test_file.name}")
    prober.probe(
        f"GET RWX LoadBalancer ingress index {index}",
        _shared_url(endpoint, config),
        expected_body=contents,
    )
    prober.probe(
        f"POST RWO LoadBalancer ingress index {index}",
        per_instance_url,
        "POST",
        body=contents,
    )
    prober.probe(
        f"GET RWO LoadBalancer ingress index {index}",
        per_instance_url,
        expected_body=contents,
    )


def _diagnostics_stage(
    control_plane: ControlPlaneClient,
    instance: WorkloadInstance,
    log_sink: BinaryIO | None,
) -> DiagnosticsError | None:
    logger.info("Testing Logs...")
    try:
        stream_instance_logs(control_plane, instance, log_sink or sys.stdout.buffer)
    except DiagnosticsError as exc:
        logger.warning("%s", exc)
        return exc
    return None


def _shared_url(endpoint: ExposureEndpoint, config: RunConfig) -> str:
    return endpoint.url(f"{SHARED_VOLUME_PATH}/{config.test_file.name}")
