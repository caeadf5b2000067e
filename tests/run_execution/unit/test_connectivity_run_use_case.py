"""Connectivity verification run tests over fake cluster and HTTP servers."""

from __future__ import annotations

import io
import threading

import pytest
from cluster_fakes import (
    INGRESS_HOSTNAME,
    LOAD_BALANCER_IP,
    TEST_FILE,
    FakeControlPlane,
    FakeFileServerTransport,
    FakeTunnel,
    shared_urls,
    statefulset_service,
)
from k8s_smoke_tester.cluster_access import (
    ControlPlaneError,
    LoadBalancerIngress,
    PortStatus,
    ServicePort,
)
from k8s_smoke_tester.configuration import IngressSettings, RunConfig
from k8s_smoke_tester.endpoint_resolution import (
    ExposureEndpoint,
    ExposureKind,
    ProvisioningFault,
    ResolutionError,
)
from k8s_smoke_tester.http_probing import (
    ConnectivityError,
    ContentMismatchError,
    RoundTripProber,
)
from k8s_smoke_tester.run_execution import (
    Stage,
    execute_connectivity_verification_run,
    verify_load_balancer_endpoint,
)
from k8s_smoke_tester.tunnel_session import CancellationError, CancellationToken, TunnelError

RWO_URL = f"http://{LOAD_BALANCER_IP}:8080/rwo/{TEST_FILE.name}"


def _run(run_config, control_plane, prober, **kwargs):
    kwargs.setdefault("log_sink", io.BytesIO())
    return execute_connectivity_verification_run(
        run_config, control_plane=control_plane, prober=prober, **kwargs
    )


def test_all_exposure_paths_serving_the_file_pass(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    sink = io.BytesIO()

    verdict = _run(run_config, control_plane, prober, log_sink=sink)

    urls = shared_urls()
    assert verdict.passed
    assert verdict.diagnostics_error is None
    assert file_server.urls_requested() == [
        ("GET", urls["port_forward"]),
        ("GET", urls["ingress"]),
        ("GET", urls["node_port"]),
        ("GET", urls["load_balancer"]),
        ("POST", RWO_URL),
        ("GET", RWO_URL),
    ]
    assert file_server.requests[4].body == TEST_FILE.contents.encode("utf-8")
    assert control_plane.tunnels_opened[0][1:] == (18080, 8080)
    assert control_plane.tunnel.closed.is_set()
    assert sink.getvalue() == b"pod log line\n"


def test_wrong_ingress_body_fails_ingress_and_skips_later_stages(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    file_server.overrides[shared_urls()["ingress"]] = (200, b"wrong")

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.INGRESS
    assert isinstance(verdict.cause, ContentMismatchError)
    assert verdict.cause.got == "wrong"
    assert verdict.cause.want == "This is a test file"
    assert [url for _, url in file_server.urls_requested()] == [
        shared_urls()["port_forward"],
        shared_urls()["ingress"],
    ]
    assert control_plane.logs_streamed


def test_unassigned_node_port_fails_lookup(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    control_plane.add_service(statefulset_service(ports=(ServicePort(port=8080, node_port=0),)))

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.NODE_PORT_LOOKUP
    assert isinstance(verdict.cause, ProvisioningFault)
    assert shared_urls()["node_port"] not in [url for _, url in file_server.urls_requested()]


def test_missing_statefulset_service_fails_lookup(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    del control_plane.services[("smoke", "k8s-smoke-test-statefulset")]

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.NODE_PORT_LOOKUP
    assert isinstance(verdict.cause, ResolutionError)


def test_load_balancer_probe_sequence(
    run_config: RunConfig, file_server: FakeFileServerTransport, prober: RoundTripProber
) -> None:
    endpoint = ExposureEndpoint(
        kind=ExposureKind.LOAD_BALANCER, host=LOAD_BALANCER_IP, port=8080, ingress_index=0
    )

    verify_load_balancer_endpoint(run_config, prober, endpoint)

    assert file_server.urls_requested() == [
        ("GET", shared_urls()["load_balancer"]),
        ("POST", RWO_URL),
        ("GET", RWO_URL),
    ]


def test_repeated_load_balancer_write_then_read_yields_same_result(
    run_config: RunConfig, file_server: FakeFileServerTransport, prober: RoundTripProber
) -> None:
    endpoint = ExposureEndpoint(
        kind=ExposureKind.LOAD_BALANCER, host=LOAD_BALANCER_IP, port=8080, ingress_index=0
    )

    verify_load_balancer_endpoint(run_config, prober, endpoint)
    verify_load_balancer_endpoint(run_config, prober, endpoint)

    assert file_server.files[RWO_URL] == TEST_FILE.contents.encode("utf-8")
    assert len(file_server.requests) == 6


def test_missing_deployment_pods_fail_resolve_without_diagnostics(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    control_plane.pods.clear()

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.RESOLVE
    assert "No pods in smoke match" in str(verdict.failure)
    assert control_plane.tunnels_opened == []
    assert control_plane.logs_streamed == []


def test_tunnel_failure_fails_port_forward(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    control_plane.tunnel = FakeTunnel(fail_with=OSError("address already in use"))

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.PORT_FORWARD
    assert isinstance(verdict.cause, TunnelError)
    assert file_server.requests == []


def test_unreachable_node_port_is_a_connect_failure(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    file_server.unreachable.add("node.example.com:30080")

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.NODE_PORT
    assert isinstance(verdict.cause, ConnectivityError)


@pytest.mark.parametrize(
    "ports",
    [(), (PortStatus(port=8080, error="Pending"),), (PortStatus(port=0),)],
)
def test_incomplete_load_balancer_ingress_fails_before_any_request(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
    ports: tuple[PortStatus, ...],
) -> None:
    control_plane.add_service(
        statefulset_service(
            load_balancer_ingress=(LoadBalancerIngress(ip=LOAD_BALANCER_IP, ports=ports),)
        )
    )

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.LOAD_BALANCER
    assert verdict.failure.ingress_index == 0
    assert isinstance(verdict.cause, ProvisioningFault)
    assert not any(LOAD_BALANCER_IP in url for _, url in file_server.urls_requested())


def test_load_balancer_without_ingresses_fails(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    control_plane.add_service(statefulset_service(load_balancer_ingress=()))

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.LOAD_BALANCER
    assert verdict.failure.ingress_index is None
    assert str(verdict.failure) == (
        "LoadBalancer stage failed: "
        "LoadBalancer Service k8s-smoke-test-statefulset has no ingresses"
    )


def test_second_load_balancer_ingress_failure_names_its_index(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    control_plane.add_service(
        statefulset_service(
            load_balancer_ingress=(
                LoadBalancerIngress(ip=LOAD_BALANCER_IP, ports=(PortStatus(port=8080),)),
                LoadBalancerIngress(hostname="lb.example.com", ports=(PortStatus(port=8080),)),
            )
        )
    )

    verdict = _run(run_config, control_plane, prober)

    assert verdict.stage is Stage.LOAD_BALANCER
    assert verdict.failure.ingress_index == 1
    assert str(verdict.failure).startswith("LoadBalancer (ingress index 1) stage failed:")
    assert ("GET", RWO_URL) in file_server.urls_requested()


def test_ingress_hostname_override_sends_host_header(
    run_config: RunConfig,
    control_plane: FakeControlPlane,
    file_server: FakeFileServerTransport,
    prober: RoundTripProber,
) -> None:
    config = RunConfig(
        release_namespace=run_config.release_namespace,
        release_name=run_config.release_name,
        fullname_override=None,
        ingress=IngressSettings(
            hostname=INGRESS_HOSTNAME, hostname_override="ingress-nginx.local", force_tls=True
        ),
        node_port_hostname=run_config.node_port_hostname,
        tunnel_local_port=run_config.tunnel_local_port,
        test_file=TEST_FILE,
    )
    file_server.serve("https://ingress-nginx.local/rwx/test-file", TEST_FILE.contents)

    verdict = _run(config, control_plane, prober)

    assert verdict.passed
    ingress_request = file_server.requests[1]
    assert ingress_request.url == "https://ingress-nginx.local/rwx/test-file"
    assert ingress_request.headers["Host"] == INGRESS_HOSTNAME


def test_diagnostics_failure_never_changes_verdict(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    control_plane.log_error = ControlPlaneError("container not found")

    verdict = _run(run_config, control_plane, prober)

    assert verdict.passed
    assert "container not found" in str(verdict.diagnostics_error)


def test_cancelled_run_fails_current_stage_and_still_streams_logs(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    control_plane.tunnel = FakeTunnel(become_ready=False)
    token = CancellationToken()
    canceller = threading.Thread(
        target=lambda: control_plane.tunnel.started.wait(timeout=2) and token.cancel()
    )
    canceller.start()

    verdict = _run(run_config, control_plane, prober, cancellation=token)

    canceller.join()
    assert verdict.stage is Stage.PORT_FORWARD
    assert isinstance(verdict.cause, CancellationError)
    assert control_plane.tunnel.finished.is_set()
    assert control_plane.logs_streamed


def test_cancelled_before_start_fails_resolve(
    run_config: RunConfig, control_plane: FakeControlPlane, prober: RoundTripProber
) -> None:
    token = CancellationToken()
    token.cancel()

    verdict = _run(run_config, control_plane, prober, cancellation=token)

    assert verdict.stage is Stage.RESOLVE
    assert isinstance(verdict.cause, CancellationError)
