"""Shared fixtures for the connectivity verification tests."""

from __future__ import annotations

import pytest
from cluster_fakes import (
    INGRESS_HOSTNAME,
    NAMESPACE,
    NODE_PORT_HOSTNAME,
    TEST_FILE,
    TUNNEL_LOCAL_PORT,
    FakeControlPlane,
    FakeFileServerTransport,
    shared_urls,
    statefulset_service,
)
from k8s_smoke_tester.cluster_access import ServiceObject, ServicePort, WorkloadInstance
from k8s_smoke_tester.configuration import IngressSettings, RunConfig
from k8s_smoke_tester.http_probing import RoundTripProber, build_http_session


@pytest.fixture
def run_config() -> RunConfig:
    return RunConfig(
        release_namespace=NAMESPACE,
        release_name="k8s-smoke-test",
        fullname_override=None,
        ingress=IngressSettings(hostname=INGRESS_HOSTNAME),
        node_port_hostname=NODE_PORT_HOSTNAME,
        tunnel_local_port=TUNNEL_LOCAL_PORT,
        test_file=TEST_FILE,
    )


@pytest.fixture
def control_plane() -> FakeControlPlane:
    """Control plane holding a fully provisioned release."""
    fake = FakeControlPlane()
    fake.add_service(
        ServiceObject(
            name="k8s-smoke-test-deployment",
            namespace=NAMESPACE,
            selector={"app.kubernetes.io/component": "deployment"},
            ports=(ServicePort(port=80),),
        )
    )
    fake.add_service(statefulset_service())
    fake.pods.append(
        (
            WorkloadInstance(name="k8s-smoke-test-deployment-abc12", namespace=NAMESPACE),
            {"app.kubernetes.io/component": "deployment"},
        )
    )
    fake.pods.append(
        (
            WorkloadInstance(name="k8s-smoke-test-statefulset-0", namespace=NAMESPACE),
            {"app.kubernetes.io/component": "statefulset"},
        )
    )
    return fake


@pytest.fixture
def file_server() -> FakeFileServerTransport:
    """File server already holding the shared test file on every path."""
    transport = FakeFileServerTransport()
    for url in shared_urls().values():
        transport.serve(url, TEST_FILE.contents)
    return transport


@pytest.fixture
def prober(file_server: FakeFileServerTransport) -> RoundTripProber:
    session = build_http_session(adapters={"http://": file_server, "https://": file_server})
    return RoundTripProber(session)

