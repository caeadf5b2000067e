"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

CHART_NAME = "k8s-smoke-test"
DEFAULT_RELEASE_NAME = CHART_NAME
DEFAULT_TUNNEL_LOCAL_PORT = 18080


@dataclass(frozen=True)
class TestFile:
    """File written by the release and read back through every exposure mechanism."""

    __test__ = False

    name: str
    contents: str


@dataclass(frozen=True)
class IngressSettings:
    """How the deployment's ingress route is reached."""

    hostname: str
    hostname_override: str | None = None
    force_tls: bool = False
    tls_configured: bool = False

    @property
    def scheme(self) -> str:
        return "https" if self.force_tls or self.tls_configured else "http"

    @property
    def connect_hostname(self) -> str:
        """Host placed in the URL; the real hostname travels in the Host header."""
        return self.hostname_override or self.hostname


@dataclass(frozen=True)
class RunConfig:  # pylint: disable=too-many-instance-attributes
    """Immutable inputs for one connectivity verification run."""

    release_namespace: str
    release_name: str
    fullname_override: str | None
    ingress: IngressSettings
    node_port_hostname: str
    tunnel_local_port: int
    test_file: TestFile

    @cached_property
    def resolved_name(self) -> str:
        """Name prefix of every object created by the release."""
        if self.fullname_override:
            return self.fullname_override
        if CHART_NAME in self.release_name:
            return self.release_name
        return f"{self.release_name}-{CHART_NAME}"

    @property
    def deployment_service_name(self) -> str:
        return f"{self.resolved_name}-deployment"

    @property
    def statefulset_service_name(self) -> str:
        return f"{self.resolved_name}-statefulset"
