"""Exposure endpoint entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExposureKind(str, Enum):
    """Exposure mechanism that produced an endpoint."""

    NODE_PORT = "NodePort"
    LOAD_BALANCER = "LoadBalancer"


@dataclass(frozen=True)
class ExposureEndpoint:
    """Concrete host and port allocated for one exposure mechanism."""

    kind: ExposureKind
    host: str
    port: int
    ingress_index: int | None = None

    def url(self, path: str, scheme: str = "http") -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{scheme}://{host}:{self.port}/{path.lstrip('/')}"
