"""Tunnel session exports."""

from .cancellation import CancellationError, CancellationToken
from .pod_port_forwarder import PodPortForwarder, RemoteStream
from .tunnel import TunnelError, with_tunnel

__all__ = [
    "CancellationError",
    "CancellationToken",
    "PodPortForwarder",
    "RemoteStream",
    "TunnelError",
    "with_tunnel",
]
