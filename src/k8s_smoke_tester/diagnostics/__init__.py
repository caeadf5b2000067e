"""Diagnostics exports."""

from .log_streaming import DiagnosticsError, stream_instance_logs

__all__ = ["DiagnosticsError", "stream_instance_logs"]
