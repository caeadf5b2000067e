"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_VALUES_FILENAME,
    build_placeholder_values,
    write_placeholder_values,
)
from .loader import (
    STDIN_SOURCE,
    ConfigurationError,
    build_run_configuration,
    load_run_configuration,
)
from .runtime_settings import (
    CHART_NAME,
    DEFAULT_RELEASE_NAME,
    DEFAULT_TUNNEL_LOCAL_PORT,
    IngressSettings,
    RunConfig,
    TestFile,
)

__all__ = [
    "CHART_NAME",
    "DEFAULT_RELEASE_NAME",
    "DEFAULT_TUNNEL_LOCAL_PORT",
    "IngressSettings",
    "RunConfig",
    "TestFile",
    "STDIN_SOURCE",
    "ConfigurationError",
    "build_run_configuration",
    "load_run_configuration",
    "DEFAULT_VALUES_FILENAME",
    "build_placeholder_values",
    "write_placeholder_values",
]
