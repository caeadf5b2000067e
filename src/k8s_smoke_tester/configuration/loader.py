"""Merged release values loader service."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TextIO

import yaml

from .runtime_settings import (
    DEFAULT_RELEASE_NAME,
    DEFAULT_TUNNEL_LOCAL_PORT,
    IngressSettings,
    RunConfig,
    TestFile,
)

STDIN_SOURCE = "-"


class ConfigurationError(Exception):
    """Raised when the merged release values or run options are invalid."""


def load_run_configuration(
    values_source: Path | str,
    *,
    release_namespace: str,
    release_name: str = DEFAULT_RELEASE_NAME,
    tunnel_local_port: int = DEFAULT_TUNNEL_LOCAL_PORT,
    ingress_hostname_override: str | None = None,
    ingress_tls: bool = False,
    stdin: TextIO | None = None,
) -> RunConfig:
    """Read merged release values from a path (or `-` for stdin) and build the run config."""
    text = _read_values_text(values_source, stdin)
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse merged values: {exc}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Merged values root must be a mapping.")

    return build_run_configuration(
        parsed,
        release_namespace=release_namespace,
        release_name=release_name,
        tunnel_local_port=tunnel_local_port,
        ingress_hostname_override=ingress_hostname_override,
        ingress_tls=ingress_tls,
    )


def build_run_configuration(
    values: Mapping[str, Any],
    *,
    release_namespace: str,
    release_name: str = DEFAULT_RELEASE_NAME,
    tunnel_local_port: int = DEFAULT_TUNNEL_LOCAL_PORT,
    ingress_hostname_override: str | None = None,
    ingress_tls: bool = False,
) -> RunConfig:
    """Validate already-parsed merged values together with the run options."""
    return RunConfig(
        release_namespace=_require_non_empty_string(release_namespace, "release namespace"),
        release_name=_require_non_empty_string(release_name, "release name"),
        fullname_override=_optional_string(values.get("fullnameOverride"), "fullnameOverride"),
        ingress=_parse_ingress_section(
            values.get("deployment"),
            hostname_override=_optional_string(ingress_hostname_override, "ingress hostname"),
            force_tls=ingress_tls,
        ),
        node_port_hostname=_parse_statefulset_section(values.get("statefulset")),
        tunnel_local_port=_require_port(tunnel_local_port, "tunnel local port"),
        test_file=_parse_test_file_section(values.get("testFile")),
    )


def _read_values_text(values_source: Path | str, stdin: TextIO | None) -> str:
    if str(values_source) == STDIN_SOURCE:
        return (stdin or sys.stdin).read()
    path = Path(values_source)
    if not path.exists():
        raise ConfigurationError(f"Values file not found: {path}")
    return path.read_text(encoding="utf-8")


def _parse_test_file_section(value: Any) -> TestFile:
    section = _require_mapping(value, "testFile")
    name = _require_non_empty_string(section.get("name"), "testFile.name")
    contents = section.get("contents")
    if not isinstance(contents, str):
        raise ConfigurationError("testFile.contents must be a string.")
    if not contents:
        raise ConfigurationError("testFile.contents must not be empty.")
    return TestFile(name=name.strip("/"), contents=contents)


def _parse_ingress_section(
    value: Any, *, hostname_override: str | None, force_tls: bool
) -> IngressSettings:
    deployment = _require_mapping(value, "deployment")
    ingress = _require_mapping(deployment.get("ingress"), "deployment.ingress")
    hostname = _require_non_empty_string(ingress.get("hostname"), "deployment.ingress.hostname")
    tls = ingress.get("tls") or []
    if not isinstance(tls, list):
        raise ConfigurationError("deployment.ingress.tls must be a list.")
    return IngressSettings(
        hostname=hostname,
        hostname_override=hostname_override,
        force_tls=bool(force_tls),
        tls_configured=bool(tls),
    )


def _parse_statefulset_section(value: Any) -> str:
    section = _require_mapping(value, "statefulset")
    return _require_non_empty_string(
        section.get("nodePortHostname"), "statefulset.nodePortHostname"
    )


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Values section '{section_name}' is required.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _require_port(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if not 0 < value < 65536:
        raise ConfigurationError(f"{field_name} must be between 1 and 65535.")
    return value
