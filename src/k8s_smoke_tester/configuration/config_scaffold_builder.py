"""Merged values scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_VALUES_FILENAME = "values.yaml"

_VALUES_SCAFFOLD_TEMPLATE = """# Merged release values consumed by k8s-smoke-tester.
# Normally produced with `helm get values --all -o json <release>`.
# Replace every <REQUIRED> placeholder before running `run`.
# Replace <OPTIONAL> placeholders only when your release sets them.

# fullnameOverride: "<OPTIONAL>"

testFile:
  # Written to the shared volume by the release; compared byte-for-byte.
  name: "test-file"
  contents: "This is a test file"

deployment:
  ingress:
    hostname: "<REQUIRED>"
    # Any entry here switches the ingress probe to https.
    tls: []

statefulset:
  # Hostname or IP of a node that serves NodePort services.
  nodePortHostname: "<REQUIRED>"
"""


def build_placeholder_values() -> str:
    """Build a merged values template with placeholders and inline guidance."""
    return _VALUES_SCAFFOLD_TEMPLATE


def write_placeholder_values(output_path: Path | str) -> Path:
    """Write the placeholder values template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Values file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_values(), encoding="utf-8")
    return destination.resolve()
