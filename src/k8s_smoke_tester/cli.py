"""Command line interface entry point."""

from __future__ import annotations

import logging
import signal
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import click

from k8s_smoke_tester.cluster_access import ControlPlaneClient, ControlPlaneError
from k8s_smoke_tester.cluster_access.kubernetes_control_plane import (
    KubernetesControlPlane,
    current_context_namespace,
)
from k8s_smoke_tester.configuration import (
    DEFAULT_RELEASE_NAME,
    DEFAULT_TUNNEL_LOCAL_PORT,
    DEFAULT_VALUES_FILENAME,
    STDIN_SOURCE,
    ConfigurationError,
    load_run_configuration,
    write_placeholder_values,
)
from k8s_smoke_tester.http_probing import RoundTripProber, build_http_session
from k8s_smoke_tester.run_execution import execute_connectivity_verification_run
from k8s_smoke_tester.tunnel_session import CancellationToken

ControlPlaneFactory = Callable[[str | None, str | None], ControlPlaneClient]

_THIRD_PARTY_LOGGERS = ("urllib3", "kubernetes", "websocket")


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="k8s-smoke-tester")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Verify that a deployed release is reachable through every exposure path."""
    _configure_logging(verbose)


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_VALUES_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the merged values template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder merged values file with guidance comments."""
    try:
        resolved_output = write_placeholder_values(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="run")
@click.option(
    "--merged-values-json",
    "values_source",
    default=STDIN_SOURCE,
    show_default=True,
    type=click.Path(path_type=str, allow_dash=True),
    help="Path to the merged release values (JSON or YAML), or `-` for stdin",
)
@click.option(
    "--release-name",
    default=DEFAULT_RELEASE_NAME,
    show_default=True,
    help="Name of the release",
)
@click.option(
    "-n",
    "--namespace",
    default=None,
    help="Release namespace (defaults to the namespace of the kubeconfig context)",
)
@click.option(
    "--kubeconfig",
    envvar="KUBECONFIG",
    default=None,
    type=click.Path(path_type=str),
    help="Path to the kubeconfig file to use",
)
@click.option("--context", default=None, help="Kubeconfig context to use")
@click.option(
    "--port-forward-local-port",
    "tunnel_local_port",
    default=DEFAULT_TUNNEL_LOCAL_PORT,
    show_default=True,
    type=int,
    help="Local port used to test port-forwarding",
)
@click.option(
    "--ingress-hostname",
    default=None,
    help="Connect to this host for the ingress test and send the release hostname as Host",
)
@click.option(
    "--ingress-tls",
    is_flag=True,
    default=False,
    help="Use https for the ingress test regardless of the release values",
)
@click.option("--proxy", "proxy_url", default=None, help="HTTP(S) proxy URL for every probe")
@click.option("--ca-bundle", default=None, type=click.Path(path_type=str), help="CA bundle path")
@click.option(
    "--insecure-skip-tls-verify",
    is_flag=True,
    default=False,
    help="Do not verify TLS certificates of probed endpoints",
)
def run_verification(  # pylint: disable=too-many-arguments
    values_source: str,
    release_name: str,
    namespace: str | None,
    kubeconfig: str | None,
    context: str | None,
    tunnel_local_port: int,
    ingress_hostname: str | None,
    ingress_tls: bool,
    proxy_url: str | None,
    ca_bundle: str | None,
    insecure_skip_tls_verify: bool,
) -> None:
    """Test port-forward, ingress, NodePort and LoadBalancer access to a release."""
    try:
        release_namespace = namespace or current_context_namespace(kubeconfig, context)
        config = load_run_configuration(
            values_source,
            release_namespace=release_namespace,
            release_name=release_name,
            tunnel_local_port=tunnel_local_port,
            ingress_hostname_override=ingress_hostname,
            ingress_tls=ingress_tls,
        )
        control_plane = _control_plane_factory(kubeconfig, context)
    except (ConfigurationError, ControlPlaneError, OSError) as exc:
        raise CliError(str(exc)) from exc

    verify: bool | str = ca_bundle or True
    if insecure_skip_tls_verify:
        verify = False
    prober = RoundTripProber(build_http_session(proxy_url=proxy_url, verify=verify))

    token = CancellationToken()
    with _cancel_on_interrupt(token):
        verdict = execute_connectivity_verification_run(
            config,
            control_plane=control_plane,
            prober=prober,
            cancellation=token,
            log_sink=click.get_binary_stream("stdout"),
        )

    if verdict.diagnostics_error is not None:
        click.echo(f"warning: {verdict.diagnostics_error}", err=True)
    if verdict.failure is not None:
        raise CliError(str(verdict.failure))
    click.echo("PASSED")


def _default_control_plane_factory(
    kubeconfig: str | None, context: str | None
) -> ControlPlaneClient:
    return KubernetesControlPlane.from_kubeconfig(kubeconfig, context)


_control_plane_factory: ControlPlaneFactory = _default_control_plane_factory


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Cancel the run on the first SIGINT and hand later ones to the previous handler."""
    previous = signal.getsignal(signal.SIGINT)
    fallback = signal.default_int_handler if previous in (signal.SIG_DFL, None) else previous

    def _interrupt(_signum: int, _frame: object) -> None:
        signal.signal(signal.SIGINT, fallback)
        token.cancel()

    try:
        signal.signal(signal.SIGINT, _interrupt)
    except ValueError:
        # Not on the main thread; cancellation stays caller-driven.
        installed = False
    else:
        installed = True
    try:
        yield
    finally:
        if installed:
            signal.signal(signal.SIGINT, fallback if previous is None else previous)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if not verbose:
        for name in _THIRD_PARTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
