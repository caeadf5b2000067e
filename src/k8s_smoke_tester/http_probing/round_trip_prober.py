"""HTTP round-trip probe service."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import requests
from requests.adapters import BaseAdapter

from .probe_outcomes import (
    ConnectivityError,
    ContentMismatchError,
    ProbeOutcome,
    ProbeResult,
)

logger = logging.getLogger(__name__)

_UPLOAD_CONTENT_TYPE = "application/octet-stream"


def build_http_session(
    *,
    proxy_url: str | None = None,
    verify: bool | str = True,
    adapters: Mapping[str, BaseAdapter] | None = None,
) -> requests.Session:
    """Create the HTTP client used for every probe.

    Args:
      proxy_url: Proxy applied to both http and https URLs. Environment proxies
        are still honoured when this is unset.
      verify: TLS verification flag or path to a CA bundle.
      adapters: Transport adapters to mount, keyed by URL prefix.

    Returns:
      A configured `requests.Session`.
    """
    session = requests.Session()
    session.verify = verify
    if proxy_url:
        session.proxies.update({"http": proxy_url, "https": proxy_url})
    for prefix, adapter in (adapters or {}).items():
        session.mount(prefix, adapter)
    return session


class RoundTripProber:
    """Issues single-attempt GET/POST calls and classifies the outcome."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or build_http_session()

    def probe(
        self,
        label: str,
        url: str,
        verb: str = "GET",
        *,
        body: str | None = None,
        expected_body: str | None = None,
        host_header: str | None = None,
    ) -> ProbeResult:
        """Perform one call and return the successful result.

        Raises:
          ConnectivityError: When the transport fails (DNS, refused, timeout).
          ContentMismatchError: When the status is not 200, or when
            `expected_body` is non-empty and the body differs byte-for-byte.
        """
        headers: dict[str, str] = {}
        data: bytes | None = None
        if host_header:
            headers["Host"] = host_header
        if body is not None:
            data = body.encode("utf-8")
            headers["Content-Type"] = _UPLOAD_CONTENT_TYPE

        logger.debug("%s %s", verb, url)
        try:
            response = self._session.request(verb, url, data=data, headers=headers)
        except requests.RequestException as exc:
            result = ProbeResult(
                label=label,
                url=url,
                verb=verb,
                outcome=ProbeOutcome.CONNECT_FAILURE,
                error_message=str(exc),
            )
            raise ConnectivityError(result, f"Failed to connect to {label} {url}: {exc}") from exc

        content = response.content
        if response.status_code != requests.codes.ok:
            result = ProbeResult(
                label=label,
                url=url,
                verb=verb,
                outcome=ProbeOutcome.BAD_STATUS,
                status_code=response.status_code,
                body=content,
            )
            raise ContentMismatchError(
                result,
                f"{label} {url} returned non-200 status code {response.status_code}: "
                f"{result.body_text}",
            )

        if expected_body and content != expected_body.encode("utf-8"):
            result = ProbeResult(
                label=label,
                url=url,
                verb=verb,
                outcome=ProbeOutcome.BODY_MISMATCH,
                status_code=response.status_code,
                body=content,
            )
            raise ContentMismatchError(
                result,
                f"{label} {url} returned unexpected body {result.body_text!r} "
                f"instead of expected body {expected_body!r}",
                want=expected_body,
            )

        return ProbeResult(
            label=label,
            url=url,
            verb=verb,
            outcome=ProbeOutcome.SUCCESS,
            status_code=response.status_code,
            body=content,
        )
