# contact_scout/acquisition/direct.py
"""
Direct fetch strategies: plain GET from this host over HTTPS, then HTTP.

Both share one aiohttp session, a short per-request timeout and the same
same-request fallback: when the first attempt fails with a transport-level
error (or a 403), the ``www.``/bare hostname variant is tried once. There is
no backoff here; these are alternate targets, not delayed retries.
"""
from __future__ import annotations

import asyncio
import socket
import ssl
from functools import lru_cache
from typing import Optional, Sequence, Tuple
from urllib.parse import urlsplit

from aiohttp import (
    ClientConnectionError,
    ClientConnectorError,
    ClientError,
    ClientResponseError,
    ClientSession,
    ClientSSLError,
    ClientTimeout,
    InvalidURL,
    TooManyRedirects,
)

from contact_scout.acquisition.base import BaseStrategy, error_text
from contact_scout.config import ProcessorConfig
from contact_scout.errors import DirectFetchError
from contact_scout.logger import get_logger
from contact_scout.models import AcquisitionMethod, AcquisitionResult, Protocol
from contact_scout.parser.html_parser import extract_content
from contact_scout.utils import byte_size, force_scheme, hostname_variants

log = get_logger("acquisition.direct")

#: error text fragments that mean "the secure attempt failed at transport level"
TRANSPORT_FAILURE_MARKERS: Sequence[str] = (
    "timeout",
    "connection refused",
    "name resolution",
    "tls failure",
    "connection error",
    "http 403",
)


@lru_cache(maxsize=1)
def permissive_ssl_context() -> ssl.SSLContext:
    """TLS context that talks to old or misconfigured servers.

    No certificate verification, TLS 1.0+, every cipher, legacy renegotiation.
    """
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    ctx.minimum_version = ssl.TLSVersion.TLSv1
    ctx.set_ciphers("ALL:@SECLEVEL=0")
    ctx.options |= getattr(ssl, "OP_LEGACY_SERVER_CONNECT", 0)
    return ctx


def classify_error(exc: BaseException) -> Tuple[str, bool]:
    """Map a fetch exception to ``(reason, retryable)``."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timeout", True
    if isinstance(exc, TooManyRedirects):
        return "too many redirects", False
    if isinstance(exc, ClientResponseError):
        if exc.status == 403:
            return "http 403", True
        return f"http {exc.status}", False
    if isinstance(exc, (ClientSSLError, ssl.SSLError)):
        return "tls failure", True
    if isinstance(exc, ClientConnectorError):
        os_error = exc.os_error
        if isinstance(os_error, socket.gaierror):
            return "name resolution failure", True
        if isinstance(os_error, ConnectionRefusedError):
            return "connection refused", True
        return "connection error", True
    if isinstance(exc, InvalidURL):
        return "invalid url", False
    if isinstance(exc, (ClientConnectionError, ConnectionError)):
        return "connection error", True
    return "client error", False


class _DirectStrategy(BaseStrategy):
    scheme: str = "https"
    method = AcquisitionMethod.DIRECT

    def __init__(self, session: ClientSession, config: ProcessorConfig) -> None:
        self.session = session
        self.config = config
        self._timeout = ClientTimeout(total=config.request_timeout)

    async def acquire(self, url: str) -> AcquisitionResult:
        target = force_scheme(url, self.scheme)
        html, effective_url = await self._fetch_with_variants(target)
        try:
            parsed = extract_content(html, effective_url)
        except RecursionError as exc:
            raise DirectFetchError(
                f"All {self.protocol.value} fetch attempts failed for {target} "
                f"(unparseable markup): document nested too deeply",
                reason="unparseable markup",
                retryable=False,
            ) from exc
        return AcquisitionResult(
            content=parsed.text,
            effective_url=effective_url,
            size_bytes=byte_size(parsed.text),
            links=parsed.links,
            is_normalized_text=True,
            method=self.method,
        )

    async def _fetch(self, url: str) -> Tuple[str, str]:
        async with self.session.get(
            url,
            ssl=permissive_ssl_context(),
            timeout=self._timeout,
            allow_redirects=True,
            headers={"User-Agent": self.config.user_agent},
        ) as resp:
            resp.raise_for_status()
            text = await resp.text(errors="replace")
            return text, str(resp.url)

    async def _fetch_with_variants(self, url: str) -> Tuple[str, str]:
        try:
            return await self._fetch(url)
        except (ClientError, asyncio.TimeoutError, ssl.SSLError, ConnectionError, ValueError) as exc:
            reason, retryable = classify_error(exc)
            first_error: BaseException = exc
            log.debug("%s: %s failed (%s): %s", self.name, url, reason, exc)

        if retryable:
            tried_host = urlsplit(url).hostname
            for variant in hostname_variants(url):
                if urlsplit(variant).hostname == tried_host:
                    continue
                try:
                    result = await self._fetch(variant)
                    log.debug("%s: hostname variant %s succeeded", self.name, variant)
                    return result
                except (ClientError, asyncio.TimeoutError, ssl.SSLError, ConnectionError, ValueError) as exc:
                    log.debug("%s: variant %s failed: %s", self.name, variant, exc)

        raise DirectFetchError(
            f"All {self.protocol.value} fetch attempts failed for {url} ({reason}): {first_error}",
            reason=reason,
            retryable=retryable,
        ) from first_error


class DirectSecureStrategy(_DirectStrategy):
    """GET over HTTPS. First in the chain, always applicable."""

    name = "Direct HTTPS"
    protocol = Protocol.HTTPS
    scheme = "https"


class DirectInsecureStrategy(_DirectStrategy):
    """GET over plain HTTP, tried only when HTTPS failed at transport level."""

    name = "Direct HTTP"
    protocol = Protocol.HTTP
    scheme = "http"

    def is_applicable(self, url: str, previous_error: Optional[BaseException] = None) -> bool:
        if previous_error is None:
            return False
        text = error_text(previous_error)
        return any(marker in text for marker in TRANSPORT_FAILURE_MARKERS)


__all__ = [
    "DirectSecureStrategy",
    "DirectInsecureStrategy",
    "classify_error",
    "permissive_ssl_context",
    "TRANSPORT_FAILURE_MARKERS",
]
