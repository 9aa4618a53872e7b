# contact_scout/acquisition/proxy.py
"""Remote proxy reader strategies (``<proxy_base_url><url>``).

The proxy fetches the page on its own infrastructure and answers with readable
text, so the result is already normalized and carries no links.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from contact_scout.acquisition.base import BaseStrategy, error_text
from contact_scout.config import ProcessorConfig
from contact_scout.errors import RemoteProxyError
from contact_scout.logger import get_logger
from contact_scout.models import AcquisitionMethod, AcquisitionResult, Protocol
from contact_scout.utils import byte_size, force_scheme

log = get_logger("acquisition.proxy")


class _RemoteProxyStrategy(BaseStrategy):
    scheme: str = "https"
    method = AcquisitionMethod.REMOTE_PROXY
    #: fragment of the previous error that makes this strategy eligible
    trigger: str = ""

    def __init__(self, session: ClientSession, config: ProcessorConfig) -> None:
        self.session = session
        self.config = config
        self._timeout = ClientTimeout(total=config.proxy_timeout)

    def is_applicable(self, url: str, previous_error: Optional[BaseException] = None) -> bool:
        return self.trigger in error_text(previous_error)

    def proxy_url(self, url: str) -> str:
        return f"{self.config.proxy_base_url}{force_scheme(url, self.scheme)}"

    async def acquire(self, url: str) -> AcquisitionResult:
        target = force_scheme(url, self.scheme)
        request_url = self.proxy_url(url)
        log.debug("%s: requesting %s", self.name, request_url)
        try:
            async with self.session.get(
                request_url,
                timeout=self._timeout,
                headers={"Accept": "text/plain", "User-Agent": self.config.user_agent},
            ) as resp:
                resp.raise_for_status()
                text = await resp.text(errors="replace")
        except (ClientError, asyncio.TimeoutError) as exc:
            detail = str(exc) or type(exc).__name__
            raise RemoteProxyError(
                f"Remote proxy {self.protocol.value} download failed for {target}: {detail}"
            ) from exc

        text = text.strip()
        if not text:
            raise RemoteProxyError(
                f"Remote proxy {self.protocol.value} download failed for {target}: empty response"
            )
        return AcquisitionResult(
            content=text,
            effective_url=target,
            size_bytes=byte_size(text),
            links=(),
            is_normalized_text=True,
            method=self.method,
        )


class RemoteProxySecureStrategy(_RemoteProxyStrategy):
    """Used once both direct strategies are exhausted."""

    name = "Remote proxy HTTPS"
    protocol = Protocol.HTTPS
    scheme = "https"
    trigger = "fetch attempts failed"


class RemoteProxyInsecureStrategy(_RemoteProxyStrategy):
    """Last resort: the proxy reads the plain HTTP variant."""

    name = "Remote proxy HTTP"
    protocol = Protocol.HTTP
    scheme = "http"
    trigger = "remote proxy https download failed"


__all__ = ["RemoteProxySecureStrategy", "RemoteProxyInsecureStrategy"]
