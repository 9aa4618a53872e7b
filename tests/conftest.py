# File: tests/conftest.py
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from aiohttp import web

from contact_scout.acquisition.base import BaseStrategy
from contact_scout.config import ProcessorConfig
from contact_scout.errors import AcquisitionError, RenderingError
from contact_scout.models import (
    AcquisitionMethod,
    AcquisitionOutcome,
    AcquisitionResult,
    ExtractedData,
    ExtractionRequest,
    Protocol,
)


@pytest.fixture()
def fast_config() -> ProcessorConfig:
    """
    Config with short timeouts and delays so the suite stays quick.
    """
    return ProcessorConfig(
        request_timeout=2.0,
        proxy_timeout=2.0,
        batch_flush_delay=0.05,
        retry_backoff=0.01,
        stability_settle_ms=0,
        stability_interval_ms=10,
        stability_max_wait_ms=100,
        concurrency=4,
        inference_api_key="test-key",
    )


@pytest_asyncio.fixture
async def start_server(unused_tcp_port_factory) -> AsyncIterator[Callable[[web.Application], Awaitable[str]]]:
    """Start aiohttp apps on free localhost ports; all are cleaned up after the test."""
    runners: List[web.AppRunner] = []

    async def _start(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        port = unused_tcp_port_factory()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{port}"

    yield _start
    for runner in runners:
        await runner.cleanup()


def make_result(
    content: str = "x" * 2000,
    url: str = "https://example.com/",
    links: Sequence[str] = (),
    method: AcquisitionMethod = AcquisitionMethod.DIRECT,
) -> AcquisitionResult:
    return AcquisitionResult(
        content=content,
        effective_url=url,
        size_bytes=len(content.encode("utf-8")),
        links=tuple(links),
        method=method,
    )


class FakeStrategy(BaseStrategy):
    """Strategy with scripted applicability and outcome; records every call."""

    def __init__(
        self,
        name: str,
        *,
        result: Optional[AcquisitionResult] = None,
        error: Optional[BaseException] = None,
        applies_when: Optional[Callable[[Optional[BaseException]], bool]] = None,
        protocol: Protocol = Protocol.HTTPS,
        method: AcquisitionMethod = AcquisitionMethod.DIRECT,
    ) -> None:
        self.name = name
        self.protocol = protocol
        self.method = method
        self._result = result
        self._error = error
        self._applies_when = applies_when
        self.applicability_checks: List[Optional[BaseException]] = []
        self.calls: List[str] = []

    def is_applicable(self, url: str, previous_error: Optional[BaseException] = None) -> bool:
        self.applicability_checks.append(previous_error)
        if self._applies_when is None:
            return True
        return self._applies_when(previous_error)

    async def acquire(self, url: str) -> AcquisitionResult:
        self.calls.append(url)
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class FakeChain:
    """Stands in for AcquisitionChain: per-URL scripted results or errors."""

    def __init__(self, outcomes: Dict[str, object]) -> None:
        self.outcomes = outcomes
        self.calls: List[str] = []

    async def execute(self, url, on_attempt=None):
        self.calls.append(url)
        outcome = self.outcomes.get(url)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            raise AcquisitionError(url, None)
        status = AcquisitionOutcome(True, Protocol.HTTPS, outcome.method, "ok")
        if on_attempt is not None:
            on_attempt(None, status)
        return outcome, status


class FakeRenderSession:
    def __init__(self, renderer: "FakeRenderer") -> None:
        self.renderer = renderer

    async def render(self, url: str, timeout: Optional[float] = None) -> AcquisitionResult:
        return await self.renderer.render(url, timeout)


class FakeRenderer:
    """Renderer double: scripted per-URL results; missing URLs raise RenderingError."""

    def __init__(self, pages: Optional[Dict[str, AcquisitionResult]] = None, *, fail_launch: bool = False) -> None:
        self.pages = pages or {}
        self.fail_launch = fail_launch
        self.rendered: List[str] = []
        self.sessions = 0

    async def render(self, url: str, timeout: Optional[float] = None) -> AcquisitionResult:
        self.rendered.append(url)
        if url not in self.pages:
            raise RenderingError(f"Failed to render {url}")
        return self.pages[url]

    @asynccontextmanager
    async def session(self):
        if self.fail_launch:
            raise RenderingError("Failed to launch headless browser")
        self.sessions += 1
        yield FakeRenderSession(self)


class FakeInferenceClient:
    """Inference client double recording each batch; responses are scripted per call."""

    def __init__(self, responses: Optional[List[object]] = None) -> None:
        self.responses = list(responses or [])
        self.batches: List[List[ExtractionRequest]] = []
        self.call_times: List[float] = []

    async def extract_batch(self, requests, system_instruction=""):
        self.batches.append(list(requests))
        self.call_times.append(time.monotonic())
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = None
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(requests)
        if response is None:
            return {
                r.site_id: ExtractedData(phone_numbers=[f"+1 555 {i:04d}"])
                for i, r in enumerate(requests)
            }
        return response


@pytest.fixture()
def fakes():
    """Test doubles for strategies, chain, renderer and inference client."""

    class _Fakes:
        Strategy = FakeStrategy
        Chain = FakeChain
        Renderer = FakeRenderer
        Client = FakeInferenceClient
        result = staticmethod(make_result)

    return _Fakes
