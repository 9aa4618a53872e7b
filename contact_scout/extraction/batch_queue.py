# contact_scout/extraction/batch_queue.py
"""
Coalescing queue in front of the inference service.

Workers call :meth:`ExtractionBatchQueue.enqueue` and await their own future.
Pending requests are flushed as one outbound call when ``batch_size`` items
have accumulated, or ``flush_delay`` seconds after the first unflushed item
arrived. Only one flush is in flight at a time (``asyncio.Lock``); items that
arrive meanwhile wait for the next one.

Every future of a flushed batch is settled before the flush returns: ids found
in the response get their data, ids the service left out get
``ExtractedData.empty()``, and a failed call rejects the whole batch with one
shared :class:`ExtractionError`. Transient failures are retried with
exponential backoff first.

One instance serves a whole run and is passed to every orchestrator.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from aiohttp import ClientConnectionError

from contact_scout.config import ProcessorConfig
from contact_scout.errors import ExtractionError
from contact_scout.extraction.client import InferenceClient
from contact_scout.extraction.prompt import SYSTEM_INSTRUCTION
from contact_scout.logger import get_logger
from contact_scout.models import ExtractedData, ExtractionRequest

log = get_logger("extraction.queue")

TRANSIENT_MARKERS: Sequence[str] = (
    "fetch failed",
    "rate limit",
    "quota",
    "429",
    "timeout",
    "timed out",
    "socket hang up",
    "econnreset",
    "etimedout",
    "connection reset",
    "network error",
)

_Entry = Tuple[ExtractionRequest, "asyncio.Future[ExtractedData]"]


def is_transient_error(exc: BaseException) -> bool:
    """Network resets, timeouts, rate limits and quota errors are worth retrying."""
    if isinstance(exc, (asyncio.TimeoutError, ClientConnectionError, ConnectionResetError)):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


class ExtractionBatchQueue:
    def __init__(
        self,
        client: InferenceClient,
        *,
        batch_size: int = 20,
        flush_delay: float = 1.0,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
        system_instruction: str = SYSTEM_INSTRUCTION,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.client = client
        self.batch_size = batch_size
        self.flush_delay = flush_delay
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.system_instruction = system_instruction
        self._sleep = sleep

        self._pending: List[_Entry] = []
        self._lock = asyncio.Lock()
        self._busy = False
        self._scheduled = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self.flush_count = 0

    @classmethod
    def from_config(cls, client: InferenceClient, config: ProcessorConfig) -> ExtractionBatchQueue:
        return cls(
            client,
            batch_size=config.batch_size,
            flush_delay=config.batch_flush_delay,
            max_retries=config.max_retries,
            retry_backoff=config.retry_backoff,
        )

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def enqueue(self, site_id: str, text: str) -> ExtractedData:
        future: asyncio.Future[ExtractedData] = asyncio.get_running_loop().create_future()
        self._pending.append((ExtractionRequest(site_id, text), future))
        log.debug(
            "Queued %s for extraction (%d/%d in batch)", site_id, len(self._pending), self.batch_size
        )

        if len(self._pending) >= self.batch_size:
            if not self._busy:
                self._schedule_flush()
        else:
            self._arm_timer()
        return await future

    async def drain(self) -> None:
        """Flush everything still pending, batch by batch, and wait for it."""
        self._cancel_timer()
        while self._pending or self._busy:
            await self._flush()
        self._cancel_timer()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Triggers
    # ------------------------------------------------------------------ #

    def _arm_timer(self) -> None:
        if self._timer is not None or self._busy or self._scheduled:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.flush_delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._pending and not self._busy:
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._scheduled:
            return
        self._cancel_timer()
        self._scheduled = True
        task = asyncio.get_running_loop().create_task(self._flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _after_flush(self) -> None:
        if len(self._pending) >= self.batch_size:
            self._schedule_flush()
        elif self._pending:
            self._arm_timer()

    # ------------------------------------------------------------------ #
    # Flush
    # ------------------------------------------------------------------ #

    async def _flush(self) -> None:
        async with self._lock:
            self._scheduled = False
            if not self._pending:
                return
            batch, self._pending = self._pending, []
            self._cancel_timer()
            self._busy = True
            self.flush_count += 1
            try:
                await self._dispatch(batch)
            finally:
                self._busy = False
        self._after_flush()

    async def _dispatch(self, batch: List[_Entry]) -> None:
        by_id: Dict[str, List[asyncio.Future[ExtractedData]]] = {}
        for request, future in batch:
            by_id.setdefault(request.site_id, []).append(future)

        log.info("Processing batch of %d sites with inference service", len(batch))
        try:
            results = await self._call_with_retry([request for request, _ in batch])
        except ExtractionError as exc:
            log.error("Extraction batch of %d sites failed: %s", len(batch), exc)
            for futures in by_id.values():
                for future in futures:
                    if not future.done():
                        future.set_exception(exc)
            return
        except asyncio.CancelledError:
            for _, future in batch:
                future.cancel()
            raise

        missing = 0
        for site_id, futures in by_id.items():
            data = results.get(site_id)
            if data is None:
                missing += 1
                data = ExtractedData.empty()
            for future in futures:
                if not future.done():
                    future.set_result(data)
        if missing:
            log.warning("%d site(s) missing from inference response; resolved as empty", missing)

    async def _call_with_retry(self, requests: List[ExtractionRequest]) -> Dict[str, ExtractedData]:
        retry_count = 0
        while True:
            try:
                results = await self.client.extract_batch(requests, self.system_instruction)
            except Exception as exc:
                transient = is_transient_error(exc)
                log.warning(
                    "Extraction call failed (attempt %d/%d): %s",
                    retry_count + 1,
                    self.max_retries + 1,
                    exc,
                )
                if transient and retry_count < self.max_retries:
                    retry_count += 1
                    delay = self.retry_backoff * 2 ** (retry_count - 1)
                    log.info("Transient error, retrying in %.1fs (retry %d/%d)", delay, retry_count, self.max_retries)
                    await self._sleep(delay)
                    continue
                raise ExtractionError(
                    f"LLM batch processing failed: {exc}",
                    retry_count=retry_count,
                    transient=transient,
                ) from exc
            if retry_count:
                log.info("Extraction recovered after %d retries", retry_count)
            return results


__all__ = ["ExtractionBatchQueue", "is_transient_error", "TRANSIENT_MARKERS"]
