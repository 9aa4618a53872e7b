# File: contact_scout/engine.py
"""contact_scout.engine: Пул воркеров и запуск обработки списка сайтов."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from aiohttp import ClientSession

from contact_scout.acquisition.chain import AcquisitionChain, default_chain
from contact_scout.aggregator import RunReport, aggregate_results
from contact_scout.config import ProcessorConfig, load_config
from contact_scout.errors import FailureKind
from contact_scout.extraction.batch_queue import ExtractionBatchQueue
from contact_scout.extraction.client import GeminiClient, InferenceClient
from contact_scout.logger import logger
from contact_scout.models import ExtractedData, SiteProcessingRecord, SiteResult
from contact_scout.orchestrator import Renderer, SiteOrchestrator
from contact_scout.rendering.renderer import HeadlessRenderer
from contact_scout.report.json_report import ResultSink
from contact_scout.utils import ensure_url_scheme, site_name_for_display

__all__ = ["Engine", "run_sites"]

ResultCallback = Callable[[SiteResult], Awaitable[None]]
ChainFactory = Callable[[ClientSession, ProcessorConfig], AcquisitionChain]


def _unexpected_result(url: str, exc: BaseException) -> SiteResult:
    site_id = site_name_for_display(url)
    return SiteResult(
        site_url=ensure_url_scheme(url),
        site_id=site_id,
        record=SiteProcessingRecord(site_name=site_id),
        data=ExtractedData.empty(),
        failure_kind=FailureKind.UNEXPECTED,
        error=exc,
    )


async def run_sites(
    sites: Sequence[str],
    make_orchestrator: Callable[[], SiteOrchestrator],
    concurrency: int,
    on_result: Optional[ResultCallback] = None,
) -> List[SiteResult]:
    """
    Обрабатывает сайты из общей FIFO-очереди не более чем concurrency воркерами.

    Каждый воркер держит свой SiteOrchestrator и обрабатывает сайты по одному.
    Результаты возвращаются в порядке завершения.
    """
    if not sites:
        return []

    queue: asyncio.Queue[str] = asyncio.Queue()
    for site in sites:
        queue.put_nowait(site)

    results: List[SiteResult] = []
    total = len(sites)
    worker_count = max(1, min(concurrency, total))
    logger.info("Starting %d workers to process %d sites…", worker_count, total)

    async def _worker(worker_id: int) -> None:
        orchestrator = make_orchestrator()
        while True:
            url = await queue.get()
            try:
                logger.info(
                    "Processing site: %s (%d/%d) – queue: %d – worker %d",
                    url, len(results) + 1, total, queue.qsize(), worker_id,
                )
                try:
                    result = await orchestrator.process(url)
                except Exception as exc:
                    logger.exception("Worker %d: unexpected failure on %s", worker_id, url)
                    result = _unexpected_result(url, exc)
                results.append(result)
                if on_result is not None:
                    try:
                        await on_result(result)
                    except Exception as exc:
                        logger.error("Failed to record result for %s: %s", result.site_id, exc)
            finally:
                queue.task_done()

    workers = [asyncio.create_task(_worker(i)) for i in range(worker_count)]
    try:
        await queue.join()
    finally:
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
    return results


class Engine:
    """Фасад для CLI и тестов: сборка зависимостей, запуск пула, агрегация."""

    @staticmethod
    def load_config(path: Optional[str]) -> ProcessorConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(
        self,
        config: ProcessorConfig,
        *,
        chain_factory: ChainFactory = default_chain,
        renderer: Optional[Renderer] = None,
        client: Optional[InferenceClient] = None,
    ) -> None:
        self.config = config
        self.chain_factory = chain_factory
        self.renderer = renderer
        self.client = client

    async def run(self, sites: Sequence[str], sink: Optional[ResultSink] = None) -> RunReport:
        """Обрабатывает все сайты, дожидается последних пакетов извлечения, строит RunReport."""
        logger.info("Starting site processing with %d parallel workers…", self.config.concurrency)
        started = time.perf_counter()
        if sink is not None:
            await sink.open()

        async with ClientSession(headers={"User-Agent": self.config.user_agent}) as session:
            chain = self.chain_factory(session, self.config)
            renderer = self.renderer or HeadlessRenderer(self.config)
            client = self.client or GeminiClient(session, self.config)
            queue = ExtractionBatchQueue.from_config(client, self.config)

            def make_orchestrator() -> SiteOrchestrator:
                return SiteOrchestrator(chain, renderer, queue, self.config)

            try:
                results = await run_sites(
                    sites,
                    make_orchestrator,
                    self.config.concurrency,
                    sink.write if sink is not None else None,
                )
            finally:
                logger.info("Processing any remaining extraction items in queue…")
                await queue.drain()
                if sink is not None:
                    await sink.close()

        report = aggregate_results(results, total_sites=len(sites), duration=time.perf_counter() - started)
        logger.info(
            "Done: %d sites, %d ok, %d download / %d extraction / %d unexpected errors in %.2f s",
            report.total_sites,
            report.success_count,
            len(report.download_errors),
            len(report.extraction_errors),
            len(report.unexpected_errors),
            report.duration,
        )
        return report

    def start(self, sites: Sequence[str], sink: Optional[ResultSink] = None) -> RunReport:
        """Блокирующая обёртка над run() для CLI."""
        try:
            return asyncio.run(self.run(sites, sink))
        except Exception as exc:
            logger.error("Processing failed: %s", exc)
            raise
