# File: contact_scout/orchestrator.py
"""
contact_scout.orchestrator: Конвейер обработки одного сайта.

Состояния: Pending → Acquiring → (RenderingFallback) → LocatingContacts →
AcquiringContacts → Extracting → Done | Failed.

Ошибка загрузки даёт пустой ExtractedData и тип ошибки DOWNLOAD (извлечение
не запускается), ошибка извлечения даёт тип EXTRACTION, всё остальное -
UNEXPECTED. Маленькая страница (SPA) не считается ошибкой загрузки: её
исправляет рендеринг.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import AsyncContextManager, List, Optional, Protocol, Tuple

from contact_scout.acquisition.base import Strategy
from contact_scout.acquisition.chain import AcquisitionChain
from contact_scout.config import ProcessorConfig
from contact_scout.contacts import ContactPagesResult, fetch_contact_pages, find_contact_links
from contact_scout.errors import AcquisitionError, ExtractionError, FailureKind, RenderingError
from contact_scout.extraction.batch_queue import ExtractionBatchQueue
from contact_scout.logger import get_logger
from contact_scout.models import (
    AcquisitionMethod,
    AcquisitionOutcome,
    AcquisitionResult,
    ActionStatus,
    ExtractedData,
    SiteProcessingRecord,
    SiteResult,
    StageStatus,
)
from contact_scout.rendering.renderer import RenderSession
from contact_scout.rendering.spa import needs_rendering
from contact_scout.utils import byte_size, ensure_url_scheme, protocol_of, site_name_for_display

log = get_logger("orchestrator")


class SiteState(str, Enum):
    PENDING = "Pending"
    ACQUIRING = "Acquiring"
    RENDERING_FALLBACK = "RenderingFallback"
    LOCATING_CONTACTS = "LocatingContacts"
    ACQUIRING_CONTACTS = "AcquiringContacts"
    EXTRACTING = "Extracting"
    DONE = "Done"
    FAILED = "Failed"


class Renderer(Protocol):
    def session(self) -> AsyncContextManager[RenderSession]:
        ...

    async def render(self, url: str, timeout: Optional[float] = None) -> AcquisitionResult:
        ...


class SiteOrchestrator:
    """Один экземпляр на воркер; сайты обрабатываются строго по очереди."""

    def __init__(
        self,
        chain: AcquisitionChain,
        renderer: Renderer,
        queue: ExtractionBatchQueue,
        config: ProcessorConfig,
    ) -> None:
        self.chain = chain
        self.renderer = renderer
        self.queue = queue
        self.config = config
        self.state = SiteState.PENDING
        self.history: List[SiteState] = []

    def _enter(self, state: SiteState, site_id: str) -> None:
        self.state = state
        self.history.append(state)
        log.debug("%s → %s", site_id, state.value)

    async def process(self, url: str) -> SiteResult:
        started = time.perf_counter()
        site_url = ensure_url_scheme(url)
        site_id = site_name_for_display(site_url)
        record = SiteProcessingRecord(site_name=site_id)
        self.history = []
        self._enter(SiteState.PENDING, site_id)

        try:
            return await self._run(site_url, site_id, record)
        except Exception as exc:
            log.exception("Unexpected error while processing %s", site_url)
            self._enter(SiteState.FAILED, site_id)
            return SiteResult(site_url, site_id, record, ExtractedData.empty(), FailureKind.UNEXPECTED, exc)
        finally:
            record.duration = time.perf_counter() - started

    async def _run(self, site_url: str, site_id: str, record: SiteProcessingRecord) -> SiteResult:
        # --- Stage 1: main page ---
        self._enter(SiteState.ACQUIRING, site_id)
        try:
            main = await self._acquire_main(site_url, record)
        except AcquisitionError as exc:
            log.info("Download failed for %s, skipping extraction: %s", site_id, exc)
            record.actions["main_page"] = ActionStatus(
                StageStatus.FAILURE, "", f"All download attempts failed: {exc}"
            )
            record.actions["extraction"] = ActionStatus.skipped("Skipped (download failed)")
            record.size = 0
            self._enter(SiteState.FAILED, site_id)
            return SiteResult(site_url, site_id, record, ExtractedData.empty(), FailureKind.DOWNLOAD, exc)

        main, spa = await self._render_if_needed(main, record, site_id)

        # --- Stage 2: contact pages ---
        contact_text = await self._contact_pages(main, spa, record, site_id)

        # --- Stage 3: extraction ---
        text = main.content + contact_text
        record.size = byte_size(text)
        self._enter(SiteState.EXTRACTING, site_id)
        record.actions["extraction"] = ActionStatus.pending("Processing content with inference service...")
        try:
            data = await self.queue.enqueue(site_id, text)
        except ExtractionError as exc:
            record.actions["extraction"] = ActionStatus(StageStatus.FAILURE, "", str(exc))
            self._enter(SiteState.FAILED, site_id)
            return SiteResult(site_url, site_id, record, ExtractedData.empty(), FailureKind.EXTRACTION, exc)

        categories = sum(1 for values in (data.phone_numbers, data.social_media_links, data.addresses) if values)
        record.actions["extraction"] = ActionStatus.of(
            True, "", f"Successfully extracted {categories} data categories"
        )
        self._enter(SiteState.DONE, site_id)
        return SiteResult(site_url, site_id, record, data)

    async def _acquire_main(self, site_url: str, record: SiteProcessingRecord) -> AcquisitionResult:
        def on_attempt(strategy: Strategy, outcome: AcquisitionOutcome) -> None:
            key = "remote_proxy" if outcome.method is AcquisitionMethod.REMOTE_PROXY else "main_page"
            record.actions[key] = ActionStatus.of(outcome.success, outcome.protocol.value, outcome.detail)

        result, _ = await self.chain.execute(site_url, on_attempt)
        if result.method is AcquisitionMethod.DIRECT:
            record.actions["remote_proxy"] = ActionStatus.skipped("Not needed (direct download successful)")
        record.size = result.size_bytes
        return result

    async def _render_if_needed(
        self, main: AcquisitionResult, record: SiteProcessingRecord, site_id: str
    ) -> Tuple[AcquisitionResult, bool]:
        if not needs_rendering(main, self.config.spa_threshold_bytes):
            return main, False

        self._enter(SiteState.RENDERING_FALLBACK, site_id)
        log.info("Detected SPA for %s (%d bytes), using headless browser", site_id, main.size_bytes)
        status = record.actions["main_page"]
        status.details = f"{status.details} (SPA detected)"
        try:
            rendered = await self.renderer.render(main.effective_url, self.config.render_timeout)
        except RenderingError as exc:
            log.warning("Rendering failed for %s, keeping original content: %s", site_id, exc)
            record.actions["rendering"] = ActionStatus(StageStatus.FAILURE, "", str(exc))
            return main, True

        record.actions["rendering"] = ActionStatus.of(
            True, protocol_of(rendered.effective_url), f"Rendered {rendered.size_bytes} bytes"
        )
        record.size = rendered.size_bytes
        return rendered, True

    async def _contact_pages(
        self, main: AcquisitionResult, spa: bool, record: SiteProcessingRecord, site_id: str
    ) -> str:
        self._enter(SiteState.LOCATING_CONTACTS, site_id)
        if main.method is AcquisitionMethod.REMOTE_PROXY:
            record.actions["contact_pages"] = ActionStatus.skipped(
                "Skipped (remote proxy download doesn't extract links)"
            )
            return ""
        if not main.links:
            record.actions["contact_pages"] = ActionStatus.skipped("Skipped (no links available)")
            return ""

        links = find_contact_links(main.links, main.effective_url, self.config.contact_keywords)
        record.contact_links = tuple(links)
        if not links:
            record.actions["contact_pages"] = ActionStatus.skipped("No contact pages found in main page links")
            return ""

        self._enter(SiteState.ACQUIRING_CONTACTS, site_id)
        protocol = protocol_of(main.effective_url)
        record.actions["contact_pages"] = ActionStatus.pending(f"Found {len(links)} contact pages to download")
        if spa:
            result = await self._rendered_contact_pages(links, site_id)
        else:
            result = await fetch_contact_pages(links, self._fetch_via_chain)

        if result.success_count and result.failure_count:
            record.actions["contact_pages"] = ActionStatus(
                StageStatus.PARTIAL, protocol, f"Downloaded {result.success_count}/{result.attempted} pages"
            )
        elif result.success_count:
            plural = "s" if result.success_count > 1 else ""
            record.actions["contact_pages"] = ActionStatus.of(
                True, protocol, f"Successfully downloaded {result.success_count} contact page{plural}"
            )
        else:
            record.actions["contact_pages"] = ActionStatus.of(
                False, "", f"Failed to download any of the {result.failure_count} contact pages"
            )
        return result.content

    async def _fetch_via_chain(self, url: str) -> AcquisitionResult:
        result, _ = await self.chain.execute(url)
        return result

    async def _rendered_contact_pages(self, links: List[str], site_id: str) -> ContactPagesResult:
        timeout = self.config.contact_render_timeout
        try:
            async with self.renderer.session() as session:

                async def _render(url: str) -> AcquisitionResult:
                    return await session.render(url, timeout)

                return await fetch_contact_pages(links, _render)
        except RenderingError as exc:
            log.warning("Headless browser unavailable for contact pages of %s: %s", site_id, exc)
            return ContactPagesResult("", 0, len(dict.fromkeys(links)))


__all__ = ["SiteState", "SiteOrchestrator", "Renderer"]
