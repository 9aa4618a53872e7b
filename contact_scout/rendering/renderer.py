# contact_scout/rendering/renderer.py
"""
Headless-browser rendering for script-driven pages (Playwright, Chromium).

One :meth:`HeadlessRenderer.session` is one isolated browser with its own
context. Images, media, fonts and stylesheets are blocked at the context
level. Every :meth:`RenderSession.render` call opens a fresh page, waits for
the DOM to settle, reads links from the live DOM and converts the rendered
markup to normalized text. Any failure surfaces as :class:`RenderingError`;
the browser is closed in all cases.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Playwright,
    Route,
    async_playwright,
)

from contact_scout.config import ProcessorConfig
from contact_scout.errors import RenderingError
from contact_scout.logger import get_logger
from contact_scout.models import AcquisitionMethod, AcquisitionResult
from contact_scout.parser.html_parser import (
    normalize_markup,
    prepare_rendered_markup,
    resolve_links,
)
from contact_scout.parser.readability import select_main_content
from contact_scout.rendering.spa import wait_for_stable_dom
from contact_scout.utils import byte_size

log = get_logger("rendering")

BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font", "stylesheet"})

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

_DOCUMENT_LENGTH_JS = "() => document.documentElement.outerHTML.length"
_HREFS_JS = "els => els.map(e => e.getAttribute('href'))"


def rendered_markdown(markup: str, base_url: str) -> str:
    """Cleanup, main-content selection (falls back to ``<body>``), normalization."""
    soup = prepare_rendered_markup(markup)
    main = select_main_content(soup)
    if main is not None:
        return normalize_markup(main, base_url, strip_chrome=False)
    return normalize_markup(soup, base_url, strip_chrome=False)


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class RenderSession:
    """Pages rendered inside one already launched browser context."""

    def __init__(self, context: BrowserContext, config: ProcessorConfig) -> None:
        self._context = context
        self.config = config

    async def render(self, url: str, timeout: Optional[float] = None) -> AcquisitionResult:
        timeout_ms = (timeout if timeout is not None else self.config.render_timeout) * 1000
        cfg = self.config
        try:
            page = await self._context.new_page()
        except PlaywrightError as exc:
            raise RenderingError(f"Failed to open browser page for {url}: {exc}") from exc

        try:
            await page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")

            async def _document_length() -> int:
                return int(await page.evaluate(_DOCUMENT_LENGTH_JS))

            samples = await wait_for_stable_dom(
                _document_length,
                settle_ms=cfg.stability_settle_ms,
                interval_ms=cfg.stability_interval_ms,
                max_wait_ms=cfg.stability_max_wait_ms,
                tolerance=cfg.stability_tolerance,
                required=cfg.stability_required_samples,
            )
            effective_url = page.url
            hrefs: List[Optional[str]] = await page.eval_on_selector_all("a[href]", _HREFS_JS)
            html = await page.content()
        except PlaywrightError as exc:
            raise RenderingError(f"Failed to render {url} with headless browser: {exc}") from exc
        finally:
            try:
                await page.close()
            except PlaywrightError as exc:
                log.debug("Closing page for %s failed: %s", url, exc)

        log.debug("Rendered %s after %d stability samples", effective_url, samples)
        try:
            text = rendered_markdown(html, effective_url)
            links = resolve_links(hrefs, effective_url)
        except RecursionError as exc:
            raise RenderingError(f"Failed to convert rendered markup of {url}: document nested too deeply") from exc
        return AcquisitionResult(
            content=text,
            effective_url=effective_url,
            size_bytes=byte_size(text),
            links=links,
            is_normalized_text=True,
            method=AcquisitionMethod.RENDERED,
        )


class HeadlessRenderer:
    """Launches isolated Chromium sessions on demand."""

    def __init__(self, config: ProcessorConfig) -> None:
        self.config = config

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RenderSession]:
        try:
            playwright = await async_playwright().start()
        except (PlaywrightError, OSError) as exc:
            raise RenderingError(f"Failed to start headless browser: {exc}") from exc

        browser: Optional[Browser] = None
        try:
            browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            context = await browser.new_context(user_agent=self.config.user_agent)
            await context.route("**/*", _block_heavy_resources)
        except (PlaywrightError, OSError) as exc:
            await self._shutdown(playwright, browser)
            raise RenderingError(f"Failed to launch headless browser: {exc}") from exc

        try:
            yield RenderSession(context, self.config)
        finally:
            await self._shutdown(playwright, browser)

    async def render(self, url: str, timeout: Optional[float] = None) -> AcquisitionResult:
        """One-shot: launch, render a single page, close."""
        async with self.session() as session:
            return await session.render(url, timeout)

    @staticmethod
    async def _shutdown(playwright: Playwright, browser: Optional[Browser]) -> None:
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as exc:
                log.warning("Closing headless browser failed: %s", exc)
        await playwright.stop()


__all__ = [
    "HeadlessRenderer",
    "RenderSession",
    "rendered_markdown",
    "BLOCKED_RESOURCE_TYPES",
]
