# File: tests/test_renderer.py
# RenderSession over an in-memory browser context (no Chromium needed).
from __future__ import annotations

import pytest

from contact_scout.errors import RenderingError
from contact_scout.models import AcquisitionMethod
from contact_scout.rendering.renderer import RenderSession

PAGE = """
<html><body>
  <nav><a href="/">Home</a></nav>
  <article class="content">
    <p>Acme Widgets, Main St 1. Call us at +1 555 0100, we answer every day of the week.</p>
    <p>Our team builds widgets since 1990, and we ship to every country in the world.</p>
  </article>
</body></html>
"""

DEEP = "<html><body>" + "<div>" * 1000 + "Acme" + "</div>" * 1000 + "</body></html>"


class StaticPage:
    def __init__(self, html, hrefs):
        self.html = html
        self.hrefs = hrefs
        self.url = "about:blank"
        self.closed = False

    async def goto(self, url, timeout=None, wait_until=None):
        self.url = url

    async def evaluate(self, script):
        return len(self.html)

    async def eval_on_selector_all(self, selector, script):
        return list(self.hrefs)

    async def content(self):
        return self.html

    async def close(self):
        self.closed = True


class StaticContext:
    """Every new page serves the same markup."""

    def __init__(self, html, hrefs=()):
        self.html = html
        self.hrefs = hrefs
        self.pages = []

    async def new_page(self):
        page = StaticPage(self.html, self.hrefs)
        self.pages.append(page)
        return page


@pytest.mark.asyncio()
async def test_render_returns_normalized_text_and_links(fast_config):
    context = StaticContext(PAGE, hrefs=["/contact", None, "mailto:hi@acme.test", "/contact"])
    result = await RenderSession(context, fast_config).render("https://spa.test/")

    assert result.method is AcquisitionMethod.RENDERED
    assert result.effective_url == "https://spa.test/"
    assert "+1 555 0100" in result.content
    assert result.size_bytes == len(result.content.encode("utf-8"))
    assert result.links == ("https://spa.test/contact",)
    assert context.pages[0].closed


@pytest.mark.asyncio()
async def test_render_of_deeply_nested_markup_is_a_rendering_error(fast_config):
    context = StaticContext(DEEP)
    with pytest.raises(RenderingError, match="nested too deeply"):
        await RenderSession(context, fast_config).render("https://spa.test/")
    assert context.pages[0].closed
