# === FILE: contact_scout/parser/html_parser.py ===
"""HTML → links + normalized text for ContactScout.

Every acquisition path funnels markup through this module so that the text
sent for extraction looks the same no matter how the page was obtained:

* links - absolute URLs from ``<a href="…">``, de-duplicated, discovery order.
  Fragment-only, ``javascript:`` and ``mailto:`` hrefs are skipped.
* text  - Markdown produced by ``markdownify`` after scripts, styles and page
  chrome are dropped. Headings and paragraphs keep their structure; tables
  are flattened to ``a | b | c`` lines.

:func:`extract_content` does both in one pass over one parsed tree.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag
from markdownify import ATX, markdownify

__all__: Sequence[str] = (
    "ParsedContent",
    "parse_markup",
    "resolve_links",
    "extract_content",
    "normalize_markup",
    "prepare_rendered_markup",
)

PARSER = "lxml"

_SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:")

#: removed before conversion on every path
_NOISE_SELECTOR = 'script, style, link[rel="stylesheet"], noscript, iframe, svg, template'
#: page chrome, only removed from statically fetched pages
_CHROME_SELECTOR = "header, footer, nav, img"
_HIDDEN_SELECTOR = (
    '[style*="display:none"], [style*="display: none"], [hidden], [aria-hidden="true"]'
)

_BLANK_RUN_RE = re.compile(r"\n{3,}")
_TRAILING_WS_RE = re.compile(r"[ \t]+\n")


@dataclass(frozen=True, slots=True)
class ParsedContent:
    """Links and normalized text from a single parse."""

    links: tuple[str, ...]
    text: str


def parse_markup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", PARSER)


def _is_followable(href: str) -> bool:
    return bool(href) and not href.lower().startswith(_SKIPPED_HREF_PREFIXES)


def resolve_links(hrefs: Iterable[Optional[str]], base_url: str) -> tuple[str, ...]:
    """Resolve raw hrefs against *base_url*; skip pseudo links, keep first occurrence."""
    seen: dict[str, None] = {}
    for raw in hrefs:
        if not isinstance(raw, str):
            continue
        href = raw.strip()
        if not _is_followable(href):
            continue
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        seen.setdefault(absolute, None)
    return tuple(seen)


def _flatten_tables(scope: Union[BeautifulSoup, Tag], soup: BeautifulSoup) -> None:
    for table in scope.find_all("table"):
        headers = [th.get_text(" ", strip=True) for th in table.find_all("th")]
        rows: list[list[str]] = []
        for tr in table.find_all("tr"):
            cells = [td.get_text(" ", strip=True) for td in tr.find_all("td")]
            if cells:
                rows.append(cells)

        container = soup.new_tag("div")
        lines = ([" | ".join(headers)] if headers else []) + [" | ".join(r) for r in rows]
        for line in lines:
            p = soup.new_tag("p")
            p.string = line
            container.append(p)
        table.replace_with(container)


def _absolutize_anchors(root: Tag, base_url: str) -> None:
    for a in root.find_all("a"):
        href = a.get("href")
        if not isinstance(href, str) or not _is_followable(href.strip()):
            a.unwrap()
            continue
        try:
            a["href"] = urljoin(base_url, href.strip())
        except ValueError:
            a.unwrap()


def _to_markdown(root: Union[BeautifulSoup, Tag], base_url: str) -> str:
    _absolutize_anchors(root, base_url)
    md = markdownify(str(root), heading_style=ATX, bullets="-", escape_misc=False)
    md = _TRAILING_WS_RE.sub("\n", md)
    return _BLANK_RUN_RE.sub("\n\n", md).strip()


def _strip(soup: Union[BeautifulSoup, Tag], selector: str) -> None:
    for el in soup.select(selector):
        # nested matches are already gone with their ancestor
        if not el.decomposed:
            el.decompose()


def _owner(tag: Tag) -> BeautifulSoup:
    node = tag
    while node.parent is not None:
        node = node.parent
    if not isinstance(node, BeautifulSoup):
        raise ValueError("subtree is detached from its document")
    return node


def normalize_markup(
    markup: Union[str, BeautifulSoup, Tag], base_url: str, *, strip_chrome: bool = True
) -> str:
    """Convert markup (or an already parsed subtree) to normalized text."""
    scope = parse_markup(markup) if isinstance(markup, str) else markup
    soup = scope if isinstance(scope, BeautifulSoup) else _owner(scope)
    _strip(scope, _NOISE_SELECTOR)
    if strip_chrome:
        _strip(scope, _CHROME_SELECTOR)
    _flatten_tables(scope, soup)
    if isinstance(scope, BeautifulSoup) and scope.body is not None:
        return _to_markdown(scope.body, base_url)
    return _to_markdown(scope, base_url)


def extract_content(markup: str, base_url: str) -> ParsedContent:
    """Links from the whole document plus normalized text of the cleaned body."""
    soup = parse_markup(markup)
    links = resolve_links((a.get("href") for a in soup.find_all("a", href=True)), base_url)
    text = normalize_markup(soup, base_url, strip_chrome=True)
    return ParsedContent(links=links, text=text)


def prepare_rendered_markup(markup: str) -> BeautifulSoup:
    """Cleanup applied to browser-rendered markup before readability scoring."""
    soup = parse_markup(markup)
    _strip(soup, _NOISE_SELECTOR)
    _strip(soup, _HIDDEN_SELECTOR)
    return soup
