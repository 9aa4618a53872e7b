# File: contact_scout/contacts.py
"""contact_scout.contacts: Поиск контактных страниц и загрузка их содержимого."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Sequence

from contact_scout.errors import ContactScoutError
from contact_scout.logger import get_logger
from contact_scout.models import AcquisitionResult

log = get_logger("contacts")

CONTACT_KEYWORDS: Sequence[str] = ("contact", "imprint", "impressum", "about")
CONTENT_DELIMITER = "\n\n==== Fetched Content From: {url} ====\n\n"

PageFetcher = Callable[[str], Awaitable[AcquisitionResult]]


@dataclass(frozen=True, slots=True)
class ContactPagesResult:
    content: str = ""
    success_count: int = 0
    failure_count: int = 0

    @property
    def attempted(self) -> int:
        return self.success_count + self.failure_count


def find_contact_links(
    links: Iterable[str],
    main_url: str,
    keywords: Sequence[str] = CONTACT_KEYWORDS,
) -> List[str]:
    """Ссылки, содержащие ключевое слово (без учёта регистра), кроме самой главной страницы."""
    lowered = [k.lower() for k in keywords]
    return [
        link
        for link in links
        if link != main_url and any(k in link.lower() for k in lowered)
    ]


async def fetch_contact_pages(links: Sequence[str], fetch: PageFetcher) -> ContactPagesResult:
    """
    Загружает каждую ссылку независимо через fetch. Ошибка одной страницы
    не прерывает остальные; успешные тексты склеиваются в порядке обнаружения.
    """
    parts: List[str] = []
    successes = failures = 0
    for link in dict.fromkeys(links):
        try:
            result = await fetch(link)
        except (ContactScoutError, OSError, ValueError, asyncio.TimeoutError) as exc:
            failures += 1
            log.warning("Contact page %s failed: %s", link, exc)
            continue
        parts.append(CONTENT_DELIMITER.format(url=link) + result.content)
        successes += 1
    return ContactPagesResult("".join(parts), successes, failures)


__all__ = [
    "CONTACT_KEYWORDS",
    "CONTENT_DELIMITER",
    "ContactPagesResult",
    "PageFetcher",
    "find_contact_links",
    "fetch_contact_pages",
]
