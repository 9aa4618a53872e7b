# File: contact_scout/utils.py
"""contact_scout.utils: Утилиты для нормализации входных URL, имён сайтов и вариантов хоста."""

from __future__ import annotations

import re
from typing import Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

__all__: Sequence[str] = (
    "ensure_url_scheme",
    "force_scheme",
    "site_name_for_display",
    "hostname_variants",
    "protocol_of",
    "byte_size",
)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def ensure_url_scheme(url: str) -> str:
    """Обрезает пробелы и завершающую точку, добавляет https:// если схемы нет."""
    s = url.strip()
    if s.endswith("."):
        s = s[:-1]
    if not _SCHEME_RE.match(s):
        s = "https://" + s
    return s


def force_scheme(url: str, scheme: str) -> str:
    """Переписывает http(s):// в начале URL на указанную схему."""
    return _SCHEME_RE.sub(f"{scheme}://", url, count=1)


def site_name_for_display(url: str) -> str:
    """Имя сайта без схемы и www. - используется как идентификатор сайта."""
    host = urlsplit(ensure_url_scheme(url)).hostname or ""
    if not host:
        stripped = re.sub(r"^https?://", "", url.strip(), flags=re.IGNORECASE)
        host = stripped.split("/")[0]
    return re.sub(r"^www\.", "", host.lower())


def hostname_variants(url: str) -> Tuple[str, str]:
    """Ровно два варианта URL: с префиксом ``www.`` и без него (в этом порядке).

    Один из них обычно совпадает с исходным URL; вызывающий код сам решает,
    пропускать ли его.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    bare = host[4:] if host.startswith("www.") else host
    www = "www." + bare

    def _with_host(new_host: str) -> str:
        netloc = new_host
        if parts.port is not None:
            netloc = f"{netloc}:{parts.port}"
        if parts.username:
            creds = parts.username + (f":{parts.password}" if parts.password else "")
            netloc = f"{creds}@{netloc}"
        return urlunsplit((parts.scheme, netloc, parts.path or "/", parts.query, parts.fragment))

    return _with_host(www), _with_host(bare)


def protocol_of(url: str) -> str:
    """Возвращает "HTTPS"/"HTTP" по схеме URL (или "" если неизвестно)."""
    scheme = urlsplit(url).scheme.upper()
    return scheme if scheme in ("HTTP", "HTTPS") else ""


def byte_size(text: str) -> int:
    """Размер текста в байтах UTF-8."""
    return len(text.encode("utf-8"))
