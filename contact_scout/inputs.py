# File: contact_scout/inputs.py
"""contact_scout.inputs: Чтение входного списка сайтов."""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from contact_scout.logger import logger

__all__ = ["read_sites"]


def read_sites(path: Union[str, Path]) -> List[str]:
    """Одна строка - один сайт; пробелы обрезаются, пустые строки пропускаются."""
    p = Path(path)
    try:
        content = p.read_text(encoding="utf-8-sig")
    except OSError as exc:
        logger.error("Error reading input file %s: %s", p, exc)
        raise
    sites = [line.strip() for line in content.splitlines()]
    return [s for s in sites if s]
