# contact_scout/report/json_report.py

"""
JSON-вывод ContactScout.

* :func:`render_json` - итоговый файл ``site_id -> ExtractedData`` из RunReport.
* :class:`ResultSink` - единственный писатель того же файла во время запуска:
  воркеры вызывают :meth:`ResultSink.write` параллельно, запись
  сериализуется через asyncio.Lock, файл всегда содержит валидный JSON.
"""
from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Union

from contact_scout.aggregator import RunReport
from contact_scout.logger import get_logger
from contact_scout.models import ExtractedData, SiteResult

log = get_logger("report.json")


def _write_atomic(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


def render_json(report: RunReport, output_path: Union[Path, str]) -> Path:
    """
    Сохраняет данные всех сайтов из report в JSON по указанному пути.

    Пример:
    ```python
    from contact_scout.report.json_report import render_json
    path = render_json(report, "all_results.json")
    ```
    """
    output = Path(output_path)
    _write_atomic(output, report.results_payload())
    return output


class ResultSink:
    """Пошаговая запись результатов в один JSON-файл (один писатель).

    Файл переписывается целиком после каждых ``flush_every`` результатов и
    при :meth:`close`, так что за запуск он пишется около n / flush_every раз.
    """

    def __init__(self, output_path: Union[Path, str], flush_every: int = 25) -> None:
        if flush_every < 1:
            raise ValueError("flush_every must be >= 1")
        self.path = Path(output_path)
        self.flush_every = flush_every
        self._lock = asyncio.Lock()
        self._results: Dict[str, Any] = {}
        self._unsaved = 0
        self.saves = 0

    @property
    def written(self) -> int:
        return len(self._results)

    async def open(self) -> None:
        """Создаёт (или обнуляет) файл с пустым объектом."""
        async with self._lock:
            self._results = {}
            self._unsaved = 0
            await asyncio.to_thread(_write_atomic, self.path, {})
        log.info("Initialized results file: %s", self.path)

    async def write(self, result: SiteResult) -> None:
        data = result.data if result.ok else ExtractedData.empty()
        async with self._lock:
            self._results[result.site_id] = data.model_dump(mode="json")
            self._unsaved += 1
            if self._unsaved >= self.flush_every:
                await self._save()
        log.debug("Recorded data for: %s", result.site_id)

    async def close(self) -> None:
        """Сохраняет то, что ещё не попало в файл."""
        async with self._lock:
            if self._unsaved:
                await self._save()

    async def _save(self) -> None:
        snapshot = dict(self._results)
        await asyncio.to_thread(_write_atomic, self.path, snapshot)
        self._unsaved = 0
        self.saves += 1
        log.debug("Updated results file: %d sites", len(snapshot))


__all__ = ["render_json", "ResultSink"]
