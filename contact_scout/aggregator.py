# File: contact_scout/aggregator.py
"""contact_scout.aggregator: Сводка результатов запуска и статистика извлечения."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from contact_scout.errors import ExtractionError, FailureKind
from contact_scout.models import ExtractedData, SiteResult

__all__ = ["ErrorEntry", "ExtractionStats", "RunReport", "aggregate_results"]


def _percent(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 2) if whole else 0.0


@dataclass(slots=True)
class ErrorEntry:
    """Одна ошибка сайта для отчёта."""

    site_url: str
    site_id: str
    message: str
    error_type: str = ""
    retry_count: Optional[int] = None
    transient: Optional[bool] = None
    cause: str = ""

    @classmethod
    def from_result(cls, result: SiteResult) -> ErrorEntry:
        exc = result.error
        message = str(exc) if exc is not None and str(exc) else _default_message(result.failure_kind)
        entry = cls(
            site_url=result.site_url,
            site_id=result.site_id,
            message=message,
            error_type=type(exc).__name__ if exc is not None else "",
        )
        if isinstance(exc, ExtractionError):
            entry.retry_count = exc.retry_count
            entry.transient = exc.transient
        if exc is not None and exc.__cause__ is not None:
            cause = exc.__cause__
            entry.cause = f"{type(cause).__name__}: {cause}"
        return entry


def _default_message(kind: Optional[FailureKind]) -> str:
    return {
        FailureKind.DOWNLOAD: "Download failed",
        FailureKind.EXTRACTION: "Extraction failed",
    }.get(kind, "Unexpected error")  # type: ignore[arg-type]


@dataclass(slots=True)
class ExtractionStats:
    """Покрытие и заполненность по результатам извлечения."""

    total_input_sites: int = 0
    processed_sites: int = 0
    crawled_sites: int = 0
    failed_to_crawl: int = 0
    sites_with_phones: int = 0
    sites_with_social: int = 0
    sites_with_addresses: int = 0
    total_phone_numbers: int = 0
    total_social_links: int = 0
    total_addresses: int = 0

    @property
    def crawled_percentage(self) -> float:
        return _percent(self.crawled_sites, self.total_input_sites)

    @property
    def failed_percentage(self) -> float:
        return _percent(self.failed_to_crawl, self.total_input_sites)

    @property
    def phones_fill_rate(self) -> float:
        return _percent(self.sites_with_phones, self.processed_sites)

    @property
    def social_fill_rate(self) -> float:
        return _percent(self.sites_with_social, self.processed_sites)

    @property
    def addresses_fill_rate(self) -> float:
        return _percent(self.sites_with_addresses, self.processed_sites)

    @property
    def overall_fill_rate(self) -> float:
        filled = self.sites_with_phones + self.sites_with_social + self.sites_with_addresses
        return _percent(filled, self.processed_sites * 3)

    @property
    def total_datapoints(self) -> int:
        return self.total_phone_numbers + self.total_social_links + self.total_addresses

    @property
    def average_datapoints(self) -> float:
        return round(self.total_datapoints / max(self.processed_sites, 1), 2)

    @classmethod
    def compute(
        cls, results: Dict[str, ExtractedData], total_input_sites: int, download_errors: int
    ) -> ExtractionStats:
        stats = cls(
            total_input_sites=total_input_sites,
            processed_sites=len(results),
            crawled_sites=total_input_sites - download_errors,
            failed_to_crawl=download_errors,
        )
        # заглушки вида "nothing found" уже отброшены моделью ExtractedData
        for data in results.values():
            if data.phone_numbers:
                stats.sites_with_phones += 1
                stats.total_phone_numbers += len(data.phone_numbers)
            if data.social_media_links:
                stats.sites_with_social += 1
                stats.total_social_links += len(data.social_media_links)
            if data.addresses:
                stats.sites_with_addresses += 1
                stats.total_addresses += len(data.addresses)
        return stats


@dataclass(slots=True)
class RunReport:
    """Итог одного запуска: счётчики, ошибки по типам, данные по сайтам."""

    total_sites: int = 0
    success_count: int = 0
    download_errors: List[ErrorEntry] = field(default_factory=list)
    extraction_errors: List[ErrorEntry] = field(default_factory=list)
    unexpected_errors: List[ErrorEntry] = field(default_factory=list)
    results: Dict[str, ExtractedData] = field(default_factory=dict)
    stats: ExtractionStats = field(default_factory=ExtractionStats)
    duration: float = 0.0

    @property
    def error_count(self) -> int:
        return len(self.download_errors) + len(self.extraction_errors) + len(self.unexpected_errors)

    def counts(self) -> Dict[str, int]:
        return {
            "total": self.total_sites,
            "success": self.success_count,
            "errors": self.error_count,
            FailureKind.DOWNLOAD.value: len(self.download_errors),
            FailureKind.EXTRACTION.value: len(self.extraction_errors),
            FailureKind.UNEXPECTED.value: len(self.unexpected_errors),
        }

    def results_payload(self) -> Dict[str, Any]:
        return {site_id: data.model_dump(mode="json") for site_id, data in self.results.items()}

    def json(self, *, pretty: bool = False) -> str:
        """JSON со счётчиками и данными по сайтам."""
        output = {
            "summary": self.counts(),
            "duration": round(self.duration, 3),
            "results": self.results_payload(),
        }
        return json.dumps(output, ensure_ascii=False, indent=2 if pretty else None)


def aggregate_results(
    results: Iterable[SiteResult], total_sites: Optional[int] = None, duration: float = 0.0
) -> RunReport:
    """Собирает SiteResult всех сайтов в RunReport."""
    items = list(results)
    report = RunReport(total_sites=total_sites if total_sites is not None else len(items), duration=duration)
    buckets = {
        FailureKind.DOWNLOAD: report.download_errors,
        FailureKind.EXTRACTION: report.extraction_errors,
        FailureKind.UNEXPECTED: report.unexpected_errors,
    }
    for result in items:
        # у неудачных сайтов тоже есть запись, с пустыми данными
        report.results[result.site_id] = result.data if result.ok else ExtractedData.empty()
        if result.ok:
            report.success_count += 1
        else:
            buckets[result.failure_kind].append(ErrorEntry.from_result(result))  # type: ignore[index]
    report.stats = ExtractionStats.compute(
        report.results, report.total_sites, len(report.download_errors)
    )
    return report
