# File: contact_scout/report/text_report.py
"""contact_scout.report.text_report: Текстовые отчёты (ошибки и анализ извлечения) через Jinja2."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from contact_scout.aggregator import ErrorEntry, RunReport

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _environment(template_dir: Union[Path, str, None]) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _section(title: str, label: str, empty: str, entries: List[ErrorEntry], total: int) -> Dict[str, Any]:
    return {
        "title": title,
        "label": label,
        "empty": empty,
        "entries": entries,
        "percent": len(entries) * 100.0 / total if total else 0.0,
    }


def _write(content: str, output_path: Union[Path, str]) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def render_error_report(
    report: RunReport,
    output_path: Union[Path, str],
    template_dir: Union[Path, str, None] = None,
) -> Path:
    """Отчёт об ошибках по типам (загрузка, извлечение, неожиданные) со сводкой."""
    total = report.total_sites
    sections = [
        _section("DOWNLOAD ERRORS", "Download", "No download errors recorded.", report.download_errors, total),
        _section("EXTRACTION ERRORS", "Extraction", "No extraction errors recorded.", report.extraction_errors, total),
        _section("UNEXPECTED ERRORS", "Unexpected", "No unexpected errors recorded.", report.unexpected_errors, total),
    ]
    template = _environment(template_dir).get_template("errors.txt.j2")
    content = template.render(report=report, sections=sections, timestamp=_timestamp())
    return _write(content, output_path)


def render_extraction_debug(
    report: RunReport,
    output_path: Union[Path, str],
    template_dir: Union[Path, str, None] = None,
) -> Optional[Path]:
    """Подробности ошибок извлечения (повторы, причина). Ничего не пишет, если ошибок нет."""
    if not report.extraction_errors:
        return None
    template = _environment(template_dir).get_template("extraction_debug.txt.j2")
    content = template.render(entries=report.extraction_errors, timestamp=_timestamp())
    return _write(content, output_path)


def render_analysis(
    report: RunReport,
    output_path: Union[Path, str],
    template_dir: Union[Path, str, None] = None,
) -> Path:
    """Анализ покрытия и заполненности данных."""
    template = _environment(template_dir).get_template("analysis.txt.j2")
    return _write(template.render(s=report.stats), output_path)


__all__ = ["render_error_report", "render_extraction_debug", "render_analysis", "TEMPLATE_DIR"]
