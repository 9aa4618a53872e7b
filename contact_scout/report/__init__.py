# File: contact_scout/report/__init__.py
"""contact_scout.report: Запись результатов (JSON) и текстовых отчётов, используемых CLI и тестами."""

from contact_scout.report.json_report import ResultSink, render_json
from contact_scout.report.text_report import (
    render_analysis,
    render_error_report,
    render_extraction_debug,
)

__all__ = [
    "ResultSink",
    "render_json",
    "render_error_report",
    "render_extraction_debug",
    "render_analysis",
]
