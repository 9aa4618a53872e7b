# === FILE: contact_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа ContactScout для командной строки.

Команды:
  run INPUT   Обработать сайты из файла (по одному на строку) и сохранить результаты
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда run опции:
  --output PATH           Итоговый JSON site_id -> данные (default: all_results.json)
  --error-report PATH     Отчёт об ошибках (default: error_report.log)
  --extraction-debug PATH Подробности ошибок извлечения (default: extraction_errors_debug.log)
  --analysis PATH         Анализ заполненности (default: crawling_analysis.txt)
  --report PATH           Сводка запуска в JSON
  --concurrency N         Число воркеров (override concurrency)
  --run-timeout SEC       Таймаут всего запуска (секунд)

Дополнительно:
  --version, -v       Показать версию ContactScout

Пример:
  contact-scout --log-level DEBUG run sites.txt --output all_results.json --concurrency 10
"""
import asyncio
import sys
from pathlib import Path
from typing import NoReturn, Optional, Sequence

import click

from contact_scout import __version__
from contact_scout.aggregator import RunReport
from contact_scout.config import ProcessorConfig, load_config
from contact_scout.engine import Engine
from contact_scout.inputs import read_sites
from contact_scout.logger import init_logging
from contact_scout.report.json_report import ResultSink, render_json
from contact_scout.report.text_report import (
    render_analysis,
    render_error_report,
    render_extraction_debug,
)

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str) -> NoReturn:
    click.secho(message, fg="red", err=True)
    sys.exit(1)


async def run_pipeline(
    cfg: ProcessorConfig, sites: Sequence[str], sink: Optional[ResultSink]
) -> RunReport:
    """Запускает Engine; вынесено на уровень модуля для подмены в тестах."""
    return await Engine(cfg).run(sites, sink)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="ContactScout, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML/JSON.",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (stdout, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд ContactScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = load_config(config_path)
    except (OSError, TypeError, ValueError) as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("run", context_settings=CONTEXT_SETTINGS)
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output", "-o", "output",
    default="all_results.json", show_default=True,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Итоговый JSON с данными по сайтам",
)
@click.option(
    "--error-report", "error_report",
    default="error_report.log", show_default=True,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Файл отчёта об ошибках",
)
@click.option(
    "--extraction-debug", "extraction_debug",
    default="extraction_errors_debug.log", show_default=True,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Подробности ошибок извлечения (пишется только при ошибках)",
)
@click.option(
    "--analysis", "analysis",
    default="crawling_analysis.txt", show_default=True,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Файл анализа заполненности",
)
@click.option(
    "--report", "report_path",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить сводку запуска в JSON",
)
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Число воркеров")
@click.option("--run-timeout", "run_timeout", type=float, default=None, help="Таймаут всего запуска (секунд)")
@click.pass_context
def run(ctx, input_file, output, error_report, extraction_debug, analysis, report_path, concurrency, run_timeout):
    """Обработать сайты из INPUT_FILE и сохранить результаты и отчёты."""
    cfg: ProcessorConfig = ctx.obj["config"]
    if concurrency is not None:
        cfg = cfg.model_copy(update={"concurrency": concurrency})

    try:
        sites = read_sites(input_file)
    except OSError as e:
        print_error(f"Не удалось прочитать входной файл: {e}")
    if not sites:
        click.echo(f"No sites to process. Please add URLs to {input_file}")
        return

    click.echo(f"Processing {len(sites)} sites with {cfg.concurrency} workers")
    sink = ResultSink(output)
    try:
        if run_timeout:
            report = asyncio.run(asyncio.wait_for(run_pipeline(cfg, sites, sink), timeout=run_timeout))
        else:
            report = asyncio.run(run_pipeline(cfg, sites, sink))
    except asyncio.TimeoutError:
        print_error(f"Обработка не завершена за {run_timeout} секунд")
    except Exception as e:
        print_error(f"Ошибка при обработке: {e}")

    try:
        click.echo(f"Results: {render_json(report, output)}")
        click.echo(f"Error report: {render_error_report(report, error_report)}")
        debug_path = render_extraction_debug(report, extraction_debug)
        if debug_path is not None:
            click.echo(f"Extraction errors: {debug_path}")
        click.echo(f"Analysis: {render_analysis(report, analysis)}")
        if report_path:
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(report.json(pretty=True), encoding="utf-8")
            click.echo(f"Run report: {report_path}")
    except OSError as e:
        print_error(f"Ошибка при сохранении отчётов: {e}")

    counts = report.counts()
    click.echo(
        f"Total: {counts['total']}, success: {counts['success']}, "
        f"download errors: {counts['download']}, extraction errors: {counts['extraction']}, "
        f"unexpected: {counts['unexpected']}"
    )


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON (ключ API скрыт)."""
    cfg: ProcessorConfig = ctx.obj["config"]
    if cfg.inference_api_key:
        cfg = cfg.model_copy(update={"inference_api_key": "***"})
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
