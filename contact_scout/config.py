# === FILE: contact_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации ContactScout.
Используется Pydantic для описания схемы и проверки данных.

Все параметры, которые влияют на алгоритмы (таймауты, порог SPA, размер пакета,
задержка сброса, число повторов и размер пула), настраиваются здесь, а не
зашиты в код.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)
API_KEY_ENV = "GEMINI_API_KEY"


class ProcessorConfig(BaseModel):
    """Конфигурация одного запуска обработки сайтов."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    # acquisition
    request_timeout: float = Field(5.0, gt=0, description="Таймаут прямого запроса (секунд).")
    proxy_timeout: float = Field(30.0, gt=0, description="Таймаут запроса через удалённый прокси.")
    render_timeout: float = Field(30.0, gt=0, description="Таймаут навигации headless-браузера.")
    contact_render_timeout: float = Field(
        15.0, gt=0, description="Таймаут навигации для контактных страниц в браузере."
    )
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")
    proxy_base_url: str = Field("https://r.jina.ai/", description="Префикс удалённого прокси-ридера.")

    # SPA detection / rendering
    spa_threshold_bytes: int = Field(1500, ge=0, description="Порог размера для SPA (байт).")
    stability_settle_ms: int = Field(1000, ge=0)
    stability_interval_ms: int = Field(500, gt=0)
    stability_max_wait_ms: int = Field(5000, ge=0)
    stability_tolerance: int = Field(50, ge=0, description="Допустимое изменение длины DOM.")
    stability_required_samples: int = Field(3, ge=1)

    # contact pages
    contact_keywords: Tuple[str, ...] = Field(
        ("contact", "imprint", "impressum", "about"),
        description="Ключевые слова для поиска контактных страниц.",
    )

    # extraction batching
    batch_size: int = Field(20, ge=1, description="Размер пакета для сервиса извлечения.")
    batch_flush_delay: float = Field(1.0, ge=0, description="Задержка сброса неполного пакета (с).")
    max_retries: int = Field(2, ge=0, description="Число повторов при временных ошибках.")
    retry_backoff: float = Field(1.0, ge=0, description="База экспоненциальной задержки (с).")

    # inference service
    inference_endpoint: str = Field(
        "https://generativelanguage.googleapis.com/v1beta/models",
        description="Базовый URL сервиса извлечения.",
    )
    inference_model: str = Field("gemini-2.0-flash-lite", min_length=1)
    inference_api_key: Optional[str] = Field(None, description=f"Ключ API (или ${API_KEY_ENV}).")
    inference_timeout: float = Field(120.0, gt=0)
    inference_temperature: float = Field(1.0, ge=0)
    inference_max_output_tokens: int = Field(8192, ge=1)

    # worker pool
    concurrency: int = Field(30, ge=1, description="Число параллельных обработчиков.")

    @field_validator("proxy_base_url", mode="before")
    def _ensure_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.endswith("/"):
            return v + "/"
        return v

    @field_validator("contact_keywords", mode="before")
    def _lower_keywords(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(str(k).lower() for k in v)
        return v

    @model_validator(mode="before")
    @classmethod
    def _api_key_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("inference_api_key"):
            env_key = os.environ.get(API_KEY_ENV)
            if env_key:
                data = {**data, "inference_api_key": env_key}
        return data

    @model_validator(mode="after")
    def _check_stability_window(self) -> ProcessorConfig:
        if self.stability_max_wait_ms and self.stability_interval_ms > self.stability_max_wait_ms:
            raise ValueError("stability_interval_ms must not exceed stability_max_wait_ms")
        return self


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ProcessorConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ProcessorConfig.

    Без явного пути используется configs/default.yaml, а если его нет -
    значения по умолчанию. Явно указанный, но отсутствующий файл даёт
    FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ProcessorConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    # ValidationError propagates to the caller as is
    return ProcessorConfig(**data)


__all__ = ["ProcessorConfig", "load_config", "DEFAULT_USER_AGENT", "API_KEY_ENV"]
