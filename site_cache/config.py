# === FILE: site_cache/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteCache.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from site_cache.auth import CredentialAuth, NoAuth, TokenAuth
from site_cache.errors import ConfigurationError

__all__ = [
    "SessionConfig",
    "SitemapOptions",
    "MatchOptions",
    "JobConfig",
    "BatchConfig",
    "AuthConfig",
    "load_config",
    "coerce_batch_config",
]

DEFAULT_SITEMAP_HOST = "http://localhost"

AuthConfig = Annotated[Union[NoAuth, CredentialAuth, TokenAuth], Field(discriminator="type")]


class SessionConfig(BaseModel):
    """Настройки одной сессии headless-браузера."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    browser: Literal["chromium", "firefox", "webkit"] = Field("chromium", description="Движок Playwright.")
    headless: bool = Field(True, description="Запуск без окна.")
    timeout: float = Field(30.0, gt=0, description="Таймаут навигации и действий (секунд).")
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"
    user_agent: Optional[str] = Field(None, min_length=1, description="Заголовок User-Agent.")
    viewport_width: int = Field(1280, ge=1)
    viewport_height: int = Field(800, ge=1)
    extra_headers: Dict[str, str] = Field(default_factory=dict, description="Доп. HTTP-заголовки.")
    storage_state: Optional[Path] = Field(None, description="Файл cookies/localStorage Playwright.")
    persist_storage: bool = Field(False, description="Сохранять storage_state при закрытии.")
    ignore_https_errors: bool = False


class SitemapOptions(BaseModel):
    """Параметры генерации sitemap.xml."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = Field(DEFAULT_SITEMAP_HOST, min_length=1, description="Хост для <loc>.")
    enabled: bool = True
    pattern: str = Field("**/*.html", min_length=1)
    filename: str = Field("sitemap.xml", min_length=1)

    @field_validator("base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/") or v
        return v


class MatchOptions(BaseModel):
    """Параметры поиска файлов для sitemap."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    root: Path = Path(".")
    include_hidden: bool = False


class JobConfig(BaseModel):
    """Одна страница из списка `urls`."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(..., min_length=1)
    base_url: Optional[str] = None
    auth: Optional[AuthConfig] = None
    session: Optional[SessionConfig] = None


class BatchConfig(BaseModel):
    """Конфигурация одного построения кэша."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    dest: Path = Field(..., description="Каталог для HTML-файлов.")
    urls: List[JobConfig] = Field(default_factory=list)
    concurrency: int = Field(1, ge=1, description="Макс. число одновременных задач.")
    clean_dest: bool = Field(False, description="Очистить каталог перед запуском.")
    sitemap: SitemapOptions = Field(default_factory=SitemapOptions)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @field_validator("dest", mode="before")
    def _dest_not_empty(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("dest must be a non-empty path")
        return v

    @field_validator("urls", mode="before")
    def _wrap_plain_urls(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"url": item} if isinstance(item, str) else item for item in v]
        return v


def coerce_batch_config(data: Union[BatchConfig, Dict[str, Any], None]) -> BatchConfig:
    """Принимает BatchConfig или mapping; ошибки схемы превращает в ConfigurationError."""
    if isinstance(data, BatchConfig):
        return data
    if data is None:
        raise ConfigurationError("build_cache() `dest` is required")
    try:
        return BatchConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid cache configuration: {exc}") from exc


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


def load_config(path: Union[str, Path, None]) -> BatchConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект BatchConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
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

    return coerce_batch_config(data)
