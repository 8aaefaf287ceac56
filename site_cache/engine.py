# File: site_cache/engine.py
"""site_cache.engine: Фасад SiteCache для CLI и тестов."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from site_cache.batch import BatchOrchestrator, BatchResult
from site_cache.config import BatchConfig, MatchOptions, SessionConfig, SitemapOptions, coerce_batch_config, load_config
from site_cache.events import CacheObserver, LoggingObserver
from site_cache.filenames import build_filename_from_url
from site_cache.fsutils import clean_directory
from site_cache.job import PageSaver
from site_cache.logger import logger
from site_cache.runner import TaskRunner
from site_cache.session import Instruction, SessionFactory
from site_cache import sitemap

__all__ = ["SiteCache", "build_cache"]


class SiteCache:
    """Единая точка входа: построение кэша, сохранение страниц, sitemap."""

    @staticmethod
    def load_config(path: Optional[Union[str, Path]]) -> BatchConfig:
        """Загружает конфиг из YAML/JSON."""
        return load_config(path)

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        observer: Optional[CacheObserver] = None,
    ) -> None:
        """*session_factory* defaults to Playwright; *observer* to the logging one."""
        self.observer = observer or LoggingObserver()
        self.runner = TaskRunner(session_factory, self.observer)
        self.saver = PageSaver(self.runner)
        self.orchestrator = BatchOrchestrator(self.saver, self.observer)

    async def build_cache(self, config: Union[BatchConfig, Dict[str, Any], None]) -> BatchResult:
        """Сохраняет все страницы из *config* и пишет sitemap."""
        cfg = coerce_batch_config(config)
        logger.info("Building cache in %s (%d URL, concurrency=%d)", cfg.dest, len(cfg.urls), cfg.concurrency)
        try:
            result = await self.orchestrator.run(cfg)
        except Exception as exc:
            logger.error("Cache build failed: %s", exc)
            raise
        logger.info("Cache built: %d files", len(result.files))
        return result

    async def run_tasks(self, instructions: Sequence[Any], session_config: Optional[SessionConfig] = None) -> Any:
        return await self.runner.run_tasks([Instruction.coerce(i) for i in instructions], session_config)

    async def get_html(self, url: str, session_config: Optional[SessionConfig] = None) -> str:
        return await self.saver.get_html(url, session_config)

    async def save_html(
        self,
        url: str,
        session_config: Optional[SessionConfig] = None,
        base_url: Optional[str] = None,
        dest: Union[str, Path, None] = None,
    ) -> Path:
        path = await self.saver.save_html(url, session_config, base_url, dest)
        self.observer.job_finished(url, path)
        return path

    async def build_sitemap(
        self,
        pattern: str,
        match_options: Optional[MatchOptions] = None,
        sitemap_options: Optional[SitemapOptions] = None,
    ) -> str:
        return await sitemap.build_sitemap(pattern, match_options, sitemap_options)

    async def save_sitemap(
        self,
        pattern: str,
        match_options: Optional[MatchOptions] = None,
        sitemap_options: Optional[SitemapOptions] = None,
        dest_file: Union[str, Path, None] = None,
    ) -> Path:
        return await sitemap.save_sitemap(pattern, match_options, sitemap_options, dest_file)

    async def clean_directory(self, directory: Union[str, Path]) -> int:
        return await clean_directory(directory)

    @staticmethod
    def build_filename_from_url(url: str, extension: Optional[str] = None) -> str:
        return build_filename_from_url(url, extension)


async def build_cache(config: Union[BatchConfig, Dict[str, Any]]) -> BatchResult:
    """Модульная обёртка для CLI: SiteCache с настройками по умолчанию."""
    return await SiteCache().build_cache(config)
