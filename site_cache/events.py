"""site_cache.events: Наблюдатели за ходом построения кэша.

Observers are passed explicitly to :class:`~site_cache.runner.TaskRunner`,
:class:`~site_cache.batch.BatchOrchestrator` and the engine facade; nothing is
broadcast globally.
"""
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from site_cache.logger import logger
from site_cache.session import Instruction

__all__ = ["CacheObserver", "LoggingObserver"]


class CacheObserver:
    """No-op base; override the notifications you care about."""

    def run_tasks_started(self, instructions: Sequence[Instruction]) -> None:
        pass

    def http_error(self, url: str, status: int) -> None:
        pass

    def batch_started(self, urls: Sequence[str]) -> None:
        pass

    def job_finished(self, url: str, path: Path) -> None:
        pass

    def sitemap_written(self, path: Path, count: int) -> None:
        pass


class LoggingObserver(CacheObserver):
    """Default observer: writes every notification to the project logger."""

    def run_tasks_started(self, instructions: Sequence[Instruction]) -> None:
        logger.debug("runTasks: %s", list(instructions))

    def http_error(self, url: str, status: int) -> None:
        logger.error("HTTP %d: %s", status, url)

    def batch_started(self, urls: Sequence[str]) -> None:
        logger.info("Старт построения кэша: %d URL", len(urls))

    def job_finished(self, url: str, path: Path) -> None:
        logger.info("Сохранено %s -> %s", url, path)

    def sitemap_written(self, path: Path, count: int) -> None:
        logger.info("Sitemap: %s (%d URL)", path, count)
