# File: site_cache/batch.py
"""site_cache.batch: Пакетное построение кэша с ограничением параллелизма.

Jobs are started in list order, at most ``concurrency`` at a time. The first
failing job aborts the batch: nothing else is started and its exception is
raised. Jobs already running are left to finish; their outcome is discarded.
The sitemap is written only when every job succeeded.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from site_cache.config import BatchConfig, MatchOptions, SessionConfig
from site_cache.events import CacheObserver, LoggingObserver
from site_cache.fsutils import clean_directory, make_dirs, write_file
from site_cache.job import Job, PageSaver
from site_cache.logger import get_logger
from site_cache.sitemap import collect_entries, serialize_sitemap

__all__ = ["BatchResult", "BatchOrchestrator", "jobs_from_config", "run_bounded"]

log = get_logger("batch")

JobRunner = Callable[[Job], Awaitable[Path]]


@dataclass(slots=True)
class BatchResult:
    """Итог пакета: сохранённые файлы (в порядке списка) и путь к sitemap."""

    files: List[Path] = field(default_factory=list)
    sitemap: Optional[Path] = None


def jobs_from_config(config: BatchConfig) -> List[Job]:
    return [
        Job(url=item.url, dest=config.dest, base_url=item.base_url, auth=item.auth, session=item.session)
        for item in config.urls
    ]


# Tasks left running after an abort; kept referenced until they finish.
_stragglers: Set["asyncio.Task[Path]"] = set()


def _discard(task: "asyncio.Task[Path]") -> None:
    _stragglers.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.debug("Discarded failure of in-flight job after abort: %s", exc)


async def run_bounded(jobs: Sequence[Job], runner: JobRunner, concurrency: int) -> List[Path]:
    """Runs *jobs* with at most *concurrency* in flight; fails fast on the first error."""
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    results: List[Optional[Path]] = [None] * len(jobs)
    pending: dict["asyncio.Task[Path]", int] = {}
    failure: Optional[BaseException] = None

    async def wait_some() -> Optional[BaseException]:
        done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        first_error: Optional[tuple[int, BaseException]] = None
        for task in done:
            index = pending.pop(task)
            exc = task.exception()
            if exc is None:
                results[index] = task.result()
            elif first_error is None or index < first_error[0]:
                first_error = (index, exc)
        return first_error[1] if first_error else None

    for index, job in enumerate(jobs):
        while len(pending) >= concurrency and failure is None:
            failure = await wait_some()
        if failure is not None:
            break
        pending[asyncio.create_task(runner(job), name=f"job:{job.url}")] = index

    while pending and failure is None:
        failure = await wait_some()

    if failure is not None:
        for task in pending:
            _stragglers.add(task)
            task.add_done_callback(_discard)
        raise failure
    return [path for path in results if path is not None]


class BatchOrchestrator:
    """Clean → mkdir → jobs → sitemap."""

    def __init__(self, saver: PageSaver, observer: Optional[CacheObserver] = None) -> None:
        self.saver = saver
        self.observer = observer or LoggingObserver()

    async def run_job(self, job: Job, default_session: Optional[SessionConfig] = None) -> Path:
        path = await self.saver.run(job, default_session)
        self.observer.job_finished(job.url, path)
        return path

    async def write_sitemap(self, config: BatchConfig) -> Path:
        options = config.sitemap
        entries = await collect_entries(options.pattern, MatchOptions(root=config.dest))
        path = await write_file(config.dest / options.filename, serialize_sitemap(options.base_url, entries))
        self.observer.sitemap_written(path, len(entries))
        return path

    async def run(self, config: BatchConfig) -> BatchResult:
        if config.clean_dest:
            await clean_directory(config.dest)
        await make_dirs(config.dest)

        jobs = jobs_from_config(config)
        self.observer.batch_started([job.url for job in jobs])

        async def runner(job: Job) -> Path:
            return await self.run_job(job, config.session)

        result = BatchResult()
        result.files = await run_bounded(jobs, runner, config.concurrency)

        if config.sitemap.enabled:
            result.sitemap = await self.write_sitemap(config)
        return result
