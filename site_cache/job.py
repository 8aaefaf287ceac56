# File: site_cache/job.py
"""site_cache.job: Загрузка одной страницы через браузер и сохранение в файл."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlsplit, urlunsplit

from site_cache.auth import AuthStep, apply_auth
from site_cache.config import SessionConfig
from site_cache.errors import ConfigurationError, SessionFault
from site_cache.filenames import build_filename_from_url
from site_cache.fsutils import write_file
from site_cache.links import rel_to_abs
from site_cache.runner import TaskRunner
from site_cache.session import EVALUATE, GOTO, Instruction

__all__ = ["SERIALIZE_DOCUMENT_JS", "Job", "PageSaver", "derive_base_url"]

SERIALIZE_DOCUMENT_JS = "() => new XMLSerializer().serializeToString(document)"


@dataclass(frozen=True, slots=True)
class Job:
    """Одна страница пакета: URL, базовый URL для ссылок, auth и каталог назначения."""

    url: str
    dest: Path
    base_url: Optional[str] = None
    auth: Optional[AuthStep] = None
    session: Optional[SessionConfig] = None


def derive_base_url(url: str) -> str:
    """``https://host:8080/a/b?c`` → ``https://host:8080``."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


class PageSaver:
    """Fetch-and-persist: navigate, serialize the DOM, absolutize links, write."""

    def __init__(self, runner: TaskRunner) -> None:
        self.runner = runner

    @staticmethod
    def page_instructions(url: str) -> list[Instruction]:
        return [Instruction(GOTO, url), Instruction(EVALUATE, SERIALIZE_DOCUMENT_JS)]

    async def get_html(self, url: str, session_config: Optional[SessionConfig] = None) -> str:
        """Returns the serialized DOM of *url* after the page has loaded."""
        if not url:
            raise ConfigurationError("get_html() `url` is required")
        data: Any = await self.runner.run_tasks(self.page_instructions(url), session_config)
        if not isinstance(data, str):
            raise SessionFault(f"Document serialization of {url} returned {type(data).__name__}")
        return data

    async def save_html(
        self,
        url: str,
        session_config: Optional[SessionConfig] = None,
        base_url: Optional[str] = None,
        dest: Union[str, Path, None] = None,
    ) -> Path:
        """Сохраняет страницу *url* в ``dest/<имя из URL>.html`` и возвращает путь."""
        if not url:
            raise ConfigurationError("save_html() `url` is required")
        if dest is None or not str(dest):
            raise ConfigurationError("save_html() `dest` is required")

        filename = build_filename_from_url(url)
        if not filename:
            raise ConfigurationError(f"save_html() cannot derive a file name from {url}")
        target = Path(dest) / filename
        if not base_url:
            base_url = derive_base_url(url)

        html = await self.get_html(url, session_config)
        return await write_file(target, rel_to_abs(html, base_url))

    async def run(self, job: Job, default_session: Optional[SessionConfig] = None) -> Path:
        """Выполняет auth (если есть), затем save_html."""
        session_config = job.session or default_session or SessionConfig()
        session_config = await apply_auth(job.auth, session_config, self.runner)
        return await self.save_html(job.url, session_config, job.base_url, job.dest)
