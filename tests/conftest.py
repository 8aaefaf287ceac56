# File: tests/conftest.py
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from site_cache.errors import SessionFault
from site_cache.events import CacheObserver
from site_cache.session import AutomationSession, Instruction, ResponseEvent

DEFAULT_HTML = '<html><head><link href="/style.css" rel="stylesheet"/></head><body><a href="about">About</a></body></html>'


class FakeSite:
    """
    In-memory stand-in for a browser + web site.

    * ``pages``     – URL → markup returned by ``evaluate``;
    * ``statuses``  – URL → list of statuses, one per navigation (default 200);
    * ``reported``  – URL → the form the browser reports for it;
    * ``assets``    – extra response events emitted on every navigation;
    * ``close_events`` – events emitted while the session is closing.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.pages: Dict[str, str] = {}
        self.statuses: Dict[str, List[int]] = {}
        self.reported: Dict[str, str] = {}
        self.assets: List[ResponseEvent] = []
        self.close_events: List[ResponseEvent] = []
        self.delay = delay
        self.opened: List[Any] = []
        self.navigated: List[str] = []
        self.executed: List[Instruction] = []
        self.sessions: List["FakeSession"] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_open = False

    def next_status(self, url: str) -> int:
        queue = self.statuses.get(url)
        if queue:
            return queue.pop(0)
        return 200

    async def open(self, config: Any = None) -> "FakeSession":
        if self.fail_open:
            raise RuntimeError("browser binary missing")
        self.opened.append(config)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        session = FakeSession(self, config)
        self.sessions.append(session)
        return session


class FakeSession(AutomationSession):
    def __init__(self, site: FakeSite, config: Any) -> None:
        super().__init__()
        self.site = site
        self.config = config
        self.current: Optional[str] = None
        self.closed = False

    async def _execute(self, instruction: Instruction) -> Any:
        self.site.executed.append(instruction)
        verb, args = instruction.verb, instruction.args
        if verb == "goto":
            url = args[0]
            self.site.navigated.append(url)
            if self.site.delay:
                await asyncio.sleep(self.site.delay)
            for asset in self.site.assets:
                self.emit_response(asset)
            self.emit_response(
                ResponseEvent(url=self.site.reported.get(url, url), status=self.site.next_status(url), original_url=url)
            )
            self.current = url
            return None
        if verb == "evaluate":
            script = args[0]
            if callable(script):
                return script(*args[1:])
            return self.site.pages.get(self.current or "", DEFAULT_HTML)
        if verb == "emit":
            self.emit_response(args[0])
            return None
        if verb == "boom":
            raise RuntimeError("renderer crashed")
        if verb in ("fill", "click", "wait"):
            return None
        raise SessionFault(f"Unsupported instruction verb: {verb!r}")

    async def _close(self) -> None:
        for event in self.site.close_events:
            self.emit_response(event)
        self.closed = True
        self.site.in_flight -= 1


class RecordingObserver(CacheObserver):
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def run_tasks_started(self, instructions):
        self.events.append(("run_tasks_started", list(instructions)))

    def http_error(self, url, status):
        self.events.append(("http_error", url, status))

    def batch_started(self, urls):
        self.events.append(("batch_started", list(urls)))

    def job_finished(self, url, path):
        self.events.append(("job_finished", url, path))

    def sitemap_written(self, path, count):
        self.events.append(("sitemap_written", path, count))

    def named(self, name: str) -> List[tuple]:
        return [e for e in self.events if e[0] == name]


@pytest.fixture()
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture()
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture()
def site_factory():
    return FakeSite
