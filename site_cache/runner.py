# === FILE: site_cache/runner.py ===
"""Task runner: drives one automation session through an instruction list.

Response events emitted by the session are pushed into an :class:`asyncio.Queue`
and consumed by a single task, which matches each event to the **first**
unresolved :class:`NavigationWatch` with the same URL. A navigation resolved
with status >= 400 fails the whole run once the session is closed.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Union
from urllib.parse import SplitResult, quote, unquote, urlsplit, urlunsplit

from site_cache.errors import HttpNavigationError, SessionFault, SiteCacheError
from site_cache.events import CacheObserver, LoggingObserver
from site_cache.logger import get_logger
from site_cache.session import GOTO, Instruction, ResponseEvent, SessionFactory, open_session

__all__ = ("NavigationWatch", "TaskRunner", "same_url")

log = get_logger("runner")


@dataclass(slots=True)
class NavigationWatch:
    """Pending ``goto`` awaiting its HTTP response."""

    url: str
    resolved: bool = False
    status: Optional[int] = None


_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
_PATH_SAFE = "/:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


def _host(parts: SplitResult) -> str:
    host = parts.hostname or ""
    try:
        host = host.encode("idna").decode("ascii")
    except UnicodeError:
        pass
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        host = f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        host = f"{userinfo}@{host}"
    return host


def _canonical(url: str) -> str:
    """URL in the form a browser reports it for a response.

    Fragment dropped, scheme and host lowercased, default port removed, path
    and query percent-encoded; an empty path becomes ``/``.
    """
    parts = urlsplit(url.strip())
    path = quote(unquote(parts.path), safe=_PATH_SAFE) or "/"
    query = quote(unquote(parts.query), safe=_QUERY_SAFE)
    return urlunsplit((parts.scheme.lower(), _host(parts), path, query, ""))


def same_url(a: str, b: str) -> bool:
    """True when *a* and *b* name the same resource as a browser reports it."""
    return a == b or _canonical(a) == _canonical(b)


@dataclass(slots=True)
class _RunState:
    watches: List[NavigationWatch]
    errors: List[HttpNavigationError] = field(default_factory=list)
    closing: bool = False


_STOP = object()


class TaskRunner:
    """Runs instruction sequences against sessions produced by *session_factory*."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        observer: Optional[CacheObserver] = None,
    ) -> None:
        self.session_factory = session_factory or open_session
        self.observer = observer or LoggingObserver()

    @staticmethod
    def build_watches(instructions: Iterable[Instruction]) -> List[NavigationWatch]:
        return [NavigationWatch(i.target) for i in instructions if i.verb == GOTO and i.target]

    def resolve(self, state: _RunState, event: ResponseEvent) -> Optional[NavigationWatch]:
        """Apply one response event to the watch list; returns the matched watch."""
        for watch in state.watches:
            if not watch.resolved and same_url(watch.url, event.url):
                break
        else:
            return None

        watch.resolved = True
        watch.status = event.status
        if event.status >= 400:
            state.errors.append(HttpNavigationError(event.url, event.status))
            self.observer.http_error(event.url, event.status)
        return watch

    async def _consume(self, queue: "asyncio.Queue[Any]", state: _RunState) -> None:
        while True:
            item = await queue.get()
            if item is _STOP:
                return
            self.resolve(state, item)

    async def run_tasks(
        self,
        instructions: Sequence[Union[Instruction, Sequence[Any]]],
        session_config: Any = None,
    ) -> Any:
        """Execute *instructions* in order and return the session's final value.

        Raises :class:`HttpNavigationError` if a tracked navigation failed,
        :class:`SessionFault` for any other session problem.
        """
        tasks = [Instruction.coerce(i) for i in instructions]
        self.observer.run_tasks_started(tasks)

        state = _RunState(self.build_watches(tasks))
        queue: asyncio.Queue[Any] = asyncio.Queue()

        def on_response(event: ResponseEvent) -> None:
            if state.closing:
                log.debug("Late response discarded: %s %s", event.status, event.url)
                return
            queue.put_nowait(event)

        try:
            session = await self.session_factory(session_config)
        except SiteCacheError:
            raise
        except Exception as exc:
            raise SessionFault(f"Could not open session: {exc}") from exc

        session.subscribe(on_response)
        consumer = asyncio.create_task(self._consume(queue, state))
        try:
            for task in tasks:
                await session.execute(task)
        except BaseException as exc:
            state.closing = True
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)
            try:
                await session.close()
            except Exception as close_exc:  # the original fault wins
                log.warning("Session close after failure raised: %s", close_exc)
            if isinstance(exc, Exception) and not isinstance(exc, SiteCacheError):
                raise SessionFault(f"{type(exc).__name__}: {exc}") from exc
            raise

        state.closing = True
        queue.put_nowait(_STOP)
        await consumer

        try:
            result = await session.close()
        except SiteCacheError:
            raise
        except Exception as exc:
            raise SessionFault(f"Session close failed: {exc}") from exc

        if state.errors:
            raise state.errors[0]
        return result
