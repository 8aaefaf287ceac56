# site_cache/session/playwright_session.py
"""
Playwright implementation of :class:`AutomationSession`.

Supported verbs:

* ``goto URL``            – navigate the page (``wait_until`` from config);
* ``evaluate SCRIPT *ARGS`` – run a JS function/expression, returns its value;
* ``wait MS|SELECTOR``    – sleep N milliseconds or wait for a selector;
* ``click SELECTOR``, ``fill SELECTOR VALUE``, ``press SELECTOR KEY``.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright
from playwright.async_api import Response, async_playwright

from site_cache.errors import SessionFault
from site_cache.logger import get_logger
from site_cache.session.base import AutomationSession, Instruction, ResponseEvent

log = get_logger("session")


class PlaywrightSession(AutomationSession):
    """One browser + context + page, opened by :meth:`open`."""

    def __init__(self, config) -> None:
        super().__init__()
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @classmethod
    async def open(cls, config=None) -> "PlaywrightSession":
        if config is None:
            from site_cache.config import SessionConfig

            config = SessionConfig()
        session = cls(config)
        try:
            await session._start()
        except PlaywrightError as exc:
            await session._close()
            raise SessionFault(f"Не удалось запустить браузер {config.browser}: {exc}") from exc
        return session

    async def _start(self) -> None:
        cfg = self.config
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, cfg.browser)
        self._browser = await launcher.launch(headless=cfg.headless)

        context_args: dict[str, Any] = {
            "viewport": {"width": cfg.viewport_width, "height": cfg.viewport_height},
            "ignore_https_errors": cfg.ignore_https_errors,
        }
        if cfg.user_agent:
            context_args["user_agent"] = cfg.user_agent
        if cfg.extra_headers:
            context_args["extra_http_headers"] = dict(cfg.extra_headers)
        if cfg.storage_state and Path(cfg.storage_state).is_file():
            context_args["storage_state"] = str(cfg.storage_state)

        self._context = await self._browser.new_context(**context_args)
        self._context.set_default_timeout(cfg.timeout * 1000)
        self.page = await self._context.new_page()
        self.page.on("response", self._on_response)
        log.debug("Session opened: %s headless=%s", cfg.browser, cfg.headless)

    def _on_response(self, response: Response) -> None:
        request = response.request
        origin = request.redirected_from.url if request.redirected_from else request.url
        self.emit_response(
            ResponseEvent(
                url=response.url,
                status=response.status,
                original_url=origin,
                method=request.method,
                headers=dict(response.headers),
            )
        )

    async def _execute(self, instruction: Instruction) -> Any:
        if self.page is None:
            raise SessionFault("Session is not open")
        page = self.page
        verb, args = instruction.verb, instruction.args
        try:
            if verb == "goto":
                await page.goto(args[0], wait_until=self.config.wait_until)
                return None
            if verb == "evaluate":
                script, *rest = args
                if not rest:
                    return await page.evaluate(script)
                return await page.evaluate(script, rest[0] if len(rest) == 1 else list(rest))
            if verb == "wait":
                target = args[0]
                if isinstance(target, (int, float)):
                    await page.wait_for_timeout(target)
                else:
                    await page.wait_for_selector(target)
                return None
            if verb == "click":
                await page.click(args[0])
                return None
            if verb == "fill":
                await page.fill(args[0], args[1])
                return None
            if verb == "press":
                await page.press(args[0], args[1])
                return None
        except PlaywrightError as exc:
            raise SessionFault(f"{verb} failed: {exc}") from exc
        except IndexError as exc:
            raise SessionFault(f"{verb}: missing arguments {args!r}") from exc
        raise SessionFault(f"Unsupported instruction verb: {verb!r}")

    async def _close(self) -> None:
        try:
            if self._context is not None:
                if self.config.persist_storage and self.config.storage_state:
                    path = Path(self.config.storage_state)
                    path.parent.mkdir(parents=True, exist_ok=True)
                    await self._context.storage_state(path=str(path))
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        except PlaywrightError as exc:
            raise SessionFault(f"Ошибка при закрытии браузера: {exc}") from exc
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
            self._context = self._browser = self._playwright = None
            self.page = None
