"""site_cache.session: Абстракция сессии headless-браузера."""

from .base import (
    EVALUATE,
    GOTO,
    AutomationSession,
    Instruction,
    ResponseEvent,
    ResponseHandler,
    SessionFactory,
)

__all__ = [
    "GOTO",
    "EVALUATE",
    "Instruction",
    "ResponseEvent",
    "ResponseHandler",
    "AutomationSession",
    "SessionFactory",
    "open_session",
]


async def open_session(config=None) -> AutomationSession:
    """Default factory: opens a Playwright-backed session."""
    from .playwright_session import PlaywrightSession

    return await PlaywrightSession.open(config)
