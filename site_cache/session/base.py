# File: site_cache/session/base.py
"""
Data types and the abstract contract of an automation session.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Tuple, Union

__all__ = (
    "GOTO",
    "EVALUATE",
    "Instruction",
    "ResponseEvent",
    "ResponseHandler",
    "AutomationSession",
    "SessionFactory",
)

GOTO = "goto"
EVALUATE = "evaluate"


@dataclass(frozen=True, slots=True, init=False)
class Instruction:
    """One unit of work for a session: a verb plus positional arguments."""

    verb: str
    args: Tuple[Any, ...]

    def __init__(self, verb: str, *args: Any) -> None:
        if not verb:
            raise ValueError("instruction verb is required")
        object.__setattr__(self, "verb", verb)
        object.__setattr__(self, "args", tuple(args))

    @classmethod
    def coerce(cls, value: Union["Instruction", Sequence[Any]]) -> "Instruction":
        """Accepts an Instruction or a ``("goto", url)``-style sequence."""
        if isinstance(value, Instruction):
            return value
        if isinstance(value, (str, bytes)) or not value:
            raise ValueError(f"cannot build an instruction from {value!r}")
        verb, *args = value
        return cls(verb, *args)

    @property
    def target(self) -> Optional[str]:
        """URL of a ``goto`` instruction, ``None`` for other verbs."""
        if self.verb == GOTO and self.args:
            return str(self.args[0])
        return None

    def __repr__(self) -> str:
        shown = ", ".join(_short(a) for a in self.args)
        return f"<Instruction {self.verb}({shown})>"


def _short(value: Any, limit: int = 60) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


@dataclass(frozen=True, slots=True)
class ResponseEvent:
    """A network response observed by the session."""

    url: str
    status: int
    original_url: str = ""
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)


ResponseHandler = Callable[[ResponseEvent], None]


class AutomationSession(abc.ABC):
    """A live browser session.

    Subclasses push every response they see to the handlers registered with
    :meth:`subscribe`; :meth:`close` returns the value of the last executed
    instruction.
    """

    def __init__(self) -> None:
        self._handlers: list[ResponseHandler] = []
        self._last_result: Any = None

    def subscribe(self, handler: ResponseHandler) -> None:
        self._handlers.append(handler)

    def emit_response(self, event: ResponseEvent) -> None:
        for handler in list(self._handlers):
            handler(event)

    async def execute(self, instruction: Instruction) -> Any:
        self._last_result = await self._execute(instruction)
        return self._last_result

    async def close(self) -> Any:
        try:
            await self._close()
        finally:
            self._handlers.clear()
        return self._last_result

    @abc.abstractmethod
    async def _execute(self, instruction: Instruction) -> Any:
        """Perform *instruction* and return its value."""

    @abc.abstractmethod
    async def _close(self) -> None:
        """Release browser resources."""


SessionFactory = Callable[[Any], Awaitable[AutomationSession]]
