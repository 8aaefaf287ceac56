# File: site_cache/auth.py
"""Auth strategies executed before a page is fetched.

Every strategy exposes one coroutine, ``authenticate(session_config, runner)``,
and returns the :class:`~site_cache.config.SessionConfig` the fetch must use.
Strategies are pydantic models so they can be declared in the YAML config
under ``urls[].auth`` with a ``type`` discriminator.
"""
from __future__ import annotations

import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Literal, Optional, Protocol, Union

from aiohttp import ClientError, ClientSession, ClientTimeout
from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from site_cache.errors import AuthenticationError
from site_cache.logger import get_logger
from site_cache.session import Instruction

if TYPE_CHECKING:  # pragma: no cover
    from site_cache.config import SessionConfig
    from site_cache.runner import TaskRunner

__all__ = ["Authenticator", "NoAuth", "CredentialAuth", "TokenAuth", "apply_auth"]

log = get_logger("auth")

STATE_DIR = Path(".site_cache")


class Authenticator(Protocol):
    async def authenticate(self, session_config: "SessionConfig", runner: "TaskRunner") -> "SessionConfig":
        ...


class NoAuth(BaseModel):
    """Ничего не делает; удобно для явного отключения auth в YAML."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["none"] = "none"

    async def authenticate(self, session_config: "SessionConfig", runner: "TaskRunner") -> "SessionConfig":
        return session_config


class CredentialAuth(BaseModel):
    """Logs in through the site's HTML form and keeps the browser storage state.

    The login flow runs in its own session with ``persist_storage`` enabled, so
    cookies end up in the storage state file; the returned config points the
    fetch session at the same file. An explicit :attr:`storage_state` is shared
    by every job using this model, so set a distinct one per job when they run
    concurrently.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["credentials"] = "credentials"
    login_url: str = Field(..., min_length=1)
    username: str
    password: SecretStr
    username_selector: str = 'input[name="username"]'
    password_selector: str = 'input[name="password"]'
    submit_selector: str = 'button[type="submit"]'
    success_selector: Optional[str] = Field(None, description="Элемент, появляющийся после входа.")
    storage_state: Optional[Path] = Field(
        None, description="Файл storage state; по умолчанию отдельный файл на каждый вход."
    )

    def login_instructions(self) -> list[Instruction]:
        instructions = [
            Instruction("goto", self.login_url),
            Instruction("fill", self.username_selector, self.username),
            Instruction("fill", self.password_selector, self.password.get_secret_value()),
            Instruction("click", self.submit_selector),
        ]
        if self.success_selector:
            instructions.append(Instruction("wait", self.success_selector))
        return instructions

    def state_path(self) -> Path:
        """Where this login keeps its cookies.

        Without an explicit :attr:`storage_state` every call gets a fresh file, so
        concurrent jobs never write the same one.
        """
        if self.storage_state is not None:
            return self.storage_state
        return STATE_DIR / f"auth-{uuid.uuid4().hex}.json"

    async def authenticate(self, session_config: "SessionConfig", runner: "TaskRunner") -> "SessionConfig":
        log.info("Вход на %s как %s", self.login_url, self.username)
        state = self.state_path()
        login_config = session_config.model_copy(update={"storage_state": state, "persist_storage": True})
        await runner.run_tasks(self.login_instructions(), login_config)
        return session_config.model_copy(update={"storage_state": state, "persist_storage": False})


class TokenAuth(BaseModel):
    """Adds an ``Authorization``-style header to every request of the fetch session.

    The token is either given inline or obtained by POSTing ``request_data`` as
    JSON to ``token_url`` and reading ``token_field`` from the JSON answer.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["token"] = "token"
    token: Optional[SecretStr] = None
    token_url: Optional[str] = None
    token_field: str = "access_token"
    request_data: Dict[str, Any] = Field(default_factory=dict)
    header: str = "Authorization"
    scheme: str = "Bearer"
    timeout: float = Field(10.0, gt=0)

    @model_validator(mode="after")
    def _token_or_url(self) -> "TokenAuth":
        if self.token is None and not self.token_url:
            raise ValueError("token auth needs either `token` or `token_url`")
        return self

    async def fetch_token(self) -> str:
        """Запрашивает токен у `token_url`."""
        if not self.token_url:
            raise AuthenticationError("token auth has no `token_url` to request a token from")
        try:
            async with ClientSession(timeout=ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.token_url, json=self.request_data) as resp:
                    if resp.status >= 400:
                        raise AuthenticationError(f"Token endpoint {self.token_url} answered HTTP {resp.status}")
                    payload = await resp.json(content_type=None)
        except (ClientError, TimeoutError) as exc:
            raise AuthenticationError(f"Token request to {self.token_url} failed: {exc}") from exc
        except ValueError as exc:
            raise AuthenticationError(f"Token endpoint {self.token_url} returned invalid JSON") from exc

        token = payload.get(self.token_field) if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthenticationError(f"Field '{self.token_field}' missing in token response")
        return token

    async def authenticate(self, session_config: "SessionConfig", runner: "TaskRunner") -> "SessionConfig":
        if self.token is not None:
            token = self.token.get_secret_value()
        else:
            token = await self.fetch_token()
        value = f"{self.scheme} {token}" if self.scheme else token
        headers = {**session_config.extra_headers, self.header: value}
        log.debug("Token header %s set for session", self.header)
        return session_config.model_copy(update={"extra_headers": headers})


AuthStep = Union[Authenticator, Callable[[], Awaitable[Any]]]


async def apply_auth(auth: Optional[AuthStep], session_config: "SessionConfig", runner: "TaskRunner") -> "SessionConfig":
    """Runs *auth* and returns the session config for the fetch.

    Besides :class:`Authenticator` objects a bare coroutine function is accepted;
    it is awaited and the session config is used unchanged.
    """
    if auth is None:
        return session_config
    if hasattr(auth, "authenticate"):
        return await auth.authenticate(session_config, runner)
    await auth()
    return session_config
