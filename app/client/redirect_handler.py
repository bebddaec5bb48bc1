"""Handling of the browser redirect back from X's consent screen."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import parse_qs, urlsplit

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from app.client.messaging import MessageTarget, XAuthSuccessMessage
from app.client.session import AppSession
from app.core.enums import RedirectStatus
from app.schemas.auth import CallbackResponse

DASHBOARD_PATH = "/dashboard"
HOME_PATH = "/"


class BrowserWindow(Protocol):
    url: str
    origin: str
    opener: MessageTarget | None

    def navigate(self, path: str) -> None: ...

    def close(self) -> None: ...

    def set_timeout(self, delay: float, callback: Callable[[], None]) -> None: ...


class CallbackExchangeError(Exception):
    pass


class CallbackExchanger(Protocol):
    async def exchange(self, *, code: str, state: str) -> CallbackResponse: ...


class CallbackExchangeClient:
    """Calls the backend access-token endpoint."""

    path = "/api/x/access-token"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    async def exchange(self, *, code: str, state: str) -> CallbackResponse:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.post(self.path, json={"code": code, "state": state})
        except httpx.HTTPError as e:
            raise CallbackExchangeError("Could not reach the server, please try again") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            raise CallbackExchangeError(message or f"Authentication failed ({resp.status_code})")

        try:
            return CallbackResponse.model_validate(body)
        except PydanticValidationError as e:
            raise CallbackExchangeError("Unexpected response from the server") from e


def parse_callback_params(url: str) -> dict[str, str]:
    """Query parameters, falling back to the fragment for values the query lacks."""
    parts = urlsplit(url)
    params: dict[str, str] = {}
    for source in (parts.fragment, parts.query):
        for key, values in parse_qs(source).items():
            params[key] = values[0]
    return params


@dataclass
class RedirectView:
    status: RedirectStatus = RedirectStatus.PROCESSING
    message: str | None = None
    username: str | None = None


class XCallbackHandler:
    success_close_delay = 2.0
    success_navigate_delay = 1.5
    error_delay = 3.0

    def __init__(
        self,
        window: BrowserWindow,
        exchanger: CallbackExchanger,
        session: AppSession | None = None,
    ) -> None:
        self.window = window
        self.exchanger = exchanger
        self.session = session
        self.view = RedirectView()

    @property
    def is_popup(self) -> bool:
        return self.window.opener is not None

    async def run(self) -> RedirectView:
        params = parse_callback_params(self.window.url)

        if params.get("error"):
            logger.warning(f"X returned an error: {params['error']}")
            return self._fail(params.get("error_description") or "Authentication failed")

        code, state = params.get("code"), params.get("state")
        if not code or not state:
            return self._fail("Missing authentication parameters")

        try:
            result = await self.exchanger.exchange(code=code, state=state)
        except CallbackExchangeError as e:
            return self._fail(str(e))
        except Exception as e:
            logger.exception("Unexpected error while completing X authorization")
            return self._fail(str(e) or "Authentication failed")

        return self._succeed(result)

    def _succeed(self, result: CallbackResponse) -> RedirectView:
        self.view = RedirectView(status=RedirectStatus.SUCCESS, username=result.username)

        if self.window.opener is not None:
            message = XAuthSuccessMessage(
                username=result.username, profile_image_url=result.profile_image_url
            )
            self.window.opener.post_message(message.to_payload(), self.window.origin)
            self.window.set_timeout(self.success_close_delay, self.window.close)
            return self.view

        if self.session is not None:
            self.session.complete_x_link(result.username, result.profile_image_url)
        self.window.set_timeout(
            self.success_navigate_delay, lambda: self.window.navigate(DASHBOARD_PATH)
        )
        return self.view

    def _fail(self, message: str) -> RedirectView:
        self.view = RedirectView(status=RedirectStatus.ERROR, message=message)
        if self.session is not None:
            self.session.fail_x_link()

        if self.is_popup:
            self.window.set_timeout(self.error_delay, self.window.close)
        else:
            signed_in = self.session is None or self.session.is_authenticated
            target = DASHBOARD_PATH if signed_in else HOME_PATH
            self.window.set_timeout(self.error_delay, lambda: self.window.navigate(target))
        return self.view
