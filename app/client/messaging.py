"""Popup-to-opener handoff for the X authorization popup.

The popup posts exactly one `X_AUTH_SUCCESS` message; the opener owns a
`PopupMessageChannel` that accepts that one message and hands it to a single
consumer.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

X_AUTH_SUCCESS = "X_AUTH_SUCCESS"


class XAuthSuccessMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["X_AUTH_SUCCESS"] = X_AUTH_SUCCESS
    username: str
    profile_image_url: str | None = Field(default=None, alias="profileImageUrl")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MessageTarget(Protocol):
    """The opener window as seen from the popup (`window.opener`)."""

    def post_message(self, message: dict[str, Any], target_origin: str) -> None: ...


class PopupMessageChannel:
    def __init__(self, expected_origin: str) -> None:
        self.expected_origin = expected_origin
        self._message: XAuthSuccessMessage | None = None
        self._waiter: asyncio.Future[XAuthSuccessMessage] | None = None
        self._consumed = False

    @property
    def delivered(self) -> bool:
        return self._message is not None

    def deliver(self, data: Any, origin: str) -> bool:
        """Feed a raw `message` event. Returns True if it was accepted."""
        if self._message is not None:
            logger.debug("Ignoring message on a channel that already received one")
            return False
        if origin != self.expected_origin:
            logger.warning(f"Ignoring message from unexpected origin {origin!r}")
            return False
        if not isinstance(data, dict) or data.get("type") != X_AUTH_SUCCESS:
            return False

        try:
            message = XAuthSuccessMessage.model_validate(data)
        except PydanticValidationError:
            logger.warning("Ignoring malformed X_AUTH_SUCCESS message")
            return False

        self._message = message
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(message)
        return True

    async def receive(self, timeout: float | None = None) -> XAuthSuccessMessage:
        """Wait for the message. Only one call may consume it; timed-out calls do not count."""
        if self._consumed:
            msg = "PopupMessageChannel already has a consumer"
            raise RuntimeError(msg)
        self._consumed = True

        if self._message is not None:
            return self._message

        self._waiter = asyncio.get_running_loop().create_future()
        try:
            return await asyncio.wait_for(self._waiter, timeout)
        except (TimeoutError, asyncio.CancelledError):
            # Nobody is waiting any more; a later receive() may still pick up a late message
            self._waiter = None
            self._consumed = False
            raise
