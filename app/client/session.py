from __future__ import annotations

from typing import Protocol

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.client.messaging import XAuthSuccessMessage
from app.core.enums import SessionStatus


class SessionStorage(Protocol):
    """Key/value persistence for the session (`localStorage` in the browser)."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SessionUser(BaseModel):
    id: str
    email: str
    name: str
    x_linked: bool = False
    x_username: str | None = None
    x_profile_image_url: str | None = None


class AppSession:
    """Front-end authentication state, passed explicitly to whatever needs it.

    Lifecycle: INITIALIZING until `init()` reads the persisted user, then
    AUTHENTICATED or UNAUTHENTICATED; `login`, `logout` and the X link calls
    move between them.
    """

    storage_key = "user"

    def __init__(self, storage: SessionStorage | None = None) -> None:
        self.storage = storage or MemoryStorage()
        self.status = SessionStatus.INITIALIZING
        self.user: SessionUser | None = None
        self.is_linking_x = False

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED and self.user is not None

    def init(self) -> None:
        raw = self.storage.get_item(self.storage_key)
        if raw:
            try:
                self.user = SessionUser.model_validate_json(raw)
            except PydanticValidationError:
                logger.warning("Discarding unreadable persisted session")
                self.storage.remove_item(self.storage_key)
                self.user = None

        self.status = SessionStatus.AUTHENTICATED if self.user else SessionStatus.UNAUTHENTICATED

    def login(self, user: SessionUser) -> None:
        self.user = user
        self.status = SessionStatus.AUTHENTICATED
        self._persist()

    def logout(self) -> None:
        self.user = None
        self.is_linking_x = False
        self.status = SessionStatus.UNAUTHENTICATED
        self.storage.remove_item(self.storage_key)

    def begin_x_link(self) -> None:
        self.is_linking_x = True

    def fail_x_link(self) -> None:
        self.is_linking_x = False

    def complete_x_link(self, username: str, profile_image_url: str | None = None) -> None:
        self.is_linking_x = False
        if not self.is_authenticated or self.user is None:
            logger.warning(f"X account @{username} linked without an authenticated session")
            return

        self.user = self.user.model_copy(
            update={
                "x_linked": True,
                "x_username": username,
                "x_profile_image_url": profile_image_url,
            }
        )
        self._persist()

    def apply_message(self, message: XAuthSuccessMessage) -> None:
        self.complete_x_link(message.username, message.profile_image_url)

    def _persist(self) -> None:
        if self.user is not None:
            self.storage.set_item(self.storage_key, self.user.model_dump_json())
