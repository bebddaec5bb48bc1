from __future__ import annotations

from typing import Any

from fastapi import status


class OAuthFlowError(Exception):
    """Base error for the X authorization flow.

    `message` is safe to show to end users, `details` is meant for operators.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Authentication failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(OAuthFlowError):
    default_message = "OAuth is not configured"

    def __init__(self, setting: str) -> None:
        self.setting = setting
        super().__init__(f"{setting} is not configured")


class ValidationError(OAuthFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class StateNotFoundError(OAuthFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired state parameter"


class UpstreamExchangeError(OAuthFlowError):
    default_message = "Authentication failed"


class UpstreamUnavailableError(OAuthFlowError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "X is currently unavailable, please try again later"


class IdentityFetchError(OAuthFlowError):
    default_message = "Failed to fetch X user information"


class PersistenceError(OAuthFlowError):
    default_message = "Failed to store authentication state"

    @classmethod
    def from_db_error(cls, error: Exception, message: str | None = None) -> PersistenceError:
        """Wrap a database error, keeping only its type: the statement text carries bound values."""
        orig = getattr(error, "orig", None)
        return cls(message, details=type(orig or error).__name__)
