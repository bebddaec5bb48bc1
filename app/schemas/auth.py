from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import AuthAction


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AuthorizeRequest(CamelModel):
    user_id: str | None = Field(default=None, alias="userId")
    is_login: bool = Field(default=False, alias="isLogin")
    origin: str | None = None


class AuthorizeResponse(CamelModel):
    auth_url: str = Field(alias="authUrl")
    state: str


class CallbackRequest(CamelModel):
    # Both optional here so a missing field yields the flow's own error body instead of a 422
    code: str | None = None
    state: str | None = None


class CallbackResponse(CamelModel):
    success: Literal[True] = True
    username: str
    user_id: str = Field(alias="userId")
    """X user ID of the authenticated account"""
    action: AuthAction
    profile_image_url: str | None = Field(default=None, alias="profileImageUrl")


class RecentState(CamelModel):
    state_prefix: str = Field(alias="statePrefix")
    is_login: bool = Field(alias="isLogin")
    created_at: datetime = Field(alias="createdAt")
    expired: bool


class ErrorResponse(CamelModel):
    error: str
    details: str | None = None
    recent_states: list[RecentState] | None = Field(default=None, alias="recentStates")


class LinkedIdentityRead(CamelModel):
    user_id: str = Field(alias="userId")
    provider: str
    provider_user_id: str = Field(alias="providerUserId")
    username: str
    profile_image_url: str | None = Field(default=None, alias="profileImageUrl")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")
    updated_at: datetime = Field(alias="updatedAt")


class ConnectionDebugReport(CamelModel):
    client_id_set: bool = Field(alias="clientIdSet")
    client_secret_set: bool = Field(alias="clientSecretSet")
    callback_url: str | None = Field(alias="callbackUrl")
    fallback_bearer_set: bool = Field(alias="fallbackBearerSet")
    challenge_method: str = Field(alias="challengeMethod")
    scopes: list[str]
    state_ttl_seconds: int = Field(alias="stateTtlSeconds")
