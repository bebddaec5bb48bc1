from __future__ import annotations

from datetime import datetime

import sqlmodel

from app.core.enums import OAuthProvider

from ._base import BaseModel


class OAuthState(BaseModel, table=True):
    """Single-use PKCE state for an in-flight X authorization attempt."""

    __tablename__: str = "oauth_states"

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    state: str = sqlmodel.Field(max_length=255, index=True, unique=True)
    code_verifier: str = sqlmodel.Field(max_length=255)
    provider: OAuthProvider = sqlmodel.Field(default=OAuthProvider.TWITTER, index=True)
    user_id: str | None = sqlmodel.Field(default=None, nullable=True, index=True)
    """Application user linking the account, None for a pure login flow"""
    is_login: bool = False
    origin: str | None = sqlmodel.Field(default=None, nullable=True)
    expires_at: datetime = sqlmodel.Field(index=True, sa_type=sqlmodel.DateTime(timezone=True))
