from __future__ import annotations

from datetime import datetime

import sqlmodel

from app.core.enums import OAuthProvider
from app.utils.misc import get_utc_now

from ._base import BaseModel


class LinkedIdentity(BaseModel, table=True):
    __tablename__: str = "linked_identities"
    __table_args__ = (
        sqlmodel.UniqueConstraint("user_id", "provider", name="uq_linked_identity_user_provider"),
    )

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    user_id: str = sqlmodel.Field(index=True)
    provider: OAuthProvider = OAuthProvider.TWITTER
    provider_user_id: str = sqlmodel.Field(index=True)
    """X user ID"""
    provider_username: str
    """X handle without the leading @"""
    profile_image_url: str | None = sqlmodel.Field(default=None, nullable=True)
    access_token: str
    refresh_token: str | None = sqlmodel.Field(default=None, nullable=True)
    expires_at: datetime | None = sqlmodel.Field(
        default=None, nullable=True, sa_type=sqlmodel.DateTime(timezone=True)
    )
    updated_at: datetime = sqlmodel.Field(
        default_factory=get_utc_now, sa_type=sqlmodel.DateTime(timezone=True)
    )
