"""Validated shapes of the X API responses used by the authorization flow."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TwitterToken(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    token_type: str = "bearer"
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None


class TwitterUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    name: str | None = None
    profile_image_url: str | None = None


class TwitterUserEnvelope(BaseModel):
    """`GET /2/users/me` wraps the user object in `data`."""

    model_config = ConfigDict(extra="ignore")

    data: TwitterUser
