from __future__ import annotations

from typing import Annotated
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.config import settings
from app.models.linked_identity import LinkedIdentity
from app.schemas.auth import (
    AuthorizeRequest,
    AuthorizeResponse,
    CallbackRequest,
    CallbackResponse,
    ConnectionDebugReport,
    LinkedIdentityRead,
)
from app.schemas.common import APIResponse
from app.services.linked_identity import LinkedIdentityService
from app.services.twitter import SCOPES
from app.services.x_auth import XAuthService

router = APIRouter(prefix="/x", tags=["x-auth"])


def _origin_of(url: str | None) -> str | None:
    if not url:
        return None
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def resolve_origin(body_origin: str | None, request: Request) -> str | None:
    """Body origin, then Origin header, then Referer, then the callback URL's origin."""
    return (
        body_origin
        or request.headers.get("origin")
        or _origin_of(request.headers.get("referer"))
        or _origin_of(settings.twitter_callback_url)
    )


@router.post("/request-token")
async def request_token(
    body: AuthorizeRequest, request: Request, service: Annotated[XAuthService, Depends()]
) -> AuthorizeResponse:
    """Start an X OAuth 2.0 flow and return the authorization URL."""
    return await service.start_authorization(
        user_id=body.user_id, is_login=body.is_login, origin=resolve_origin(body.origin, request)
    )


@router.post("/access-token")
async def access_token(
    body: CallbackRequest, service: Annotated[XAuthService, Depends()]
) -> CallbackResponse:
    """Complete the flow with the `code` and `state` X redirected back with."""
    return await service.complete_authorization(code=body.code, state=body.state)


def _to_read(identity: LinkedIdentity) -> LinkedIdentityRead:
    return LinkedIdentityRead(
        user_id=identity.user_id,
        provider=identity.provider,
        provider_user_id=identity.provider_user_id,
        username=identity.provider_username,
        profile_image_url=identity.profile_image_url,
        expires_at=identity.expires_at,
        updated_at=identity.updated_at,
    )


@router.get("/accounts/{user_id}")
async def get_linked_account(
    user_id: str, service: Annotated[LinkedIdentityService, Depends()]
) -> APIResponse[LinkedIdentityRead]:
    identity = await service.get_identity(user_id)
    if not identity:
        raise HTTPException(status_code=404, detail="No X account linked")
    return APIResponse(data=_to_read(identity))


@router.get("/debug")
async def debug_connection() -> APIResponse[ConnectionDebugReport]:
    """Report which X settings are present, without revealing them. Dev only."""
    if not settings.is_dev:
        raise HTTPException(status_code=404, detail="Not Found")

    report = ConnectionDebugReport(
        client_id_set=bool(settings.twitter_client_id),
        client_secret_set=bool(settings.twitter_client_secret),
        callback_url=settings.twitter_callback_url,
        fallback_bearer_set=bool(settings.twitter_bearer_token),
        challenge_method=settings.pkce_challenge_method,
        scopes=list(SCOPES),
        state_ttl_seconds=settings.oauth_state_ttl_seconds,
    )
    return APIResponse(data=report)
