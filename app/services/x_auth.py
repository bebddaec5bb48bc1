from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from loguru import logger

from app.core.config import Config
from app.core.enums import AuthAction, OAuthProvider
from app.core.exceptions import PersistenceError, StateNotFoundError, ValidationError
from app.schemas.auth import AuthorizeResponse, CallbackResponse, RecentState
from app.services.linked_identity import LinkedIdentityService
from app.services.oauth_state import OAuthStateService
from app.services.twitter import TwitterClient, get_twitter_client
from app.utils.misc import as_utc
from app.utils.pkce import derive_code_challenge, generate_code_verifier, generate_state


class XAuthService:
    """Links X accounts to users via OAuth 2.0 authorization code + PKCE."""

    provider = OAuthProvider.TWITTER

    def __init__(
        self,
        state_service: Annotated[OAuthStateService, Depends()],
        identity_service: Annotated[LinkedIdentityService, Depends()],
        twitter: Annotated[TwitterClient, Depends(get_twitter_client)],
    ) -> None:
        self.state_service = state_service
        self.identity_service = identity_service
        self.twitter = twitter

    @property
    def config(self) -> Config:
        return self.twitter.config

    async def start_authorization(
        self, *, user_id: str | None, is_login: bool, origin: str | None = None
    ) -> AuthorizeResponse:
        if not is_login and not user_id:
            raise ValidationError("User ID is required for authorization")
        self.twitter.ensure_configured()

        method = self.config.pkce_challenge_method
        if method == "plain":
            logger.warning("PKCE challenge method is 'plain'; the verifier is sent in the clear")

        state = generate_state()
        code_verifier = generate_code_verifier()
        code_challenge = derive_code_challenge(code_verifier, method)

        await self.state_service.purge_expired()
        await self.state_service.create_state(
            state=state,
            code_verifier=code_verifier,
            user_id=user_id,
            is_login=is_login,
            origin=origin,
            provider=self.provider,
        )

        # Never hand out a URL for a state the callback would not find
        stored = await self.state_service.get_state(state, self.provider)
        if stored is None or stored.code_verifier != code_verifier:
            logger.error(f"OAuth state {state[:8]}... was not readable after insert")
            raise PersistenceError(details="State row missing after insert")

        auth_url = self.twitter.build_authorize_url(
            state=state, code_challenge=code_challenge, challenge_method=method
        )
        logger.info(
            f"Started X {'login' if is_login else 'link'} flow "
            f"(state={state[:8]}..., origin={origin or '-'})"
        )
        return AuthorizeResponse(auth_url=auth_url, state=state)

    async def complete_authorization(
        self, *, code: str | None, state: str | None
    ) -> CallbackResponse:
        if not code or not state:
            raise ValidationError("Missing code or state parameter")
        self.twitter.ensure_configured()

        oauth_state = await self.state_service.consume_state(state, self.provider)
        if oauth_state is None:
            context = {}
            if self.config.is_dev:
                context["recent_states"] = await self._recent_states()
            raise StateNotFoundError(context=context)

        token = await self.twitter.exchange_code(code=code, code_verifier=oauth_state.code_verifier)
        user = await self.twitter.fetch_me(token.access_token)

        action = AuthAction.LOGIN if oauth_state.is_login else AuthAction.LINK
        if oauth_state.user_id:
            await self.identity_service.upsert_identity(
                user_id=oauth_state.user_id, user=user, token=token, provider=self.provider
            )
        else:
            logger.info(f"X login for @{user.username}; no application user to link yet")

        return CallbackResponse(
            username=user.username,
            user_id=user.id,
            action=action,
            profile_image_url=user.profile_image_url,
        )

    async def _recent_states(self) -> list[RecentState]:
        rows = await self.state_service.get_recent_states(self.provider)
        return [
            RecentState(
                state_prefix=f"{row.state[:8]}...",
                is_login=row.is_login,
                created_at=as_utc(row.created_at),
                expired=self.state_service.is_expired(row),
            )
            for row in rows
        ]
