from __future__ import annotations

from urllib.parse import urlencode

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from app.core.config import Config, settings
from app.core.exceptions import (
    ConfigurationError,
    IdentityFetchError,
    UpstreamExchangeError,
    UpstreamUnavailableError,
)
from app.schemas.twitter import TwitterToken, TwitterUser, TwitterUserEnvelope

AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
USERS_ME_URL = "https://api.twitter.com/2/users/me"

SCOPES = ("tweet.read", "tweet.write", "users.read", "offline.access")


class TwitterClient:
    """Thin async client for the X OAuth 2.0 endpoints.

    `transport` is only set in tests, to route requests to an `httpx.MockTransport`.
    """

    def __init__(
        self, config: Config | None = None, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.config = config or settings
        self.transport = transport

    @property
    def client_id(self) -> str:
        if not self.config.twitter_client_id:
            raise ConfigurationError("TWITTER_CLIENT_ID")
        return self.config.twitter_client_id

    @property
    def client_secret(self) -> str:
        if not self.config.twitter_client_secret:
            raise ConfigurationError("TWITTER_CLIENT_SECRET")
        return self.config.twitter_client_secret

    @property
    def callback_url(self) -> str:
        if not self.config.twitter_callback_url:
            raise ConfigurationError("TWITTER_CALLBACK_URL")
        return self.config.twitter_callback_url

    def ensure_configured(self) -> None:
        # Property access raises ConfigurationError for the first missing setting
        _ = self.client_id, self.client_secret, self.callback_url

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.http_timeout_seconds, transport=self.transport)

    def build_authorize_url(self, *, state: str, code_challenge: str, challenge_method: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": " ".join(SCOPES),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": challenge_method,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, *, code: str, code_verifier: str) -> TwitterToken:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.callback_url,
            "code_verifier": code_verifier,
            "client_id": self.client_id,
        }

        try:
            async with self._client() as client:
                resp = await client.post(
                    TOKEN_URL,
                    data=data,
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.TransportError as e:
            logger.error(f"X token endpoint unreachable: {e!r}")
            raise UpstreamUnavailableError(details=repr(e)) from e

        if not resp.is_success:
            logger.error(f"X token exchange failed: {resp.status_code} {resp.text}")
            raise UpstreamExchangeError(details=f"{resp.status_code} - {resp.text}")

        try:
            return TwitterToken.model_validate(resp.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unexpected X token response: {resp.text}")
            raise UpstreamExchangeError(details="X did not return an access token") from e

    async def _get_me(self, client: httpx.AsyncClient, bearer: str) -> httpx.Response:
        return await client.get(
            USERS_ME_URL,
            params={"user.fields": "profile_image_url"},
            headers={"Authorization": f"Bearer {bearer}"},
        )

    async def fetch_me(self, access_token: str) -> TwitterUser:
        """Fetch the authenticated user, retrying once with the app bearer token."""
        fallback = self.config.twitter_bearer_token

        try:
            async with self._client() as client:
                resp = await self._get_me(client, access_token)
                if not resp.is_success and fallback:
                    logger.warning(
                        f"X /users/me failed with user token ({resp.status_code}), "
                        "retrying with fallback bearer token"
                    )
                    resp = await self._get_me(client, fallback)
        except httpx.TransportError as e:
            logger.error(f"X /users/me unreachable: {e!r}")
            raise UpstreamUnavailableError(details=repr(e)) from e

        if not resp.is_success:
            logger.error(f"X /users/me failed: {resp.status_code} {resp.text}")
            raise IdentityFetchError(details=f"{resp.status_code} - {resp.text}")

        try:
            return TwitterUserEnvelope.model_validate(resp.json()).data
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Invalid user data received from X: {resp.text}")
            raise IdentityFetchError("Invalid user data received from X") from e


def get_twitter_client() -> TwitterClient:
    return TwitterClient()
