from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    db_url: str
    env: Literal["prod", "dev"] = "prod"
    cors_origins: str = "*"

    # X (Twitter) OAuth 2.0
    twitter_client_id: str | None = None
    twitter_client_secret: str | None = None
    twitter_callback_url: str | None = None
    # App-only bearer token, used as a fallback for /users/me lookups
    twitter_bearer_token: str | None = None

    # OAuth flow settings
    oauth_state_ttl_seconds: int = 10 * 60  # 10 minutes
    pkce_challenge_method: Literal["S256", "plain"] = "S256"
    http_timeout_seconds: float = 10.0

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


load_dotenv()
settings = Config()  # pyright: ignore[reportCallIssue]
