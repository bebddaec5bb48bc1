from collections.abc import Sequence
from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from loguru import logger
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.core.enums import OAuthProvider
from app.core.exceptions import PersistenceError
from app.models.oauth_state import OAuthState
from app.utils.misc import as_utc, get_utc_now


class OAuthStateService:
    """Persistence for single-use OAuth states.

    Consumption deletes the row in the same statement that reads it, so two
    callbacks racing on one state can never both obtain the verifier.
    """

    def __init__(self, db: Annotated[AsyncSession, Depends(get_db)]) -> None:
        self.db = db
        self.ttl = timedelta(seconds=settings.oauth_state_ttl_seconds)

    async def create_state(
        self,
        *,
        state: str,
        code_verifier: str,
        user_id: str | None,
        is_login: bool,
        origin: str | None = None,
        provider: OAuthProvider = OAuthProvider.TWITTER,
    ) -> OAuthState:
        now = get_utc_now()
        oauth_state = OAuthState(
            state=state,
            code_verifier=code_verifier,
            provider=provider,
            user_id=user_id,
            is_login=is_login,
            origin=origin,
            created_at=now,
            expires_at=now + self.ttl,
        )
        try:
            self.db.add(oauth_state)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store OAuth state {state[:8]}...: {type(e).__name__}")
            raise PersistenceError.from_db_error(e) from e

        logger.debug(f"Created OAuth state {state[:8]}... (login={is_login})")
        return oauth_state

    async def get_state(
        self, state: str, provider: OAuthProvider = OAuthProvider.TWITTER
    ) -> OAuthState | None:
        try:
            result = await self.db.exec(
                select(OAuthState).where(OAuthState.state == state, OAuthState.provider == provider)
            )
        except SQLAlchemyError as e:
            raise PersistenceError.from_db_error(e) from e
        return result.first()

    async def consume_state(
        self, state: str, provider: OAuthProvider = OAuthProvider.TWITTER
    ) -> OAuthState | None:
        """Delete and return the matching state, or None if absent, spent or expired."""
        statement = (
            delete(OAuthState)
            .where(col(OAuthState.state) == state, col(OAuthState.provider) == provider)
            .returning(OAuthState)
        )
        try:
            result = await self.db.execute(statement)
            oauth_state = result.scalars().first()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to consume OAuth state {state[:8]}...: {type(e).__name__}")
            raise PersistenceError.from_db_error(e) from e

        if oauth_state is None:
            logger.warning(f"Unknown or already used OAuth state: {state[:8]}...")
            return None

        if self.is_expired(oauth_state):
            logger.warning(f"Expired OAuth state: {state[:8]}...")
            return None

        logger.debug(f"Consumed OAuth state {state[:8]}...")
        return oauth_state

    def is_expired(self, oauth_state: OAuthState) -> bool:
        now = get_utc_now()
        return (
            as_utc(oauth_state.expires_at) <= now
            or as_utc(oauth_state.created_at) + self.ttl <= now
        )

    async def get_recent_states(
        self, provider: OAuthProvider = OAuthProvider.TWITTER, *, limit: int = 5
    ) -> Sequence[OAuthState]:
        result = await self.db.exec(
            select(OAuthState)
            .where(OAuthState.provider == provider)
            .order_by(col(OAuthState.created_at).desc())
            .limit(limit)
        )
        return result.all()

    async def purge_expired(self) -> int:
        """Remove abandoned states. Returns the number of rows deleted."""
        now = get_utc_now()
        try:
            result = await self.db.execute(
                delete(OAuthState).where(col(OAuthState.expires_at) <= now)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError.from_db_error(e) from e

        count = result.rowcount or 0
        if count:
            logger.info(f"Purged {count} expired OAuth states")
        return count
