from datetime import timedelta
from typing import Annotated, Any

from fastapi import Depends
from loguru import logger
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.db import get_db
from app.core.enums import OAuthProvider
from app.core.exceptions import PersistenceError
from app.models.linked_identity import LinkedIdentity
from app.schemas.twitter import TwitterToken, TwitterUser
from app.utils.misc import get_utc_now

UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class LinkedIdentityService:
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db)]) -> None:
        self.db = db

    async def get_identity(
        self, user_id: str, provider: OAuthProvider = OAuthProvider.TWITTER
    ) -> LinkedIdentity | None:
        result = await self.db.exec(
            select(LinkedIdentity).where(
                LinkedIdentity.user_id == user_id, LinkedIdentity.provider == provider
            )
        )
        return result.first()

    def _insert(self) -> Any:
        dialect = self.db.get_bind().dialect.name
        try:
            return UPSERT_DIALECTS[dialect]
        except KeyError as e:
            msg = f"Linked identity upserts are not supported on {dialect}"
            raise NotImplementedError(msg) from e

    async def upsert_identity(
        self,
        *,
        user_id: str,
        user: TwitterUser,
        token: TwitterToken,
        provider: OAuthProvider = OAuthProvider.TWITTER,
    ) -> LinkedIdentity:
        """Create or replace the user's linked account for `provider`.

        Runs as a single INSERT ... ON CONFLICT DO UPDATE on (user_id, provider), so
        concurrent links for the same user overwrite each other instead of failing.
        """
        now = get_utc_now()
        changes = {
            "provider_user_id": user.id,
            "provider_username": user.username,
            "profile_image_url": user.profile_image_url,
            "access_token": token.access_token,
            "refresh_token": token.refresh_token,
            "expires_at": now + timedelta(seconds=token.expires_in) if token.expires_in else None,
            "updated_at": now,
        }
        statement = (
            self._insert()(LinkedIdentity)
            .values(user_id=user_id, provider=provider, created_at=now, **changes)
            .on_conflict_do_update(index_elements=["user_id", "provider"], set_=changes)
            .returning(LinkedIdentity)
            .execution_options(populate_existing=True)
        )

        try:
            result = await self.db.execute(statement)
            identity = result.scalars().one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Failed to save linked {provider} account for user {user_id}: {type(e).__name__}"
            )
            raise PersistenceError.from_db_error(e, "Failed to save linked account") from e

        logger.info(f"Linked {provider} account @{user.username} to user {user_id}")
        return identity
