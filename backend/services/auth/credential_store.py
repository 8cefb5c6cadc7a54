"""Persistence of user credentials, profile media and the active refresh token."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation, violated_column
from models import User, UserProfile

from ..errors import DuplicateUser, InternalError

logger = logging.getLogger(__name__)

# Columns callers may set through ``update_fields``. ``id`` and timestamps are
# owned by the store.
UPDATABLE_FIELDS = frozenset(
    {
        "username",
        "email",
        "fullname",
        "password_hash",
        "avatar_id",
        "avatar_url",
        "cover_image_id",
        "cover_image_url",
        "refresh_token",
    }
)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_identifier(value: str) -> str:
    return value.strip().lower()


class CredentialStore:
    """User record access bound to one async session.

    Every mutating call commits on its own, so each update is atomic per call.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _fetch_one(self, statement: Any, *, context: dict[str, Any]) -> User | None:
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to load user", extra=context, exc_info=exc)
            raise InternalError("Failed to load user") from exc
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> User | None:
        return await self._fetch_one(
            select(User)
            .where(_eq(User.id, user_id))
            .execution_options(populate_existing=True),
            context={"user_id": user_id},
        )

    async def find_one(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Return the first user matching either identifier (case-insensitive)."""
        clauses: list[ColumnElement[bool]] = []
        if username:
            clauses.append(
                _eq(func.lower(cast(Any, User.username)), normalize_identifier(username))
            )
        if email:
            clauses.append(
                _eq(func.lower(cast(Any, User.email)), normalize_identifier(email))
            )
        if not clauses:
            return None
        return await self._fetch_one(
            select(User)
            .where(or_(*clauses))
            .order_by(cast(Any, User.created_at).asc())
            .limit(1),
            context={"lookup": "identifier"},
        )

    async def get_profile(self, user_id: str) -> UserProfile | None:
        user = await self.find_by_id(user_id)
        if user is None:
            return None
        return UserProfile.from_user(user)

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if is_unique_violation(exc):
                raise DuplicateUser() from exc
            logger.error("Failed to insert user", exc_info=exc)
            raise InternalError("Failed to create user") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to insert user", exc_info=exc)
            raise InternalError("Failed to create user") from exc
        await self.session.refresh(user)
        return user

    async def update_fields(self, user_id: str, **fields: Any) -> User | None:
        """Set the given columns in a single UPDATE and return the fresh row.

        Returns None when no user has ``user_id``.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported user fields: {sorted(unknown)}")
        if not fields:
            return await self.find_by_id(user_id)

        try:
            result = await self.session.execute(
                update(User)
                .where(_eq(User.id, user_id))
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            column = violated_column(exc, ("username", "email"))
            if column is not None:
                raise DuplicateUser(f"{column.capitalize()} is already in use") from exc
            if is_unique_violation(exc):
                raise DuplicateUser() from exc
            raise InternalError("Failed to update user") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "Failed to update user",
                extra={"user_id": user_id, "fields": sorted(fields)},
                exc_info=exc,
            )
            raise InternalError("Failed to update user") from exc

        if cast(Any, result).rowcount == 0:
            return None
        return await self.find_by_id(user_id)

    async def compare_and_set_refresh_token(
        self,
        user_id: str,
        *,
        expected: str,
        new: str | None,
    ) -> bool:
        """Replace the stored refresh token digest only if it still equals ``expected``.

        Two concurrent rotations presenting the same token race on this
        UPDATE; exactly one of them matches a row.
        """
        try:
            result = await self.session.execute(
                update(User)
                .where(_eq(User.id, user_id), _eq(User.refresh_token, expected))
                .values(refresh_token=new)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "Failed to rotate refresh token",
                extra={"user_id": user_id},
                exc_info=exc,
            )
            raise InternalError("Failed to persist refresh token") from exc
        return cast(Any, result).rowcount == 1


__all__ = ["CredentialStore", "UPDATABLE_FIELDS", "normalize_identifier"]
