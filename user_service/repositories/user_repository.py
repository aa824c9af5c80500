"""
SQLAlchemy implementation of the UserRepository interface.

One repository instance wraps the AsyncSession of a single request. It only
flushes: committing or rolling back the request's transaction is get_db()'s
job.

Errors:
  - A missing or soft-deleted user raises UserNotFoundError.
  - A unique index violation on flush is the authoritative uniqueness check
    and raises UsernameAlreadyExistsError / EmailAlreadyExistsError.
  - Any other SQLAlchemy failure raises RepositoryError, so storage trouble
    is never mistaken for "not found".
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.domain.entities import User
from user_service.domain.repository import UserRepository
from user_service.exceptions import (
    EmailAlreadyExistsError,
    RepositoryError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
)
from user_service.models.user import UserModel

logger = logging.getLogger(__name__)

# Neither the quotes nor ": " can appear in a valid email address
_USERNAME_MARKERS = ("failed: users.username", '"uq_users_username_not_deleted"')
_EMAIL_MARKERS = ("failed: users.email", '"uq_users_email_not_deleted"')


def _not_deleted() -> Select:
    return select(UserModel).where(UserModel.deleted_at.is_(None))


class SqlAlchemyUserRepository(UserRepository):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, user: User) -> User:
        try:
            if user.id is None:
                model = UserModel.from_entity(user)
                self._session.add(model)
            else:
                model = await self._session.scalar(
                    _not_deleted().where(UserModel.id == user.id)
                )
                if model is None:
                    raise UserNotFoundError(user.id)
                model.apply_entity(user)
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            raise self._uniqueness_error(user, exc) from exc
        except SQLAlchemyError as exc:
            logger.error("Database error when saving user %s: %s", user.uuid, exc)
            raise RepositoryError("failed to save user") from exc

        user.id = model.id
        return user

    async def find_by_id(self, user_id: int) -> User:
        return await self._find_one(_not_deleted().where(UserModel.id == user_id), user_id)

    async def find_by_uuid(self, uuid: str) -> User:
        return await self._find_one(_not_deleted().where(UserModel.uuid == uuid), uuid)

    async def find_by_username(self, username: str) -> User:
        return await self._find_one(
            _not_deleted().where(UserModel.username == username), username
        )

    async def find_by_email(self, email: str) -> User:
        return await self._find_one(_not_deleted().where(UserModel.email == email), email)

    async def delete(self, user_id: int) -> None:
        now = datetime.now(timezone.utc)
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("Database error when deleting user %s: %s", user_id, exc)
            raise RepositoryError("failed to delete user") from exc

        if result.rowcount == 0:
            raise UserNotFoundError(user_id)

    async def exists_by_username(self, username: str) -> bool:
        return await self._exists(UserModel.username == username)

    async def exists_by_email(self, email: str) -> bool:
        return await self._exists(UserModel.email == email)

    async def _find_one(self, stmt: Select, key: object) -> User:
        try:
            model = await self._session.scalar(stmt)
        except SQLAlchemyError as exc:
            logger.error("Database error when loading user %s: %s", key, exc)
            raise RepositoryError("failed to load user") from exc

        if model is None:
            raise UserNotFoundError(key)
        return model.to_entity()

    async def _exists(self, condition) -> bool:
        stmt = (
            select(UserModel.id)
            .where(condition, UserModel.deleted_at.is_(None))
            .limit(1)
        )
        try:
            found = await self._session.scalar(stmt)
        except SQLAlchemyError as exc:
            logger.error("Database error when checking user existence: %s", exc)
            raise RepositoryError("failed to query users") from exc
        return found is not None

    @staticmethod
    def _uniqueness_error(user: User, exc: IntegrityError) -> Exception:
        # SQLite: "UNIQUE constraint failed: users.username"
        # PostgreSQL: 'duplicate key ... constraint "uq_users_username_not_deleted"'
        # The PostgreSQL detail also echoes the rejected value, so only the
        # column and index names are matched.
        message = str(exc.orig).lower()
        if any(marker in message for marker in _USERNAME_MARKERS):
            return UsernameAlreadyExistsError(user.username)
        if any(marker in message for marker in _EMAIL_MARKERS):
            return EmailAlreadyExistsError(str(user.email))
        logger.error("Integrity error when saving user %s: %s", user.uuid, exc)
        return RepositoryError("failed to save user")

    async def list(self, offset: int, limit: int) -> tuple[list[User], int]:
        count_stmt = (
            select(func.count())
            .select_from(UserModel)
            .where(UserModel.deleted_at.is_(None))
        )
        page_stmt = _not_deleted().order_by(UserModel.id).offset(offset).limit(limit)
        try:
            total = await self._session.scalar(count_stmt)
            models = (await self._session.scalars(page_stmt)).all()
        except SQLAlchemyError as exc:
            logger.error("Database error when listing users: %s", exc)
            raise RepositoryError("failed to list users") from exc

        return [model.to_entity() for model in models], total or 0
