"""
User application service: one method per use case.

The application service orchestrates the other layers but holds no business
rules of its own. Each use case follows the same steps:
  1. Check preconditions through the domain service (uniqueness,
     credentials, permissions)
  2. Build or mutate the User entity
  3. Persist it through the repository
  4. Publish the entity's domain events and map it to a response schema

Every use case reads and writes a single user row, so there is no
cross-aggregate transaction and no partial failure to recover from.

Error handling:
  Value object and domain errors (validation, conflict, not-found,
  credentials, permission) propagate unchanged, since their type is what
  the HTTP layer maps to a status code. Storage failures (RepositoryError)
  are re-raised as InternalServiceError naming the use case that failed.
"""

import logging
from contextlib import contextmanager

from user_service.domain.entities import User
from user_service.domain.repository import UserRepository
from user_service.domain.services import UserAction, UserDomainService
from user_service.domain.value_objects import Email, Password
from user_service.exceptions import (
    ForbiddenError,
    InternalServiceError,
    InvalidCredentialsError,
    PasswordMismatchError,
    RepositoryError,
)
from user_service.schemas.auth import LoginResponse
from user_service.schemas.pagination import Pagination
from user_service.schemas.user import UserListResponse, UserResponse
from user_service.security import TokenIssuer

logger = logging.getLogger(__name__)


@contextmanager
def _storage_context(message: str):
    try:
        yield
    except RepositoryError as exc:
        raise InternalServiceError(f"{message}: {exc.detail}") from exc


class UserApplicationService:
    def __init__(
        self,
        user_repository: UserRepository,
        domain_service: UserDomainService,
        token_issuer: TokenIssuer,
    ):
        self._users = user_repository
        self._domain = domain_service
        self._tokens = token_issuer

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        nickname: str | None = None,
    ) -> UserResponse:
        """
        Register a new user.

        Email and password are validated before any storage call. The
        uniqueness pre-check runs on the normalized email; the storage
        constraint still has the final say if a concurrent registration
        slips in between the check and the insert.

        Raises:
            InvalidEmailError, PasswordTooShortError, PasswordTooWeakError
            UsernameAlreadyExistsError, EmailAlreadyExistsError
        """
        email_vo = Email.create(email)
        password_vo = Password.create(password)

        with _storage_context("failed to register user"):
            await self._domain.validate_unique_username(username)
            await self._domain.validate_unique_email(str(email_vo))

            user = User.register(username, email_vo, password_vo, nickname=nickname)
            await self._users.save(user)

        self._publish(user)
        return UserResponse.from_entity(user)

    async def login(self, username: str, password: str) -> LoginResponse:
        with _storage_context("failed to log in"):
            user = await self._domain.validate_credentials(username, password)

        token, expires_at = self._tokens.issue(user.id, user.username, user.role.value)
        logger.info("user %s logged in", user.id)
        return LoginResponse(
            token=token,
            expires_at=expires_at,
            user=UserResponse.from_entity(user),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_actor(self, user_id: int) -> User:
        """Load the user behind an authenticated request."""
        with _storage_context("failed to load user"):
            return await self._users.find_by_id(user_id)

    async def get_user(self, user_id: int) -> UserResponse:
        with _storage_context("failed to load user"):
            user = await self._users.find_by_id(user_id)
        return UserResponse.from_entity(user)

    async def get_user_by_uuid(self, uuid: str) -> UserResponse:
        with _storage_context("failed to load user"):
            user = await self._users.find_by_uuid(uuid)
        return UserResponse.from_entity(user)

    async def list_users(self, actor: User, pagination: Pagination) -> UserListResponse:
        self._require(actor, UserAction.LIST_USERS)
        with _storage_context("failed to list users"):
            users, total = await self._users.list(pagination.offset, pagination.limit)
        return UserListResponse(
            total=total,
            items=[UserResponse.from_entity(user) for user in users],
        )

    # ------------------------------------------------------------------
    # Self-service commands (owner only)
    # ------------------------------------------------------------------

    async def update_profile(
        self,
        actor: User,
        user_id: int,
        nickname: str | None = None,
        avatar: str | None = None,
    ) -> UserResponse:
        """Update nickname and/or avatar. Fields passed as None are left unchanged."""
        self._require_owner(actor, user_id, UserAction.UPDATE_PROFILE)

        with _storage_context("failed to update profile"):
            user = await self._users.find_by_id(user_id)
            user.update_profile(
                nickname=nickname if nickname is not None else user.nickname,
                avatar=avatar if avatar is not None else user.avatar,
            )
            await self._users.save(user)

        self._publish(user)
        return UserResponse.from_entity(user)

    async def change_password(
        self,
        actor: User,
        user_id: int,
        old_password: str,
        new_password: str,
    ) -> None:
        """
        Replace the user's password after checking the current one.

        Raises:
            ForbiddenError: The caller is not the owner of the account.
            InvalidCredentialsError: old_password is wrong.
            PasswordTooShortError, PasswordTooWeakError: new_password is
                rejected by the strength rules.
        """
        self._require_owner(actor, user_id, UserAction.CHANGE_PASSWORD)

        with _storage_context("failed to change password"):
            user = await self._users.find_by_id(user_id)
            try:
                user.password.verify(old_password)
            except PasswordMismatchError:
                raise InvalidCredentialsError()

            user.change_password(Password.create(new_password))
            await self._users.save(user)

        self._publish(user)

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    async def delete_user(self, actor: User, user_id: int) -> None:
        self._require(actor, UserAction.DELETE_USER)
        with _storage_context("failed to delete user"):
            await self._users.delete(user_id)
        logger.info("user %s deleted by %s", user_id, actor.id)

    async def ban_user(self, actor: User, user_id: int, reason: str | None = None) -> UserResponse:
        self._require(actor, UserAction.BAN_USER)
        return await self._transition(user_id, "failed to ban user", lambda u: u.ban(reason))

    async def activate_user(self, actor: User, user_id: int) -> UserResponse:
        self._require(actor, UserAction.ACTIVATE_USER)
        return await self._transition(user_id, "failed to activate user", User.activate)

    async def deactivate_user(self, actor: User, user_id: int) -> UserResponse:
        self._require(actor, UserAction.DEACTIVATE_USER)
        return await self._transition(user_id, "failed to deactivate user", User.deactivate)

    async def promote_user(self, actor: User, user_id: int) -> UserResponse:
        self._require(actor, UserAction.PROMOTE_USER)
        return await self._transition(user_id, "failed to promote user", User.promote_to_admin)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transition(self, user_id: int, message: str, change) -> UserResponse:
        with _storage_context(message):
            user = await self._users.find_by_id(user_id)
            change(user)
            await self._users.save(user)
        self._publish(user)
        return UserResponse.from_entity(user)

    def _require(self, actor: User, action: UserAction) -> None:
        if not self._domain.can_perform_action(actor, action):
            raise ForbiddenError()

    def _require_owner(self, actor: User, user_id: int, action: UserAction) -> None:
        if actor.id != user_id:
            raise ForbiddenError("You can only modify your own account")
        self._require(actor, action)

    @staticmethod
    def _publish(user: User) -> None:
        for event in user.pull_events():
            logger.info(
                "domain event %s for user %s at %s",
                event.name, event.aggregate_id, event.occurred_at.isoformat(),
            )
