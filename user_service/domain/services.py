"""
User domain service: rules that need the repository or span more than one
method of the User entity.

  - Uniqueness of username and email (advisory pre-check; the storage
    constraint enforced by UserRepository.save() is authoritative)
  - Credential validation for login
  - The authorization predicate deciding which actions a user may perform
"""

import enum
import logging

from user_service.domain.entities import User
from user_service.domain.repository import UserRepository
from user_service.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    PasswordMismatchError,
    UserNotActiveError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
)

logger = logging.getLogger(__name__)


class UserAction(str, enum.Enum):
    VIEW_PROFILE = "view_profile"
    UPDATE_PROFILE = "update_profile"
    CHANGE_PASSWORD = "change_password"
    LIST_USERS = "list_users"
    DELETE_USER = "delete_user"
    BAN_USER = "ban_user"
    ACTIVATE_USER = "activate_user"
    DEACTIVATE_USER = "deactivate_user"
    PROMOTE_USER = "promote_user"


# Actions any active, authenticated user may perform on their own account
SELF_SERVICE_ACTIONS = frozenset({
    UserAction.VIEW_PROFILE,
    UserAction.UPDATE_PROFILE,
    UserAction.CHANGE_PASSWORD,
})


class UserDomainService:
    def __init__(self, user_repository: UserRepository):
        self._users = user_repository

    async def validate_unique_username(self, username: str) -> None:
        if await self._users.exists_by_username(username):
            raise UsernameAlreadyExistsError(username)

    async def validate_unique_email(self, email: str) -> None:
        if await self._users.exists_by_email(email):
            raise EmailAlreadyExistsError(email)

    async def validate_credentials(self, username: str, password: str) -> User:
        """
        Return the user when username and password match.

        Unknown usernames and wrong passwords raise the same
        InvalidCredentialsError so that login cannot be used to discover
        which usernames exist.

        Raises:
            InvalidCredentialsError: Unknown username or wrong password.
            UserNotActiveError: Correct credentials, but the user is
                inactive or banned.
        """
        try:
            user = await self._users.find_by_username(username)
        except UserNotFoundError:
            logger.info("login failed: unknown username")
            raise InvalidCredentialsError()

        try:
            user.password.verify(password)
        except PasswordMismatchError:
            logger.info("login failed: wrong password for user %s", user.id)
            raise InvalidCredentialsError()

        if not user.is_active():
            logger.info("login refused: user %s has status %s", user.id, user.status.name)
            raise UserNotActiveError(user.username)

        return user

    def can_perform_action(self, user: User, action: UserAction) -> bool:
        if user.is_admin():
            return True
        return action in SELF_SERVICE_ACTIONS
