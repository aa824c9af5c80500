"""
UserRepository, the persistence contract for the User aggregate.

The domain and application layers depend only on this abstract class. The
SQLAlchemy implementation lives in user_service.repositories; tests swap in
an in-memory fake.

Contract shared by every implementation:
  - Soft-deleted users are invisible: find_* raise UserNotFoundError for
    them, exists_* return False, list() skips them.
  - "Not found" is always UserNotFoundError, never a storage error, so
    callers can tell the two apart.
  - save() raises UsernameAlreadyExistsError / EmailAlreadyExistsError when
    the store's uniqueness guarantee rejects the write. That check is the
    authoritative one: a check-then-act exists_* call can race with a
    concurrent registration.
"""

from abc import ABC, abstractmethod

from user_service.domain.entities import User


class UserRepository(ABC):

    @abstractmethod
    async def save(self, user: User) -> User:
        """
        Insert the user when it has no id yet, otherwise fully update it.

        Returns:
            The saved user, with id and timestamps as stored.
        """

    @abstractmethod
    async def find_by_id(self, user_id: int) -> User:
        ...

    @abstractmethod
    async def find_by_uuid(self, uuid: str) -> User:
        ...

    @abstractmethod
    async def find_by_username(self, username: str) -> User:
        ...

    @abstractmethod
    async def find_by_email(self, email: str) -> User:
        ...

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Soft-delete: mark the user deleted without removing the row."""

    @abstractmethod
    async def list(self, offset: int, limit: int) -> tuple[list[User], int]:
        """Return one page of users ordered by id, plus the total count."""

    @abstractmethod
    async def exists_by_username(self, username: str) -> bool:
        ...

    @abstractmethod
    async def exists_by_email(self, email: str) -> bool:
        ...
