"""
User entity, the root of the User aggregate.

A User has an identity (the storage-assigned surrogate id, plus a UUID that
is safe to hand out externally). Equality follows the identity: two User
objects with the same id are the same user even if one of them is stale.

State changes go through the methods below rather than attribute
assignment. Each one advances updated_at and records a domain event that the
application service publishes once the change has been saved.

User statuses:
  - ACTIVE: Can log in (the default for new registrations)
  - INACTIVE: Account disabled, login refused
  - BANNED: Account banned by an admin, login refused

User roles:
  - USER: Self-service access to their own profile
  - ADMIN: May list, delete and change the status or role of any user
"""

import enum
import uuid as uuid_lib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from user_service.domain import events
from user_service.domain.value_objects import Email, Password


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserStatus(enum.IntEnum):
    ACTIVE = 1
    INACTIVE = 2
    BANNED = 3


class UserRole(str, enum.Enum):
    """
    Inherits from str so the value serializes naturally to JSON and into
    the token's "role" claim.
    """
    USER = "user"
    ADMIN = "admin"


@dataclass(eq=False)
class User:
    username: str
    email: Email
    password: Password
    uuid: str = field(default_factory=lambda: str(uuid_lib.uuid4()))
    id: int | None = None
    nickname: str | None = None
    avatar: str | None = None
    status: UserStatus = UserStatus.ACTIVE
    role: UserRole = UserRole.USER
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    deleted_at: datetime | None = None
    _events: list[events.DomainEvent] = field(
        default_factory=list, init=False, repr=False
    )

    @classmethod
    def register(
        cls,
        username: str,
        email: Email,
        password: Password,
        nickname: str | None = None,
    ) -> "User":
        """Create a brand-new active user with the USER role."""
        user = cls(username=username, email=email, password=password, nickname=nickname)
        user._record(
            events.UserRegistered(
                aggregate_id=user.uuid, username=username, email=str(email)
            )
        )
        return user

    # --- Identity ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash(self.id)

    # --- Predicates ---

    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    # --- State transitions ---

    def update_profile(self, nickname: str | None, avatar: str | None) -> None:
        old_nickname = self.nickname
        self.nickname = nickname
        self.avatar = avatar
        self._touch()
        self._record(
            events.UserProfileUpdated(
                aggregate_id=self.uuid,
                old_nickname=old_nickname,
                new_nickname=nickname,
            )
        )

    def change_password(self, new_password: Password) -> None:
        self.password = new_password
        self._touch()
        self._record(events.UserPasswordChanged(aggregate_id=self.uuid))

    def activate(self) -> None:
        self.status = UserStatus.ACTIVE
        self._touch()
        self._record(events.UserActivated(aggregate_id=self.uuid))

    def deactivate(self) -> None:
        self.status = UserStatus.INACTIVE
        self._touch()
        self._record(events.UserDeactivated(aggregate_id=self.uuid))

    def ban(self, reason: str | None = None) -> None:
        self.status = UserStatus.BANNED
        self._touch()
        self._record(events.UserBanned(aggregate_id=self.uuid, reason=reason))

    def promote_to_admin(self) -> None:
        self.role = UserRole.ADMIN
        self._touch()
        self._record(events.UserPromoted(aggregate_id=self.uuid))

    # --- Events ---

    def pull_events(self) -> list[events.DomainEvent]:
        """Return the events recorded since the last pull and forget them."""
        pending, self._events = self._events, []
        return pending

    def _record(self, event: events.DomainEvent) -> None:
        self._events.append(event)

    def _touch(self) -> None:
        now = _now()
        # Keep updated_at strictly increasing even when two changes land
        # within the clock's resolution.
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now
