"""
Domain events raised by the User aggregate.

An event records something that already happened to a user, so every event
is an immutable dataclass stamped with the time it occurred and the UUID of
the user it concerns. The User entity collects events as its state changes;
the application service pulls them after a successful save and publishes
them (currently to the application log).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    aggregate_id: str
    occurred_at: datetime = field(default_factory=_now)

    name = "domain.event"


@dataclass(frozen=True, kw_only=True)
class UserRegistered(DomainEvent):
    username: str
    email: str

    name = "user.registered"


@dataclass(frozen=True, kw_only=True)
class UserProfileUpdated(DomainEvent):
    old_nickname: str | None
    new_nickname: str | None

    name = "user.profile_updated"


@dataclass(frozen=True, kw_only=True)
class UserPasswordChanged(DomainEvent):
    name = "user.password_changed"


@dataclass(frozen=True, kw_only=True)
class UserActivated(DomainEvent):
    name = "user.activated"


@dataclass(frozen=True, kw_only=True)
class UserDeactivated(DomainEvent):
    name = "user.deactivated"


@dataclass(frozen=True, kw_only=True)
class UserBanned(DomainEvent):
    reason: str | None = None

    name = "user.banned"


@dataclass(frozen=True, kw_only=True)
class UserPromoted(DomainEvent):
    name = "user.promoted"
