"""
UserModel: the "users" table and its mapping to the User entity.

The ORM model is kept separate from the domain entity: the entity knows
nothing about columns or sessions, and the table is free to carry
storage-only concerns such as the soft-delete marker and its indexes.

Soft delete:
  Deleting a user sets deleted_at instead of removing the row. Every query
  in the repository filters on deleted_at IS NULL, and a deleted row is
  never brought back to life.

Uniqueness:
  username and email must be unique among users that are not deleted. This
  is enforced by the database through partial unique indexes (SQLite and
  PostgreSQL both support them), so two concurrent registrations with the
  same username cannot both succeed even if both pass the application's
  pre-check. A deleted user's username and email can be registered again.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Index, Integer, SmallInteger, String, text
from sqlalchemy.orm import Mapped, mapped_column

from user_service.database import Base
from user_service.domain.entities import User, UserRole, UserStatus
from user_service.domain.value_objects import Email, Password

_NOT_DELETED = text("deleted_at IS NULL")


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserModel(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_username_not_deleted",
            "username",
            unique=True,
            sqlite_where=_NOT_DELETED,
            postgresql_where=_NOT_DELETED,
        ),
        Index(
            "uq_users_email_not_deleted",
            "email",
            unique=True,
            sqlite_where=_NOT_DELETED,
            postgresql_where=_NOT_DELETED,
        ),
    )

    # SQLite only autoincrements a column declared exactly as INTEGER
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    # External identifier, safe to expose (ids are sequential and guessable)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)

    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Stored already normalized (trimmed, lower-case) by the Email value object
    email: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Argon2id hash of the password (never store plaintext!)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    nickname: Mapped[str | None] = mapped_column(String(50), nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        default=int(UserStatus.ACTIVE),
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    def to_entity(self) -> User:
        """Rebuild the domain entity. Stored values are trusted, not re-validated."""
        return User(
            id=self.id,
            uuid=self.uuid,
            username=self.username,
            email=Email(self.email),
            password=Password.from_hash(self.password_hash),
            nickname=self.nickname,
            avatar=self.avatar,
            status=UserStatus(self.status),
            role=UserRole(self.role),
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
            deleted_at=_as_utc(self.deleted_at),
        )

    def apply_entity(self, user: User) -> None:
        """Copy every persistent field of the entity onto this row."""
        self.uuid = user.uuid
        self.username = user.username
        self.email = str(user.email)
        self.password_hash = user.password.hash
        self.nickname = user.nickname
        self.avatar = user.avatar
        self.status = int(user.status)
        self.role = user.role.value
        self.created_at = user.created_at
        self.updated_at = user.updated_at
        self.deleted_at = user.deleted_at

    @classmethod
    def from_entity(cls, user: User) -> "UserModel":
        model = cls()
        if user.id is not None:
            model.id = user.id
        model.apply_entity(user)
        return model
