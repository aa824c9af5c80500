"""
Pydantic schemas for user endpoints.

Request schemas check only the shape of the input (types, lengths). Format
and strength rules for email and password belong to the Email and Password
value objects, so they are applied in one place for every entry point.

Notice that the password hash is NEVER included in any response schema.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from user_service.domain.entities import User


class RegisterRequest(BaseModel):
    """Request body for POST /users/register."""
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(max_length=100)
    password: str = Field(max_length=128)
    nickname: str | None = Field(None, min_length=1, max_length=50)


class UpdateProfileRequest(BaseModel):
    """Request body for PUT /users/{id} (omitted fields keep their value)."""
    nickname: str | None = Field(None, max_length=50)
    avatar: str | None = Field(None, max_length=255)


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /users/{id}/change-password."""
    old_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(max_length=128)


class BanUserRequest(BaseModel):
    """Optional request body for POST /users/{id}/ban."""
    reason: str | None = Field(None, max_length=255)


class UserResponse(BaseModel):
    """Public representation of a User."""
    id: int
    uuid: str
    username: str
    email: str
    nickname: str | None
    avatar: str | None
    status: int
    role: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            uuid=user.uuid,
            username=user.username,
            email=str(user.email),
            nickname=user.nickname,
            avatar=user.avatar,
            status=int(user.status),
            role=user.role.value,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserListResponse(BaseModel):
    """One page of users plus the total number of (non-deleted) users."""
    total: int
    items: list[UserResponse]
