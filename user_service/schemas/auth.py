"""
Pydantic schemas for the login endpoint.

Registration lives with the other user schemas; login is kept apart because
it is the only endpoint that hands out a token.
"""

from pydantic import BaseModel, Field

from user_service.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Request body for POST /users/login."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    """Response body for a successful login: the JWT, its expiry and the user."""
    token: str
    token_type: str = "bearer"
    # Unix seconds
    expires_at: int
    user: UserResponse
