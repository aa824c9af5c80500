"""
Users router: registration, login, profile and admin endpoints.

Endpoints:
  POST   /users/register                    Register a new user (public)
  POST   /users/login                       Authenticate and get a token (public)
  GET    /users/me                          The authenticated user
  GET    /users/uuid/{uuid}                 Any user by external UUID
  GET    /users/{user_id}                   Any user by id
  PUT    /users/{user_id}                   Update own nickname/avatar
  PUT    /users/{user_id}/change-password   Change own password
  GET    /users                             [Admin] Paginated user list
  DELETE /users/{user_id}                   [Admin] Soft-delete a user
  POST   /users/{user_id}/ban               [Admin] Ban a user
  POST   /users/{user_id}/activate          [Admin] Re-activate a user
  POST   /users/{user_id}/deactivate        [Admin] Deactivate a user
  POST   /users/{user_id}/promote           [Admin] Grant the admin role

Every response body is wrapped in the {"code", "message", "data"} envelope.

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - Tokens appear only in the login response body. The request logging
    middleware records method, path, status and latency only.
"""

from fastapi import APIRouter, Depends, Query, status

from user_service.dependencies import get_current_user, get_user_service, require_admin
from user_service.domain.entities import User
from user_service.schemas.auth import LoginRequest, LoginResponse
from user_service.schemas.common import ApiResponse, ok
from user_service.schemas.pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, Pagination
from user_service.schemas.user import (
    BanUserRequest,
    ChangePasswordRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserListResponse,
    UserResponse,
)
from user_service.services.user_service import UserApplicationService

router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    service: UserApplicationService = Depends(get_user_service),
):
    """
    Register a new user with status ACTIVE and role USER.

    - **username**: 3-50 characters, must not be taken
    - **email**: Valid email, normalized to lower case, must not be taken
    - **password**: At least 8 characters with an upper-case letter, a
      lower-case letter and a digit
    - **nickname**: Optional
    """
    user = await service.register(
        username=request.username,
        email=request.email,
        password=request.password,
        nickname=request.nickname,
    )
    return ok(user)


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    service: UserApplicationService = Depends(get_user_service),
):
    """
    Authenticate with username and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>

    The token expires at `expires_at` (Unix seconds).
    """
    return ok(await service.login(request.username, request.password))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get the current user",
)
async def get_me(current_user: User = Depends(get_current_user)):
    return ok(UserResponse.from_entity(current_user))


@router.get(
    "",
    response_model=ApiResponse[UserListResponse],
    summary="[Admin] List users",
)
async def list_users(
    page: int = Query(DEFAULT_PAGE, description="1-based page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, description="Clamped to 1..100"),
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    """List non-deleted users ordered by id, with the total count."""
    pagination = Pagination(page=page, page_size=page_size)
    return ok(await service.list_users(admin, pagination))


@router.get(
    "/uuid/{uuid}",
    response_model=ApiResponse[UserResponse],
    summary="Get a user by UUID",
)
async def get_user_by_uuid(
    uuid: str,
    current_user: User = Depends(get_current_user),
    service: UserApplicationService = Depends(get_user_service),
):
    return ok(await service.get_user_by_uuid(uuid))


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get a user by id",
)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserApplicationService = Depends(get_user_service),
):
    return ok(await service.get_user(user_id))


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update own profile",
)
async def update_profile(
    user_id: int,
    updates: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    service: UserApplicationService = Depends(get_user_service),
):
    """
    Update the caller's nickname and/or avatar.

    The caller's id must equal `user_id`. Omitted fields keep their value.
    """
    user = await service.update_profile(
        actor=current_user,
        user_id=user_id,
        nickname=updates.nickname,
        avatar=updates.avatar,
    )
    return ok(user)


@router.put(
    "/{user_id}/change-password",
    response_model=ApiResponse,
    summary="Change own password",
)
async def change_password(
    user_id: int,
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    service: UserApplicationService = Depends(get_user_service),
):
    """
    Change the caller's password.

    The current password must be supplied. Tokens issued before the change
    stay valid until they expire.
    """
    await service.change_password(
        actor=current_user,
        user_id=user_id,
        old_password=request.old_password,
        new_password=request.new_password,
    )
    return ok(message="password changed")


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------

@router.delete(
    "/{user_id}",
    response_model=ApiResponse,
    summary="[Admin] Delete a user",
)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    """Soft-delete a user. The row is kept with deleted_at set."""
    await service.delete_user(admin, user_id)
    return ok(message="user deleted")


@router.post(
    "/{user_id}/ban",
    response_model=ApiResponse[UserResponse],
    summary="[Admin] Ban a user",
)
async def ban_user(
    user_id: int,
    request: BanUserRequest | None = None,
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    reason = request.reason if request is not None else None
    return ok(await service.ban_user(admin, user_id, reason))


@router.post(
    "/{user_id}/activate",
    response_model=ApiResponse[UserResponse],
    summary="[Admin] Activate a user",
)
async def activate_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    return ok(await service.activate_user(admin, user_id))


@router.post(
    "/{user_id}/deactivate",
    response_model=ApiResponse[UserResponse],
    summary="[Admin] Deactivate a user",
)
async def deactivate_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    return ok(await service.deactivate_user(admin, user_id))


@router.post(
    "/{user_id}/promote",
    response_model=ApiResponse[UserResponse],
    summary="[Admin] Promote a user to admin",
)
async def promote_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UserApplicationService = Depends(get_user_service),
):
    return ok(await service.promote_user(admin, user_id))
