"""
FastAPI dependencies for wiring, authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route
handlers. They form two chains:

  get_db -> get_user_repository -> get_user_service      (wiring)

  get_token_claims (Authorization header -> TokenClaims)
      └── get_current_user (TokenClaims -> User)
              └── require_admin (User -> User)           [ADMIN role]

Authentication failures (missing header, wrong scheme, malformed, forged or
expired token) raise UnauthorizedError subclasses, rendered as 401 with a
"WWW-Authenticate: Bearer" header. A token whose user has since been
banned or deactivated gets UserNotActiveError (403). A non-admin hitting
an admin route gets ForbiddenError (403) before the route handler runs.
"""

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.database import get_db
from user_service.domain.entities import User
from user_service.domain.repository import UserRepository
from user_service.domain.services import UserDomainService
from user_service.exceptions import (
    ForbiddenError,
    InvalidTokenError,
    UnauthorizedError,
    UserNotActiveError,
    UserNotFoundError,
)
from user_service.repositories.user_repository import SqlAlchemyUserRepository
from user_service.security import TokenClaims, TokenIssuer
from user_service.services.user_service import UserApplicationService

logger = logging.getLogger(__name__)

# auto_error=False: a missing or non-Bearer header comes through as None so
# we can answer with our own 401 envelope.
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return SqlAlchemyUserRepository(db)


def get_user_service(
    repository: UserRepository = Depends(get_user_repository),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserApplicationService:
    return UserApplicationService(
        user_repository=repository,
        domain_service=UserDomainService(repository),
        token_issuer=token_issuer,
    )


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """
    Extract and verify the bearer token from the Authorization header.

    Raises:
        UnauthorizedError: No "Authorization: Bearer <token>" header.
        MalformedTokenError / BadSignatureError / ExpiredTokenError: The
            token does not verify.
    """
    if credentials is None:
        raise UnauthorizedError("missing or invalid authorization header")

    try:
        return token_issuer.verify(credentials.credentials)
    except InvalidTokenError as exc:
        logger.debug("rejected bearer token: %s", exc.detail)
        raise


async def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    service: UserApplicationService = Depends(get_user_service),
) -> User:
    """
    Return the User the token was issued to.

    A token stays cryptographically valid until it expires, but the user
    behind it may have been deleted, banned or deactivated since. A deleted
    user is treated as unauthenticated; an inactive one is refused with the
    same UserNotActiveError that login raises.
    """
    try:
        user = await service.get_actor(claims.user_id)
    except UserNotFoundError:
        raise UnauthorizedError("user no longer exists")

    if not user.is_active():
        raise UserNotActiveError(user.username)
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        ForbiddenError: If the user is not an admin.
    """
    if not user.is_admin():
        raise ForbiddenError("Admin access required")
    return user
