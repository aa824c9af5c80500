"""
Custom exception classes and FastAPI exception handlers.

The value objects, domain service, repository and application service all
raise the domain-specific errors defined here without importing any HTTP
concepts. The handler layer at the bottom of this module translates each
error kind into an HTTP status code and the standard response envelope:

    {"code": <http status>, "message": "<detail>", "data": null}

Exception hierarchy (status code in brackets):
    UserServiceError (base)                  [500]
    ├── ValidationError                      [400]
    │   ├── InvalidEmailError
    │   ├── PasswordTooShortError
    │   └── PasswordTooWeakError
    ├── UnauthorizedError                    [401]
    │   ├── InvalidCredentialsError
    │   ├── PasswordMismatchError
    │   └── InvalidTokenError
    │       ├── MalformedTokenError
    │       ├── ExpiredTokenError
    │       └── BadSignatureError
    ├── ForbiddenError                       [403]
    │   └── UserNotActiveError
    ├── NotFoundError                        [404]
    │   └── UserNotFoundError
    ├── ConflictError                        [409]
    │   ├── UsernameAlreadyExistsError
    │   └── EmailAlreadyExistsError
    └── InternalServiceError                 [500]
        ├── PasswordHashError
        └── RepositoryError

Internal (5xx) errors never reach the client with their detail: the body
carries a generic message and the real cause is logged.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class UserServiceError(Exception):
    """Base exception for all User Service domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------

class ValidationError(UserServiceError):
    """Bad input shape or format."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(UserServiceError):
    """Bad, missing or expired credentials or token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(UserServiceError):
    """Authenticated, but not permitted to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail)


class NotFoundError(UserServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(UserServiceError):
    """The resource already exists."""

    status_code = status.HTTP_409_CONFLICT


class InternalServiceError(UserServiceError):
    """Storage or unexpected failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ---------------------------------------------------------------------------
# Value object errors
# ---------------------------------------------------------------------------

class InvalidEmailError(ValidationError):
    def __init__(self):
        super().__init__("invalid email format")


class PasswordTooShortError(ValidationError):
    def __init__(self, min_length: int):
        self.min_length = min_length
        super().__init__(f"password must be at least {min_length} characters long")


class PasswordTooWeakError(ValidationError):
    def __init__(self):
        super().__init__(
            "password is too weak: it must contain an upper-case letter, "
            "a lower-case letter and a digit"
        )


class PasswordHashError(InternalServiceError):
    def __init__(self):
        super().__init__("failed to hash password")


class PasswordMismatchError(UnauthorizedError):
    def __init__(self):
        super().__init__("password does not match")


# ---------------------------------------------------------------------------
# Authentication errors
# ---------------------------------------------------------------------------

class InvalidCredentialsError(UnauthorizedError):
    """
    Raised when login credentials are incorrect.

    Used for both "unknown username" and "wrong password" so that callers
    cannot enumerate registered usernames.
    """

    def __init__(self):
        super().__init__("invalid username or password")


class InvalidTokenError(UnauthorizedError):
    def __init__(self, detail: str = "invalid token"):
        super().__init__(detail)


class MalformedTokenError(InvalidTokenError):
    def __init__(self, detail: str = "malformed token"):
        super().__init__(detail)


class ExpiredTokenError(InvalidTokenError):
    def __init__(self):
        super().__init__("token has expired")


class BadSignatureError(InvalidTokenError):
    def __init__(self):
        super().__init__("token signature is invalid")


# ---------------------------------------------------------------------------
# User errors
# ---------------------------------------------------------------------------

class UserNotActiveError(ForbiddenError):
    def __init__(self, username: str):
        self.username = username
        super().__init__("user is not active")


class UserNotFoundError(NotFoundError):
    """Raised when a requested user does not exist or has been deleted."""

    def __init__(self, key: object = None):
        self.key = key
        if key is None:
            super().__init__("user not found")
        else:
            super().__init__(f"user {key} not found")


class UsernameAlreadyExistsError(ConflictError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"username {username} already exists")


class EmailAlreadyExistsError(ConflictError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"email {email} already exists")


class RepositoryError(InternalServiceError):
    """Storage failure, distinct from a user simply not being found."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def error_body(code: int, message: str, data: object = None) -> dict:
    return {"code": code, "message": message, "data": data}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Every error, whether raised by our own layers, by FastAPI's request
    validation or by Starlette routing (404/405), is rendered in the same
    {"code", "message", "data"} envelope.

    This is called once from create_app() in main.py.
    """

    @app.exception_handler(UserServiceError)
    async def user_service_error_handler(
        request: Request, exc: UserServiceError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc.detail,
                exc_info=exc,
            )
            message = INTERNAL_ERROR_MESSAGE
        else:
            message = exc.detail

        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Only location and message: the raw error context may hold
        # non-serializable objects and echoes the submitted input.
        errors = [
            {"loc": [str(part) for part in err["loc"]], "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                status.HTTP_400_BAD_REQUEST, "validation error", {"errors": errors}
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )
