"""
Security utilities: password hashing and JWT bearer tokens.

This module centralizes all cryptographic operations so they're easy to
audit and update. Two concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - Argon2id is memory-hard and time-hard, with a random salt per hash
   - passlib's CryptContext does the hashing and the constant-time
     verification; the Password value object is the only caller

2. JWT TOKENS (JSON Web Tokens)
   - After login, the user receives a signed JWT carrying their id,
     username and role
   - The token is signed with the shared JWT_SECRET using HS256
   - Tokens expire after JWT_EXPIRE_HOURS (default: 24)
   - The server is stateless: a token is valid exactly when its signature,
     issuer and expiry check out. Logout is the client discarding it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from passlib.context import CryptContext

from user_service.config import Settings
from user_service.exceptions import (
    BadSignatureError,
    ExpiredTokenError,
    MalformedTokenError,
)


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# If we ever need to migrate to a future scheme, passlib handles the
# transition: old hashes still verify with their original scheme and new
# passwords use the new one ("deprecated='auto'").
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------

_REQUIRED_CLAIMS = ("user_id", "username", "role", "exp", "iss", "sub")


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a bearer token."""

    user_id: int
    username: str
    role: str
    expires_at: int
    issuer: str
    subject: str


class TokenIssuer:
    """
    Signs and verifies bearer tokens.

    Built once from settings in create_app() and shared by the login use
    case (issue) and the auth dependency (verify).
    """

    def __init__(
        self,
        secret: str,
        expire_hours: int = 24,
        issuer: str = "user-service",
        algorithm: str = "HS256",
    ):
        self._secret = secret
        self._expire_hours = expire_hours
        self._issuer = issuer
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.JWT_SECRET,
            expire_hours=settings.JWT_EXPIRE_HOURS,
            issuer=settings.JWT_ISSUER,
            algorithm=settings.JWT_ALGORITHM,
        )

    def issue(
        self,
        user_id: int,
        username: str,
        role: str,
        expires_delta: timedelta | None = None,
    ) -> tuple[str, int]:
        """
        Create a signed token for a user.

        Args:
            user_id: The user's surrogate id (also used as "sub").
            username: The user's username.
            role: The user's role ("user" or "admin").
            expires_delta: Optional custom lifetime. Defaults to
                           JWT_EXPIRE_HOURS from settings.

        Returns:
            Tuple of (encoded token, expiry as Unix seconds).
        """
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(hours=self._expire_hours)
        expires_at = int((now + expires_delta).timestamp())

        payload = {
            "user_id": user_id,
            "username": username,
            "role": role,
            "exp": expires_at,
            "iat": int(now.timestamp()),
            "iss": self._issuer,
            "sub": str(user_id),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return token, expires_at

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            MalformedTokenError: The token is not a JWT, carries the wrong
                issuer, or lacks the user claims.
            BadSignatureError: The signature does not match our secret.
            ExpiredTokenError: The signature is valid but "exp" has passed.
        """
        # Parse without verifying first, so a structurally broken token is
        # told apart from a well-formed one with a bad signature.
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError:
            raise MalformedTokenError()

        missing = [claim for claim in _REQUIRED_CLAIMS if claim not in unverified]
        if missing:
            raise MalformedTokenError(f"malformed token: missing {', '.join(missing)}")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
            )
        except ExpiredSignatureError:
            raise ExpiredTokenError()
        except JWTClaimsError as exc:
            raise MalformedTokenError(f"malformed token: {exc}")
        except JWTError:
            raise BadSignatureError()

        user_id = payload["user_id"]
        if (
            not isinstance(user_id, int)
            or isinstance(user_id, bool)
            or not isinstance(payload["username"], str)
            or not isinstance(payload["role"], str)
        ):
            raise MalformedTokenError("malformed token: bad user claims")

        return TokenClaims(
            user_id=user_id,
            username=payload["username"],
            role=payload["role"],
            expires_at=payload["exp"],
            issuer=payload["iss"],
            subject=payload["sub"],
        )
