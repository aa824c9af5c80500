"""
Value objects for the User aggregate.

Email and Password are immutable and compared by value. Both are only
constructed through their factory classmethods so that an instance always
satisfies its rules:

  - Email.create() trims and lower-cases the raw string before validating it,
    so "  USER@Example.COM " and "user@example.com" are the same Email.
  - Password holds a one-way hash and nothing else. Password.create() checks
    length and strength before hashing; Password.from_hash() wraps a hash
    loaded from storage without re-validating it.
"""

import re
from dataclasses import dataclass, field

from user_service.exceptions import (
    InvalidEmailError,
    PasswordHashError,
    PasswordMismatchError,
    PasswordTooShortError,
    PasswordTooWeakError,
)
from user_service.security import pwd_context

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

PASSWORD_MIN_LENGTH = 8


@dataclass(frozen=True)
class Email:
    value: str

    @classmethod
    def create(cls, raw: str) -> "Email":
        normalized = raw.strip().lower()
        if not EMAIL_PATTERN.fullmatch(normalized):
            raise InvalidEmailError()
        return cls(normalized)

    def __str__(self) -> str:
        return self.value


def is_strong_password(plaintext: str) -> bool:
    """True when the password has an upper-case letter, a lower-case letter and a digit."""
    has_upper = has_lower = has_digit = False
    for char in plaintext:
        if char.isupper():
            has_upper = True
        elif char.islower():
            has_lower = True
        elif char.isdigit():
            has_digit = True
    return has_upper and has_lower and has_digit


@dataclass(frozen=True)
class Password:
    """
    A password, held only as its Argon2 hash.

    The hash is excluded from repr so it never ends up in logs or tracebacks.
    """

    hash: str = field(repr=False)

    @classmethod
    def create(cls, plaintext: str) -> "Password":
        """
        Validate a plaintext password and hash it.

        Raises:
            PasswordTooShortError: Fewer than 8 characters.
            PasswordTooWeakError: Missing an upper-case letter, a lower-case
                letter or a digit.
            PasswordHashError: The hashing backend failed.
        """
        if len(plaintext) < PASSWORD_MIN_LENGTH:
            raise PasswordTooShortError(PASSWORD_MIN_LENGTH)
        if not is_strong_password(plaintext):
            raise PasswordTooWeakError()

        try:
            hashed = pwd_context.hash(plaintext)
        except (ValueError, TypeError) as exc:
            raise PasswordHashError() from exc
        return cls(hashed)

    @classmethod
    def from_hash(cls, hashed: str) -> "Password":
        return cls(hashed)

    def verify(self, plaintext: str) -> None:
        """
        Check a plaintext password against the stored hash.

        Raises:
            PasswordMismatchError: The password is wrong, or the stored hash
                cannot be read by any configured scheme.
        """
        try:
            matches = pwd_context.verify(plaintext, self.hash)
        except ValueError:
            # passlib raises ValueError (UnknownHashError) for unreadable hashes
            matches = False
        if not matches:
            raise PasswordMismatchError()
