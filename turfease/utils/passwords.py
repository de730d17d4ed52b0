"""Password and token hashing utilities."""
from __future__ import annotations

import hashlib
import secrets
import string

import bcrypt

MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(ValueError):
    """Raised when a password fails the length policy."""


def validate_password_strength(password: str) -> None:
    """Require at least eight characters.

    Raises:
        PasswordValidationError: If the password is too short.
    """
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )


def hash_password(password: str) -> str:
    """Hash a password using bcrypt (salt embedded in the result)."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


def generate_random_password(length: int = 24) -> str:
    """Random password for accounts that sign in through a federated provider."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_numeric_code(length: int) -> str:
    """Fixed-width numeric one-time code; leading zeros are kept."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def hash_token(token: str) -> str:
    """SHA-256 digest used for refresh and password reset tokens at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
