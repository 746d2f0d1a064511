"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor defaults to 10 rounds; passwords are truncated to
72 bytes (bcrypt's limit).
"""

import re
from functools import lru_cache

import bcrypt

DEFAULT_ROUNDS = 10

MIN_PASSWORD_LENGTH = 8


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> bytes:
    """Hash of a throwaway password at the given cost, built once per cost."""
    return bcrypt.hashpw(b"dianji-dummy-password", bcrypt.gensalt(rounds=rounds))


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def burn_password_check(password: str, rounds: int = DEFAULT_ROUNDS) -> None:
    """Spend the time of one verification without a real hash.

    Used when a login handle is unknown, so both failure paths cost one
    bcrypt check at the configured work factor.
    """
    bcrypt.checkpw(password.encode("utf-8")[:72], _dummy_hash(rounds))


def password_problem(password: str) -> str | None:
    """Return why a new password is too weak, or None if acceptable.

    Rules: at least 8 characters, at least one letter and one digit.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not re.search(r"[A-Za-z]", password):
        return "Password must contain a letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain a digit"
    return None
