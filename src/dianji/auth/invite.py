"""Invite codes and identifiers.

Invite codes are 8 characters drawn from an alphabet without the easily
confused 0/O and 1/I, so they survive being read aloud over a phone call.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

INVITE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def invite_expiry(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=days)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def invite_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True once the expiry instant has passed. A missing expiry never expires."""
    if expires_at is None:
        return False
    return as_utc(expires_at) <= (now or utcnow())
