"""Signed session tokens.

Learn: tokens are stateless HS256 JWTs — base64url(header).base64url(claims)
.base64url(HMAC-SHA256 over the first two segments). Possession of an
unexpired token with a valid signature is the whole authority; nothing is
stored server-side.

- Access token: short-lived (15 min), sent on ordinary requests
- Refresh token: long-lived (30 days), only used to mint access tokens

Both carry the same claims: account_id, family_id, role, exp.
"""

import time
from typing import Any, Mapping, Optional

import jwt

ALGORITHM = "HS256"

ACCESS_TOKEN_TTL = 15 * 60
REFRESH_TOKEN_TTL = 30 * 24 * 60 * 60

REQUIRED_CLAIMS = ("account_id", "family_id", "role", "exp")


def _now(now: Optional[float]) -> int:
    return int(time.time() if now is None else now)


def issue_token(
    claims: Mapping[str, Any],
    secret: str,
    ttl_seconds: int,
    now: Optional[float] = None,
) -> str:
    """Sign claims with an expiry of now + ttl_seconds."""
    payload = dict(claims)
    payload["exp"] = _now(now) + ttl_seconds
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(
    token: str,
    secret: str,
    now: Optional[float] = None,
) -> Optional[dict[str, Any]]:
    """Return the claims of a valid token, None otherwise.

    Never raises. A token is rejected when it is not three segments, the
    signature does not match, the payload is not a JSON object with the
    expected claims, or exp <= now.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        return None
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": False, "require": ["exp"]},
        )
    except jwt.InvalidTokenError:
        return None

    if any(key not in payload for key in REQUIRED_CLAIMS):
        return None
    exp = payload["exp"]
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    if exp <= _now(now):
        return None
    return payload


def issue_access_token(
    claims: Mapping[str, Any],
    secret: str,
    ttl_seconds: int = ACCESS_TOKEN_TTL,
    now: Optional[float] = None,
) -> str:
    return issue_token(claims, secret, ttl_seconds, now=now)


def issue_refresh_token(
    claims: Mapping[str, Any],
    secret: str,
    ttl_seconds: int = REFRESH_TOKEN_TTL,
    now: Optional[float] = None,
) -> str:
    return issue_token(claims, secret, ttl_seconds, now=now)
