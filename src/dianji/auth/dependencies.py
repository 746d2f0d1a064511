"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current principal from the request.

Token sources, in order:
1. Authorization: Bearer <token> header (API clients)
2. access_token cookie (set by login/register/join, httpOnly)

get_principal_optional() is the soft variant (returns None on failure).
get_principal() wraps the same lookup and raises 401 if unauthenticated.
require_primary() additionally demands the family-creator ("child") role.
"""

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Request

from dianji.auth.jwt import verify_token
from dianji.config import Settings
from dianji.db.models import ROLE_PRIMARY, Account
from dianji.dependencies import get_credential_store, get_settings
from dianji.errors import (
    AccountNotFoundError,
    AuthenticationRequiredError,
    ForbiddenError,
    InvalidTokenError,
)
from dianji.stores.base import CredentialStore

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: stored account plus the verified claims.

    Resolved once per request (FastAPI caches dependencies within a
    request) and mirrored on request.state.principal.
    """

    account: Account
    claims: dict[str, Any]

    @property
    def is_primary(self) -> bool:
        return self.account.role == ROLE_PRIMARY


def extract_access_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(ACCESS_COOKIE) or None


async def _resolve(
    request: Request, settings: Settings, store: CredentialStore
) -> Principal:
    """Raise the matching 401 error, or return the principal."""
    token = extract_access_token(request)
    if token is None:
        raise AuthenticationRequiredError()

    claims = verify_token(token, settings.jwt_secret)
    if claims is None:
        raise InvalidTokenError()

    account = await store.find_account_by_id(str(claims["account_id"]))
    if account is None:
        raise AccountNotFoundError()

    principal = Principal(account=account, claims=claims)
    request.state.principal = principal
    return principal


async def get_principal(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: CredentialStore = Depends(get_credential_store),
) -> Principal:
    """Current principal (required — 401 if no valid token)."""
    return await _resolve(request, settings, store)


async def get_principal_optional(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: CredentialStore = Depends(get_credential_store),
) -> Optional[Principal]:
    """Current principal, or None. Never rejects on token problems.

    Credential-store outages still propagate; only "not authenticated"
    outcomes are folded into None.
    """
    try:
        return await _resolve(request, settings, store)
    except (InvalidTokenError, AccountNotFoundError):
        return None


async def require_primary(principal: Principal = Depends(get_principal)) -> Principal:
    """Current principal, which must have created the family."""
    if not principal.is_primary:
        raise ForbiddenError("Only the family creator can invite members")
    return principal
