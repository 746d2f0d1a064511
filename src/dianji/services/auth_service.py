"""Auth service — registration, login, invites, refresh.

Learn: Service layer separates business logic from HTTP routing.
API routes call the service, the service calls a CredentialStore.
Each flow is a short stateless sequence; the only persistent effects are
the family/account inserts and invite-code updates. Tokens are minted
here and handed back to the route, which decides how to deliver them
(response body, cookies).

Flows:
- register → new family (+ invite code) and its "child" account
- join     → "parent" account in an existing family via invite code
- login    → email or phone + password
- refresh  → refresh token → new access token (refresh token not rotated)
- invites  → child fetches/regenerates the code; anyone may preview one
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from dianji.auth.invite import (
    as_utc,
    generate_invite_code,
    invite_expired,
    invite_expiry,
    new_id,
    utcnow,
)
from dianji.auth.jwt import issue_access_token, issue_refresh_token, verify_token
from dianji.auth.password import burn_password_check, hash_password, verify_password
from dianji.config import Settings
from dianji.db.models import ROLE_PRIMARY, ROLE_SECONDARY, Account, Family
from dianji.errors import (
    AccountNotFoundError,
    BadCredentialError,
    DuplicateHandleError,
    FamilyFullError,
    FamilyNotFoundError,
    ForbiddenError,
    InvalidInviteCodeError,
    InvalidTokenError,
    InviteExpiredError,
)
from dianji.stores.base import CredentialStore

logger = structlog.get_logger()

# Same message for unknown handle and wrong password.
LOGIN_FAILED_MESSAGE = "Incorrect account or password"


@dataclass
class AuthResult:
    """Outcome of a flow that authenticates the caller."""

    account: Account
    family: Optional[Family]
    access_token: str
    refresh_token: Optional[str] = None


@dataclass
class InviteInfo:
    code: str
    url: str
    expires_at: datetime


@dataclass
class InvitePreview:
    valid: bool
    family_name: Optional[str] = None
    error: Optional[InvalidInviteCodeError | InviteExpiredError] = None


def token_claims(account: Account) -> dict[str, str]:
    return {"account_id": account.id, "family_id": account.family_id, "role": account.role}


class AuthService:
    """Business logic for accounts, families and sessions."""

    def __init__(
        self,
        store: CredentialStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.settings = settings
        self.clock = clock

    # ─── Tokens ─────────────────────────────────────────

    def _issue_tokens(self, account: Account) -> tuple[str, str]:
        claims = token_claims(account)
        now = self.clock().timestamp()
        access = issue_access_token(
            claims,
            self.settings.jwt_secret,
            ttl_seconds=self.settings.access_token_ttl_seconds,
            now=now,
        )
        refresh = issue_refresh_token(
            claims,
            self.settings.jwt_secret,
            ttl_seconds=self.settings.refresh_token_ttl_seconds,
            now=now,
        )
        return access, refresh

    # ─── Register ───────────────────────────────────────

    async def register(
        self, email: str, password: str, name: str, family_name: str
    ) -> AuthResult:
        """Create a family with a fresh invite code and its first ("child") account."""
        if await self.store.find_account_by_handle(email):
            raise DuplicateHandleError("This email is already registered")

        now = self.clock()
        # Kept as a plain str: a rollback expires the ORM instances
        family_id = new_id()
        family = Family(
            id=family_id,
            name=family_name,
            invite_code=generate_invite_code(),
            invite_expires_at=invite_expiry(self.settings.invite_ttl_days, now),
            created_at=now,
        )
        await self.store.insert_family(family)

        account = Account(
            id=new_id(),
            email=email,
            phone=None,
            password_hash=hash_password(password, rounds=self.settings.bcrypt_rounds),
            name=name,
            role=ROLE_PRIMARY,
            family_id=family_id,
            timezone=self.settings.primary_timezone,
            created_at=now,
        )
        try:
            await self.store.insert_account(account)
        except Exception:
            # Don't leave a family without its creator behind
            logger.warning("auth.register_rollback", family_id=family_id)
            await self.store.delete_family(family_id)
            raise

        access, refresh = self._issue_tokens(account)
        logger.info("auth.registered", account_id=account.id, family_id=family_id)
        return AuthResult(account=account, family=family, access_token=access, refresh_token=refresh)

    # ─── Login ──────────────────────────────────────────

    async def login(self, handle: str, password: str) -> AuthResult:
        """Authenticate by email or phone."""
        account = await self.store.find_account_by_handle(handle)
        if account is None:
            burn_password_check(password, rounds=self.settings.bcrypt_rounds)
            logger.info("auth.login_failed", reason="account_not_found")
            raise AccountNotFoundError(LOGIN_FAILED_MESSAGE)

        if not verify_password(password, account.password_hash):
            logger.info("auth.login_failed", reason="bad_credential", account_id=account.id)
            raise BadCredentialError(LOGIN_FAILED_MESSAGE)

        family = await self.store.find_family_by_id(account.family_id)
        access, refresh = self._issue_tokens(account)
        return AuthResult(account=account, family=family, access_token=access, refresh_token=refresh)

    # ─── Join ───────────────────────────────────────────

    async def _family_for_code(self, code: str) -> Family:
        """Family behind a live invite code, else the matching error."""
        family = await self.store.find_family_by_invite_code(code)
        if family is None:
            raise InvalidInviteCodeError()
        if invite_expired(family.invite_expires_at, self.clock()):
            raise InviteExpiredError()
        return family

    async def join(self, invite_code: str, phone: str, password: str, name: str) -> AuthResult:
        """Add a "parent" account to the family behind invite_code."""
        family = await self._family_for_code(invite_code)

        if await self.store.find_account_by_handle(phone):
            raise DuplicateHandleError("This phone number is already registered")

        max_members = self.settings.family_max_members
        if await self.store.count_family_members(family.id) >= max_members:
            raise FamilyFullError(f"This family already has {max_members} members")

        account = Account(
            id=new_id(),
            email=None,
            phone=phone,
            password_hash=hash_password(password, rounds=self.settings.bcrypt_rounds),
            name=name,
            role=ROLE_SECONDARY,
            family_id=family.id,
            timezone=self.settings.secondary_timezone,
            created_at=self.clock(),
        )
        await self.store.insert_account(account)

        access, refresh = self._issue_tokens(account)
        logger.info("auth.joined", account_id=account.id, family_id=family.id)
        return AuthResult(account=account, family=family, access_token=access, refresh_token=refresh)

    # ─── Invites ────────────────────────────────────────

    async def get_invite(self, account: Account) -> InviteInfo:
        """Current invite for the caller's family, regenerated if absent or expired."""
        if account.role != ROLE_PRIMARY:
            raise ForbiddenError("Only the family creator can invite members")

        family = await self.store.find_family_by_id(account.family_id)
        if family is None:
            raise FamilyNotFoundError()

        code = family.invite_code
        expires_at = family.invite_expires_at
        now = self.clock()
        if not code or expires_at is None or invite_expired(expires_at, now):
            code = generate_invite_code()
            expires_at = invite_expiry(self.settings.invite_ttl_days, now)
            await self.store.update_family_invite(family.id, code, expires_at)
            logger.info("family.invite_regenerated", family_id=family.id)

        url = f"{self.settings.app_url.rstrip('/')}/join/{code}"
        return InviteInfo(code=code, url=url, expires_at=as_utc(expires_at))

    async def validate_invite(self, code: str) -> InvitePreview:
        """Public preview of an invite code. Reveals only the family name."""
        try:
            family = await self._family_for_code(code)
        except (InvalidInviteCodeError, InviteExpiredError) as e:
            return InvitePreview(valid=False, error=e)
        return InvitePreview(valid=True, family_name=family.name)

    # ─── Refresh ────────────────────────────────────────

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Mint a new access token from a refresh token."""
        claims = verify_token(refresh_token, self.settings.jwt_secret, now=self.clock().timestamp())
        if claims is None:
            logger.info("auth.refresh_failed", reason="invalid_token")
            raise InvalidTokenError("Refresh token is invalid or expired")

        account = await self.store.find_account_by_id(str(claims["account_id"]))
        if account is None:
            logger.info("auth.refresh_failed", reason="account_not_found")
            raise AccountNotFoundError()

        access, _ = self._issue_tokens(account)
        return AuthResult(account=account, family=None, access_token=access)

    # ─── Current principal ──────────────────────────────

    async def current_family(self, account: Account) -> Optional[Family]:
        return await self.store.find_family_by_id(account.family_id)

    async def family_overview(self, account: Account) -> tuple[Family, list[Account]]:
        family = await self.store.find_family_by_id(account.family_id)
        if family is None:
            raise FamilyNotFoundError()
        members = await self.store.list_family_members(family.id)
        return family, members
