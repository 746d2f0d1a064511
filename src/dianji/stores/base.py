"""Store contracts the auth core depends on.

Every operation is atomic on its own; nothing here spans records, so the
service layer owns the ordering of multi-write flows such as registration.
"""

from datetime import datetime
from typing import Any, Optional, Protocol

from dianji.db.models import Account, Family


class CredentialStore(Protocol):
    """Accounts and families, looked up by handle, id or invite code."""

    async def find_account_by_handle(self, handle: str) -> Optional[Account]:
        """Account whose email OR phone equals handle."""
        ...

    async def find_account_by_id(self, account_id: str) -> Optional[Account]: ...

    async def find_family_by_id(self, family_id: str) -> Optional[Family]: ...

    async def find_family_by_invite_code(self, code: str) -> Optional[Family]: ...

    async def count_family_members(self, family_id: str) -> int: ...

    async def list_family_members(self, family_id: str) -> list[Account]: ...

    async def insert_family(self, family: Family) -> None: ...

    async def insert_account(self, account: Account) -> None:
        """Raises DuplicateHandleError when the email or phone is taken."""
        ...

    async def update_family_invite(
        self, family_id: str, code: str, expires_at: datetime
    ) -> None: ...

    async def delete_family(self, family_id: str) -> None: ...


class CounterStore(Protocol):
    """Best-effort key/value store with per-key expiry."""

    async def get(self, key: str) -> Optional[dict[str, Any]]: ...

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None: ...
