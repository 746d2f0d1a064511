"""In-process stores for the "memory" backend and the test suite.

Single event loop, no awaits inside an operation, so each call is atomic
the same way a single SQL statement or Redis command is.
"""

import copy
import time
from datetime import datetime
from typing import Any, Callable, Optional

from dianji.db.models import Account, Family
from dianji.errors import DuplicateHandleError


class MemoryCredentialStore:
    """CredentialStore kept in dicts. Enforces the same unique handles as SQL."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.families: dict[str, Family] = {}

    async def find_account_by_handle(self, handle: str) -> Optional[Account]:
        for account in self.accounts.values():
            if handle in (account.email, account.phone):
                return account
        return None

    async def find_account_by_id(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    async def insert_account(self, account: Account) -> None:
        for existing in self.accounts.values():
            if account.email and existing.email == account.email:
                raise DuplicateHandleError()
            if account.phone and existing.phone == account.phone:
                raise DuplicateHandleError()
        self.accounts[account.id] = account

    async def find_family_by_id(self, family_id: str) -> Optional[Family]:
        return self.families.get(family_id)

    async def find_family_by_invite_code(self, code: str) -> Optional[Family]:
        for family in self.families.values():
            if family.invite_code == code:
                return family
        return None

    async def count_family_members(self, family_id: str) -> int:
        return sum(1 for a in self.accounts.values() if a.family_id == family_id)

    async def list_family_members(self, family_id: str) -> list[Account]:
        members = [a for a in self.accounts.values() if a.family_id == family_id]
        return sorted(members, key=lambda a: a.created_at)

    async def insert_family(self, family: Family) -> None:
        self.families[family.id] = family

    async def update_family_invite(
        self, family_id: str, code: str, expires_at: datetime
    ) -> None:
        family = self.families.get(family_id)
        if family is not None:
            family.invite_code = code
            family.invite_expires_at = expires_at

    async def delete_family(self, family_id: str) -> None:
        self.families.pop(family_id, None)
        for account_id in [a.id for a in self.accounts.values() if a.family_id == family_id]:
            del self.accounts[account_id]


class MemoryCounterStore:
    """CounterStore with lazy expiry against an injectable clock."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self._data: dict[str, tuple[dict[str, Any], float]] = {}

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self.clock():
            del self._data[key]
            return None
        return copy.deepcopy(value)

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        self._data[key] = (copy.deepcopy(value), self.clock() + ttl_seconds)
