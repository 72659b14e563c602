"""In-memory repositories used by the API and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class StorageUnavailableError(RuntimeError):
    """Raised when the backing store cannot serve a write."""


@dataclass(slots=True)
class UserRecord:
    id: int
    email: str
    name: str | None
    password_hash: str
    created_at: datetime


@dataclass(slots=True)
class HoldingRecord:
    id: int
    kind: str
    owner_id: int
    data: dict[str, Any]
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class InMemoryStore:
    """Simple, deterministic persistence layer keyed by integer ids."""

    users: dict[int, UserRecord] = field(default_factory=dict)
    holdings: dict[str, dict[int, HoldingRecord]] = field(default_factory=dict)
    next_holding_id: int = 1
    user_write_count: int = 0
    holding_write_count: int = 0
    user_write_failure_message: str | None = None

    def get_user(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    def upsert_user(self, user_id: int, defaults: dict[str, Any]) -> UserRecord:
        """Create the user from ``defaults`` when absent; an existing row is left untouched."""
        existing = self.users.get(user_id)
        if existing is not None:
            return existing

        if self.user_write_failure_message is not None:
            raise StorageUnavailableError(self.user_write_failure_message)

        user = UserRecord(
            id=user_id,
            email=defaults["email"],
            name=defaults.get("name"),
            password_hash=defaults["password_hash"],
            created_at=datetime.now(UTC),
        )
        self.users[user_id] = user
        self.user_write_count += 1
        return user

    def create_holding(self, kind: str, owner_id: int, data: dict[str, Any]) -> HoldingRecord:
        if owner_id not in self.users:
            raise KeyError(f"unknown owner {owner_id}")

        now = datetime.now(UTC)
        record = HoldingRecord(
            id=self.next_holding_id,
            kind=kind,
            owner_id=owner_id,
            data=dict(data),
            created_at=now,
            updated_at=now,
        )
        self.next_holding_id += 1
        self.holdings.setdefault(kind, {})[record.id] = record
        self.holding_write_count += 1
        return record

    def list_holdings(
        self,
        kind: str,
        owner_id: int,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HoldingRecord]:
        records = [record for record in self.holdings.get(kind, {}).values() if record.owner_id == owner_id]
        records.sort(key=lambda record: (record.created_at, record.id), reverse=True)
        if limit is None:
            return records[offset:]
        return records[offset : offset + limit]

    def count_holdings(self, kind: str, owner_id: int) -> int:
        return sum(1 for record in self.holdings.get(kind, {}).values() if record.owner_id == owner_id)

    def get_holding_for_owner(self, kind: str, owner_id: int, holding_id: int) -> HoldingRecord | None:
        record = self.holdings.get(kind, {}).get(holding_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def update_holding(self, record: HoldingRecord, changes: dict[str, Any]) -> HoldingRecord:
        record.data.update(changes)
        record.updated_at = datetime.now(UTC)
        self.holding_write_count += 1
        return record

    def delete_holding_for_owner(self, kind: str, owner_id: int, holding_id: int) -> bool:
        record = self.get_holding_for_owner(kind, owner_id, holding_id)
        if record is None:
            return False
        del self.holdings[kind][holding_id]
        self.holding_write_count += 1
        return True
