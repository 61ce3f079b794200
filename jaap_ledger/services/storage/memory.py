"""
In-Memory Storage Implementation

Dict-backed collections with the same upsert semantics as the durable
backends. Used by the test suite and by the "memory" backend for
throwaway sessions. Nothing survives the process.
"""

from datetime import date
from typing import Any, Optional

from jaap_ledger.models.audit import AuditEvent
from jaap_ledger.models.ledger import LedgerEntry, MilestoneRecord
from jaap_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    LedgerStore,
    MilestoneStorageInterface,
    SettingsStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):

    def __init__(self):
        self._entries: dict[str, LedgerEntry] = {}

    async def get_entry(self, entry_date: date) -> Optional[LedgerEntry]:
        return self._entries.get(entry_date.isoformat())

    async def put_entry(self, entry: LedgerEntry) -> bool:
        self._entries[entry.key] = entry
        return True

    async def list_entries(self) -> list[LedgerEntry]:
        return list(self._entries.values())

    async def list_entries_ordered(self, descending: bool = False) -> list[LedgerEntry]:
        return sorted(
            self._entries.values(),
            key=lambda e: e.entry_date,
            reverse=descending,
        )


class InMemoryMilestoneStorage(MilestoneStorageInterface):

    def __init__(self):
        self._records: dict[int, MilestoneRecord] = {}

    async def get_milestone(self, milestone: int) -> Optional[MilestoneRecord]:
        return self._records.get(milestone)

    async def put_milestone(self, record: MilestoneRecord) -> bool:
        self._records[record.milestone] = record
        return True

    async def add_milestone_if_absent(self, record: MilestoneRecord) -> bool:
        if record.milestone in self._records:
            return False
        self._records[record.milestone] = record
        return True

    async def list_milestones(self) -> list[MilestoneRecord]:
        return list(self._records.values())

    async def list_milestones_ordered(self, descending: bool = False) -> list[MilestoneRecord]:
        return sorted(
            self._records.values(),
            key=lambda m: m.milestone,
            reverse=descending,
        )


class InMemorySettingsStorage(SettingsStorageInterface):

    def __init__(self):
        self._values: dict[str, Any] = {}

    async def get_setting(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    async def put_setting(self, key: str, value: Any) -> bool:
        self._values[key] = value
        return True

    async def list_settings(self) -> dict[str, Any]:
        return dict(self._values)


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_memory_store() -> LedgerStore:
    """A fresh, empty in-memory store."""
    return LedgerStore(
        ledger=InMemoryLedgerStorage(),
        milestones=InMemoryMilestoneStorage(),
        settings=InMemorySettingsStorage(),
        audit=InMemoryAuditStorage(),
        backend_name="memory",
    )
