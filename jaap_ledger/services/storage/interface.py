"""
Abstract Storage Interface

DESIGN DECISION: The ledger lives in three keyed collections, each behind
its own abstract interface:
- ledger      keyed by ISO date
- milestones  keyed by threshold value
- settings    keyed by setting name

This allows us to:
1. Keep a local JSON file as the default store
2. Use in-memory storage for testing
3. Point the same app at Google Sheets
4. Keep the aggregation engine ignorant of where data lives

The interface is intentionally small: get, upsert, list, list ordered.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from jaap_ledger.models.audit import AuditEvent
from jaap_ledger.models.ledger import (
    BASELINE_KEY,
    LedgerEntry,
    MilestoneRecord,
)


class LedgerStorageInterface(ABC):
    """Daily entries, one per date."""

    @abstractmethod
    async def get_entry(self, entry_date: date) -> Optional[LedgerEntry]:
        """
        Retrieve the entry for a date.

        Returns:
            The entry if one was recorded, None otherwise
        """
        pass

    @abstractmethod
    async def put_entry(self, entry: LedgerEntry) -> bool:
        """
        Insert or replace the entry for entry.entry_date.

        Raises:
            StoreIOError: If the write fails
        """
        pass

    @abstractmethod
    async def list_entries(self) -> list[LedgerEntry]:
        """All entries, in no particular order."""
        pass

    @abstractmethod
    async def list_entries_ordered(self, descending: bool = False) -> list[LedgerEntry]:
        """All entries ordered by date."""
        pass


class MilestoneStorageInterface(ABC):
    """
    Milestone records, one per threshold.

    Two write paths exist on purpose:
    - add_milestone_if_absent: used by automatic discovery, never overwrites
    - put_milestone: used by manual seeding, always overwrites
    """

    @abstractmethod
    async def get_milestone(self, milestone: int) -> Optional[MilestoneRecord]:
        pass

    @abstractmethod
    async def put_milestone(self, record: MilestoneRecord) -> bool:
        """Insert or replace the record for record.milestone."""
        pass

    @abstractmethod
    async def add_milestone_if_absent(self, record: MilestoneRecord) -> bool:
        """
        Insert the record only if no record exists for its threshold.

        Returns:
            True if inserted, False if a record was already present
        """
        pass

    @abstractmethod
    async def list_milestones(self) -> list[MilestoneRecord]:
        pass

    @abstractmethod
    async def list_milestones_ordered(self, descending: bool = False) -> list[MilestoneRecord]:
        """All records ordered by threshold."""
        pass


class SettingsStorageInterface(ABC):
    """Named scalar settings. Only the baseline is used today."""

    @abstractmethod
    async def get_setting(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def put_setting(self, key: str, value: Any) -> bool:
        pass

    @abstractmethod
    async def list_settings(self) -> dict[str, Any]:
        pass

    async def get_baseline(self) -> int:
        """Baseline count, 0 when never set."""
        value = await self.get_setting(BASELINE_KEY)
        if value is None:
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            raise StoreIOError(f"Corrupted baseline setting {value!r}")

    async def put_baseline(self, value: int) -> bool:
        return await self.put_setting(BASELINE_KEY, int(value))


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class LedgerStore:
    """
    The three collections (plus the optional audit log) of one backend.

    Passed explicitly to the engine and the service; there is no
    process-wide store handle.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        milestones: MilestoneStorageInterface,
        settings: SettingsStorageInterface,
        audit: Optional[AuditStorageInterface] = None,
        backend_name: str = "custom",
    ):
        self.ledger = ledger
        self.milestones = milestones
        self.settings = settings
        self.audit = audit
        self.backend_name = backend_name


class StoreIOError(Exception):
    """Any failure reading or writing the persistent store."""
    pass


class StoreConnectionError(StoreIOError):
    """Could not reach the storage backend."""
    pass


class SchemaVersionError(StoreIOError):
    """Persisted data was written with an unsupported schema version."""
    pass
