"""
Shared fixtures.

Every test runs against a fresh in-memory store and a fixed "today"
so edit-window and year checks are deterministic.
"""

from datetime import date

import pytest

from jaap_ledger.audit import AuditLogger
from jaap_ledger.config import AppSettings
from jaap_ledger.models import LedgerEntry
from jaap_ledger.orchestrator import LedgerService
from jaap_ledger.services.storage import (
    InMemoryLedgerStorage,
    LedgerStore,
    StoreIOError,
    create_memory_store,
)


TODAY = date(2024, 3, 10)


def entry(iso_date: str, count: int, notes: str = "") -> LedgerEntry:
    return LedgerEntry(entry_date=date.fromisoformat(iso_date), jaap_count=count, notes=notes)


class BrokenLedgerStorage(InMemoryLedgerStorage):
    """Ledger collection whose writes always fail."""

    async def put_entry(self, entry: LedgerEntry) -> bool:
        raise StoreIOError("quota exceeded")


class UnreadableLedgerStorage(InMemoryLedgerStorage):
    """Ledger collection whose reads always fail."""

    async def list_entries(self) -> list[LedgerEntry]:
        raise StoreIOError("storage unavailable")

    async def list_entries_ordered(self, descending: bool = False) -> list[LedgerEntry]:
        raise StoreIOError("storage unavailable")


@pytest.fixture
def store() -> LedgerStore:
    return create_memory_store()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(edit_window_days=7, audit_enabled=True)


@pytest.fixture
def service(store, app_settings) -> LedgerService:
    return LedgerService(
        store=store,
        audit_logger=AuditLogger(store.audit),
        app_settings=app_settings,
        today=lambda: TODAY,
    )


def make_service(store: LedgerStore, app_settings: AppSettings) -> LedgerService:
    return LedgerService(
        store=store,
        audit_logger=AuditLogger(store.audit),
        app_settings=app_settings,
        today=lambda: TODAY,
    )
