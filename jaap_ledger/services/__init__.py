"""Services package."""

from jaap_ledger.services.storage import (
    AuditStorageInterface,
    LedgerStorageInterface,
    LedgerStore,
    MilestoneStorageInterface,
    SchemaVersionError,
    SettingsStorageInterface,
    StoreConnectionError,
    StoreIOError,
    create_json_store,
    create_memory_store,
    create_sheets_store,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "LedgerStore",
    "MilestoneStorageInterface",
    "SchemaVersionError",
    "SettingsStorageInterface",
    "StoreConnectionError",
    "StoreIOError",
    "create_json_store",
    "create_memory_store",
    "create_sheets_store",
]
