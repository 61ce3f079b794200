"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the three
ledger collections. A local JSON document is the default backend; an
in-memory store serves tests and Google Sheets serves shared setups.
"""

from jaap_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    LedgerStore,
    MilestoneStorageInterface,
    SchemaVersionError,
    SettingsStorageInterface,
    StoreConnectionError,
    StoreIOError,
)
from jaap_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryMilestoneStorage,
    InMemorySettingsStorage,
    create_memory_store,
)
from jaap_ledger.services.storage.json_file import (
    JsonDocumentFile,
    create_json_store,
)
from jaap_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    create_sheets_store,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "LedgerStore",
    "MilestoneStorageInterface",
    "SettingsStorageInterface",
    # Exceptions
    "SchemaVersionError",
    "StoreConnectionError",
    "StoreIOError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "InMemoryMilestoneStorage",
    "InMemorySettingsStorage",
    "create_memory_store",
    # JSON document implementation
    "JsonDocumentFile",
    "create_json_store",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "create_sheets_store",
]
