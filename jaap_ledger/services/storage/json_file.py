"""
JSON Document Storage Implementation

DESIGN DECISION: The default store is a single JSON document on local disk:

    {
      "schema_version": 1,
      "ledger":     {"2024-02-01": {"date": "2024-02-01", "jaap_count": 108, ...}},
      "milestones": {"10000000": {"milestone": 10000000, "date": "2024-02-01"}},
      "settings":   {"baseline": 2500000},
      "audit":      [[...audit row...], ...]
    }

TRADEOFFS:
- The whole document is re-read and re-written on every operation
  (a personal ledger is a few thousand rows at most)
- Writes go to a temp file first and are swapped in with os.replace,
  so a crash never leaves a half-written document
- Exactly one schema version is understood; anything else is refused
"""

import json
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Optional

from jaap_ledger.models.audit import AuditEvent
from jaap_ledger.models.ledger import (
    SCHEMA_VERSION,
    LedgerEntry,
    MilestoneRecord,
)
from jaap_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    LedgerStore,
    MilestoneStorageInterface,
    SchemaVersionError,
    SettingsStorageInterface,
    StoreIOError,
)


def _empty_document() -> dict:
    return {
        "schema_version": SCHEMA_VERSION,
        "ledger": {},
        "milestones": {},
        "settings": {},
        "audit": [],
    }


class JsonDocumentFile:
    """
    Low-level access to the JSON document.

    Every collection wrapper shares one of these.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict:
        """Read the document, or an empty one if the file doesn't exist yet."""
        if not self._path.exists():
            return _empty_document()
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreIOError(f"Failed to read {self._path}: {e}")

        if not isinstance(data, dict):
            raise StoreIOError(f"Corrupted ledger document: {self._path}")

        version = data.get("schema_version")
        if version != SCHEMA_VERSION:
            raise SchemaVersionError(
                f"Unsupported schema version {version!r} in {self._path} "
                f"(expected {SCHEMA_VERSION})"
            )

        for section, default in _empty_document().items():
            data.setdefault(section, default)
            if not isinstance(data[section], type(default)):
                raise StoreIOError(
                    f"Corrupted ledger document: section {section!r} "
                    f"is a {type(data[section]).__name__}"
                )
        return data

    def save(self, data: dict) -> None:
        """Atomically replace the document on disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StoreIOError(f"Failed to write {self._path}: {e}")

    def read_section(self, section: str) -> Any:
        return self.load()[section]

    def update_section(self, section: str, mutate) -> Any:
        """
        Load, apply mutate(section_value) and save.

        Returns whatever mutate returns.
        """
        data = self.load()
        result = mutate(data[section])
        self.save(data)
        return result


class JsonLedgerStorage(LedgerStorageInterface):

    def __init__(self, document: JsonDocumentFile):
        self._doc = document

    async def get_entry(self, entry_date: date) -> Optional[LedgerEntry]:
        raw = self._doc.read_section("ledger").get(entry_date.isoformat())
        return self._parse(raw) if raw else None

    async def put_entry(self, entry: LedgerEntry) -> bool:
        def mutate(ledger: dict) -> bool:
            ledger[entry.key] = entry.to_document()
            return True

        return self._doc.update_section("ledger", mutate)

    async def list_entries(self) -> list[LedgerEntry]:
        return [self._parse(raw) for raw in self._doc.read_section("ledger").values()]

    async def list_entries_ordered(self, descending: bool = False) -> list[LedgerEntry]:
        ledger = self._doc.read_section("ledger")
        # ISO date keys sort chronologically
        keys = sorted(ledger.keys(), reverse=descending)
        return [self._parse(ledger[k]) for k in keys]

    def _parse(self, raw: dict) -> LedgerEntry:
        try:
            return LedgerEntry.from_document(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreIOError(f"Corrupted ledger entry {raw!r}: {e}")


class JsonMilestoneStorage(MilestoneStorageInterface):

    def __init__(self, document: JsonDocumentFile):
        self._doc = document

    async def get_milestone(self, milestone: int) -> Optional[MilestoneRecord]:
        raw = self._doc.read_section("milestones").get(str(milestone))
        return self._parse(raw) if raw else None

    async def put_milestone(self, record: MilestoneRecord) -> bool:
        def mutate(milestones: dict) -> bool:
            milestones[str(record.milestone)] = record.to_document()
            return True

        return self._doc.update_section("milestones", mutate)

    async def add_milestone_if_absent(self, record: MilestoneRecord) -> bool:
        def mutate(milestones: dict) -> bool:
            key = str(record.milestone)
            if key in milestones:
                return False
            milestones[key] = record.to_document()
            return True

        return self._doc.update_section("milestones", mutate)

    async def list_milestones(self) -> list[MilestoneRecord]:
        return [self._parse(raw) for raw in self._doc.read_section("milestones").values()]

    async def list_milestones_ordered(self, descending: bool = False) -> list[MilestoneRecord]:
        # JSON object keys are strings; order numerically
        records = await self.list_milestones()
        return sorted(records, key=lambda m: m.milestone, reverse=descending)

    def _parse(self, raw: dict) -> MilestoneRecord:
        try:
            return MilestoneRecord.from_document(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreIOError(f"Corrupted milestone record {raw!r}: {e}")


class JsonSettingsStorage(SettingsStorageInterface):

    def __init__(self, document: JsonDocumentFile):
        self._doc = document

    async def get_setting(self, key: str) -> Optional[Any]:
        return self._doc.read_section("settings").get(key)

    async def put_setting(self, key: str, value: Any) -> bool:
        def mutate(settings: dict) -> bool:
            settings[key] = value
            return True

        return self._doc.update_section("settings", mutate)

    async def list_settings(self) -> dict[str, Any]:
        return dict(self._doc.read_section("settings"))


class JsonAuditStorage(AuditStorageInterface):
    """Audit rows appended to the same document."""

    def __init__(self, document: JsonDocumentFile):
        self._doc = document

    async def append_event(self, event: AuditEvent) -> bool:
        def mutate(audit: list) -> bool:
            audit.append(event.to_row())
            return True

        return self._doc.update_section("audit", mutate)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = []
        for row in self._doc.read_section("audit"):
            try:
                events.append(AuditEvent.from_row(row))
            except Exception:
                continue  # Skip malformed rows
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_json_store(path: Path, with_audit: bool = True) -> LedgerStore:
    """Store backed by the JSON document at `path` (created on first write)."""
    document = JsonDocumentFile(path)
    return LedgerStore(
        ledger=JsonLedgerStorage(document),
        milestones=JsonMilestoneStorage(document),
        settings=JsonSettingsStorage(document),
        audit=JsonAuditStorage(document) if with_audit else None,
        backend_name="json",
    )
