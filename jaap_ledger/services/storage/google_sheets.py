"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The ledger can be viewed and printed straight from the spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions (each collection is its own worksheet)
- Limited query capabilities (we sort and filter in Python)
- Upserts scan the key column to find the row to overwrite

The implementation follows the abstract interface, so the aggregation
engine is unaware it is talking to a spreadsheet.
"""

from datetime import date
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from jaap_ledger.config import GoogleSheetsSettings, get_settings
from jaap_ledger.models.audit import AuditEvent
from jaap_ledger.models.ledger import LedgerEntry, MilestoneRecord
from jaap_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    LedgerStore,
    MilestoneStorageInterface,
    SettingsStorageInterface,
    StoreConnectionError,
    StoreIOError,
)


# Column mappings; the first column of each sheet is the primary key
LEDGER_COLUMNS = ["date", "jaap_count", "notes", "year"]
MILESTONE_COLUMNS = ["milestone", "date"]
SETTINGS_COLUMNS = ["key", "value"]
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_key",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.ledger_sheet_name, LEDGER_COLUMNS)

    def get_milestones_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.milestones_sheet_name, MILESTONE_COLUMNS)

    def get_settings_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.settings_sheet_name, SETTINGS_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def _data_rows(sheet: gspread.Worksheet) -> list[list]:
    """All non-empty rows below the header."""
    return [row for row in sheet.get_all_values()[1:] if row and row[0]]


def _upsert_row(sheet: gspread.Worksheet, key: str, row: list) -> None:
    """Overwrite the row whose first cell equals key, or append one."""
    all_rows = sheet.get_all_values()
    for idx, existing in enumerate(all_rows[1:], start=2):  # Row 1 is the header
        if existing and existing[0] == key:
            for col_idx, value in enumerate(row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return
    sheet.append_row(row, value_input_option="RAW")


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """One entry per row; the redundant year column is written, never read."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _entry_to_row(self, entry: LedgerEntry) -> list:
        return [entry.key, str(entry.jaap_count), entry.notes, str(entry.year)]

    def _row_to_entry(self, row: list) -> LedgerEntry:
        return LedgerEntry(
            entry_date=date.fromisoformat(_safe_get(row, 0)),
            jaap_count=int(_safe_get(row, 1, "0")),
            notes=_safe_get(row, 2),
        )

    async def get_entry(self, entry_date: date) -> Optional[LedgerEntry]:
        try:
            key = entry_date.isoformat()
            for row in _data_rows(self._client.get_ledger_sheet()):
                if row[0] == key:
                    return self._row_to_entry(row)
            return None
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to get entry: {e}")

    @_retry
    async def put_entry(self, entry: LedgerEntry) -> bool:
        try:
            sheet = self._client.get_ledger_sheet()
            _upsert_row(sheet, entry.key, self._entry_to_row(entry))
            return True
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to save entry: {e}")

    async def list_entries(self) -> list[LedgerEntry]:
        try:
            return [
                self._row_to_entry(row)
                for row in _data_rows(self._client.get_ledger_sheet())
            ]
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to list entries: {e}")

    async def list_entries_ordered(self, descending: bool = False) -> list[LedgerEntry]:
        entries = await self.list_entries()
        return sorted(entries, key=lambda e: e.entry_date, reverse=descending)


class GoogleSheetsMilestoneStorage(MilestoneStorageInterface):

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_record(self, row: list) -> MilestoneRecord:
        return MilestoneRecord(
            milestone=int(_safe_get(row, 0)),
            reached_on=date.fromisoformat(_safe_get(row, 1)),
        )

    def _record_to_row(self, record: MilestoneRecord) -> list:
        return [str(record.milestone), record.reached_on.isoformat()]

    async def get_milestone(self, milestone: int) -> Optional[MilestoneRecord]:
        for record in await self.list_milestones():
            if record.milestone == milestone:
                return record
        return None

    @_retry
    async def put_milestone(self, record: MilestoneRecord) -> bool:
        try:
            sheet = self._client.get_milestones_sheet()
            _upsert_row(sheet, str(record.milestone), self._record_to_row(record))
            return True
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to save milestone: {e}")

    @_retry
    async def add_milestone_if_absent(self, record: MilestoneRecord) -> bool:
        try:
            sheet = self._client.get_milestones_sheet()
            key = str(record.milestone)
            if any(row[0] == key for row in _data_rows(sheet)):
                return False
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return True
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to add milestone: {e}")

    async def list_milestones(self) -> list[MilestoneRecord]:
        try:
            return [
                self._row_to_record(row)
                for row in _data_rows(self._client.get_milestones_sheet())
            ]
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to list milestones: {e}")

    async def list_milestones_ordered(self, descending: bool = False) -> list[MilestoneRecord]:
        records = await self.list_milestones()
        return sorted(records, key=lambda m: m.milestone, reverse=descending)


class GoogleSheetsSettingsStorage(SettingsStorageInterface):
    """Settings are stored as text; numeric values are read back as int."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _decode(raw: str) -> Any:
        try:
            return int(raw)
        except ValueError:
            return raw

    async def get_setting(self, key: str) -> Optional[Any]:
        return (await self.list_settings()).get(key)

    @_retry
    async def put_setting(self, key: str, value: Any) -> bool:
        try:
            sheet = self._client.get_settings_sheet()
            _upsert_row(sheet, key, [key, str(value)])
            return True
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to save setting: {e}")

    async def list_settings(self) -> dict[str, Any]:
        try:
            return {
                row[0]: self._decode(_safe_get(row, 1))
                for row in _data_rows(self._client.get_settings_sheet())
            }
        except StoreIOError:
            raise
        except Exception as e:
            raise StoreIOError(f"Failed to list settings: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_retry
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StoreIOError(f"Failed to write audit event: {e}")

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            events = []
            for row in _data_rows(self._client.get_audit_sheet()):
                try:
                    events.append(AuditEvent.from_row(row))
                except Exception:
                    continue  # Skip malformed rows

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StoreIOError(f"Failed to get audit events: {e}")


def create_sheets_store(client: Optional[GoogleSheetsClient] = None) -> LedgerStore:
    """Store backed by the configured spreadsheet (one worksheet per collection)."""
    client = client or GoogleSheetsClient()
    return LedgerStore(
        ledger=GoogleSheetsLedgerStorage(client),
        milestones=GoogleSheetsMilestoneStorage(client),
        settings=GoogleSheetsSettingsStorage(client),
        audit=GoogleSheetsAuditStorage(client),
        backend_name="sheets",
    )
