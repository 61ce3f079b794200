"""
Tests for the storage backends.

The Google Sheets backend is exercised against an in-process fake
worksheet; no network calls are made.
"""

import json
from datetime import date, datetime, timezone

import pytest

from jaap_ledger.models import UNIT, AuditEventBuilder, MilestoneRecord
from jaap_ledger.services.storage import (
    SchemaVersionError,
    StoreIOError,
    create_json_store,
    create_memory_store,
    create_sheets_store,
)
from jaap_ledger.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    LEDGER_COLUMNS,
    MILESTONE_COLUMNS,
    SETTINGS_COLUMNS,
)

from tests.conftest import entry


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header: list[str]):
        self.rows = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row: int, col: int, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)


class FakeSheetsClient:

    def __init__(self):
        self.ledger = FakeWorksheet(LEDGER_COLUMNS)
        self.milestones = FakeWorksheet(MILESTONE_COLUMNS)
        self.settings = FakeWorksheet(SETTINGS_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_ledger_sheet(self):
        return self.ledger

    def get_milestones_sheet(self):
        return self.milestones

    def get_settings_sheet(self):
        return self.settings

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture(params=["memory", "json", "sheets"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return create_memory_store()
    if request.param == "json":
        return create_json_store(tmp_path / "ledger.json")
    return create_sheets_store(client=FakeSheetsClient())


class TestCollectionSemantics:
    """Behaviour every backend shares."""

    @pytest.mark.asyncio
    async def test_entry_upsert_by_date(self, any_store):
        await any_store.ledger.put_entry(entry("2024-01-01", 1, "a"))
        await any_store.ledger.put_entry(entry("2024-01-01", 2, "b"))

        entries = await any_store.ledger.list_entries()
        assert entries == [entry("2024-01-01", 2, "b")]
        assert await any_store.ledger.get_entry(date(2024, 1, 1)) == entries[0]
        assert await any_store.ledger.get_entry(date(2024, 1, 2)) is None

    @pytest.mark.asyncio
    async def test_entries_ordered(self, any_store):
        for iso in ["2024-02-01", "2023-12-31", "2024-01-15"]:
            await any_store.ledger.put_entry(entry(iso, 1))

        ascending = await any_store.ledger.list_entries_ordered()
        descending = await any_store.ledger.list_entries_ordered(descending=True)

        assert [e.key for e in ascending] == ["2023-12-31", "2024-01-15", "2024-02-01"]
        assert [e.key for e in descending] == ["2024-02-01", "2024-01-15", "2023-12-31"]

    @pytest.mark.asyncio
    async def test_add_if_absent_keeps_first(self, any_store):
        first = MilestoneRecord(milestone=UNIT, reached_on=date(2024, 1, 1))
        second = MilestoneRecord(milestone=UNIT, reached_on=date(2024, 6, 1))

        assert await any_store.milestones.add_milestone_if_absent(first) is True
        assert await any_store.milestones.add_milestone_if_absent(second) is False
        assert await any_store.milestones.get_milestone(UNIT) == first

    @pytest.mark.asyncio
    async def test_put_milestone_overwrites(self, any_store):
        await any_store.milestones.add_milestone_if_absent(
            MilestoneRecord(milestone=UNIT, reached_on=date(2024, 1, 1))
        )
        seeded = MilestoneRecord(milestone=UNIT, reached_on=date(2019, 1, 1))
        await any_store.milestones.put_milestone(seeded)

        assert await any_store.milestones.list_milestones() == [seeded]

    @pytest.mark.asyncio
    async def test_milestones_ordered_numerically(self, any_store):
        for crore in (10, 2, 1):
            await any_store.milestones.put_milestone(
                MilestoneRecord(milestone=crore * UNIT, reached_on=date(2024, 1, crore))
            )
        ordered = await any_store.milestones.list_milestones_ordered()
        assert [m.crore for m in ordered] == [1, 2, 10]

    @pytest.mark.asyncio
    async def test_baseline_defaults_to_zero(self, any_store):
        assert await any_store.settings.get_baseline() == 0
        await any_store.settings.put_baseline(2_500_000)
        assert await any_store.settings.get_baseline() == 2_500_000

    @pytest.mark.asyncio
    async def test_audit_newest_first(self, any_store):
        older = AuditEventBuilder.entry_saved("2024-01-01", 1).model_copy(
            update={"timestamp": datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)}
        )
        newer = AuditEventBuilder.entry_saved("2024-01-02", 2).model_copy(
            update={"timestamp": datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)}
        )
        await any_store.audit.append_event(newer)
        await any_store.audit.append_event(older)

        events = await any_store.audit.get_recent_events(limit=1)
        assert [e.event_id for e in events] == [newer.event_id]


class TestJsonDocument:
    """Persistence details of the JSON backend."""

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = create_json_store(path)
        await store.ledger.put_entry(entry("2024-01-01", 108, "first"))
        await store.settings.put_baseline(500)

        reopened = create_json_store(path)
        assert await reopened.ledger.get_entry(date(2024, 1, 1)) == entry("2024-01-01", 108, "first")
        assert await reopened.settings.get_baseline() == 500

    @pytest.mark.asyncio
    async def test_document_layout(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = create_json_store(path)
        await store.ledger.put_entry(entry("2024-01-01", 108))

        data = json.loads(path.read_text())
        assert data["schema_version"] == 1
        assert data["ledger"]["2024-01-01"] == {
            "date": "2024-01-01",
            "jaap_count": 108,
            "notes": "",
            "year": 2024,
        }

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        store = create_json_store(tmp_path / "nested" / "ledger.json")
        assert await store.ledger.list_entries() == []
        assert await store.settings.get_baseline() == 0

    @pytest.mark.asyncio
    async def test_unknown_schema_version_refused(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"schema_version": 2, "ledger": {}}))

        with pytest.raises(SchemaVersionError):
            await create_json_store(path).ledger.list_entries()

    @pytest.mark.asyncio
    async def test_corrupt_file_is_store_error(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json")

        with pytest.raises(StoreIOError):
            await create_json_store(path).ledger.list_entries()

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_store_error(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "schema_version": 1,
            "ledger": {"2024-01-01": {"date": "not-a-date", "jaap_count": 1}},
        }))

        with pytest.raises(StoreIOError):
            await create_json_store(path).ledger.list_entries()

    @pytest.mark.asyncio
    async def test_corrupt_baseline_is_store_error(self, tmp_path):
        """A baseline that isn't a whole number is reported, not crashed on."""
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "schema_version": 1,
            "settings": {"baseline": "12,000"},
        }))

        with pytest.raises(StoreIOError, match="baseline"):
            await create_json_store(path).settings.get_baseline()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("section,value", [
        ("ledger", []),
        ("milestones", "10000000"),
        ("settings", None),
        ("audit", {}),
    ])
    async def test_section_of_wrong_type_is_store_error(self, tmp_path, section, value):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"schema_version": 1, section: value}))

        with pytest.raises(StoreIOError, match=section):
            await create_json_store(path).ledger.list_entries()

    @pytest.mark.asyncio
    async def test_stored_year_ignored(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "schema_version": 1,
            "ledger": {"2024-01-01": {"date": "2024-01-01", "jaap_count": 1, "year": 1999}},
        }))

        entries = await create_json_store(path).ledger.list_entries()
        assert entries[0].year == 2024


class TestSheetsRows:
    """Row layout of the spreadsheet backend."""

    @pytest.mark.asyncio
    async def test_upsert_rewrites_existing_row(self):
        client = FakeSheetsClient()
        store = create_sheets_store(client=client)

        await store.ledger.put_entry(entry("2024-01-01", 1, "a"))
        await store.ledger.put_entry(entry("2024-01-01", 5, "b"))

        assert client.ledger.rows[1:] == [["2024-01-01", "5", "b", "2024"]]

    @pytest.mark.asyncio
    async def test_numeric_settings_read_back_as_int(self):
        client = FakeSheetsClient()
        store = create_sheets_store(client=client)

        await store.settings.put_setting("baseline", 42)
        await store.settings.put_setting("label", "morning")

        assert client.settings.rows[1:] == [["baseline", "42"], ["label", "morning"]]
        assert await store.settings.list_settings() == {"baseline": 42, "label": "morning"}
