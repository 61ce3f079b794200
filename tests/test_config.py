"""
Tests for configuration and component wiring.
"""

import pytest
from pydantic import ValidationError

from jaap_ledger.config import AppSettings, Settings, StorageSettings
from jaap_ledger.orchestrator import create_app_components, create_store


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "LEDGER_STORAGE_BACKEND",
        "LEDGER_STORAGE_DATA_FILE",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "EDIT_WINDOW_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_storage_defaults():
    storage = StorageSettings()
    assert storage.backend == "json"
    assert storage.data_path.name == "jaap_ledger.json"


def test_backend_from_environment(monkeypatch):
    monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
    assert StorageSettings().backend == "memory"


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "postgres")
    with pytest.raises(ValidationError):
        StorageSettings()


def test_edit_window_from_environment(monkeypatch):
    monkeypatch.setenv("EDIT_WINDOW_DAYS", "14")
    assert AppSettings().edit_window_days == 14


def test_negative_edit_window_rejected():
    with pytest.raises(ValidationError):
        AppSettings(edit_window_days=-1)


def test_json_store_at_configured_path(monkeypatch, tmp_path):
    monkeypatch.setenv("LEDGER_STORAGE_DATA_FILE", str(tmp_path / "ledger.json"))
    store = create_store(Settings())
    assert store.backend_name == "json"


@pytest.mark.asyncio
async def test_unconfigured_sheets_falls_back_to_memory(monkeypatch):
    """A backend that cannot be built still lets the app start."""
    monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "sheets")

    service, store = create_app_components(Settings())

    assert store.backend_name == "memory"
    result = await service.refresh()
    assert result.success is True
    assert result.reflection.lifetime_total == 0
