"""
Main Orchestrator for Jaap Ledger

This module ties together storage, validation, the reflection engine and
audit logging, and defines every user-facing action:
1. Save today's count / edit a recent entry
2. Seed a baseline and historical milestones
3. Refresh the reflection and the ledger view

DESIGN DECISION: The orchestrator is the error boundary.
- A store failure is logged and turned into a generic notice
- Nothing half-computed is ever returned; the UI keeps its last good state
- Invalid seed input is reported, never written

The presentation layer only calls these methods and renders the result.
"""

from datetime import date
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from jaap_ledger.audit import AuditLogger, create_correlation_id
from jaap_ledger.config import AppSettings, Settings, get_settings
from jaap_ledger.models.audit import AuditEvent
from jaap_ledger.models.ledger import (
    ActionResult,
    LedgerEntry,
    LedgerRow,
    LedgerYearGroup,
    MilestoneRecord,
    ValidationResult,
)
from jaap_ledger.reflection import ReflectionEngine
from jaap_ledger.services.storage import (
    LedgerStore,
    StoreIOError,
    create_json_store,
    create_memory_store,
    create_sheets_store,
)
from jaap_ledger.validation import SeedValidator, coerce_count, is_blank
from jaap_ledger.views import format_date


logger = structlog.get_logger(__name__)

FAILURE_MESSAGES = {
    "save_entry": "Failed to update entry. Please try again.",
    "refresh": "Failed to update reflection. Please try again.",
    "ledger": "Failed to update ledger. Please try again.",
    "seed_baseline": "Failed to set baseline. Please try again.",
    "seed_milestone": "Failed to save milestone. Please try again.",
    "save_seed": "Failed to save baseline/milestones. Please try again.",
}


class LedgerService:
    """
    Orchestrates every ledger action.

    Flow of a write:
    1. Validate / coerce input
    2. Write to the store
    3. Recompute the reflection (discovering new milestones)
    4. Return the fresh reflection for rendering

    Every public method returns an ActionResult; none of them raise on
    store failures.
    """

    def __init__(
        self,
        store: LedgerStore,
        engine: Optional[ReflectionEngine] = None,
        validator: Optional[SeedValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._engine = engine or ReflectionEngine(store, self._audit_logger)
        self._today = today or date.today
        self._validator = validator or SeedValidator(self._today)
        self._settings = app_settings or get_settings().app

    @property
    def edit_window_days(self) -> int:
        return self._settings.edit_window_days

    def is_editable(self, entry_date: date, today: Optional[date] = None) -> bool:
        """Entries up to edit_window_days old (and future-dated ones) stay editable."""
        today = today or self._today()
        return (today - entry_date).days <= self.edit_window_days

    async def _store_failure(
        self,
        operation: str,
        error: StoreIOError,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        await self._audit_logger.log_store_error(
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        return ActionResult(success=False, message=FAILURE_MESSAGES[operation])

    async def _reject(
        self,
        results: list[ValidationResult],
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        for result in results:
            if result.has_errors:
                await self._audit_logger.log_seed_rejected(
                    subject=result.subject,
                    issues=[i.model_dump() for i in result.issues],
                    correlation_id=correlation_id,
                )
        return ActionResult(
            success=False,
            message=self._validator.get_user_friendly_summary(results),
            validation=results,
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def refresh(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Recompute the reflection for the current year."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            reflection = await self._engine.recompute(
                reference_year=self._today().year,
                correlation_id=correlation_id,
            )
        except StoreIOError as e:
            return await self._store_failure("refresh", e, correlation_id)
        return ActionResult(success=True, reflection=reflection)

    async def get_entry(self, entry_date: date) -> Optional[LedgerEntry]:
        """Single entry, or None when missing or unreadable."""
        try:
            return await self._store.ledger.get_entry(entry_date)
        except StoreIOError as e:
            await self._audit_logger.log_store_error("get_entry", str(e))
            return None

    async def ledger_view(self, today: Optional[date] = None) -> ActionResult:
        """
        Entries grouped by year (newest year first), newest date first
        within each year, each flagged editable or read-only.
        """
        today = today or self._today()
        try:
            entries = await self._store.ledger.list_entries_ordered(descending=True)
        except StoreIOError as e:
            return await self._store_failure("ledger", e, None)

        groups: dict[int, LedgerYearGroup] = {}
        for entry in entries:
            group = groups.get(entry.year)
            if group is None:
                group = LedgerYearGroup(year=entry.year, expanded=entry.year == today.year)
                groups[entry.year] = group
            group.rows.append(LedgerRow(
                entry=entry,
                editable=self.is_editable(entry.entry_date, today),
                days_ago=(today - entry.entry_date).days,
            ))

        ordered = [groups[year] for year in sorted(groups, reverse=True)]
        return ActionResult(success=True, ledger=ordered)

    async def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        """Latest audit events, newest first; empty if unavailable."""
        if self._store.audit is None:
            return []
        try:
            return await self._store.audit.get_recent_events(limit=limit)
        except StoreIOError as e:
            logger.warning("recent_activity_unavailable", error=str(e))
            return []

    # =========================================================================
    # LEDGER WRITES
    # =========================================================================

    async def upsert_entry(
        self,
        entry_date: date,
        count: Any,
        notes: Optional[str] = "",
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """
        Write (or overwrite) the entry for entry_date and recompute.

        `count` is coerced, not validated. `year`, when given, must agree
        with entry_date; it is otherwise derived.
        """
        correlation_id = correlation_id or create_correlation_id()

        year_check = self._validator.validate_entry_year(entry_date, year)
        if year_check.has_errors:
            await self._audit_logger.log_entry_edit_rejected(
                entry_key=entry_date.isoformat(),
                reason=year_check.issues[0].message,
                correlation_id=correlation_id,
            )
            return ActionResult(
                success=False,
                message=year_check.issues[0].message,
                validation=[year_check],
            )

        entry = LedgerEntry(
            entry_date=entry_date,
            jaap_count=coerce_count(count),
            notes=notes or "",
        )

        try:
            await self._store.ledger.put_entry(entry)
            await self._audit_logger.log_entry_saved(
                entry_key=entry.key,
                jaap_count=entry.jaap_count,
                correlation_id=correlation_id,
            )
            reflection = await self._engine.recompute(
                reference_year=self._today().year,
                correlation_id=correlation_id,
            )
        except StoreIOError as e:
            return await self._store_failure("save_entry", e, correlation_id)

        return ActionResult(
            success=True,
            message=f"Saved {entry.jaap_count} for {format_date(entry_date)}",
            reflection=reflection,
        )

    async def save_today(
        self,
        count: Any,
        notes: Optional[str] = "",
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Upsert the entry for today's date."""
        return await self.upsert_entry(
            self._today(), count, notes, correlation_id=correlation_id
        )

    async def edit_recent_entry(
        self,
        entry_date: date,
        count: Any,
        notes: Optional[str] = "",
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Re-upsert a past entry, only inside the edit window."""
        correlation_id = correlation_id or create_correlation_id()
        if not self.is_editable(entry_date):
            reason = (
                f"Entries older than {self.edit_window_days} days "
                "can no longer be edited."
            )
            await self._audit_logger.log_entry_edit_rejected(
                entry_key=entry_date.isoformat(),
                reason=reason,
                correlation_id=correlation_id,
            )
            return ActionResult(success=False, message=reason)

        return await self.upsert_entry(
            entry_date, count, notes, correlation_id=correlation_id
        )

    # =========================================================================
    # SEEDING
    # =========================================================================

    async def seed_baseline(
        self,
        count: Any,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Overwrite the baseline (zero included) and recompute."""
        correlation_id = correlation_id or create_correlation_id()

        value, result = self._validator.validate_baseline(count)
        if result.has_errors:
            return await self._reject([result], correlation_id)

        try:
            await self._store.settings.put_baseline(value)
            await self._audit_logger.log_baseline_seeded(value, correlation_id)
            reflection = await self._engine.recompute(
                reference_year=self._today().year,
                correlation_id=correlation_id,
            )
        except StoreIOError as e:
            return await self._store_failure("seed_baseline", e, correlation_id)

        return ActionResult(
            success=True,
            message=f"Baseline set to {value}",
            reflection=reflection,
        )

    async def seed_milestone(
        self,
        crore_number: Any,
        date_string: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """
        Record that `crore_number` crores were reached on `date_string`
        (DD-MM-YYYY), overwriting any existing record for that threshold.
        """
        correlation_id = correlation_id or create_correlation_id()

        record, result = self._validator.validate_milestone(crore_number, date_string)
        if record is None:
            return await self._reject([result], correlation_id)

        try:
            await self._write_seeded_milestone(record, correlation_id)
            reflection = await self._engine.recompute(
                reference_year=self._today().year,
                correlation_id=correlation_id,
            )
        except StoreIOError as e:
            return await self._store_failure("seed_milestone", e, correlation_id)

        message = f"Saved {record.crore} crore - {format_date(record.reached_on)}"
        if result.warnings:
            message += "\n" + self._validator.get_user_friendly_summary([result])
        return ActionResult(
            success=True,
            message=message,
            reflection=reflection,
            validation=[result],
        )

    async def save_seed(
        self,
        baseline: Any,
        rows: list[tuple[Any, Optional[str]]],
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """
        Commit the seeding dialog: a baseline plus any number of
        (crore_number, DD-MM-YYYY) rows.

        - baseline is written only when it coerces to a positive count
        - rows missing either value are ignored
        - if any remaining row is invalid, nothing at all is written
        """
        correlation_id = correlation_id or create_correlation_id()
        baseline_value = coerce_count(baseline)

        records: list[MilestoneRecord] = []
        results: list[ValidationResult] = []
        for number, (crore, date_text) in enumerate(rows, start=1):
            if is_blank(crore) or is_blank(date_text):
                continue
            record, result = self._validator.validate_milestone(
                crore, date_text, subject=f"Milestone row {number}"
            )
            results.append(result)
            if record is not None:
                records.append(record)

        if any(r.has_errors for r in results):
            return await self._reject(results, correlation_id)

        try:
            if baseline_value > 0:
                await self._store.settings.put_baseline(baseline_value)
                await self._audit_logger.log_baseline_seeded(baseline_value, correlation_id)
            for record in records:
                await self._write_seeded_milestone(record, correlation_id)
            reflection = await self._engine.recompute(
                reference_year=self._today().year,
                correlation_id=correlation_id,
            )
        except StoreIOError as e:
            return await self._store_failure("save_seed", e, correlation_id)

        parts = []
        if baseline_value > 0:
            parts.append(f"baseline {baseline_value}")
        if records:
            parts.append(f"{len(records)} milestone(s)")
        message = "Saved " + " and ".join(parts) if parts else "Nothing to save"
        return ActionResult(
            success=True,
            message=message,
            reflection=reflection,
            validation=results,
        )

    async def _write_seeded_milestone(
        self,
        record: MilestoneRecord,
        correlation_id: Optional[UUID],
    ) -> None:
        await self._store.milestones.put_milestone(record)
        await self._audit_logger.log_milestone_seeded(
            milestone=record.milestone,
            reached_on=record.reached_on.isoformat(),
            correlation_id=correlation_id,
        )


def create_store(settings: Optional[Settings] = None) -> LedgerStore:
    """Build the configured storage backend."""
    settings = settings or get_settings()
    storage = settings.storage

    if storage.backend == "memory":
        return create_memory_store()
    if storage.backend == "sheets":
        return create_sheets_store()
    return create_json_store(storage.data_path)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[LedgerService, LedgerStore]:
    """
    Factory function to create all application components.

    Falls back to an in-memory store (with a warning) when the configured
    backend cannot be set up, so the app still starts.

    Returns:
        (ledger_service, store)
    """
    settings = settings or get_settings()

    try:
        store = create_store(settings)
    except Exception as e:
        logger.warning("storage_not_configured", error=str(e), fallback="memory")
        store = create_memory_store()

    app_settings = settings.app
    audit_logger = AuditLogger(store.audit if app_settings.audit_enabled else None)

    service = LedgerService(
        store=store,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )
    return service, store
