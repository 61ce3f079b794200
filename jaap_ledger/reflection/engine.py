"""
Reflection (Aggregation) Engine

DESIGN DECISION: Aggregation is a PURE computation over a snapshot.
The engine:
- reads every entry, the baseline and the existing milestone thresholds
- derives lifetime total, year total, next milestone and progress
- discovers thresholds crossed since the last run and dates them
- writes ONLY the newly discovered milestones, insert-if-absent

Nothing derived is ever stored, so an interrupted action heals itself on
the next recompute. Milestones that could not be dated this run are simply
tried again next time.
"""

import asyncio
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from jaap_ledger.audit import AuditLogger
from jaap_ledger.models.ledger import (
    UNIT,
    LedgerEntry,
    MilestoneRecord,
    Reflection,
)
from jaap_ledger.services.storage import LedgerStore


def compute_totals(
    entries: Iterable[LedgerEntry],
    baseline: int,
    reference_year: int,
) -> tuple[int, int]:
    """Returns (lifetime_total, year_total)."""
    lifetime = baseline
    year_total = 0
    for entry in entries:
        lifetime += entry.jaap_count
        if entry.year == reference_year:
            year_total += entry.jaap_count
    return lifetime, year_total


def milestone_progress(lifetime_total: int) -> tuple[int, int, float]:
    """
    Returns (milestones_achieved, next_milestone_value, progress_percent).

    A negative lifetime total counts as zero progress towards the first crore.
    """
    achieved = max(lifetime_total // UNIT, 0)
    next_value = (achieved + 1) * UNIT
    remainder = max(lifetime_total - achieved * UNIT, 0)
    return achieved, next_value, remainder / UNIT * 100


def find_crossings(
    entries: Iterable[LedgerEntry],
    baseline: int,
    thresholds: Iterable[int],
) -> list[MilestoneRecord]:
    """
    Date each threshold by the first entry (ascending date) whose inclusion
    brings the running sum, started at baseline, to >= threshold.

    Thresholds never reached by any entry are left out.
    """
    pending = sorted(set(thresholds))
    if not pending:
        return []

    crossings: list[MilestoneRecord] = []
    running = baseline
    idx = 0
    for entry in sorted(entries, key=lambda e: e.entry_date):
        running += entry.jaap_count
        # Crossing a higher threshold implies crossing every lower one
        while idx < len(pending) and running >= pending[idx]:
            crossings.append(MilestoneRecord(
                milestone=pending[idx],
                reached_on=entry.entry_date,
            ))
            idx += 1
        if idx == len(pending):
            break
    return crossings


def recompute(
    all_entries: list[LedgerEntry],
    baseline: int,
    existing_milestones: set[int],
    reference_year: int,
) -> Reflection:
    """
    Compute the reflection for a snapshot.

    `milestones` on the result is left empty; the store-bound engine fills
    it from the store's ordered read.
    """
    lifetime, year_total = compute_totals(all_entries, baseline, reference_year)
    achieved, next_value, percent = milestone_progress(lifetime)

    due = [i * UNIT for i in range(1, achieved + 1)]
    missing = [t for t in due if t not in existing_milestones]

    return Reflection(
        reference_year=reference_year,
        year_total=year_total,
        lifetime_total=lifetime,
        milestones_achieved=achieved,
        next_milestone_value=next_value,
        progress_percent=percent,
        newly_crossed=find_crossings(all_entries, baseline, missing),
    )


class ReflectionEngine:
    """
    Store-bound aggregation.

    GUARANTEES:
    - Existing milestone records are never altered by discovery
    - Recomputes within one process run one at a time
    - Any store failure propagates as StoreIOError before a result exists
    """

    def __init__(
        self,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._lock = asyncio.Lock()

    async def recompute(
        self,
        reference_year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Reflection:
        """
        Read a fresh snapshot, write newly crossed milestones and return
        the reflection with the full ordered milestone list.
        """
        reference_year = reference_year or date.today().year

        async with self._lock:
            entries = await self._store.ledger.list_entries()
            baseline = await self._store.settings.get_baseline()
            existing = {m.milestone for m in await self._store.milestones.list_milestones()}

            reflection = recompute(entries, baseline, existing, reference_year)

            written = []
            for record in reflection.newly_crossed:
                # Another writer may have recorded it since our read
                if await self._store.milestones.add_milestone_if_absent(record):
                    written.append(record)
                    if self._audit_logger:
                        await self._audit_logger.log_milestone_discovered(
                            milestone=record.milestone,
                            reached_on=record.reached_on.isoformat(),
                            correlation_id=correlation_id,
                        )

            ordered = await self._store.milestones.list_milestones_ordered()

        if self._audit_logger:
            await self._audit_logger.log_reflection_recomputed(
                lifetime_total=reflection.lifetime_total,
                year_total=reflection.year_total,
                new_milestones=len(written),
                correlation_id=correlation_id,
            )

        return reflection.model_copy(update={
            "newly_crossed": written,
            "milestones": ordered,
        })
