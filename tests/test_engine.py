"""
Tests for the reflection engine.

Pure computations first, then the store-bound engine.
"""

from datetime import date

import pytest

from jaap_ledger.models import UNIT, MilestoneRecord
from jaap_ledger.reflection import (
    ReflectionEngine,
    compute_totals,
    find_crossings,
    milestone_progress,
    recompute,
)

from tests.conftest import entry


class TestTotals:
    """Lifetime and year totals."""

    def test_lifetime_includes_baseline(self):
        """Baseline is the starting offset of the lifetime total."""
        entries = [entry("2024-01-01", 100), entry("2024-01-02", 50)]
        lifetime, _ = compute_totals(entries, 1000, 2024)
        assert lifetime == 1150

    def test_year_total_filters_by_year(self):
        """Entries from other years never leak into the year total."""
        entries = [
            entry("2023-12-31", 500),
            entry("2024-01-01", 100),
            entry("2024-06-15", 20),
        ]
        _, year_2024 = compute_totals(entries, 0, 2024)
        _, year_2023 = compute_totals(entries, 0, 2023)
        assert year_2024 == 120
        assert year_2023 == 500

    def test_year_total_excludes_baseline(self):
        """The baseline only counts towards the lifetime total."""
        lifetime, year_total = compute_totals([entry("2024-01-01", 10)], 5000, 2024)
        assert lifetime == 5010
        assert year_total == 10

    def test_negative_counts_reduce_totals(self):
        """Negative counts are accepted and subtract."""
        lifetime, year_total = compute_totals(
            [entry("2024-01-01", 100), entry("2024-01-02", -30)], 0, 2024
        )
        assert lifetime == 70
        assert year_total == 70


class TestProgress:
    """Next milestone and progress percentage."""

    def test_progress_midway(self):
        """11,000,000 is 10% of the way from 1 crore to 2 crore."""
        achieved, next_value, percent = milestone_progress(11_000_000)
        assert achieved == 1
        assert next_value == 20_000_000
        assert percent == pytest.approx(10.0)

    def test_exact_multiple_gives_zero_percent(self):
        """Landing exactly on a crore points at the next one, at 0%."""
        achieved, next_value, percent = milestone_progress(2 * UNIT)
        assert achieved == 2
        assert next_value == 3 * UNIT
        assert percent == 0

    def test_zero_total(self):
        """An empty ledger is 0% towards the first crore."""
        assert milestone_progress(0) == (0, UNIT, 0.0)

    def test_just_below_next_stays_under_100(self):
        """Progress never reaches 100%."""
        _, _, percent = milestone_progress(UNIT - 1)
        assert percent < 100

    def test_negative_total_clamped(self):
        """A negative lifetime total shows no progress instead of a negative one."""
        achieved, next_value, percent = milestone_progress(-500)
        assert achieved == 0
        assert next_value == UNIT
        assert percent == 0


class TestFindCrossings:
    """Dating of crossed thresholds."""

    def test_first_entry_reaching_threshold(self):
        """The crossing date is the first entry bringing the sum to the threshold."""
        entries = [entry("2024-01-01", 6_000_000), entry("2024-02-01", 5_000_000)]
        crossings = find_crossings(entries, 0, [UNIT])
        assert crossings == [MilestoneRecord(milestone=UNIT, reached_on=date(2024, 2, 1))]

    def test_entries_sorted_by_date_before_walking(self):
        """Input order doesn't matter; the walk is chronological."""
        entries = [entry("2024-02-01", 5_000_000), entry("2024-01-01", 6_000_000)]
        crossings = find_crossings(entries, 0, [UNIT])
        assert crossings[0].reached_on == date(2024, 2, 1)

    def test_single_entry_can_cross_several_thresholds(self):
        """A big day is the crossing date of every threshold it jumps."""
        entries = [entry("2024-01-01", 1_000), entry("2024-01-02", 25_000_000)]
        crossings = find_crossings(entries, 0, [UNIT, 2 * UNIT])
        assert [c.reached_on for c in crossings] == [date(2024, 1, 2), date(2024, 1, 2)]

    def test_baseline_counts_towards_crossing(self):
        """The running sum starts at the baseline."""
        entries = [entry("2024-01-01", 1), entry("2024-01-02", 1)]
        crossings = find_crossings(entries, UNIT - 1, [UNIT])
        assert crossings[0].reached_on == date(2024, 1, 1)

    def test_unreached_threshold_left_out(self):
        """Thresholds no entry reaches are not dated."""
        crossings = find_crossings([entry("2024-01-01", 100)], 0, [UNIT])
        assert crossings == []

    def test_first_crossing_wins_after_dip(self):
        """With a negative day, the first time the sum reached it is kept."""
        entries = [
            entry("2024-01-01", UNIT),
            entry("2024-01-02", -10),
            entry("2024-01-03", 10),
        ]
        crossings = find_crossings(entries, 0, [UNIT])
        assert crossings[0].reached_on == date(2024, 1, 1)


class TestRecompute:
    """The pure recompute over a snapshot."""

    def test_milestone_crossing_order(self):
        """6M then 5M crosses one crore on the second date."""
        entries = [entry("2024-01-01", 6_000_000), entry("2024-02-01", 5_000_000)]
        reflection = recompute(entries, 0, set(), 2024)

        assert reflection.lifetime_total == 11_000_000
        assert reflection.year_total == 11_000_000
        assert reflection.next_milestone_value == 20_000_000
        assert reflection.newly_crossed == [
            MilestoneRecord(milestone=10_000_000, reached_on=date(2024, 2, 1)),
        ]

    def test_existing_thresholds_skipped(self):
        """Only thresholds missing from the store are discovered."""
        entries = [entry("2024-01-01", 25_000_000)]
        reflection = recompute(entries, 0, {UNIT}, 2024)
        assert [m.milestone for m in reflection.newly_crossed] == [2 * UNIT]

    def test_no_discovery_below_first_crore(self):
        reflection = recompute([entry("2024-01-01", 42)], 0, set(), 2024)
        assert reflection.newly_crossed == []
        assert reflection.milestones_achieved == 0


class TestReflectionEngine:
    """The store-bound engine."""

    @pytest.mark.asyncio
    async def test_writes_discovered_milestones(self, store):
        """Discovered milestones are persisted and listed in order."""
        await store.ledger.put_entry(entry("2024-01-01", 6_000_000))
        await store.ledger.put_entry(entry("2024-02-01", 15_000_000))

        reflection = await ReflectionEngine(store).recompute(reference_year=2024)

        stored = await store.milestones.list_milestones_ordered()
        assert [m.milestone for m in stored] == [UNIT, 2 * UNIT]
        assert reflection.milestones == stored
        assert len(reflection.newly_crossed) == 2

    @pytest.mark.asyncio
    async def test_idempotent_discovery(self, store):
        """A second recompute adds nothing and reports the same numbers."""
        await store.settings.put_baseline(3_000_000)
        await store.ledger.put_entry(entry("2024-01-01", 6_000_000))
        await store.ledger.put_entry(entry("2024-02-01", 5_000_000))
        engine = ReflectionEngine(store)

        first = await engine.recompute(reference_year=2024)
        second = await engine.recompute(reference_year=2024)

        assert second.newly_crossed == []
        assert second.milestones == first.milestones
        assert len(await store.milestones.list_milestones()) == 1
        assert (second.year_total, second.lifetime_total, second.progress_percent) == (
            first.year_total, first.lifetime_total, first.progress_percent
        )

    @pytest.mark.asyncio
    async def test_existing_record_not_overwritten(self, store):
        """Discovery never rewrites a record already in the store."""
        seeded = MilestoneRecord(milestone=UNIT, reached_on=date(2020, 5, 5))
        await store.milestones.put_milestone(seeded)
        await store.ledger.put_entry(entry("2024-01-01", 12_000_000))

        await ReflectionEngine(store).recompute(reference_year=2024)

        assert await store.milestones.get_milestone(UNIT) == seeded

    @pytest.mark.asyncio
    async def test_baseline_read_from_settings(self, store):
        await store.settings.put_baseline(9_999_990)
        await store.ledger.put_entry(entry("2024-01-05", 10))

        reflection = await ReflectionEngine(store).recompute(reference_year=2024)

        assert reflection.lifetime_total == UNIT
        assert reflection.progress_percent == 0
        assert reflection.milestones[0].reached_on == date(2024, 1, 5)
