"""
Display formatting for the reflection and ledger.

Pure string helpers; the Streamlit app renders what these return and never
computes totals on its own.
"""

from datetime import date

from jaap_ledger.models.ledger import LedgerEntry, MilestoneRecord, Reflection


def format_date(d: date) -> str:
    """DD-MM-YYYY, the format users type milestones in."""
    return d.strftime("%d-%m-%Y")


def format_next_milestone(next_value: int, percent: float) -> str:
    return f"{next_value} ({percent:.2f}%)"


def format_progress(next_value: int, percent: float) -> str:
    return f"Progress: {percent:.2f}% towards {next_value}"


def format_milestone(record: MilestoneRecord) -> str:
    return f"{record.crore} crore - {format_date(record.reached_on)}"


def format_entry_summary(entry: LedgerEntry) -> str:
    return f"{entry.key} - {entry.jaap_count}"


def progress_fraction(reflection: Reflection) -> float:
    """Progress bar fill in [0.0, 1.0]."""
    return min(max(reflection.progress_percent / 100, 0.0), 1.0)


def reflection_lines(reflection: Reflection) -> dict[str, str]:
    """Every text shown on the reflection card, keyed by slot."""
    return {
        "year_total": str(reflection.year_total),
        "lifetime_total": str(reflection.lifetime_total),
        "next_milestone": format_next_milestone(
            reflection.next_milestone_value, reflection.progress_percent
        ),
        "progress": format_progress(
            reflection.next_milestone_value, reflection.progress_percent
        ),
    }
