"""Presentation helpers."""

from jaap_ledger.views.formatting import (
    format_date,
    format_entry_summary,
    format_milestone,
    format_next_milestone,
    format_progress,
    progress_fraction,
    reflection_lines,
)

__all__ = [
    "format_date",
    "format_entry_summary",
    "format_milestone",
    "format_next_milestone",
    "format_progress",
    "progress_fraction",
    "reflection_lines",
]
