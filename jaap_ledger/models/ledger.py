"""
Core Data Models for Jaap Ledger

These models define the schemas for everything stored or derived:
1. Ledger entries (one per day)
2. Milestone records (one per crore threshold)
3. The baseline setting
4. The computed reflection and per-action outcomes

DESIGN DECISION: The year of an entry is DERIVED from its date.
Older documents carry a redundant `year` column; readers ignore it so the
two can never disagree.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


# One crore. Milestones are spaced by this and displayed in it.
UNIT = 10_000_000

# Persisted schema version; there is no migration path between versions.
SCHEMA_VERSION = 1

BASELINE_KEY = "baseline"


# =============================================================================
# STORED RECORDS
# =============================================================================

class LedgerEntry(BaseModel):
    """
    One day's recorded count and notes.

    The date is the identity: writing another entry for the same
    date replaces this one.
    """
    model_config = ConfigDict(frozen=True)

    entry_date: date = Field(
        ...,
        description="Calendar day this entry belongs to"
    )
    jaap_count: int = Field(
        default=0,
        description="Count recorded for the day"
    )
    notes: str = Field(
        default="",
        description="Free-form notes"
    )

    @field_validator("notes", mode="before")
    @classmethod
    def none_notes_to_empty(cls, v: Any) -> str:
        return "" if v is None else v

    @computed_field
    @property
    def year(self) -> int:
        return self.entry_date.year

    @property
    def key(self) -> str:
        """Primary key in the ledger collection (ISO date sorts lexically)."""
        return self.entry_date.isoformat()

    def to_document(self) -> dict:
        return {
            "date": self.key,
            "jaap_count": self.jaap_count,
            "notes": self.notes,
            "year": self.year,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "LedgerEntry":
        # "year" is deliberately not read back
        return cls(
            entry_date=date.fromisoformat(doc["date"]),
            jaap_count=int(doc.get("jaap_count") or 0),
            notes=doc.get("notes") or "",
        )


class MilestoneRecord(BaseModel):
    """
    A crore threshold and the day the cumulative total first reached it.
    """
    model_config = ConfigDict(frozen=True)

    milestone: int = Field(
        ...,
        gt=0,
        description="Threshold value, a positive multiple of one crore"
    )
    reached_on: date = Field(
        ...,
        description="First day the cumulative total was >= milestone"
    )

    @field_validator("milestone")
    @classmethod
    def must_be_whole_crore(cls, v: int) -> int:
        if v % UNIT != 0:
            raise ValueError(f"Milestone must be a multiple of {UNIT}")
        return v

    @computed_field
    @property
    def crore(self) -> int:
        return self.milestone // UNIT

    def to_document(self) -> dict:
        return {
            "milestone": self.milestone,
            "date": self.reached_on.isoformat(),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "MilestoneRecord":
        return cls(
            milestone=int(doc["milestone"]),
            reached_on=date.fromisoformat(doc["date"]),
        )


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class Reflection(BaseModel):
    """
    The computed summary shown to the user.

    Produced by the aggregation engine; the presentation layer only
    formats it and never recomputes totals itself.
    """

    reference_year: int
    computed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    year_total: int = Field(
        ...,
        description="Sum of counts dated in the reference year"
    )
    lifetime_total: int = Field(
        ...,
        description="Baseline plus the sum of all counts"
    )
    milestones_achieved: int = Field(
        ...,
        ge=0,
        description="Whole crores covered by the lifetime total"
    )
    next_milestone_value: int = Field(
        ...,
        description="Next crore threshold still ahead"
    )
    progress_percent: float = Field(
        ...,
        ge=0.0,
        lt=100.0,
        description="Progress from the last crore towards the next one"
    )

    newly_crossed: list[MilestoneRecord] = Field(
        default_factory=list,
        description="Milestones discovered during this recompute"
    )
    milestones: list[MilestoneRecord] = Field(
        default_factory=list,
        description="All milestone records, ascending by threshold"
    )


class LedgerRow(BaseModel):
    """A ledger entry as displayed, with its edit permission."""

    entry: LedgerEntry
    editable: bool
    days_ago: int


class LedgerYearGroup(BaseModel):
    """Entries of one year, newest first."""

    year: int
    expanded: bool = False
    rows: list[LedgerRow] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(row.entry.jaap_count for row in self.rows)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating one piece of user input."""

    subject: str = Field(
        ...,
        description="What was validated (e.g., 'milestone row 2')"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


# =============================================================================
# ACTION OUTCOME
# =============================================================================

class ActionResult(BaseModel):
    """
    Outcome of a user action.

    success=False never means partial state was displayed: the caller keeps
    whatever it rendered last and shows `message`.
    """

    success: bool
    message: str = ""
    reflection: Optional[Reflection] = None
    ledger: Optional[list[LedgerYearGroup]] = None
    validation: list[ValidationResult] = Field(default_factory=list)
