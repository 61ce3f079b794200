"""
Input Validation for Ledger and Seed Actions

DESIGN DECISION: Counts are COERCED, seed data is VALIDATED.

COUNTS:
- Whatever the user typed is read the way a number field is read:
  leading digits are taken, anything else becomes 0
- Negative counts are accepted as typed (they reduce the totals)

SEED DATA (baseline + historical milestones):
- Milestone dates must be real calendar days in DD-MM-YYYY form
- Crore numbers must be positive whole numbers
- Malformed rows are reported and NOT written; nothing is guessed

IMPORTANT: Validation never raises. It returns ValidationResult objects
so the caller can show every problem at once.
"""

import math
import re
from datetime import date
from typing import Any, Callable, Optional

from jaap_ledger.models.ledger import (
    UNIT,
    MilestoneRecord,
    ValidationIssue,
    ValidationResult,
)


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_SEED_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")


def coerce_count(value: Any) -> int:
    """
    Read a count the way a numeric input is read.

    "108" -> 108, "12abc" -> 12, "" / None / "abc" -> 0, 7.9 -> 7,
    NaN / inf -> 0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class SeedValidator:
    """
    Validates baseline and manual milestone input.

    The clock is injectable so "future date" checks are testable.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def parse_date(self, text: Optional[str]) -> Optional[date]:
        """Parse DD-MM-YYYY; None for anything malformed or impossible."""
        if text is None:
            return None
        match = _SEED_DATE.match(text.strip())
        if not match:
            return None
        day, month, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    def validate_baseline(self, value: Any) -> tuple[int, ValidationResult]:
        """
        Coerce and check a baseline count.

        Returns: (coerced_value, result)
        """
        count = coerce_count(value)
        result = ValidationResult(subject="baseline")
        if count < 0:
            result.issues.append(ValidationIssue(
                field="baseline",
                issue_type="invalid_value",
                message=f"Baseline cannot be negative ({count})",
                severity="error",
                suggested_fix="Enter the lifetime count you had before using the ledger",
            ))
        return count, result

    def validate_milestone(
        self,
        crore_number: Any,
        date_string: Optional[str],
        subject: str = "milestone",
    ) -> tuple[Optional[MilestoneRecord], ValidationResult]:
        """
        Validate one manual milestone.

        Returns: (record or None, result). The record is only returned
        when there are no error-level issues.
        """
        result = ValidationResult(subject=subject)

        crore = None
        if is_blank(crore_number):
            result.issues.append(ValidationIssue(
                field="crore",
                issue_type="missing",
                message="Crore number is required",
                severity="error",
            ))
        else:
            text = str(crore_number).strip()
            if isinstance(crore_number, int) or re.fullmatch(r"[+-]?\d+", text):
                crore = int(crore_number) if isinstance(crore_number, int) else int(text)
                if crore <= 0:
                    result.issues.append(ValidationIssue(
                        field="crore",
                        issue_type="invalid_value",
                        message=f"Crore number must be at least 1 (got {crore})",
                        severity="error",
                    ))
                    crore = None
            else:
                result.issues.append(ValidationIssue(
                    field="crore",
                    issue_type="invalid_format",
                    message=f"Crore number '{text}' is not a whole number",
                    severity="error",
                    suggested_fix="Use 1 for the first crore, 2 for the second, and so on",
                ))

        reached_on = None
        if is_blank(date_string):
            result.issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        else:
            reached_on = self.parse_date(date_string)
            if reached_on is None:
                result.issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Date '{date_string.strip()}' is not a valid DD-MM-YYYY date",
                    severity="error",
                    suggested_fix="Write the date as day-month-year, e.g. 15-03-2023",
                ))
            elif reached_on > self._today():
                result.issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"Date {reached_on.isoformat()} is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        if result.has_errors or crore is None or reached_on is None:
            return None, result
        return MilestoneRecord(milestone=crore * UNIT, reached_on=reached_on), result

    def validate_entry_year(self, entry_date: date, year: Any) -> ValidationResult:
        """An explicitly supplied year must match the entry's date."""
        result = ValidationResult(subject=f"entry {entry_date.isoformat()}")
        if is_blank(year):
            return result

        if isinstance(year, int) and not isinstance(year, bool):
            year_value = year
        elif re.fullmatch(r"\d{1,4}", str(year).strip()):
            year_value = int(str(year).strip())
        else:
            result.issues.append(ValidationIssue(
                field="year",
                issue_type="invalid_format",
                message=f"Year '{year}' is not a whole number",
                severity="error",
            ))
            return result

        if year_value != entry_date.year:
            result.issues.append(ValidationIssue(
                field="year",
                issue_type="mismatch",
                message=f"Year {year} does not match date {entry_date.isoformat()}",
                severity="error",
            ))
        return result

    def get_user_friendly_summary(self, results: list[ValidationResult]) -> str:
        """
        Turn validation results into a message for the seeding dialog.
        """
        lines = []
        for result in results:
            for issue in result.issues:
                marker = "❌" if issue.severity == "error" else "⚠️"
                lines.append(f"{marker} {result.subject}: {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")
        if not lines:
            return "✅ All checks passed."
        return "\n".join(lines)
