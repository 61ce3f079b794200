"""
Data Models Package

This package contains all Pydantic models used in Jaap Ledger.
All data flowing through the system must conform to these schemas.
"""

from jaap_ledger.models.ledger import (
    BASELINE_KEY,
    SCHEMA_VERSION,
    UNIT,
    ActionResult,
    LedgerEntry,
    LedgerRow,
    LedgerYearGroup,
    MilestoneRecord,
    Reflection,
    ValidationIssue,
    ValidationResult,
)
from jaap_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Constants
    "BASELINE_KEY",
    "SCHEMA_VERSION",
    "UNIT",
    # Ledger models
    "ActionResult",
    "LedgerEntry",
    "LedgerRow",
    "LedgerYearGroup",
    "MilestoneRecord",
    "Reflection",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
