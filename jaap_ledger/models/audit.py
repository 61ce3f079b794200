"""
Audit Models for Jaap Ledger

Every user action and every storage failure is recorded as an audit event.
This provides:
1. Traceability of how a total or milestone came to be
2. Debugging information when a save fails
3. A history the user can look back on

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    ENTRY_SAVED = "entry_saved"
    ENTRY_EDIT_REJECTED = "entry_edit_rejected"

    # Seeding
    BASELINE_SEEDED = "baseline_seeded"
    MILESTONE_SEEDED = "milestone_seeded"
    SEED_INPUT_REJECTED = "seed_input_rejected"

    # Aggregation
    MILESTONE_DISCOVERED = "milestone_discovered"
    REFLECTION_RECOMPUTED = "reflection_recomputed"

    # System events
    STORE_ERROR = "store_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Entities are identified by their natural key (an ISO date for entries,
    the threshold for milestones, the setting name for settings).
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'milestone', 'setting')"
    )
    entity_key: Optional[str] = Field(
        default=None,
        description="Natural key of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Rows written before timestamps carried an offset are UTC
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_key": self.entity_key,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Convert to a flat row for tabular storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_key,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_key or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_row(cls, row: list) -> "AuditEvent":
        """Inverse of to_row; missing trailing cells read as empty."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return cls(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_key=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_saved("2024-02-01", 108, correlation_id)
        event = AuditEventBuilder.milestone_discovered(20000000, "2024-02-01", correlation_id)
    """

    @staticmethod
    def entry_saved(
        entry_key: str,
        jaap_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SAVED,
            entity_type="entry",
            entity_key=entry_key,
            correlation_id=correlation_id,
            description=f"Entry saved for {entry_key}: {jaap_count}",
            details={
                "jaap_count": jaap_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_edit_rejected(
        entry_key: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_EDIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_key=entry_key,
            correlation_id=correlation_id,
            description=f"Edit of {entry_key} rejected",
            details={
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def baseline_seeded(
        value: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BASELINE_SEEDED,
            entity_type="setting",
            entity_key="baseline",
            correlation_id=correlation_id,
            description=f"Baseline set to {value}",
            details={
                "value": value,
            },
            is_user_action=True,
        )

    @staticmethod
    def milestone_seeded(
        milestone: int,
        reached_on: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MILESTONE_SEEDED,
            entity_type="milestone",
            entity_key=str(milestone),
            correlation_id=correlation_id,
            description=f"Milestone {milestone} seeded manually for {reached_on}",
            details={
                "milestone": milestone,
                "date": reached_on,
            },
            is_user_action=True,
        )

    @staticmethod
    def seed_input_rejected(
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="seed",
            correlation_id=correlation_id,
            description=f"Seed input rejected: {subject}",
            details={
                "subject": subject,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def milestone_discovered(
        milestone: int,
        reached_on: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MILESTONE_DISCOVERED,
            entity_type="milestone",
            entity_key=str(milestone),
            correlation_id=correlation_id,
            description=f"Milestone {milestone} reached on {reached_on}",
            details={
                "milestone": milestone,
                "date": reached_on,
            },
        )

    @staticmethod
    def reflection_recomputed(
        lifetime_total: int,
        year_total: int,
        new_milestones: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFLECTION_RECOMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="reflection",
            correlation_id=correlation_id,
            description=f"Reflection recomputed: lifetime {lifetime_total}",
            details={
                "lifetime_total": lifetime_total,
                "year_total": year_total,
                "new_milestones": new_milestones,
            },
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Store error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
