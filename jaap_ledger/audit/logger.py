"""
Audit Logger

DESIGN DECISION: Every user action and every storage failure is logged.
This provides:
1. Traceability of every entry, seed and milestone
2. Debugging capability when a save fails
3. A history the user can review

The audit logger:
- Is async so it can share the store's event loop
- Gracefully handles failures (doesn't break the app if logging fails)
- Supports correlation IDs to tie together the events of one action
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from jaap_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from jaap_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The store's audit collection (when one is configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("jaap_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available, except
        debug-level events.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Debug events (recompute bookkeeping) stay in the local log only
        if self._storage and event.severity != AuditSeverity.DEBUG:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_saved(
        self,
        entry_key: str,
        jaap_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger entry upsert."""
        await self.log(AuditEventBuilder.entry_saved(
            entry_key=entry_key,
            jaap_count=jaap_count,
            correlation_id=correlation_id,
        ))

    async def log_entry_edit_rejected(
        self,
        entry_key: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_edit_rejected(
            entry_key=entry_key,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_baseline_seeded(
        self,
        value: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.baseline_seeded(
            value=value,
            correlation_id=correlation_id,
        ))

    async def log_milestone_seeded(
        self,
        milestone: int,
        reached_on: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.milestone_seeded(
            milestone=milestone,
            reached_on=reached_on,
            correlation_id=correlation_id,
        ))

    async def log_seed_rejected(
        self,
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log seed input that failed validation (nothing was written)."""
        await self.log(AuditEventBuilder.seed_input_rejected(
            subject=subject,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_milestone_discovered(
        self,
        milestone: int,
        reached_on: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.milestone_discovered(
            milestone=milestone,
            reached_on=reached_on,
            correlation_id=correlation_id,
        ))

    async def log_reflection_recomputed(
        self,
        lifetime_total: int,
        year_total: int,
        new_milestones: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reflection_recomputed(
            lifetime_total=lifetime_total,
            year_total=year_total,
            new_milestones=new_milestones,
            correlation_id=correlation_id,
        ))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a persistent store failure."""
        await self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving today's count).
    Pass it through all subsequent operations.
    """
    return uuid4()
