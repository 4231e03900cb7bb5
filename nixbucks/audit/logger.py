"""
Audit Logger

DESIGN DECISION: Every change to a profile is logged.
This provides:
1. A history the user can inspect ("where did my gym subscription go?")
2. Debugging capability
3. A record of entries skipped because a hand-edited file was malformed

The audit logger:
- Gracefully handles failures (a full disk never breaks an edit)
- Always logs locally through structlog, persists when storage is given
"""

from typing import Optional
from uuid import UUID

import structlog

from nixbucks.models.audit import AuditEvent, AuditEventBuilder
from nixbucks.models.profile import LoadIssue
from nixbucks.services.storage import AuditStorageInterface


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit trail file (for persistence and user visibility)
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
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Newest persisted events first; empty without storage."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit=limit)

    def log_profile_created(self, profile_name: str, path: str) -> None:
        self.log(AuditEventBuilder.profile_created(profile_name, path))

    def log_profile_renamed(self, old_name: str, new_name: str) -> None:
        self.log(AuditEventBuilder.profile_renamed(old_name, new_name))

    def log_profile_deleted(self, profile_name: str) -> None:
        self.log(AuditEventBuilder.profile_deleted(profile_name))

    def log_profile_loaded(
        self,
        profile_name: str,
        entry_count: int,
        issues: list[LoadIssue],
    ) -> None:
        """Log a load, plus one warning per skipped entry."""
        for issue in issues:
            self.log(AuditEventBuilder.entry_skipped(
                profile_name=profile_name,
                index=issue.index,
                message=issue.message,
            ))
        self.log(AuditEventBuilder.profile_loaded(
            profile_name=profile_name,
            entry_count=entry_count,
            skipped_count=len(issues),
        ))

    def log_profile_saved(self, profile_name: str, path: str) -> None:
        self.log(AuditEventBuilder.profile_saved(profile_name, path))

    def log_profile_settled(
        self,
        profile_name: str,
        settled_count: int,
        as_of: str,
        initial_balance: str,
    ) -> None:
        self.log(AuditEventBuilder.profile_settled(
            profile_name=profile_name,
            settled_count=settled_count,
            as_of=as_of,
            initial_balance=initial_balance,
        ))

    def log_entry_added(
        self,
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
        amount: str,
    ) -> None:
        self.log(AuditEventBuilder.entry_added(
            profile_name=profile_name,
            entry_id=entry_id,
            entry_name=entry_name,
            amount=amount,
        ))

    def log_entry_updated(
        self,
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
    ) -> None:
        self.log(AuditEventBuilder.entry_updated(profile_name, entry_id, entry_name))

    def log_entry_removed(
        self,
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
    ) -> None:
        self.log(AuditEventBuilder.entry_removed(profile_name, entry_id, entry_name))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        profile_name: Optional[str] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            profile_name=profile_name,
        ))
