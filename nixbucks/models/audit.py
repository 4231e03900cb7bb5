"""
Audit Models for NixBucks

Every change to a profile is recorded as an AuditEvent. The trail lets a
user see what happened to their budget and when, and explains entries that
vanished because a hand-edited file could not be read.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Profile lifecycle
    PROFILE_CREATED = "profile_created"
    PROFILE_RENAMED = "profile_renamed"
    PROFILE_DELETED = "profile_deleted"
    PROFILE_LOADED = "profile_loaded"
    PROFILE_SAVED = "profile_saved"
    PROFILE_SETTLED = "profile_settled"

    # Entry edits
    ENTRY_ADDED = "entry_added"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_REMOVED = "entry_removed"
    ENTRY_SKIPPED = "entry_skipped"

    # System events
    SYSTEM_ERROR = "system_error"


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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
    )

    # Which profile / entry is this about?
    profile_name: Optional[str] = None
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entry this event relates to"
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

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user edit?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile_name": self.profile_name,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of the append-only audit file."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added("Household", entry_id, "Netflix")
        event = AuditEventBuilder.profile_saved("Household", path)
    """

    @staticmethod
    def profile_created(profile_name: str, path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            profile_name=profile_name,
            description=f"Profile created: {profile_name}",
            details={"path": path},
            is_user_action=True,
        )

    @staticmethod
    def profile_renamed(old_name: str, new_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_RENAMED,
            profile_name=new_name,
            description=f"Profile renamed: {old_name} -> {new_name}",
            details={"old_name": old_name},
            is_user_action=True,
        )

    @staticmethod
    def profile_deleted(profile_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_DELETED,
            profile_name=profile_name,
            description=f"Profile deleted: {profile_name}",
            is_user_action=True,
        )

    @staticmethod
    def profile_loaded(
        profile_name: str,
        entry_count: int,
        skipped_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_LOADED,
            severity=AuditSeverity.WARNING if skipped_count else AuditSeverity.INFO,
            profile_name=profile_name,
            description=f"Profile loaded with {entry_count} entries",
            details={
                "entry_count": entry_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def profile_saved(profile_name: str, path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SAVED,
            profile_name=profile_name,
            description=f"Profile saved: {profile_name}",
            details={"path": path},
        )

    @staticmethod
    def profile_settled(
        profile_name: str,
        settled_count: int,
        as_of: str,
        initial_balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SETTLED,
            profile_name=profile_name,
            description=f"Settled {settled_count} past one-time entries",
            details={
                "as_of": as_of,
                "initial_balance": initial_balance,
            },
        )

    @staticmethod
    def entry_added(
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            profile_name=profile_name,
            entity_id=entry_id,
            description=f"Entry added: {entry_name}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            profile_name=profile_name,
            entity_id=entry_id,
            description=f"Entry updated: {entry_name}",
            is_user_action=True,
        )

    @staticmethod
    def entry_removed(
        profile_name: str,
        entry_id: UUID,
        entry_name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REMOVED,
            profile_name=profile_name,
            entity_id=entry_id,
            description=f"Entry removed: {entry_name}",
            is_user_action=True,
        )

    @staticmethod
    def entry_skipped(
        profile_name: str,
        index: int,
        message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SKIPPED,
            severity=AuditSeverity.WARNING,
            profile_name=profile_name,
            description=f"Entry #{index} skipped while loading",
            error_message=message,
            details={"index": index},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        profile_name: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            profile_name=profile_name,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
