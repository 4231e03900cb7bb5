"""
Data Models Package

This package contains all Pydantic models used by the NixBucks engine.
Everything persisted to a profile file conforms to these schemas.
"""

from nixbucks.models.amount import Amount
from nixbucks.models.entry import (
    Daily,
    Entry,
    EntryKind,
    Monthly,
    OneTime,
    Recurrence,
    RecurrenceKind,
    Yearly,
)
from nixbucks.models.profile import (
    LoadedProfile,
    LoadIssue,
    Profile,
)
from nixbucks.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Money
    "Amount",
    # Entry models
    "Daily",
    "Entry",
    "EntryKind",
    "Monthly",
    "OneTime",
    "Recurrence",
    "RecurrenceKind",
    "Yearly",
    # Profile models
    "LoadedProfile",
    "LoadIssue",
    "Profile",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
