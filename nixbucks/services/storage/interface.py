"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the calculator and session unaware of file formats
2. Use in-memory storage for testing
3. Swap JSON for another format later

The interface is intentionally simple - we're not building a database.
Just the operations a single-user profile needs.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from nixbucks.errors import (
    CorruptProfileError,
    DuplicateProfileError,
    ProfileNotFoundError,
    StorageError,
    StorageIOError,
)
from nixbucks.models.audit import AuditEvent
from nixbucks.models.profile import LoadedProfile, Profile


class ProfileStorageInterface(ABC):
    """
    Abstract interface for profile persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self, path: Path) -> LoadedProfile:
        """
        Read a profile.

        Args:
            path: Location of the profile document

        Returns:
            The profile plus any entries skipped as malformed

        Raises:
            ProfileNotFoundError: If nothing exists at ``path``
            CorruptProfileError: If the document as a whole is unreadable
            StorageIOError: If the filesystem refuses the read
        """
        pass

    @abstractmethod
    def save(self, profile: Profile, path: Path) -> None:
        """
        Write a profile so that readers only ever see the old or the new
        version, never a partial one.

        Raises:
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        pass

    @abstractmethod
    def delete(self, path: Path) -> None:
        """
        Remove a stored profile.

        Raises:
            ProfileNotFoundError: If nothing exists at ``path``
            StorageIOError: If the filesystem refuses
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "CorruptProfileError",
    "DuplicateProfileError",
    "ProfileNotFoundError",
    "ProfileStorageInterface",
    "StorageError",
    "StorageIOError",
]
