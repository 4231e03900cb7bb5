"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Profiles are JSON documents on the local disk; the interface keeps that
swappable.
"""

from nixbucks.services.storage.interface import (
    AuditStorageInterface,
    CorruptProfileError,
    DuplicateProfileError,
    ProfileNotFoundError,
    ProfileStorageInterface,
    StorageError,
    StorageIOError,
)
from nixbucks.services.storage.json_file import (
    JsonLinesAuditStorage,
    JsonProfileStorage,
    scoped_temp_file,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ProfileStorageInterface",
    # Exceptions
    "CorruptProfileError",
    "DuplicateProfileError",
    "ProfileNotFoundError",
    "StorageError",
    "StorageIOError",
    # JSON implementation
    "JsonLinesAuditStorage",
    "JsonProfileStorage",
    "scoped_temp_file",
]
