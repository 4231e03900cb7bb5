"""Services package."""

from nixbucks.services.storage import (
    AuditStorageInterface,
    CorruptProfileError,
    DuplicateProfileError,
    JsonLinesAuditStorage,
    JsonProfileStorage,
    ProfileNotFoundError,
    ProfileStorageInterface,
    StorageError,
    StorageIOError,
)

__all__ = [
    "AuditStorageInterface",
    "CorruptProfileError",
    "DuplicateProfileError",
    "JsonLinesAuditStorage",
    "JsonProfileStorage",
    "ProfileNotFoundError",
    "ProfileStorageInterface",
    "StorageError",
    "StorageIOError",
]
