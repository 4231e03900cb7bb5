"""
Profile Aggregate

A Profile is one named budget scenario. It exclusively owns its entries;
the order of the list is kept for display and ignored by calculations.

Entry ids are unique within a profile. add_entry always hands out a fresh
id, so callers never have to manage them.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nixbucks.errors import EntryNotFoundError
from nixbucks.models.amount import Amount
from nixbucks.models.entry import Entry, EntryKind


PROFILE_SCHEMA_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """A named collection of entries plus metadata."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    schema_version: int = Field(
        default=PROFILE_SCHEMA_VERSION,
        ge=1,
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within the registry"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the profile was created (UTC)"
    )
    initial_balance: Amount = Field(
        default_factory=Amount.zero,
        description="Savings held before the first entry"
    )
    entries: list[Entry] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'Profile':
        seen = set()
        for entry in self.entries:
            if entry.id in seen:
                raise ValueError(f"Duplicate entry id: {entry.id}")
            seen.add(entry.id)
        return self

    def _index_of(self, entry_id: UUID) -> int:
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return index
        raise EntryNotFoundError(entry_id)

    def get_entry(self, entry_id: UUID) -> Entry:
        return self.entries[self._index_of(entry_id)]

    def has_entry(self, entry_id: UUID) -> bool:
        return any(entry.id == entry_id for entry in self.entries)

    def entries_of(self, kind: EntryKind) -> list[Entry]:
        return [entry for entry in self.entries if entry.kind == kind]

    def add_entry(self, entry: Entry) -> UUID:
        """
        Append an entry under a freshly assigned id.

        The caller's entry object is not modified; a copy carrying the new
        id is stored.

        Returns:
            The id the entry is now known by
        """
        new_id = uuid4()
        while self.has_entry(new_id):
            new_id = uuid4()
        self.entries.append(entry.model_copy(update={"id": new_id}, deep=True))
        return new_id

    def remove_entry(self, entry_id: UUID) -> Entry:
        """
        Remove an entry.

        Raises:
            EntryNotFoundError: If no entry has this id (profile unchanged)
        """
        return self.entries.pop(self._index_of(entry_id))

    def update_entry(self, entry_id: UUID, new_entry: Entry) -> Entry:
        """
        Replace an entry in place, keeping its id and position.

        Raises:
            EntryNotFoundError: If no entry has this id
        """
        index = self._index_of(entry_id)
        replacement = new_entry.model_copy(update={"id": entry_id}, deep=True)
        self.entries[index] = replacement
        return replacement


class LoadIssue(BaseModel):
    """
    A non-fatal problem found while loading a profile file.

    The offending entry was skipped; the rest of the profile loaded.
    """

    index: int = Field(
        ...,
        ge=0,
        description="Position of the entry in the file"
    )
    entry_id: Optional[str] = Field(
        default=None,
        description="Raw id of the entry, if it had one"
    )
    message: str
    severity: str = Field(
        default="warning",
        pattern="^(error|warning|info)$",
    )


class LoadedProfile(BaseModel):
    """A profile as read from disk, with any entries that had to be skipped."""

    profile: Profile
    issues: list[LoadIssue] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)
