"""
Error Taxonomy for NixBucks

Every failure the engine reports to the presentation layer is one of these.
None of them is fatal: the caller shows the message and carries on.

DESIGN DECISION: Model errors (amounts, date ranges) deliberately do NOT
derive from ValueError. Pydantic only wraps ValueError/AssertionError into
a ValidationError, so these propagate from model construction unchanged and
callers can catch them by name.
"""


class BudgetError(Exception):
    """Base exception for every NixBucks error."""
    pass


class InvalidAmountError(BudgetError):
    """Amount input is non-numeric, too precise or out of range."""
    pass


class InvalidDateRangeError(BudgetError):
    """An entry's end date falls before its start date."""
    pass


class EntryNotFoundError(BudgetError):
    """No entry with the given id exists in the profile."""

    def __init__(self, entry_id):
        super().__init__(f"Entry not found: {entry_id}")
        self.entry_id = entry_id


class InvalidProfileNameError(BudgetError):
    """A profile name is empty or too long."""
    pass


class StorageError(BudgetError):
    """Base exception for profile storage operations."""
    pass


class ProfileNotFoundError(StorageError):
    """The requested profile file or registry name does not exist."""
    pass


class DuplicateProfileError(StorageError):
    """A profile with this name is already registered."""
    pass


class CorruptProfileError(StorageError):
    """The profile file exists but cannot be understood."""
    pass


class StorageIOError(StorageError):
    """The filesystem refused a read or write."""
    pass


class NoActiveProfileError(BudgetError):
    """A session operation needs a profile but none has been opened."""
    pass
