"""
Budget Session

This module ties together the registry, storage, calculator and audit trail
into the one object the presentation layer talks to.

DESIGN DECISION: The session enforces the boundaries:
- The GUI never writes a profile file itself
- Every edit goes through the profile's own operations, so ids stay unique
- Every edit is audited and, with autosave on, persisted immediately

If an autosave fails the edit stays in memory and the StorageIOError
propagates; calling save() again retries.
"""

from datetime import date
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from dateutil.relativedelta import relativedelta

from nixbucks.audit import AuditLogger
from nixbucks.calculator import (
    PeriodSummary,
    Projection,
    balance_at,
    cost_to_year_end,
    monthly_delta,
    monthly_summary,
    project,
    settle,
)
from nixbucks.config import AppSettings, get_settings
from nixbucks.errors import NoActiveProfileError, ProfileNotFoundError, StorageError
from nixbucks.log import configure_logging
from nixbucks.models.amount import Amount
from nixbucks.models.entry import Entry
from nixbucks.models.profile import LoadedProfile, LoadIssue, Profile
from nixbucks.registry import ProfileRegistry
from nixbucks.services.storage import (
    JsonLinesAuditStorage,
    JsonProfileStorage,
    ProfileStorageInterface,
)


class BudgetSession:
    """
    The active profile of one running application.

    The session exclusively owns the loaded Profile. Switching profiles
    drops the previous one; it was already saved if autosave is on.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        storage: Optional[ProfileStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        autosave: bool = True,
        app_settings: Optional[AppSettings] = None,
    ):
        self._registry = registry
        self._app_settings = app_settings or get_settings().app
        self._storage = storage or registry.storage
        self._audit = audit_logger or AuditLogger()  # Local-only logging
        self.autosave = autosave

        self._profile: Optional[Profile] = None
        self._name: Optional[str] = None
        self._path: Optional[Path] = None
        self._issues: list[LoadIssue] = []

    # -------------------------------------------------------------------------
    # Active profile
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> ProfileRegistry:
        return self._registry

    @property
    def active(self) -> Profile:
        """
        Raises:
            NoActiveProfileError: Before switch() or open_default()
        """
        if self._profile is None:
            raise NoActiveProfileError("No profile is open")
        return self._profile

    @property
    def active_name(self) -> str:
        """Name the active profile is registered under."""
        if self._name is None:
            raise NoActiveProfileError("No profile is open")
        return self._name

    @property
    def active_path(self) -> Path:
        if self._path is None:
            raise NoActiveProfileError("No profile is open")
        return self._path

    @property
    def load_issues(self) -> list[LoadIssue]:
        """Entries skipped when the active profile was loaded."""
        return list(self._issues)

    def switch(self, name: str) -> LoadedProfile:
        """
        Load a registered profile and make it the active one.

        Raises:
            ProfileNotFoundError: If ``name`` is unknown or its file is gone
            CorruptProfileError: If the file cannot be read as a profile
        """
        path = self._registry.path_for(name)
        loaded = self._storage.load(path)

        self._profile = loaded.profile
        self._name = name
        self._path = path
        self._issues = list(loaded.issues)

        self._audit.log_profile_loaded(
            profile_name=loaded.profile.name,
            entry_count=len(loaded.profile.entries),
            issues=loaded.issues,
        )
        return loaded

    def open_default(self) -> LoadedProfile:
        """Open the default profile, creating it on first run."""
        name = self._registry.default_profile_name
        if name not in self._registry:
            self._registry.create_profile(name)
        return self.switch(name)

    def save(self) -> None:
        """
        Persist the active profile now.

        Raises:
            ProfileNotFoundError: If the registry no longer maps the active
                name to the active file (renamed or deleted elsewhere)
            StorageIOError: If the write fails
        """
        profile = self.active
        try:
            if self._registry.path_for(self.active_name) != self.active_path:
                raise ProfileNotFoundError(
                    f"Profile {self.active_name} is no longer registered at {self.active_path}"
                )
            self._storage.save(profile, self.active_path)
        except StorageError as e:
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                profile_name=profile.name,
            )
            raise
        self._audit.log_profile_saved(profile.name, str(self.active_path))

    def _persist(self) -> None:
        if self.autosave:
            self.save()

    def _close(self) -> None:
        self._profile = None
        self._name = None
        self._path = None
        self._issues = []

    # -------------------------------------------------------------------------
    # Profile lifecycle
    # -------------------------------------------------------------------------

    def rename_profile(self, old_name: str, new_name: str) -> Profile:
        """
        Rename a registered profile, keeping the active one in step.

        Raises:
            ProfileNotFoundError: If ``old_name`` is not registered
            DuplicateProfileError: If ``new_name`` is taken
        """
        renamed = self._registry.rename_profile(old_name, new_name)
        if old_name == self._name:
            self._name = renamed.name
            self._profile.name = renamed.name
        return renamed

    def delete_profile(self, name: str) -> None:
        """
        Delete a registered profile. Deleting the active one closes it.

        Raises:
            ProfileNotFoundError: If ``name`` is not registered
        """
        self._registry.delete_profile(name)
        if name == self._name:
            self._close()

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def add_entry(self, entry: Entry) -> UUID:
        profile = self.active
        entry_id = profile.add_entry(entry)
        self._audit.log_entry_added(
            profile_name=profile.name,
            entry_id=entry_id,
            entry_name=entry.name,
            amount=str(entry.signed_amount()),
        )
        self._persist()
        return entry_id

    def remove_entry(self, entry_id: UUID) -> Entry:
        """
        Raises:
            EntryNotFoundError: If the id is unknown (nothing is saved)
        """
        profile = self.active
        removed = profile.remove_entry(entry_id)
        self._audit.log_entry_removed(profile.name, entry_id, removed.name)
        self._persist()
        return removed

    def update_entry(self, entry_id: UUID, new_entry: Entry) -> Entry:
        """
        Raises:
            EntryNotFoundError: If the id is unknown (nothing is saved)
        """
        profile = self.active
        updated = profile.update_entry(entry_id, new_entry)
        self._audit.log_entry_updated(profile.name, entry_id, updated.name)
        self._persist()
        return updated

    def set_initial_balance(self, amount: Amount) -> None:
        self.active.initial_balance = Amount.parse(amount)
        self._persist()

    def settle(self, as_of: date) -> int:
        """
        Fold past one-time entries into the initial balance.

        Returns:
            Number of entries settled
        """
        profile = self.active
        settled = settle(profile, as_of)
        count = len(profile.entries) - len(settled.entries)
        if not count:
            return 0

        self._profile = settled
        self._audit.log_profile_settled(
            profile_name=settled.name,
            settled_count=count,
            as_of=as_of.isoformat(),
            initial_balance=str(settled.initial_balance),
        )
        self._persist()
        return count

    # -------------------------------------------------------------------------
    # Read-through calculations
    # -------------------------------------------------------------------------

    def balance_at(self, day: date) -> Amount:
        return balance_at(self.active, day)

    def monthly_delta(self, year: int, month: int) -> Amount:
        return monthly_delta(self.active, year, month)

    def monthly_summary(self, year: int, month: int) -> PeriodSummary:
        return monthly_summary(self.active, year, month)

    def cost_to_year_end(self, today: date) -> Amount:
        return cost_to_year_end(self.active, today)

    def project(self, from_date: date, to_date: Optional[date] = None) -> Projection:
        """
        Project the active profile forward.

        Without ``to_date`` the projection covers the configured horizon
        (``projection_horizon_months``) from ``from_date``.
        """
        if to_date is None:
            months = self._app_settings.projection_horizon_months
            to_date = from_date + relativedelta(months=months, days=-1)
        return project(self.active, from_date, to_date)

    def format_amount(self, amount: Amount) -> str:
        """Render an amount for display with the configured currency symbol."""
        symbol = self._app_settings.currency_symbol
        if amount.is_negative():
            return f"-{symbol}{abs(amount)}"
        return f"{symbol}{amount}"


def create_session(
    directory: Optional[Union[str, Path]] = None,
    autosave: bool = True,
) -> BudgetSession:
    """
    Factory function to create the full object graph.

    Args:
        directory: Data directory; defaults to configuration, then to the
                  per-user platform directory.
        autosave: Persist after every edit.

    Returns:
        A session with a scanned registry and no profile open yet
    """
    settings = get_settings()
    storage_settings = settings.storage
    app_settings = settings.app

    configure_logging(debug=app_settings.debug_mode)

    data_dir = Path(directory) if directory is not None else storage_settings.resolved_data_dir

    audit_storage = None
    if storage_settings.audit_enabled:
        audit_storage = JsonLinesAuditStorage(data_dir / storage_settings.audit_file_name)
    audit_logger = AuditLogger(audit_storage)

    storage = JsonProfileStorage(save_attempts=storage_settings.save_attempts)
    registry = ProfileRegistry(
        directory=data_dir,
        storage=storage,
        settings=storage_settings,
        audit_logger=audit_logger,
        default_profile_name=app_settings.default_profile_name,
    )
    registry.scan()

    return BudgetSession(
        registry=registry,
        storage=storage,
        audit_logger=audit_logger,
        autosave=autosave,
        app_settings=app_settings,
    )
