"""
Tests for the budget session

These exercise the full object graph built by create_session, against a
temporary data directory.
"""

import json
from datetime import date
from uuid import uuid4

import pytest

from nixbucks.errors import (
    EntryNotFoundError,
    NoActiveProfileError,
    ProfileNotFoundError,
    StorageIOError,
)
from nixbucks.models import Amount, AuditEventType, Entry, EntryKind, Monthly
from nixbucks.services.storage import json_file
from nixbucks.session import BudgetSession, create_session


@pytest.fixture
def session(tmp_path) -> BudgetSession:
    session = create_session(tmp_path)
    session.open_default()
    return session


def event_types(session: BudgetSession) -> list[AuditEventType]:
    return [event.event_type for event in session._audit.recent_events()]


class TestOpening:

    def test_no_profile_before_open(self, tmp_path):
        session = create_session(tmp_path)
        with pytest.raises(NoActiveProfileError):
            session.active
        with pytest.raises(NoActiveProfileError):
            session.balance_at(date(2024, 1, 1))

    def test_open_default_creates_on_first_run(self, tmp_path):
        session = create_session(tmp_path)
        loaded = session.open_default()

        assert loaded.profile.name == "default"
        assert session.active_path == tmp_path / "default.json"
        assert session.active_path.is_file()
        assert event_types(session) == [
            AuditEventType.PROFILE_LOADED,
            AuditEventType.PROFILE_CREATED,
        ]

    def test_switch(self, session):
        session.registry.create_profile("Holiday", Amount.parse("800"))
        session.switch("Holiday")
        assert session.active.name == "Holiday"
        assert session.balance_at(date(2024, 1, 1)) == Amount.parse("800")

    def test_switch_reports_skipped_entries(self, session, tmp_path):
        path = tmp_path / "edited.json"
        path.write_text(json.dumps({
            "name": "Edited",
            "entries": [{"kind": "income", "name": "Broken", "amount": "-5"}],
        }), encoding="utf-8")
        session.registry.scan()

        loaded = session.switch("edited")

        assert loaded.has_issues
        assert session.load_issues[0].index == 0
        assert session.active.entries == []
        assert event_types(session)[:2] == [
            AuditEventType.PROFILE_LOADED,
            AuditEventType.ENTRY_SKIPPED,
        ]


class TestEdits:
    """Every edit is applied, audited and autosaved."""

    def test_scenario_figures(self, session, salary, streaming, laptop):
        session.add_entry(salary)
        session.add_entry(streaming)
        assert session.monthly_delta(2024, 3) == Amount.parse("2985.00")

        session.add_entry(laptop)
        assert session.balance_at(date(2024, 6, 30)) == Amount.parse("17410.00")
        assert session.monthly_summary(2024, 6).expenses == Amount.parse("500")
        assert session.cost_to_year_end(date(2024, 6, 16)) == Amount.parse("90.00")

    def test_autosave_persists(self, session, tmp_path, salary):
        entry_id = session.add_entry(salary)

        reopened = create_session(tmp_path)
        loaded = reopened.switch("default")

        assert [entry.id for entry in loaded.profile.entries] == [entry_id]
        assert AuditEventType.ENTRY_ADDED in event_types(session)
        assert AuditEventType.PROFILE_SAVED in event_types(session)

    def test_update_and_remove(self, session, salary):
        entry_id = session.add_entry(salary)
        raise_ = salary.model_copy(update={"amount": Amount.parse("3200")})

        session.update_entry(entry_id, raise_)
        assert session.active.get_entry(entry_id).amount == Amount.parse("3200")

        removed = session.remove_entry(entry_id)
        assert removed.name == "Salary"
        assert session.active.entries == []
        assert event_types(session)[0] == AuditEventType.PROFILE_SAVED
        assert AuditEventType.ENTRY_REMOVED in event_types(session)

    def test_unknown_id_changes_nothing(self, session, salary):
        session.add_entry(salary)
        before = session.active_path.read_text(encoding="utf-8")

        with pytest.raises(EntryNotFoundError):
            session.remove_entry(uuid4())
        with pytest.raises(EntryNotFoundError):
            session.update_entry(uuid4(), salary)

        assert session.active_path.read_text(encoding="utf-8") == before
        assert len(session.active.entries) == 1

    def test_autosave_off(self, tmp_path, salary):
        session = create_session(tmp_path, autosave=False)
        session.open_default()
        before = session.active_path.read_text(encoding="utf-8")

        session.add_entry(salary)
        assert session.active_path.read_text(encoding="utf-8") == before

        session.save()
        assert session.active_path.read_text(encoding="utf-8") != before

    def test_failed_autosave_keeps_edit_in_memory(self, session, salary, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(json_file.os, "replace", broken_replace)
        with pytest.raises(StorageIOError):
            session.add_entry(salary)

        assert len(session.active.entries) == 1
        assert event_types(session)[0] == AuditEventType.SYSTEM_ERROR

    def test_set_initial_balance(self, session):
        session.set_initial_balance(Amount.parse("1000"))
        reloaded = session.registry.open_profile("default")
        assert reloaded.profile.initial_balance == Amount.parse("1000")


class TestSettle:

    def test_settle_folds_past_one_time(self, session, salary, laptop):
        session.add_entry(salary)
        session.add_entry(laptop)
        before = session.balance_at(date(2024, 12, 31))

        assert session.settle(date(2024, 7, 1)) == 1

        assert session.active.initial_balance == Amount.parse("-500")
        assert session.balance_at(date(2024, 12, 31)) == before
        assert event_types(session)[:2] == [
            AuditEventType.PROFILE_SAVED,
            AuditEventType.PROFILE_SETTLED,
        ]
        reloaded = session.registry.open_profile("default")
        assert len(reloaded.profile.entries) == 1

    def test_settle_nothing(self, session, salary):
        session.add_entry(salary)
        assert session.settle(date(2030, 1, 1)) == 0


class TestProjection:

    def test_projection_follows_edits(self, session):
        """Test that a projection reads the profile as it is when iterated."""
        projection = session.project(date(2024, 1, 1), date(2024, 3, 31))
        assert list(projection) == []

        session.add_entry(Entry(
            kind=EntryKind.INCOME,
            name="Allowance",
            amount=Amount.parse("10"),
            recurrence=Monthly(day=15),
            start_date=date(2024, 1, 1),
        ))
        new_projection = session.project(date(2024, 1, 1), date(2024, 3, 31))
        assert list(projection) == list(new_projection)
        assert [snapshot.balance for snapshot in new_projection] == [
            Amount.parse("10"), Amount.parse("20"), Amount.parse("30"),
        ]


class TestProfileLifecycle:
    """Renaming and deleting keep the session and the registry in step."""

    def _document(self, path):
        return json.loads(path.read_text(encoding="utf-8"))

    def test_rename_active_profile(self, session, salary):
        path = session.active_path

        session.rename_profile("default", "Home")
        session.add_entry(salary)

        assert session.active.name == "Home"
        assert session.active_name == "Home"
        assert session.registry.path_for("Home") == path
        assert self._document(path)["name"] == "Home"
        assert len(self._document(path)["entries"]) == 1

    def test_rename_other_profile_leaves_active_alone(self, session):
        session.registry.create_profile("Holiday")
        session.rename_profile("Holiday", "Trip")
        assert session.active.name == "default"
        assert session.registry.list_profiles() == {"default", "Trip"}

    def test_delete_active_profile(self, session, tmp_path):
        path = session.active_path

        session.delete_profile("default")

        assert not path.exists()
        with pytest.raises(NoActiveProfileError):
            session.active
        assert session.registry.scan() == set()

    def test_rename_behind_the_session_blocks_stale_save(self, session, salary):
        """Test that a save never writes the old name over a renamed file."""
        path = session.active_path
        session.registry.rename_profile("default", "Home")

        with pytest.raises(ProfileNotFoundError):
            session.add_entry(salary)
        assert self._document(path)["name"] == "Home"
        assert event_types(session)[0] == AuditEventType.SYSTEM_ERROR

    def test_delete_behind_the_session_does_not_recreate_file(self, session, salary):
        path = session.active_path
        session.registry.delete_profile("default")

        with pytest.raises(ProfileNotFoundError):
            session.add_entry(salary)
        assert not path.exists()


class TestDisplaySettings:

    def test_default_projection_horizon(self, session, salary):
        session.add_entry(salary)
        snapshots = list(session.project(date(2024, 1, 1)))
        assert len(snapshots) == 12
        assert snapshots[-1].on == date(2024, 12, 1)

    def test_configured_projection_horizon(self, tmp_path, monkeypatch, salary):
        monkeypatch.setenv("PROJECTION_HORIZON_MONTHS", "3")
        session = create_session(tmp_path)
        session.open_default()
        session.add_entry(salary)
        projection = session.project(date(2024, 1, 1))
        assert projection.to_date == date(2024, 3, 31)
        assert len(list(projection)) == 3

    def test_format_amount(self, session):
        assert session.format_amount(Amount.parse("15")) == "$15.00"
        assert session.format_amount(Amount.parse("-2.5")) == "-$2.50"

    def test_configured_currency_symbol(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CURRENCY_SYMBOL", "€")
        session = create_session(tmp_path)
        assert session.format_amount(Amount.parse("9.99")) == "€9.99"


class TestAuditDisabled:

    def test_no_audit_file(self, tmp_path, monkeypatch, salary):
        monkeypatch.setenv("NIXBUCKS_STORAGE_AUDIT_ENABLED", "false")
        session = create_session(tmp_path)
        session.open_default()
        session.add_entry(salary)
        assert not (tmp_path / "audit.jsonl").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
