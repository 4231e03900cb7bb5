"""
Tests for the profile registry

Each test gets its own data directory; nothing touches the real per-user
location.
"""

import json

import pytest

from nixbucks.audit import AuditLogger
from nixbucks.config import default_data_dir
from nixbucks.errors import (
    DuplicateProfileError,
    InvalidProfileNameError,
    ProfileNotFoundError,
)
from nixbucks.models import Amount, AuditEventType
from nixbucks.registry import ProfileRegistry
from nixbucks.services.storage import JsonLinesAuditStorage, JsonProfileStorage


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "profiles"


@pytest.fixture
def registry(data_dir) -> ProfileRegistry:
    registry = ProfileRegistry(directory=data_dir)
    registry.scan()
    return registry


def read_index(registry: ProfileRegistry) -> dict:
    return json.loads(registry.index_path.read_text(encoding="utf-8"))["profiles"]


class TestCreate:

    def test_create_registers_and_writes(self, registry, data_dir):
        profile = registry.create_profile("Household", Amount.parse("250"))

        assert profile.initial_balance == Amount.parse("250")
        assert "Household" in registry
        assert registry.path_for("Household") == data_dir / "Household.json"
        assert read_index(registry) == {"Household": "Household.json"}

        loaded = registry.open_profile("Household")
        assert loaded.profile.name == "Household"
        assert loaded.profile.entries == []

    def test_duplicate_name(self, registry):
        registry.create_profile("Household")
        with pytest.raises(DuplicateProfileError):
            registry.create_profile("Household")

    def test_unsafe_names_get_safe_files(self, registry, data_dir):
        """Test that display names never escape the data directory."""
        registry.create_profile("My Budget/2024")
        registry.create_profile("../..")
        assert registry.path_for("My Budget/2024") == data_dir / "My-Budget-2024.json"
        assert registry.path_for("../..") == data_dir / "profile.json"

    def test_file_name_collision(self, registry, data_dir):
        registry.create_profile("a b")
        registry.create_profile("a/b")
        assert registry.path_for("a b").name == "a-b.json"
        assert registry.path_for("a/b").name == "a-b-2.json"

    def test_index_name_is_never_a_profile_file(self, registry):
        registry.create_profile("profiles")
        assert registry.path_for("profiles").name == "profiles-2.json"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_name(self, registry, name):
        """Test that unusable names raise a domain error and write nothing."""
        with pytest.raises(InvalidProfileNameError):
            registry.create_profile(name)
        assert registry.list_profiles() == set()
        assert not registry.index_path.exists()

    def test_list_profiles(self, registry):
        registry.create_profile("One")
        registry.create_profile("Two")
        assert registry.list_profiles() == {"One", "Two"}


class TestScan:
    """Rebuilding the mapping from disk."""

    def test_new_instance_sees_created_profiles(self, registry, data_dir):
        registry.create_profile("Household")
        registry.create_profile("Holiday")

        again = ProfileRegistry(directory=data_dir)
        assert again.scan() == {"Household", "Holiday"}

    def test_unindexed_file_registered_by_stem(self, registry, data_dir, household):
        JsonProfileStorage().save(household, data_dir / "copied-in.json")
        assert registry.scan() == {"copied-in"}
        assert registry.open_profile("copied-in").profile.name == "Household"

    def test_missing_file_dropped(self, registry):
        registry.create_profile("Gone")
        registry.path_for("Gone").unlink()
        assert registry.scan() == set()

    def test_corrupt_index_rebuilt_from_files(self, registry, data_dir):
        registry.create_profile("Household")
        registry.index_path.write_text("{broken", encoding="utf-8")
        assert registry.scan() == {"Household"}

    def test_index_cannot_point_outside_directory(self, registry, data_dir, tmp_path, household):
        """Test that only bare file names from the index are honoured."""
        storage = JsonProfileStorage()
        storage.save(household, tmp_path / "outside.json")
        storage.save(household, data_dir / "inside.json")
        registry.index_path.write_text(json.dumps({"profiles": {
            "Outside": "../outside.json",
            "Absolute": str(tmp_path / "outside.json"),
            "Inside": "inside.json",
        }}), encoding="utf-8")

        assert registry.scan() == {"Inside"}
        assert registry.path_for("Inside") == data_dir / "inside.json"

    def test_empty_directory(self, tmp_path):
        assert ProfileRegistry(directory=tmp_path / "absent").scan() == set()


class TestRenameDelete:

    def test_rename_keeps_file_and_entries(self, registry, salary):
        registry.create_profile("Old")
        path = registry.path_for("Old")
        loaded = registry.open_profile("Old")
        loaded.profile.add_entry(salary)
        registry.storage.save(loaded.profile, path)

        renamed = registry.rename_profile("Old", "New")

        assert renamed.name == "New"
        assert "Old" not in registry
        assert registry.path_for("New") == path
        assert len(registry.open_profile("New").profile.entries) == 1
        assert read_index(registry) == {"New": path.name}

    def test_rename_to_existing_name(self, registry):
        registry.create_profile("One")
        registry.create_profile("Two")
        with pytest.raises(DuplicateProfileError):
            registry.rename_profile("One", "Two")
        assert registry.open_profile("One").profile.name == "One"

    def test_rename_to_invalid_name(self, registry):
        registry.create_profile("One")
        with pytest.raises(InvalidProfileNameError):
            registry.rename_profile("One", "")
        assert "One" in registry

    def test_rename_unknown(self, registry):
        with pytest.raises(ProfileNotFoundError):
            registry.rename_profile("Nobody", "Somebody")

    def test_delete(self, registry):
        registry.create_profile("Household")
        path = registry.path_for("Household")

        registry.delete_profile("Household")

        assert not path.exists()
        assert "Household" not in registry
        assert read_index(registry) == {}

    def test_delete_when_file_already_gone(self, registry):
        registry.create_profile("Household")
        registry.path_for("Household").unlink()
        registry.delete_profile("Household")
        assert registry.list_profiles() == set()

    def test_path_for_unknown(self, registry):
        with pytest.raises(ProfileNotFoundError):
            registry.path_for("Nobody")


class TestDefaults:

    def test_default_profile_path(self, registry, data_dir):
        assert registry.default_profile_name == "default"
        assert registry.default_profile_path() == data_dir / "default.json"

    def test_default_data_dir_uses_app_name(self):
        assert default_data_dir().name == "NixBucks"

    def test_directory_from_settings(self, tmp_path):
        """Test that the configured data directory is used when none is given."""
        assert ProfileRegistry().directory == tmp_path / "data"


class TestAuditTrail:

    def test_lifecycle_events(self, data_dir):
        audit = AuditLogger(JsonLinesAuditStorage(data_dir / "audit.jsonl"))
        registry = ProfileRegistry(directory=data_dir, audit_logger=audit)
        registry.scan()

        registry.create_profile("A")
        registry.rename_profile("A", "B")
        registry.delete_profile("B")

        types = [event.event_type for event in audit.recent_events()]
        assert types == [
            AuditEventType.PROFILE_DELETED,
            AuditEventType.PROFILE_RENAMED,
            AuditEventType.PROFILE_CREATED,
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
