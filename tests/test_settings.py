"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from nixbucks.config import (
    AppSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


class TestStorageSettings:

    def test_defaults(self, tmp_path):
        settings = StorageSettings()
        assert settings.index_file_name == "profiles.json"
        assert settings.profile_suffix == ".json"
        assert settings.save_attempts == 3
        assert settings.resolved_data_dir == tmp_path / "data"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("NIXBUCKS_STORAGE_SAVE_ATTEMPTS", "5")
        assert get_settings().storage.save_attempts == 5

    def test_suffix_needs_dot(self):
        with pytest.raises(ValidationError):
            StorageSettings(profile_suffix="json")

    def test_attempts_bounded(self):
        with pytest.raises(ValidationError):
            StorageSettings(save_attempts=0)


class TestAppSettings:

    def test_dotenv_file(self, tmp_path):
        """Test that a .env file in the working directory is read."""
        (tmp_path / ".env").write_text("DEFAULT_PROFILE_NAME=Household\n", encoding="utf-8")
        assert AppSettings().default_profile_name == "Household"

    def test_defaults(self):
        settings = AppSettings()
        assert settings.default_profile_name == "default"
        assert settings.projection_horizon_months == 12
        assert settings.debug_mode is False


class TestValidateAll:

    def test_all_valid(self):
        assert validate_all_settings() == {"storage": True, "app": True}

    def test_reports_failures(self, monkeypatch):
        monkeypatch.setenv("NIXBUCKS_STORAGE_SAVE_ATTEMPTS", "many")
        results = validate_all_settings()
        assert results["storage"] is False
        assert "save_attempts" in results["storage_error"]
        assert results["app"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
