"""Shared fixtures: keep every test away from the real per-user data directory."""

from datetime import date

import pytest

from nixbucks.config import get_settings
from nixbucks.models import Amount, Entry, EntryKind, Monthly, OneTime, Profile


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NIXBUCKS_STORAGE_DATA_DIR", str(tmp_path / "data"))
    for var in (
        "NIXBUCKS_STORAGE_SAVE_ATTEMPTS",
        "NIXBUCKS_STORAGE_AUDIT_ENABLED",
        "NIXBUCKS_STORAGE_PROFILE_SUFFIX",
        "DEFAULT_PROFILE_NAME",
        "PROJECTION_HORIZON_MONTHS",
        "CURRENCY_SYMBOL",
        "DEBUG_MODE",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def salary() -> Entry:
    return Entry(
        kind=EntryKind.INCOME,
        name="Salary",
        amount=Amount.parse("3000"),
        recurrence=Monthly(day=1),
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def streaming() -> Entry:
    return Entry(
        kind=EntryKind.SUBSCRIPTION,
        name="Streaming",
        amount=Amount.parse("15.00"),
        recurrence=Monthly(day=1),
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def laptop() -> Entry:
    return Entry(
        kind=EntryKind.EXPENSE,
        name="Laptop repair",
        amount=Amount.parse("500"),
        recurrence=OneTime(on=date(2024, 6, 15)),
    )


@pytest.fixture
def household(salary, streaming) -> Profile:
    profile = Profile(name="Household")
    profile.add_entry(salary)
    profile.add_entry(streaming)
    return profile
