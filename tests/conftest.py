"""Shared fixtures: the example school year (Aug 12, 2025 - May 21, 2026)."""

import json
from pathlib import Path

import pytest

from schoolcal.calendar_service import SchoolCalendar
from schoolcal.config import parse_school_config
from schoolcal.override_store import InMemoryOverrideStore

EXAMPLE_CONFIG = Path(__file__).parent.parent / "school.example.json"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in ("SCHOOLCAL_TIMEZONE", "SCHOOLCAL_CONFIG", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def example_config_path():
    return EXAMPLE_CONFIG


@pytest.fixture
def school_data():
    with open(EXAMPLE_CONFIG, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def school_config(school_data):
    return parse_school_config(school_data)


@pytest.fixture
def overrides():
    return InMemoryOverrideStore()


@pytest.fixture
def school(school_config, overrides):
    return SchoolCalendar(school_config, overrides)
