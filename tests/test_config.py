"""Tests for configuration validation.

Covers:
- Required environment variables
- IMPORT_PROGRESS_EVERY parsing
"""

import pytest

from kanban.config import Config, parse_progress_every


@pytest.fixture
def required_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///kanban.db")
    monkeypatch.delenv("IMPORT_PROGRESS_EVERY", raising=False)


class TestValidate:

    def test_passes_with_required_vars(self, required_env):
        Config.validate()

    def test_missing_vars_listed(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="SECRET_KEY, DATABASE_URL"):
            Config.validate()

    @pytest.mark.parametrize("value", ["abc", "0", "-3", "1.5", ""])
    def test_bad_progress_every_rejected(self, required_env, monkeypatch, value):
        monkeypatch.setenv("IMPORT_PROGRESS_EVERY", value)
        with pytest.raises(RuntimeError, match="IMPORT_PROGRESS_EVERY must be a positive integer"):
            Config.validate()

    def test_numeric_progress_every_accepted(self, required_env, monkeypatch):
        monkeypatch.setenv("IMPORT_PROGRESS_EVERY", "25")
        Config.validate()


class TestParseProgressEvery:

    @pytest.mark.parametrize("value,expected", [("1", 1), (" 10 ", 10), (5, 5)])
    def test_valid(self, value, expected):
        assert parse_progress_every(value) == expected

    @pytest.mark.parametrize("value", ["abc", None, 0])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="positive integer"):
            parse_progress_every(value)
