# mypy: ignore-errors
# tests/test_settings.py
"""Tests for configuration helpers."""

from marginalia.core.settings import Settings


def test_database_url_is_used_as_given() -> None:
    settings = Settings(
        DATABASE_URL="postgresql+psycopg://forum@db/marginalia",
        USE_TEST_DATABASE=False,
    )

    assert settings.effective_database_url == "postgresql+psycopg://forum@db/marginalia"


def test_testing_database_overrides_the_main_one() -> None:
    settings = Settings(
        DATABASE_URL="postgresql+psycopg://forum@db/marginalia",
        TEST_DATABASE_URL="sqlite:///./test.db",
        USE_TEST_DATABASE=True,
    )

    assert settings.effective_database_url == "sqlite:///./test.db"
