import pytest
from pydantic import ValidationError

from jobqueue.config.settings import (
    DEFAULT_TRIGGER_CODE,
    RunnerIdleMode,
    Settings,
    get_settings,
)


def test_default_settings():
    """Test default settings values."""
    settings = Settings(_env_file=None)

    assert settings.app_name == "Job Queue"
    assert settings.version == "1.0.0"
    assert settings.environment == "development"
    assert settings.max_concurrent_jobs == 4
    assert settings.poll_interval_ms == 3000
    assert settings.batch_size == 4
    assert settings.runner_idle_mode == RunnerIdleMode.DRAIN
    assert settings.job_timeout_s is None
    assert settings.strict_registry is False
    assert settings.is_sqlite is True


def test_production_requires_trigger_code():
    """Test that production environment blocks the default trigger code."""
    with pytest.raises(ValueError, match="TRIGGER_CODE must be set"):
        Settings(_env_file=None, environment="production")


def test_production_allows_custom_trigger_code():
    settings = Settings(
        _env_file=None, environment="production", trigger_code="s3cret"
    )
    assert settings.trigger_code == "s3cret"


def test_development_allows_default_trigger_code():
    settings = Settings(_env_file=None, environment="development")
    assert settings.trigger_code == DEFAULT_TRIGGER_CODE


@pytest.mark.parametrize(
    "field, value",
    [
        ("max_concurrent_jobs", 0),
        ("batch_size", 0),
        ("poll_interval_ms", -1),
        ("job_timeout_s", 0),
    ],
)
def test_runner_limits_are_validated(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENT_JOBS", "8")
    monkeypatch.setenv("RUNNER_IDLE_MODE", "forever")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/jobs")

    settings = Settings(_env_file=None)

    assert settings.max_concurrent_jobs == 8
    assert settings.runner_idle_mode == RunnerIdleMode.FOREVER
    assert settings.is_sqlite is False


@pytest.mark.parametrize(
    "url, expected",
    [
        ("sqlite:///./jobs.db", "sqlite+aiosqlite:///./jobs.db"),
        ("postgresql://u:p@db/jobs", "postgresql+asyncpg://u:p@db/jobs"),
        ("postgres://u:p@db/jobs", "postgresql+asyncpg://u:p@db/jobs"),
        ("postgresql+asyncpg://u:p@db/jobs", "postgresql+asyncpg://u:p@db/jobs"),
    ],
)
def test_database_url_uses_async_driver(url, expected):
    assert Settings(_env_file=None, database_url=url).database_url == expected


def test_log_level_is_case_insensitive():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


def test_settings_dependency_injection():
    """Test the get_settings dependency function."""
    settings = get_settings()
    assert isinstance(settings, Settings)
