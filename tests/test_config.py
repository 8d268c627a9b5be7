"""Tests for application settings."""

from finrecon.config import DEFAULT_RECONCILIATION_CONFIG_PATH, Settings


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    settings = Settings(_env_file=None)

    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert settings.jwt_algorithm == "HS256"
    assert settings.environment == "development"


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("ENV", "staging")
    monkeypatch.setenv("JWT_ALGORITHM", "HS512")

    settings = Settings(_env_file=None)

    assert settings.environment == "staging"
    assert settings.jwt_algorithm == "HS512"


def test_bundled_config_file_exists() -> None:
    assert DEFAULT_RECONCILIATION_CONFIG_PATH.is_file()
