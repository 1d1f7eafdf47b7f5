"""Tests for centralized Settings, credential validation, and get_settings cache.

Covers: defaults, env-override, production credential gate, dev-mode warnings,
and lru_cache behavior.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from personal_context.config import Settings, get_settings, validate_credentials

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Clear get_settings lru_cache before each test."""
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Settings defaults
# ---------------------------------------------------------------------------

class TestSettingsDefaults:
    """Verify that Settings fields have the expected default values."""

    def test_settings_defaults(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.production is False
        assert s.api_port == 8000
        assert s.profile_db_path == Path("data/personal_context.db")
        assert s.gmail_token_path == Path("token.json")
        assert s.anthropic_api_key.get_secret_value() == ""
        assert s.batch_size == 5
        assert s.batch_delay_seconds == 0.5
        assert s.llm_timeout_seconds == 60.0

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRODUCTION", "true")
        monkeypatch.setenv("API_PORT", "9090")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        monkeypatch.setenv("BATCH_SIZE", "3")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.production is True
        assert s.api_port == 9090
        assert s.anthropic_api_key.get_secret_value() == "sk-test"
        assert s.batch_size == 3

    def test_api_key_hidden_in_repr(self) -> None:
        s = Settings(_env_file=None, anthropic_api_key="sk-secret")  # type: ignore[call-arg, arg-type]
        assert "sk-secret" not in repr(s)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"llm_timeout_seconds": 0},
            {"batch_delay_seconds": -1},
            {"llm_max_tokens": 0},
        ],
    )
    def test_out_of_range_values_rejected(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)  # type: ignore[call-arg, arg-type]


# ---------------------------------------------------------------------------
# Credential validation
# ---------------------------------------------------------------------------

class TestValidateCredentials:
    """Verify validate_credentials behaviour in production and dev modes."""

    def test_validate_credentials_production_missing(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Production mode exits when the API key is missing."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            production=True,
            anthropic_api_key="",  # type: ignore[arg-type]
        )

        with pytest.raises(SystemExit) as exc_info:
            validate_credentials(settings)

        assert exc_info.value.code == 1
        assert "ANTHROPIC_API_KEY is empty or not set" in capsys.readouterr().err

    def test_validate_credentials_production_valid(self) -> None:
        """Production mode passes when all credentials exist."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            production=True,
            anthropic_api_key="sk-valid",  # type: ignore[arg-type]
        )

        # Should NOT raise or exit
        validate_credentials(settings)

    def test_validate_credentials_dev_mode_warns(self) -> None:
        """Dev mode logs warnings but does NOT exit."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            production=False,
            anthropic_api_key="",  # type: ignore[arg-type]
        )

        # Should NOT raise or exit
        validate_credentials(settings)


# ---------------------------------------------------------------------------
# get_settings cache
# ---------------------------------------------------------------------------

class TestGetSettingsCached:
    """Verify lru_cache on get_settings."""

    def test_get_settings_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Calling get_settings() twice returns the exact same object."""
        monkeypatch.delenv("PRODUCTION", raising=False)

        first = get_settings()
        second = get_settings()

        assert first is second

    def test_invalid_env_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BATCH_SIZE", "not-a-number")

        with pytest.raises(SystemExit) as exc_info:
            get_settings()

        assert exc_info.value.code == 1

    def test_zero_batch_size_env_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BATCH_SIZE", "0")

        with pytest.raises(SystemExit) as exc_info:
            get_settings()

        assert exc_info.value.code == 1
