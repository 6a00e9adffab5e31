"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from autologin.config import Config, get_default_config, load_config
from autologin.config import loader


class TestConfigLoader:
    """Tests for load_config function."""

    def test_load_default_config(self) -> None:
        """Test loading the default configuration file."""
        config = load_config()

        assert config.provider is not None
        assert config.browser is not None
        assert config.timeouts is not None
        assert config.retry is not None
        assert config.portal is not None
        assert config.storage is not None
        assert config.logging is not None

    def test_default_file_matches_model_defaults(self) -> None:
        """The shipped YAML should not drift from the model defaults."""
        assert load_config() == get_default_config()

    def test_load_default_values(self) -> None:
        config = load_config()

        assert config.provider.submit_selector == "#sign-in:not([disabled])"
        assert config.timeouts.challenge_ceiling == 300
        assert config.retry.max_form_retries == 5
        assert config.portal.resolution_timeout == 86400
        assert config.storage.seed_identities == ["hcaptcha"]

    def test_load_custom_config_file(self, tmp_path: Path) -> None:
        """Test loading from a custom config file path."""
        custom_config = {
            "timeouts": {"challenge_ceiling": 60},
            "portal": {"port": 8080, "public_url": "https://solve.example.com"},
        }

        config_file = tmp_path / "custom.yaml"
        with open(config_file, "w") as f:
            yaml.dump(custom_config, f)

        config = load_config(config_file)

        assert config.timeouts.challenge_ceiling == 60
        assert config.portal.port == 8080
        assert config.portal.public_url == "https://solve.example.com"
        # Default values still apply for unspecified fields
        assert config.timeouts.form == 30
        assert config.portal.host == "127.0.0.1"

    def test_empty_config_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_config(config_file) == Config()

    def test_missing_config_file_raises_error(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path/config.yaml")

    def test_missing_default_file_falls_back_to_model_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(loader, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
        monkeypatch.setenv("AUTOLOGIN_PORTAL__PORT", "4000")

        config = load_config()

        assert config.browser == Config().browser
        assert config.portal.port == 4000

    def test_invalid_values_raise_validation_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "invalid.yaml"
        with open(config_file, "w") as f:
            yaml.dump({"portal": {"port": 70000}}, f)

        with pytest.raises(ValidationError):
            load_config(config_file)

    def test_negative_retry_cap_is_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("retry:\n  max_form_retries: -1\n")

        with pytest.raises(ValidationError):
            load_config(config_file)


class TestEnvironmentOverrides:
    """AUTOLOGIN_ variables override file values."""

    def test_nested_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTOLOGIN_TIMEOUTS__CHALLENGE_CEILING", "120.5")
        monkeypatch.setenv("AUTOLOGIN_PORTAL__PORT", "4000")

        config = load_config()

        assert config.timeouts.challenge_ceiling == 120.5
        assert config.portal.port == 4000

    def test_boolean_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTOLOGIN_BROWSER__HEADLESS", "false")

        assert load_config().browser.headless is False

    def test_null_override_unbounds_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTOLOGIN_RETRY__MAX_FORM_RETRIES", "null")

        assert load_config().retry.max_form_retries is None

    def test_list_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTOLOGIN_STORAGE__SEED_IDENTITIES", "hcaptcha, shared")

        assert load_config().storage.seed_identities == ["hcaptcha", "shared"]

    def test_override_of_unset_optional_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTOLOGIN_PORTAL__PUBLIC_URL", "https://solve.example.com")

        assert load_config().portal.public_url == "https://solve.example.com"
