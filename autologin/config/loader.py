"""Configuration loader for autologin.

Loads configuration from YAML files and environment variables.
Environment variables override YAML values using the AUTOLOGIN_ prefix.
Nested keys use double underscores: AUTOLOGIN_TIMEOUTS__CHALLENGE_CEILING=120
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

ENV_PREFIX = "AUTOLOGIN_"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "configs" / "default.yaml"


class ProviderConfig(BaseModel):
    """Identity provider URLs, selectors and banner patterns."""

    login_url: str = Field(default="https://www.epicgames.com/id/login/epic")
    login_page_pattern: str = Field(
        default="/id/login",
        description="URL substring that means the browser is still on the login page",
    )
    identity_selector: str = Field(default="#email")
    secret_selector: str = Field(default="#password")
    submit_selector: str = Field(default="#sign-in:not([disabled])")
    login_frame_selector: str = Field(default="iframe#talon_frame_login_prod")
    challenge_frame_selector: str = Field(default="iframe[src*='hcaptcha']")
    mfa_input_selector: str = Field(default='input[name="code-input-0"]')
    mfa_continue_selector: str = Field(default="button#continue")
    error_banner_selector: str = Field(default='div[role="alert"] > h6:first-of-type')
    recoverable_patterns: list[str] = Field(default_factory=lambda: ["refresh"])
    mfa_retry_patterns: list[str] = Field(
        default_factory=lambda: ["invalid", "incorrect", "expired"]
    )


class BrowserConfig(BaseModel):
    """Browser launch settings."""

    headless: bool = Field(default=True)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=800, ge=240, le=2160)
    user_agent: str | None = Field(default=None)
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-web-security",
            "--disable-features=IsolateOrigins,site-per-process",
        ]
    )


class TimeoutsConfig(BaseModel):
    """Suspension point ceilings, in seconds."""

    navigation: float = Field(default=30.0, gt=0, le=600)
    form: float = Field(default=30.0, gt=0, le=600)
    challenge_ceiling: float = Field(default=300.0, gt=0, le=3600)
    pre_submit_delay: float = Field(
        default=5.0,
        ge=0,
        le=60,
        description="Pause before clicking submit so the widget finishes wiring itself up",
    )


class RetryConfig(BaseModel):
    """Retry budget for the recoverable form error loop."""

    max_form_retries: int | None = Field(
        default=5,
        ge=0,
        description="Maximum full resubmissions per login; null means unbounded",
    )


class PortalConfig(BaseModel):
    """Human-resolution portal settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)
    public_url: str | None = Field(
        default=None,
        description="Externally reachable base URL; defaults to http://host:port",
    )
    stream_fps: int = Field(default=4, ge=1, le=30)
    stream_quality: int = Field(default=70, ge=1, le=100)
    resolution_timeout: float = Field(default=24 * 60 * 60, gt=0)
    poll_interval: float = Field(default=1.0, gt=0, le=60)


class StorageConfig(BaseModel):
    """Cookie jar and diagnostics locations."""

    cookie_dir: str = Field(default="config")
    seed_identities: list[str] = Field(
        default_factory=lambda: ["hcaptcha"],
        description="Extra jars loaded into every session (e.g. accessibility cookies)",
    )
    diagnostics_dir: str = Field(default="diagnostics")


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="readable", pattern="^(readable|json)$")


class Config(BaseModel):
    """Root configuration model."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _get_env_value(key: str) -> str | None:
    """Get environment variable with AUTOLOGIN_ prefix."""
    return os.environ.get(f"{ENV_PREFIX}{key.upper()}")


def _convert_env_value(raw: str, current: Any) -> Any:
    """Convert an override string to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.lower() in ("true", "1", "yes")
    if raw.lower() in ("null", "none"):
        return None
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def _apply_env_overrides(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Apply environment variable overrides to config data.

    Environment variables use AUTOLOGIN_ prefix with double underscores for nesting.
    Example: AUTOLOGIN_RETRY__MAX_FORM_RETRIES=2 sets retry.max_form_retries to 2
    """
    result = data.copy()

    for key, value in result.items():
        env_key = f"{prefix}__{key}" if prefix else key

        if isinstance(value, dict):
            result[key] = _apply_env_overrides(value, env_key)
        else:
            env_value = _get_env_value(env_key)
            if env_value is not None:
                result[key] = _convert_env_value(env_value, value)

    return result


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses configs/default.yaml
            when it is present (source checkouts) and the model defaults otherwise.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    path: Path | None
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    elif DEFAULT_CONFIG_PATH.exists():
        path = DEFAULT_CONFIG_PATH
    else:
        # Installed packages do not ship configs/.
        path = None

    data: dict[str, Any] = {}
    if path is not None:
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    # Overrides only apply to keys present in the merged tree, so start from
    # the defaults to make every setting overridable.
    defaults = Config().model_dump()
    data = _apply_env_overrides(_deep_merge(defaults, data))

    return Config.model_validate(data)


def get_default_config() -> Config:
    """Get default configuration without loading from file."""
    return Config()


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep merge updates into base dict."""
    result = base.copy()

    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
