"""Helpers shared by CLI commands."""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from autologin.cli.options import LogFormat
from autologin.models.credentials import ENV_IDENTITY, ENV_OTP_SEED, ENV_PASSWORD, Credential

if TYPE_CHECKING:
    import argparse

    from autologin.config.loader import Config


class _JSONLogFormatter(logging.Formatter):
    """Compact JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def _configure_logging(level: str = "INFO", log_format: str = LogFormat.READABLE.value) -> None:
    """Configure process-wide logging."""
    resolved_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_autologin_handler", False)]

    handler = logging.StreamHandler()
    handler._autologin_handler = True  # type: ignore[attr-defined]
    if log_format == LogFormat.JSON.value:
        formatter: logging.Formatter = _JSONLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(resolved_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _apply_login_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Fold login flags into a copy of the config."""
    updates: dict[str, Any] = {}
    headless = getattr(args, "headless", None)
    if headless is not None:
        updates["browser"] = config.browser.model_copy(update={"headless": headless})
    max_retries = getattr(args, "max_form_retries", None)
    if max_retries is not None:
        updates["retry"] = config.retry.model_copy(
            update={"max_form_retries": None if max_retries < 0 else max_retries}
        )
    return config.model_copy(update=updates) if updates else config


def _resolve_credential(args: argparse.Namespace) -> Credential:
    """Merge CLI flags over environment variables.

    Raises:
        ConfigurationError: If the identity or password is missing everywhere.
    """
    identity = getattr(args, "identity", None) or os.environ.get(ENV_IDENTITY)
    password = getattr(args, "password", None) or os.environ.get(ENV_PASSWORD)
    otp_seed = getattr(args, "otp_seed", None) or os.environ.get(ENV_OTP_SEED)
    if identity and password:
        return Credential(identity=identity, secret=password, otp_seed=otp_seed or None)
    return Credential.from_environment()
