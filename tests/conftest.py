"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from autologin.config.loader import Config


@pytest.fixture
def fast_config(tmp_path) -> Config:
    """Default config with short ceilings and paths under tmp_path."""
    config = Config()
    return config.model_copy(
        update={
            "timeouts": config.timeouts.model_copy(
                update={"challenge_ceiling": 2.0, "form": 1.0, "pre_submit_delay": 0}
            ),
            "portal": config.portal.model_copy(update={"poll_interval": 0.01, "resolution_timeout": 2.0}),
            "storage": config.storage.model_copy(
                update={
                    "cookie_dir": str(tmp_path / "cookies"),
                    "diagnostics_dir": str(tmp_path / "diagnostics"),
                }
            ),
        }
    )
