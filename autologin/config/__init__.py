"""Configuration management for autologin."""

from autologin.config.loader import Config, get_default_config, load_config
from autologin.config.secrets import load_environment_secrets

__all__ = ["Config", "get_default_config", "load_config", "load_environment_secrets"]
