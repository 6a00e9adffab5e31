"""Loading of login secrets from dotenv files.

Credentials never live in the YAML config. They come from the process
environment, optionally populated from a dotenv file that must be private to
the current user.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "AUTOLOGIN_ENV_FILE"


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_env_file(*, env_file: str | Path | None, start_dir: Path) -> Path | None:
    """Pick the dotenv file: explicit path, $AUTOLOGIN_ENV_FILE, ./.env, then project root."""
    explicit = env_file or os.environ.get(ENV_FILE_VAR)
    if explicit:
        resolved = Path(explicit).expanduser()
        if not resolved.is_absolute():
            resolved = start_dir / resolved
        # Not resolve(): a symlinked dotenv must stay visible to the permission check.
        return resolved.absolute()

    for candidate in (start_dir / ".env", _project_root() / ".env"):
        if candidate.exists():
            return candidate.absolute()
    return None


def _validate_permissions(env_file: Path) -> None:
    """Reject dotenv files that other users could read or swap out."""
    if os.name == "nt":
        return

    if env_file.is_symlink():
        raise PermissionError(f"Refusing to load dotenv symlink: {env_file}")

    file_stat = env_file.stat()
    if hasattr(os, "getuid") and file_stat.st_uid != os.getuid():
        raise PermissionError(f"Refusing to load dotenv owned by another user: {env_file}")

    if file_stat.st_mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise PermissionError(
            f"Insecure dotenv permissions for {env_file}. Restrict access with chmod 600."
        )


def load_environment_secrets(
    env_file: str | Path | None = None,
    *,
    override: bool = False,
    strict: bool = True,
    start_dir: Path | None = None,
) -> Path | None:
    """Load login secrets from dotenv into the process environment.

    Args:
        env_file: Optional dotenv path. If omitted, checks `AUTOLOGIN_ENV_FILE`,
            then `.env` in the working directory, then the project root.
        override: Whether dotenv values replace variables that are already set.
        strict: Whether an explicit but missing dotenv path should raise.
        start_dir: Base directory for resolving relative paths.

    Returns:
        The loaded dotenv path, or None when no dotenv file was found.
    """
    base_dir = (start_dir or Path.cwd()).resolve()
    resolved = _resolve_env_file(env_file=env_file, start_dir=base_dir)
    if resolved is None:
        return None

    if not resolved.exists():
        if strict:
            raise FileNotFoundError(f"Dotenv file not found: {resolved}")
        return None
    if not resolved.is_file():
        raise ValueError(f"Dotenv path is not a regular file: {resolved}")

    _validate_permissions(resolved)
    load_dotenv(dotenv_path=str(resolved), override=override)
    logger.debug("Loaded secrets from %s", resolved)
    return resolved
