"""Cookie jar persistence and browser cookie mapping.

Jars are stored one file per identity in the tough-cookie file-store layout
(``domain -> path -> name -> cookie``) so they stay readable by the rest of
the tooling that shares the ``config/`` directory:

    {
      ".epicgames.com": {
        "/": {
          "EPIC_SSO": {"key": "EPIC_SSO", "value": "...", "domain": "epicgames.com",
                       "path": "/", "expires": "2026-11-01T10:00:00.000Z",
                       "secure": true, "httpOnly": true, "hostOnly": false,
                       "sameSite": "lax"}
        }
      }
    }

A leading dot on a browser cookie domain is stored as ``hostOnly: false`` and
restored on load. Domain cookies are bucketed under their dotted domain so a
host-only cookie with the same domain, path and name keeps its own slot.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from autologin.errors import StorageError
from autologin.models.cookies import CookieJar, CookieRecord

logger = logging.getLogger(__name__)

SESSION_EXPIRY = "Infinity"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9@._+-]")
_SAME_SITE_TO_STORE = {"Strict": "strict", "Lax": "lax", "None": "none"}
_SAME_SITE_FROM_STORE = {v: k for k, v in _SAME_SITE_TO_STORE.items()}


def to_session_format(jar: CookieJar) -> list[dict[str, Any]]:
    """Map a jar to Playwright's cookie dicts (``context.add_cookies`` input)."""
    entries: list[dict[str, Any]] = []
    for record in jar:
        entry: dict[str, Any] = {
            "name": record.name,
            "value": record.value,
            "domain": record.domain,
            "path": record.path,
            "expires": record.expires if record.expires is not None else -1,
            "httpOnly": record.http_only,
            "secure": record.secure,
        }
        if record.same_site is not None:
            entry["sameSite"] = record.same_site
        entries.append(entry)
    return entries


def from_session_format(entries: list[dict[str, Any]]) -> CookieJar:
    """Map Playwright's cookie dicts (``context.cookies()`` output) to a jar."""
    jar = CookieJar()
    for entry in entries:
        expires = entry.get("expires", -1)
        jar.add(
            CookieRecord(
                name=entry["name"],
                value=entry["value"],
                domain=entry["domain"],
                path=entry.get("path", "/"),
                expires=None if expires is None or expires < 0 else float(expires),
                secure=bool(entry.get("secure", False)),
                http_only=bool(entry.get("httpOnly", False)),
                same_site=entry.get("sameSite"),
            )
        )
    return jar


def _format_expiry(expires: float | None) -> str:
    if expires is None:
        return SESSION_EXPIRY
    stamp = datetime.fromtimestamp(expires, tz=UTC)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_expiry(raw: Any) -> float | None:
    if raw in (None, SESSION_EXPIRY):
        return None
    if isinstance(raw, int | float):
        return float(raw)
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00")).timestamp()


def _record_to_store(record: CookieRecord) -> dict[str, Any]:
    host_only = not record.domain.startswith(".")
    entry: dict[str, Any] = {
        "key": record.name,
        "value": record.value,
        "domain": record.domain.lstrip("."),
        "path": record.path,
        "expires": _format_expiry(record.expires),
        "secure": record.secure,
        "httpOnly": record.http_only,
        "hostOnly": host_only,
    }
    if record.same_site is not None:
        entry["sameSite"] = _SAME_SITE_TO_STORE[record.same_site]
    return entry


def _record_from_store(entry: dict[str, Any]) -> CookieRecord:
    domain = entry["domain"]
    if not entry.get("hostOnly", True):
        domain = f".{domain}"
    return CookieRecord(
        name=entry["key"],
        value=entry["value"],
        domain=domain,
        path=entry.get("path", "/"),
        expires=_parse_expiry(entry.get("expires")),
        secure=bool(entry.get("secure", False)),
        http_only=bool(entry.get("httpOnly", False)),
        same_site=_SAME_SITE_FROM_STORE.get(entry.get("sameSite", "")),
    )


def _jar_to_store(jar: CookieJar) -> dict[str, dict[str, dict[str, Any]]]:
    data: dict[str, dict[str, dict[str, Any]]] = {}
    for record in jar:
        entry = _record_to_store(record)
        data.setdefault(record.domain, {}).setdefault(record.path, {})[record.name] = entry
    return data


def _jar_from_store(data: dict[str, Any]) -> CookieJar:
    jar = CookieJar()
    for paths in data.values():
        for names in paths.values():
            for entry in names.values():
                jar.add(_record_from_store(entry))
    return jar


class CookieStore:
    """Per-identity cookie jars on disk.

    Example:
        >>> store = CookieStore("config")
        >>> jar = store.load("user@example.com")
        >>> store.merge("user@example.com", fresh_jar)
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, identity: str) -> Path:
        """Return the jar file path for an identity."""
        safe = _UNSAFE_FILENAME_CHARS.sub("_", identity)
        return self._directory / f"{safe}-cookies.json"

    def load(self, identity: str) -> CookieJar:
        """Load the persisted jar for an identity.

        Returns:
            The jar, or an empty jar when nothing is stored for the identity.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        path = self.path_for(identity)
        if not path.exists():
            logger.debug("[COOKIES] No jar stored for %s", identity)
            return CookieJar()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
            jar = _jar_from_store(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to read cookie jar {path}: {e}") from e

        logger.debug("[COOKIES] Loaded %d cookies for %s", len(jar), identity)
        return jar

    def save(self, identity: str, jar: CookieJar) -> None:
        """Replace the persisted jar atomically (temp file + rename)."""
        path = self.path_for(identity)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to prepare cookie jar {path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(_jar_to_store(jar), f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write cookie jar {path}: {e}") from e

    def merge(self, identity: str, new_jar: CookieJar) -> CookieJar:
        """Merge fresh cookies into the persisted jar.

        Entries sharing a (domain, path, name) key with ``new_jar`` are
        replaced; every other persisted entry is kept.

        Returns:
            The jar as persisted.
        """
        merged = self.load(identity).merged(new_jar)
        self.save(identity, merged)
        logger.info(
            "[COOKIES] Saved %d cookies for %s (%d updated)",
            len(merged),
            identity,
            len(new_jar),
        )
        return merged

    def clear(self, identity: str) -> bool:
        """Delete the stored jar. Returns True if a file was removed."""
        path = self.path_for(identity)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete cookie jar {path}: {e}") from e
        logger.info("[COOKIES] Cleared jar for %s", identity)
        return True
