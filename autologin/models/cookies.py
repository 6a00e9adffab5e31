"""Cookie records and jars."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Literal

from pydantic import BaseModel, Field

SameSite = Literal["Strict", "Lax", "None"]
CookieKey = tuple[str, str, str]


class CookieRecord(BaseModel):
    """A single cookie as persisted between login attempts."""

    name: str
    value: str
    domain: str
    path: str = Field(default="/")
    expires: float | None = Field(default=None, description="POSIX timestamp; None for session cookies")
    secure: bool = Field(default=False)
    http_only: bool = Field(default=False)
    same_site: SameSite | None = Field(default=None)

    model_config = {"frozen": True}

    @property
    def key(self) -> CookieKey:
        """Unique jar key: (domain, path, name)."""
        return (self.domain, self.path, self.name)


class CookieJar:
    """Set of cookie records keyed by (domain, path, name).

    Adding a record whose key is already present replaces the old record.
    """

    def __init__(self, records: Iterable[CookieRecord] = ()) -> None:
        self._records: dict[CookieKey, CookieRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: CookieRecord) -> None:
        self._records[record.key] = record

    def get(self, name: str, domain: str | None = None, path: str | None = None) -> CookieRecord | None:
        """Find a record by name, optionally narrowed by domain and path."""
        for record in self._records.values():
            if record.name != name:
                continue
            if domain is not None and record.domain != domain:
                continue
            if path is not None and record.path != path:
                continue
            return record
        return None

    def merged(self, newer: CookieJar) -> CookieJar:
        """Return a new jar with ``newer``'s entries replacing same-keyed ones."""
        return CookieJar([*self, *newer])

    def keys(self) -> list[CookieKey]:
        return list(self._records)

    def __iter__(self) -> Iterator[CookieRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieJar):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"CookieJar({len(self)} cookies)"
