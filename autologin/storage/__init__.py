"""Cookie jar persistence."""

from autologin.storage.cookies import CookieStore, from_session_format, to_session_format

__all__ = ["CookieStore", "from_session_format", "to_session_format"]
