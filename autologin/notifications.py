"""Sinks told when a login needs a human."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Receives the portal URL for an identity blocked on a bot challenge."""

    def notify(self, identity: str, url: str) -> None:
        ...


class LoggingNotifier:
    """Writes the portal URL to the log."""

    def notify(self, identity: str, url: str) -> None:
        logger.warning("[PORTAL] Bot challenge for %s. Solve it at: %s", identity, url)


class CallbackNotifier:
    """Forwards notifications to a callable, e.g. a chat or mail integration."""

    def __init__(self, callback: Callable[[str, str], None]) -> None:
        self._callback = callback

    def notify(self, identity: str, url: str) -> None:
        self._callback(identity, url)
