"""Post-submit outcomes decided by the challenge detector.

``ChallengeOutcome`` is a closed union. Consumers match on the concrete class
instead of probing the handles they carry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle


@dataclass(frozen=True)
class NavigatedOk:
    """The page navigated away from the login form."""

    url: str


@dataclass(frozen=True)
class NavigatedError:
    """The provider reported a failure, either inline or by staying on the login page."""

    message: str


@dataclass(frozen=True)
class BotChallenge:
    """A bot-challenge iframe appeared inside the login widget."""

    frame: ElementHandle | Any


@dataclass(frozen=True)
class MfaPrompt:
    """The provider asked for a one-time code."""

    code_input: ElementHandle | Any


ChallengeOutcome = NavigatedOk | NavigatedError | BotChallenge | MfaPrompt
