"""Shared data models for autologin."""

from autologin.models.cookies import CookieJar, CookieRecord
from autologin.models.credentials import Credential
from autologin.models.outcomes import (
    BotChallenge,
    ChallengeOutcome,
    MfaPrompt,
    NavigatedError,
    NavigatedOk,
)

__all__ = [
    "BotChallenge",
    "ChallengeOutcome",
    "CookieJar",
    "CookieRecord",
    "Credential",
    "MfaPrompt",
    "NavigatedError",
    "NavigatedOk",
]
