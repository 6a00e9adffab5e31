"""Error taxonomy for login attempts.

Every error raised out of ``LoginOrchestrator.login`` derives from
:class:`LoginError`. Only :class:`RecoverableFormError` is ever retried, and
only by the orchestrator.
"""

from __future__ import annotations


class LoginError(Exception):
    """Base class for login failures."""

    pass


class ConfigurationError(LoginError):
    """The attempt cannot succeed with the current configuration. Not retried."""

    pass


class MissingSecretError(ConfigurationError):
    """The provider demanded an MFA code but no OTP seed is configured."""

    pass


class ChallengeTimeoutError(LoginError):
    """No recognisable post-submit outcome appeared within the ceiling."""

    pass


class ChallengeAbandonedError(LoginError):
    """A bot challenge was not resolved through the portal in time."""

    pass


class ProviderRejection(LoginError):
    """The provider rejected the login with a banner we cannot recover from."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RecoverableFormError(LoginError):
    """The provider asked for the form to be resubmitted.

    Raised to the caller only once the form retry budget is exhausted.
    """

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.attempts = attempts


class StorageError(LoginError):
    """The cookie jar store could not be read or written."""

    pass


class BrowserRuntimeError(LoginError):
    """Error raised when browser operations fail."""

    pass
