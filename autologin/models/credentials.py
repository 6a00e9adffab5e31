"""Login credentials."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from autologin.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_IDENTITY = "AUTOLOGIN_IDENTITY"
ENV_PASSWORD = "AUTOLOGIN_PASSWORD"
ENV_OTP_SEED = "AUTOLOGIN_OTP_SEED"


@dataclass(frozen=True)
class Credential:
    """Credentials for a single account.

    Attributes:
        identity: Account email or username. Also the cookie jar key.
        secret: Account password.
        otp_seed: Optional base32 TOTP seed for MFA.
    """

    identity: str
    secret: str = field(repr=False)
    otp_seed: str | None = field(default=None, repr=False)

    @classmethod
    def from_environment(cls) -> Credential:
        """Load credentials from environment variables.

        Raises:
            ConfigurationError: If the identity or password is missing.
        """
        identity = os.environ.get(ENV_IDENTITY)
        secret = os.environ.get(ENV_PASSWORD)
        otp_seed = os.environ.get(ENV_OTP_SEED) or None

        if not identity:
            raise ConfigurationError(f"Missing {ENV_IDENTITY} environment variable.")
        if not secret:
            raise ConfigurationError(f"Missing {ENV_PASSWORD} environment variable.")

        logger.debug("Credentials loaded from environment")
        return cls(identity=identity, secret=secret, otp_seed=otp_seed)

    def has_otp(self) -> bool:
        """Check if an MFA seed is configured."""
        return bool(self.otp_seed)
