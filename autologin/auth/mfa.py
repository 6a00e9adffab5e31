"""MFA code submission."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from autologin.auth.detector import Signal
from autologin.auth.totp import OtpGenerator, generate_totp_code
from autologin.errors import BrowserRuntimeError, MissingSecretError

if TYPE_CHECKING:
    from playwright.async_api import Page

    from autologin.auth.detector import ChallengeDetector
    from autologin.config.loader import ProviderConfig
    from autologin.models.outcomes import ChallengeOutcome

logger = logging.getLogger(__name__)


class MfaResolver:
    """Answers an MFA prompt with a freshly generated one-time code.

    The resolver submits the code and hands the detector's verdict on the
    result back to the orchestrator. It never retries on its own.
    """

    def __init__(
        self,
        provider: ProviderConfig,
        detector: ChallengeDetector,
        *,
        form_timeout: float = 30.0,
        ceiling_timeout: float = 300.0,
        otp_generator: OtpGenerator = generate_totp_code,
    ) -> None:
        self._provider = provider
        self._detector = detector
        self._form_timeout = form_timeout
        self._ceiling_timeout = ceiling_timeout
        self._otp_generator = otp_generator

    async def resolve(self, page: Page, code_input: Any, otp_seed: str | None) -> ChallengeOutcome:
        """Type a one-time code into ``code_input`` and submit it.

        Args:
            page: The live session page.
            code_input: The code input element found by the detector.
            otp_seed: Base32 seed for the account.

        Returns:
            The outcome observed after submitting the code.

        Raises:
            MissingSecretError: If MFA is demanded but no seed is configured.
        """
        if not otp_seed:
            raise MissingSecretError(
                "Provider requested an MFA code but no OTP seed is configured"
            )

        # Codes are only valid for their time window; generate right before typing.
        code = self._otp_generator(otp_seed)
        logger.debug("[MFA] Filling code field (%s)", "*" * len(code))
        await code_input.type(code)

        logger.debug("[MFA] Waiting for continue button")
        try:
            continue_button = await page.wait_for_selector(
                self._provider.mfa_continue_selector,
                timeout=self._form_timeout * 1000,
            )
        except Exception as e:
            raise BrowserRuntimeError(f"MFA continue button did not render: {e}") from e

        logger.debug("[MFA] Submitting code")
        return await self._detector.await_outcome(
            page,
            self._ceiling_timeout,
            trigger=lambda: continue_button.click(delay=100),
            ignore=(Signal.MFA_PROMPT,),
        )
