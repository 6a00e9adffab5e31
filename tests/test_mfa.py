"""Tests for MFA code submission."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from autologin.auth.detector import ChallengeDetector
from autologin.auth.mfa import MfaResolver
from autologin.errors import BrowserRuntimeError, ConfigurationError, MissingSecretError
from autologin.models.outcomes import NavigatedError, NavigatedOk
from fakes import DASHBOARD_URL, LOGIN_URL, PROVIDER, FakePage, navigate_to, show_error, show_mfa_prompt


def _prompted_page() -> FakePage:
    page = FakePage(url=LOGIN_URL)
    show_mfa_prompt()(page)
    return page


def _resolver(generator) -> MfaResolver:
    return MfaResolver(
        PROVIDER,
        ChallengeDetector(PROVIDER),
        form_timeout=1.0,
        ceiling_timeout=2.0,
        otp_generator=generator,
    )


class TestMfaResolver:
    """Code generation, submission and the follow-up outcome."""

    def test_missing_seed_fails_before_generating(self) -> None:
        page = _prompted_page()
        generator = MagicMock(return_value="123456")
        code_input = page._elements[PROVIDER.mfa_input_selector]

        with pytest.raises(MissingSecretError) as exc_info:
            asyncio.run(_resolver(generator).resolve(page, code_input, None))

        assert isinstance(exc_info.value, ConfigurationError)
        generator.assert_not_called()
        assert code_input.typed == []

    def test_types_generated_code_and_waits_for_navigation(self) -> None:
        page = _prompted_page()
        page.reactions = [navigate_to(DASHBOARD_URL)]
        generator = MagicMock(return_value="123456")
        code_input = page._elements[PROVIDER.mfa_input_selector]

        outcome = asyncio.run(_resolver(generator).resolve(page, code_input, "JBSWY3DPEHPK3PXP"))

        generator.assert_called_once_with("JBSWY3DPEHPK3PXP")
        assert code_input.typed == ["123456"]
        assert page._elements[PROVIDER.mfa_continue_selector].clicks == 1
        assert outcome == NavigatedOk(url=DASHBOARD_URL)

    def test_rejected_code_is_reported_not_retried(self) -> None:
        page = _prompted_page()
        page.reactions = [show_error("Invalid code")]
        generator = MagicMock(return_value="000000")
        code_input = page._elements[PROVIDER.mfa_input_selector]

        outcome = asyncio.run(_resolver(generator).resolve(page, code_input, "JBSWY3DPEHPK3PXP"))

        assert outcome == NavigatedError(message="Invalid code")
        assert generator.call_count == 1

    def test_code_is_not_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        page = _prompted_page()
        page.reactions = [navigate_to(DASHBOARD_URL)]
        code_input = page._elements[PROVIDER.mfa_input_selector]

        with caplog.at_level("DEBUG"):
            asyncio.run(_resolver(lambda seed: "987654").resolve(page, code_input, "SEED"))

        assert "987654" not in caplog.text

    def test_missing_continue_button_is_browser_error(self) -> None:
        page = FakePage(url=LOGIN_URL)
        code_input = page.show(PROVIDER.mfa_input_selector)

        with pytest.raises(BrowserRuntimeError, match="continue button"):
            asyncio.run(_resolver(lambda seed: "123456").resolve(page, code_input, "SEED"))

        assert code_input.typed == ["123456"]
