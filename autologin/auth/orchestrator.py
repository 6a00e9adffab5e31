"""Login orchestration.

The orchestrator owns one browser session per ``login()`` call and walks it
through this state machine:

    INIT -> FORM_FILLED -> SUBMITTED -> SUCCESS
                              |  ^
                              |  +-- BOT_CHALLENGE (portal, then re-detect)
                              |  +-- MFA_CHALLENGE (code, then re-detect)
                              +----> ERROR_RETRY -> INIT

Any error aborts the attempt: a diagnostics snapshot is taken, the session
is closed, and the original error propagates. Cookies are persisted only on
SUCCESS.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from autologin.auth.captcha import BotChallengeResolver
from autologin.auth.detector import ChallengeDetector, Signal
from autologin.auth.mfa import MfaResolver
from autologin.auth.totp import OtpGenerator, generate_totp_code
from autologin.environment.browser import BrowserRuntime
from autologin.environment.diagnostics import capture_diagnostics
from autologin.errors import BrowserRuntimeError, ProviderRejection, RecoverableFormError
from autologin.models.cookies import CookieJar
from autologin.models.outcomes import BotChallenge, MfaPrompt, NavigatedError, NavigatedOk
from autologin.notifications import LoggingNotifier, Notifier
from autologin.portal.portal import Portal
from autologin.runtime.recovery import FormRetryBudget, RetryPolicy
from autologin.storage.cookies import CookieStore, from_session_format, to_session_format

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

    from autologin.config.loader import Config
    from autologin.models.credentials import Credential
    from autologin.models.outcomes import ChallengeOutcome

logger = logging.getLogger(__name__)


class LoginState(StrEnum):
    """States of one login attempt."""

    INIT = "init"
    FORM_FILLED = "form_filled"
    SUBMITTED = "submitted"
    BOT_CHALLENGE = "bot_challenge"
    MFA_CHALLENGE = "mfa_challenge"
    ERROR_RETRY = "error_retry"
    SUCCESS = "success"


@dataclass(frozen=True)
class LoginResult:
    """Result of a successful login."""

    identity: str
    cookies_saved: int
    transitions: tuple[LoginState, ...]
    latency_ms: float

    @property
    def form_retries(self) -> int:
        return self.transitions.count(LoginState.ERROR_RETRY)


class _IdentityAdapter(logging.LoggerAdapter):
    """Prefixes log lines with the account being logged in."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[AUTH] [{self.extra['user']}] {msg}", kwargs  # type: ignore[index]


class LoginOrchestrator:
    """Drives a login end to end and persists the resulting cookies.

    Each ``login()`` call is an independent attempt. The only state carried
    between calls is the persisted cookie jar.

    Example:
        >>> orchestrator = LoginOrchestrator.from_config(load_config())
        >>> result = await orchestrator.login(Credential.from_environment())
        >>> result.cookies_saved
        12
    """

    def __init__(
        self,
        config: Config,
        *,
        browser: BrowserRuntime,
        store: CookieStore,
        portal: Portal,
        notifier: Notifier | None = None,
        otp_generator: OtpGenerator = generate_totp_code,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._config = config
        self._browser = browser
        self._store = store
        self._portal = portal
        self._retry_policy = retry_policy or RetryPolicy.from_config(config.retry)

        timeouts = config.timeouts
        self._detector = ChallengeDetector(config.provider)
        self._mfa = MfaResolver(
            config.provider,
            self._detector,
            form_timeout=timeouts.form,
            ceiling_timeout=timeouts.challenge_ceiling,
            otp_generator=otp_generator,
        )
        self._captcha = BotChallengeResolver(
            portal,
            notifier or LoggingNotifier(),
            resolution_timeout=config.portal.resolution_timeout,
        )

    @classmethod
    def from_config(cls, config: Config, notifier: Notifier | None = None) -> LoginOrchestrator:
        """Build an orchestrator with real browser, store and portal."""
        return cls(
            config,
            browser=BrowserRuntime.from_config(config.browser),
            store=CookieStore(config.storage.cookie_dir),
            portal=Portal(config.portal),
            notifier=notifier,
        )

    @property
    def detector(self) -> ChallengeDetector:
        return self._detector

    def shutdown(self) -> None:
        """Release the portal web server, if one was started."""
        self._portal.shutdown()

    async def login(self, credential: Credential) -> LoginResult:
        """Log in and merge the session's cookies into the identity's jar.

        Raises:
            LoginError: Any failure of the attempt, unchanged.
        """
        log = _IdentityAdapter(logger, {"user": credential.identity})
        started_at = time.time()

        seed_jars = [self._store.load(name) for name in self._config.storage.seed_identities]
        seed = self._store.load(credential.identity)
        for jar in seed_jars:
            seed = seed.merged(jar)
        log.debug("Seeding session with %d cookies", len(seed))

        owns_browser = not self._browser.is_running
        if owns_browser:
            await self._browser.start()
        try:
            async with self._browser.session(to_session_format(seed)) as page:
                try:
                    transitions = await self._run(page, credential, log)
                    log.debug("Harvesting cookies")
                    harvested = from_session_format(await page.context.cookies())
                except Exception as e:
                    log.error("Login failed: %s", e)
                    await capture_diagnostics(
                        page, self._config.storage.diagnostics_dir, credential.identity
                    )
                    raise
        finally:
            if owns_browser:
                await self._browser.stop()

        # Seed cookies that came back untouched belong to their own jars.
        unchanged_seeds = {record for jar in seed_jars for record in jar}
        fresh = CookieJar(record for record in harvested if record not in unchanged_seeds)
        persisted = self._store.merge(credential.identity, fresh)

        result = LoginResult(
            identity=credential.identity,
            cookies_saved=len(persisted),
            transitions=tuple(transitions),
            latency_ms=(time.time() - started_at) * 1000,
        )
        log.info("Login successful after %d form retries", result.form_retries)
        return result

    async def _run(
        self,
        page: Page,
        credential: Credential,
        log: logging.LoggerAdapter,
    ) -> list[LoginState]:
        budget = FormRetryBudget(self._retry_policy)
        ceiling = self._config.timeouts.challenge_ceiling

        state = LoginState.INIT
        transitions = [state]
        outcome: ChallengeOutcome | None = None
        submit_button: ElementHandle | None = None
        challenge_frame: Any = None
        code_input: Any = None
        form_error: RecoverableFormError | None = None
        code_submitted = False

        while state is not LoginState.SUCCESS:
            match state:
                case LoginState.INIT:
                    submit_button = await self._fill_form(page, credential, log)
                    code_submitted = False
                    state = LoginState.FORM_FILLED

                case LoginState.FORM_FILLED:
                    log.debug("Clicking sign-in button")
                    button = submit_button
                    outcome = await self._detector.await_outcome(
                        page, ceiling, trigger=lambda: button.click(delay=100)
                    )
                    state = LoginState.SUBMITTED

                case LoginState.SUBMITTED:
                    match outcome:
                        case NavigatedOk(url=url):
                            log.debug("Navigated to %s", url)
                            state = LoginState.SUCCESS
                        case BotChallenge(frame=frame):
                            log.info("Bot challenge detected")
                            challenge_frame = frame
                            state = LoginState.BOT_CHALLENGE
                        case MfaPrompt(code_input=element):
                            log.info("MFA prompt detected")
                            code_input = element
                            state = LoginState.MFA_CHALLENGE
                        case NavigatedError(message=message):
                            form_error = self._classify_error(message, code_submitted)
                            log.warning("Login returned error: %s", message)
                            state = LoginState.ERROR_RETRY

                case LoginState.BOT_CHALLENGE:
                    await self._captcha.resolve(page, challenge_frame, credential.identity)
                    challenge_frame = None
                    outcome = await self._detector.await_outcome(
                        page, ceiling, ignore=(Signal.BOT_CHALLENGE,)
                    )
                    state = LoginState.SUBMITTED

                case LoginState.MFA_CHALLENGE:
                    outcome = await self._mfa.resolve(page, code_input, credential.otp_seed)
                    code_input = None
                    code_submitted = True
                    state = LoginState.SUBMITTED

                case LoginState.ERROR_RETRY:
                    assert form_error is not None
                    if not budget.allow(form_error):
                        form_error.attempts = budget.attempts
                        raise form_error
                    state = LoginState.INIT

            transitions.append(state)

        return transitions

    def _classify_error(self, message: str, code_submitted: bool) -> RecoverableFormError:
        """Turn a provider error into a retryable error, or raise it as fatal.

        Raises:
            ProviderRejection: If the message is not one we know how to recover from.
        """
        provider = self._config.provider
        lowered = message.lower()
        if any(pattern.lower() in lowered for pattern in provider.recoverable_patterns):
            return RecoverableFormError(message)
        # A rejected code can only be retried by resubmitting the whole form.
        if code_submitted and any(pattern.lower() in lowered for pattern in provider.mfa_retry_patterns):
            return RecoverableFormError(message)
        raise ProviderRejection(message)

    async def _fill_form(
        self,
        page: Page,
        credential: Credential,
        log: logging.LoggerAdapter,
    ) -> ElementHandle:
        """Navigate to the login page and fill in the credentials.

        Returns:
            The enabled submit button, ready to be clicked.
        """
        provider = self._config.provider
        timeouts = self._config.timeouts
        form_timeout_ms = timeouts.form * 1000

        log.debug("Navigating to login page")
        try:
            await page.goto(
                provider.login_url,
                wait_until="networkidle",
                timeout=timeouts.navigation * 1000,
            )
        except Exception as e:
            raise BrowserRuntimeError(f"Navigation to {provider.login_url} failed: {e}") from e

        try:
            log.debug("Filling identity field")
            identity_field = await page.wait_for_selector(provider.identity_selector, timeout=form_timeout_ms)
            await identity_field.type(credential.identity)

            log.debug("Filling password field")
            secret_field = await page.wait_for_selector(provider.secret_selector, timeout=form_timeout_ms)
            await secret_field.type(credential.secret)

            log.debug("Waiting for sign-in button")
            submit_button = await page.wait_for_selector(provider.submit_selector, timeout=form_timeout_ms)
        except Exception as e:
            raise BrowserRuntimeError(f"Login form did not render: {e}") from e
        if timeouts.pre_submit_delay > 0:
            await asyncio.sleep(timeouts.pre_submit_delay)
        return submit_button
