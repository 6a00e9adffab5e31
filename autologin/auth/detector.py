"""Post-submit outcome detection.

After a submit the provider can answer in four ways, and we cannot know which
in advance. The detector arms one wait per page signal, fires the submit, and
returns whichever signal shows up first:

1. an inline error banner,
2. a bot-challenge iframe nested in the login widget,
3. the MFA code input,
4. a main-frame navigation that settles to network idle.

If two signals complete in the same scheduling step, the order above decides.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from autologin.errors import BrowserRuntimeError, ChallengeTimeoutError
from autologin.models.outcomes import (
    BotChallenge,
    ChallengeOutcome,
    MfaPrompt,
    NavigatedError,
    NavigatedOk,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

    from autologin.config.loader import ProviderConfig

logger = logging.getLogger(__name__)

Trigger = Callable[[], Awaitable[Any]]


class Signal(IntEnum):
    """Page signals in precedence order (lowest wins a tie)."""

    ERROR_BANNER = 0
    BOT_CHALLENGE = 1
    MFA_PROMPT = 2
    NAVIGATION = 3


class ChallengeDetector:
    """Decides which post-submit state the provider returned.

    The detector only reads page state. Waits that lose the race are
    cancelled and awaited before ``await_outcome`` returns.
    """

    def __init__(self, provider: ProviderConfig) -> None:
        self._provider = provider

    def is_login_page(self, url: str) -> bool:
        return self._provider.login_page_pattern in url

    async def await_outcome(
        self,
        page: Page,
        ceiling_timeout: float,
        trigger: Trigger | None = None,
        ignore: Iterable[Signal] = (),
    ) -> ChallengeOutcome:
        """Race the page signals.

        Args:
            page: Session page in an unknown post-submit state.
            ceiling_timeout: Seconds to wait for any signal.
            trigger: Action that provokes the outcome, usually a submit click.
                It runs after every wait is armed so a fast navigation is
                not missed.
            ignore: Signals not to arm, e.g. a prompt that stays on screen
                after it was answered.

        Returns:
            The outcome of the first signal to fire.

        Raises:
            ChallengeTimeoutError: If no signal appears within the ceiling.
            BrowserRuntimeError: If every wait failed early for a reason other
                than a timeout, e.g. the page was closed.
        """
        timeout_ms = ceiling_timeout * 1000
        expect_navigation = trigger is not None
        waits = {
            Signal.ERROR_BANNER: lambda: self._wait_for_error_banner(page, timeout_ms),
            Signal.BOT_CHALLENGE: lambda: self._wait_for_bot_challenge(page, timeout_ms),
            Signal.MFA_PROMPT: lambda: self._wait_for_mfa_prompt(page, timeout_ms),
            Signal.NAVIGATION: lambda: self._wait_for_navigation(page, timeout_ms, expect_navigation),
        }
        skipped = set(ignore)
        tasks: dict[asyncio.Task[ChallengeOutcome], Signal] = {
            asyncio.create_task(wait()): signal for signal, wait in waits.items() if signal not in skipped
        }

        loop = asyncio.get_running_loop()
        deadline = loop.time() + ceiling_timeout
        failures: list[BaseException] = []
        try:
            # One scheduling step lets every wait register its listener.
            await asyncio.sleep(0)
            if trigger is not None:
                await trigger()

            pending: set[asyncio.Task[ChallengeOutcome]] = set(tasks)
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending,
                    timeout=remaining,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                winners = []
                for task in done:
                    error = task.exception()
                    if error is None:
                        winners.append(task)
                    else:
                        logger.debug("[DETECT] %s wait dropped: %s", tasks[task].name, error)
                        if not isinstance(error, TimeoutError | PlaywrightTimeoutError):
                            failures.append(error)
                if winners:
                    winner = min(winners, key=lambda t: tasks[t])
                    outcome = winner.result()
                    logger.info("[DETECT] Outcome: %s", type(outcome).__name__)
                    return outcome
        finally:
            await self._cancel_all(tasks)

        if failures and loop.time() < deadline:
            raise BrowserRuntimeError(f"Outcome detection failed: {failures[0]}") from failures[0]
        raise ChallengeTimeoutError(
            f"No login outcome recognised within {ceiling_timeout:.0f}s"
        )

    async def _cancel_all(self, tasks: dict[asyncio.Task[ChallengeOutcome], Signal]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _wait_for_error_banner(self, page: Page, timeout_ms: float) -> ChallengeOutcome:
        banner = await page.wait_for_selector(
            self._provider.error_banner_selector,
            state="visible",
            timeout=timeout_ms,
        )
        if banner is None:
            raise BrowserRuntimeError("Error banner resolved without an element")
        message = (await banner.inner_text()).strip()
        return NavigatedError(message=message)

    async def _wait_for_bot_challenge(self, page: Page, timeout_ms: float) -> ChallengeOutcome:
        widget = await page.wait_for_selector(
            self._provider.login_frame_selector,
            state="attached",
            timeout=timeout_ms,
        )
        if widget is None:
            raise BrowserRuntimeError("Login widget frame resolved without an element")
        widget_frame = await widget.content_frame()
        if widget_frame is None:
            raise BrowserRuntimeError("Login widget frame has no content")
        challenge = await widget_frame.wait_for_selector(
            self._provider.challenge_frame_selector,
            state="attached",
            timeout=timeout_ms,
        )
        if challenge is None:
            raise BrowserRuntimeError("Challenge frame resolved without an element")
        return BotChallenge(frame=challenge)

    async def _wait_for_mfa_prompt(self, page: Page, timeout_ms: float) -> ChallengeOutcome:
        code_input = await page.wait_for_selector(
            self._provider.mfa_input_selector,
            state="visible",
            timeout=timeout_ms,
        )
        if code_input is None:
            raise BrowserRuntimeError("MFA input resolved without an element")
        return MfaPrompt(code_input=code_input)

    async def _wait_for_navigation(
        self,
        page: Page,
        timeout_ms: float,
        expect_navigation: bool,
    ) -> ChallengeOutcome:
        # Without a trigger the navigation may already have happened (e.g. a
        # human solved a challenge), so a page that is off the login form
        # only needs to settle.
        if expect_navigation or self.is_login_page(page.url):
            await page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame == page.main_frame,
                timeout=timeout_ms,
            )
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)

        url = page.url
        if self.is_login_page(url):
            # The document loads fine even when the login failed, so the
            # destination is the only reliable signal.
            return NavigatedError(message=f"Still on the login page after navigation: {url}")
        return NavigatedOk(url=url)
