"""Bot-challenge hand-off to a human operator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.async_api import Page

    from autologin.notifications import Notifier
    from autologin.portal.portal import Portal

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION_TIMEOUT = 24 * 60 * 60


class BotChallengeResolver:
    """Opens a portal on the live page and waits for a human to solve the challenge.

    Solving the challenge never finishes a login by itself; the orchestrator
    re-runs the detector afterwards.
    """

    def __init__(
        self,
        portal: Portal,
        notifier: Notifier,
        resolution_timeout: float = DEFAULT_RESOLUTION_TIMEOUT,
    ) -> None:
        self._portal = portal
        self._notifier = notifier
        self._resolution_timeout = resolution_timeout

    async def resolve(self, page: Page, challenge_frame: Any, identity: str) -> None:
        """Block until the challenge in ``challenge_frame`` is solved.

        Raises:
            ChallengeAbandonedError: If it is not solved within the resolution timeout.
        """
        handle = await self._portal.open(page, identity=identity)
        try:
            self._notifier.notify(identity, handle.url)
            await self._portal.await_resolution(
                handle,
                self._resolution_timeout,
                solved=lambda: challenge_detached(challenge_frame),
            )
        finally:
            await self._portal.close(handle)


async def challenge_detached(challenge_frame: Any) -> bool:
    """Return True once the challenge iframe is gone from the page."""
    try:
        connected = await challenge_frame.evaluate("el => el.isConnected")
    except Exception as e:
        # The handle dies with its frame when the widget navigates away.
        logger.debug("Challenge frame handle no longer usable: %s", e)
        return True
    return not connected
