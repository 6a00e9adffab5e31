"""Human-resolution portal.

A portal exposes the live session page at a URL an operator can open. Frames
are pushed from the page to the web app, and the operator's clicks and
keystrokes come back through a command queue that is drained on the login's
event loop. The operator works on the real session, never on a copy.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from autologin.errors import ChallengeAbandonedError
from autologin.portal.server import PortalServer, start_portal_server
from autologin.portal.streaming import PortalChannel, PortalRegistry

if TYPE_CHECKING:
    from playwright.async_api import Page

    from autologin.config.loader import PortalConfig

logger = logging.getLogger(__name__)

SolvedProbe = Callable[[], Awaitable[bool]]


@dataclass
class PortalHandle:
    """Lease on one portal channel. Closed exactly once, never reused."""

    url: str
    channel: PortalChannel
    pump: asyncio.Task[None] | None = field(default=None, repr=False)
    closed: bool = False

    @property
    def token(self) -> str:
        return self.channel.token


class Portal:
    """Opens operator channels onto live session pages.

    Example:
        >>> portal = Portal(config.portal)
        >>> handle = await portal.open(page, identity="user@example.com")
        >>> await portal.await_resolution(handle, timeout=3600)
        >>> await portal.close(handle)
    """

    def __init__(
        self,
        config: PortalConfig,
        registry: PortalRegistry | None = None,
        serve: bool = True,
    ) -> None:
        """Initialize the portal.

        Args:
            config: Portal settings.
            registry: Channel registry shared with the web app.
            serve: Whether to start the uvicorn server on first open. Tests
                drive the app directly and pass False.
        """
        self._config = config
        self._registry = registry or PortalRegistry()
        self._serve = serve
        self._server: PortalServer | None = None

    @property
    def registry(self) -> PortalRegistry:
        return self._registry

    @property
    def base_url(self) -> str:
        if self._config.public_url:
            return self._config.public_url.rstrip("/")
        return f"http://{self._config.host}:{self._config.port}"

    def _ensure_server(self) -> None:
        if self._serve and self._server is None:
            self._server = start_portal_server(self._config.host, self._config.port, self._registry)

    async def open(self, page: Page, identity: str | None = None) -> PortalHandle:
        """Open a channel on ``page`` and start streaming it."""
        self._ensure_server()
        channel = PortalChannel(
            token=secrets.token_urlsafe(16),
            identity=identity,
            stream_fps=self._config.stream_fps,
            stream_quality=self._config.stream_quality,
        )
        self._registry.add(channel)
        handle = PortalHandle(url=f"{self.base_url}/portal/{channel.token}", channel=channel)
        handle.pump = asyncio.create_task(self._pump(page, channel), name=f"portal-{channel.token[:6]}")
        logger.info("[PORTAL] Opened portal %s", channel.token[:6])
        return handle

    async def await_resolution(
        self,
        handle: PortalHandle,
        timeout: float,
        solved: SolvedProbe | None = None,
    ) -> None:
        """Block until the operator resolves the portal.

        Resolution is either the operator pressing "Done" or ``solved``
        reporting True.

        Raises:
            ChallengeAbandonedError: If nothing resolves the portal in time.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if handle.channel.resolved:
                logger.info("[PORTAL] Resolved by operator")
                return
            if solved is not None and await solved():
                logger.info("[PORTAL] Challenge no longer present")
                return
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ChallengeAbandonedError(
                    f"Bot challenge was not solved within {timeout:.0f}s"
                )
            await asyncio.sleep(min(self._config.poll_interval, remaining))

    async def close(self, handle: PortalHandle) -> None:
        """Stop streaming and withdraw the channel. Safe to call once per handle."""
        if handle.closed:
            return
        handle.closed = True
        self._registry.remove(handle.token)
        if handle.pump is not None:
            handle.pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await handle.pump
        logger.info("[PORTAL] Closed portal %s", handle.token[:6])

    def shutdown(self) -> None:
        """Stop the background web server, if one was started."""
        if self._server is not None:
            self._server.stop()
            self._server = None

    async def _pump(self, page: Page, channel: PortalChannel) -> None:
        """Push frames out and apply operator input until cancelled."""
        interval = 1.0 / channel.screen.stream_fps
        while True:
            for command in channel.pop_commands():
                try:
                    await apply_command(page, command)
                except Exception as e:
                    logger.warning("[PORTAL] Input %s failed: %s", command.get("action"), e)
            try:
                channel.screen.push_frame(await page.screenshot(type="png"))
            except Exception as e:
                logger.debug("[PORTAL] Frame capture failed: %s", e)
            await asyncio.sleep(interval)


async def apply_command(page: Page, command: dict[str, Any]) -> None:
    """Replay one operator command on the page."""
    action = command["action"]
    payload = command.get("payload", {})
    if action == "click":
        await page.mouse.click(float(payload["x"]), float(payload["y"]))
    elif action == "type":
        await page.keyboard.type(str(payload["text"]))
    elif action == "press":
        await page.keyboard.press(str(payload["key"]))
    else:
        raise ValueError(f"Unsupported portal action: {action}")
