"""Browser runtime management using Playwright.

This module provides a BrowserRuntime class that manages the Chromium browser
lifecycle via Playwright's async API. It enables:
- Launching Chromium in headed or headless mode
- Opening one isolated session (context + page) per login attempt
- Seeding sessions with cookies
- Guaranteed session teardown
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from autologin.errors import BrowserRuntimeError

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright

    from autologin.config.loader import BrowserConfig

logger = logging.getLogger(__name__)


class BrowserRuntime:
    """Manages browser lifecycle via Playwright.

    Example:
        >>> async with BrowserRuntime(headless=True) as runtime:
        ...     async with runtime.session(cookies) as page:
        ...         await page.goto("https://example.com")
    """

    def __init__(
        self,
        headless: bool = True,
        viewport_width: int = 1280,
        viewport_height: int = 800,
        user_agent: str | None = None,
        launch_args: list[str] | None = None,
    ) -> None:
        """Initialize browser runtime.

        Args:
            headless: Whether to run browser in headless mode.
            viewport_width: Browser viewport width in pixels.
            viewport_height: Browser viewport height in pixels.
            user_agent: Custom user agent string. If None, uses default.
            launch_args: Extra Chromium command line switches.
        """
        self._headless = headless
        self._viewport_width = viewport_width
        self._viewport_height = viewport_height
        self._user_agent = user_agent
        self._launch_args = list(launch_args or [])

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @classmethod
    def from_config(cls, config: BrowserConfig) -> BrowserRuntime:
        return cls(
            headless=config.headless,
            viewport_width=config.viewport_width,
            viewport_height=config.viewport_height,
            user_agent=config.user_agent,
            launch_args=config.launch_args,
        )

    @property
    def is_running(self) -> bool:
        """Check if browser is running."""
        return self._browser is not None

    @property
    def is_headless(self) -> bool:
        return self._headless

    async def start(self) -> None:
        """Start the browser.

        Raises:
            BrowserRuntimeError: If browser fails to start.
        """
        if self._browser is not None:
            logger.warning("Browser is already running")
            return

        try:
            from playwright.async_api import async_playwright

            logger.debug("Starting Playwright...")
            self._playwright = await async_playwright().start()

            logger.info("Launching Chromium (headless=%s)...", self._headless)
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=self._launch_args,
            )
        except ImportError as e:
            raise BrowserRuntimeError(
                "Playwright not installed. Install with: pip install playwright"
            ) from e
        except Exception as e:
            await self._cleanup()
            raise BrowserRuntimeError(f"Failed to start browser: {e}") from e

    async def stop(self) -> None:
        """Stop the browser and cleanup resources."""
        await self._cleanup()
        logger.debug("Browser stopped")

    async def _cleanup(self) -> None:
        if self._browser:
            with contextlib.suppress(Exception):
                await self._browser.close()
            self._browser = None

        if self._playwright:
            with contextlib.suppress(Exception):
                await self._playwright.stop()
            self._playwright = None

    @contextlib.asynccontextmanager
    async def session(self, cookies: list[dict[str, Any]] | None = None) -> AsyncIterator[Page]:
        """Open an isolated browser session seeded with cookies.

        The context is closed when the block exits, whether it returns or raises.

        Args:
            cookies: Playwright cookie dicts to install before the first navigation.

        Yields:
            The session's page.
        """
        if self._browser is None:
            raise BrowserRuntimeError("Browser not running. Call start() first.")

        context_options: dict[str, Any] = {
            "viewport": {"width": self._viewport_width, "height": self._viewport_height},
        }
        if self._user_agent:
            context_options["user_agent"] = self._user_agent

        try:
            context = await self._browser.new_context(**context_options)
        except Exception as e:
            raise BrowserRuntimeError(f"Failed to open browser session: {e}") from e

        try:
            if cookies:
                await context.add_cookies(cookies)
                logger.debug("Seeded session with %d cookies", len(cookies))
            page = await context.new_page()
            yield page
        finally:
            with contextlib.suppress(Exception):
                await context.close()
            logger.debug("Browser session closed")

    async def __aenter__(self) -> BrowserRuntime:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        await self.stop()
