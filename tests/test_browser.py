"""Tests for the Playwright browser runtime and failure diagnostics."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from autologin.config.loader import BrowserConfig
from autologin.environment.browser import BrowserRuntime
from autologin.environment.diagnostics import capture_diagnostics
from autologin.errors import BrowserRuntimeError


def _runtime_with_mock_browser(**kwargs) -> tuple[BrowserRuntime, MagicMock, MagicMock]:
    runtime = BrowserRuntime(**kwargs)
    context = MagicMock()
    context.add_cookies = AsyncMock()
    context.new_page = AsyncMock(return_value=MagicMock(name="page"))
    context.close = AsyncMock()
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    runtime._browser = browser
    return runtime, browser, context


class TestBrowserRuntime:
    """Session lifecycle with a mocked Playwright browser."""

    def test_from_config(self) -> None:
        runtime = BrowserRuntime.from_config(BrowserConfig(headless=False))

        assert not runtime.is_headless
        assert not runtime.is_running

    def test_session_seeds_cookies_and_closes_context(self) -> None:
        runtime, browser, context = _runtime_with_mock_browser(user_agent="UA/1.0")
        cookies = [{"name": "a", "value": "1", "domain": ".example.com", "path": "/"}]

        async def run():
            async with runtime.session(cookies) as page:
                return page

        page = asyncio.run(run())

        assert page is context.new_page.return_value
        browser.new_context.assert_awaited_once_with(
            viewport={"width": 1280, "height": 800},
            user_agent="UA/1.0",
        )
        context.add_cookies.assert_awaited_once_with(cookies)
        context.close.assert_awaited_once()

    def test_session_closes_context_on_error(self) -> None:
        runtime, _, context = _runtime_with_mock_browser()

        async def run():
            async with runtime.session() as _page:
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(run())

        context.add_cookies.assert_not_awaited()
        context.close.assert_awaited_once()

    def test_session_requires_running_browser(self) -> None:
        runtime = BrowserRuntime()

        async def run():
            async with runtime.session():
                pass

        with pytest.raises(BrowserRuntimeError, match="not running"):
            asyncio.run(run())

    def test_stop_releases_browser(self) -> None:
        runtime, browser, _ = _runtime_with_mock_browser()

        asyncio.run(runtime.stop())

        browser.close.assert_awaited_once()
        assert not runtime.is_running


class TestCaptureDiagnostics:
    """Best-effort HTML and screenshot capture."""

    def test_writes_html_and_requests_screenshot(self, tmp_path: Path) -> None:
        page = MagicMock()
        page.content = AsyncMock(return_value="<html>oops</html>")
        page.screenshot = AsyncMock()

        capture = asyncio.run(capture_diagnostics(page, tmp_path / "diag", "user@example.com"))

        assert capture.html_path is not None
        assert capture.html_path.read_text() == "<html>oops</html>"
        assert capture.html_path.name.startswith("user@example.com-")
        page.screenshot.assert_awaited_once_with(path=str(capture.screenshot_path), full_page=True)

    def test_failures_are_swallowed(self, tmp_path: Path) -> None:
        page = MagicMock()
        page.content = AsyncMock(side_effect=RuntimeError("Target closed"))
        page.screenshot = AsyncMock(side_effect=RuntimeError("Target closed"))

        capture = asyncio.run(capture_diagnostics(page, tmp_path, "user"))

        assert capture.html_path is None
        assert capture.screenshot_path is None
