"""Scripted stand-ins for Playwright pages, frames and element handles.

A ``FakePage`` answers ``wait_for_selector`` as soon as an element is shown
for the selector and ``wait_for_event("framenavigated")`` when ``navigate`` is
called. Clicking the sign-in or continue button runs the next scripted
reaction, which is how tests describe what the provider does after a submit.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from autologin.config.loader import ProviderConfig

PROVIDER = ProviderConfig()
LOGIN_URL = PROVIDER.login_url
DASHBOARD_URL = "https://www.epicgames.com/account/personal"

Reaction = Callable[["FakePage"], None]


class FakeElement:
    """Element handle that records what was typed and clicked."""

    def __init__(
        self,
        text: str = "",
        frame: FakeFrame | None = None,
        on_click: Callable[[], None] | None = None,
    ) -> None:
        self.text = text
        self.frame = frame
        self.on_click = on_click
        self.typed: list[str] = []
        self.clicks = 0
        self.connected = True

    async def inner_text(self) -> str:
        return self.text

    async def type(self, text: str) -> None:
        self.typed.append(text)

    async def click(self, delay: float | None = None) -> None:
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    async def content_frame(self) -> FakeFrame | None:
        return self.frame

    async def evaluate(self, expression: str) -> Any:
        return self.connected


class FakeFrame:
    """Anything that supports ``wait_for_selector``."""

    def __init__(self) -> None:
        self._elements: dict[str, FakeElement] = {}
        self._shown: dict[str, asyncio.Event] = {}
        self.selector_waits: list[str] = []

    def _event(self, selector: str) -> asyncio.Event:
        return self._shown.setdefault(selector, asyncio.Event())

    def show(self, selector: str, element: FakeElement | None = None) -> FakeElement:
        element = element or FakeElement()
        self._elements[selector] = element
        self._event(selector).set()
        return element

    def reset(self) -> None:
        self._elements.clear()
        for event in self._shown.values():
            event.clear()

    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout: float = 30000,
    ) -> FakeElement:
        self.selector_waits.append(selector)
        if selector not in self._elements:
            try:
                await asyncio.wait_for(self._event(selector).wait(), timeout / 1000)
            except TimeoutError as e:
                raise TimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}") from e
        return self._elements[selector]


class FakeContext:
    def __init__(self) -> None:
        self.harvest: list[dict[str, Any]] = []

    async def cookies(self) -> list[dict[str, Any]]:
        return list(self.harvest)


class FakePage(FakeFrame):
    """Login page whose provider responses are scripted as reactions."""

    def __init__(self, provider: ProviderConfig = PROVIDER, url: str = "about:blank") -> None:
        super().__init__()
        self.provider = provider
        self.url = url
        self.main_frame = object()
        self.context = FakeContext()
        self.reactions: list[Reaction] = []
        self.goto_calls: list[str] = []
        self.screenshots: list[dict[str, Any]] = []
        self.html = "<html><body>login</body></html>"
        self.goto_error: Exception | None = None
        self.form: dict[str, FakeElement] = {}
        self._navigation_waiters: list[asyncio.Future[None]] = []

    def react(self) -> None:
        if self.reactions:
            self.reactions.pop(0)(self)

    def navigate(self, url: str) -> None:
        self.url = url
        waiters, self._navigation_waiters = self._navigation_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None) -> None:
        self.goto_calls.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.reset()
        self.url = url
        self.form = {
            "identity": self.show(self.provider.identity_selector),
            "secret": self.show(self.provider.secret_selector),
            "submit": self.show(self.provider.submit_selector, FakeElement(on_click=self.react)),
        }

    async def wait_for_event(
        self,
        event: str,
        predicate: Callable[[Any], bool] | None = None,
        timeout: float = 30000,
    ) -> Any:
        assert event == "framenavigated"
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._navigation_waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, timeout / 1000)
        except TimeoutError as e:
            raise TimeoutError(f"Timeout {timeout}ms exceeded waiting for navigation") from e
        if predicate is not None:
            assert predicate(self.main_frame)
        return self.main_frame

    async def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        return None

    async def content(self) -> str:
        return self.html

    async def screenshot(self, **kwargs: Any) -> bytes:
        self.screenshots.append(kwargs)
        return b""


def navigate_to(url: str) -> Reaction:
    """Provider redirects the main frame to ``url``."""
    return lambda page: page.navigate(url)


def show_error(message: str) -> Reaction:
    """Provider renders an inline error banner."""

    def reaction(page: FakePage) -> None:
        page.show(page.provider.error_banner_selector, FakeElement(text=f"  {message}\n"))

    return reaction


def show_mfa_prompt() -> Reaction:
    """Provider asks for a one-time code."""

    def reaction(page: FakePage) -> None:
        page.show(page.provider.mfa_input_selector)
        page.show(page.provider.mfa_continue_selector, FakeElement(on_click=page.react))

    return reaction


def show_bot_challenge() -> Reaction:
    """Provider nests a challenge iframe in the login widget."""

    def reaction(page: FakePage) -> None:
        widget = FakeFrame()
        widget.show(page.provider.challenge_frame_selector)
        page.show(page.provider.login_frame_selector, FakeElement(frame=widget))

    return reaction


def cookie(name: str, value: str, domain: str = ".epicgames.com", expires: float = -1) -> dict[str, Any]:
    """Playwright-shaped cookie dict."""
    return {
        "name": name,
        "value": value,
        "domain": domain,
        "path": "/",
        "expires": expires,
        "httpOnly": True,
        "secure": True,
        "sameSite": "Lax",
    }
