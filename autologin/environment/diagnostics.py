"""Failure snapshots for offline debugging."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_UNSAFE_LABEL_CHARS = re.compile(r"[^A-Za-z0-9@._-]")


@dataclass(frozen=True)
class DiagnosticsCapture:
    """Files written by a capture. Either path is None if that part failed."""

    html_path: Path | None
    screenshot_path: Path | None


async def capture_diagnostics(page: Page, directory: Path | str, label: str) -> DiagnosticsCapture:
    """Write the page's HTML and a full-page screenshot.

    Best effort: failures are logged and never raised, so the caller's
    original error is what surfaces.
    """
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    stem = f"{_UNSAFE_LABEL_CHARS.sub('_', label)}-{stamp}"
    base = Path(directory)
    html_path: Path | None = base / f"{stem}.html"
    screenshot_path: Path | None = base / f"{stem}.png"

    try:
        base.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Could not create diagnostics directory %s: %s", base, e)
        return DiagnosticsCapture(html_path=None, screenshot_path=None)

    try:
        content = await page.content()
        html_path.write_text(content, encoding="utf-8")  # type: ignore[union-attr]
    except Exception as e:
        logger.warning("Failed to capture page HTML: %s", e)
        html_path = None

    try:
        await page.screenshot(path=str(screenshot_path), full_page=True)
    except Exception as e:
        logger.warning("Failed to capture screenshot: %s", e)
        screenshot_path = None

    if html_path or screenshot_path:
        logger.info("Diagnostics written to %s (%s.*)", base, stem)
    return DiagnosticsCapture(html_path=html_path, screenshot_path=screenshot_path)
