"""Browser environment.

- BrowserRuntime: Chromium lifecycle and per-attempt sessions via Playwright
- capture_diagnostics: HTML + screenshot snapshot for failed attempts
"""

from autologin.environment.browser import BrowserRuntime
from autologin.environment.diagnostics import DiagnosticsCapture, capture_diagnostics

__all__ = ["BrowserRuntime", "DiagnosticsCapture", "capture_diagnostics"]
