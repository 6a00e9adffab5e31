"""CLI option models and parser helpers."""

from __future__ import annotations

import argparse
from enum import StrEnum


class LogFormat(StrEnum):
    """CLI log formatter mode."""

    READABLE = "readable"
    JSON = "json"


class ExitCode:
    OK = 0
    LOGIN_FAILED = 1
    CONFIGURATION = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(prog="autologin", description="Unattended identity provider login")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config")
    parser.add_argument("--env-file", type=str, default=None, help="Dotenv file with credentials")
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=[fmt.value for fmt in LogFormat],
        help="Log output format (defaults to the configured format)",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Log level override")
    subparsers = parser.add_subparsers(dest="command")

    login_parser = subparsers.add_parser("login", help="Log in and save session cookies")
    login_parser.add_argument("--identity", type=str, default=None, help="Account email/username")
    login_parser.add_argument("--password", type=str, default=None, help="Account password")
    login_parser.add_argument("--otp-seed", type=str, default=None, help="Base32 TOTP seed")
    headless = login_parser.add_mutually_exclusive_group()
    headless.add_argument("--headless", dest="headless", action="store_true", default=None)
    headless.add_argument("--headed", dest="headless", action="store_false")
    login_parser.add_argument(
        "--max-form-retries",
        type=int,
        default=None,
        help="Cap on full form resubmissions (-1 for unbounded)",
    )

    cookies_parser = subparsers.add_parser("cookies", help="Inspect stored cookie jars")
    cookies_parser.add_argument("action", choices=["show", "clear"])
    cookies_parser.add_argument("--identity", type=str, required=True)

    return parser
