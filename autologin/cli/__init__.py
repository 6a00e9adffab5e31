"""CLI entrypoint for autologin."""

from __future__ import annotations

import argparse
import asyncio
import logging

from pydantic import ValidationError

from autologin.auth.orchestrator import LoginOrchestrator
from autologin.cli.helpers import _apply_login_overrides, _configure_logging, _resolve_credential
from autologin.cli.options import ExitCode, LogFormat, build_arg_parser
from autologin.config.loader import Config, load_config
from autologin.config.secrets import load_environment_secrets
from autologin.errors import ConfigurationError, LoginError
from autologin.storage.cookies import CookieStore

logger = logging.getLogger(__name__)


def login_command(args: argparse.Namespace, config: Config) -> int:
    """Run one login attempt and persist its cookies."""
    try:
        credential = _resolve_credential(args)
    except ConfigurationError as e:
        logger.error("%s", e)
        return ExitCode.CONFIGURATION

    config = _apply_login_overrides(config, args)
    orchestrator = LoginOrchestrator.from_config(config)
    try:
        result = asyncio.run(orchestrator.login(credential))
    except ConfigurationError as e:
        logger.error("Login aborted: %s", e)
        return ExitCode.CONFIGURATION
    except LoginError as e:
        logger.error("Login failed (%s): %s", type(e).__name__, e)
        return ExitCode.LOGIN_FAILED
    finally:
        orchestrator.shutdown()

    logger.info(
        "Saved %d cookies for %s in %.0f ms",
        result.cookies_saved,
        result.identity,
        result.latency_ms,
    )
    return ExitCode.OK


def cookies_command(args: argparse.Namespace, config: Config) -> int:
    """Show or clear a stored cookie jar."""
    store = CookieStore(config.storage.cookie_dir)
    try:
        if args.action == "clear":
            removed = store.clear(args.identity)
            print(f"{'Cleared' if removed else 'No jar for'} {args.identity}")
            return ExitCode.OK

        jar = store.load(args.identity)
    except LoginError as e:
        logger.error("%s", e)
        return ExitCode.LOGIN_FAILED

    print(f"{len(jar)} cookies for {args.identity} ({store.path_for(args.identity)})")
    for record in sorted(jar, key=lambda r: r.key):
        expiry = "session" if record.expires is None else f"{record.expires:.0f}"
        print(f"  {record.domain}\t{record.path}\t{record.name}\texpires={expiry}")
    return ExitCode.OK


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return ExitCode.CONFIGURATION

    try:
        load_environment_secrets(args.env_file, strict=args.env_file is not None)
        config = load_config(args.config)
    except (FileNotFoundError, PermissionError, ValueError, ValidationError) as e:
        _configure_logging()
        logger.error("Configuration error: %s", e)
        return ExitCode.CONFIGURATION

    _configure_logging(
        level=args.log_level or config.logging.level,
        log_format=args.log_format or config.logging.format or LogFormat.READABLE.value,
    )

    if args.command == "login":
        return login_command(args, config)
    return cookies_command(args, config)
