"""Command line entry point running a test application with Playwright."""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import logging
import sys
from typing import Any

from domharness.application import TestApplication
from domharness.config import HarnessConfig
from domharness.env.playwright_env import PlaywrightEnvironment
from domharness.exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)


def load_application(reference: str) -> TestApplication:
    """Import a ``module:attribute`` reference to an application.

    The attribute may be an application instance or class.

    :raises ConfigurationError: on an invalid reference
    """
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Invalid application reference: {reference}. Use module:attribute")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Application module not found: {module_name}") from exc

    app: Any = getattr(module, attr, None)
    if isinstance(app, type):
        app = app()
    if not isinstance(app, TestApplication):
        raise ConfigurationError(f"Not a test application: {reference}")
    return app


def build_config(args: argparse.Namespace, app: TestApplication) -> HarnessConfig:
    """Combine config file, application config and command line options."""
    if args.config:
        config = HarnessConfig.from_yaml(args.config)
    elif app.config is not None:
        config = app.config
    elif args.base_url:
        config = HarnessConfig(base_url=args.base_url)
    else:
        raise ConfigurationError("Invalid config: test URL not found")

    overrides: dict[str, Any] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.headed:
        overrides["headless"] = False
    if args.screenshot:
        overrides["error_screenshot"] = args.screenshot
    if args.story:
        overrides["story"] = args.story
    return dataclasses.replace(config, **overrides) if overrides else config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run browser tests of a web application"
    )
    parser.add_argument(
        "app",
        help="Test application as module:attribute",
    )
    parser.add_argument(
        "story",
        nargs="?",
        default=None,
        help="Name of the single story to run (default: all stories)",
    )
    parser.add_argument(
        "--config",
        help="YAML config file",
    )
    parser.add_argument(
        "--base-url",
        help="URL of the application under test",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--screenshot",
        help="Screenshot path saved when the run fails",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Run tests and return the process exit code."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        app = load_application(args.app)
        app.config = build_config(args, app)
    except (ConfigurationError, FileNotFoundError) as e:
        _LOGGER.error("Error: %s", e)
        return 1

    environment = PlaywrightEnvironment(app.config)
    return environment.run(app, story=args.story)


def main() -> None:
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
