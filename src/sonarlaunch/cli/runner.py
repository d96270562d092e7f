"""CLI runner orchestration."""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from sonarlaunch.cli.arguments import build_parser, split_property_args
from sonarlaunch.cli.exit_codes import (
    EXIT_ENGINE_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LAUNCHER_ERROR,
    EXIT_SUCCESS,
)
from sonarlaunch.config import load_config
from sonarlaunch.core.errors import ConfigError, EngineExecutionError, LauncherError
from sonarlaunch.core.logging import configure_logging, engine_level_name, get_logger
from sonarlaunch.pipeline.executor import ScanPipeline

LOGGER = get_logger(__name__)


def get_version() -> str:
    """Get sonarlaunch version.

    Returns:
        Version string from package metadata or fallback.
    """
    try:
        return version("sonarlaunch")
    except PackageNotFoundError:
        # Fallback for editable installs that have not yet built metadata.
        from sonarlaunch import __version__
        return __version__


def engine_exit_status(exit_code: int) -> int:
    """Map the engine's exit code onto this process's exit status."""
    if 1 <= exit_code <= 255:
        return exit_code
    return EXIT_ENGINE_FAILURE


class CLIRunner:
    """Parses arguments, loads configuration and runs the scan pipeline."""

    def __init__(self) -> None:
        self.parser = build_parser()
        self._version = get_version()

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        """Run the CLI.

        Args:
            argv: Command-line arguments (defaults to sys.argv[1:]).

        Returns:
            Exit code.
        """
        raw_args = list(sys.argv[1:] if argv is None else argv)
        remaining, properties = split_property_args(raw_args)
        args = self.parser.parse_args(remaining)

        # Configure logging as early as possible
        level = configure_logging(debug=args.debug, quiet=args.quiet)

        if args.version:
            print(self._version)
            return EXIT_SUCCESS

        project_root = Path(args.path).resolve()
        overrides = self._build_overrides(args, properties, level)

        try:
            config = load_config(
                project_root=project_root,
                cli_config_path=args.config,
                cli_overrides=overrides,
            )
            pipeline = ScanPipeline(config, sequential=args.sequential)
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE

        try:
            pipeline.run()
        except EngineExecutionError as e:
            LOGGER.error(str(e))
            return engine_exit_status(e.exit_code)
        except LauncherError as e:
            LOGGER.error(str(e))
            return EXIT_LAUNCHER_ERROR
        return EXIT_SUCCESS

    @staticmethod
    def _build_overrides(args, properties: Dict[str, str], level: int) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        if properties:
            overrides["properties"] = properties
        if args.server_url:
            overrides["server_url"] = args.server_url
        if args.token:
            overrides["token"] = args.token
        if args.ca_path:
            overrides["ca_path"] = str(args.ca_path)
        if args.jvm_options:
            overrides["jvm_options"] = args.jvm_options
        if args.verbose:
            overrides["verbose"] = True
        if args.debug or args.quiet:
            overrides["log_level"] = engine_level_name(level)
        return overrides


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Console script entry point."""
    return CLIRunner().run(argv)
