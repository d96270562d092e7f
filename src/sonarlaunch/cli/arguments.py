"""Argument parser construction for the sonarlaunch CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, Iterable, List, Tuple


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    """Add logging and version options."""
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show sonarlaunch version and exit.",
    )
    parser.add_argument(
        "--debug", "-X",
        action="store_true",
        help="Enable debug logging (also forwarded to the scanner engine).",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output from the scanner engine.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging output to errors only.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the sonarlaunch argument parser."""
    parser = argparse.ArgumentParser(
        prog="sonarlaunch",
        description=(
            "Provision a Java runtime and the scanner engine from the server, "
            "then run the analysis."
        ),
        epilog="Scanner properties are passed as -Dkey=value, e.g. -Dsonar.projectKey=my-app.",
    )
    _add_global_options(parser)
    parser.add_argument(
        "--server-url",
        help="Server URL (overridden by -Dsonar.host.url).",
    )
    parser.add_argument(
        "--token",
        help="Access token. Prefer the SONAR_TOKEN environment variable.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a sonarlaunch.yml file (default: <path>/sonarlaunch.yml).",
    )
    parser.add_argument(
        "--ca-path",
        type=Path,
        help="PEM file with CA certificates trusted for the server.",
    )
    parser.add_argument(
        "--jvm-option",
        action="append",
        dest="jvm_options",
        default=None,
        metavar="OPTION",
        help="Extra JVM option for the scanner engine (repeatable).",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Resolve the Java runtime and fetch the engine one after the other.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project base directory (default: current directory).",
    )
    return parser


def split_property_args(argv: Iterable[str]) -> Tuple[List[str], Dict[str, str]]:
    """Separate ``-Dkey=value`` scanner properties from regular arguments.

    ``-Dkey`` without a value sets the property to an empty string. Only the
    first ``=`` separates key from value.

    Returns:
        (remaining arguments, properties)
    """
    remaining: List[str] = []
    properties: Dict[str, str] = {}
    for arg in argv:
        if arg.startswith("-D") and len(arg) > 2:
            key, _, value = arg[2:].partition("=")
            properties[key] = value
        else:
            remaining.append(arg)
    return remaining, properties
