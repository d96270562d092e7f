"""Tests for logging helpers."""

from __future__ import annotations

import logging

from sonarlaunch.core.logging import engine_level_name, get_logger, resolve_level


class TestResolveLevel:
    def test_default_is_info(self) -> None:
        assert resolve_level() == logging.INFO

    def test_debug(self) -> None:
        assert resolve_level(debug=True) == logging.DEBUG

    def test_quiet_wins(self) -> None:
        assert resolve_level(debug=True, quiet=True) == logging.ERROR


class TestEngineLevelName:
    def test_names(self) -> None:
        assert engine_level_name(logging.DEBUG) == "DEBUG"
        assert engine_level_name(logging.INFO) == "INFO"
        assert engine_level_name(logging.WARNING) == "WARN"
        assert engine_level_name(logging.CRITICAL) == "ERROR"


def test_get_logger_uses_name() -> None:
    assert get_logger("sonarlaunch.test").name == "sonarlaunch.test"
