"""Bridge from the scanner engine's output to host logging.

Every stdout line of the engine is one log record. A line that parses as a
JSON object ``{"level", "formattedMessage", "throwable"?}`` is re-logged at
its level; anything else (startup banners, plain text) is written to the host
output verbatim. Stderr lines are always logged at ERROR, unparsed.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from sonarlaunch.core.logging import ENGINE_LEVELS, get_logger
from sonarlaunch.core.streaming import StreamEvent, StreamHandler, StreamType

ENGINE_LOGGER_NAME = "sonarlaunch.ScannerEngine"


@dataclass(frozen=True)
class EngineLogRecord:
    """One structured record emitted by the engine."""

    level: str
    formatted_message: str
    throwable: Optional[str] = None

    @property
    def logging_level(self) -> int:
        return ENGINE_LEVELS[self.level]


def parse_log_record(line: str) -> Optional[EngineLogRecord]:
    """Parse one engine output line, or return None if it is not a record."""
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    level = data.get("level")
    message = data.get("formattedMessage")
    if level not in ENGINE_LEVELS or not isinstance(message, str):
        return None

    throwable = data.get("throwable")
    return EngineLogRecord(
        level=level,
        formatted_message=message,
        throwable=throwable if isinstance(throwable, str) and throwable else None,
    )


class EngineLogBridge(StreamHandler):
    """StreamHandler that applies the engine's line-oriented log protocol."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        output: Optional[TextIO] = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            logger: Logger the engine's records are re-emitted on; its name
                serves as the source tag.
            output: Stream for verbatim text (default: sys.stdout at write time).
        """
        self._logger = logger or get_logger(ENGINE_LOGGER_NAME)
        self._output = output

    def emit(self, event: StreamEvent) -> None:
        if event.stream_type == StreamType.STDERR:
            self._logger.error(event.content)
            return
        self.handle_line(event.content)

    def handle_line(self, line: str) -> None:
        record = parse_log_record(line)
        if record is None:
            self._write(line + "\n")
            return

        self._logger.log(record.logging_level, record.formatted_message)
        if record.throwable:
            # Written as-is: no newline appended
            self._write(record.throwable)

    def _write(self, text: str) -> None:
        output = self._output or sys.stdout
        output.write(text)
        output.flush()
