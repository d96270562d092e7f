"""Stream handler abstraction for subprocess output.

Output lines of a child process are delivered to a StreamHandler as
StreamEvents, one per line, in the order the parent reads them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StreamType(str, Enum):
    """Type of stream output."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass
class StreamEvent:
    """A single output line from a tool execution.

    Attributes:
        tool_name: Name of the process that produced the line.
        stream_type: Stream the line was read from.
        content: The line without its line terminator.
        line_number: 1-based line number within its stream.
    """

    tool_name: str
    stream_type: StreamType
    content: str
    line_number: Optional[int] = None


class StreamHandler(ABC):
    """Abstract base class for stream handlers."""

    @abstractmethod
    def emit(self, event: StreamEvent) -> None:
        """Emit a stream event.

        Args:
            event: The stream event to emit.
        """

    def start_tool(self, tool_name: str) -> None:
        """Signal that a tool has started execution."""

    def end_tool(self, tool_name: str, success: bool) -> None:
        """Signal that a tool has finished execution."""

