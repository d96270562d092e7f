"""Subprocess runner with streaming support.

Runs an external process, optionally feeding it a payload on standard input,
and streams its stdout and stderr line by line to a StreamHandler.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
from pathlib import Path
from typing import IO, List, Mapping, Optional, Union

from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.streaming import StreamEvent, StreamHandler, StreamType

LOGGER = get_logger(__name__)


def run_with_streaming(
    cmd: List[str],
    tool_name: str,
    stream_handler: StreamHandler,
    stdin_data: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Union[str, Path]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Run a command, streaming its output to stream_handler.

    Both output streams are drained on reader threads while stdin_data is
    written from the calling thread, so a child that writes before reading
    its input cannot deadlock the parent. Standard input is closed once the
    payload is written. Events reach the handler on the calling thread.

    Args:
        cmd: Command and arguments to run.
        tool_name: Name of the tool (used in stream events).
        stream_handler: Handler receiving one event per output line.
        stdin_data: Text written to the child's standard input, if any.
        env: Full environment for the child (defaults to the parent's).
        cwd: Working directory for the command.
        logger: Logger for runner diagnostics.

    Returns:
        The child's exit code.

    Raises:
        OSError: If the command cannot be started.
    """
    log = logger or LOGGER
    stream_handler.start_tool(tool_name)

    with subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE if stdin_data is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        env=dict(env) if env is not None else None,
        cwd=str(cwd) if cwd is not None else None,
    ) as proc:
        # Use a queue to collect output from both streams
        output_queue: queue.Queue = queue.Queue()

        def read_stream(stream: IO[str], stream_type: StreamType) -> None:
            """Read lines from a stream and put them in the queue."""
            try:
                for line_num, line in enumerate(stream, 1):
                    output_queue.put((stream_type, line.rstrip("\r\n"), line_num))
            except (OSError, ValueError) as e:
                log.debug(f"{tool_name} {stream_type.value} reader stopped: {e}")
            finally:
                # Signal EOF for this stream
                output_queue.put((stream_type, None, None))

        readers = [
            threading.Thread(target=read_stream, args=(proc.stdout, StreamType.STDOUT), daemon=True),
            threading.Thread(target=read_stream, args=(proc.stderr, StreamType.STDERR), daemon=True),
        ]
        for reader in readers:
            reader.start()

        if stdin_data is not None and proc.stdin is not None:
            _write_stdin(proc.stdin, stdin_data, tool_name, log)

        # Process output as it arrives
        streams_closed = 0
        while streams_closed < len(readers):
            stream_type, line, line_num = output_queue.get()
            if line is None:
                streams_closed += 1
                continue
            stream_handler.emit(
                StreamEvent(
                    tool_name=tool_name,
                    stream_type=stream_type,
                    content=line,
                    line_number=line_num,
                )
            )

        for reader in readers:
            reader.join()

        returncode = proc.wait()

    stream_handler.end_tool(tool_name, returncode == 0)
    return returncode


def _write_stdin(stdin: IO[str], data: str, tool_name: str, log: logging.Logger) -> None:
    """Write the whole payload and close stdin to signal end of input."""
    try:
        stdin.write(data)
        stdin.flush()
    except BrokenPipeError:
        # The child exited without reading; its exit code tells the story.
        log.warning(f"{tool_name} closed its standard input before reading the configuration")
    finally:
        try:
            stdin.close()
        except BrokenPipeError:
            pass
