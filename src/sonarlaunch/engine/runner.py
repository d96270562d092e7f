"""Scanner engine execution."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from sonarlaunch.core.errors import EngineExecutionError
from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.models import ProcessOutcome, ScanConfiguration
from sonarlaunch.core.streaming import StreamHandler
from sonarlaunch.core.subprocess_runner import run_with_streaming
from sonarlaunch.engine.log_bridge import EngineLogBridge

TOKEN_ENV = "SONAR_TOKEN"

ENGINE_TOOL_NAME = "ScannerEngine"

# Exit code reported when the engine process could not be started at all
SPAWN_FAILURE_EXIT_CODE = -1

_SECRET_FLAG_MARKERS = ("proxyPassword=",)


def _mask_secrets(cmd: Sequence[str]) -> List[str]:
    masked = []
    for arg in cmd:
        for marker in _SECRET_FLAG_MARKERS:
            if marker in arg:
                arg = arg.split(marker, 1)[0] + marker + "***"
        masked.append(arg)
    return masked


class EngineRunner:
    """Runs the scanner engine jar on a Java runtime.

    Command line: ``<java> [jvm_options...] [proxy_options...] -jar <engine>``.
    The scan configuration goes to the engine's standard input as one JSON
    document; the access token goes into the child's environment only.
    """

    def __init__(
        self,
        jvm_options: Sequence[str] = (),
        proxy_options: Sequence[str] = (),
        token: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
        stream_handler: Optional[StreamHandler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._jvm_options = list(jvm_options)
        self._proxy_options = list(proxy_options)
        self._token = token
        self._environ = environ
        self._cwd = cwd
        self._logger = logger or get_logger(__name__)
        self._stream_handler = stream_handler or EngineLogBridge()

    def build_command(self, runtime_path: str, engine_path: Path) -> List[str]:
        return [
            str(runtime_path),
            *self._jvm_options,
            *self._proxy_options,
            "-jar",
            str(engine_path),
        ]

    def build_environment(self) -> Dict[str, str]:
        """Parent environment plus the access token, for the child only."""
        env = dict(os.environ if self._environ is None else self._environ)
        if self._token:
            env[TOKEN_ENV] = self._token
        return env

    def run(
        self,
        runtime_path: str,
        engine_path: Path,
        configuration: ScanConfiguration,
    ) -> ProcessOutcome:
        """Run the engine to completion.

        Returns:
            A succeeded ProcessOutcome when the engine exits with code 0.

        Raises:
            EngineExecutionError: On a non-zero exit code, or with exit code
                -1 when the process cannot be spawned.
        """
        cmd = self.build_command(runtime_path, engine_path)
        payload = json.dumps(configuration.to_payload())
        self._logger.debug(f"Running scanner engine: {' '.join(_mask_secrets(cmd))}")

        try:
            exit_code = run_with_streaming(
                cmd,
                tool_name=ENGINE_TOOL_NAME,
                stream_handler=self._stream_handler,
                stdin_data=payload,
                env=self.build_environment(),
                cwd=self._cwd,
                logger=self._logger,
            )
        except OSError as e:
            self._logger.error(f"Failed to start scanner engine: {e}")
            raise EngineExecutionError(
                SPAWN_FAILURE_EXIT_CODE, f"Failed to start scanner engine: {e}"
            ) from e

        if exit_code != 0:
            self._logger.error(f"Scanner engine failed with code {exit_code}")
            raise EngineExecutionError(exit_code)

        self._logger.info("Scanner engine finished successfully")
        return ProcessOutcome(exit_code=exit_code, succeeded=True)
