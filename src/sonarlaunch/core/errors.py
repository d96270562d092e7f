"""Exception hierarchy for the launcher pipeline."""

from __future__ import annotations


class LauncherError(Exception):
    """Base class for every error raised by the launcher."""

    pass


class ConfigError(LauncherError):
    """Configuration loading or parsing error."""

    pass


class ServerError(LauncherError):
    """The server could not be queried for its version."""

    pass


class DownloadError(LauncherError):
    """HTTP transfer failed or the downloaded file did not match its digest."""

    pass


class ExtractionError(LauncherError):
    """An archive could not be unpacked."""

    pass


class RuntimeUnusableError(LauncherError):
    """No Java runtime passed the version check."""

    def __init__(self, runtime_path: str, reason: str = "") -> None:
        self.runtime_path = runtime_path
        message = f"Unable to execute Java runtime {runtime_path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EngineFetchError(LauncherError):
    """The scanner engine index was unreachable or malformed."""

    pass


class EngineExecutionError(LauncherError):
    """The scanner engine process exited with a non-zero status."""

    def __init__(self, exit_code: int, message: str = "") -> None:
        self.exit_code = exit_code
        super().__init__(message or f"Scanner engine failed with code {exit_code}")
