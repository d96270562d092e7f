"""Thin client for the server endpoints the launcher reads."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Tuple
from urllib.error import HTTPError, URLError

from sonarlaunch.bootstrap.http import HttpSettings, open_url
from sonarlaunch.core.errors import ServerError
from sonarlaunch.core.logging import get_logger

SERVER_VERSION_PATH = "/api/server/version"

_VERSION_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")

Version = Tuple[int, int, int]


def parse_version(text: str) -> Version:
    """Coerce a version string into (major, minor, patch).

    The first run of dot-separated numbers wins, so ``10.5.0.89998`` and
    ``v10.5`` both coerce to ``(10, 5, 0)``.

    Raises:
        ValueError: If the text contains no number.
    """
    match = _VERSION_PATTERN.search(text)
    if match is None:
        raise ValueError(f"Not a version: {text!r}")
    return tuple(int(part) if part else 0 for part in match.groups())  # type: ignore[return-value]


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


class ServerClient:
    """Issues GET requests against one server with fixed HTTP settings."""

    def __init__(
        self,
        server_url: str,
        http: Optional[HttpSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.http = http or HttpSettings()
        self._logger = logger or get_logger(__name__)

    def url(self, path: str) -> str:
        return f"{self.server_url}{path}"

    def get_text(self, path: str) -> str:
        """GET path and decode the body as UTF-8.

        Raises:
            urllib.error.URLError: On HTTP or network failure.
        """
        url = self.url(path)
        self._logger.debug(f"Fetch URL: {url}")
        with open_url(url, self.http) as response:
            return response.read().decode("utf-8")

    def get_json(self, path: str) -> Any:
        """GET path and parse the body as JSON.

        Raises:
            urllib.error.URLError: On HTTP or network failure.
            ValueError: If the body is not JSON.
        """
        return json.loads(self.get_text(path))

    def fetch_version(self) -> Optional[Version]:
        """Fetch and coerce the server version.

        Returns None when the body holds no version number.

        Raises:
            ServerError: If the endpoint cannot be reached or fails.
        """
        try:
            raw = self.get_text(SERVER_VERSION_PATH).strip()
        except HTTPError as e:
            self._logger.error("Failed to fetch server version")
            raise ServerError(f"Failed to fetch server version: HTTP {e.code}") from e
        except URLError as e:
            self._logger.error("Failed to fetch server version")
            raise ServerError(f"Failed to fetch server version: {e.reason}") from e
        except OSError as e:
            self._logger.error("Failed to fetch server version")
            raise ServerError(f"Failed to fetch server version: {e}") from e
        except ValueError as e:
            # urllib rejects URLs it cannot open, e.g. one without a scheme
            self._logger.error("Failed to fetch server version")
            raise ServerError(f"Failed to fetch server version: {e}") from e
        try:
            version = parse_version(raw)
        except ValueError:
            self._logger.warning(f"Server returned an unrecognized version: {raw!r}")
            return None
        self._logger.debug(f"Server version: {raw}")
        return version
