"""Streaming downloads with checksum verification.

The body is streamed to a ``.part`` file next to the destination and renamed
into place only once it has fully drained and, when a digest is given,
verified. A rejected download therefore never occupies the cache path.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional
from urllib.error import HTTPError, URLError

from sonarlaunch.bootstrap.checksum import ChecksumVerifier
from sonarlaunch.bootstrap.http import HttpSettings, open_url
from sonarlaunch.core.errors import DownloadError
from sonarlaunch.core.logging import get_logger

PARTIAL_SUFFIX = ".part"

_COPY_BUFFER_SIZE = 64 * 1024


def partial_path(dest_path: Path) -> Path:
    """Where bytes for dest_path are written before they are accepted."""
    return dest_path.with_name(dest_path.name + PARTIAL_SUFFIX)


class Downloader:
    """Streams remote resources to local files."""

    def __init__(
        self,
        verifier: Optional[ChecksumVerifier] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._verifier = verifier or ChecksumVerifier()
        self._logger = logger or get_logger(__name__)

    def fetch(
        self,
        url: str,
        dest_path: Path,
        expected_digest: Optional[str] = None,
        http: Optional[HttpSettings] = None,
    ) -> None:
        """Download url to dest_path.

        Args:
            url: Resource to download.
            dest_path: Final location of the file.
            expected_digest: Hex digest the content must match, if any.
            http: Proxy, CA and timeout settings.

        Raises:
            DownloadError: On HTTP/network failure or digest mismatch. On a
                mismatch the rejected bytes are left at the ``.part`` path.
        """
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        part_path = partial_path(dest_path)

        self._logger.info(f"Downloading {url} to {dest_path}")
        self._stream_to_file(url, part_path, http or HttpSettings())

        if expected_digest:
            self._logger.info(f"Verifying checksum {expected_digest}")
            if not self._verifier.verify(part_path, expected_digest):
                self._logger.error(f"Checksum verification failed for {dest_path}")
                raise DownloadError(
                    f"Checksum verification failed for {dest_path}. "
                    f"Expected checksum {expected_digest}"
                )

        os.replace(part_path, dest_path)
        self._logger.debug(f"Downloaded {url} to {dest_path}")

    def _stream_to_file(self, url: str, part_path: Path, http: HttpSettings) -> None:
        try:
            with open_url(url, http) as response:
                total_size = response.headers.get("Content-Length")
                if total_size:
                    self._logger.debug(f"Download size: {int(total_size) / 1024 / 1024:.1f} MB")
                with open(part_path, "wb") as f:
                    shutil.copyfileobj(response, f, _COPY_BUFFER_SIZE)
        except HTTPError as e:
            self._logger.error(f"Download of {url} failed: HTTP {e.code}")
            raise DownloadError(f"Failed to download {url}: HTTP {e.code} - {e.reason}") from e
        except URLError as e:
            self._logger.error(f"Download of {url} failed: {e.reason}")
            raise DownloadError(
                f"Failed to download {url}: {e.reason}. Check your network connection."
            ) from e
        except OSError as e:
            self._logger.error(f"Download of {url} failed: {e}")
            raise DownloadError(f"Failed to download {url}: {e}") from e
