"""Scanner engine download and caching."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode

from sonarlaunch.bootstrap.cache import ArtifactCache
from sonarlaunch.bootstrap.download import Downloader
from sonarlaunch.bootstrap.http import HttpSettings
from sonarlaunch.bootstrap.server import ServerClient
from sonarlaunch.core.errors import EngineFetchError
from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.models import EngineDescriptor

ENGINE_INDEX_PATH = "/batch/index"
ENGINE_FILE_PATH = "/batch/file"


class EngineFetcher:
    """Resolves the scanner engine jar to a local, cached path."""

    def __init__(
        self,
        cache: ArtifactCache,
        downloader: Optional[Downloader] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._logger = logger or get_logger(__name__)
        self._downloader = downloader or Downloader(logger=self._logger)

    def fetch(self, server_url: str, http: Optional[HttpSettings] = None) -> Path:
        """Return the local path of the server's scanner engine.

        The engine is downloaded only on a cache miss.

        Raises:
            EngineFetchError: If the index is unreachable or malformed.
            DownloadError: If the engine download or its checksum fails.
        """
        client = ServerClient(server_url, http, logger=self._logger)
        descriptor = self.fetch_descriptor(client)

        cached = self._cache.locate(descriptor.ref)
        self._logger.debug(f"Cached scanner engine: {cached}")
        if cached is not None:
            self._logger.info(f"Using cached scanner engine: {cached}")
            return cached

        engine_path = self._cache.materialize(descriptor.ref)
        query = urlencode({"name": descriptor.filename})
        self._downloader.fetch(
            client.url(f"{ENGINE_FILE_PATH}?{query}"),
            engine_path,
            descriptor.digest,
            client.http,
        )
        return engine_path

    def fetch_descriptor(self, client: ServerClient) -> EngineDescriptor:
        try:
            index = client.get_text(ENGINE_INDEX_PATH)
        except HTTPError as e:
            self._logger.error(f"Failed to fetch scanner engine index: HTTP {e.code}")
            raise EngineFetchError(f"Failed to fetch scanner engine index: HTTP {e.code}") from e
        except (URLError, OSError, ValueError) as e:
            self._logger.error(f"Failed to fetch scanner engine index: {e}")
            raise EngineFetchError(f"Failed to fetch scanner engine index: {e}") from e

        try:
            descriptor = EngineDescriptor.parse(index)
        except ValueError as e:
            self._logger.error(str(e))
            raise EngineFetchError(str(e)) from e

        self._logger.debug(f"Scanner engine: {descriptor.filename} (digest: {descriptor.digest})")
        return descriptor
