"""End-to-end scan pipeline.

server version → platform → (runtime resolution ‖ engine fetch) → engine run.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from sonarlaunch import __version__
from sonarlaunch.bootstrap.cache import ArtifactCache
from sonarlaunch.bootstrap.http import HttpSettings
from sonarlaunch.bootstrap.paths import SonarPaths
from sonarlaunch.bootstrap.platform import get_platform_info
from sonarlaunch.bootstrap.server import ServerClient, Version, format_version
from sonarlaunch.config.models import LaunchConfig
from sonarlaunch.config.proxy import java_proxy_options, resolve_proxy_url
from sonarlaunch.core.errors import ConfigError
from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.models import PlatformDescriptor, ProcessOutcome, ScanConfiguration
from sonarlaunch.core.streaming import StreamHandler
from sonarlaunch.engine.fetcher import EngineFetcher
from sonarlaunch.engine.runner import EngineRunner
from sonarlaunch.runtime.resolver import RuntimeResolution, RuntimeResolver

SCANNER_APP_NAME = "ScannerPython"

TOKEN_PROPERTY = "sonar.token"
HOST_URL_PROPERTY = "sonar.host.url"


def build_scan_configuration(config: LaunchConfig) -> ScanConfiguration:
    """Assemble the scanner properties handed to the engine.

    Launcher defaults come first and user properties override them. The
    token is never part of the payload; it travels in the environment.
    """
    properties: Dict[str, str] = {
        "sonar.scanner.app": SCANNER_APP_NAME,
        "sonar.scanner.appVersion": __version__,
        "sonar.log.level": config.log_level,
        "sonar.verbose": "true" if config.verbose else "false",
        "sonar.projectBaseDir": str(config.project_base_dir),
    }
    properties.update(config.properties)
    properties.pop(TOKEN_PROPERTY, None)
    if config.server_url:
        properties[HOST_URL_PROPERTY] = config.server_url
    return ScanConfiguration(properties=properties)


class ScanPipeline:
    """Provisions the runtime and engine for one scan, then runs it."""

    def __init__(
        self,
        config: LaunchConfig,
        paths: Optional[SonarPaths] = None,
        platform: Optional[PlatformDescriptor] = None,
        environ: Optional[Mapping[str, str]] = None,
        stream_handler: Optional[StreamHandler] = None,
        sequential: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Resolved launcher configuration.
            paths: Sonar home paths; the cache root is read from here once.
            platform: Platform descriptor; detected when omitted.
            environ: Environment for the engine process.
            stream_handler: Receives engine output; the log bridge by default.
            sequential: Resolve the runtime and fetch the engine one after
                the other instead of concurrently.
            logger: Logger threaded through every component.
        """
        if not config.server_url:
            raise ConfigError("No server URL configured (set server_url or sonar.host.url)")

        self._config = config
        self._paths = paths or SonarPaths.default(environ)
        self._platform = platform
        self._environ = environ
        self._stream_handler = stream_handler
        self._sequential = sequential
        self._logger = logger or get_logger(__name__)

        self._token = config.token or config.properties.get(TOKEN_PROPERTY)
        self._proxy_url = resolve_proxy_url(config.server_url, config.properties)
        if self._proxy_url:
            self._logger.debug("Proxy detected")
        self._http = HttpSettings(
            proxy_url=self._proxy_url,
            ca_path=config.ca_path,
            timeout=config.http_timeout,
        )
        self._cache = ArtifactCache(self._paths.cache_dir)
        self._client = ServerClient(config.server_url, self._http, logger=self._logger)

    @property
    def http(self) -> HttpSettings:
        return self._http

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    def run(self) -> ProcessOutcome:
        """Run the whole pipeline.

        Raises:
            LauncherError: Any unrecoverable failure (server version, runtime
                validation, engine fetch, download, engine exit status).
        """
        self._logger.debug("Fetch server version")
        version = self._client.fetch_version()
        self._logger.info(f"Server version: {format_version(version) if version else 'unknown'}")

        platform = self._platform or get_platform_info()
        self._logger.info(f"Platform: {platform.os.value} {platform.arch}")

        runtime, engine_path = self.provision(version, platform)

        runner = EngineRunner(
            jvm_options=self._config.jvm_options,
            proxy_options=java_proxy_options(self._config.server_url, self._proxy_url),
            token=self._token,
            environ=self._environ,
            cwd=self._config.project_base_dir,
            stream_handler=self._stream_handler,
            logger=self._logger,
        )
        return runner.run(runtime.path, engine_path, build_scan_configuration(self._config))

    def provision(
        self, version: Optional[Version], platform: PlatformDescriptor
    ) -> Tuple[RuntimeResolution, Path]:
        """Resolve the Java runtime and fetch the engine jar."""
        resolver = RuntimeResolver(
            self._client,
            self._cache,
            settings=self._config.runtime,
            logger=self._logger,
        )
        fetcher = EngineFetcher(self._cache, logger=self._logger)

        if self._sequential:
            self._logger.debug("Fetch JRE path")
            runtime = resolver.resolve(version, platform)
            self._logger.debug("Fetch scanner engine path")
            engine_path = fetcher.fetch(self._config.server_url, self._http)
            return runtime, engine_path

        # The two touch distinct cache entries and share no state.
        with ThreadPoolExecutor(max_workers=2) as executor:
            runtime_future = executor.submit(resolver.resolve, version, platform)
            engine_future = executor.submit(fetcher.fetch, self._config.server_url, self._http)
            runtime = runtime_future.result()
            engine_path = engine_future.result()
        return runtime, engine_path
