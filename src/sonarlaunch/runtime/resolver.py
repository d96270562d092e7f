"""Java runtime resolution.

Provisions a server-managed JRE when the server supports it, falling back to
``java`` from the PATH whenever provisioning is unsupported or fails. Whatever
path is chosen must then pass a ``-version`` check; there is no fallback
after that.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from sonarlaunch.bootstrap.archive import ArchiveExtractor
from sonarlaunch.bootstrap.cache import ArtifactCache
from sonarlaunch.bootstrap.download import Downloader
from sonarlaunch.bootstrap.server import ServerClient, Version, format_version
from sonarlaunch.config.models import DOWNLOAD_STYLE_PATH, RuntimeSettings
from sonarlaunch.core.errors import LauncherError, RuntimeUnusableError
from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.models import OperatingSystem, PlatformDescriptor, RuntimeDescriptor

SONARCLOUD_URL_PATTERN = re.compile(
    r"^(https?://)?(www\.)?([a-zA-Z0-9-]+\.)?(sc-dev\.io|sc-staging\.io|sonarcloud\.io)"
)

PROVISIONING_MIN_VERSION: Version = (10, 5, 0)

SYSTEM_JAVA = "java"

RUNTIME_INFO_PATH = "/api/v2/analysis/jres"


def supports_provisioning(
    server_url: str,
    server_version: Optional[Version],
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Decide whether the server can provision a JRE.

    SonarCloud always can; a self-hosted server needs version 10.5 or later.
    A self-hosted server whose version is unknown (None) is treated as unable.
    """
    logger = logger or get_logger(__name__)
    if SONARCLOUD_URL_PATTERN.match(server_url):
        logger.debug("SonarCloud detected, and SonarCloud always supports JRE provisioning")
        return True

    if server_version is None:
        logger.debug("Server version unknown, so JRE provisioning is not supported")
        return False

    supported = tuple(server_version) >= PROVISIONING_MIN_VERSION
    logger.debug(
        f"SonarQube Server v{format_version(server_version)} supports JRE provisioning: {supported}"
    )
    return supported


def parse_runtime_descriptor(data: Any, settings: RuntimeSettings) -> RuntimeDescriptor:
    """Build a RuntimeDescriptor from the runtime-info response.

    The response is either one object or a list whose first object is used.

    Raises:
        LauncherError: If no runtime is listed or a required field is missing.
    """
    if isinstance(data, list):
        if not data:
            raise LauncherError("Server lists no JRE for this platform")
        data = data[0]
    if not isinstance(data, dict):
        raise LauncherError(f"Unexpected JRE metadata: {data!r}")

    filename = data.get("filename")
    if not filename:
        raise LauncherError("JRE metadata has no 'filename'")
    digest_field = _first_field(data, settings.digest_fields)
    if digest_field is None:
        raise LauncherError(
            f"JRE metadata has none of the digest fields {', '.join(settings.digest_fields)}"
        )
    path_field = _first_field(data, settings.binary_path_fields)
    if path_field is None:
        raise LauncherError(
            f"JRE metadata has none of the path fields {', '.join(settings.binary_path_fields)}"
        )
    return RuntimeDescriptor(
        filename=filename,
        digest=str(data[digest_field]),
        relative_binary_path=str(data[path_field]),
        digest_field=digest_field,
    )


def _first_field(data: Dict[str, Any], names: tuple) -> Optional[str]:
    for name in names:
        if data.get(name):
            return name
    return None


@dataclass(frozen=True)
class RuntimeResolution:
    """Java binary chosen for the run.

    Attributes:
        path: Executable path, or ``java`` for the system runtime.
        provisioned: True when the binary came from the server.
    """

    path: str
    provisioned: bool


class RuntimeResolver:
    """Provides a runnable Java binary for the scanner engine."""

    def __init__(
        self,
        client: ServerClient,
        cache: ArtifactCache,
        downloader: Optional[Downloader] = None,
        extractor: Optional[ArchiveExtractor] = None,
        settings: Optional[RuntimeSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._logger = logger or get_logger(__name__)
        self._downloader = downloader or Downloader(logger=self._logger)
        self._extractor = extractor or ArchiveExtractor(logger=self._logger)
        self._settings = settings or RuntimeSettings()

    def resolve(
        self, server_version: Optional[Version], platform: PlatformDescriptor
    ) -> RuntimeResolution:
        """Provision (or fall back) and validate a Java runtime.

        Raises:
            RuntimeUnusableError: If the chosen runtime fails ``-version``.
        """
        resolution = self.provision(server_version, platform)
        self._logger.debug(f"JRE path: {resolution.path}")
        self.validate(resolution.path)
        return resolution

    def provision(
        self, server_version: Optional[Version], platform: PlatformDescriptor
    ) -> RuntimeResolution:
        """Obtain a managed JRE, or fall back to ``java`` from the PATH.

        Never raises: any provisioning failure is logged and demoted to the
        fallback.
        """
        if not supports_provisioning(self._client.server_url, server_version, self._logger):
            self._logger.warning("JRE Provisioning not supported. Using java from path.")
            return RuntimeResolution(path=SYSTEM_JAVA, provisioned=False)

        try:
            binary = self._provision_managed(platform)
        except Exception as e:
            self._logger.error(f"Failed to fetch JRE: {e}. Using java from path.")
            return RuntimeResolution(path=SYSTEM_JAVA, provisioned=False)
        return RuntimeResolution(path=str(binary), provisioned=True)

    def fetch_descriptor(self, platform: PlatformDescriptor) -> RuntimeDescriptor:
        query = urlencode({"os": platform.os.value, "arch": platform.arch})
        data = self._client.get_json(f"{RUNTIME_INFO_PATH}?{query}")
        descriptor = parse_runtime_descriptor(data, self._settings)
        self._logger.debug(
            f"JRE for {platform.os.value}/{platform.arch}: {descriptor.filename} "
            f"({descriptor.digest_field}: {descriptor.digest})"
        )
        return descriptor

    def download_url(self, descriptor: RuntimeDescriptor) -> str:
        if self._settings.download_style == DOWNLOAD_STYLE_PATH:
            return self._client.url(f"{RUNTIME_INFO_PATH}/{quote(descriptor.filename)}")
        return self._client.url(f"{RUNTIME_INFO_PATH}?{urlencode({'filename': descriptor.filename})}")

    def _provision_managed(self, platform: PlatformDescriptor) -> Path:
        descriptor = self.fetch_descriptor(platform)
        ref = descriptor.ref

        cached_dir = self._cache.locate(ref, extracted=True)
        if cached_dir is not None:
            self._logger.debug(f"JRE already downloaded to {cached_dir}. Skipping download.")
            return cached_dir / descriptor.relative_binary_path

        archive_path = self._cache.materialize(ref)
        jre_dir = self._cache.materialize(ref, extracted=True)
        self._downloader.fetch(
            self.download_url(descriptor),
            archive_path,
            descriptor.digest,
            self._client.http,
        )
        self._extractor.extract(archive_path, jre_dir)

        binary = jre_dir / descriptor.relative_binary_path
        if platform.os != OperatingSystem.WINDOWS and os.name != "nt":
            self._logger.debug(f"JRE downloaded to {jre_dir}. Allowing execution on {binary}")
            binary.chmod(binary.stat().st_mode | 0o111)
        return binary

    def validate(self, runtime_path: str) -> None:
        """Run ``<runtime_path> -version``.

        Raises:
            RuntimeUnusableError: On spawn failure or non-zero exit.
        """
        try:
            result = subprocess.run(
                [runtime_path, "-version"],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            self._logger.error(f"Java version check failed: {e}")
            self._logger.error(f"Unable to execute JRE {runtime_path}")
            raise RuntimeUnusableError(runtime_path, str(e)) from e

        if result.returncode != 0:
            self._logger.error(f"Java version check failed with exit code {result.returncode}")
            self._logger.error(f"Unable to execute JRE {runtime_path}")
            raise RuntimeUnusableError(runtime_path, f"exit code {result.returncode}")

        # java prints its version banner on stderr
        self._logger.debug(f"Java version: {(result.stderr or result.stdout).strip()}")
