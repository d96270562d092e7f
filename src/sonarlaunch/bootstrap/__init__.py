"""
Bootstrap utilities for provisioning the scanner's artifacts.

This package handles:
- Platform detection (OS + architecture)
- The content-addressed artifact cache (~/.sonar/cache/)
- Downloading with proxy/CA support and checksum verification
- Archive extraction (.zip, .tar.gz)
"""

from sonarlaunch.bootstrap.cache import ArtifactCache
from sonarlaunch.bootstrap.checksum import ChecksumVerifier
from sonarlaunch.bootstrap.download import Downloader
from sonarlaunch.bootstrap.archive import ArchiveExtractor
from sonarlaunch.bootstrap.paths import get_sonar_home, SonarPaths
from sonarlaunch.bootstrap.platform import get_platform_info

__all__ = [
    "ArtifactCache",
    "ChecksumVerifier",
    "Downloader",
    "ArchiveExtractor",
    "get_sonar_home",
    "SonarPaths",
    "get_platform_info",
]
