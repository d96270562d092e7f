"""Path management for the ~/.sonar directory.

The artifact cache lives at ~/.sonar/cache/ and is shared with every other
scanner flavour installed on the machine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Mapping, Optional

# Default directory name under user home
DEFAULT_HOME_DIR_NAME = ".sonar"

# Environment variable to override the sonar home directory
SONAR_USER_HOME_ENV = "SONAR_USER_HOME"

# Name of the global launcher config file inside the sonar home
GLOBAL_CONFIG_NAME = "sonarlaunch.yml"


def get_sonar_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the sonar home directory path.

    Resolution order:
    1. SONAR_USER_HOME environment variable (if set)
    2. ~/.sonar (default)

    Args:
        environ: Environment to read from (defaults to os.environ).

    Returns:
        Path to the sonar home directory.
    """
    env = os.environ if environ is None else environ
    env_home = env.get(SONAR_USER_HOME_ENV)
    if env_home:
        return Path(env_home)
    return Path.home() / DEFAULT_HOME_DIR_NAME


@dataclass
class SonarPaths:
    """Manages paths within the sonar home directory.

    Directory structure:
        ~/.sonar/
            cache/
                {digest}/{filename}             - downloaded artifact
                {digest}/{filename}_extracted/  - unpacked archive
            sonarlaunch.yml                     - global launcher config
    """

    home: Path

    _CACHE_DIR: ClassVar[str] = "cache"

    @classmethod
    def default(cls, environ: Optional[Mapping[str, str]] = None) -> "SonarPaths":
        """Create paths from the default sonar home."""
        return cls(get_sonar_home(environ))

    @property
    def cache_dir(self) -> Path:
        """Root of the content-addressed artifact cache."""
        return self.home / self._CACHE_DIR

    @property
    def global_config(self) -> Path:
        """Path to the global launcher config file."""
        return self.home / GLOBAL_CONFIG_NAME
