"""Launcher configuration loading."""

from sonarlaunch.config.loader import load_config
from sonarlaunch.config.models import LaunchConfig, RuntimeSettings

__all__ = ["load_config", "LaunchConfig", "RuntimeSettings"]
