"""Scanner engine fetching and execution."""

from sonarlaunch.engine.fetcher import EngineFetcher
from sonarlaunch.engine.log_bridge import EngineLogBridge
from sonarlaunch.engine.runner import EngineRunner

__all__ = ["EngineFetcher", "EngineLogBridge", "EngineRunner"]
