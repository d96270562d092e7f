"""Scan pipeline orchestration."""

from sonarlaunch.pipeline.executor import ScanPipeline, build_scan_configuration

__all__ = ["ScanPipeline", "build_scan_configuration"]
