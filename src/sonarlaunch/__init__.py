"""sonarlaunch - provisions a Java runtime and scanner engine, then runs the scan."""

__version__ = "0.1.0"
