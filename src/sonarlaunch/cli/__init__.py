"""Command-line interface for sonarlaunch."""
