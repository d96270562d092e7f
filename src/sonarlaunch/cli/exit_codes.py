"""Process exit codes returned by the CLI."""

EXIT_SUCCESS = 0
EXIT_ENGINE_FAILURE = 1
EXIT_INVALID_USAGE = 2
EXIT_LAUNCHER_ERROR = 3
