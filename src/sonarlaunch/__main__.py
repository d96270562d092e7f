from __future__ import annotations

import sys

from sonarlaunch.cli.runner import main

if __name__ == "__main__":
    sys.exit(main())
