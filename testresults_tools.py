#!/usr/bin/env python3
"""Launcher for the testresults CLI when running from a source checkout."""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent
sys.path.insert(0, str(project_root))

from testresults.cli.entrypoint import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
