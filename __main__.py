#!/usr/bin/env python3
"""
FarmOps - Main entry point.
"""

import sys
from pathlib import Path

# Ensure packages resolve when run from a checkout
sys.path.insert(0, str(Path(__file__).parent))

from cli.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
