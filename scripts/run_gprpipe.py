#!/usr/bin/env python3
"""gprpipe batch runner.

Usage:
    python scripts/run_gprpipe.py -f "survey/*.rad" --default --merge "10 min"
    python scripts/run_gprpipe.py -f "survey/*.rad" --config scripts/user_config.py -t -r

Note: User config in scripts/user_config.py, expert defaults in gprpipe.schemas.param
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from gprpipe.cli.main import main


if __name__ == "__main__":
    sys.exit(main())
