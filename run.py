#!/usr/bin/env python3
"""Rename Agent - Entry Point.

Usage:
    python run.py                                   # Start interactive shell
    python run.py -p ./my-project                   # Shell on a specific project
    python run.py rename-class Foo Baz              # Rename a class
    python run.py find method getUser               # Show references only
    python run.py undo                              # Restore the last backup
    python run.py --help                            # Show help
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Add src to path for development imports
SCRIPT_DIR = Path(__file__).resolve().parent
SRC_DIR = SCRIPT_DIR / "src"
sys.path.insert(0, str(SRC_DIR))

# Load environment variables from .env file if it exists
ENV_PATH = SCRIPT_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)

from rename_agent.cli import main

if __name__ == "__main__":
    main()
