#!/usr/bin/env python3
"""TON Wallet Build Orchestrator - Entry Point."""
import sys

# Add the scripts directory to path for twbuild package
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent))

from twbuild.build import main

if __name__ == "__main__":
    sys.exit(main())
