#!/usr/bin/env python3
"""
FeedMirror - Anonymous Feed Mirroring
=====================================

Entry point for running from a checkout without installing.

Usage:
    python main.py --help                # Show all commands
    python main.py check-config          # Validate configuration
    python main.py sync                  # Sync all sources
"""

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedmirror.cli import main

if __name__ == "__main__":
    main()
