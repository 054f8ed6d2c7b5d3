#!/usr/bin/env python3
"""
SwapTracker - Entry Point
This script ensures proper module paths before importing the main application.

Usage:
    python run.py <token_mint_address>
"""
import sys
from pathlib import Path

# Get the absolute path to the project root directory
project_root = Path(__file__).parent.resolve()

# Add to Python path if not already there
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from main import main
import asyncio


def cli():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nSwapTracker stopped by user")


if __name__ == "__main__":
    cli()
