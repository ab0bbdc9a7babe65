"""Main entry point for the GPU capacity monitor.

This is a convenience script that runs the monitor.
For a single check, use scripts/run_check_once.py.
"""

import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from scripts.run_monitor import main
import asyncio


if __name__ == "__main__":
    print("Starting GPU Capacity Monitor...")
    print("For a one-off check, use scripts/run_check_once.py")
    print()
    asyncio.run(main())
