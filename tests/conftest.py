"""Pytest configuration for the MiniC test suite."""

import sys
from pathlib import Path

# Add src directory to path for minic imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
