"""Pytest configuration for the rpnscript test suite."""

import sys
from pathlib import Path

# Add the src directory to the path so tests run without installing.
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
