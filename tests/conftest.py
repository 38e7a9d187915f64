"""
Pytest Configuration
====================

Adds the project root to sys.path so that the Stripes folder
is importable without installation.

Usage:
    pytest tests/ -v
"""

import sys
from pathlib import Path


def pytest_configure(config):
    """Add the project root to path before any imports happen."""
    root = Path(__file__).parent.parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


root = Path(__file__).parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))
