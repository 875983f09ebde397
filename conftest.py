"""
Root pytest configuration.

This conftest.py is discovered by pytest and puts the src/ directory
on the Python path, so that tests can import the engine modules
directly, e.g. 'from wordset import WordSet'.
"""

from __future__ import annotations

import sys
import os

SRC_PATH = os.path.join(os.path.dirname(__file__), "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)
