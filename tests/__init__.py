"""
Song Rounds Lifecycle Test Suite.

This package contains all tests for the round lifecycle functions.
"""
import sys
from pathlib import Path

# Ensure project root is at the beginning of sys.path so the rounds,
# shared and cloud_functions packages resolve without an install
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)
