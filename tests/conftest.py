"""
Pytest configuration for the branchflow test suite.

Makes the repository root importable so the tests run against a source
checkout as well as an installed package.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(autouse=True)
def _clear_pattern_cache():
    """Compiled-regex cache is process wide; start every test cold."""
    from branchflow.runner.conditions import _compile_pattern
    _compile_pattern.cache_clear()
    yield
