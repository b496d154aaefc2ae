"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
large_scale
    Applied to tests that build trees deep or wide enough to take several
    seconds (deep caterpillars, large consensus batches).  Excluded from the
    default run; opt in with ``-m large_scale``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  They are
expected on the tiny arrays used by the fixtures and say nothing about
correctness.
"""

import warnings

import pytest
from numba.core.errors import NumbaPerformanceWarning


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test module is imported, so the filter is in place
    before the first kernel compiles.
    """
    config.addinivalue_line(
        "markers",
        "large_scale: deep or wide trees (slow, opt in with -m large_scale)",
    )
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()
