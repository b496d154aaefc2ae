"""
tests/test_context.py
=====================
Tests for the logging and warning context managers, and for routing numba
performance warnings through the package logger.
"""

import logging
import os
import sys
import warnings

import pytest
from numba.core.errors import NumbaPerformanceWarning

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from chronoclade import consensus, parse, quiet, suppress_logger, suppress_warnings
from chronoclade._logging import install_numba_warning_filter


TREES = ["((A,B),(C,D));", "((A,B),C,D);", "((A,C),(B,D));"]


class TestLoggingContext:

    def test_quiet_silences_package(self, caplog):
        trees = [parse(s) for s in TREES]
        with caplog.at_level(logging.DEBUG, logger="chronoclade"):
            with quiet():
                consensus(trees)
        assert [r for r in caplog.records if r.name.startswith("chronoclade")] == []

    def test_quiet_restores_level(self):
        logger = logging.getLogger("chronoclade")
        before = logger.level
        with quiet():
            assert logger.level == logging.CRITICAL
        assert logger.level == before

    def test_quiet_custom_level(self, caplog):
        trees = [parse("((A,B),C);"), parse("((A,B),D);")]
        with caplog.at_level(logging.DEBUG, logger="chronoclade"):
            with quiet(logging.WARNING):
                consensus(trees)
        levels = {r.levelno for r in caplog.records if r.name.startswith("chronoclade")}
        assert levels == {logging.WARNING}

    def test_suppress_logger_restores_on_error(self):
        logger = logging.getLogger("chronoclade._consensus")
        logger.setLevel(logging.INFO)
        with pytest.raises(RuntimeError):
            with suppress_logger("chronoclade._consensus"):
                assert logger.level == logging.CRITICAL
                raise RuntimeError("boom")
        assert logger.level == logging.INFO
        logger.setLevel(logging.NOTSET)

    def test_nested(self):
        outer = logging.getLogger("chronoclade._newick")
        inner = logging.getLogger("chronoclade._consensus")
        with suppress_logger("chronoclade._newick", logging.ERROR):
            with suppress_logger("chronoclade._consensus", logging.WARNING):
                assert outer.level == logging.ERROR
                assert inner.level == logging.WARNING
            assert inner.level == logging.NOTSET
        assert outer.level == logging.NOTSET


class TestWarningContext:

    def test_category(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with suppress_warnings(UserWarning):
                warnings.warn("hidden", UserWarning)
                warnings.warn("shown", DeprecationWarning)
        assert [str(w.message) for w in caught] == ["shown"]

    def test_all(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with suppress_warnings():
                warnings.warn("hidden", UserWarning)
                warnings.warn("hidden too", RuntimeWarning)
        assert caught == []


class TestNumbaWarningFilter:

    def test_routed_to_logger(self, caplog):
        with warnings.catch_warnings():
            install_numba_warning_filter()
            with caplog.at_level(logging.WARNING, logger="chronoclade"):
                warnings.showwarning(
                    NumbaPerformanceWarning("slow path"),
                    NumbaPerformanceWarning,
                    "kernel.py",
                    12,
                )
        messages = [r.getMessage() for r in caplog.records]
        assert any("Numba performance issue" in m for m in messages)
        assert any("kernel.py:12" in m for m in messages)
