"""
_context.py
===========
Scoped changes to logging and warning state.

Each manager puts the previous state back when the with-block exits,
whether it exits normally or through an exception.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type


PACKAGE_LOGGER = "chronoclade"


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Raise (or lower) the level of one logger for the duration of a block.

    Parameters
    ----------
    logger_name : str
        Dotted logger name, e.g. ``'chronoclade._consensus'``.
    level : int, default logging.CRITICAL
        Level applied inside the block.

    Examples
    --------
    >>> with suppress_logger('chronoclade._consensus'):
    ...     summaries = [consensus(batch) for batch in batches]

    Managers nest; the inner one restores the level the outer one set.

    >>> with suppress_logger('chronoclade._newick', logging.ERROR):
    ...     with suppress_logger('chronoclade._consensus'):
    ...         tree = consensus([parse(s) for s in newicks])
    """
    target = logging.getLogger(logger_name)
    saved = target.level
    target.setLevel(level)
    try:
        yield
    finally:
        target.setLevel(saved)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence every chronoclade module at once.

    Module loggers are children of ``chronoclade``, so setting the level of
    that one logger covers all of them.

    Examples
    --------
    >>> with quiet():
    ...     tree = consensus(trees, every=100)

    Keep tip-set mismatch warnings but drop the statistics:

    >>> with quiet(logging.WARNING):
    ...     tree = consensus(trees)
    """
    with suppress_logger(PACKAGE_LOGGER, level):
        yield


# ============================================================================ #
# Warnings
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Ignore warnings of *category* (all warnings when None) inside the block.

    Examples
    --------
    >>> from numba.core.errors import NumbaPerformanceWarning
    >>> with suppress_warnings(NumbaPerformanceWarning):
    ...     order = preorder(tree)
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield
