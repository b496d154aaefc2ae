"""
_logging.py
===========
Logging functions for chronoclade.

The log_* functions only format and emit records; callers compute the
numbers and pass them in, so the algorithms stay free of message text.

Loggers
-------
Each module logs through ``logging.getLogger(__name__)``; everything below
``chronoclade`` can be silenced at once with ``chronoclade.quiet()`` or

    logging.getLogger('chronoclade').setLevel(logging.WARNING)
"""

import logging
from typing import Any, List, Set

from chronoclade._utils import jaccard_similarity


logger = logging.getLogger(__name__)


# ============================================================================ #
# System Logging (called at package import time)
# ============================================================================ #


def log_numba_status() -> None:
    """
    Log the numba/llvmlite versions and CPU count at DEBUG level.

    Called once when the package is imported.
    """
    import os

    import numba

    logger.debug(
        "Numba %s loaded, %d CPU core(s) available",
        numba.__version__,
        os.cpu_count() or 1,
    )
    try:
        import llvmlite

        logger.debug("LLVM backend: llvmlite %s", llvmlite.__version__)
    except (ImportError, AttributeError):
        logger.debug("LLVM backend version unavailable")


def install_numba_warning_filter() -> None:
    """
    Send NumbaPerformanceWarning to the chronoclade logger.

    numba issues performance warnings via Python's warnings module. This
    filter intercepts them and logs them at WARNING level so they appear in
    the same stream as other chronoclade diagnostics.  Other warnings keep
    their original display.
    """
    import warnings

    from numba.core.errors import NumbaPerformanceWarning

    original_showwarning = warnings.showwarning

    def custom_showwarning(message, category, filename, lineno, file=None, line=None):
        if issubclass(category, NumbaPerformanceWarning):
            logger.warning("Numba performance issue: %s", message)
            logger.warning("  at %s:%d", filename, lineno)
            return
        original_showwarning(message, category, filename, lineno, file, line)

    warnings.showwarning = custom_showwarning


# ============================================================================ #
# Codec Logging
# ============================================================================ #


def log_parse_summary(tree_type: str, n_nodes: int, n_tips: int) -> None:
    """
    Log the outcome of a NEWICK parse at DEBUG level.

    Parameters
    ----------
    tree_type : str
        Class name of the constructed tree.
    n_nodes : int
        Number of nodes allocated.
    n_tips : int
        Number of tip labels (named or not) in the input.
    """
    logger.debug("Parsed %s: %d nodes, %d tips", tree_type, n_nodes, n_tips)


# ============================================================================ #
# Consensus Logging
# ============================================================================ #


def log_counting_progress(n_done: int, n_trees: int, every: int) -> None:
    """
    Log clade-counting progress every *every* trees (0 disables it).
    """
    if every > 0 and n_done % every == 0:
        logger.info("Counted clades in %d/%d trees", n_done, n_trees)


def log_tip_set_mismatch(tree_tip_sets: List[Set[str]]) -> None:
    """
    Warn when the input trees of a consensus do not share one tip set.

    Parameters
    ----------
    tree_tip_sets : List[Set[str]]
        Tip names of each input tree.
    """
    if not tree_tip_sets:
        return
    union = set().union(*tree_tip_sets)
    worst = min(jaccard_similarity(tips, union) for tips in tree_tip_sets)
    if worst < 1.0:
        n_partial = sum(1 for tips in tree_tip_sets if tips != union)
        logger.warning(
            "%d of %d trees lack some of the %d tips (minimum Jaccard "
            "similarity to the full tip set: %.3f). Clades containing the "
            "missing tips cannot reach full support.",
            n_partial,
            len(tree_tip_sets),
            len(union),
            worst,
        )


def log_consensus_statistics(
    n_trees: int,
    n_distinct: int,
    n_retained: int,
    threshold: float,
    n_required: int,
) -> None:
    """
    Log clade statistics for a consensus build.

    Parameters
    ----------
    n_trees : int
        Number of input trees.
    n_distinct : int
        Number of distinct clades seen across all trees.
    n_retained : int
        Number of clades that met the support threshold.
    threshold : float
        Support threshold after tie-breaking adjustment.
    n_required : int
        Minimum number of trees a clade had to appear in.
    """
    logger.info(
        "Consensus over %d trees: %d distinct clades, %d retained "
        "(threshold %.3f, at least %d trees)",
        n_trees,
        n_distinct,
        n_retained,
        threshold,
        n_required,
    )


# ============================================================================ #
# Data helpers
# ============================================================================ #


def compute_tree_tip_sets(trees: List[Any]) -> List[Set[str]]:
    """
    Build tip-name sets per tree (tips with empty names are skipped).

    Parameters
    ----------
    trees : List[Any]
        CladoTree or ChronoTree objects.

    Returns
    -------
    List[Set[str]]
        Tip names for each tree.
    """
    out = []
    for tree in trees:
        child = tree.child
        names = tree.names
        out.append({names[i] for i in range(1, len(tree) + 1) if child[i] == 0 and names[i]})
    return out
