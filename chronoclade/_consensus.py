"""
_consensus.py
=============
Majority-rule consensus of a collection of trees.

Public API
----------
  count_clades(trees, n_workers=1, every=0) -> Counter[frozenset[str], int]
  count_clade_ages(trees, every=0) -> dict[frozenset[str], list[float]]
  construct_tree(parents) -> (CladoTree, root)
  consensus(trees, threshold=0.5, n_workers=1, every=0) -> CladoTree

Algorithm
---------
1. Every node of every tree defines a clade: the set of tip names below it.
   Count, for each distinct clade, the number of trees containing it.
2. Keep the clades found in at least ``ceil(threshold * n_trees)`` trees.
3. Sort the kept clades by size.  The parent of a clade is the smallest
   strictly larger kept clade that contains it.  With threshold >= 0.5 any
   two kept clades are disjoint or nested, so this is the Hasse diagram of
   the containment order and exactly one clade (the full tip set) is left
   without a parent.
4. Build the tree from the parent relation, name the singleton clades
   after their tip, and re-index the nodes in pre-order so the root is 1.

Concurrency
-----------
Counting is independent per tree.  With ``n_workers > 1`` the trees are
split into contiguous chunks, each chunk is counted into its own
``Counter`` on a thread pool, and partial counters are merged into the
result under a lock.  Steps 2-4 are sequential.
"""

import logging
import math
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, FrozenSet, List, Sequence, Tuple

import numpy as np

from chronoclade._exceptions import DisconnectedTopologyError, InvalidThresholdError
from chronoclade._logging import (
    compute_tree_tip_sets,
    log_consensus_statistics,
    log_counting_progress,
    log_tip_set_mismatch,
)
from chronoclade._subtree import descendant_names, get_ages
from chronoclade._traversal import preorder
from chronoclade._tree import ChronoTree, CladoTree
from chronoclade._utils import chunked

logger = logging.getLogger(__name__)

SUPPORT_TRAIT = "support"


# ======================================================================== #
# Counting                                                                  #
# ======================================================================== #


def _clades_of(tree) -> set:
    """Distinct clades of *tree*; a unary chain contributes its clade once."""
    return {frozenset(names) for names in descendant_names(tree)[1:]}


def count_clades(trees: Sequence, n_workers: int = 1, every: int = 0) -> Counter:
    """
    Count, for every clade seen at least once, the number of trees that
    contain it.

    Parameters
    ----------
    trees     : sequence of CladoTree | ChronoTree
    n_workers : int   Threads used for counting (1 = run inline).
    every     : int   Log progress every *every* trees (0 = silent).

    Returns
    -------
    collections.Counter keyed by ``frozenset`` of tip names.
    """
    trees = list(trees)
    n_trees = len(trees)
    counter: Counter = Counter()

    if n_workers <= 1 or n_trees < 2:
        for k, tree in enumerate(trees, 1):
            counter.update(_clades_of(tree))
            log_counting_progress(k, n_trees, every)
        return counter

    lock = threading.Lock()
    n_done = 0

    def count_chunk(chunk):
        nonlocal n_done
        partial: Counter = Counter()
        for tree in chunk:
            partial.update(_clades_of(tree))
            with lock:
                n_done += 1
                log_counting_progress(n_done, n_trees, every)
        with lock:
            counter.update(partial)

    chunks = chunked(trees, n_workers)
    logger.debug("Counting clades of %d trees on %d threads", n_trees, len(chunks))
    with ThreadPoolExecutor(max_workers=n_workers) as pool:
        # list() re-raises any worker exception here
        list(pool.map(count_chunk, chunks))
    return counter


def count_clade_ages(trees: Sequence[ChronoTree], every: int = 0) -> Dict[FrozenSet[str], List[float]]:
    """
    Collect, for every clade, the ages (time before present) of the nodes
    defining it across all *trees*.

    Ages come from ``get_ages`` with its default ultrametric tolerance.
    """
    trees = list(trees)
    ages_by_clade: Dict[FrozenSet[str], List[float]] = {}
    for k, tree in enumerate(trees, 1):
        if not isinstance(tree, ChronoTree):
            raise TypeError(
                f"count_clade_ages needs ChronoTree inputs, got {type(tree).__name__}"
            )
        ages = get_ages(tree)
        for i, names in enumerate(descendant_names(tree)):
            if i == 0:
                continue
            ages_by_clade.setdefault(frozenset(names), []).append(float(ages[i]))
        log_counting_progress(k, len(trees), every)
    return ages_by_clade


# ======================================================================== #
# Tree from a parent relation                                               #
# ======================================================================== #


def construct_tree(parents: Sequence[int]) -> Tuple[CladoTree, int]:
    """
    Build a cladogram from a parent relation.

    Parameters
    ----------
    parents : sequence of int
        ``parents[k]`` is the 1-based parent index of node ``k + 1``, or 0
        for the root.

    Returns
    -------
    (CladoTree, int)
        The tree (node ``k + 1`` keeps index ``k + 1``; children are linked
        in increasing index order) and the index of its root.

    Raises
    ------
    DisconnectedTopologyError   unless exactly one node has no parent.
    """
    m = len(parents)
    roots = [k + 1 for k in range(m) if parents[k] == 0]
    if len(roots) != 1:
        raise DisconnectedTopologyError(
            f"The graph has {len(roots)} root(s) and thus is not a rooted tree."
        )

    tree = CladoTree()
    for k in range(m):
        tree._append(parent=int(parents[k]))

    child = tree.child
    sibling = tree.sibling
    last_child = np.zeros(m + 1, dtype=np.int32)
    for i in range(1, m + 1):
        p = int(parents[i - 1])
        if p == 0:
            continue
        if child[p] == 0:
            child[p] = i
        else:
            sibling[last_child[p]] = i
        last_child[p] = i
    return tree, roots[0]


def _reindex_preorder(tree: CladoTree, root: int) -> CladoTree:
    """Copy *tree* with node indices renumbered in pre-order from *root*."""
    new_to_old = preorder(tree, root)
    old_to_new = np.zeros(len(tree) + 1, dtype=np.int32)
    old_to_new[new_to_old] = np.arange(1, new_to_old.shape[0] + 1, dtype=np.int32)

    out = CladoTree()
    names = tree.names
    for old in new_to_old:
        out._append(
            names[old],
            old_to_new[tree.parent[old]],
            old_to_new[tree.sibling[old]],
            old_to_new[tree.child[old]],
        )
    for trait in tree.traits:
        out.declare_trait(trait)
        for old, value in tree.trait_values(trait).items():
            out.set_trait(int(old_to_new[old]), trait, value)
    return out


# ======================================================================== #
# Consensus                                                                 #
# ======================================================================== #


def consensus(trees: Sequence, threshold: float = 0.5, n_workers: int = 1,
              every: int = 0) -> CladoTree:
    """
    Summarize *trees* into one cladogram holding every clade found in at
    least a fraction *threshold* of them.

    Parameters
    ----------
    trees     : sequence of CladoTree, or sequence of ChronoTree
        All of one type; downcast mixed inputs with ``CladoTree.from_chrono``.
    threshold : float in [0.5, 1.0]
        Minimum support.  Exactly 0.5 is nudged up by one ulp so that a
        clade needs a strict majority.
    n_workers : int   Threads used to count clades.
    every     : int   Log counting progress every *every* trees.

    Returns
    -------
    CladoTree in pre-order indexing.  Every node carries a ``"support"``
    trait: the fraction of input trees containing its clade.

    Raises
    ------
    ValueError                 if *trees* is empty.
    TypeError                  if CladoTree and ChronoTree inputs are mixed.
    InvalidThresholdError      if *threshold* is outside [0.5, 1.0].
    DisconnectedTopologyError  if the kept clades have several maximal sets
                               (e.g. the trees do not share all tips).

    Examples
    --------
    >>> trees = [parse(s) for s in ("((A,B),(C,D));", "((A,B),C,D);", "((A,C),(B,D));")]
    >>> serialize(consensus(trees))
    '(C,D,(A,B));'
    """
    trees = list(trees)
    if not trees:
        raise ValueError("consensus needs at least one tree.")
    if not 0.5 <= threshold <= 1.0:
        raise InvalidThresholdError(
            f"The argument `threshold` has to be in [0.5, 1.0], got {threshold}."
        )
    kinds = {type(tree) for tree in trees}
    if len(kinds) > 1:
        raise TypeError(
            "consensus needs trees of one type; convert ChronoTree inputs "
            "with CladoTree.from_chrono first."
        )

    if threshold == 0.5:
        threshold = float(np.nextafter(0.5, 1.0))
    n_trees = len(trees)
    n_required = math.ceil(threshold * n_trees)

    log_tip_set_mismatch(compute_tree_tip_sets(trees))
    counter = count_clades(trees, n_workers=n_workers, every=every)

    clades = [clade for clade, k in counter.items() if k >= n_required]
    clades.sort(key=lambda clade: (len(clade), sorted(clade)))
    log_consensus_statistics(n_trees, len(counter), len(clades), threshold, n_required)

    m = len(clades)
    sizes = [len(clade) for clade in clades]
    parents = [0] * m
    for i in range(m - 1):
        for j in range(i + 1, m):
            if sizes[j] == sizes[i]:
                continue
            if clades[i] < clades[j]:
                parents[i] = j + 1
                break

    tree, root = construct_tree(parents)
    for i, clade in enumerate(clades, 1):
        if len(clade) == 1:
            tree.set_name(i, next(iter(clade)))
        tree.set_trait(i, SUPPORT_TRAIT, counter[clade] / n_trees)

    return _reindex_preorder(tree, root)
