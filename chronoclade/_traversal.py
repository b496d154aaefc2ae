"""
_traversal.py
=============
Traversal engine and read-only node queries.

Every function here accepts any object with the ``Topology`` capability
(``parent``, ``sibling``, ``child`` arrays and ``names``), so ``CladoTree``
and ``ChronoTree`` share one implementation.

Walks are iterative (see ``_kernels``) and return fresh int32 arrays; they
never touch the tree, so concurrent readers of an unchanged tree are safe.
"""

from typing import List

import numpy as np

from chronoclade._exceptions import NodeIndexError
from chronoclade._kernels import _postorder_kernel, _preorder_kernel


def _check(tree, i) -> int:
    n = len(tree)
    if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
        raise TypeError(f"Node index must be an integer, got {type(i).__name__}")
    i = int(i)
    if i < 1 or i > n:
        raise NodeIndexError(i, n)
    return i


# ======================================================================== #
# Walks                                                                     #
# ======================================================================== #


def preorder(tree, start: int = 1) -> np.ndarray:
    """
    Return the pre-order sequence of the subtree rooted at *start*.

    Parents come before their descendants and siblings are visited left to
    right.  Siblings of *start* are not part of its subtree.

    Examples
    --------
    >>> tree = parse("(A,B,(C,D)E)F;")
    >>> preorder(tree).tolist()
    [1, 2, 3, 4, 5, 6]
    >>> preorder(tree, 4).tolist()
    [4, 5, 6]
    """
    start = _check(tree, start)
    out = np.empty(len(tree), dtype=np.int32)
    k = _preorder_kernel(tree.child, tree.sibling, start, out)
    return out[:k]


def postorder(tree, start: int = 1) -> np.ndarray:
    """
    Return the post-order sequence of the subtree rooted at *start*: every
    node appears after all of its descendants.

    Examples
    --------
    >>> postorder(parse("(A,B,(C,D)E)F;")).tolist()
    [2, 3, 5, 6, 4, 1]
    """
    start = _check(tree, start)
    out = np.empty(len(tree), dtype=np.int32)
    k = _postorder_kernel(tree.child, tree.sibling, start, out)
    return out[:k]


# ======================================================================== #
# Node queries                                                              #
# ======================================================================== #


def is_tip(tree, i: int) -> bool:
    return tree.child[_check(tree, i)] == 0


def is_root(tree, i: int) -> bool:
    return tree.parent[_check(tree, i)] == 0


def has_next_sibling(tree, i: int) -> bool:
    return tree.sibling[_check(tree, i)] != 0


def children_of(tree, i: int) -> List[int]:
    """Indices of the children of *i*, left to right."""
    c = int(tree.child[_check(tree, i)])
    sibling = tree.sibling
    out = []
    while c != 0:
        out.append(c)
        c = int(sibling[c])
    return out


# ======================================================================== #
# Tips                                                                      #
# ======================================================================== #


def tips(tree) -> np.ndarray:
    """Indices of all tips, in index order."""
    return (np.flatnonzero(tree.child[1:] == 0) + 1).astype(np.int32)


def tip_names(tree) -> List[str]:
    names = tree.names
    return [names[i] for i in tips(tree)]


def all_distinct(tree) -> bool:
    """True if no two tips share a name."""
    names = tip_names(tree)
    return len(set(names)) == len(names)


def is_binary(tree) -> bool:
    """True if every internal node has exactly two children."""
    n = len(tree)
    if n == 0:
        return True
    n_children = np.bincount(tree.parent[2:], minlength=n + 1)
    internal = tree.child[1:] != 0
    return bool(np.all(n_children[1:][internal] == 2))


def descendant_tips(tree, i: int) -> np.ndarray:
    """Indices of the tips below *i* (``i`` itself if it is a tip)."""
    order = preorder(tree, i)
    return order[tree.child[order] == 0]
