"""
_kernels.py
===========
Numba-compiled array kernels shared by the traversal, calibration and
subtree modules.

This module contains ONLY numba-accelerated code and does not import other
project modules.  Every kernel takes plain numpy arrays and integers; the
tree classes extract their arrays and forward them here.

Array conventions
-----------------
All link arrays are 1-indexed with a sentinel slot 0 (``0`` = absent):

  parent  : int32[n + 1]
  sibling : int32[n + 1]
  child   : int32[n + 1]

Exported Functions
------------------
_preorder_kernel : njit function
    Iterative pre-order walk of a left-child/right-sibling encoded subtree.

_postorder_kernel : njit function
    Iterative post-order walk of the same encoding.

_selection_counts_kernel : njit function
    Spanning-path counts for a selected tip set (see ``selection_counts``).

_calibrate_t_root_kernel : njit function
    Accumulate times from the root along a pre-order sequence.

Notes
-----
- cache=True persists compiled binaries to disk for faster subsequent runs.
- No recursion: stack depth is bounded by the subtree size, not by the
  interpreter's recursion limit, so caterpillar trees of any depth are safe.
"""

import numpy as np
from numba import njit


# ======================================================================== #
# Traversal                                                                 #
# ======================================================================== #


@njit(cache=True)
def _preorder_kernel(child, sibling, start, out):
    """
    Write the pre-order sequence of the subtree rooted at *start* into *out*.

    Siblings of *start* itself are never visited.  The child is pushed after
    its own next sibling so that it is popped first, which yields parents
    before descendants and left-to-right order among siblings.

    Parameters
    ----------
    child, sibling : int32[n + 1]
    start          : int     Subtree root (1-based).
    out            : int32[>= subtree size]   Output buffer.

    Returns
    -------
    int   Number of indices written.
    """
    stack = np.empty(out.shape[0] + 1, dtype=np.int32)
    top = 0
    k = 0
    out[k] = start
    k += 1
    c = child[start]
    if c != 0:
        stack[top] = c
        top += 1
    while top > 0:
        top -= 1
        i = stack[top]
        out[k] = i
        k += 1
        s = sibling[i]
        if s != 0:
            stack[top] = s
            top += 1
        c = child[i]
        if c != 0:
            stack[top] = c
            top += 1
    return k


@njit(cache=True)
def _postorder_kernel(child, sibling, start, out):
    """
    Write the post-order sequence of the subtree rooted at *start* into *out*.

    Runs a pre-order walk that visits children right-to-left, then reverses
    it in place: the reverse of (node, right subtree, ..., left subtree) is
    (left subtree, ..., right subtree, node).

    Returns
    -------
    int   Number of indices written.
    """
    stack = np.empty(out.shape[0] + 1, dtype=np.int32)
    top = 0
    k = 0
    stack[top] = start
    top += 1
    while top > 0:
        top -= 1
        i = stack[top]
        out[k] = i
        k += 1
        c = child[i]
        while c != 0:
            stack[top] = c
            top += 1
            c = sibling[c]
    lo = 0
    hi = k - 1
    while lo < hi:
        tmp = out[lo]
        out[lo] = out[hi]
        out[hi] = tmp
        lo += 1
        hi -= 1
    return k


# ======================================================================== #
# Subtree selection                                                         #
# ======================================================================== #


@njit(cache=True)
def _selection_counts_kernel(order, parent, child, seeded, counts):
    """
    Fill *counts* with spanning-path counts in one post-order pass.

    A tip flagged in *seeded* starts at 2; every node whose count reached 1
    adds 1 to its parent.  Afterwards a count >= 2 marks a selected tip or a
    node where at least two selected lineages meet.

    Parameters
    ----------
    order   : int32[m]       Post-order sequence (children before parents).
    parent  : int32[n + 1]
    child   : int32[n + 1]
    seeded  : bool[n + 1]    True for tips whose name is in the target set.
    counts  : int32[n + 1]   Output, zero-initialised by the caller.
    """
    for k in range(order.shape[0]):
        i = order[k]
        if child[i] == 0 and seeded[i]:
            counts[i] = 2
        if counts[i] >= 1:
            p = parent[i]
            if p != 0:
                counts[p] += 1


# ======================================================================== #
# Time calibration                                                          #
# ======================================================================== #


@njit(cache=True)
def _calibrate_t_root_kernel(order, parent, t_branch, t_root):
    """
    Set ``t_root[i] = t_root[parent[i]] + t_branch[i]`` along *order*.

    *order* must list every parent before its children (pre-order); its
    first element is the root, whose time is fixed at 0.0.
    """
    t_root[order[0]] = 0.0
    for k in range(1, order.shape[0]):
        i = order[k]
        t_root[i] = t_root[parent[i]] + t_branch[i]
