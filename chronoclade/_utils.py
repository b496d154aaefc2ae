"""
_utils.py
=========
General-purpose utility functions for chronoclade.

Small helpers with no dependency on the tree classes.
"""

from typing import List, Sequence, Set, TypeVar


T = TypeVar('T')


def jaccard_similarity(set_a: Set[T], set_b: Set[T]) -> float:
    """
    |A & B| / |A | B|, or 0.0 when both sets are empty.

    Used to report how far a tree's tip set is from the union of all tip
    sets in a consensus run.

    >>> jaccard_similarity({'A', 'B', 'C'}, {'A', 'B', 'C', 'D'})
    0.75
    """
    intersection = len(set_a & set_b)
    union = len(set_a | set_b)
    return intersection / union if union > 0 else 0.0


def chunked(items: Sequence[T], n_chunks: int) -> List[Sequence[T]]:
    """
    Split *items* into at most *n_chunks* contiguous, nearly equal slices.

    Empty slices are never returned.

    Examples
    --------
    >>> chunked([1, 2, 3, 4, 5], 2)
    [[1, 2, 3], [4, 5]]

    >>> chunked([1, 2], 5)
    [[1], [2]]
    """
    if n_chunks < 1:
        raise ValueError(f"n_chunks must be positive, got {n_chunks}")
    n = len(items)
    n_chunks = min(n_chunks, n)
    if n_chunks == 0:
        return []
    size, extra = divmod(n, n_chunks)
    out = []
    start = 0
    for k in range(n_chunks):
        stop = start + size + (1 if k < extra else 0)
        out.append(items[start:stop])
        start = stop
    return out
