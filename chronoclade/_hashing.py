"""
_hashing.py
===========
Order-independent tree hashing and an isomorphism test built on it.

Each node starts at 1.  Walking in post-order, a node's accumulated value
(1 plus the sum of its children's values) is multiplied by the digest of its
label, and for a ``ChronoTree`` by the digest of its branch length too
(XOR-combined), then added to its parent.  Sums make the result independent
of child order, so two trees that differ only in the order of siblings
hash the same.  Arithmetic wraps at 64 bits.

Digests come from BLAKE2b, so hashes are stable across interpreter runs
(unlike the builtin ``hash`` of a ``str``).
"""

import hashlib

from chronoclade._traversal import postorder
from chronoclade._tree import ChronoTree

_MASK = (1 << 64) - 1


def _digest(value: str, seed: int) -> int:
    h = hashlib.blake2b(f"{seed}\x1f{value}".encode("utf-8"), digest_size=8)
    return int.from_bytes(h.digest(), "little")


def tree_hash(tree, seed: int = 0) -> int:
    """
    Return a 64-bit hash of *tree* that ignores sibling order.

    Parameters
    ----------
    seed : int   Mixed into every digest; equal seeds give comparable hashes.
    """
    n = len(tree)
    if n == 0:
        return 0
    chrono = isinstance(tree, ChronoTree)
    names = tree.names
    parent = tree.parent
    t_branch = tree.t_branch if chrono else None

    acc = [1] * (n + 1)
    for i in postorder(tree)[:-1]:
        weight = _digest(names[i], seed)
        if chrono:
            weight ^= _digest(repr(float(t_branch[i])), seed)
        acc[i] = (acc[i] * weight) & _MASK
        p = parent[i]
        acc[p] = (acc[p] + acc[i]) & _MASK
    return (acc[1] * _digest(names[1], seed)) & _MASK


def is_isomorphic(tree_a, tree_b) -> bool:
    """
    True if both trees have the same type and the same ``tree_hash``:
    identical up to the order of siblings and of the node indices.
    """
    if type(tree_a) is not type(tree_b):
        return False
    return tree_hash(tree_a) == tree_hash(tree_b)
