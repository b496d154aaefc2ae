"""
_subtree.py
===========
Tip-set algorithms: selection counts, MRCA, subtree extraction, monophyly,
temporal sections, ages and renaming.

Selection counts
----------------
Most queries here start from one post-order pass over the tree
(``selection_counts``).  A selected tip seeds 2; every node whose count is
at least 1 passes 1 to its parent.  After the pass:

  count >= 2   selected tip, or a node where two or more selected lineages
               meet (the MRCA and the branching points below it)
  count == 1   on the path from a selected tip up to its next meeting
               point, or above the MRCA
  count == 0   unrelated to the selection

For ``(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;`` and the tip set {A, C}:

  node    F  A  B  E  C  D
  count   2  2  0  1  2  0

so the MRCA is F, the simplified subtree keeps {F, A, C} and the
unsimplified one keeps {F, A, E, C}.
"""

from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from chronoclade._exceptions import EmptyTreeError, NotUltrametricError, UnknownLabelError
from chronoclade._kernels import _selection_counts_kernel
from chronoclade._traversal import descendant_tips, postorder, preorder, tips
from chronoclade._tree import ChronoTree

_KEEP_OPTIONS = ("both", "parent", "child")


def _require_chrono(tree, operation: str) -> None:
    if not isinstance(tree, ChronoTree):
        raise TypeError(
            f"{operation} needs a ChronoTree, got {type(tree).__name__}"
        )


# ======================================================================== #
# Selection counts and MRCA                                                 #
# ======================================================================== #


def selection_counts(tree, tipset: Iterable[str]) -> np.ndarray:
    """
    Return the spanning-path count of every node for the tips in *tipset*.

    Parameters
    ----------
    tree   : CladoTree | ChronoTree
    tipset : iterable of str   Tip names; internal node names are ignored.

    Returns
    -------
    int32 ndarray of length ``len(tree) + 1`` (slot 0 is always 0).
    """
    n = len(tree)
    counts = np.zeros(n + 1, dtype=np.int32)
    if n == 0:
        return counts
    tipset = set(tipset)
    seeded = np.fromiter((name in tipset for name in tree.names), dtype=np.bool_, count=n + 1)
    seeded[0] = False
    _selection_counts_kernel(postorder(tree), tree.parent, tree.child, seeded, counts)
    return counts


def get_mrca(tree, tipset: Iterable[str]) -> Optional[int]:
    """
    Return the index of the most recent common ancestor of *tipset*.

    The MRCA is the pre-order-first node with a selection count of at least
    2.  Returns ``None`` when *tipset* selects no tip of *tree*.

    Examples
    --------
    >>> tree = parse("(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;")
    >>> get_mrca(tree, ["C", "D"])
    4
    >>> get_mrca(tree, ["G"]) is None
    True
    """
    if len(tree) == 0:
        return None
    counts = selection_counts(tree, tipset)
    order = preorder(tree)
    hits = order[counts[order] >= 2]
    if hits.shape[0] == 0:
        return None
    return int(hits[0])


# ======================================================================== #
# Subtree extraction                                                        #
# ======================================================================== #


def subtree(tree, tipset: Iterable[str], simplify: bool = True,
            keep_root: bool = False):
    """
    Extract the subtree spanned by the tips in *tipset*.

    Parameters
    ----------
    tree      : CladoTree | ChronoTree
    tipset    : iterable of str
    simplify  : bool
        Drop internal nodes left with a single child, joining the child
        directly to its nearest kept ancestor (default True).  When False
        every node on a path between selected tips and the root is kept.
    keep_root : bool
        Force the original root into the subtree (default False, which
        yields the minimal spanning subtree).

    Returns
    -------
    A new tree of the same type.  Nodes keep their original relative
    order.  A kept node's branch length is the sum of the original branch
    lengths on the path up to its new parent, and ``t_root`` is recomputed
    from the new root at 0.  Traits of kept nodes are copied.
    An empty selection gives an empty tree.

    Examples
    --------
    >>> tree = parse("(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;")
    >>> serialize(subtree(tree, {"A", "C"}))
    '(A:0.1,C:0.8)F;'
    """
    n = len(tree)
    newtree = tree.empty()
    if n == 0:
        return newtree

    counts = selection_counts(tree, tipset)
    if keep_root:
        counts[1] = 2
    selected = counts >= (2 if simplify else 1)
    selected[0] = False

    order = preorder(tree)
    old_ids = order[selected[order]]
    m = old_ids.shape[0]
    old_to_new = np.zeros(n + 1, dtype=np.int32)
    old_to_new[old_ids] = np.arange(1, m + 1, dtype=np.int32)

    chrono = isinstance(tree, ChronoTree)
    parent = tree.parent
    names = tree.names
    last_child = np.zeros(m + 1, dtype=np.int32)

    for old in old_ids:
        p = int(parent[old])
        length = float(tree.t_branch[old]) if chrono else 0.0
        while p != 0 and not selected[p]:
            if chrono:
                length += float(tree.t_branch[p])
            p = int(parent[p])
        new_parent = int(old_to_new[p])

        if chrono:
            i = newtree._append(names[old], new_parent,
                                t_branch=length if new_parent else 0.0)
        else:
            i = newtree._append(names[old], new_parent)

        if new_parent == 0:
            continue
        if newtree.child[new_parent] == 0:
            newtree.child[new_parent] = i
        else:
            newtree.sibling[last_child[new_parent]] = i
        last_child[new_parent] = i

    for trait in tree.traits:
        newtree.declare_trait(trait)
        for old, value in tree.trait_values(trait).items():
            if selected[old]:
                newtree.set_trait(int(old_to_new[old]), trait, value)

    return newtree.calibrate_t_root()


# ======================================================================== #
# Descendants and monophyly                                                 #
# ======================================================================== #


def descendant_names(tree, i: Optional[int] = None):
    """
    Names of the tips descending from node *i*, in pre-order.

    With no index, return one list per node (``out[0]`` is an empty
    placeholder), built in a single post-order pass: each node's list is its
    own name if it is a tip, followed by its children's lists in order.
    """
    names = tree.names
    if i is not None:
        return [names[j] for j in descendant_tips(tree, i)]

    n = len(tree)
    out: List[List[str]] = [[] for _ in range(n + 1)]
    if n == 0:
        return out
    parent = tree.parent
    child = tree.child
    for j in postorder(tree):
        if child[j] == 0:
            out[j].append(names[j])
        p = parent[j]
        if p != 0:
            out[p].extend(out[j])
    return out


def is_monophyletic(tree, tipset: Iterable[str]) -> bool:
    """
    True if the tips below the MRCA of *tipset* are exactly *tipset*.

    False when *tipset* shares no tip with *tree*.
    """
    tipset = set(tipset)
    mrca = get_mrca(tree, tipset)
    if mrca is None:
        return False
    return set(descendant_names(tree, mrca)) == tipset


# ======================================================================== #
# Branch lengths and ages (ChronoTree)                                      #
# ======================================================================== #


def sum_of_branch_lengths(tree) -> float:
    _require_chrono(tree, "sum_of_branch_lengths")
    return float(np.sum(tree.t_branch[1:]))


def phylo_diversity(tree, tipset: Iterable[str], keep_root: bool = False) -> float:
    """
    Phylogenetic diversity of *tipset*: the total branch length of the
    simplified subtree spanning it (optionally anchored at the root).
    """
    _require_chrono(tree, "phylo_diversity")
    return sum_of_branch_lengths(subtree(tree, tipset, simplify=True, keep_root=keep_root))


def _tip_ages(tree, average: Callable, reltol: Optional[float]):
    if len(tree) == 0:
        raise EmptyTreeError("An empty tree has no tips and therefore no age.")
    ages = tree.t_root[tips(tree)]
    mean = float(average(ages))
    spread = float(np.max(np.abs(ages - mean)))
    if mean != 0.0:
        relerr = spread / abs(mean)
    else:
        relerr = 0.0 if spread == 0.0 else float("inf")
    if reltol is not None and relerr > reltol:
        raise NotUltrametricError(
            f"Ages of the tips have relative error {relerr}, considered different."
        )
    return mean, relerr


def get_age(tree, average: Callable = np.mean, return_relerr: bool = False,
            reltol: Optional[float] = 1e-8):
    """
    Return the age of the tree: the *average* time from the root to its tips.

    Parameters
    ----------
    average       : callable   Summary of tip times (default ``np.mean``).
    return_relerr : bool       Also return the largest relative deviation of
                               a tip time from the average.
    reltol        : float | None
        Tolerance on that deviation; ``None`` disables the check.

    Raises
    ------
    NotUltrametricError   if the tips disagree by more than *reltol*.
    EmptyTreeError        if the tree has no nodes.
    """
    _require_chrono(tree, "get_age")
    mean, relerr = _tip_ages(tree, average, reltol)
    return (mean, relerr) if return_relerr else mean


def get_ages(tree, average: Callable = np.mean,
             reltol: Optional[float] = 1e-8) -> np.ndarray:
    """
    Age of every node before the present (the tree age minus ``t_root``).

    Returns a float64 array of length ``len(tree) + 1``; slot 0 is unused.
    """
    _require_chrono(tree, "get_ages")
    mean, _ = _tip_ages(tree, average, reltol)
    ages = mean - tree.t_root
    ages[0] = np.nan
    return ages


# ======================================================================== #
# Temporal sections (ChronoTree)                                            #
# ======================================================================== #


def cut_from_root(tree, distance: float, keep: str = "both"):
    """
    Find the edges crossing the time slice *distance* units after the root.

    An edge (parent, child) crosses when
    ``t_root[parent] < distance <= t_root[child]``.

    Parameters
    ----------
    keep : {'both', 'parent', 'child'}
        'both' returns (parent, child) tuples, 'child' the child indices,
        'parent' the distinct parent indices in first-seen order.

    Examples
    --------
    >>> tree = parse("(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;")
    >>> cut_from_root(tree, 0.05)
    [(1, 2), (1, 3), (1, 4)]
    >>> cut_from_root(tree, 0.05, keep="parent")
    [1]
    """
    _require_chrono(tree, "cut_from_root")
    if keep not in _KEEP_OPTIONS:
        raise ValueError("The argument `keep` has to be 'both', 'parent', or 'child'.")

    parent = tree.parent
    t_root = tree.t_root
    children = np.flatnonzero(parent[1:] != 0) + 1
    parents = parent[children]
    crossing = (t_root[parents] < distance) & (distance <= t_root[children])
    pairs = [(int(p), int(c)) for p, c in zip(parents[crossing], children[crossing])]

    if keep == "parent":
        return list(dict.fromkeys(p for p, _ in pairs))
    if keep == "child":
        return [c for _, c in pairs]
    return pairs


def cut_from_tips(tree, distance: float, keep: str = "both",
                  reltol: Optional[float] = 1e-8):
    """
    Find the edges crossing the time slice *distance* units before the
    earliest tip, i.e. ``cut_from_root(tree, min_tip_time - distance)``.
    """
    _require_chrono(tree, "cut_from_tips")
    age = get_age(tree, average=np.min, reltol=reltol)
    return cut_from_root(tree, age - distance, keep=keep)


# ======================================================================== #
# Renaming                                                                  #
# ======================================================================== #


def rename_inplace(tree, mapping: Dict[str, str]):
    """
    Replace every non-empty node name of *tree* through *mapping*.

    Raises
    ------
    UnknownLabelError   if a name has no entry; the tree is left unchanged.
    """
    names = tree.names
    new_names = list(names)
    for i in range(1, len(tree) + 1):
        name = names[i]
        if not name:
            continue
        try:
            new_names[i] = mapping[name]
        except KeyError:
            raise UnknownLabelError(f"No mapping for node label {name!r}") from None
    names[:] = new_names
    return tree


def rename(tree, mapping: Dict[str, str]):
    """Return a renamed copy of *tree*; see ``rename_inplace``."""
    return rename_inplace(tree.copy(), mapping)
