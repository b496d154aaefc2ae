"""
chronoclade
===========

Rooted phylogenetic trees, undated (cladograms) and time-calibrated
(chronograms), stored as flat numpy arenas.

Main Classes
------------
CladoTree : Topology-only tree (left-child/right-sibling arena)
ChronoTree : CladoTree topology plus node times
CladoNode, ChronoNode : Node snapshots read from and written to a tree

NEWICK
------
parse, serialize, read_newick, write_newick, tokenize, remove_comments

Traversal
---------
preorder, postorder, children_of, is_tip, is_root, has_next_sibling,
tips, tip_names, all_distinct, is_binary, descendant_tips

Tip-set algorithms
------------------
selection_counts, get_mrca, subtree, descendant_names, is_monophyletic,
cut_from_root, cut_from_tips, phylo_diversity, sum_of_branch_lengths,
get_age, get_ages, rename, rename_inplace

Consensus
---------
consensus, count_clades, count_clade_ages, construct_tree

Context Managers
----------------
quiet : Suppress chronoclade logging
suppress_logger : Suppress a specific logger
suppress_warnings : Suppress specific warnings

Examples
--------
>>> from chronoclade import parse, serialize, get_mrca
>>> tree = parse("(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;")
>>> tree.names[1:]
['F', 'A', 'B', 'E', 'C', 'D']
>>> get_mrca(tree, {"C", "D"})
4
>>> serialize(tree)
'(A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;'
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Data model
from ._node import CladoNode, ChronoNode
from ._tree import CladoTree, ChronoTree, Topology

# Errors
from ._exceptions import (
    ChronocladeError,
    MalformedInputError,
    InconsistentBranchLengthsError,
    NodeIndexError,
    MissingTraitError,
    UnknownLabelError,
    InvalidThresholdError,
    DisconnectedTopologyError,
    NotUltrametricError,
    EmptyTreeError,
)

# NEWICK codec
from ._newick import (
    tokenize,
    remove_comments,
    parse,
    serialize,
    read_newick,
    write_newick,
)

# Traversal
from ._traversal import (
    preorder,
    postorder,
    children_of,
    is_tip,
    is_root,
    has_next_sibling,
    tips,
    tip_names,
    all_distinct,
    is_binary,
    descendant_tips,
)

# Tip-set algorithms
from ._subtree import (
    selection_counts,
    get_mrca,
    subtree,
    descendant_names,
    is_monophyletic,
    cut_from_root,
    cut_from_tips,
    phylo_diversity,
    sum_of_branch_lengths,
    get_age,
    get_ages,
    rename,
    rename_inplace,
)

from ._hashing import tree_hash, is_isomorphic

from ._consensus import consensus, count_clades, count_clade_ages, construct_tree

# Context managers
from ._context import suppress_logger, quiet, suppress_warnings

from ._logging import install_numba_warning_filter, log_numba_status

# Log numba status and route its performance warnings through our logger
log_numba_status()
install_numba_warning_filter()

# Public API
__all__ = [
    # Data model
    "CladoNode",
    "ChronoNode",
    "CladoTree",
    "ChronoTree",
    "Topology",
    # Errors
    "ChronocladeError",
    "MalformedInputError",
    "InconsistentBranchLengthsError",
    "NodeIndexError",
    "MissingTraitError",
    "UnknownLabelError",
    "InvalidThresholdError",
    "DisconnectedTopologyError",
    "NotUltrametricError",
    "EmptyTreeError",
    # NEWICK
    "tokenize",
    "remove_comments",
    "parse",
    "serialize",
    "read_newick",
    "write_newick",
    # Traversal
    "preorder",
    "postorder",
    "children_of",
    "is_tip",
    "is_root",
    "has_next_sibling",
    "tips",
    "tip_names",
    "all_distinct",
    "is_binary",
    "descendant_tips",
    # Tip-set algorithms
    "selection_counts",
    "get_mrca",
    "subtree",
    "descendant_names",
    "is_monophyletic",
    "cut_from_root",
    "cut_from_tips",
    "phylo_diversity",
    "sum_of_branch_lengths",
    "get_age",
    "get_ages",
    "rename",
    "rename_inplace",
    # Isomorphism
    "tree_hash",
    "is_isomorphic",
    # Consensus
    "consensus",
    "count_clades",
    "count_clade_ages",
    "construct_tree",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    # Version info
    "__version__",
]
