"""
_exceptions.py
==============
Exception hierarchy for chronoclade.

Every error derives from ``ChronocladeError`` and from the builtin exception
a caller would naturally catch for the same condition (``ValueError`` for
bad input, ``KeyError`` for lookup misses, ``IndexError`` for node indices),
so ``except ValueError`` keeps working for code that does not know about
this package.
"""


class ChronocladeError(Exception):
    """
    Base class for all chronoclade errors.
    """
    pass


class MalformedInputError(ChronocladeError, ValueError):
    """
    Raised when a Newick string is syntactically invalid: missing terminal
    semicolon, unbalanced parentheses or brackets, unreadable branch length.
    """
    pass


class InconsistentBranchLengthsError(MalformedInputError):
    """
    Raised when branch lengths appear on some but not all non-root nodes.
    """
    pass


class NodeIndexError(ChronocladeError, IndexError):
    """
    Raised when a node index is outside ``[1, len(tree)]``.
    """

    def __init__(self, index, length):
        self.index = index
        self.length = length
        super().__init__(
            f"Node index {index} out of range for tree with {length} node(s)."
        )


class MissingTraitError(ChronocladeError, KeyError):
    """
    Raised when a trait was never declared on a tree, or never set on a node.
    """
    pass


class UnknownLabelError(ChronocladeError, KeyError):
    """
    Raised by ``rename`` when a node label has no entry in the mapping.
    """
    pass


class InvalidThresholdError(ChronocladeError, ValueError):
    """
    Raised when a consensus support threshold lies outside [0.5, 1.0].
    """
    pass


class DisconnectedTopologyError(ChronocladeError, ValueError):
    """
    Raised when a parent relation has more than one root.
    """
    pass


class NotUltrametricError(ChronocladeError, ValueError):
    """
    Raised by age queries when tip ages disagree beyond the tolerance.
    """
    pass


class EmptyTreeError(ChronocladeError, ValueError):
    """
    Raised by queries that need at least one node, such as tree ages.
    """
    pass
