"""
_node.py
========
Node value types for the tree arena.

A node never owns other nodes; it only stores integer links into the arena
of the tree it belongs to.  Index 0 is the "absent" sentinel for every link:

  parent  : 0 for the root
  sibling : 0 for the last child of its parent
  child   : 0 for a tip

``CladoNode`` carries topology only.  ``ChronoNode`` wraps a ``CladoNode``
and adds the two timing fields of a chronogram:

  t_root   : time from the root (the root is at 0.0)
  t_branch : length of the branch leading to the node

Nodes returned by ``tree[i]`` are snapshots; writing them back with
``tree[i] = node`` is how a caller changes the arena through node objects.
"""

import math

# Tolerances used when comparing node times (``math.isclose`` semantics).
TIME_RTOL = 1e-9
TIME_ATOL = 1e-12


class CladoNode:
    """
    A topology-only node.

    Parameters
    ----------
    name    : str   Node label; may be empty.
    parent  : int   Parent index, 0 for the root.
    sibling : int   Next sibling index, 0 for the last sibling.
    child   : int   First child index, 0 for a tip.
    """

    __slots__ = ("name", "parent", "sibling", "child")

    def __init__(self, name: str = "", parent: int = 0, sibling: int = 0,
                 child: int = 0) -> None:
        self.name = name
        self.parent = int(parent)
        self.sibling = int(sibling)
        self.child = int(child)

    @classmethod
    def from_chrono(cls, node: "ChronoNode") -> "CladoNode":
        """Drop the timing fields of *node*."""
        return cls(node.name, node.parent, node.sibling, node.child)

    @property
    def is_tip(self) -> bool:
        return self.child == 0

    def __eq__(self, other) -> bool:
        if type(other) is not CladoNode:
            return NotImplemented
        return (
            self.name == other.name
            and self.parent == other.parent
            and self.sibling == other.sibling
            and self.child == other.child
        )

    def __repr__(self) -> str:
        return (
            f"CladoNode(name={self.name!r}, parent={self.parent}, "
            f"sibling={self.sibling}, child={self.child})"
        )


class ChronoNode:
    """
    A time-calibrated node: a ``CladoNode`` plus ``t_root`` and ``t_branch``.

    The topology fields are forwarded to ``self.topology`` so that code
    written against ``CladoNode`` attributes reads a ``ChronoNode`` unchanged.
    """

    __slots__ = ("topology", "t_root", "t_branch")

    def __init__(self, name: str = "", parent: int = 0, sibling: int = 0,
                 child: int = 0, t_root: float = 0.0,
                 t_branch: float = 0.0) -> None:
        self.topology = CladoNode(name, parent, sibling, child)
        self.t_root = float(t_root)
        self.t_branch = float(t_branch)

    # ---- forwarded topology fields ---- #

    @property
    def name(self) -> str:
        return self.topology.name

    @name.setter
    def name(self, value: str) -> None:
        self.topology.name = value

    @property
    def parent(self) -> int:
        return self.topology.parent

    @parent.setter
    def parent(self, value: int) -> None:
        self.topology.parent = int(value)

    @property
    def sibling(self) -> int:
        return self.topology.sibling

    @sibling.setter
    def sibling(self, value: int) -> None:
        self.topology.sibling = int(value)

    @property
    def child(self) -> int:
        return self.topology.child

    @child.setter
    def child(self, value: int) -> None:
        self.topology.child = int(value)

    @property
    def is_tip(self) -> bool:
        return self.topology.child == 0

    def __eq__(self, other) -> bool:
        if type(other) is not ChronoNode:
            return NotImplemented
        return (
            self.topology == other.topology
            and math.isclose(self.t_root, other.t_root,
                             rel_tol=TIME_RTOL, abs_tol=TIME_ATOL)
            and math.isclose(self.t_branch, other.t_branch,
                             rel_tol=TIME_RTOL, abs_tol=TIME_ATOL)
        )

    def __repr__(self) -> str:
        return (
            f"ChronoNode(name={self.name!r}, parent={self.parent}, "
            f"sibling={self.sibling}, child={self.child}, "
            f"t_root={self.t_root!r}, t_branch={self.t_branch!r})"
        )
