"""
_tree.py
========
Arena-based rooted trees.

A tree is a dense, 1-indexed set of parallel numpy arrays plus a list of
names.  Slot 0 of every array is a sentinel meaning "absent"; the root, when
present, is always node 1.

Public API
----------
  CladoTree()
      Empty cladogram (topology only).

  ChronoTree()
      Empty chronogram.  Composes a ``CladoTree`` (``.topology``) and adds
      the ``t_root`` / ``t_branch`` float64 arrays.

  .push(node) -> int
  tree[i], tree[i] = node, len(tree), iter(tree)
  .set_name(i, name), .name(i)
  .declare_trait(name), .set_trait(i, name, value), .get_trait(i, name)
  .has_trait(name[, i]), .trait_values(name), .traits
  .empty(), .copy()
  .calibrate_t_root(), .calibrate_t_branch()      [ChronoTree]

Arrays: tree structure
----------------------
parent   : int32  [n + 1]   Parent index; 0 for the root.
sibling  : int32  [n + 1]   Next sibling; 0 for the last child.
child    : int32  [n + 1]   First child; 0 for a tip.
t_root   : float64[n + 1]   Time from the root (ChronoTree only).
t_branch : float64[n + 1]   Length of the branch to the parent (ChronoTree).

The array properties return views sized ``n + 1``; storage grows by
capacity doubling so ``push`` is amortised O(1) and never copies the arena
per node.

Thread safety
-------------
Trees are not locked.  Any number of readers may share an unmodified tree;
writers must be serialised by the caller.
"""

from typing import Any, Dict, Protocol, Set
import numpy as np

from chronoclade._exceptions import MissingTraitError, NodeIndexError
from chronoclade._kernels import _calibrate_t_root_kernel, _preorder_kernel
from chronoclade._node import TIME_ATOL, TIME_RTOL, ChronoNode, CladoNode

_INITIAL_CAPACITY = 16


class Topology(Protocol):
    """
    The capability every traversal and selection routine relies on.

    Both ``CladoTree`` and ``ChronoTree`` satisfy it; algorithms are written
    against these members only.
    """

    parent: np.ndarray
    sibling: np.ndarray
    child: np.ndarray
    names: list

    def __len__(self) -> int: ...


def _times_close(a: np.ndarray, b: np.ndarray) -> bool:
    """Element-wise ``math.isclose`` with the node tolerances; symmetric in a, b."""
    scale = np.maximum(np.abs(a), np.abs(b))
    return bool(np.all(np.abs(a - b) <= np.maximum(TIME_RTOL * scale, TIME_ATOL)))


def _grow(array: np.ndarray, capacity: int) -> np.ndarray:
    out = np.zeros(capacity + 1, dtype=array.dtype)
    out[: array.shape[0]] = array
    return out


class _TraitStore:
    """
    Per-tree side table mapping (node index, trait name) to any value.

    A trait name must be declared on the tree before any node can report it;
    ``set`` declares implicitly.
    """

    __slots__ = ("declared", "values")

    def __init__(self) -> None:
        self.declared: Set[str] = set()
        self.values: Dict[tuple, Any] = {}

    def copy(self) -> "_TraitStore":
        out = _TraitStore()
        out.declared = set(self.declared)
        out.values = dict(self.values)
        return out

    def get(self, i: int, name: str) -> Any:
        if name not in self.declared:
            raise MissingTraitError(f"Trait '{name}' is not declared on this tree.")
        try:
            return self.values[(i, name)]
        except KeyError:
            raise MissingTraitError(
                f"Trait '{name}' is not set on node {i}."
            ) from None

    def column(self, name: str) -> Dict[int, Any]:
        if name not in self.declared:
            raise MissingTraitError(f"Trait '{name}' is not declared on this tree.")
        return {i: v for (i, key), v in self.values.items() if key == name}


class CladoTree:
    """
    A rooted cladogram stored as a left-child/right-sibling arena.

    Attributes
    ----------
    parent, sibling, child : int32 views of length ``len(self) + 1``.
    names                  : list[str] of length ``len(self) + 1``;
                             ``names[0]`` is an unused placeholder.
    traits                 : set of declared trait names.

    Examples
    --------
    >>> tree = CladoTree()
    >>> tree.push(CladoNode(name="root"))
    1
    >>> tree.push(CladoNode(name="A", parent=1))
    2
    >>> tree.link_child(1, 2)
    >>> tree[1]
    CladoNode(name='root', parent=0, sibling=0, child=2)
    """

    node_type = CladoNode

    def __init__(self) -> None:
        self._n = 0
        self._parent = np.zeros(_INITIAL_CAPACITY + 1, dtype=np.int32)
        self._sibling = np.zeros(_INITIAL_CAPACITY + 1, dtype=np.int32)
        self._child = np.zeros(_INITIAL_CAPACITY + 1, dtype=np.int32)
        self._names = [""]
        self._traits = _TraitStore()

    @classmethod
    def from_chrono(cls, tree: "ChronoTree") -> "CladoTree":
        """Return the topology of *tree* as an independent ``CladoTree``."""
        return tree.topology.copy()

    # ================================================================== #
    # Arena                                                                #
    # ================================================================== #

    @property
    def capacity(self) -> int:
        return self._parent.shape[0] - 1

    def _reserve(self, n: int) -> None:
        if n <= self.capacity:
            return
        capacity = self.capacity
        while capacity < n:
            capacity *= 2
        self._parent = _grow(self._parent, capacity)
        self._sibling = _grow(self._sibling, capacity)
        self._child = _grow(self._child, capacity)

    def _append(self, name: str = "", parent: int = 0, sibling: int = 0,
                child: int = 0) -> int:
        self._reserve(self._n + 1)
        self._n += 1
        i = self._n
        self._parent[i] = parent
        self._sibling[i] = sibling
        self._child[i] = child
        self._names.append(name)
        return i

    def push(self, node: CladoNode) -> int:
        """Append *node* and return its 1-based index."""
        if not isinstance(node, CladoNode):
            raise TypeError(
                f"CladoTree stores CladoNode, got {type(node).__name__}"
            )
        return self._append(node.name, node.parent, node.sibling, node.child)

    def _check_index(self, i) -> int:
        if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
            raise TypeError(f"Node index must be an integer, got {type(i).__name__}")
        i = int(i)
        if i < 1 or i > self._n:
            raise NodeIndexError(i, self._n)
        return i

    def __len__(self) -> int:
        return self._n

    def __getitem__(self, i) -> CladoNode:
        i = self._check_index(i)
        return CladoNode(
            self._names[i],
            self._parent[i],
            self._sibling[i],
            self._child[i],
        )

    def __setitem__(self, i, node: CladoNode) -> None:
        i = self._check_index(i)
        if not isinstance(node, CladoNode):
            raise TypeError(
                f"CladoTree stores CladoNode, got {type(node).__name__}"
            )
        self._names[i] = node.name
        self._parent[i] = node.parent
        self._sibling[i] = node.sibling
        self._child[i] = node.child

    def __iter__(self):
        for i in range(1, self._n + 1):
            yield self[i]

    def indices(self) -> range:
        return range(1, self._n + 1)

    @property
    def parent(self) -> np.ndarray:
        return self._parent[: self._n + 1]

    @property
    def sibling(self) -> np.ndarray:
        return self._sibling[: self._n + 1]

    @property
    def child(self) -> np.ndarray:
        return self._child[: self._n + 1]

    @property
    def names(self) -> list:
        return self._names

    def name(self, i) -> str:
        return self._names[self._check_index(i)]

    def set_name(self, i, name: str) -> None:
        self._names[self._check_index(i)] = name

    def link_child(self, p: int, i: int, last: int = 0) -> None:
        """
        Attach node *i* as the last child of *p*.

        *last* is the current last child of *p* if the caller tracks it (0
        means "unknown or none"); without it the sibling chain is walked.
        """
        p = self._check_index(p)
        i = self._check_index(i)
        self._parent[i] = p
        self._sibling[i] = 0
        if self._child[p] == 0:
            self._child[p] = i
            return
        if last == 0:
            last = int(self._child[p])
            while self._sibling[last] != 0:
                last = int(self._sibling[last])
        self._sibling[last] = i

    # ================================================================== #
    # Traits                                                               #
    # ================================================================== #

    @property
    def traits(self) -> Set[str]:
        return set(self._traits.declared)

    def declare_trait(self, name: str) -> None:
        self._traits.declared.add(name)

    def set_trait(self, i, name: str, value: Any) -> Any:
        i = self._check_index(i)
        self._traits.declared.add(name)
        self._traits.values[(i, name)] = value
        return value

    def get_trait(self, i, name: str) -> Any:
        return self._traits.get(self._check_index(i), name)

    def has_trait(self, name: str, i=None) -> bool:
        if name not in self._traits.declared:
            return False
        if i is None:
            return True
        return (self._check_index(i), name) in self._traits.values

    def trait_values(self, name: str) -> Dict[int, Any]:
        return self._traits.column(name)

    # ================================================================== #
    # Whole-tree helpers                                                   #
    # ================================================================== #

    def empty(self) -> "CladoTree":
        return type(self)()

    def copy(self) -> "CladoTree":
        out = type(self)()
        out._reserve(self._n)
        out._n = self._n
        out._parent[: self._n + 1] = self.parent
        out._sibling[: self._n + 1] = self.sibling
        out._child[: self._n + 1] = self.child
        out._names = list(self._names)
        out._traits = self._traits.copy()
        return out

    def calibrate_t_root(self) -> "CladoTree":
        return self

    def calibrate_t_branch(self) -> "CladoTree":
        return self

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (
            self._n == other._n
            and self._names == other._names
            and np.array_equal(self.parent, other.parent)
            and np.array_equal(self.sibling, other.sibling)
            and np.array_equal(self.child, other.child)
        )

    def __repr__(self) -> str:
        return f"CladoTree(n_nodes={self._n})"


class ChronoTree:
    """
    A rooted chronogram: a ``CladoTree`` topology plus node times.

    The topology arrays, names and traits live on ``self.topology``; this
    class forwards them and owns only the two float64 time arrays, which
    are kept at the same capacity as the topology arrays.
    """

    node_type = ChronoNode

    def __init__(self) -> None:
        self.topology = CladoTree()
        self._t_root = np.zeros(self.topology.capacity + 1, dtype=np.float64)
        self._t_branch = np.zeros(self.topology.capacity + 1, dtype=np.float64)

    # ================================================================== #
    # Arena                                                                #
    # ================================================================== #

    def _sync_capacity(self) -> None:
        capacity = self.topology.capacity
        if self._t_root.shape[0] - 1 < capacity:
            self._t_root = _grow(self._t_root, capacity)
            self._t_branch = _grow(self._t_branch, capacity)

    def _append(self, name: str = "", parent: int = 0, sibling: int = 0,
                child: int = 0, t_root: float = 0.0,
                t_branch: float = 0.0) -> int:
        i = self.topology._append(name, parent, sibling, child)
        self._sync_capacity()
        self._t_root[i] = t_root
        self._t_branch[i] = t_branch
        return i

    def push(self, node: ChronoNode) -> int:
        """Append *node* and return its 1-based index."""
        if not isinstance(node, ChronoNode):
            raise TypeError(
                f"ChronoTree stores ChronoNode, got {type(node).__name__}"
            )
        return self._append(node.name, node.parent, node.sibling, node.child,
                            node.t_root, node.t_branch)

    def __len__(self) -> int:
        return len(self.topology)

    def __getitem__(self, i) -> ChronoNode:
        i = self.topology._check_index(i)
        topo = self.topology[i]
        return ChronoNode(topo.name, topo.parent, topo.sibling, topo.child,
                          self._t_root[i], self._t_branch[i])

    def __setitem__(self, i, node: ChronoNode) -> None:
        i = self.topology._check_index(i)
        if not isinstance(node, ChronoNode):
            raise TypeError(
                f"ChronoTree stores ChronoNode, got {type(node).__name__}"
            )
        self.topology[i] = node.topology
        self._t_root[i] = node.t_root
        self._t_branch[i] = node.t_branch

    def __iter__(self):
        for i in range(1, len(self) + 1):
            yield self[i]

    def indices(self) -> range:
        return self.topology.indices()

    @property
    def parent(self) -> np.ndarray:
        return self.topology.parent

    @property
    def sibling(self) -> np.ndarray:
        return self.topology.sibling

    @property
    def child(self) -> np.ndarray:
        return self.topology.child

    @property
    def names(self) -> list:
        return self.topology.names

    @property
    def t_root(self) -> np.ndarray:
        return self._t_root[: len(self) + 1]

    @property
    def t_branch(self) -> np.ndarray:
        return self._t_branch[: len(self) + 1]

    def name(self, i) -> str:
        return self.topology.name(i)

    def set_name(self, i, name: str) -> None:
        self.topology.set_name(i, name)

    def link_child(self, p: int, i: int, last: int = 0) -> None:
        self.topology.link_child(p, i, last)

    # ================================================================== #
    # Traits                                                               #
    # ================================================================== #

    @property
    def traits(self) -> Set[str]:
        return self.topology.traits

    def declare_trait(self, name: str) -> None:
        self.topology.declare_trait(name)

    def set_trait(self, i, name: str, value: Any) -> Any:
        return self.topology.set_trait(i, name, value)

    def get_trait(self, i, name: str) -> Any:
        return self.topology.get_trait(i, name)

    def has_trait(self, name: str, i=None) -> bool:
        return self.topology.has_trait(name, i)

    def trait_values(self, name: str) -> Dict[int, Any]:
        return self.topology.trait_values(name)

    # ================================================================== #
    # Whole-tree helpers                                                   #
    # ================================================================== #

    def empty(self) -> "ChronoTree":
        return type(self)()

    def copy(self) -> "ChronoTree":
        out = type(self)()
        out.topology = self.topology.copy()
        out._sync_capacity()
        out._t_root[: len(self) + 1] = self.t_root
        out._t_branch[: len(self) + 1] = self.t_branch
        return out

    def calibrate_t_root(self) -> "ChronoTree":
        """
        Recompute every ``t_root`` from the branch lengths, root fixed at 0.
        """
        n = len(self)
        if n == 0:
            return self
        order = np.empty(n, dtype=np.int32)
        k = _preorder_kernel(self.child, self.sibling, 1, order)
        _calibrate_t_root_kernel(order[:k], self.parent, self._t_branch,
                                 self._t_root)
        return self

    def calibrate_t_branch(self) -> "ChronoTree":
        """
        Shift all times so the root sits at 0, then recompute each non-root
        ``t_branch`` as the time difference to its parent.  The root's own
        branch length is cleared.
        """
        n = len(self)
        if n == 0:
            return self
        t_root = self.t_root
        t_root[1:] -= t_root[1]
        self._t_branch[1] = 0.0
        if n > 1:
            parent = self.parent
            self._t_branch[2 : n + 1] = t_root[2:] - t_root[parent[2:]]
        return self

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (
            self.topology == other.topology
            and _times_close(self.t_root, other.t_root)
            and _times_close(self.t_branch, other.t_branch)
        )

    def __repr__(self) -> str:
        return f"ChronoTree(n_nodes={len(self)})"
