"""
tests/test_tree.py
==================
Pytest test suite for the arena tree classes and node snapshots.

Tree fixtures
-------------
  example.tree
      (A:0.1,B:0.2,(C:0.3,D:0.4)E:0.5)F;

      Node IDs (pre-order): F=1 A=2 B=3 E=4 C=5 D=6

      t_root: F=0.0 A=0.1 B=0.2 E=0.5 C=0.8 D=0.9

  cladogram.tree
      ((A,B)AB,(C,D)CD)root;

      Node IDs: root=1 AB=2 A=3 B=4 CD=5 C=6 D=7
"""

import os
import sys

import numpy as np
import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from chronoclade import (
    ChronoNode,
    ChronoTree,
    CladoNode,
    CladoTree,
    MissingTraitError,
    NodeIndexError,
    parse,
)


# ======================================================================== #
# Helper                                                                    #
# ======================================================================== #


def load_tree(filename: str):
    path = os.path.join(_TREES_DIR, filename)
    with open(path) as fh:
        newick = fh.read().strip()
    return parse(newick)


@pytest.fixture(scope="module")
def example():
    return load_tree("example.tree")


@pytest.fixture(scope="module")
def cladogram():
    return load_tree("cladogram.tree")


def build_cherry():
    """root -> (A, B) built node by node."""
    tree = CladoTree()
    tree.push(CladoNode(name="root"))
    tree.push(CladoNode(name="A", parent=1))
    tree.push(CladoNode(name="B", parent=1))
    tree.link_child(1, 2)
    tree.link_child(1, 3)
    return tree


# ======================================================================== #
# Node snapshots                                                            #
# ======================================================================== #


class TestNodes:

    def test_clado_defaults(self):
        node = CladoNode()
        assert node.name == ""
        assert (node.parent, node.sibling, node.child) == (0, 0, 0)
        assert node.is_tip

    def test_clado_repr(self):
        node = CladoNode(name="root", child=2)
        assert repr(node) == "CladoNode(name='root', parent=0, sibling=0, child=2)"

    def test_chrono_wraps_topology(self):
        node = ChronoNode("A", 1, 3, 0, t_root=0.1, t_branch=0.1)
        assert isinstance(node.topology, CladoNode)
        assert node.topology.name == "A"
        node.name = "Z"
        assert node.topology.name == "Z"
        assert node.parent == 1 and node.sibling == 3

    def test_chrono_equality_is_tolerant(self):
        a = ChronoNode("A", 1, 0, 0, t_root=0.3, t_branch=0.1 + 0.2)
        b = ChronoNode("A", 1, 0, 0, t_root=0.3, t_branch=0.3)
        assert a == b

    def test_clado_and_chrono_never_equal(self):
        assert CladoNode("A") != ChronoNode("A")

    def test_downcast(self):
        node = CladoNode.from_chrono(ChronoNode("A", 1, 0, 0, 0.5, 0.5))
        assert node == CladoNode("A", 1, 0, 0)


# ======================================================================== #
# Arena                                                                     #
# ======================================================================== #


class TestArena:

    def test_empty_tree(self):
        tree = CladoTree()
        assert len(tree) == 0
        assert list(tree) == []
        assert tree.parent.shape == (1,)

    def test_push_returns_index(self):
        tree = build_cherry()
        assert len(tree) == 3
        assert tree[1] == CladoNode("root", 0, 0, 2)
        assert tree[2] == CladoNode("A", 1, 3, 0)
        assert tree[3] == CladoNode("B", 1, 0, 0)

    def test_push_rejects_wrong_node_type(self):
        with pytest.raises(TypeError):
            CladoTree().push(ChronoNode("A"))
        with pytest.raises(TypeError):
            ChronoTree().push(CladoNode("A"))

    def test_growth_keeps_contents(self):
        tree = CladoTree()
        tree.push(CladoNode(name="root"))
        for k in range(100):
            i = tree.push(CladoNode(name=f"t{k}", parent=1))
            tree.link_child(1, i, last=i - 1 if k else 0)
        assert len(tree) == 101
        assert tree.capacity >= 101
        assert tree.names[2] == "t0" and tree.names[101] == "t99"
        assert np.all(tree.parent[2:] == 1)
        assert tree.child[1] == 2
        assert tree.sibling[101] == 0

    def test_chrono_growth_keeps_times(self):
        tree = ChronoTree()
        tree.push(ChronoNode("root"))
        for k in range(40):
            tree.push(ChronoNode(f"t{k}", 1, 0, 0, t_root=float(k), t_branch=float(k)))
        assert tree.t_root.shape == (42,)
        assert tree.t_root[41] == 39.0

    @pytest.mark.parametrize("bad", [0, -1, 4, 100])
    def test_index_out_of_range(self, bad):
        tree = build_cherry()
        with pytest.raises(NodeIndexError):
            tree[bad]

    def test_index_error_is_an_index_error(self):
        with pytest.raises(IndexError, match="out of range"):
            build_cherry()[7]

    @pytest.mark.parametrize("bad", [1.0, "1", True, None])
    def test_index_type(self, bad):
        with pytest.raises(TypeError):
            build_cherry()[bad]

    def test_numpy_index(self, example):
        assert example[np.int32(4)].name == "E"

    def test_setitem(self):
        tree = build_cherry()
        tree[2] = CladoNode("X", 1, 3, 0)
        assert tree.name(2) == "X"

    def test_chrono_setitem(self, example):
        tree = example.copy()
        tree[2] = ChronoNode("A2", 1, 3, 0, 0.15, 0.15)
        assert tree.names[2] == "A2"
        assert tree.t_branch[2] == 0.15
        assert example.names[2] == "A"

    def test_iteration_order(self, example):
        assert [node.name for node in example] == ["F", "A", "B", "E", "C", "D"]
        assert list(example.indices()) == [1, 2, 3, 4, 5, 6]

    def test_chrono_getitem(self, example):
        node = example[5]
        assert isinstance(node, ChronoNode)
        assert node.name == "C"
        assert node.parent == 4
        assert node.t_root == pytest.approx(0.8)
        assert node.t_branch == pytest.approx(0.3)

    def test_repr(self, example, cladogram):
        assert repr(example) == "ChronoTree(n_nodes=6)"
        assert repr(cladogram) == "CladoTree(n_nodes=7)"


# ======================================================================== #
# Copy, equality, downcast                                                  #
# ======================================================================== #


class TestCopyEquality:

    def test_copy_is_independent(self, cladogram):
        dup = cladogram.copy()
        assert dup == cladogram
        dup.set_name(1, "other")
        assert cladogram.name(1) == "root"
        assert dup != cladogram

    def test_chrono_copy_is_independent(self, example):
        dup = example.copy()
        dup.t_branch[2] = 9.0
        assert example.t_branch[2] == pytest.approx(0.1)

    def test_empty_keeps_type(self, example, cladogram):
        assert isinstance(example.empty(), ChronoTree)
        assert isinstance(cladogram.empty(), CladoTree)
        assert len(example.empty()) == 0

    def test_from_chrono(self, example):
        clado = CladoTree.from_chrono(example)
        assert isinstance(clado, CladoTree)
        assert clado == parse("(A,B,(C,D)E)F;")
        clado.set_name(1, "G")
        assert example.name(1) == "F"

    def test_types_never_equal(self, example):
        assert example != CladoTree.from_chrono(example)

    def test_time_tolerance(self, example):
        dup = example.copy()
        dup.t_root[5] += 1e-13
        assert dup == example
        dup.t_root[5] += 1e-3
        assert dup != example

    @pytest.mark.parametrize("delta", [5e-13, 1.5e-12, 3e-12])
    def test_tree_and_node_equality_agree(self, delta):
        # Near 1e-3 the relative and absolute tolerances are both ~1e-12,
        # so summing them instead of taking the larger would accept 1.5e-12.
        tree = parse("(A:0.001,B:0.001);")
        dup = tree.copy()
        dup.t_branch[2] += delta
        nodes_equal = all(dup[i] == tree[i] for i in tree.indices())
        assert (dup == tree) == nodes_equal
        assert (tree == dup) == (dup == tree)
        assert (dup == tree) == (delta < 1e-12)


# ======================================================================== #
# Time calibration                                                          #
# ======================================================================== #


class TestCalibration:

    def test_t_root_from_parse(self, example):
        np.testing.assert_allclose(example.t_root[1:], [0.0, 0.1, 0.2, 0.5, 0.8, 0.9])

    def test_calibrate_t_root(self, example):
        tree = example.copy()
        tree.t_branch[4] = 1.0
        tree.calibrate_t_root()
        np.testing.assert_allclose(tree.t_root[1:], [0.0, 0.1, 0.2, 1.0, 1.3, 1.4])

    def test_calibrate_t_branch_shifts_root_to_zero(self, example):
        tree = example.copy()
        tree.t_root[1:] += 2.0
        tree.t_branch[1] = 0.7
        tree.calibrate_t_branch()
        assert tree.t_root[1] == 0.0
        assert tree.t_branch[1] == 0.0
        np.testing.assert_allclose(tree.t_branch[2:], [0.1, 0.2, 0.5, 0.3, 0.4])

    def test_clado_calibration_is_noop(self, cladogram):
        assert cladogram.calibrate_t_root() is cladogram
        assert cladogram.calibrate_t_branch() is cladogram

    def test_calibrate_empty(self):
        assert len(ChronoTree().calibrate_t_root()) == 0
        assert len(ChronoTree().calibrate_t_branch()) == 0


# ======================================================================== #
# Traits                                                                    #
# ======================================================================== #


class TestTraits:

    def test_declare_then_get_missing(self):
        tree = build_cherry()
        tree.declare_trait("color")
        assert tree.has_trait("color")
        assert not tree.has_trait("color", 2)
        with pytest.raises(MissingTraitError):
            tree.get_trait(2, "color")

    def test_undeclared(self):
        tree = build_cherry()
        assert not tree.has_trait("color")
        assert not tree.has_trait("color", 2)
        with pytest.raises(MissingTraitError):
            tree.get_trait(2, "color")
        with pytest.raises(KeyError):
            tree.trait_values("color")

    def test_set_declares(self):
        tree = build_cherry()
        assert tree.set_trait(2, "color", "red") == "red"
        assert tree.traits == {"color"}
        assert tree.get_trait(2, "color") == "red"
        assert tree.trait_values("color") == {2: "red"}

    def test_set_trait_checks_index(self):
        with pytest.raises(NodeIndexError):
            build_cherry().set_trait(9, "color", "red")

    def test_traits_are_copied(self):
        tree = build_cherry()
        tree.set_trait(3, "rate", 0.5)
        dup = tree.copy()
        dup.set_trait(3, "rate", 1.5)
        assert tree.get_trait(3, "rate") == 0.5

    def test_chrono_forwards_traits(self, example):
        tree = example.copy()
        tree.set_trait(1, "age", 0.9)
        assert tree.topology.get_trait(1, "age") == 0.9
        assert tree.has_trait("age", 1)
        assert not example.has_trait("age")
