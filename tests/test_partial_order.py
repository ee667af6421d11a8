"""Tests for the partial order used for thread sequences and program order."""

from math import factorial

import pytest

from linearity.common import MalformedHarnessError
from linearity.partial_order import PartialOrder


def diamond():
    order = PartialOrder()
    order.sequence("a", "b")
    order.sequence("a", "c")
    order.sequence("b", "d")
    order.sequence("c", "d")
    return order


class TestStructure:
    def test_nodes_keep_insertion_order(self) -> None:
        """Nodes iterate in insertion order."""
        order = PartialOrder(["x", "y", "z"])
        assert order.values() == ["x", "y", "z"]
        assert list(order) == ["x", "y", "z"]
        assert len(order) == 3
        assert "y" in order
        assert "w" not in order

    def test_sequence_adds_missing_nodes(self) -> None:
        """sequence() adds unknown nodes."""
        order = PartialOrder()
        order.sequence(1, 2)
        assert order.values() == [1, 2]

    def test_closure_is_transitive(self) -> None:
        """before() is transitive, predecessors() immediate."""
        order = diamond()
        assert order.before("d") == {"a", "b", "c"}
        assert order.predecessors("d") == {"b", "c"}
        assert order.is_before("a", "d")
        assert not order.is_before("b", "c")
        assert not order.is_before("d", "a")

    def test_closure_updated_for_existing_successors(self) -> None:
        """A new edge propagates to existing successors."""
        order = PartialOrder()
        order.sequence("b", "c")
        order.sequence("a", "b")
        assert order.before("c") == {"a", "b"}

    def test_minimals(self) -> None:
        """Minimal nodes have no predecessors."""
        assert diamond().minimals() == ["a"]
        assert PartialOrder([1, 2]).minimals() == [1, 2]

    def test_edges(self) -> None:
        """Edges list each immediate pair."""
        assert diamond().edges() == [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]

    def test_chain(self) -> None:
        """chain() totally orders its items."""
        order = PartialOrder.chain([3, 1, 2])
        assert order.before(2) == {3, 1}
        assert order.minimals() == [3]

    def test_chain_of_nothing(self) -> None:
        """chain() of nothing is empty."""
        assert len(PartialOrder.chain([])) == 0


class TestErrors:
    def test_self_loop_is_a_cycle(self) -> None:
        """A node cannot precede itself."""
        with pytest.raises(MalformedHarnessError, match="cycle"):
            PartialOrder().sequence("a", "a")

    def test_back_edge_is_a_cycle(self) -> None:
        """Closing a chain into a loop is rejected."""
        order = PartialOrder.chain(["a", "b", "c"])
        with pytest.raises(MalformedHarnessError, match="cycle"):
            order.sequence("c", "a")

    def test_unknown_node(self) -> None:
        """Asking about an unknown node is a contract error."""
        with pytest.raises(MalformedHarnessError, match="not part of"):
            PartialOrder(["a"]).before("b")


class TestDrop:
    def test_drop_relinks_predecessors_to_successors(self) -> None:
        """Dropping a middle node keeps its ordering."""
        order = PartialOrder.chain(["a", "b", "c"])
        dropped = order.drop("b")
        assert dropped.values() == ["a", "c"]
        assert dropped.is_before("a", "c")

    def test_drop_minimal(self) -> None:
        """Dropping the root frees its successors."""
        dropped = diamond().drop("a")
        assert dropped.minimals() == ["b", "c"]
        assert dropped.before("d") == {"b", "c"}

    def test_drop_leaves_original_untouched(self) -> None:
        """drop() returns a copy."""
        order = diamond()
        order.drop("a")
        assert order.values() == ["a", "b", "c", "d"]


class TestLinearizations:
    def test_diamond(self) -> None:
        """A diamond has two linear extensions."""
        assert list(diamond().linearizations()) == [["a", "b", "c", "d"], ["a", "c", "b", "d"]]

    def test_antichain_gives_all_permutations(self) -> None:
        """Unordered nodes give every permutation once."""
        linearizations = list(PartialOrder([1, 2, 3, 4]).linearizations())
        assert len(linearizations) == factorial(4)
        assert len({tuple(l) for l in linearizations}) == factorial(4)

    def test_every_linearization_respects_the_order(self) -> None:
        """Every extension respects every edge."""
        order = diamond()
        for linearization in order.linearizations():
            for earlier, later in order.edges():
                assert linearization.index(earlier) < linearization.index(later)

    def test_empty_order_has_one_empty_linearization(self) -> None:
        """The empty order has one empty extension."""
        assert list(PartialOrder().linearizations()) == [[]]
