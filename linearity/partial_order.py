"""A small partial order with an eagerly maintained transitive closure.

Used twice: over a harness's thread sequences (which sequences must finish
before others start) and over individual invocations (program order).
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

from linearity.common import MalformedHarnessError

T = TypeVar("T", bound=Hashable)


class PartialOrder(Generic[T]):
    """A strict partial order over hashable nodes.

    ``_basis`` holds the immediate predecessors recorded by :meth:`sequence`;
    ``_closure`` holds all (transitive) predecessors.  Node iteration order
    is insertion order, which keeps every enumeration deterministic.
    """

    def __init__(self, nodes: Iterable[T] = ()):
        self._basis: dict[T, set[T]] = {}
        self._closure: dict[T, set[T]] = {}
        for node in nodes:
            self.add(node)

    @classmethod
    def chain(cls, items: Iterable[T]) -> PartialOrder[T]:
        """A total order over ``items`` in iteration order."""
        order: PartialOrder[T] = cls()
        previous: T | None = None
        first = True
        for item in items:
            order.add(item)
            if not first:
                order.sequence(previous, item)  # type: ignore[arg-type]
            previous = item
            first = False
        return order

    def add(self, node: T) -> None:
        self._basis.setdefault(node, set())
        self._closure.setdefault(node, set())

    def sequence(self, first: T, second: T) -> None:
        """Order ``first`` strictly before ``second``."""
        self.add(first)
        self.add(second)
        if first == second or second in self._closure[first]:
            raise MalformedHarnessError(f"ordering {first!r} before {second!r} creates a cycle")
        self._basis[second].add(first)

        before = self._closure[first] | {first}
        after = [n for n, preds in self._closure.items() if second in preds]
        after.append(second)
        for succ in after:
            self._closure[succ] |= before

    def predecessors(self, node: T) -> frozenset[T]:
        """Immediate predecessors of ``node``."""
        return frozenset(self._get(self._basis, node))

    def before(self, node: T) -> frozenset[T]:
        """All nodes ordered before ``node``."""
        return frozenset(self._get(self._closure, node))

    def is_before(self, first: T, second: T) -> bool:
        return first in self._get(self._closure, second)

    def values(self) -> list[T]:
        return list(self._basis)

    def minimals(self) -> list[T]:
        return [n for n, preds in self._basis.items() if not preds]

    def edges(self) -> list[tuple[T, T]]:
        return [(pred, succ) for succ, preds in self._basis.items() for pred in self._ordered(preds)]

    def drop(self, node: T) -> PartialOrder[T]:
        """A copy without ``node``; its predecessors now precede its successors."""
        dropped_preds = self._get(self._basis, node)
        that: PartialOrder[T] = PartialOrder(n for n in self._basis if n != node)
        for succ, preds in self._basis.items():
            if succ == node:
                continue
            for pred in self._ordered(preds):
                if pred == node:
                    for pp in self._ordered(dropped_preds):
                        if not that.is_before(pp, succ):
                            that.sequence(pp, succ)
                elif not that.is_before(pred, succ):
                    that.sequence(pred, succ)
        return that

    def linearizations(self) -> Iterator[list[T]]:
        """Lazily yield every total order that extends this partial order."""
        yield from self._linearize([], self)

    @classmethod
    def _linearize(cls, prefix: list[T], remainder: PartialOrder[T]) -> Iterator[list[T]]:
        if not remainder._basis:
            yield list(prefix)
            return
        for node in remainder.minimals():
            prefix.append(node)
            yield from cls._linearize(prefix, remainder.drop(node))
            prefix.pop()

    def _ordered(self, nodes: set[T]) -> list[T]:
        return [n for n in self._basis if n in nodes]

    def _get(self, table: dict[T, set[T]], node: T) -> set[T]:
        try:
            return table[node]
        except KeyError:
            raise MalformedHarnessError(f"{node!r} is not part of this partial order") from None

    def __contains__(self, node: object) -> bool:
        return node in self._basis

    def __iter__(self) -> Iterator[T]:
        return iter(self._basis)

    def __len__(self) -> int:
        return len(self._basis)

    def __repr__(self) -> str:
        body = "; ".join(
            f"{n!r} > {{{', '.join(repr(p) for p in self._ordered(preds))}}}" for n, preds in self._closure.items()
        )
        return f"PartialOrder({{ {body} }})"
