"""Enumerate the interleavings of a harness's thread sequences.

A linearization is a total order over every call in the harness that keeps
each thread's calls in their program order (and, when the harness declares
it, finishes one sequence before another starts).  For unordered threads of
lengths ``n1, ..., nk`` there are ``(n1 + ... + nk)! / (n1! ... nk!)`` of
them, so enumeration is lazy: callers stop pulling when they hit a cutoff.

Example::

    for linearization in enumerate_linearizations(harness.sequences):
        print(linearization)  # increment(); read() then read(); increment()
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

from linearity.common import MalformedHarnessError
from linearity.invocation import Invocation, InvocationSequence
from linearity.partial_order import PartialOrder


def enumerate_linearizations(sequences: PartialOrder[InvocationSequence]) -> Iterator[InvocationSequence]:
    """Lazily yield every linearization of ``sequences``.

    At each step any sequence with calls left, whose ordered-before
    sequences are all consumed, may contribute its next call.  Choices are
    tried in sequence order and undone after each emitted linearization, so
    the enumeration is deterministic and never yields the same ordering
    twice.  Calling the function again restarts the enumeration.

    Args:
        sequences: Per-thread call sequences; edges mean "finishes before
            starts".

    Yields:
        One InvocationSequence per linearization.
    """
    threads = sequences.values()
    blockers = [[threads.index(p) for p in sequences.before(t)] for t in threads]
    positions = [0] * len(threads)
    total = sum(len(t) for t in threads)
    output: list[Invocation] = []

    def extend() -> Iterator[InvocationSequence]:
        if len(output) == total:
            yield InvocationSequence(output)
            return
        for index, thread in enumerate(threads):
            if positions[index] == len(thread):
                continue
            if any(positions[b] < len(threads[b]) for b in blockers[index]):
                continue
            output.append(thread[positions[index]])
            positions[index] += 1
            yield from extend()
            positions[index] -= 1
            output.pop()

    return extend()


def count_linearizations(sequences: PartialOrder[InvocationSequence]) -> int:
    """The number of linearizations :func:`enumerate_linearizations` yields.

    Counted by dynamic programming over the per-thread positions, so it is
    cheap even when the enumeration itself would not be.
    """
    threads = sequences.values()
    lengths = tuple(len(t) for t in threads)
    blockers = [[threads.index(p) for p in sequences.before(t)] for t in threads]

    @lru_cache(maxsize=None)
    def count(positions: tuple[int, ...]) -> int:
        if positions == lengths:
            return 1
        total = 0
        for index, length in enumerate(lengths):
            if positions[index] == length:
                continue
            if any(positions[b] < lengths[b] for b in blockers[index]):
                continue
            advanced = positions[:index] + (positions[index] + 1,) + positions[index + 1 :]
            total += count(advanced)
        return total

    return count((0,) * len(lengths))


def program_order(sequences: PartialOrder[InvocationSequence]) -> PartialOrder[Invocation]:
    """The partial order over individual calls implied by ``sequences``.

    Each thread's calls are chained in order.  A sequence ordered before
    another has its last call ordered before the other's first call; empty
    sequences are skipped over.
    """
    order: PartialOrder[Invocation] = PartialOrder()
    for thread in sequences:
        for invocation in thread:
            if invocation in order:
                raise MalformedHarnessError(f"{invocation} belongs to more than one sequence")
            order.add(invocation)
        for earlier, later in zip(thread, list(thread)[1:]):
            order.sequence(earlier, later)
    for thread in sequences:
        if not len(thread):
            continue
        for earlier in sequences.before(thread):
            if len(earlier) and not order.is_before(earlier.last(), thread.first()):
                order.sequence(earlier.last(), thread.first())
    return order


def is_linearization(candidate: InvocationSequence, sequences: PartialOrder[InvocationSequence]) -> bool:
    """Whether ``candidate`` is one of the linearizations of ``sequences``."""
    order = program_order(sequences)
    if len(candidate) != len(order) or set(candidate) != set(order):
        return False
    seen: set[Invocation] = set()
    for invocation in candidate:
        if not order.before(invocation) <= seen:
            return False
        seen.add(invocation)
    return True
