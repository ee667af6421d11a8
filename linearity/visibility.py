"""Visibility assignments: which earlier calls each call observes.

For a fixed linearization, the *complete* assignment lets every call see
its whole prefix, which is ordinary sequential replay.  Under weak
atomicity a call may miss some earlier calls.  The relaxed assignments
enumerated here obey three rules, for a call ``c`` with visible set ``V(c)``:

1. ``c`` sees all of its program-order predecessors (a thread observes
   its own history, and sequences ordered before its own).
2. ``b in V(c)`` implies ``V(b) <= V(c)`` (what you see, you see
   transitively).
3. Only strictly earlier calls of the linearization may be visible.

Rules 1 and 2 together make visibility monotone along each thread.  The
constructor is never part of a linearization: every replay constructs a
fresh object first, so its effect is visible to every call.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from itertools import combinations

from linearity.common import MalformedHarnessError
from linearity.invocation import Invocation, InvocationSequence
from linearity.partial_order import PartialOrder


class Visibility:
    """One visibility assignment over one linearization.

    Args:
        linearization: The total order the assignment refers to.
        visible: For every call of the linearization, the set of earlier
            calls it observes (not including itself).
    """

    __slots__ = ("linearization", "_visible", "_complete")

    def __init__(self, linearization: InvocationSequence, visible: Mapping[Invocation, frozenset[Invocation]]):
        self.linearization = linearization
        self._visible: dict[Invocation, frozenset[Invocation]] = {}
        complete = True
        for position, invocation in enumerate(linearization):
            if invocation not in visible:
                raise MalformedHarnessError(f"no visible set given for {invocation}")
            seen = frozenset(visible[invocation])
            earlier = linearization.invocations()[:position]
            if not seen <= set(earlier):
                raise MalformedHarnessError(f"{invocation} can only see calls that precede it")
            complete = complete and len(seen) == position
            self._visible[invocation] = seen
        self._complete = complete

    @classmethod
    def complete(cls, linearization: InvocationSequence) -> Visibility:
        """Full-prefix visibility: plain sequential replay."""
        calls = linearization.invocations()
        return cls(linearization, {c: frozenset(calls[:i]) for i, c in enumerate(calls)})

    def is_complete(self) -> bool:
        return self._complete

    def visible(self, invocation: Invocation) -> frozenset[Invocation]:
        """The earlier calls ``invocation`` observes."""
        try:
            return self._visible[invocation]
        except KeyError:
            raise MalformedHarnessError(f"{invocation} is not part of this linearization") from None

    def visible_set(self, invocation: Invocation) -> frozenset[Invocation]:
        """The calls to replay for ``invocation``: what it observes, plus itself."""
        return self.visible(invocation) | {invocation}

    def is_visible(self, earlier: Invocation, later: Invocation) -> bool:
        return earlier in self.visible(later)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Visibility):
            return NotImplemented
        return self.linearization == other.linearization and self._visible == other._visible

    def __hash__(self) -> int:
        return hash((self.linearization, frozenset(self._visible.items())))

    def __repr__(self) -> str:
        return f"Visibility({self})"

    def __str__(self) -> str:
        if self._complete:
            return "complete"
        parts = []
        for invocation in self.linearization:
            seen = [str(c) for c in self.linearization if c in self._visible[invocation]]
            parts.append(f"{invocation} sees {{{', '.join(seen)}}}")
        return "; ".join(parts)


def thread_order(linearization: InvocationSequence) -> PartialOrder[Invocation]:
    """Program order recovered from thread tags: same thread, earlier position."""
    order: PartialOrder[Invocation] = PartialOrder(linearization)
    last_by_thread: dict[int | None, Invocation] = {}
    for invocation in linearization:
        previous = last_by_thread.get(invocation.thread)
        if previous is not None:
            order.sequence(previous, invocation)
        last_by_thread[invocation.thread] = invocation
    return order


def enumerate_visibilities(
    linearization: InvocationSequence,
    weak_atomicity: bool,
    program_order: PartialOrder[Invocation] | None = None,
) -> Iterator[Visibility]:
    """Lazily yield the visibility assignments permitted for ``linearization``.

    The complete assignment always comes first.  Without weak atomicity it
    is the only one.  With weak atomicity every other assignment allowed by
    the module-level rules follows, each exactly once.  Calls are assigned
    in linearization order; for each call, larger optional subsets are tried
    before smaller ones.

    Args:
        linearization: The total order to relax.
        weak_atomicity: Whether calls may observe less than their prefix.
        program_order: Order over calls that visibility must respect.
            Defaults to the order implied by the calls' thread tags.
    """
    if not weak_atomicity:
        yield Visibility.complete(linearization)
        return

    order = program_order if program_order is not None else thread_order(linearization)
    calls = linearization.invocations()
    positions = {c: i for i, c in enumerate(calls)}
    required: list[frozenset[Invocation]] = []
    for position, call in enumerate(calls):
        preds = frozenset(p for p in order.before(call) if p in positions) if call in order else frozenset()
        if any(positions[p] > position for p in preds):
            raise MalformedHarnessError(f"linearization [{linearization}] violates the program order at {call}")
        required.append(preds)

    assigned: dict[Invocation, frozenset[Invocation]] = {}

    def search(position: int) -> Iterator[Visibility]:
        if position == len(calls):
            yield Visibility(linearization, assigned)
            return
        call = calls[position]
        mandatory = set(required[position])
        for pred in required[position]:
            mandatory |= assigned[pred]
        optional = [c for c in calls[:position] if c not in mandatory]
        for size in range(len(optional), -1, -1):
            for extra in combinations(optional, size):
                chosen = mandatory.union(extra)
                if all(assigned[c] <= chosen for c in extra):
                    assigned[call] = frozenset(chosen)
                    yield from search(position + 1)
        assigned.pop(call, None)

    yield from search(0)
