"""Harnesses: a constructor plus per-thread call sequences on one object.

Build one with :class:`HarnessBuilder`::

    builder = HarnessBuilder(Counter)
    builder.thread().call("increment", lambda c: c.increment())
    builder.thread().call("read", lambda c: c.read())
    harness = builder.build()
    print(harness)  # { increment() } || { read() }

Or let hypothesis generate them with :func:`harness_strategy`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from linearity.common import MalformedHarnessError
from linearity.invocation import Invocation, InvocationSequence, Numbering
from linearity.linearization import program_order
from linearity.partial_order import PartialOrder


class Harness:
    """A constructor, a partial order of thread sequences, and a numbering.

    Args:
        constructor: Invocation that creates a fresh object (thread None).
        sequences: The thread sequences, optionally ordered ("finishes
            before starts").  A plain iterable means no cross-thread order.
        numbering: Call numbering; defaults to numbering the calls in
            thread order starting from 0.

    Raises:
        MalformedHarnessError: If a sequence is empty, a call appears twice,
            the constructor is misplaced, or the numbering misses a call.
    """

    def __init__(
        self,
        constructor: Invocation,
        sequences: PartialOrder[InvocationSequence] | Iterable[InvocationSequence],
        numbering: Numbering | None = None,
    ):
        if not constructor.is_constructor:
            raise MalformedHarnessError(f"{constructor} is tagged with thread {constructor.thread}, not a constructor")
        if not isinstance(sequences, PartialOrder):
            sequences = PartialOrder(sequences)
        for sequence in sequences:
            if not len(sequence):
                raise MalformedHarnessError("thread sequences must not be empty")
            for invocation in sequence:
                if invocation.is_constructor:
                    raise MalformedHarnessError(f"{invocation} in a thread sequence has no thread tag")
        self.constructor = constructor
        self.sequences = sequences
        self.program_order = program_order(sequences)
        if constructor in self.program_order:
            raise MalformedHarnessError(f"constructor {constructor} also appears in a thread sequence")
        if numbering is None:
            numbering = Numbering.sequential(sequences)
        elif not numbering.covers(self.program_order):
            missing = [str(i) for i in self.program_order if i not in numbering]
            raise MalformedHarnessError(f"numbering does not cover {', '.join(missing)}")
        self.numbering = numbering

    @property
    def threads(self) -> tuple[InvocationSequence, ...]:
        return tuple(self.sequences)

    def invocations(self) -> list[Invocation]:
        return [i for sequence in self.sequences for i in sequence]

    def __len__(self) -> int:
        return len(self.program_order)

    def __repr__(self) -> str:
        return f"Harness({self})"

    def __str__(self) -> str:
        return " || ".join(f"{{ {sequence} }}" for sequence in self.sequences)


class ThreadBuilder:
    """Accumulates the calls of one thread; created by :meth:`HarnessBuilder.thread`."""

    def __init__(self, builder: HarnessBuilder, tag: int):
        self._builder = builder
        self.tag = tag
        self.calls: list[Invocation] = []

    def call(
        self,
        method: str,
        action: Callable[[Any], Any],
        *arguments: Any,
        expected_exceptions: tuple[type[BaseException], ...] = (),
    ) -> Invocation:
        """Append a call and return its invocation."""
        invocation = Invocation(
            self._builder._allocate_id(),
            method,
            arguments,
            self.tag,
            action,
            tuple(expected_exceptions),
        )
        self.calls.append(invocation)
        return invocation


class HarnessBuilder:
    """Incrementally assemble a :class:`Harness`.

    Invocation ids are allocated in creation order; the constructor is 0.
    """

    def __init__(self, factory: Callable[..., Any], *arguments: Any, name: str | None = None):
        self._constructor = Invocation.constructor(factory, *arguments, id=0, name=name)
        self._threads: list[ThreadBuilder] = []
        self._edges: list[tuple[ThreadBuilder, ThreadBuilder]] = []
        self._next_id = 1

    def _allocate_id(self) -> int:
        allocated = self._next_id
        self._next_id += 1
        return allocated

    def thread(self) -> ThreadBuilder:
        thread = ThreadBuilder(self, len(self._threads))
        self._threads.append(thread)
        return thread

    def order(self, first: ThreadBuilder, second: ThreadBuilder) -> HarnessBuilder:
        """Require ``first`` to finish before ``second`` starts."""
        self._edges.append((first, second))
        return self

    def build(self) -> Harness:
        sequences = {t.tag: InvocationSequence(t.calls) for t in self._threads}
        order: PartialOrder[InvocationSequence] = PartialOrder()
        for thread in self._threads:
            if not thread.calls:
                raise MalformedHarnessError(f"thread {thread.tag} has no calls")
            order.add(sequences[thread.tag])
        for first, second in self._edges:
            order.sequence(sequences[first.tag], sequences[second.tag])
        return Harness(self._constructor, order)


# ---------------------------------------------------------------------------
# Property-based testing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MethodSpec:
    """A method that generated harnesses may call.

    Attributes:
        name: Display name of the method.
        apply: ``apply(obj, *args)`` performs the call.
        arity: Number of integer arguments to generate.
        expected_exceptions: Exceptions that count as results, not failures.
    """

    name: str
    apply: Callable[..., Any]
    arity: int = 0
    expected_exceptions: tuple[type[BaseException], ...] = ()

    def bind(self, *arguments: Any) -> Callable[[Any], Any]:
        apply = self.apply
        return lambda obj: apply(obj, *arguments)


def harness_strategy(
    factory: Callable[[], Any],
    methods: Sequence[MethodSpec],
    *,
    min_threads: int = 1,
    max_threads: int = 2,
    min_calls: int = 1,
    max_calls: int = 4,
    max_values: int = 2,
):
    """Hypothesis strategy for random harnesses over ``methods``.

    Every thread gets at least one call, so the total call count is at least
    the thread count.  Arguments are integers in ``range(max_values)``; a
    small value range makes calls interfere with each other, which is where
    interesting outcomes come from.

    For use with the hypothesis @given decorator in your own tests:

        >>> from hypothesis import given
        >>> from linearity.harness import MethodSpec, harness_strategy
        >>>
        >>> methods = [MethodSpec("push", lambda s, v: s.push(v), arity=1), MethodSpec("pop", lambda s: s.pop())]
        >>> @given(harness=harness_strategy(Stack, methods))
        ... def test_strict_outcomes_are_atomic(harness):
        ...     outcomes = collect_outcomes(harness)
        ...     assert outcomes.atomic == frozenset(outcomes)
    """
    from hypothesis import strategies as st

    if not methods:
        raise ValueError("harness_strategy needs at least one method")

    @st.composite
    def _harness(draw: st.DrawFn) -> Harness:
        builder = HarnessBuilder(factory)
        num_threads = draw(st.integers(min_value=min_threads, max_value=max_threads))
        threads = [builder.thread() for _ in range(num_threads)]
        num_calls = draw(
            st.integers(min_value=max(num_threads, min_calls), max_value=max(num_threads, max_calls))
        )
        for index in range(num_calls):
            thread = threads[index] if index < num_threads else draw(st.sampled_from(threads))
            method = draw(st.sampled_from(list(methods)))
            arguments = tuple(draw(st.integers(min_value=0, max_value=max_values - 1)) for _ in range(method.arity))
            thread.call(
                method.name,
                method.bind(*arguments),
                *arguments,
                expected_exceptions=method.expected_exceptions,
            )
        return builder.build()

    return _harness()
