"""Immutable calls, call sequences, and the stable numbering of calls.

An :class:`Invocation` is one call issued against the shared object (or the
constructor that creates it).  It carries its own ``action`` closure, so the
core never dispatches by name::

    push = Invocation(1, "push", (1,), thread=0, action=lambda s: s.push(1))
    push.invoke(stack)
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from linearity.common import MalformedHarnessError, UnknownInvocationError

_NO_OBJECT = object()


@dataclass(frozen=True)
class Invocation:
    """A single call in a harness.

    Identity is ``(id, thread)``.  The method name, the arguments, the action
    closure and the expected exception types take no part in equality or
    hashing, so arguments may be unhashable values such as lists.

    Attributes:
        id: Stable identity of the call within its harness.
        method: Name of the operation, used for display only.
        arguments: Argument values, used for display only.
        thread: Thread tag, or None for the constructor.
        action: ``action(obj)`` applies a call; ``action()`` constructs.
        expected_exceptions: Exception types that are legitimate results
            of this call (e.g. popping an empty stack) rather than
            execution failures.  A raised instance is returned as the
            call's result.
    """

    id: int
    method: str = field(compare=False)
    arguments: tuple[Any, ...] = field(default=(), compare=False)
    thread: int | None = None
    action: Callable[..., Any] | None = field(default=None, compare=False, repr=False)
    expected_exceptions: tuple[type[BaseException], ...] = field(default=(), compare=False, repr=False)

    @classmethod
    def constructor(cls, factory: Callable[[], Any], *arguments: Any, id: int = 0, name: str | None = None) -> Invocation:
        """Build the constructor invocation for ``factory(*arguments)``."""
        method = name or getattr(factory, "__name__", "new")
        return cls(id, method, arguments, None, lambda: factory(*arguments))

    @property
    def is_constructor(self) -> bool:
        return self.thread is None

    def invoke(self, obj: Any = _NO_OBJECT) -> Any:
        """Apply this call to ``obj`` (or construct, for the constructor)."""
        if self.action is None:
            raise MalformedHarnessError(f"{self} has no action to invoke")
        if not self.is_constructor and obj is _NO_OBJECT:
            raise MalformedHarnessError(f"{self} needs an object to be applied to")
        try:
            if self.is_constructor:
                return self.action()
            return self.action(obj)
        except self.expected_exceptions as e:
            return e

    def __str__(self) -> str:
        return f"{self.method}({', '.join(repr(a) for a in self.arguments)})"


class InvocationSequence:
    """An immutable, ordered sequence of invocations.

    Sequences are value objects: equal when they hold the same invocations
    in the same order.
    """

    __slots__ = ("_invocations",)

    def __init__(self, invocations: Iterable[Invocation] = ()):
        self._invocations: tuple[Invocation, ...] = tuple(invocations)

    @property
    def size(self) -> int:
        return len(self._invocations)

    def invocations(self) -> tuple[Invocation, ...]:
        return self._invocations

    def prefix(self, length: int) -> InvocationSequence:
        """The first ``length`` invocations, for ``1 <= length <= size``."""
        if not 1 <= length <= len(self._invocations):
            raise MalformedHarnessError(f"prefix length {length} out of range for a sequence of size {self.size}")
        return InvocationSequence(self._invocations[:length])

    def last(self) -> Invocation:
        if not self._invocations:
            raise MalformedHarnessError("last() of an empty sequence")
        return self._invocations[-1]

    def first(self) -> Invocation:
        if not self._invocations:
            raise MalformedHarnessError("first() of an empty sequence")
        return self._invocations[0]

    def projection(
        self,
        keep: Iterable[Invocation | int] = (),
        *,
        threads: Iterable[int] = (),
    ) -> InvocationSequence:
        """Keep the selected invocations, in order.

        Args:
            keep: Invocations, or invocation ids, to keep.
            threads: Thread tags whose invocations are all kept.  Tags and
                ids are both ints, so tags are passed by keyword only.
        """
        keep = set(keep)
        threads = set(threads)
        return InvocationSequence(
            i for i in self._invocations if i in keep or i.id in keep or i.thread in threads
        )

    def thread_projection(self, threads: Iterable[int]) -> InvocationSequence:
        """Keep only the invocations issued by the given threads, in order."""
        return self.projection(threads=threads)

    def index(self, invocation: Invocation) -> int:
        return self._invocations.index(invocation)

    def __add__(self, other: InvocationSequence) -> InvocationSequence:
        return InvocationSequence(self._invocations + other._invocations)

    def __len__(self) -> int:
        return len(self._invocations)

    def __iter__(self) -> Iterator[Invocation]:
        return iter(self._invocations)

    def __getitem__(self, index: int) -> Invocation:
        return self._invocations[index]

    def __contains__(self, invocation: object) -> bool:
        return invocation in self._invocations

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InvocationSequence):
            return NotImplemented
        return self._invocations == other._invocations

    def __hash__(self) -> int:
        return hash(self._invocations)

    def __repr__(self) -> str:
        return f"InvocationSequence({list(self._invocations)!r})"

    def __str__(self) -> str:
        return "; ".join(str(i) for i in self._invocations)


class Numbering(Mapping[Invocation, int]):
    """A bijection from invocations to small integers.

    The numbering is fixed once per harness, so outcomes computed from
    different linearizations and visibility assignments agree on which key
    stands for which logical call.
    """

    def __init__(self, numbers: Mapping[Invocation, int]):
        self._numbers = dict(numbers)
        seen: dict[int, Invocation] = {}
        for invocation, number in self._numbers.items():
            if number in seen:
                raise MalformedHarnessError(f"{invocation} and {seen[number]} are both numbered {number}")
            seen[number] = invocation
        self._invocations = seen

    @classmethod
    def sequential(cls, sequences: Iterable[InvocationSequence], start: int = 0) -> Numbering:
        """Number every invocation in sequence order, one sequence after another."""
        numbers: dict[Invocation, int] = {}
        for sequence in sequences:
            for invocation in sequence:
                if invocation in numbers:
                    raise MalformedHarnessError(f"{invocation} appears more than once")
                numbers[invocation] = start + len(numbers)
        return cls(numbers)

    def number(self, invocation: Invocation) -> int:
        """The number of ``invocation``; a missing call is a contract error."""
        return self[invocation]

    def invocation(self, number: int) -> Invocation:
        try:
            return self._invocations[number]
        except KeyError:
            raise UnknownInvocationError(f"no invocation is numbered {number}") from None

    def covers(self, invocations: Iterable[Hashable]) -> bool:
        return all(i in self._numbers for i in invocations)

    def __getitem__(self, invocation: Invocation) -> int:
        try:
            return self._numbers[invocation]
        except KeyError:
            raise UnknownInvocationError(f"{invocation} (id {invocation.id}) is not numbered") from None

    def __iter__(self) -> Iterator[Invocation]:
        return iter(self._numbers)

    def __len__(self) -> int:
        return len(self._numbers)

    def __repr__(self) -> str:
        body = ", ".join(f"{i}: {n}" for i, n in self._numbers.items())
        return f"Numbering({{{body}}})"
