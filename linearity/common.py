"""Shared data structures and errors for linearity."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Set
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from linearity.invocation import Invocation, InvocationSequence
    from linearity.visibility import Visibility


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class OracleError(Exception):
    """Base class for every error raised while computing an outcome oracle."""


class MalformedHarnessError(OracleError, ValueError):
    """A harness, sequence, numbering or visibility violates its contract.

    These are programming errors in the caller or in harness construction
    (an out-of-range prefix, a call missing from the numbering, a cyclic
    thread ordering, ...).  They are never recovered from.
    """


class UnknownInvocationError(MalformedHarnessError, KeyError):
    """A lookup named an invocation (or number) that a numbering does not cover.

    Also a KeyError, so mapping helpers such as ``in`` and ``get`` keep
    treating it as an absent key.
    """

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ExecutionError(OracleError):
    """Constructing the object or applying a call raised unexpectedly.

    A call that fails under plain replay means the harness or the object
    model is broken, so the whole oracle computation is aborted.  The
    original exception is chained as ``__cause__``.

    Attributes:
        invocation: The call (or constructor) that raised.
        sequence: The sequence being replayed when it raised.
        linearization: The linearization under evaluation, if known.
        visibility: The visibility assignment under evaluation, if known.
    """

    def __init__(
        self,
        invocation: Invocation,
        sequence: InvocationSequence,
        linearization: InvocationSequence | None = None,
        visibility: Visibility | None = None,
    ):
        self.invocation = invocation
        self.sequence = sequence
        self.linearization = linearization
        self.visibility = visibility
        message = f"{invocation} raised while replaying [{sequence}]"
        if linearization is not None:
            message += f" in linearization [{linearization}]"
        if visibility is not None and not visibility.is_complete():
            message += f" with visibility {visibility}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class Outcome(Mapping[int, str]):
    """An immutable mapping from call number to canonical return value.

    Entries are kept in ascending call-number order, so two outcomes with
    the same entries compare and hash equal no matter how they were built.
    """

    __slots__ = ("_items", "_index")

    def __init__(self, results: Mapping[int, str] | Iterable[tuple[int, str]] = ()):
        index = dict(results)
        self._items: tuple[tuple[int, str], ...] = tuple(sorted(index.items()))
        self._index = dict(self._items)

    def __getitem__(self, call_id: int) -> str:
        return self._index[call_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Outcome):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._index == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Outcome({self._index!r})"

    def __str__(self) -> str:
        return "{" + ", ".join(f"{k}: {v}" for k, v in self._items) + "}"

    def items_in_order(self) -> tuple[tuple[int, str], ...]:
        return self._items


@dataclass(frozen=True)
class Conflict:
    """A merge found the same call observed with incompatible results.

    This is the "no consistent outcome" result of a relaxed configuration.
    It is returned as a value and never raised.
    """

    call_id: int
    first: str
    second: str

    def __str__(self) -> str:
        return f"call {self.call_id} observed as {self.first} and as {self.second}"


class OutcomeSet(Set):
    """The deduplicated outcomes legal under one consistency configuration.

    Set operations and comparisons only look at the outcomes.  The extra
    attributes describe how the set was produced.

    Attributes:
        atomic: Outcomes produced by at least one complete-visibility
            configuration, i.e. under plain sequential replay.
        complete: False when a configuration cutoff stopped the search
            early.  An incomplete set may be missing legal outcomes.
        configurations: How many (linearization, visibility) pairs were
            evaluated.
        rejected: How many relaxed configurations were dropped because
            their partial replays disagreed.
    """

    def __init__(
        self,
        outcomes: Iterable[Outcome] = (),
        *,
        atomic: Iterable[Outcome] = (),
        complete: bool = True,
        configurations: int = 0,
        rejected: int = 0,
    ):
        self._outcomes = frozenset(outcomes)
        self.atomic = frozenset(atomic) & self._outcomes
        self.complete = complete
        self.configurations = configurations
        self.rejected = rejected

    @classmethod
    def _from_iterable(cls, it: Iterable[Any]) -> OutcomeSet:
        return cls(it)

    def __contains__(self, outcome: object) -> bool:
        if isinstance(outcome, Outcome):
            return outcome in self._outcomes
        if isinstance(outcome, Mapping):
            return Outcome(outcome) in self._outcomes
        return False

    def __iter__(self) -> Iterator[Outcome]:
        return iter(sorted(self._outcomes, key=Outcome.items_in_order))

    def __len__(self) -> int:
        return len(self._outcomes)

    def is_atomic(self, outcome: Mapping[int, str]) -> bool:
        return Outcome(outcome) in self.atomic

    def __repr__(self) -> str:
        body = ", ".join(str(o) for o in self)
        suffix = "" if self.complete else ", incomplete"
        return f"OutcomeSet([{body}]{suffix})"
