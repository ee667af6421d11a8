"""Collect the set of legal outcomes of a harness.

For every linearization of the harness's threads, and every visibility
assignment of that linearization the consistency model allows, the
collector replays the calls against freshly constructed objects and
records each call's canonical result under its stable number.  The
distinct results form the oracle: an implementation whose observed
outcome falls outside the set violated the consistency model.

Example: the two atomic outcomes of a racing increment and read::

    builder = HarnessBuilder(Counter)
    builder.thread().call("increment", lambda c: c.increment())
    builder.thread().call("read", lambda c: c.read())

    for outcome in collect_outcomes(builder.build()):
        print(outcome)  # {0: None, 1: 0} then {0: None, 1: 1}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from linearity._diagnostics import DiagnosticEvent, DiagnosticsSink, NullSink
from linearity.common import Conflict, ExecutionError, OracleError, Outcome, OutcomeSet
from linearity.config import OracleConfig
from linearity.harness import Harness
from linearity.invocation import Invocation, InvocationSequence, Numbering
from linearity.linearization import count_linearizations, enumerate_linearizations, program_order
from linearity.partial_order import PartialOrder
from linearity.results import canonical_result
from linearity.visibility import Visibility, enumerate_visibilities

Configuration = tuple[InvocationSequence, Visibility]


class _Accumulator:
    """Mutable state of one collection run; only the calling thread touches it."""

    def __init__(self) -> None:
        self.outcomes: set[Outcome] = set()
        self.atomic: set[Outcome] = set()
        self.configurations = 0
        self.rejected = 0
        self.complete = True

    def freeze(self) -> OutcomeSet:
        return OutcomeSet(
            self.outcomes,
            atomic=self.atomic,
            complete=self.complete,
            configurations=self.configurations,
            rejected=self.rejected,
        )


class OutcomeCollector:
    """Computes outcome sets under a configurable consistency model.

    Args:
        weak_atomicity: Also enumerate relaxed visibility assignments, in
            which a call may observe only part of its linearization prefix.
        relax_returns: When merging partial replays, accept differing
            results for the same call.  Ignored unless ``weak_atomicity``.
        canonicalize: Turns a call's return value into comparable text.
        sink: Receives diagnostic events; defaults to discarding them.
        max_configurations: Stop after this many (linearization,
            visibility) pairs and mark the result incomplete.
        workers: Evaluate configurations on this many threads.  The
            object model must tolerate distinct instances being used
            concurrently.
    """

    def __init__(
        self,
        weak_atomicity: bool = False,
        relax_returns: bool = False,
        *,
        canonicalize: Callable[[Any], str] = canonical_result,
        sink: DiagnosticsSink | None = None,
        max_configurations: int | None = None,
        workers: int = 1,
    ):
        if max_configurations is not None and max_configurations < 1:
            raise ValueError(f"max_configurations must be positive, got {max_configurations}")
        if workers < 1:
            raise ValueError(f"workers must be positive, got {workers}")
        self.weak_atomicity = weak_atomicity
        self.relax_returns = weak_atomicity and relax_returns
        self.canonicalize = canonicalize
        self.sink: DiagnosticsSink = sink if sink is not None else NullSink()
        self.max_configurations = max_configurations
        self.workers = workers

    @classmethod
    def from_config(cls, config: OracleConfig, **overrides: Any) -> OutcomeCollector:
        """Build a collector from an :class:`OracleConfig`; keyword arguments win."""
        options: dict[str, Any] = {
            "weak_atomicity": config.weak_atomicity,
            "relax_returns": config.relax_returns,
            "max_configurations": config.max_configurations,
            "workers": config.workers,
        }
        options.update(overrides)
        return cls(**options)

    # --- Public entry points ---

    def collect(self, harness: Harness) -> OutcomeSet:
        """All outcomes of ``harness`` legal under this collector's model."""
        if self.sink.wants("harness"):
            self._emit(
                "harness",
                f"computing outcomes for {harness} (weak atomicity: {self.weak_atomicity}, "
                f"relax returns: {self.relax_returns})",
                harness=str(harness),
                linearizations=count_linearizations(harness.sequences),
            )
        outcomes = self.collect_sequences(harness.constructor, harness.sequences, harness.numbering)
        self._emit(
            "summary",
            f"got {len(outcomes)} unique outcomes from {outcomes.configurations} configurations",
            outcomes=len(outcomes),
            atomic=len(outcomes.atomic),
            configurations=outcomes.configurations,
            rejected=outcomes.rejected,
            complete=outcomes.complete,
        )
        return outcomes

    def collect_sequences(
        self,
        constructor: Invocation,
        sequences: PartialOrder[InvocationSequence],
        numbering: Numbering,
    ) -> OutcomeSet:
        """Outcomes over every linearization of ``sequences``."""
        order = program_order(sequences)

        def configurations() -> Iterator[Configuration]:
            for linearization in enumerate_linearizations(sequences):
                if self.sink.wants("linearization"):
                    self._emit("linearization", str(linearization))
                for visibility in enumerate_visibilities(linearization, self.weak_atomicity, order):
                    yield linearization, visibility

        return self._evaluate(constructor, configurations(), numbering)

    def collect_linearization(
        self,
        constructor: Invocation,
        linearization: InvocationSequence,
        numbering: Numbering,
        program_order: PartialOrder[Invocation] | None = None,
    ) -> OutcomeSet:
        """Outcomes over every permitted visibility of one linearization."""
        visibilities = enumerate_visibilities(linearization, self.weak_atomicity, program_order)
        return self._evaluate(constructor, ((linearization, v) for v in visibilities), numbering)

    def collect_visibilities(
        self,
        constructor: Invocation,
        visibilities: Iterable[Visibility],
        numbering: Numbering,
    ) -> OutcomeSet:
        """Outcomes over explicitly chosen visibility assignments."""
        return self._evaluate(constructor, ((v.linearization, v) for v in visibilities), numbering)

    # --- Execution ---

    def execute(
        self,
        constructor: Invocation,
        linearization: InvocationSequence,
        visibility: Visibility,
        numbering: Numbering,
    ) -> Outcome | Conflict:
        """The outcome of one configuration, or the Conflict that rules it out.

        Complete visibility is a single replay of the linearization.  A
        relaxed assignment replays, for each call, just the calls it sees
        (and itself) from a fresh object, then merges these fragments.
        """
        if visibility.is_complete():
            return self.replay(constructor, linearization, numbering, linearization=linearization, visibility=visibility)

        outcome: Outcome | None = None
        for length in range(1, linearization.size + 1):
            prefix = linearization.prefix(length)
            projection = prefix.projection(visibility.visible_set(prefix.last()))
            fragment = self.replay(constructor, projection, numbering, linearization=linearization, visibility=visibility)
            if self.sink.wants("projection"):
                self._emit("projection", f"[{prefix}] / [{projection}] = {fragment}")

            combined = self.combine_outcomes(outcome, fragment)
            if isinstance(combined, Conflict):
                return combined
            outcome = combined
        return outcome if outcome is not None else Outcome()

    def replay(
        self,
        constructor: Invocation,
        sequence: InvocationSequence,
        numbering: Numbering,
        *,
        linearization: InvocationSequence | None = None,
        visibility: Visibility | None = None,
    ) -> Outcome:
        """Apply ``sequence`` in order to a freshly constructed object.

        Raises:
            ExecutionError: If construction or a call raises an exception
                the call did not declare as expected.
        """
        results: dict[int, str] = {}
        current = constructor
        try:
            obj = constructor.invoke()
            for current in sequence:
                number = numbering.number(current)
                results[number] = self.canonicalize(current.invoke(obj))
        except OracleError:
            raise
        except Exception as e:
            raise ExecutionError(current, sequence, linearization, visibility) from e
        return Outcome(results)

    # --- Merging ---

    def combine_outcomes(self, base: Outcome | None, extension: Outcome) -> Outcome | Conflict:
        """Merge ``extension`` into ``base``.

        Calls missing from ``base`` are copied in; calls present in both
        must have compatible results, otherwise the merge is a Conflict.
        """
        if base is None:
            return extension
        combined = dict(base)
        for call_id, value in extension.items():
            if call_id not in base:
                combined[call_id] = value
            elif not self.compatible(call_id, base[call_id], value):
                return Conflict(call_id, base[call_id], value)
        return Outcome(combined)

    def compatible(self, call_id: int, first: str, second: str) -> bool:
        return self.relax_returns or first == second

    # --- Driving the enumeration ---

    def _evaluate(
        self,
        constructor: Invocation,
        configurations: Iterator[Configuration],
        numbering: Numbering,
    ) -> OutcomeSet:
        acc = _Accumulator()
        if self.workers > 1:
            self._evaluate_parallel(constructor, configurations, numbering, acc)
        else:
            for linearization, visibility in self._bounded(configurations, acc):
                if self.sink.wants("visibility"):
                    self._emit("visibility", str(visibility))
                result = self.execute(constructor, linearization, visibility, numbering)
                self._record(acc, visibility, result)
        return acc.freeze()

    def _evaluate_parallel(
        self,
        constructor: Invocation,
        configurations: Iterator[Configuration],
        numbering: Numbering,
        acc: _Accumulator,
    ) -> None:
        window = self.workers * 4
        pending: dict[Future[Outcome | Conflict], Visibility] = {}
        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="linearity")
        try:
            for linearization, visibility in self._bounded(configurations, acc):
                if self.sink.wants("visibility"):
                    self._emit("visibility", str(visibility))
                future = executor.submit(self.execute, constructor, linearization, visibility, numbering)
                pending[future] = visibility
                if len(pending) >= window:
                    self._drain(pending, acc, keep=window - 1)
            self._drain(pending, acc, keep=0)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _drain(
        self,
        pending: dict[Future[Outcome | Conflict], Visibility],
        acc: _Accumulator,
        keep: int,
    ) -> None:
        """Record results in submission order until at most ``keep`` remain pending.

        Only the oldest future is ever recorded, waiting for it if needed, so
        the record order (and the diagnostics it emits) matches a sequential
        run regardless of which worker finishes first.
        """
        while pending:
            future = next(iter(pending))
            if len(pending) <= keep and not future.done():
                return
            visibility = pending.pop(future)
            self._record(acc, visibility, future.result())

    def _bounded(self, configurations: Iterator[Configuration], acc: _Accumulator) -> Iterator[Configuration]:
        for index, configuration in enumerate(configurations):
            if self.max_configurations is not None and index >= self.max_configurations:
                acc.complete = False
                self._emit(
                    "cutoff",
                    f"stopped after {self.max_configurations} configurations; the outcome set may be incomplete",
                    max_configurations=self.max_configurations,
                )
                return
            acc.configurations += 1
            yield configuration

    def _record(self, acc: _Accumulator, visibility: Visibility, result: Outcome | Conflict) -> None:
        if isinstance(result, Conflict):
            acc.rejected += 1
            self._emit("conflict", f"{visibility}: {result}", call_id=result.call_id)
            return
        if self.sink.wants("outcome"):
            self._emit("outcome", str(result))
        acc.outcomes.add(result)
        if visibility.is_complete():
            acc.atomic.add(result)

    def _emit(self, kind: str, message: str, **details: Any) -> None:
        if self.sink.wants(kind):
            self.sink.emit(DiagnosticEvent(kind, message, details))


def collect_outcomes(
    harness: Harness,
    weak_atomicity: bool = False,
    relax_returns: bool = False,
    **kwargs: Any,
) -> OutcomeSet:
    """Shortcut for ``OutcomeCollector(weak_atomicity, relax_returns, **kwargs).collect(harness)``."""
    return OutcomeCollector(weak_atomicity, relax_returns, **kwargs).collect(harness)
