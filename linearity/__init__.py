"""
Linearity: consistency oracles for concurrent objects.

Given a harness (a constructor plus per-thread call sequences on one shared
object), compute every outcome that is legal under a consistency model.
Collect the set under sequential consistency::

    from linearity.harness import HarnessBuilder
    from linearity.outcomes import collect_outcomes

    outcomes = collect_outcomes(harness)

Or under weak atomicity, optionally with relaxed return checks::

    from linearity.outcomes import OutcomeCollector

    outcomes = OutcomeCollector(weak_atomicity=True, relax_returns=True).collect(harness)

The enumerators are usable on their own::

    from linearity.linearization import enumerate_linearizations
    from linearity.visibility import enumerate_visibilities
"""

from linearity.common import (
    Conflict,
    ExecutionError,
    MalformedHarnessError,
    OracleError,
    Outcome,
    OutcomeSet,
    UnknownInvocationError,
)
from linearity.config import OracleConfig
from linearity.harness import Harness, HarnessBuilder
from linearity.invocation import Invocation, InvocationSequence, Numbering
from linearity.outcomes import OutcomeCollector, collect_outcomes

__version__ = "0.0.1"

__all__ = [
    "Conflict",
    "ExecutionError",
    "Harness",
    "HarnessBuilder",
    "Invocation",
    "InvocationSequence",
    "MalformedHarnessError",
    "Numbering",
    "OracleConfig",
    "OracleError",
    "Outcome",
    "OutcomeCollector",
    "OutcomeSet",
    "UnknownInvocationError",
    "collect_outcomes",
]
