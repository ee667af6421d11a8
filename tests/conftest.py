"""
Shared fixtures for the linearity test suite.

The ``oracle_config`` and ``outcome_collector`` fixtures come from the
linearity pytest plugin, which the package registers as a ``pytest11`` entry
point.
"""

import os
import sys

import pytest

# Add parent directory to path so we can import linearity and the test objects
_linearity_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _linearity_path not in sys.path:
    sys.path.insert(0, _linearity_path)

from linearity._diagnostics import DiagnosticsRecorder
from linearity.outcomes import OutcomeCollector


@pytest.fixture
def recorder():
    """An in-memory diagnostics sink that keeps every event kind."""
    return DiagnosticsRecorder()


@pytest.fixture
def strict():
    """Collector for sequential consistency."""
    return OutcomeCollector()


@pytest.fixture
def weak():
    """Collector for weak atomicity with exact return checks."""
    return OutcomeCollector(weak_atomicity=True)


@pytest.fixture
def relaxed():
    """Collector for weak atomicity with relaxed return checks."""
    return OutcomeCollector(weak_atomicity=True, relax_returns=True)
