"""Pytest plugin selecting the consistency model for outcome oracles.

Registered through the ``pytest11`` entry point, so installing linearity is
enough.  Tests request the ``outcome_collector`` fixture and the command line
(or the ``LINEARITY_*`` environment variables) picks the model::

    pytest                                   # sequential consistency
    pytest --linearity-weak-atomicity        # relaxed visibility
    pytest --linearity-weak-atomicity --linearity-relax-returns
    pytest --linearity-max-configurations=10000

Command-line options override the environment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from linearity.config import OracleConfig
from linearity.outcomes import OutcomeCollector

if TYPE_CHECKING:
    from collections.abc import Mapping


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("linearity", "Linearity consistency oracles")
    group.addoption(
        "--linearity-weak-atomicity",
        action="store_true",
        default=None,
        help="Let calls observe only part of the preceding history when computing outcome oracles.",
    )
    group.addoption(
        "--linearity-relax-returns",
        action="store_true",
        default=None,
        help="With weak atomicity, accept differing results for the same call when merging partial replays.",
    )
    group.addoption(
        "--linearity-max-configurations",
        type=int,
        default=None,
        metavar="N",
        help="Stop each oracle computation after N (linearization, visibility) configurations.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "linearity: test computes consistency oracles with linearity")


def config_from_options(options: Any, environ: Mapping[str, str] | None = None) -> OracleConfig:
    """Merge pytest options over the environment-derived configuration.

    ``options`` is anything with pytest's ``getoption(name, default=None)``.
    """
    base = OracleConfig.from_env(environ)
    changes: dict[str, Any] = {}
    weak = options.getoption("--linearity-weak-atomicity", default=None)
    if weak is not None:
        changes["weak_atomicity"] = weak
    relax = options.getoption("--linearity-relax-returns", default=None)
    if relax is not None:
        changes["relax_returns"] = relax
    max_configurations = options.getoption("--linearity-max-configurations", default=None)
    if max_configurations is not None:
        changes["max_configurations"] = max_configurations
    return base.replace(**changes) if changes else base


@pytest.fixture
def oracle_config(pytestconfig: pytest.Config) -> OracleConfig:
    """The consistency model selected for this test session."""
    return config_from_options(pytestconfig)


@pytest.fixture
def outcome_collector(oracle_config: OracleConfig) -> OutcomeCollector:
    """An :class:`OutcomeCollector` configured from the session's options.

    Example:
        def test_counter_read_sees_increment_or_not(outcome_collector):
            outcomes = outcome_collector.collect(counter_harness())
            assert {0: "None", 1: "1"} in outcomes
    """
    return OutcomeCollector.from_config(oracle_config)
