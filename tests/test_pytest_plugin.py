"""Tests for the linearity pytest plugin."""

from linearity.config import MAX_CONFIGURATIONS_ENV, WEAK_ATOMICITY_ENV, OracleConfig
from linearity.outcomes import OutcomeCollector
from linearity.pytest_plugin import config_from_options


class FakeOptions:
    """Stands in for pytest.Config: only ``getoption`` is used."""

    def __init__(self, **options):
        self.options = {f"--linearity-{k.replace('_', '-')}": v for k, v in options.items()}

    def getoption(self, name, default=None):
        return self.options.get(name, default)


# ---------------------------------------------------------------------------
# config_from_options
# ---------------------------------------------------------------------------


class TestConfigFromOptions:
    def test_no_options_no_environment(self) -> None:
        """No options and no environment give the defaults."""
        assert config_from_options(FakeOptions(), environ={}) == OracleConfig()

    def test_options(self) -> None:
        """Command-line options become config fields."""
        options = FakeOptions(weak_atomicity=True, relax_returns=True, max_configurations=20)
        config = config_from_options(options, environ={})
        assert config == OracleConfig(weak_atomicity=True, relax_returns=True, max_configurations=20)

    def test_environment_used_when_option_absent(self) -> None:
        """Unset options fall back to the environment."""
        config = config_from_options(FakeOptions(), environ={WEAK_ATOMICITY_ENV: "1", MAX_CONFIGURATIONS_ENV: "9"})
        assert config.weak_atomicity
        assert config.max_configurations == 9

    def test_option_overrides_environment(self) -> None:
        """An option wins over its environment variable."""
        config = config_from_options(
            FakeOptions(max_configurations=3),
            environ={WEAK_ATOMICITY_ENV: "1", MAX_CONFIGURATIONS_ENV: "9"},
        )
        assert config.weak_atomicity
        assert config.max_configurations == 3


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def test_oracle_config_fixture(oracle_config):
    """The oracle_config fixture yields an OracleConfig."""
    assert isinstance(oracle_config, OracleConfig)


def test_outcome_collector_fixture(outcome_collector, oracle_config):
    """The outcome_collector fixture follows oracle_config."""
    assert isinstance(outcome_collector, OutcomeCollector)
    assert outcome_collector.weak_atomicity == oracle_config.weak_atomicity
