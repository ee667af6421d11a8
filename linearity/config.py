"""Consistency-model configuration.

Two switches select the consistency model (weak atomicity, and relaxed
return-value checks on top of it).  Two more bound the search.  Each can be
set in the environment, which is how CI jobs pick a model without touching
test code::

    LINEARITY_WEAK_ATOMICITY=1 LINEARITY_MAX_CONFIGURATIONS=5000 pytest tests/
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass

# Environment variables read by OracleConfig.from_env()
WEAK_ATOMICITY_ENV = "LINEARITY_WEAK_ATOMICITY"
RELAX_RETURNS_ENV = "LINEARITY_RELAX_RETURNS"
MAX_CONFIGURATIONS_ENV = "LINEARITY_MAX_CONFIGURATIONS"
WORKERS_ENV = "LINEARITY_WORKERS"


@dataclass(frozen=True)
class OracleConfig:
    """Settings for an :class:`~linearity.outcomes.OutcomeCollector`.

    Attributes:
        weak_atomicity: Enumerate relaxed visibility assignments, not only
            full-prefix replay.
        relax_returns: Treat any two results for the same call as
            compatible when merging partial replays.  Only meaningful
            together with ``weak_atomicity``.
        max_configurations: Stop after evaluating this many (linearization,
            visibility) pairs.  None means no limit.
        workers: Number of worker threads evaluating configurations.
    """

    weak_atomicity: bool = False
    relax_returns: bool = False
    max_configurations: int | None = None
    workers: int = 1

    def __post_init__(self) -> None:
        if self.max_configurations is not None and self.max_configurations < 1:
            raise ValueError(f"max_configurations must be positive, got {self.max_configurations}")
        if self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OracleConfig:
        """Build a config from ``LINEARITY_*`` environment variables."""
        if environ is None:
            environ = os.environ
        max_configurations = _int_from_env(environ, MAX_CONFIGURATIONS_ENV)
        workers = _int_from_env(environ, WORKERS_ENV)
        return cls(
            weak_atomicity=environ.get(WEAK_ATOMICITY_ENV) == "1",
            relax_returns=environ.get(RELAX_RETURNS_ENV) == "1",
            max_configurations=max_configurations,
            workers=workers if workers is not None else 1,
        )

    def replace(self, **changes: object) -> OracleConfig:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]


def _int_from_env(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
