"""
Results processing for DosePower.

Turns trial outcomes into power estimates and assembles the in-memory
result tables returned to the caller.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..errors import ConfigurationError

POWER_TABLE_COLUMNS = ["endpoint", "power", "power_percent", "n_rejected", "n_simulations"]


def format_percent(proportion: float) -> str:
    """Format a proportion as a percentage with two decimals (``0.8235 -> "82.35%"``)."""
    return f"{100.0 * proportion:.2f}%"


@dataclass(frozen=True)
class TrialOutcome:
    """Result of the trend test on one simulated dataset."""

    endpoint: str
    iteration: int
    p_value: float
    rejected: bool


@dataclass(frozen=True)
class PowerResult:
    """Estimated power for one endpoint.

    Attributes:
        endpoint: Endpoint name.
        n_rejected: Iterations in which H0 was rejected.
        iteration_count: Iterations simulated.
    """

    endpoint: str
    n_rejected: int
    iteration_count: int

    def __post_init__(self):
        if self.iteration_count <= 0:
            raise ConfigurationError(f"iteration_count must be positive, got {self.iteration_count}")
        if not 0 <= self.n_rejected <= self.iteration_count:
            raise ConfigurationError(f"n_rejected must lie in [0, {self.iteration_count}], got {self.n_rejected}")

    @property
    def power_estimate(self) -> float:
        """Proportion of iterations rejecting H0, in [0, 1]."""
        return self.n_rejected / self.iteration_count

    @property
    def power_estimate_percent(self) -> str:
        """Power as a string with two decimals and a percent sign."""
        return format_percent(self.power_estimate)

    @property
    def monte_carlo_se(self) -> float:
        """Binomial standard error of the power estimate."""
        p = self.power_estimate
        return (p * (1 - p) / self.iteration_count) ** 0.5

    def as_row(self) -> Dict[str, object]:
        return {
            "endpoint": self.endpoint,
            "power": self.power_estimate,
            "power_percent": self.power_estimate_percent,
            "n_rejected": self.n_rejected,
            "n_simulations": self.iteration_count,
        }


def fold_outcomes(endpoint: str, outcomes: Iterable[TrialOutcome], iteration_count: int) -> PowerResult:
    """Reduce a stream of trial outcomes into a ``PowerResult``.

    The stream is consumed lazily; every outcome must belong to *endpoint*
    and exactly *iteration_count* outcomes must be supplied.
    """
    n_seen = 0
    n_rejected = 0
    for outcome in outcomes:
        if outcome.endpoint != endpoint:
            raise ConfigurationError(f"Outcome for endpoint '{outcome.endpoint}' mixed into '{endpoint}'")
        n_seen += 1
        n_rejected += bool(outcome.rejected)
    if n_seen != iteration_count:
        raise ConfigurationError(f"Expected {iteration_count} outcomes for '{endpoint}', got {n_seen}")
    return PowerResult(endpoint, n_rejected, iteration_count)


def build_power_table(results: Sequence[PowerResult], scenario: Optional[str] = None) -> pd.DataFrame:
    """Result table with one row per endpoint, in the given order.

    Args:
        results: Power results in declared endpoint order.
        scenario: Optional scenario label added as the first column.
    """
    table = pd.DataFrame([r.as_row() for r in results], columns=POWER_TABLE_COLUMNS)
    if scenario is not None:
        table.insert(0, "scenario", scenario)
    return table


class ResultsProcessor:
    """Aggregates power results across group sizes.

    Finds, per endpoint, the first group size whose estimated power
    reaches the target.
    """

    def __init__(self, target_power: float = 80.0):
        """Initialise the results processor.

        Args:
            target_power: Target power as a percentage (0–100).
        """
        self.target_power = target_power

    def process_group_size_results(
        self,
        results: List[Tuple[int, List[PowerResult]]],
        endpoints: List[str],
    ) -> Dict[str, object]:
        """
        Process power results from a group size sweep.

        Args:
            results: List of (group_size, power_results) tuples
            endpoints: Endpoint names in declared order

        Returns:
            Dictionary with powers (in %) by endpoint and the first group
            size achieving the target power (-1 if never reached)
        """
        powers_by_endpoint: Dict[str, List[float]] = {name: [] for name in endpoints}
        first_achieved = dict.fromkeys(endpoints, -1)

        for group_size, power_results in results:
            by_name = {r.endpoint: r for r in power_results}
            for name in endpoints:
                power = by_name[name].power_estimate * 100
                powers_by_endpoint[name].append(power)
                if power >= self.target_power and first_achieved[name] == -1:
                    first_achieved[name] = group_size

        return {
            "group_sizes_tested": [r[0] for r in results],
            "powers_by_endpoint": powers_by_endpoint,
            "first_achieved": first_achieved,
            "target_power": self.target_power,
        }

    def group_size_table(self, results: List[Tuple[int, List[PowerResult]]]) -> pd.DataFrame:
        """Long-form table (``group_size`` plus the power table columns)."""
        frames = []
        for group_size, power_results in results:
            table = build_power_table(power_results)
            table.insert(0, "group_size", group_size)
            frames.append(table)
        if not frames:
            return pd.DataFrame(columns=["group_size"] + POWER_TABLE_COLUMNS)
        return pd.concat(frames, ignore_index=True)
