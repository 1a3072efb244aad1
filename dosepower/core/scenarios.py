"""
Scenario builders for DosePower.

A scenario describes the assumed true biology: how much the mean moves
and how much the spread grows at each dose. Builders return validated
``Scenario`` objects with an explicit multiplier for every dose level;
nothing is left to a default.
"""

from typing import Dict, Mapping, Optional, Sequence

from ..utils.validators import _validate_dose_levels, _validate_numeric_parameter
from .design import CONTROL_DOSE, IDENTITY_MULTIPLIER, Scenario

# Named presets.
# "null" has no effect and no heteroscedasticity (power should equal alpha);
# "modeled" is the toxicology reference case: a 15% decrease of the mean at
# the top dose with the standard deviation doubled, both growing linearly
# with dose level.
DEFAULT_SCENARIO_CONFIG: Dict[str, Dict[str, float]] = {
    "null": {
        "top_effect": 1.0,
        "top_variance": 1.0,
    },
    "modeled": {
        "top_effect": 0.85,
        "top_variance": 2.0,
    },
}


def _interpolate(dose_levels: Sequence[int], top_value: float) -> Dict[int, float]:
    """Multipliers growing linearly from 1.0 at control to *top_value* at the top dose."""
    top_dose = dose_levels[-1]
    return {dose: IDENTITY_MULTIPLIER + (top_value - IDENTITY_MULTIPLIER) * dose / top_dose for dose in dose_levels}


def linear_scenario(
    label: str,
    dose_levels: Sequence[int],
    top_effect: float,
    top_variance: float = 1.0,
) -> Scenario:
    """Build a scenario with linearly interpolated multipliers.

    The effect multiplier moves from 1.0 at control to *top_effect* at the
    highest dose, and the variance (SD) multiplier grows proportionally to
    dose level from 1.0 to *top_variance*. For doses ``0..3`` with
    ``top_effect=0.85`` and ``top_variance=2.0`` this gives effects
    ``1.0, 0.95, 0.9, 0.85`` and SD multipliers ``1.0, 1.333, 1.667, 2.0``.

    Args:
        label: Scenario name.
        dose_levels: Strictly increasing dose levels starting at 0.
        top_effect: Mean multiplier at the highest dose.
        top_variance: SD multiplier at the highest dose (> 0).

    Returns:
        Validated ``Scenario``.
    """
    dose_levels = list(dose_levels)
    check = _validate_dose_levels(dose_levels)
    check = check.merge(_validate_numeric_parameter(top_effect, "top_effect"))
    check = check.merge(_validate_numeric_parameter(top_variance, "top_variance"))
    check.raise_if_invalid()

    effects = _interpolate(dose_levels, float(top_effect))
    variances = _interpolate(dose_levels, float(top_variance))
    effects[CONTROL_DOSE] = IDENTITY_MULTIPLIER
    variances[CONTROL_DOSE] = IDENTITY_MULTIPLIER
    return Scenario.from_mappings(label, effects, variances)


def null_scenario(dose_levels: Sequence[int], label: str = "null") -> Scenario:
    """Scenario with no true effect and constant variance at every dose."""
    return linear_scenario(label, dose_levels, top_effect=1.0, top_variance=1.0)


def scenario_from_mappings(
    label: str,
    effects: Mapping[int, float],
    variances: Mapping[int, float],
) -> Scenario:
    """Build a scenario from explicit ``{dose: multiplier}`` mappings."""
    return Scenario.from_mappings(label, dict(effects), dict(variances))


def preset_scenarios(dose_levels: Sequence[int], configs: Optional[Mapping[str, Mapping[str, float]]] = None) -> Dict[str, Scenario]:
    """Instantiate named presets for the given dose levels.

    Args:
        dose_levels: Dose levels every preset must cover.
        configs: ``{label: {"top_effect": ..., "top_variance": ...}}``.
            Defaults to ``DEFAULT_SCENARIO_CONFIG``.
    """
    configs = configs if configs is not None else DEFAULT_SCENARIO_CONFIG
    return {
        label: linear_scenario(label, dose_levels, config["top_effect"], config.get("top_variance", 1.0))
        for label, config in configs.items()
    }


class ScenarioRunner:
    """Runs the same power analysis under several scenarios.

    The user's configured scenario is run first, followed by every named
    preset, so a design can be judged against both "no true effect" and
    the reference toxicology effect in one call.
    """

    def __init__(self, scenarios: Mapping[str, Scenario]):
        """Initialise the scenario runner.

        Args:
            scenarios: Ordered mapping of label to ``Scenario``.
        """
        self.scenarios = dict(scenarios)

    def run_power_analysis(self, run_find_power_func, progress=None) -> Dict:
        """
        Run the power analysis once per scenario.

        Args:
            run_find_power_func: Callable taking ``scenario=`` and returning
                a power result dictionary
            progress: Optional ProgressReporter to start before the first run

        Returns:
            Dictionary with per-scenario results and a long-form comparison
            table (one row per scenario and endpoint)
        """
        import pandas as pd

        from .results import build_power_table

        if progress is not None:
            progress.start()

        results = {}
        for label, scenario in self.scenarios.items():
            results[label] = run_find_power_func(scenario=scenario)

        comparison = pd.concat(
            [build_power_table(r["results"]["power_results"], scenario=label) for label, r in results.items()],
            ignore_index=True,
        )
        return {
            "analysis_type": "power",
            "scenarios": results,
            "comparison": comparison,
        }
