"""Core components for the DosePower framework.

Re-exports the foundational building blocks:

- ``EndpointSpec``, ``Scenario``, ``Design``: study design records.
- ``linear_scenario``, ``null_scenario``, ``DEFAULT_SCENARIO_CONFIG``,
  ``ScenarioRunner``:
  dose-to-multiplier scenarios and multi-scenario runs.
- ``SimulationRunner``, ``estimate_power``, ``SIGNIFICANCE_LEVEL``: Monte
  Carlo power estimation.
- ``PowerResult``, ``TrialOutcome``, ``ResultsProcessor``,
  ``build_power_table``: power results and tables.
"""

from .design import Design, EndpointSpec, Scenario, make_design
from .scenarios import (
    DEFAULT_SCENARIO_CONFIG,
    ScenarioRunner,
    linear_scenario,
    null_scenario,
    preset_scenarios,
    scenario_from_mappings,
)
from .results import PowerResult, ResultsProcessor, TrialOutcome, build_power_table, format_percent
from .simulation import SIGNIFICANCE_LEVEL, SimulationRunner, estimate_power, iter_trial_outcomes

__all__ = [
    # Design
    "EndpointSpec",
    "Scenario",
    "Design",
    "make_design",
    # Scenarios
    "DEFAULT_SCENARIO_CONFIG",
    "ScenarioRunner",
    "linear_scenario",
    "null_scenario",
    "preset_scenarios",
    "scenario_from_mappings",
    # Simulation
    "SIGNIFICANCE_LEVEL",
    "SimulationRunner",
    "estimate_power",
    "iter_trial_outcomes",
    # Results
    "PowerResult",
    "TrialOutcome",
    "ResultsProcessor",
    "build_power_table",
    "format_percent",
]
