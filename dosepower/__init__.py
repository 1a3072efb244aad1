"""DosePower - Monte Carlo power analysis for dose-trend tests.

A simulation-based framework for the power of the Jonckheere-Terpstra
ordered-alternative test in toxicology designs with a control group and
increasing dose groups, driven by pilot summary statistics.

Example:
    >>> from dosepower import DosePower
    >>>
    >>> model = DosePower("liver=2.08(0.13), kidney=1.52(0.09)")
    >>> model.use_linear_scenario(top_effect=0.85, top_variance=2.0)
    >>> model.find_power(group_size=10)
    >>>
    >>> model.find_group_size(from_size=5, to_size=30, by=5)
"""

from importlib.metadata import version as _get_version

from .core import Design, EndpointSpec, PowerResult, Scenario, estimate_power, linear_scenario, make_design, null_scenario
from .errors import ConfigurationError, DegenerateDatasetError, MissingDoseMappingError
from .model import DosePower
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter
from .stats.data_generation import generate_dataset
from .stats.trend_tests import jonckheere_test

__version__ = _get_version("DosePower")
__author__ = "Pawel Lenartowicz"
__email__ = "pawellenartowicz@europe.com"

__all__ = [
    "DosePower",
    "Design",
    "EndpointSpec",
    "Scenario",
    "PowerResult",
    "make_design",
    "linear_scenario",
    "null_scenario",
    "estimate_power",
    "generate_dataset",
    "jonckheere_test",
    "ConfigurationError",
    "MissingDoseMappingError",
    "DegenerateDatasetError",
    "SimulationCancelled",
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
