"""
Synthetic dataset generator for dose-trend power analysis.

Generates one simulated study per call: ``group_size`` independent normal
observations for each dose level, with the control mean and standard
deviation scaled by the scenario's multipliers. Observations are stored
column-wise; dose blocks appear in increasing dose order, control first,
which is also the order in which values are drawn from the generator.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from ..core.design import Design, EndpointSpec
from ..errors import ConfigurationError


@dataclass(frozen=True)
class Dataset:
    """All observations of one endpoint in one simulated study.

    Attributes:
        endpoint: Endpoint name.
        iteration: 1-based iteration index.
        doses: Dose level of each observation.
        subject_ids: Subject identifier within its dose group (1-based).
        values: Simulated measurements.
    """

    endpoint: str
    iteration: int
    doses: np.ndarray
    subject_ids: np.ndarray
    values: np.ndarray

    def __len__(self):
        return len(self.values)

    @property
    def dose_levels(self) -> List[int]:
        """Dose levels present, in increasing order."""
        return [int(d) for d in np.unique(self.doses)]

    def groups(self) -> List[np.ndarray]:
        """Observation values split by dose level, in increasing dose order."""
        return [self.values[self.doses == dose] for dose in self.dose_levels]

    def to_frame(self):
        """One row per observation as a pandas DataFrame."""
        import pandas as pd

        return pd.DataFrame(
            {
                "endpoint": self.endpoint,
                "iteration": self.iteration,
                "dose": self.doses,
                "subject_id": self.subject_ids,
                "value": self.values,
            }
        )


def generating_parameters(design: Design, endpoint: EndpointSpec) -> List[Tuple[int, float, float]]:
    """Return ``(dose, mean, sd)`` of the normal distribution used for each dose.

    Dose 0 always yields the unscaled control mean and SD. Every mapping is
    resolved here, so a missing dose fails before anything is drawn.

    Raises:
        MissingDoseMappingError: If the scenario does not cover a dose level.
    """
    params = []
    for dose in design.dose_levels:
        effect, variance = design.scenario.multipliers(dose)
        params.append((dose, endpoint.control_mean * effect, endpoint.control_sd * variance))
    return params


def generate_dataset(design: Design, endpoint: EndpointSpec, iteration: int, rng: np.random.Generator) -> Dataset:
    """Generate one synthetic dataset for *endpoint*.

    Args:
        design: Study design.
        endpoint: Endpoint to simulate (must belong to *design*).
        iteration: 1-based iteration index, used for labelling only.
        rng: Random generator; draws are consumed dose by dose in
            increasing order, ``group_size`` values per dose.

    Returns:
        ``Dataset`` with ``group_size × len(dose_levels)`` observations.
    """
    if not 1 <= iteration <= design.iteration_count:
        raise ConfigurationError(f"iteration must be in [1, {design.iteration_count}], got {iteration}")

    params = generating_parameters(design, endpoint)
    n = design.group_size

    doses = np.repeat(np.array([p[0] for p in params], dtype=np.int64), n)
    means = np.repeat(np.array([p[1] for p in params]), n)
    sds = np.repeat(np.array([p[2] for p in params]), n)
    subject_ids = np.tile(np.arange(1, n + 1, dtype=np.int64), len(params))

    # Element-wise draws consume the stream in array order (control block first)
    values = rng.normal(means, sds)

    return Dataset(
        endpoint=endpoint.name,
        iteration=iteration,
        doses=doses,
        subject_ids=subject_ids,
        values=np.asarray(values, dtype=np.float64),
    )
