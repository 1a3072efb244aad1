"""
Exception types for DosePower.

Configuration problems are raised before any random draw is made.
Dataset problems abort the run and name the offending endpoint and
iteration, since skipping an iteration would bias the power estimate.
"""

from typing import List, Optional


class ConfigurationError(ValueError):
    """Raised when a study design is malformed."""

    pass


class MissingDoseMappingError(ConfigurationError):
    """Raised when a scenario has no multiplier for a requested dose level."""

    def __init__(self, dose: int, label: str = "", kind: str = "effect/variance"):
        self.dose = dose
        self.label = label
        scenario = f" in scenario '{label}'" if label else ""
        super().__init__(f"No {kind} multiplier defined for dose level {dose}{scenario}")
        self.kind = kind

    def __reduce__(self):
        return (MissingDoseMappingError, (self.dose, self.label, self.kind))


class DegenerateDatasetError(RuntimeError):
    """Raised when the trend test is undefined for a generated dataset.

    Attributes:
        endpoint: Name of the endpoint being simulated (``None`` when the
            test was called outside a simulation run).
        iteration: 1-based iteration index, or ``None``.
        completed_results: Power results of endpoints that finished
            before the failure, in declared order.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        iteration: Optional[int] = None,
        completed_results: Optional[List] = None,
    ):
        self.reason = message
        self.endpoint = endpoint
        self.iteration = iteration
        self.completed_results = list(completed_results) if completed_results else []
        if endpoint is not None:
            message = f"endpoint '{endpoint}', iteration {iteration}: {message}"
        super().__init__(message)

    def __reduce__(self):
        return (DegenerateDatasetError, (self.reason, self.endpoint, self.iteration, self.completed_results))

    def with_context(self, endpoint: str, iteration: int, completed_results: Optional[List] = None):
        """Return a copy of this error tagged with the simulation position."""
        return DegenerateDatasetError(self.reason, endpoint, iteration, completed_results)
