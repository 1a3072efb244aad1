"""
Study design records for DosePower.

``EndpointSpec``, ``Scenario`` and ``Design`` are frozen dataclasses that
are validated when constructed and never mutated afterwards. A ``Design``
that exists is therefore complete: every dose level it will generate has
an effect and a variance multiplier, and dose 0 is the unperturbed
control.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Tuple

from ..errors import ConfigurationError, MissingDoseMappingError
from ..utils.validators import (
    _validate_alternative,
    _validate_dose_levels,
    _validate_endpoint,
    _validate_group_size,
    _validate_random_stream,
    _validate_seed,
    _validate_simulations,
    _ValidationResult,
)

CONTROL_DOSE = 0
IDENTITY_MULTIPLIER = 1.0


@dataclass(frozen=True)
class EndpointSpec:
    """Pilot summary statistics for one measured endpoint.

    Attributes:
        name: Endpoint identifier (e.g. ``"liver_weight"``).
        control_mean: Mean of the control group in the pilot study.
        control_sd: Standard deviation of the control group (> 0).
    """

    name: str
    control_mean: float
    control_sd: float

    def __post_init__(self):
        _validate_endpoint(self.name, self.control_mean, self.control_sd).raise_if_invalid()
        object.__setattr__(self, "control_mean", float(self.control_mean))
        object.__setattr__(self, "control_sd", float(self.control_sd))


def _freeze_mapping(mapping: Mapping[int, float], kind: str, label: str) -> Tuple[Tuple[int, float], ...]:
    """Convert a dose mapping into a dose-sorted tuple of pairs, checking values."""
    errors = []
    pairs = []
    for dose, value in mapping.items():
        if isinstance(dose, bool) or not isinstance(dose, int) or dose < 0:
            errors.append(f"{kind} mapping key {dose!r} must be a non-negative integer dose level")
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            errors.append(f"{kind} multiplier for dose {dose} must be a finite number, got {value!r}")
            continue
        pairs.append((dose, float(value)))

    if errors:
        _ValidationResult(False, [f"Scenario '{label}': {e}" for e in errors], []).raise_if_invalid()
    return tuple(sorted(pairs))


@dataclass(frozen=True)
class Scenario:
    """Dose-to-multiplier mappings describing an assumed true effect.

    The effect multiplier scales the control mean and the variance
    multiplier scales the control standard deviation at each dose level.
    Dose 0 must map to 1.0 in both mappings. Unmapped doses are errors,
    never defaulted.

    Attributes:
        label: Scenario name used in reports.
        effect_multipliers: Dose-sorted ``(dose, multiplier)`` pairs.
        variance_multipliers: Dose-sorted ``(dose, multiplier)`` pairs.
    """

    label: str
    effect_multipliers: Tuple[Tuple[int, float], ...]
    variance_multipliers: Tuple[Tuple[int, float], ...]

    def __post_init__(self):
        if not isinstance(self.label, str) or not self.label:
            raise ConfigurationError(f"Scenario label must be a non-empty string, got {self.label!r}")

        effects = _freeze_mapping(dict(self.effect_multipliers), "Effect", self.label)
        variances = _freeze_mapping(dict(self.variance_multipliers), "Variance", self.label)
        object.__setattr__(self, "effect_multipliers", effects)
        object.__setattr__(self, "variance_multipliers", variances)

        errors = []
        effect_map, variance_map = dict(effects), dict(variances)
        if effect_map.get(CONTROL_DOSE) != IDENTITY_MULTIPLIER:
            errors.append(f"Effect multiplier for control dose 0 must be 1.0, got {effect_map.get(CONTROL_DOSE)}")
        if variance_map.get(CONTROL_DOSE) != IDENTITY_MULTIPLIER:
            errors.append(f"Variance multiplier for control dose 0 must be 1.0, got {variance_map.get(CONTROL_DOSE)}")
        for dose, value in variances:
            if value <= 0:
                errors.append(f"Variance multiplier for dose {dose} must be > 0, got {value}")
        if errors:
            _ValidationResult(False, [f"Scenario '{self.label}': {e}" for e in errors], []).raise_if_invalid()

    @classmethod
    def from_mappings(cls, label: str, effects: Mapping[int, float], variances: Mapping[int, float]) -> "Scenario":
        """Build a scenario from plain ``{dose: multiplier}`` dictionaries."""
        return cls(label, tuple(effects.items()), tuple(variances.items()))

    @property
    def effect_map(self) -> Dict[int, float]:
        """Effect multipliers as a ``{dose: multiplier}`` dict."""
        return dict(self.effect_multipliers)

    @property
    def variance_map(self) -> Dict[int, float]:
        """Variance multipliers as a ``{dose: multiplier}`` dict."""
        return dict(self.variance_multipliers)

    def multipliers(self, dose: int) -> Tuple[float, float]:
        """Return ``(effect, variance)`` multipliers for *dose*.

        Raises:
            MissingDoseMappingError: If either mapping lacks *dose*.
        """
        if dose == CONTROL_DOSE:
            return IDENTITY_MULTIPLIER, IDENTITY_MULTIPLIER
        effect = self.effect_map.get(dose)
        if effect is None:
            raise MissingDoseMappingError(dose, self.label, "effect")
        variance = self.variance_map.get(dose)
        if variance is None:
            raise MissingDoseMappingError(dose, self.label, "variance")
        return effect, variance

    def require(self, dose_levels: Iterable[int]) -> None:
        """Check that every dose in *dose_levels* is mapped."""
        for dose in dose_levels:
            self.multipliers(dose)


@dataclass(frozen=True)
class Design:
    """Complete, read-only description of one simulated study design.

    Attributes:
        endpoints: Endpoints in declared order (names unique).
        scenario: Assumed true effect.
        group_size: Animals per dose group, identical for all groups.
        dose_levels: Strictly increasing dose levels starting at 0.
        iteration_count: Number of independent simulated studies.
        random_seed: Seed of the run's random stream(s).
        alternative: Trend test direction (``"two-sided"``,
            ``"increasing"`` or ``"decreasing"``).
        random_stream: ``"run"`` for one generator consumed in a fixed
            order, ``"iteration"`` for an independent generator per
            ``(endpoint, iteration)``.
    """

    endpoints: Tuple[EndpointSpec, ...]
    scenario: Scenario
    group_size: int
    dose_levels: Tuple[int, ...]
    iteration_count: int
    random_seed: int
    alternative: str = "two-sided"
    random_stream: str = "run"
    _index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "endpoints", tuple(self.endpoints))
        object.__setattr__(self, "dose_levels", tuple(self.dose_levels))

        result = _ValidationResult(True, [], [])
        if not self.endpoints:
            result = result.merge(_ValidationResult(False, ["At least one endpoint is required"], []))
        for endpoint in self.endpoints:
            if not isinstance(endpoint, EndpointSpec):
                result = result.merge(_ValidationResult(False, [f"Endpoints must be EndpointSpec, got {type(endpoint).__name__}"], []))
        names = [getattr(e, "name", None) for e in self.endpoints]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            result = result.merge(_ValidationResult(False, [f"Duplicate endpoint names: {', '.join(duplicates)}"], []))
        if not isinstance(self.scenario, Scenario):
            result = result.merge(_ValidationResult(False, [f"scenario must be a Scenario, got {type(self.scenario).__name__}"], []))

        for check in (
            _validate_group_size(self.group_size),
            _validate_dose_levels(self.dose_levels),
            _validate_iteration_count(self.iteration_count),
            _validate_seed(self.random_seed),
            _validate_alternative(self.alternative),
            _validate_random_stream(self.random_stream),
        ):
            result = result.merge(check)
        result.raise_if_invalid()

        self.scenario.require(self.dose_levels)
        object.__setattr__(self, "_index", {e.name: i for i, e in enumerate(self.endpoints)})

    @property
    def endpoint_names(self):
        return [e.name for e in self.endpoints]

    @property
    def n_observations(self) -> int:
        """Observations per dataset (``group_size × number of dose levels``)."""
        return self.group_size * len(self.dose_levels)

    def endpoint(self, name: str) -> EndpointSpec:
        """Look up an endpoint by name."""
        try:
            return self.endpoints[self._index[name]]
        except KeyError:
            raise ConfigurationError(f"Endpoint '{name}' not found. Available: {', '.join(self.endpoint_names)}") from None

    def endpoint_index(self, endpoint: EndpointSpec) -> int:
        """Position of *endpoint* in declared order."""
        index = self._index.get(endpoint.name)
        if index is None or self.endpoints[index] != endpoint:
            raise ConfigurationError(f"Endpoint '{endpoint.name}' is not part of this design")
        return index

    def with_changes(self, **changes) -> "Design":
        """Return a validated copy with some fields replaced."""
        from dataclasses import replace

        return replace(self, **changes)


def _validate_iteration_count(iteration_count) -> _ValidationResult:
    """Iteration count must be a positive integer; the low-count warning is reported elsewhere."""
    result = _validate_simulations(iteration_count)
    return _ValidationResult(result.is_valid, result.errors, [])


def make_design(
    endpoints: Iterable[EndpointSpec],
    scenario: Scenario,
    group_size: int,
    dose_levels: Iterable[int] = (0, 1, 2, 3),
    iteration_count: int = 10000,
    random_seed: int = 1563,
    alternative: str = "two-sided",
    random_stream: str = "run",
) -> Design:
    """Convenience constructor accepting any iterables."""
    return Design(
        endpoints=tuple(endpoints),
        scenario=scenario,
        group_size=group_size,
        dose_levels=tuple(dose_levels),
        iteration_count=iteration_count,
        random_seed=random_seed,
        alternative=alternative,
        random_stream=random_stream,
    )
