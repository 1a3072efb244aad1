"""
Validation utilities for dose-trend power analysis.

This module provides validation functions for design inputs and
simulation parameters. Every check collects messages into a
``_ValidationResult``; callers decide when to raise.
"""

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from ..errors import ConfigurationError

__all__ = []

VALID_ALTERNATIVES = ("two-sided", "increasing", "decreasing")
VALID_RANDOM_STREAMS = ("run", "iteration")
MAX_SEED = 2**32 - 1


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ConfigurationError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ConfigurationError(error_msg)

    def merge(self, other: "_ValidationResult") -> "_ValidationResult":
        """Combine two results into one."""
        return _ValidationResult(
            self.is_valid and other.is_valid,
            self.errors + other.errors,
            self.warnings + other.warnings,
        )


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type (``bool`` never counts as a number)."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, [])

    if isinstance(value, float) and not math.isfinite(value):
        errors.append(f"{name} must be finite, got {value}")
        return _ValidationResult(False, errors, [])

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_power(power: Any) -> _ValidationResult:
    """Validate target power parameter (0-100%)."""
    return _validate_numeric_parameter(power, "Power", min_val=0, max_val=100)


def _validate_simulations(n_simulations: Any) -> _ValidationResult:
    """Validate number of simulated studies (iteration count)."""
    result = _validate_numeric_parameter(n_simulations, "Number of simulations", expected_types=(int,), min_val=1)
    if result.is_valid and n_simulations < 1000:
        result.warnings.append(
            f"Low simulation count ({n_simulations}). Consider using at least 1000 for reliable results."
        )
    return result


def _validate_group_size(group_size: Any) -> _ValidationResult:
    """Validate animals per dose group (positive integer)."""
    return _validate_numeric_parameter(group_size, "group_size", expected_types=(int,), min_val=1)


def _validate_group_size_range(from_size: Any, to_size: Any, by: Any) -> _ValidationResult:
    """Validate group size sweep parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    for param, name in [(from_size, "from_size"), (to_size, "to_size"), (by, "by")]:
        if isinstance(param, bool) or not isinstance(param, int) or param <= 0:
            errors.append(f"{name} must be a positive integer, got {param}")

    if errors:
        return _ValidationResult(False, errors, warnings)

    if from_size >= to_size:
        errors.append(f"from_size ({from_size}) must be less than to_size ({to_size})")

    if by > (to_size - from_size):
        errors.append(f"Step size 'by' ({by}) is larger than range ({to_size - from_size}). This will only test one group size.")

    n_tests = len(range(from_size, to_size + 1, by))
    if n_tests > 50:
        warnings.append(f"Large number of group sizes to test ({n_tests}). This may take significant time.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_dose_levels(dose_levels: Any) -> _ValidationResult:
    """Validate dose levels: at least two, strictly increasing integers starting at 0."""
    errors: List[str] = []

    if isinstance(dose_levels, (str, bytes)) or not isinstance(dose_levels, Sequence):
        return _ValidationResult(False, [f"dose_levels must be a sequence of integers, got {type(dose_levels).__name__}"], [])

    for dose in dose_levels:
        if isinstance(dose, bool) or not isinstance(dose, int):
            errors.append(f"Dose level {dose!r} must be an integer")
    if errors:
        return _ValidationResult(False, errors, [])

    if len(dose_levels) < 2:
        errors.append(f"At least two dose levels (control plus one dose) are required, got {len(dose_levels)}")
    elif dose_levels[0] != 0:
        errors.append(f"Dose levels must start at 0 (control), got {dose_levels[0]}")

    if any(b <= a for a, b in zip(dose_levels, dose_levels[1:])):
        errors.append(f"Dose levels must be strictly increasing, got {list(dose_levels)}")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate random seed (non-negative integer)."""
    return _validate_numeric_parameter(seed, "seed", expected_types=(int,), min_val=0, max_val=MAX_SEED)


def _validate_choice(value: Any, name: str, valid_values: Tuple[str, ...]) -> _ValidationResult:
    """Validate that *value* is one of a fixed set of strings."""
    if value not in valid_values:
        options = ", ".join(f"'{v}'" for v in valid_values)
        return _ValidationResult(False, [f"{name} must be one of {options}, got {value!r}"], [])
    return _ValidationResult(True, [], [])


def _validate_alternative(alternative: Any) -> _ValidationResult:
    """Validate trend test direction."""
    return _validate_choice(alternative, "alternative", VALID_ALTERNATIVES)


def _validate_random_stream(random_stream: Any) -> _ValidationResult:
    """Validate random stream mode."""
    return _validate_choice(random_stream, "random_stream", VALID_RANDOM_STREAMS)


def _validate_endpoint(name: Any, control_mean: Any, control_sd: Any) -> _ValidationResult:
    """Validate pilot summary statistics for one endpoint."""
    errors: List[str] = []
    if not isinstance(name, str) or not name.strip():
        errors.append(f"Endpoint name must be a non-empty string, got {name!r}")
        label = repr(name)
    else:
        label = name

    result = _ValidationResult(len(errors) == 0, errors, [])
    result = result.merge(_validate_numeric_parameter(control_mean, f"{label}: control mean"))
    result = result.merge(_validate_numeric_parameter(control_sd, f"{label}: control SD"))
    if result.is_valid and control_sd <= 0:
        result = result.merge(_ValidationResult(False, [f"{label}: control SD must be > 0, got {control_sd}"], []))
    return result


def _validate_parallel_settings(enable: Any, n_cores: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Args:
        enable: True or False
        n_cores: Number of CPU cores (positive int or None for auto)

    Returns:
        ((enable, n_cores), ValidationResult)
    """
    import multiprocessing as mp

    errors = []

    if enable not in (True, False):
        errors.append(f"enable must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, [])

    max_cores = mp.cpu_count()
    validated_n_cores = max(1, max_cores // 2)

    if n_cores is not None:
        if isinstance(n_cores, bool) or not isinstance(n_cores, int) or n_cores <= 0:
            errors.append(f"n_cores must be a positive integer, got {n_cores}")
        else:
            validated_n_cores = min(n_cores, max_cores)

    return (bool(enable), validated_n_cores), _ValidationResult(len(errors) == 0, errors, [])
