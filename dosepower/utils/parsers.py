"""
Parsing utilities for dose-trend power analysis.

This module parses the comma-separated assignment strings accepted by the
``DosePower`` setters, e.g. ``"0=1.0, 1=0.95, 2=0.9"`` for dose multipliers
or ``"liver=2.08(0.13), kidney=1.52(0.09)"`` for endpoint summaries.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from .validators import _ValidationResult

__all__ = []

# Unicode-aware identifier pattern: letter or underscore, then word characters
_IDENT = re.compile(r"^[^\W\d]\w*$")
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_MEAN_SD = re.compile(rf"^({_NUMBER})\s*\(\s*({_NUMBER})\s*\)$")


class _AssignmentParser:
    """Parses comma-separated ``name=value`` assignment strings.

    Supports two parse types, ``"multiplier"`` (dose level to float) and
    ``"endpoint"`` (name to ``mean(sd)``), each with a specialised name
    and value handler.

    A module-level singleton ``_parser`` is used throughout the codebase.
    """

    def __init__(self):
        self.handlers = {
            "multiplier": (self._parse_dose_name, self._parse_multiplier_value),
            "endpoint": (self._parse_endpoint_name, self._parse_endpoint_value),
        }

    def _parse(self, input_string: str, parse_type: str, available_items: Optional[List[Any]] = None) -> Tuple[Dict, List[str]]:
        """Parse a comma-separated assignment string.

        Args:
            input_string: Raw user input (e.g. ``"0=1, 1=0.95"``).
            parse_type: ``"multiplier"`` or ``"endpoint"``.
            available_items: Valid names for the left-hand side, or
                ``None`` to accept any well-formed name.

        Returns:
            Tuple of ``(parsed_dict, error_list)`` keyed by dose level
            (multipliers) or endpoint name (endpoints), in input order.
        """
        if parse_type not in self.handlers:
            return {}, [f"Unknown parse type: {parse_type}"]

        name_handler, value_handler = self.handlers[parse_type]
        parsed_items: Dict[Any, Any] = {}
        errors = []

        if not input_string or not input_string.strip():
            return {}, ["Input string cannot be empty"]

        for assignment in self._split_assignments(input_string):
            try:
                raw_name, raw_value = self._parse_assignment(assignment)
            except ValueError as e:
                errors.append(str(e))
                continue

            name, error = name_handler(raw_name)
            if error:
                errors.append(error)
                continue
            if available_items is not None and name not in available_items:
                errors.append(f"'{name}' not found. Available: {', '.join(str(i) for i in available_items)}")
                continue
            if name in parsed_items:
                errors.append(f"'{name}' assigned more than once")
                continue

            parsed_value, error = value_handler(raw_value)
            if error:
                errors.append(f"{name}: {error}")
                continue

            parsed_items[name] = parsed_value

        return parsed_items, errors

    def _split_assignments(self, input_string: str) -> List[str]:
        """Split assignments respecting parentheses."""
        assignments = []
        current: List[str] = []
        paren_count = 0

        for char in input_string:
            if char == "," and paren_count == 0:
                if current:
                    assignments.append("".join(current).strip())
                    current = []
            else:
                if char == "(":
                    paren_count += 1
                elif char == ")":
                    paren_count -= 1
                current.append(char)

        if current:
            assignments.append("".join(current).strip())

        return [a for a in assignments if a]

    def _parse_assignment(self, assignment: str) -> Tuple[str, str]:
        """Parse single assignment into name and value parts."""
        if "=" not in assignment:
            raise ValueError(f"Invalid format: '{assignment}'. Expected 'name=value'")
        name, value = assignment.split("=", 1)
        return name.strip(), value.strip()

    def _parse_dose_name(self, name: str) -> Tuple[Optional[int], Optional[str]]:
        """Parse a dose level (non-negative integer)."""
        if not name.isdecimal():
            return None, f"Invalid dose level '{name}'. Must be a non-negative integer"
        return int(name), None

    def _parse_endpoint_name(self, name: str) -> Tuple[Optional[str], Optional[str]]:
        """Parse an endpoint identifier."""
        if not _IDENT.match(name):
            return None, f"Invalid endpoint name '{name}'"
        return name, None

    def _parse_multiplier_value(self, value: str) -> Tuple[float, Optional[str]]:
        """Parse a dose multiplier."""
        try:
            return float(value), None
        except ValueError:
            return 0.0, f"Invalid multiplier '{value}'. Must be a number"

    def _parse_endpoint_value(self, value: str) -> Tuple[Tuple[float, float], Optional[str]]:
        """Parse ``mean(sd)``."""
        match = _MEAN_SD.match(value)
        if not match:
            return (0.0, 0.0), f"Invalid summary '{value}'. Expected 'mean(sd)', e.g. '2.08(0.13)'"
        return (float(match.group(1)), float(match.group(2))), None


_parser = _AssignmentParser()


def _parse_multipliers(input_string: str, dose_levels: Optional[List[int]] = None) -> Dict[int, float]:
    """Parse ``"0=1, 1=0.95"`` into ``{0: 1.0, 1: 0.95}``, raising on any error."""
    parsed, errors = _parser._parse(input_string, "multiplier", dose_levels)
    _ValidationResult(not errors, errors, []).raise_if_invalid()
    return parsed


def _parse_endpoints(input_string: str) -> Dict[str, Tuple[float, float]]:
    """Parse ``"liver=2.08(0.13)"`` into ``{"liver": (2.08, 0.13)}``, raising on any error."""
    parsed, errors = _parser._parse(input_string, "endpoint")
    _ValidationResult(not errors, errors, []).raise_if_invalid()
    return parsed
