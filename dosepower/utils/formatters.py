"""
Result formatting for dose-trend power analysis.

Turns result dictionaries produced by ``DosePower`` into plain-text
reports. Formatting never changes the numbers: power percentages are
always shown with two decimals, exactly as in the result table.
"""

from typing import Any, Dict, List, Optional

__all__ = []


class _TableFormatter:
    """Fixed-width plain-text tables."""

    def _create_table(self, headers: List[str], rows: List[List[Any]], col_widths: Optional[List[int]] = None) -> str:
        """Render *rows* under *headers*, one space between columns."""
        cells = [[self._format_value(c) for c in row] for row in rows]
        if col_widths is None:
            col_widths = [max(len(str(h)), *(len(r[i]) for r in cells)) if cells else len(str(h)) for i, h in enumerate(headers)]

        lines = [" ".join(f"{str(h):<{w}}" for h, w in zip(headers, col_widths))]
        lines.append(" ".join("-" * w for w in col_widths))
        for row in cells:
            lines.append(" ".join(f"{c:<{w}}" for c, w in zip(row, col_widths)))
        return "\n".join(lines)

    def _format_value(self, value: Any) -> str:
        if isinstance(value, float):
            return f"{value:.6f}" if abs(value) < 0.001 and value != 0 else f"{value:.4f}"
        return str(value)


class _ResultFormatter(_TableFormatter):
    """Builds short and long reports for each analysis type."""

    def _power_rows(self, data: Dict) -> List[List[Any]]:
        target = data["model"].get("target_power", 80.0)
        rows = []
        for r in data["results"]["power_results"]:
            status = "✓" if r.power_estimate * 100 >= target else "✗"
            rows.append([r.endpoint, r.power_estimate_percent, f"{target:.0f}%", status])
        return rows

    def _format_short_power(self, data: Dict) -> str:
        model = data["model"]
        results = data["results"]["power_results"]
        target = model.get("target_power", 80.0)

        lines = [
            f"Power Analysis Results (n={model['group_size']} per group, "
            f"{len(model['dose_levels'])} dose groups, scenario '{model['scenario']}'):",
            self._create_table(["Endpoint", "Power", "Target", "Status"], self._power_rows(data)),
        ]
        achieved = sum(r.power_estimate * 100 >= target for r in results)
        lines.append(f"\nResult: {achieved}/{len(results)} endpoints achieved target power")
        return "\n".join(lines)

    def _format_long_power(self, data: Dict) -> str:
        model = data["model"]
        lines = [
            "Design:",
            f"  Dose levels:          {', '.join(str(d) for d in model['dose_levels'])}",
            f"  Animals per group:    {model['group_size']}",
            f"  Simulated studies:    {model['n_simulations']}",
            f"  Significance level:   {model['alpha']}",
            f"  Alternative:          {model['alternative']}",
            f"  Seed:                 {model['seed']} ({model['random_stream']} stream)",
            "",
            f"Scenario '{model['scenario']}':",
            self._create_table(
                ["Dose", "Effect multiplier", "SD multiplier"],
                [[d, f"{e:.4f}", f"{v:.4f}"] for d, e, v in model["multipliers"]],
            ),
            "",
            "Endpoint Powers:",
        ]
        rows = []
        for r in data["results"]["power_results"]:
            rows.append([r.endpoint, r.power_estimate_percent, f"{r.n_rejected}/{r.iteration_count}", f"±{1.96 * r.monte_carlo_se * 100:.2f}%"])
        lines.append(self._create_table(["Endpoint", "Power", "Rejected", "95% MC error"], rows))
        return "\n".join(lines)

    def _format_short_group_size(self, data: Dict) -> str:
        results = data["results"]
        to_size = data["model"]["group_size_range"]["to_size"]
        rows = []
        for endpoint, achieved in results["first_achieved"].items():
            rows.append([endpoint, str(achieved) if achieved > 0 else f">{to_size}"])
        return "Group Size Requirements:\n" + self._create_table(["Endpoint", "Required n per group"], rows)

    def _format_long_group_size(self, data: Dict) -> str:
        results = data["results"]
        endpoints = list(results["powers_by_endpoint"].keys())
        rows = []
        for i, size in enumerate(results["group_sizes_tested"]):
            rows.append([size] + [f"{results['powers_by_endpoint'][e][i]:.2f}%" for e in endpoints])
        lines = [
            self._format_short_group_size(data),
            "",
            f"Power by Group Size (target {data['model']['target_power']:.0f}%):",
            self._create_table(["n"] + endpoints, rows),
        ]
        return "\n".join(lines)

    def _format_scenario_power(self, data: Dict, summary: str) -> str:
        scenarios = data["scenarios"]
        labels = list(scenarios.keys())
        first = scenarios[labels[0]]
        endpoints = [r.endpoint for r in first["results"]["power_results"]]

        rows = []
        for endpoint in endpoints:
            row = [endpoint]
            for label in labels:
                by_name = {r.endpoint: r for r in scenarios[label]["results"]["power_results"]}
                row.append(by_name[endpoint].power_estimate_percent)
            rows.append(row)

        lines = [
            f"Scenario Comparison (n={first['model']['group_size']} per group):",
            self._create_table(["Endpoint"] + labels, rows),
        ]
        if summary == "long":
            for label in labels:
                lines += ["", f"{'-' * 40}", self._format_long_power(scenarios[label])]
        return "\n".join(lines)


def _format_results(result_type: str, data: Dict, summary: str = "short") -> str:
    """Format analysis results for printing.

    Args:
        result_type: ``"power"``, ``"group_size"`` or ``"scenario_power"``.
        data: Result dictionary produced by ``DosePower``.
        summary: ``"short"`` or ``"long"``.
    """
    formatter = _ResultFormatter()
    if result_type == "power":
        return formatter._format_long_power(data) if summary == "long" else formatter._format_short_power(data)
    if result_type == "group_size":
        return formatter._format_long_group_size(data) if summary == "long" else formatter._format_short_group_size(data)
    if result_type == "scenario_power":
        return formatter._format_scenario_power(data, summary)
    raise ValueError(f"Unknown result type: {result_type}")
