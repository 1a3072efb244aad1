"""
Visualization utilities for dose-trend power analysis.

This module provides the power-versus-group-size plot.
"""

from typing import Dict, List

import numpy as np

__all__ = []


def _create_power_plot(
    group_sizes: List[int],
    powers_by_endpoint: Dict[str, List[float]],
    first_achieved: Dict[str, int],
    target_power: float,
    title: str,
    show: bool = True,
):
    """Plot estimated power against animals per group, one line per endpoint.

    Draws a dashed reference line at the target power and marks the first
    group size reaching it.

    Args:
        group_sizes: X-axis values.
        powers_by_endpoint: Mapping of endpoint name to power percentages.
        first_achieved: Mapping of endpoint name to the first group size
            reaching the target (``-1`` if never reached).
        target_power: Target power percentage.
        title: Plot title.
        show: Call ``plt.show()`` after drawing.

    Returns:
        The matplotlib ``Figure``.
    """
    import matplotlib.pyplot as plt

    endpoints = list(powers_by_endpoint.keys())
    fig, ax = plt.subplots(figsize=(10, 6))
    colors = plt.get_cmap("tab10")(np.linspace(0, 1, max(len(endpoints), 1)))

    for color, endpoint in zip(colors, endpoints):
        powers = powers_by_endpoint[endpoint]
        ax.plot(group_sizes, powers, "o-", color=color, label=endpoint, linewidth=2, markersize=4)

        achieved = first_achieved.get(endpoint, -1)
        if achieved > 0:
            achieved_power = powers[group_sizes.index(achieved)]
            ax.plot(
                achieved,
                achieved_power,
                "s",
                markersize=10,
                markerfacecolor="white",
                markeredgewidth=2,
                markeredgecolor=color,
            )
            ax.annotate(
                f"n={achieved}",
                xy=(achieved, achieved_power),
                xytext=(8, -14),
                textcoords="offset points",
                color=color,
            )

    ax.axhline(y=target_power, color="red", linestyle="--", linewidth=1.5, label=f"Target Power ({target_power:.0f}%)")

    ax.set_title(title, fontsize=13, fontweight="bold")
    ax.set_xlabel("Animals per dose group", fontsize=11)
    ax.set_ylabel("Power (%)", fontsize=11)
    ax.set_ylim(0, 105)
    ax.set_xticks(group_sizes)
    ax.grid(True, alpha=0.3)
    ax.legend(loc="lower right")
    fig.tight_layout()

    if show:
        plt.show()
    return fig
