"""
Progress reporting for DosePower simulations.

Provides a callback-based progress system that works from both Python scripts
and notebooks. Progress is reported via a simple (current, total) callback
and never influences the simulated numbers.
"""

import sys
from typing import Callable, Optional

# Upper bound on the number of iterations between two progress updates
MAX_UPDATE_EVERY = 1000


class SimulationCancelled(Exception):
    """Raised when a simulation is cancelled by the user.

    Attributes:
        completed_results: Power results of endpoints finished before the
            cancellation, in declared order.
    """

    def __init__(self, message: str = "Simulation cancelled by user", completed_results=None):
        super().__init__(message)
        self.completed_results = list(completed_results) if completed_results else []


class ProgressReporter:
    """Wraps a ``(current, total)`` callback with counting and throttling.

    Tracks the number of completed iterations and fires the callback at
    most once every *update_every* advances.

    Args:
        total: Total number of simulated iterations.
        callback: Function called as ``callback(current, total)`` on each
            (throttled) update.
        update_every: Fire the callback at most once per this many advances.
            Defaults to ``total // 200`` bounded to ``[1, 1000]``.
    """

    def __init__(
        self,
        total: int,
        callback: Callable[[int, int], None],
        update_every: Optional[int] = None,
    ):
        self.total = total
        self._callback = callback
        self._current = 0
        if update_every is None:
            update_every = min(MAX_UPDATE_EVERY, max(1, total // 200))
        self.update_every = update_every

    @property
    def current(self) -> int:
        return self._current

    def start(self):
        """Signal the beginning of the run (fires an initial 0/total update)."""
        self._current = 0
        self._callback(0, self.total)

    def advance(self, n: int = 1):
        """Advance the counter by *n* steps, firing the callback when due."""
        before = self._current
        self._current += n
        crossed = self._current // self.update_every > before // self.update_every
        if self._current >= self.total or crossed:
            self._callback(min(self._current, self.total), self.total)

    def finish(self):
        """Signal completion (fires a final total/total update if not already there)."""
        if self._current < self.total:
            self._current = self.total
            self._callback(self.total, self.total)


class PrintReporter:
    """Console progress reporter, prints ``\\rProgress: 45.2% (4520/10000 iterations)``."""

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        pct = 100.0 * current / total
        sys.stderr.write(f"\rProgress: {pct:5.1f}% ({current}/{total} iterations)")
        sys.stderr.flush()
        if current >= total:
            sys.stderr.write("\n")
            sys.stderr.flush()


class TqdmReporter:
    """Optional tqdm-based progress reporter (lazy import).

    Usage::

        from dosepower.progress import TqdmReporter
        model.find_power(progress_callback=TqdmReporter())
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="iter", **self._tqdm_kwargs)

        delta = current - self._bar.n
        if delta > 0:
            self._bar.update(delta)

        if current >= total:
            self._bar.close()
            self._bar = None


def compute_total_simulations(
    n_simulations: int,
    n_endpoints: int = 1,
    n_group_sizes: int = 1,
    n_scenarios: int = 1,
) -> int:
    """Return the total number of individual simulated iterations.

    Used to initialise ``ProgressReporter`` with an accurate total.

    Args:
        n_simulations: Iterations per endpoint.
        n_endpoints: Number of endpoints in the design.
        n_group_sizes: Number of group sizes tested (1 for
            ``find_power``, several for ``find_group_size``).
        n_scenarios: Number of scenarios (1 for a standard analysis,
            more when ``scenarios=True``).

    Returns:
        The product of all four counts.
    """
    return n_simulations * n_endpoints * n_group_sizes * n_scenarios
