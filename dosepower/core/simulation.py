"""
Simulation execution for DosePower.

This module contains the Monte Carlo power estimator: for every endpoint
it generates one synthetic study per iteration, applies the
Jonckheere-Terpstra trend test, and folds the rejections into a
``PowerResult``. Datasets are discarded as soon as their outcome is known.

Two random stream layouts are supported:

- ``"run"``: one generator seeded with ``random_seed`` and consumed in a
  fixed order (endpoints as declared, iterations ascending, doses
  ascending). Sequential only.
- ``"iteration"``: an independent generator per ``(endpoint, iteration)``
  derived from ``SeedSequence(random_seed, spawn_key=(endpoint_index,
  iteration))``. Execution order does not matter, so iterations can be
  split into chunks and run in parallel.
"""

from typing import Callable, Iterator, List, Optional

import numpy as np

from ..errors import ConfigurationError, DegenerateDatasetError
from ..progress import SimulationCancelled
from ..stats.data_generation import generate_dataset
from ..stats.trend_tests import jonckheere_test
from .design import Design, EndpointSpec
from .results import PowerResult, TrialOutcome, fold_outcomes

SIGNIFICANCE_LEVEL = 0.05

DEFAULT_CHUNK_SIZE = 500


def iteration_rng(seed: int, endpoint_index: int, iteration: int) -> np.random.Generator:
    """Independent generator for one ``(endpoint, iteration)`` cell."""
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(endpoint_index, iteration)))


def run_trial(design: Design, endpoint: EndpointSpec, iteration: int, rng: np.random.Generator) -> TrialOutcome:
    """Generate one dataset, test it, and return the outcome.

    Raises:
        DegenerateDatasetError: Tagged with the endpoint name and iteration.
    """
    dataset = generate_dataset(design, endpoint, iteration, rng)
    try:
        result = jonckheere_test(dataset.groups(), alternative=design.alternative)
    except DegenerateDatasetError as e:
        raise e.with_context(endpoint.name, iteration) from e
    return TrialOutcome(endpoint.name, iteration, result.p_value, result.p_value < SIGNIFICANCE_LEVEL)


def iter_trial_outcomes(
    design: Design,
    endpoint: EndpointSpec,
    rng: Optional[np.random.Generator] = None,
    start: int = 1,
    stop: Optional[int] = None,
    progress=None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> Iterator[TrialOutcome]:
    """Lazily yield trial outcomes for iterations ``start..stop`` (inclusive).

    Args:
        design: Study design.
        endpoint: Endpoint to simulate.
        rng: Shared generator, required for the ``"run"`` stream and
            ignored for the ``"iteration"`` stream.
        start: First iteration (1-based).
        stop: Last iteration; defaults to ``design.iteration_count``.
        progress: Optional ``ProgressReporter`` advanced once per iteration.
        cancel_check: Optional callable returning ``True`` to abort.
    """
    stop = design.iteration_count if stop is None else stop
    per_iteration = design.random_stream == "iteration"
    if not per_iteration and rng is None:
        raise ConfigurationError("A shared random generator is required when random_stream='run'")
    endpoint_index = design.endpoint_index(endpoint)

    for iteration in range(start, stop + 1):
        if cancel_check is not None and cancel_check():
            raise SimulationCancelled("Simulation cancelled by user")

        trial_rng = iteration_rng(design.random_seed, endpoint_index, iteration) if per_iteration else rng
        yield run_trial(design, endpoint, iteration, trial_rng)

        if progress is not None:
            progress.advance(1)


def estimate_power(
    design: Design,
    endpoint: EndpointSpec,
    rng: Optional[np.random.Generator] = None,
    progress=None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> PowerResult:
    """Estimate power for a single endpoint.

    With the ``"run"`` stream and no *rng*, a fresh generator seeded with
    ``design.random_seed`` is used; a full run passes its shared generator
    so that endpoints consume one stream in declared order.
    """
    if design.random_stream == "run" and rng is None:
        rng = np.random.default_rng(design.random_seed)
    outcomes = iter_trial_outcomes(design, endpoint, rng, progress=progress, cancel_check=cancel_check)
    return fold_outcomes(endpoint.name, outcomes, design.iteration_count)


def _count_rejections(design: Design, endpoint: EndpointSpec, start: int, stop: int) -> int:
    """Worker task: rejections in iterations ``start..stop`` (per-iteration stream)."""
    return sum(o.rejected for o in iter_trial_outcomes(design, endpoint, start=start, stop=stop))


class SimulationRunner:
    """Executes Monte Carlo power simulations for every endpoint of a design.

    Endpoints are processed one after another in declared order. If an
    endpoint fails, the run stops and the error carries the results of the
    endpoints that already finished.
    """

    def __init__(
        self,
        parallel: bool = False,
        n_cores: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialise the simulation runner.

        Args:
            parallel: Split each endpoint's iterations into chunks run by
                joblib workers. Requires ``random_stream="iteration"``.
            n_cores: Number of worker processes.
            chunk_size: Iterations per worker task.
        """
        self.parallel = parallel
        self.n_cores = n_cores
        self.chunk_size = chunk_size

    def run(
        self,
        design: Design,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> List[PowerResult]:
        """Estimate power for every endpoint.

        Args:
            design: Study design.
            progress: Optional ``ProgressReporter`` (advanced per iteration).
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            Power results in declared endpoint order.

        Raises:
            ConfigurationError: If parallel execution is requested on the
                ``"run"`` stream.
            DegenerateDatasetError: If a dataset cannot be tested; carries
                ``completed_results``.
            SimulationCancelled: If *cancel_check* fired; carries
                ``completed_results``.
        """
        if self.parallel and design.random_stream != "iteration":
            raise ConfigurationError("Parallel execution requires random_stream='iteration'")

        rng = np.random.default_rng(design.random_seed) if design.random_stream == "run" else None
        completed: List[PowerResult] = []

        for endpoint in design.endpoints:
            try:
                if self.parallel and self.n_cores > 1:
                    result = self._run_parallel(design, endpoint, progress, cancel_check)
                else:
                    result = estimate_power(design, endpoint, rng, progress, cancel_check)
            except DegenerateDatasetError as e:
                raise e.with_context(e.endpoint, e.iteration, completed) from e
            except SimulationCancelled as e:
                raise SimulationCancelled(str(e), completed) from None
            completed.append(result)

        return completed

    def _chunks(self, iteration_count: int):
        return [(start, min(start + self.chunk_size - 1, iteration_count)) for start in range(1, iteration_count + 1, self.chunk_size)]

    def _run_parallel(
        self,
        design: Design,
        endpoint: EndpointSpec,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> PowerResult:
        """Map iteration chunks to joblib workers and reduce the rejection counts."""
        from joblib import Parallel, delayed

        chunks = self._chunks(design.iteration_count)
        done = 0
        n_rejected = 0
        try:
            counts = Parallel(
                n_jobs=self.n_cores,
                backend="loky",
                verbose=0,
                return_as="generator",
            )(delayed(_count_rejections)(design, endpoint, start, stop) for start, stop in chunks)
            for (start, stop), count in zip(chunks, counts):
                if cancel_check is not None and cancel_check():
                    raise SimulationCancelled("Simulation cancelled by user")
                n_rejected += count
                done += stop - start + 1
                if progress is not None:
                    progress.advance(stop - start + 1)
        except (DegenerateDatasetError, SimulationCancelled, ConfigurationError):
            raise
        except Exception as e:
            print(f"Warning: Parallel execution failed ({e}). Falling back to sequential.")
            # Per-iteration streams make the sequential rerun produce identical counts
            n_rejected = 0
            outcomes = iter_trial_outcomes(design, endpoint, cancel_check=cancel_check)
            for outcome in outcomes:
                n_rejected += outcome.rejected
                if progress is not None and outcome.iteration > done:
                    progress.advance(1)

        return PowerResult(endpoint.name, int(n_rejected), design.iteration_count)
