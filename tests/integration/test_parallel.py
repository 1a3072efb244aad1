"""
Tests for parallel execution in DosePower.
"""

import pytest


def _joblib_available():
    """Check if joblib is available."""
    import importlib.util

    return importlib.util.find_spec("joblib") is not None


pytestmark = pytest.mark.skipif(not _joblib_available(), reason="joblib not installed")


class TestParallelExecution:
    """Per-iteration random streams make parallel and sequential runs identical."""

    def test_parallel_results_match_sequential(self, suppress_output):
        from dosepower import DosePower

        model = DosePower("liver=2.08(0.13), kidney=1.52(0.09)")
        model.use_linear_scenario(top_effect=0.9, top_variance=1.5)
        model.set_simulations(1200)
        model.set_seed(42)
        model.set_group_size(5)

        model.set_random_stream("iteration")
        model.set_parallel(False)
        result_seq = model.find_power(print_results=False, return_results=True)

        model.set_parallel(True, n_cores=2)
        result_par = model.find_power(print_results=False, return_results=True)

        assert result_seq["results"]["table"].equals(result_par["results"]["table"])

    def test_group_size_sweep_matches(self, suppress_output):
        from dosepower import DosePower

        model = DosePower("liver=2.08(0.13)")
        model.set_simulations(1000)
        model.set_random_stream("iteration")
        result_seq = model.find_group_size(from_size=3, to_size=9, by=3, print_results=False, return_results=True)

        model.set_parallel(True, n_cores=2)
        result_par = model.find_group_size(from_size=3, to_size=9, by=3, print_results=False, return_results=True)

        assert result_seq["results"]["powers_by_endpoint"] == result_par["results"]["powers_by_endpoint"]

    def test_runner_chunks_reduce_to_same_count(self):
        from dosepower import EndpointSpec, estimate_power, linear_scenario, make_design
        from dosepower.core.simulation import SimulationRunner

        liver = EndpointSpec("liver", 2.08, 0.13)
        design = make_design(
            [liver],
            linear_scenario("modeled", [0, 1, 2, 3], 0.85, 2.0),
            group_size=4,
            iteration_count=700,
            random_stream="iteration",
        )
        parallel = SimulationRunner(parallel=True, n_cores=2, chunk_size=150).run(design)
        assert parallel == [estimate_power(design, liver)]

    def test_parallel_progress_reaches_total(self, suppress_output):
        from unittest.mock import MagicMock

        from dosepower import DosePower

        model = DosePower("liver=2.08(0.13)")
        model.set_simulations(1000)
        model.set_parallel(True, n_cores=2)
        cb = MagicMock()
        model.find_power(group_size=4, print_results=False, progress_callback=cb)
        cb.assert_called_with(1000, 1000)
