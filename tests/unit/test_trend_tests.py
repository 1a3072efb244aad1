"""
Tests for the Jonckheere-Terpstra ordered-alternative test.
"""

import itertools
import pickle

import numpy as np
import pytest

from dosepower.errors import DegenerateDatasetError
from dosepower.stats.trend_tests import (
    EXACT_MAX_N,
    _mann_whitney_pmf,
    exact_null_distribution,
    jonckheere_statistic,
    jonckheere_test,
    null_moments,
)


def _brute_force_pmf(sizes):
    """Null pmf by enumerating every assignment of ranks 1..N to the groups."""
    N = sum(sizes)
    labels = [g for g, n in enumerate(sizes) for _ in range(n)]
    counts = {}
    perms = set(itertools.permutations(labels))
    for perm in perms:
        groups = [[rank for rank, g in enumerate(perm) if g == k] for k in range(len(sizes))]
        j = int(jonckheere_statistic(groups))
        counts[j] = counts.get(j, 0) + 1
    pmf = np.zeros(max(counts) + 1)
    for j, c in counts.items():
        pmf[j] = c / len(perms)
    assert N == len(labels)
    return pmf


class TestStatistic:
    def test_perfectly_increasing(self):
        assert jonckheere_statistic([[1, 2], [3, 4], [5, 6]]) == 12.0

    def test_perfectly_decreasing(self):
        assert jonckheere_statistic([[5, 6], [3, 4], [1, 2]]) == 0.0

    def test_ties_count_half(self):
        assert jonckheere_statistic([[1.0], [1.0]]) == 0.5
        assert jonckheere_statistic([[1, 2], [2, 3]]) == 3.5


class TestNullDistribution:
    @pytest.mark.parametrize("m, n", [(1, 1), (2, 2), (2, 3), (3, 4)])
    def test_mann_whitney_matches_enumeration(self, m, n):
        np.testing.assert_allclose(_mann_whitney_pmf(m, n), _brute_force_pmf((m, n)))

    @pytest.mark.parametrize("sizes", [(1, 1, 1), (2, 2, 2), (1, 2, 3), (3, 1, 2, 1)])
    def test_exact_matches_enumeration(self, sizes):
        np.testing.assert_allclose(exact_null_distribution(sizes), _brute_force_pmf(sizes))

    def test_pmf_sums_to_one_and_is_symmetric(self):
        pmf = exact_null_distribution((10, 10, 10, 10))
        assert pmf.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(pmf, pmf[::-1], atol=1e-15)

    def test_pmf_moments_match_formula(self):
        sizes = (4, 5, 6)
        pmf = exact_null_distribution(sizes)
        support = np.arange(pmf.size)
        mean, variance = null_moments(sizes)
        assert (support * pmf).sum() == pytest.approx(mean)
        assert ((support - mean) ** 2 * pmf).sum() == pytest.approx(variance)

    def test_cached_pmf_is_read_only(self):
        pmf = exact_null_distribution((2, 2))
        assert exact_null_distribution((2, 2)) is pmf
        with pytest.raises(ValueError):
            pmf[0] = 1.0

    def test_moments_without_ties(self):
        mean, variance = null_moments((2, 2))
        assert mean == 2.0
        assert variance == pytest.approx(120 / 72)

    def test_tie_correction_reduces_variance(self):
        _, plain = null_moments((3, 3, 3))
        _, tied = null_moments((3, 3, 3), tie_sizes=(3, 2))
        assert tied < plain

    def test_singleton_ties_ignored(self):
        assert null_moments((3, 3), tie_sizes=(1, 1, 1)) == null_moments((3, 3))


class TestJonckheereTest:
    def test_known_small_sample_values(self):
        groups = [[1.0], [2.0], [3.0]]
        assert jonckheere_test(groups, "increasing").p_value == pytest.approx(1 / 6)
        assert jonckheere_test(groups, "decreasing").p_value == pytest.approx(1.0)
        assert jonckheere_test(groups, "two-sided").p_value == pytest.approx(1 / 3)

        two = [[1.0, 2.0], [3.0, 4.0]]
        result = jonckheere_test(two, "increasing")
        assert result.statistic == 4.0
        assert result.p_value == pytest.approx(1 / 6)
        assert result.method == "exact"

    def test_two_sided_is_direction_free(self):
        rng = np.random.default_rng(5)
        groups = [rng.normal(loc, 1.0, 6) for loc in (0.0, 0.3, 0.6)]
        forward = jonckheere_test(groups, "two-sided").p_value
        backward = jonckheere_test(groups[::-1], "two-sided").p_value
        assert forward == pytest.approx(backward)

    def test_two_sided_never_exceeds_one(self):
        result = jonckheere_test([[1.0, 3.0], [2.0, 4.0]], "two-sided")
        assert result.p_value <= 1.0

    def test_exact_and_normal_agree_for_moderate_samples(self):
        rng = np.random.default_rng(2024)
        for shift in (0.0, 0.2, 0.5):
            groups = [rng.normal(shift * k, 1.0, 10) for k in range(4)]
            exact = jonckheere_test(groups, "increasing", method="exact").p_value
            normal = jonckheere_test(groups, "increasing", method="normal").p_value
            assert abs(exact - normal) < 0.02

    def test_auto_method_selection(self):
        rng = np.random.default_rng(1)
        small = [rng.normal(size=10) for _ in range(4)]
        large = [rng.normal(size=26) for _ in range(4)]
        assert jonckheere_test(small).method == "exact"
        assert sum(len(g) for g in large) > EXACT_MAX_N
        assert jonckheere_test(large).method == "normal"

    def test_ties_use_normal_approximation(self):
        groups = [[1.0, 1.0, 2.0], [2.0, 3.0, 3.0], [3.0, 4.0, 5.0]]
        assert jonckheere_test(groups).method == "normal"
        with pytest.warns(UserWarning, match="ties"):
            result = jonckheere_test(groups, method="exact")
        assert result.method == "normal"

    def test_empty_groups_dropped(self):
        with_empty = jonckheere_test([[1.0, 2.0], [], [3.0, 4.0]], "increasing")
        without = jonckheere_test([[1.0, 2.0], [3.0, 4.0]], "increasing")
        assert with_empty.p_value == without.p_value

    def test_single_observation_groups(self):
        result = jonckheere_test([[2.1], [2.0], [1.9], [1.7]], "decreasing")
        assert result.p_value == pytest.approx(1 / 24)

    @pytest.mark.parametrize(
        "groups, match",
        [
            ([[1.0, 2.0]], "at least two"),
            ([[1.0, 2.0], []], "at least two"),
            ([[1.0, 1.0], [1.0, 1.0]], "identical"),
            ([[1.0, np.nan], [2.0, 3.0]], "non-finite"),
            ([[1.0, 1.0], [2.0, 2.0]], "zero variance"),
        ],
    )
    def test_degenerate_samples(self, groups, match):
        with pytest.raises(DegenerateDatasetError, match=match):
            jonckheere_test(groups)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="alternative"):
            jonckheere_test([[1.0], [2.0]], alternative="greater")
        with pytest.raises(ValueError, match="method"):
            jonckheere_test([[1.0], [2.0]], method="bootstrap")


class TestDegenerateDatasetError:
    def test_context_prefix(self):
        err = DegenerateDatasetError("all observations are identical").with_context("liver", 17)
        assert str(err) == "endpoint 'liver', iteration 17: all observations are identical"
        assert err.endpoint == "liver" and err.iteration == 17

    def test_pickles_with_context(self):
        err = DegenerateDatasetError("boom", "liver", 3, completed_results=["x"])
        restored = pickle.loads(pickle.dumps(err))
        assert str(restored) == str(err)
        assert restored.completed_results == ["x"]
