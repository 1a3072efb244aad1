"""
Jonckheere-Terpstra test for ordered alternatives.

The statistic counts, over every pair of dose groups ``i < j``, the pairs
of observations where the higher-dose value exceeds the lower-dose value
(ties count one half). Under H0 all observations are exchangeable.

Two null distributions are available:

- exact: the statistic decomposes into independent Mann-Whitney counts of
  each group against the pooled lower-dose groups, so its distribution is
  the convolution of those Mann-Whitney distributions. It depends only on
  the group sizes and is cached.
- normal: mean ``(N^2 - sum n_i^2) / 4`` and the tie-corrected variance of
  Hollander & Wolfe.

Usage:
    from dosepower.stats.trend_tests import jonckheere_test
    result = jonckheere_test([control, low, mid, high], alternative="decreasing")
"""

import warnings
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

import numpy as np
from scipy.stats import norm

from ..errors import DegenerateDatasetError

# Largest total sample size for which method="auto" uses the exact distribution
EXACT_MAX_N = 100

VALID_METHODS = ("auto", "exact", "normal")


@dataclass(frozen=True)
class TrendTestResult:
    """Outcome of one Jonckheere-Terpstra test."""

    statistic: float
    mean: float
    variance: float
    z: float
    p_value: float
    method: str
    alternative: str


def _as_groups(groups: Sequence[Sequence[float]]) -> List[np.ndarray]:
    """Convert input to float arrays, dropping empty groups, and reject degenerate samples."""
    arrays = [np.asarray(g, dtype=np.float64).ravel() for g in groups]
    arrays = [g for g in arrays if g.size > 0]

    if len(arrays) < 2:
        raise DegenerateDatasetError(f"trend test needs at least two non-empty dose groups, got {len(arrays)}")

    pooled = np.concatenate(arrays)
    if not np.all(np.isfinite(pooled)):
        raise DegenerateDatasetError("dataset contains non-finite values")
    if np.ptp(pooled) == 0:
        raise DegenerateDatasetError("all observations are identical")
    replicated = [g for g in arrays if g.size > 1]
    if replicated and all(np.ptp(g) == 0 for g in replicated):
        raise DegenerateDatasetError("zero variance within every dose group")

    return arrays


def jonckheere_statistic(groups: Sequence[Sequence[float]]) -> float:
    """Jonckheere-Terpstra statistic for groups given in increasing dose order."""
    arrays = [np.asarray(g, dtype=np.float64).ravel() for g in groups]
    statistic = 0.0
    for i, lower in enumerate(arrays):
        for higher in arrays[i + 1 :]:
            diff = higher[None, :] - lower[:, None]
            statistic += np.count_nonzero(diff > 0) + 0.5 * np.count_nonzero(diff == 0)
    return float(statistic)


def null_moments(group_sizes: Sequence[int], tie_sizes: Sequence[int] = ()) -> Tuple[float, float]:
    """Mean and variance of the statistic under H0.

    Args:
        group_sizes: Observations per dose group.
        tie_sizes: Sizes of the groups of tied values (values occurring
            once may be included or left out).

    Returns:
        ``(mean, variance)``.
    """
    n = np.asarray(group_sizes, dtype=np.float64)
    t = np.asarray([s for s in tie_sizes if s > 1], dtype=np.float64)
    N = n.sum()

    mean = (N**2 - np.sum(n**2)) / 4.0

    variance = (N * (N - 1) * (2 * N + 5) - np.sum(n * (n - 1) * (2 * n + 5)) - np.sum(t * (t - 1) * (2 * t + 5))) / 72.0
    if t.size:
        if N > 2:
            variance += np.sum(n * (n - 1) * (n - 2)) * np.sum(t * (t - 1) * (t - 2)) / (36.0 * N * (N - 1) * (N - 2))
        variance += np.sum(n * (n - 1)) * np.sum(t * (t - 1)) / (8.0 * N * (N - 1))

    return float(mean), float(variance)


@lru_cache(maxsize=256)
def _mann_whitney_pmf(m: int, n: int) -> np.ndarray:
    """Null distribution of the number of pairs ``x < y`` for samples of sizes *m* (x) and *n* (y).

    Built from the largest observation: with probability ``n / (m + n)`` it
    is a ``y`` and beats all ``m`` x's, otherwise it is an ``x`` and adds
    nothing.
    """
    prev = [np.ones(1) for _ in range(n + 1)]  # m = 0: U is always 0
    for a in range(1, m + 1):
        cur = [np.ones(1)]
        for b in range(1, n + 1):
            pmf = np.zeros(a * b + 1)
            pmf[a:] += b / (a + b) * cur[b - 1]
            pmf[: prev[b].size] += a / (a + b) * prev[b]
            cur.append(pmf)
        prev = cur
    result = prev[n]
    result.setflags(write=False)
    return result


@lru_cache(maxsize=64)
def exact_null_distribution(group_sizes: Tuple[int, ...]) -> np.ndarray:
    """Exact null pmf of the statistic (index = statistic value), no ties."""
    pmf = np.ones(1)
    pooled = group_sizes[0]
    for size in group_sizes[1:]:
        pmf = np.convolve(pmf, _mann_whitney_pmf(pooled, size))
        pooled += size
    pmf.setflags(write=False)
    return pmf


def _exact_p_value(statistic: float, group_sizes: Tuple[int, ...], alternative: str) -> float:
    pmf = exact_null_distribution(group_sizes)
    k = int(round(statistic))
    upper = float(pmf[k:].sum())
    lower = float(pmf[: k + 1].sum())
    if alternative == "increasing":
        return min(1.0, upper)
    if alternative == "decreasing":
        return min(1.0, lower)
    return min(1.0, 2.0 * min(upper, lower))


def _normal_p_value(z: float, alternative: str) -> float:
    if alternative == "increasing":
        return float(norm.sf(z))
    if alternative == "decreasing":
        return float(norm.cdf(z))
    return float(min(1.0, 2.0 * norm.sf(abs(z))))


def jonckheere_test(
    groups: Sequence[Sequence[float]],
    alternative: str = "two-sided",
    method: str = "auto",
) -> TrendTestResult:
    """Test for a monotonic trend across ordered dose groups.

    Args:
        groups: Observation arrays in increasing dose order (control
            first). Empty groups are ignored.
        alternative: ``"increasing"`` (values grow with dose),
            ``"decreasing"`` or ``"two-sided"``.
        method: ``"exact"``, ``"normal"`` or ``"auto"`` (exact when the
            total sample size is at most ``EXACT_MAX_N`` and there are no
            ties).

    Returns:
        ``TrendTestResult``.

    Raises:
        DegenerateDatasetError: If the test is undefined for the sample.
        ValueError: If *alternative* or *method* is unknown.
    """
    if alternative not in ("two-sided", "increasing", "decreasing"):
        raise ValueError(f"alternative must be 'two-sided', 'increasing' or 'decreasing', got {alternative!r}")
    if method not in VALID_METHODS:
        raise ValueError(f"method must be one of {VALID_METHODS}, got {method!r}")

    arrays = _as_groups(groups)
    sizes = tuple(int(g.size) for g in arrays)
    pooled = np.concatenate(arrays)
    _, tie_counts = np.unique(pooled, return_counts=True)
    has_ties = bool(np.any(tie_counts > 1))

    statistic = jonckheere_statistic(arrays)
    mean, variance = null_moments(sizes, tie_counts)
    if not variance > 0:
        raise DegenerateDatasetError(f"null variance of the trend statistic is {variance}")
    z = (statistic - mean) / np.sqrt(variance)

    if method == "exact" and has_ties:
        warnings.warn("Exact Jonckheere-Terpstra distribution is not valid with ties; using normal approximation")
        method = "normal"
    elif method == "auto":
        method = "exact" if (pooled.size <= EXACT_MAX_N and not has_ties) else "normal"

    if method == "exact":
        p_value = _exact_p_value(statistic, sizes, alternative)
    else:
        p_value = _normal_p_value(z, alternative)

    return TrendTestResult(
        statistic=statistic,
        mean=mean,
        variance=variance,
        z=float(z),
        p_value=p_value,
        method=method,
        alternative=alternative,
    )
