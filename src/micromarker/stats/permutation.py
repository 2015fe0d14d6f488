"""White's non-parametric two-sample t-test with permutation p-values.

The statistic compares group means scaled by the per-group standard errors:

    t = (mean1 - mean2) / sqrt(var1 / n1 + var2 / n2)

Significance comes from a null distribution built by shuffling samples
between groups (group sizes fixed) and recomputing t for every feature.

Two p-value regimes are used:

- Large samples (both groups >= ``LARGE_SAMPLE_MIN``): per-feature counts of
  permuted statistics beyond the observed one, smoothed as
  ``(count + 1) / (nperm + 1)``.
- Small samples: permuted statistics are pooled across all high-frequency
  features and all permutations (Storey & Tibshirani, 2003) so that few
  permutations still give a usable null. Features outside the high-frequency
  set get p = 0 and are expected to be handled by the sparse fallback.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from micromarker.errors import DegenerateStatisticWarning
from micromarker.utils.deadline import Deadline

logger = logging.getLogger(__name__)

LARGE_SAMPLE_MIN = 8
DEGENERATE_DENOMINATOR = 1e-6


@dataclass
class PermutationResult:
    """Observed statistics and permutation p-values for every feature.

    Attributes:
        statistic: Observed White's t per feature
        diff_means: Observed mean1 - mean2 per feature (proportion units)
        pvalue_two_side: P(|T| > |t|)
        pvalue_greater_side: P(T > t)
        pvalue_less_side: P(T < t)
        regime: "large" or "small" sample p-value regime
    """

    statistic: np.ndarray
    diff_means: np.ndarray
    pvalue_two_side: np.ndarray
    pvalue_greater_side: np.ndarray
    pvalue_less_side: np.ndarray
    regime: str


def _white_t(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    n1, n2 = x.shape[0], y.shape[0]
    diff = x.mean(axis=0) - y.mean(axis=0)
    denom = np.sqrt(x.var(axis=0, ddof=1) / n1 + y.var(axis=0, ddof=1) / n2)
    # constant columns can leave rounding residue in var, so test them directly
    degenerate = (denom == 0) | ((np.ptp(x, axis=0) == 0) & (np.ptp(y, axis=0) == 0))
    t = diff / np.where(degenerate, DEGENERATE_DENOMINATOR, denom)
    return t, diff, degenerate


def _warn_degenerate(n_degenerate: int, where: str) -> None:
    message = (
        f"degenerate case: zero variance for both groups in {n_degenerate} {where}; "
        f"denominator set to {DEGENERATE_DENOMINATOR:g}"
    )
    logger.warning(message)
    warnings.warn(message, DegenerateStatisticWarning, stacklevel=3)


def white_t_statistic(
    group1: np.ndarray, group2: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    White's two-sample t-statistic for every feature.

    Parameters
    ----------
    group1, group2 : np.ndarray
        Proportions of each group, shape (n_samples, n_features)

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (t statistic, difference of means) per feature

    Warns
    -----
    DegenerateStatisticWarning
        When both groups have zero variance for a feature; that feature's
        denominator is replaced by 1e-6
    """
    x = np.asarray(group1, dtype=float)
    y = np.asarray(group2, dtype=float)
    t, diff, degenerate = _white_t(x, y)
    if degenerate.any():
        _warn_degenerate(int(degenerate.sum()), "feature(s)")
    return t, diff


def permute_statistics(
    group1: np.ndarray,
    group2: np.ndarray,
    nperm: int,
    rng: np.random.Generator,
    deadline: Optional[Deadline] = None,
) -> np.ndarray:
    """
    Null distribution of White's t from shuffled group assignments.

    Parameters
    ----------
    group1, group2 : np.ndarray
        Proportions of each group, shape (n_samples, n_features)
    nperm : int
        Number of permutations
    rng : np.random.Generator
        Source of the permutations
    deadline : Deadline, optional
        Checked before every permutation

    Returns
    -------
    np.ndarray
        Permuted statistics, shape (nperm, n_features)
    """
    x = np.asarray(group1, dtype=float)
    y = np.asarray(group2, dtype=float)
    n1 = x.shape[0]
    pooled = np.vstack([x, y])
    n_total = pooled.shape[0]

    permuted = np.empty((nperm, pooled.shape[1]), dtype=float)
    n_degenerate = 0
    for i in range(nperm):
        if deadline is not None:
            deadline.check("permutation test")
        order = rng.permutation(n_total)
        shuffled = pooled[order]
        permuted[i], _, degenerate = _white_t(shuffled[:n1], shuffled[n1:])
        n_degenerate += int(degenerate.sum())

    if n_degenerate:
        _warn_degenerate(n_degenerate, "permuted feature statistic(s)")
    return permuted


def high_frequency_mask(counts1: np.ndarray, counts2: np.ndarray) -> np.ndarray:
    """Features averaging at least one count per sample in either group."""
    counts1 = np.asarray(counts1, dtype=float)
    counts2 = np.asarray(counts2, dtype=float)
    return (counts1.sum(axis=0) >= counts1.shape[0]) | (counts2.sum(axis=0) >= counts2.shape[0])


def large_sample_pvalues(
    permuted: np.ndarray, observed: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-feature add-one smoothed permutation p-values (two, greater, less)."""
    nperm = permuted.shape[0]
    two_side = (np.abs(permuted) > np.abs(observed)).sum(axis=0)
    greater = (permuted > observed).sum(axis=0)
    less = (permuted < observed).sum(axis=0)
    return (
        (two_side + 1) / (nperm + 1),
        (greater + 1) / (nperm + 1),
        (less + 1) / (nperm + 1),
    )


def small_sample_pvalues(
    permuted: np.ndarray, observed: np.ndarray, high_freq: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    P-values from a null pooled over all high-frequency features.

    For each high-frequency feature the observed statistic is compared with
    every permuted statistic of every high-frequency feature; p is the
    fraction strictly beyond it. Other features get 0.
    """
    n_features = observed.shape[0]
    two_side = np.zeros(n_features)
    greater = np.zeros(n_features)
    less = np.zeros(n_features)

    hf_index = np.flatnonzero(high_freq)
    if hf_index.size == 0:
        return two_side, greater, less

    null = np.sort(permuted[:, hf_index].ravel())
    null_abs = np.sort(np.abs(null))
    total = null.size
    obs = observed[hf_index]

    greater[hf_index] = (total - np.searchsorted(null, obs, side="right")) / total
    less[hf_index] = np.searchsorted(null, obs, side="left") / total
    two_side[hf_index] = (
        total - np.searchsorted(null_abs, np.abs(obs), side="right")
    ) / total
    return two_side, greater, less


def run_permutation_test(
    prop1: np.ndarray,
    prop2: np.ndarray,
    counts1: np.ndarray,
    counts2: np.ndarray,
    nperm: int = 1000,
    rng: Optional[np.random.Generator] = None,
    deadline: Optional[Deadline] = None,
) -> PermutationResult:
    """
    White's non-parametric t-test for every feature.

    Parameters
    ----------
    prop1, prop2 : np.ndarray
        Proportions of each group, shape (n_samples, n_features)
    counts1, counts2 : np.ndarray
        Raw counts of each group, same shapes; decide high-frequency features
    nperm : int
        Number of permutations (default: 1000)
    rng : np.random.Generator, optional
        Source of randomness (default: fresh generator)
    deadline : Deadline, optional
        Time budget checked between permutations

    Returns
    -------
    PermutationResult
    """
    rng = rng if rng is not None else np.random.default_rng()
    prop1 = np.asarray(prop1, dtype=float)
    prop2 = np.asarray(prop2, dtype=float)
    n1, n2 = prop1.shape[0], prop2.shape[0]

    statistic, diff_means = white_t_statistic(prop1, prop2)
    permuted = permute_statistics(prop1, prop2, nperm, rng, deadline=deadline)

    if n1 < LARGE_SAMPLE_MIN or n2 < LARGE_SAMPLE_MIN:
        high_freq = high_frequency_mask(counts1, counts2)
        logger.info(
            f"Small-sample permutation regime (n1={n1}, n2={n2}); pooling null over "
            f"{int(high_freq.sum())} high-frequency features"
        )
        two_side, greater, less = small_sample_pvalues(permuted, statistic, high_freq)
        regime = "small"
    else:
        two_side, greater, less = large_sample_pvalues(permuted, statistic)
        regime = "large"

    return PermutationResult(
        statistic=statistic,
        diff_means=diff_means,
        pvalue_two_side=two_side,
        pvalue_greater_side=greater,
        pvalue_less_side=less,
        regime=regime,
    )
