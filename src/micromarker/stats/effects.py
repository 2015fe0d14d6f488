"""Parametric two-sample tests and ratio-of-proportions effect size."""

from __future__ import annotations

import warnings
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats as sp_stats


def mean_columns(group_names: Sequence[str]) -> List[str]:
    """Output column names holding each group's mean relative frequency."""
    return [f"{name}_mean_rel_freq" for name in group_names]


def _welch_df(se1: np.ndarray, se2: np.ndarray, n1: int, n2: int) -> np.ndarray:
    """Welch-Satterthwaite degrees of freedom from per-group squared errors."""
    return (se1 + se2) ** 2 / (se1**2 / (n1 - 1) + se2**2 / (n2 - 1))


def run_t_test(
    group1: pd.DataFrame,
    group2: pd.DataFrame,
    conf_level: float = 0.95,
    pooled_variance: bool = False,
    group_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Per-feature two-sample t-test on proportions.

    Args:
        group1: Proportions of group 1 (samples × features)
        group2: Proportions of group 2, same feature columns
        conf_level: Confidence level of the interval for the mean difference
        pooled_variance: Student's t-test if True, Welch's t-test otherwise
        group_names: Labels used for the mean columns (default: group1, group2)

    Returns:
        DataFrame indexed by feature with columns pvalue, <g1>_mean_rel_freq,
        <g2>_mean_rel_freq, diff_mean, ci_lower, ci_upper. Everything except
        pvalue is in percent.

    Notes:
        Welch's interval uses the Satterthwaite degrees of freedom, Student's
        the pooled variance with n1 + n2 - 2. NaN p-values are reported as 1.
        When both groups are constant the interval collapses to the observed
        difference and p is 1 if the constants are equal, 0 otherwise.
    """
    names = list(group_names) if group_names is not None else ["group1", "group2"]
    x = group1.to_numpy(dtype=float)
    y = group2.to_numpy(dtype=float)
    n1, n2 = x.shape[0], y.shape[0]

    with np.errstate(divide="ignore", invalid="ignore"), warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        result = sp_stats.ttest_ind(x, y, axis=0, equal_var=pooled_variance)

        mean1 = x.mean(axis=0)
        mean2 = y.mean(axis=0)
        var1 = x.var(axis=0, ddof=1)
        var2 = y.var(axis=0, ddof=1)
        diff = mean1 - mean2

        if pooled_variance:
            df = np.full(diff.shape, float(n1 + n2 - 2))
            pooled = ((n1 - 1) * var1 + (n2 - 1) * var2) / df
            stderr = np.sqrt(pooled * (1.0 / n1 + 1.0 / n2))
        else:
            se1, se2 = var1 / n1, var2 / n2
            df = _welch_df(se1, se2, n1, n2)
            stderr = np.sqrt(se1 + se2)

        half_width = sp_stats.t.ppf(0.5 + conf_level / 2.0, df) * stderr

    # constant columns can leave rounding residue in var, so test them directly
    constant = (np.ptp(x, axis=0) == 0) & (np.ptp(y, axis=0) == 0)
    half_width = np.where(constant | (stderr == 0), 0.0, half_width)
    pvalue = np.asarray(result.pvalue, dtype=float)
    pvalue = np.where(constant, np.where(x[0] == y[0], np.nan, 0.0), pvalue)
    pvalue = np.where(np.isnan(pvalue), 1.0, pvalue)

    mean_g1, mean_g2 = mean_columns(names)
    return pd.DataFrame(
        {
            "pvalue": pvalue,
            mean_g1: mean1 * 100,
            mean_g2: mean2 * 100,
            "diff_mean": diff * 100,
            "ci_lower": (diff - half_width) * 100,
            "ci_upper": (diff + half_width) * 100,
        },
        index=group1.columns,
    )


def calc_ratio_proportion(
    abd1: np.ndarray, abd2: np.ndarray, pseudocount: float = 0.5
) -> float:
    """Ratio of mean proportions between two groups for one feature.

    Args:
        abd1: Proportions of the feature in group 1
        abd2: Proportions of the feature in group 2
        pseudocount: Mass shared between both means when either is zero

    Returns:
        mean(abd1) / mean(abd2)

    Notes:
        If either mean is 0, ``pseudocount / (mean1 + mean2)`` is added to both
        means before dividing. A feature absent from both groups gives 0.
    """
    abd1, abd2 = np.asarray(abd1, dtype=float), np.asarray(abd2, dtype=float)
    mean1 = np.float64(abd1.sum() / len(abd1))
    mean2 = np.float64(abd2.sum() / len(abd2))

    with np.errstate(divide="ignore", invalid="ignore"):
        if mean1 == 0 or mean2 == 0:
            shared = pseudocount / (mean1 + mean2)
            mean1 = mean1 + shared
            mean2 = mean2 + shared
        ratio = mean1 / mean2

    if np.isnan(ratio):
        return 0.0
    return float(ratio)


def ratio_proportions(
    group1: pd.DataFrame, group2: pd.DataFrame, pseudocount: float = 0.5
) -> pd.Series:
    """Vectorised ``calc_ratio_proportion`` over every feature column."""
    mean1 = group1.to_numpy(dtype=float).mean(axis=0)
    mean2 = group2.to_numpy(dtype=float).mean(axis=0)

    with np.errstate(divide="ignore", invalid="ignore"):
        zero = (mean1 == 0) | (mean2 == 0)
        shared = np.where(zero, pseudocount / (mean1 + mean2), 0.0)
        ratio = (mean1 + shared) / (mean2 + shared)

    ratio = np.where(np.isnan(ratio), 0.0, ratio)
    return pd.Series(ratio, index=group1.columns, name="ratio_proportion")
