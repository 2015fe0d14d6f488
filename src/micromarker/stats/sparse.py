"""Fisher's exact test fallback for sparse features.

A feature averaging less than one count per sample in both groups gives the
permutation test nothing to work with. For those features the pooled counts
are compared with Fisher's exact test on a 2×2 table:

                 group1              group2
    feature      f1                  f2
    other        total1 - f1         total2 - f2
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy import stats as sp_stats
from scipy.stats.contingency import odds_ratio

logger = logging.getLogger(__name__)


def sparse_feature_mask(counts1: pd.DataFrame, counts2: pd.DataFrame) -> np.ndarray:
    """Features whose total count is below the sample size in both groups."""
    n1, n2 = len(counts1), len(counts2)
    below1 = counts1.to_numpy(dtype=float).sum(axis=0) < n1
    below2 = counts2.to_numpy(dtype=float).sum(axis=0) < n2
    return below1 & below2


def contingency_table(
    f1: float, total1: float, f2: float, total2: float
) -> np.ndarray:
    """2×2 table of feature vs. other counts (rows) by group (columns).

    Cells are rounded to the nearest integer after pooling.
    """
    cells = np.array([[f1, f2], [total1 - f1, total2 - f2]], dtype=float)
    return np.rint(cells).astype(np.int64)


def fisher_test(table: np.ndarray, conf_level: float = 0.95) -> tuple:
    """Two-sided Fisher's exact test with the conditional odds-ratio interval.

    Returns (pvalue, ci_lower, ci_upper); the interval is that of the
    conditional maximum likelihood odds ratio.
    """
    _, pvalue = sp_stats.fisher_exact(table, alternative="two-sided")
    ci = odds_ratio(table, kind="conditional").confidence_interval(
        confidence_level=conf_level, alternative="two-sided"
    )
    pvalue = float(pvalue)
    if np.isnan(pvalue):
        pvalue = 1.0
    return pvalue, float(ci.low), float(ci.high)


def sparse_feature_tests(
    counts1: pd.DataFrame,
    counts2: pd.DataFrame,
    mask: np.ndarray,
    conf_level: float = 0.95,
) -> pd.DataFrame:
    """
    Fisher's exact test for each masked feature on pooled group counts.

    Parameters
    ----------
    counts1, counts2 : pd.DataFrame
        Raw counts of each group (samples × features)
    mask : np.ndarray
        Boolean feature mask, usually from ``sparse_feature_mask``
    conf_level : float
        Confidence level of the odds-ratio interval

    Returns
    -------
    pd.DataFrame
        Columns pvalue, diff_mean, ci_lower, ci_upper indexed by the masked
        features. ``diff_mean`` is f1/total1 - f2/total2 in proportion units.
    """
    mask = np.asarray(mask, dtype=bool)
    columns = counts1.columns[mask]
    if len(columns) == 0:
        return pd.DataFrame(
            columns=["pvalue", "diff_mean", "ci_lower", "ci_upper"], dtype=float
        )

    x = counts1.to_numpy(dtype=float)
    y = counts2.to_numpy(dtype=float)
    total1, total2 = x.sum(), y.sum()
    feature1 = x[:, mask].sum(axis=0)
    feature2 = y[:, mask].sum(axis=0)

    rows = []
    for f1, f2 in zip(feature1, feature2):
        table = contingency_table(f1, total1, f2, total2)
        pvalue, ci_lower, ci_upper = fisher_test(table, conf_level=conf_level)
        with np.errstate(divide="ignore", invalid="ignore"):
            diff = f1 / total1 - f2 / total2
        rows.append(
            {
                "pvalue": pvalue,
                "diff_mean": float(diff),
                "ci_lower": ci_lower,
                "ci_upper": ci_upper,
            }
        )

    logger.info(f"Fisher's exact test applied to {len(columns)} sparse features")
    return pd.DataFrame(rows, index=columns)


def apply_sparse_override(frame: pd.DataFrame, sparse: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``frame`` with the sparse features' test columns replaced."""
    result = frame.copy()
    if sparse.empty:
        return result
    columns = ["pvalue", "diff_mean", "ci_lower", "ci_upper"]
    result.loc[sparse.index, columns] = sparse[columns].to_numpy()
    return result
