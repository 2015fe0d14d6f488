"""Merge, correct and filter per-feature test results into a marker table."""

from __future__ import annotations

import logging
import warnings
from typing import Optional, Union

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from micromarker.errors import NoSignificantFeaturesWarning
from micromarker.stats.config import PAdjustMethod

logger = logging.getLogger(__name__)


def merge_results(
    test_res: pd.DataFrame, features: pd.Series, ratio: pd.Series
) -> pd.DataFrame:
    """Attach taxonomic labels and ratio of proportions to test results.

    ``test_res``, ``features`` and ``ratio`` are indexed by feature ID.
    """
    merged = test_res.copy()
    merged.insert(0, "feature", features.reindex(merged.index).to_numpy())
    merged["ratio_proportion"] = ratio.reindex(merged.index).to_numpy()
    return merged


def zero_ci_when_no_difference(frame: pd.DataFrame) -> pd.DataFrame:
    """Set both interval bounds to 0 wherever the p-value is exactly 1."""
    result = frame.copy()
    no_difference = result["pvalue"] == 1
    result.loc[no_difference, ["ci_lower", "ci_upper"]] = 0.0
    return result


def adjust_pvalues(
    pvals: np.ndarray, method: Union[str, PAdjustMethod] = PAdjustMethod.NONE
) -> np.ndarray:
    """Adjust p-values for multiple testing with statsmodels multipletests.

    Non-finite entries are left as NaN and excluded from the family size.
    """
    method = PAdjustMethod.parse(method)
    pvals = np.asarray(pvals, dtype=float)
    if method.statsmodels_name is None:
        return pvals.copy()

    p_adj = np.full_like(pvals, np.nan, dtype=float)
    mask = np.isfinite(pvals)
    if mask.any():
        _, adj, _, _ = multipletests(pvals[mask], method=method.statsmodels_name)
        p_adj[mask] = np.minimum(adj, 1.0)
    return p_adj


def filter_markers(
    frame: pd.DataFrame,
    p_value_cutoff: float = 0.05,
    diff_mean_cutoff: Optional[float] = None,
    ratio_proportion_cutoff: Optional[float] = None,
) -> pd.DataFrame:
    """
    Keep significant features passing the optional effect-size filters.

    Parameters
    ----------
    frame : pd.DataFrame
        Results with pvalue_corrected, diff_mean and ratio_proportion columns
    p_value_cutoff : float
        Keep pvalue_corrected <= cutoff
    diff_mean_cutoff : float, optional
        Keep |diff_mean| >= cutoff
    ratio_proportion_cutoff : float, optional
        Keep ratio_proportion >= cutoff or <= 1 / cutoff

    Returns
    -------
    pd.DataFrame
        Filtered rows; all rows (with a NoSignificantFeaturesWarning) when
        nothing passes
    """
    keep = frame["pvalue_corrected"] <= p_value_cutoff

    if diff_mean_cutoff is not None:
        keep &= frame["diff_mean"].abs() >= diff_mean_cutoff

    if ratio_proportion_cutoff is not None:
        ratio = frame["ratio_proportion"]
        keep &= (ratio >= ratio_proportion_cutoff) | (ratio <= 1 / ratio_proportion_cutoff)

    filtered = frame.loc[keep]
    if filtered.empty:
        message = "No significant features were found, return all the features"
        logger.warning(message)
        warnings.warn(message, NoSignificantFeaturesWarning, stacklevel=2)
        return frame.copy()

    logger.info(f"{len(filtered)} of {len(frame)} features pass the marker filters")
    return filtered.copy()


def assemble_markers(
    test_res: pd.DataFrame,
    features: pd.Series,
    ratio: pd.Series,
    p_adjust: Union[str, PAdjustMethod] = PAdjustMethod.NONE,
    p_value_cutoff: float = 0.05,
    diff_mean_cutoff: Optional[float] = None,
    ratio_proportion_cutoff: Optional[float] = None,
) -> pd.DataFrame:
    """Merge results, blank intervals without evidence, correct and filter.

    Returns the marker table indexed by feature ID, ordered as the input.
    """
    merged = merge_results(test_res, features, ratio)
    merged = zero_ci_when_no_difference(merged)
    merged["pvalue_corrected"] = adjust_pvalues(merged["pvalue"].to_numpy(), p_adjust)
    return filter_markers(
        merged,
        p_value_cutoff=p_value_cutoff,
        diff_mean_cutoff=diff_mean_cutoff,
        ratio_proportion_cutoff=ratio_proportion_cutoff,
    )
