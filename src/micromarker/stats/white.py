"""White's non-parametric test pipeline for two groups."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from micromarker.stats.bootstrap import bootstrap_ci
from micromarker.stats.effects import mean_columns
from micromarker.stats.permutation import run_permutation_test
from micromarker.stats.sparse import (
    apply_sparse_override,
    sparse_feature_mask,
    sparse_feature_tests,
)
from micromarker.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def run_white_test(
    prop1: pd.DataFrame,
    prop2: pd.DataFrame,
    counts1: pd.DataFrame,
    counts2: pd.DataFrame,
    group_names: Sequence[str],
    conf_level: float = 0.95,
    nperm: int = 1000,
    rng: Optional[np.random.Generator] = None,
    n_jobs: int = 1,
    deadline: Optional[Deadline] = None,
) -> pd.DataFrame:
    """
    White's non-parametric t-test with bootstrap intervals and sparse fallback.

    Steps, each producing a new table:

    1. observed statistic and permutation p-values (two-sided)
    2. bootstrap percentile interval of the mean difference
    3. Fisher's exact test replaces p-value, difference and interval of
       features with fewer counts than samples in both groups

    Parameters
    ----------
    prop1, prop2 : pd.DataFrame
        Proportions of each group (samples × features)
    counts1, counts2 : pd.DataFrame
        Raw counts of each group, same layout
    group_names : Sequence[str]
        Names of the two groups, used in the mean columns
    conf_level : float
        Confidence level (default: 0.95)
    nperm : int
        Permutations and bootstrap replicates (default: 1000)
    rng : np.random.Generator, optional
        Generator shared by permutations and bootstrap
    n_jobs : int
        joblib workers for the bootstrap
    deadline : Deadline, optional
        Time budget for the resampling loops

    Returns
    -------
    pd.DataFrame
        Same columns as ``run_t_test``: pvalue, the two mean columns,
        diff_mean, ci_lower, ci_upper (percent), indexed by feature
    """
    rng = rng if rng is not None else np.random.default_rng()
    features = prop1.columns

    logger.info(f"White's non-parametric t-test with {nperm} permutations")
    permuted = run_permutation_test(
        prop1.to_numpy(dtype=float),
        prop2.to_numpy(dtype=float),
        counts1.to_numpy(dtype=float),
        counts2.to_numpy(dtype=float),
        nperm=nperm,
        rng=rng,
        deadline=deadline,
    )

    ci = bootstrap_ci(
        prop1,
        prop2,
        conf_level=conf_level,
        replicates=nperm,
        rng=rng,
        n_jobs=n_jobs,
        deadline=deadline,
    )

    result = pd.DataFrame(
        {
            "pvalue": permuted.pvalue_two_side,
            "diff_mean": permuted.diff_means,
            "ci_lower": ci["ci_lower"].to_numpy(),
            "ci_upper": ci["ci_upper"].to_numpy(),
        },
        index=features,
    )

    mask = sparse_feature_mask(counts1, counts2)
    logger.info(f"{int(mask.sum())} of {len(features)} features are sparse")
    sparse = sparse_feature_tests(counts1, counts2, mask, conf_level=conf_level)
    result = apply_sparse_override(result, sparse)

    mean_g1, mean_g2 = mean_columns(group_names)
    return pd.DataFrame(
        {
            "pvalue": result["pvalue"].to_numpy(dtype=float),
            mean_g1: prop1.to_numpy(dtype=float).mean(axis=0) * 100,
            mean_g2: prop2.to_numpy(dtype=float).mean(axis=0) * 100,
            "diff_mean": result["diff_mean"].to_numpy(dtype=float) * 100,
            "ci_lower": result["ci_lower"].to_numpy(dtype=float) * 100,
            "ci_upper": result["ci_upper"].to_numpy(dtype=float) * 100,
        },
        index=features,
    )
