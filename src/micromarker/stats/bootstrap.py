"""Percentile bootstrap intervals for the difference of mean proportions."""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from micromarker.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def bootstrap_diff_means(
    x1: np.ndarray, x2: np.ndarray, replicates: int, rng: np.random.Generator
) -> np.ndarray:
    """Sorted bootstrap replicates of mean(x1) - mean(x2) for one feature.

    Each replicate resamples both groups with replacement at their own size.
    """
    x1 = np.asarray(x1, dtype=float)
    x2 = np.asarray(x2, dtype=float)
    choices1 = rng.integers(0, x1.size, size=(replicates, x1.size))
    choices2 = rng.integers(0, x2.size, size=(replicates, x2.size))
    diff = x1[choices1].mean(axis=1) - x2[choices2].mean(axis=1)
    return np.sort(diff)


def percentile_indices(conf_level: float, replicates: int) -> Tuple[int, int]:
    """Positions of the interval bounds in the sorted replicates (0-based)."""
    lower = max(0, math.floor(0.5 * (1.0 - conf_level) * replicates))
    upper = min(
        replicates - 1,
        math.ceil((conf_level + 0.5 * (1.0 - conf_level)) * replicates),
    )
    return lower, upper


def _feature_ci(
    x1: np.ndarray,
    x2: np.ndarray,
    replicates: int,
    seed: np.random.SeedSequence,
    bounds: Tuple[int, int],
) -> Tuple[float, float]:
    diff = bootstrap_diff_means(x1, x2, replicates, np.random.default_rng(seed))
    return float(diff[bounds[0]]), float(diff[bounds[1]])


def bootstrap_ci(
    group1: pd.DataFrame,
    group2: pd.DataFrame,
    conf_level: float = 0.95,
    replicates: int = 1000,
    rng: Optional[np.random.Generator] = None,
    n_jobs: int = 1,
    deadline: Optional[Deadline] = None,
) -> pd.DataFrame:
    """
    Percentile bootstrap interval of mean1 - mean2, feature by feature.

    Parameters
    ----------
    group1, group2 : pd.DataFrame
        Proportions of each group (samples × features)
    conf_level : float
        Confidence level (default: 0.95)
    replicates : int
        Bootstrap replicates per feature (default: 1000)
    rng : np.random.Generator, optional
        Parent generator; one child seed per feature is drawn from it so the
        result does not depend on ``n_jobs``
    n_jobs : int
        joblib workers over features (default: 1, sequential)
    deadline : Deadline, optional
        Checked between features when running sequentially

    Returns
    -------
    pd.DataFrame
        Columns ci_lower, ci_upper indexed by feature (proportion units)
    """
    rng = rng if rng is not None else np.random.default_rng()
    x = group1.to_numpy(dtype=float)
    y = group2.to_numpy(dtype=float)
    n_features = x.shape[1]

    bounds = percentile_indices(conf_level, replicates)
    entropy = rng.integers(0, 2**63 - 1, size=4)
    seeds = np.random.SeedSequence(entropy.tolist()).spawn(n_features)

    if n_jobs == 1:
        intervals = []
        for j in range(n_features):
            if deadline is not None:
                deadline.check("bootstrap")
            intervals.append(_feature_ci(x[:, j], y[:, j], replicates, seeds[j], bounds))
    else:
        if deadline is not None:
            deadline.check("bootstrap")
        logger.info(f"Bootstrapping {n_features} features with n_jobs={n_jobs}")
        intervals = Parallel(n_jobs=n_jobs)(
            delayed(_feature_ci)(x[:, j], y[:, j], replicates, seeds[j], bounds)
            for j in range(n_features)
        )
        if deadline is not None:
            deadline.check("bootstrap")

    ci = np.asarray(intervals, dtype=float).reshape(n_features, 2)
    return pd.DataFrame(
        {"ci_lower": ci[:, 0], "ci_upper": ci[:, 1]},
        index=group1.columns,
    )
