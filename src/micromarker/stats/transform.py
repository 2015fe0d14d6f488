"""Relative abundance and two-group splitting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from micromarker.errors import InvalidGroupError


@dataclass(frozen=True)
class GroupSplit:
    """Raw counts and proportions of the two compared groups.

    ``names[i]`` labels ``counts[i]`` and ``proportions[i]``; every frame keeps
    the feature column order of the input matrix.
    """

    names: Tuple[str, str]
    counts: Tuple[pd.DataFrame, pd.DataFrame]
    proportions: Tuple[pd.DataFrame, pd.DataFrame]

    @property
    def sizes(self) -> Tuple[int, int]:
        return len(self.counts[0]), len(self.counts[1])


def relative_abundance(counts: pd.DataFrame) -> pd.DataFrame:
    """Divide each sample (row) by its total; all-zero rows stay zero."""
    totals = counts.sum(axis=1).to_numpy(dtype=float)
    safe = np.where(totals == 0, 1.0, totals)
    return counts.astype(float).div(safe, axis=0)


def group_labels(sample_data: pd.DataFrame, group: str) -> pd.Series:
    """Group label of each sample, as strings."""
    if group not in sample_data.columns:
        raise InvalidGroupError(
            f"group '{group}' must be a field of the sample metadata. "
            f"Available: {sorted(map(str, sample_data.columns))[:10]}"
        )
    labels = sample_data[group]
    return labels.where(labels.isna(), labels.astype(str))


def split_groups(counts: pd.DataFrame, labels: pd.Series) -> GroupSplit:
    """
    Split samples into the two groups defined by ``labels``.

    Parameters
    ----------
    counts : pd.DataFrame
        Abundance matrix (samples × features)
    labels : pd.Series
        Group label per sample, indexed like ``counts``

    Returns
    -------
    GroupSplit
        Groups ordered by label, ignoring case first

    Raises
    ------
    InvalidGroupError
        If any sample lacks a label, the labels are not exactly two values,
        or a group has fewer than two samples
    """
    labels = labels.reindex(counts.index)
    if labels.isna().any():
        missing = labels.index[labels.isna()].tolist()
        raise InvalidGroupError(
            f"{len(missing)} samples have no group label: {missing[:5]}"
        )

    # case-insensitive first, as R orders factor levels
    names = sorted(pd.unique(labels.astype(str)), key=lambda name: (name.casefold(), name))
    if len(names) != 2:
        raise InvalidGroupError(
            f"Two-group tests require exactly 2 distinct group values, "
            f"found {len(names)}: {names[:10]}"
        )

    proportions = relative_abundance(counts)
    masks = [(labels.astype(str) == name).to_numpy() for name in names]
    for name, mask in zip(names, masks):
        if mask.sum() < 2:
            raise InvalidGroupError(
                f"Group '{name}' has {int(mask.sum())} sample(s); at least 2 are required"
            )

    return GroupSplit(
        names=(names[0], names[1]),
        counts=(counts.loc[masks[0]], counts.loc[masks[1]]),
        proportions=(proportions.loc[masks[0]], proportions.loc[masks[1]]),
    )
