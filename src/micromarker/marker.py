"""Marker result container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

import pandas as pd


@dataclass
class MicrobiomeMarker:
    """
    Differential-abundance markers with the tables needed for reporting.

    Parameters
    ----------
    marker_table : pd.DataFrame
        One row per marker, indexed by feature ID, with columns feature,
        pvalue, <group>_mean_rel_freq (×2), diff_mean, ci_lower, ci_upper,
        ratio_proportion and pvalue_corrected
    otu_table : pd.DataFrame
        Raw counts of every tested feature (features × samples)
    tax_table : pd.DataFrame
        Taxonomy of every tested feature
    """

    marker_table: pd.DataFrame
    otu_table: pd.DataFrame
    tax_table: pd.DataFrame

    @property
    def n_markers(self) -> int:
        return len(self.marker_table)

    @property
    def features(self) -> List[str]:
        return self.marker_table["feature"].astype(str).tolist()

    def to_csv(self, path: Path) -> Path:
        """Write the marker table with the feature ID as first column."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.marker_table.to_csv(path, index_label="feature_id")
        return path
