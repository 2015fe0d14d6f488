"""Dataset container for microbiome abundance data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from micromarker.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MicrobiomeDataset:
    """
    Three aligned tables describing a microbiome study.

    Parameters
    ----------
    counts : pd.DataFrame
        Abundance matrix of shape (n_samples, n_features); non-negative counts
    sample_data : pd.DataFrame
        Per-sample metadata indexed by sample ID
    tax_table : pd.DataFrame
        Per-feature taxonomy indexed by feature ID; columns are ranks ordered
        from the broadest (e.g. Kingdom) to the most specific

    Attributes
    ----------
    n_samples : int
        Number of samples
    n_features : int
        Number of features
    rank_names : List[str]
        Taxonomic ranks in order

    Examples
    --------
    >>> ds = MicrobiomeDataset(counts=counts, sample_data=meta, tax_table=tax)
    >>> genus = ds.agglomerate("Genus")
    >>> print(f"{genus.n_features} genera across {genus.n_samples} samples")
    """

    counts: pd.DataFrame
    sample_data: pd.DataFrame
    tax_table: pd.DataFrame

    def __post_init__(self):
        """Validate and align the three tables."""
        self.counts = self.counts.copy()
        self.sample_data = self.sample_data.copy()
        self.tax_table = self.tax_table.copy()

        self.counts.index = self.counts.index.astype(str)
        self.counts.columns = self.counts.columns.astype(str)
        self.sample_data.index = self.sample_data.index.astype(str)
        self.tax_table.index = self.tax_table.index.astype(str)

        values = self.counts.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise ValueError("Abundance counts contain missing or non-finite values")
        if (values < 0).any():
            raise ValueError("Abundance counts must be non-negative")

        missing_samples = self.counts.index.difference(self.sample_data.index)
        if len(missing_samples) > 0:
            raise ValueError(
                f"{len(missing_samples)} samples have no metadata: "
                f"{list(missing_samples[:5])}"
            )

        missing_features = self.counts.columns.difference(self.tax_table.index)
        if len(missing_features) > 0:
            raise ValueError(
                f"{len(missing_features)} features have no taxonomy: "
                f"{list(missing_features[:5])}"
            )

        self.sample_data = self.sample_data.loc[self.counts.index]
        self.tax_table = self.tax_table.loc[self.counts.columns]

    @property
    def n_samples(self) -> int:
        return self.counts.shape[0]

    @property
    def n_features(self) -> int:
        return self.counts.shape[1]

    @property
    def feature_names(self) -> List[str]:
        return self.counts.columns.tolist()

    @property
    def rank_names(self) -> List[str]:
        return [str(c) for c in self.tax_table.columns]

    def otu_table(self) -> pd.DataFrame:
        """Counts with features as rows and samples as columns."""
        return self.counts.T.copy()

    def taxa_at(self, rank_name: str) -> pd.Series:
        """Taxonomic label of each feature at ``rank_name``."""
        self.check_rank(rank_name)
        return self.tax_table[rank_name]

    def check_rank(self, rank_name: str) -> None:
        if rank_name not in self.rank_names:
            raise ConfigurationError(
                f"rank_name must be one of the available taxonomic ranks "
                f"{self.rank_names}, got '{rank_name}'"
            )

    def agglomerate(self, rank_name: str) -> "MicrobiomeDataset":
        """
        Merge features sharing the same lineage down to ``rank_name``.

        Features with a missing label at ``rank_name`` are dropped. Counts of
        merged features are summed; each merged feature keeps the ID of its
        first member and the taxonomy truncated at ``rank_name``.

        Parameters
        ----------
        rank_name : str
            Target rank

        Returns
        -------
        MicrobiomeDataset
            Agglomerated dataset

        Raises
        ------
        ConfigurationError
            If ``rank_name`` is not a rank of this dataset
        """
        self.check_rank(rank_name)
        ranks = self.rank_names
        lineage_ranks = ranks[: ranks.index(rank_name) + 1]
        lineage = self.tax_table[lineage_ranks]
        labels = lineage[rank_name]
        keep = labels.notna() & (labels.astype(str).str.strip() != "")
        n_dropped = int((~keep).sum())
        if n_dropped:
            logger.info(f"Dropping {n_dropped} features without a {rank_name} label")

        lineage = lineage.loc[keep]
        keys = lineage.fillna("").astype(str).agg(";".join, axis=1)
        codes, _ = pd.factorize(keys)

        representatives = pd.Series(lineage.index).groupby(codes).first()
        merged = self.counts[lineage.index].T.groupby(codes).sum().T
        merged.columns = representatives.loc[merged.columns].values

        tax = lineage.groupby(codes).first()
        tax.index = representatives.loc[tax.index].values

        logger.info(
            f"Agglomerated {self.n_features} features to {merged.shape[1]} at rank {rank_name}"
        )
        return MicrobiomeDataset(
            counts=merged,
            sample_data=self.sample_data.copy(),
            tax_table=tax,
        )
