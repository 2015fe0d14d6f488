"""Tests for micromarker.data.dataset module."""

import numpy as np
import pandas as pd
import pytest

from micromarker.data import MicrobiomeDataset
from micromarker.errors import ConfigurationError


@pytest.fixture
def lineage_dataset():
    """6 features over 3 samples; two Bacteroides and two unlabelled genera."""
    counts = pd.DataFrame(
        [[1, 2, 3, 4, 5, 6], [10, 20, 30, 40, 50, 60], [0, 1, 0, 1, 0, 1]],
        index=["S1", "S2", "S3"],
        columns=["f1", "f2", "f3", "f4", "f5", "f6"],
    )
    tax = pd.DataFrame(
        {
            "Kingdom": ["Bacteria"] * 6,
            "Phylum": ["Bacteroidetes", "Bacteroidetes", "Firmicutes", "Firmicutes", "Firmicutes", "Firmicutes"],
            "Genus": ["Bacteroides", "Bacteroides", "Blautia", np.nan, "", "Dorea"],
        },
        index=counts.columns,
    )
    meta = pd.DataFrame({"group": ["a", "b", "a"]}, index=["S3", "S2", "S1"])
    return MicrobiomeDataset(counts=counts, sample_data=meta, tax_table=tax)


def test_tables_are_aligned(lineage_dataset):
    assert lineage_dataset.sample_data.index.tolist() == ["S1", "S2", "S3"]
    assert lineage_dataset.sample_data["group"].tolist() == ["a", "b", "a"]
    assert lineage_dataset.rank_names == ["Kingdom", "Phylum", "Genus"]
    assert lineage_dataset.n_samples == 3
    assert lineage_dataset.n_features == 6


def test_otu_table_is_features_by_samples(lineage_dataset):
    otu = lineage_dataset.otu_table()

    assert otu.shape == (6, 3)
    assert otu.loc["f2", "S2"] == 20


def test_agglomerate_sums_and_drops_unlabelled(lineage_dataset):
    genus = lineage_dataset.agglomerate("Genus")

    assert genus.feature_names == ["f1", "f3", "f6"]
    assert genus.counts["f1"].tolist() == [3, 30, 1]
    assert genus.taxa_at("Genus").tolist() == ["Bacteroides", "Blautia", "Dorea"]


def test_agglomerate_truncates_taxonomy(lineage_dataset):
    phylum = lineage_dataset.agglomerate("Phylum")

    assert phylum.rank_names == ["Kingdom", "Phylum"]
    assert phylum.feature_names == ["f1", "f3"]
    assert phylum.counts.loc["S1"].tolist() == [3, 18]
    assert phylum.otu_table().sum().tolist() == lineage_dataset.otu_table().sum().tolist()


def test_agglomerate_keeps_lineage_apart():
    counts = pd.DataFrame([[1, 2], [3, 4]], index=["S1", "S2"], columns=["f1", "f2"])
    tax = pd.DataFrame(
        {"Phylum": ["Firmicutes", "Proteobacteria"], "Genus": ["Incertae", "Incertae"]},
        index=["f1", "f2"],
    )
    meta = pd.DataFrame({"group": ["a", "b"]}, index=["S1", "S2"])

    genus = MicrobiomeDataset(counts, meta, tax).agglomerate("Genus")

    assert genus.n_features == 2


def test_unknown_rank(lineage_dataset):
    with pytest.raises(ConfigurationError, match="Species"):
        lineage_dataset.agglomerate("Species")


def test_missing_sample_metadata():
    counts = pd.DataFrame([[1], [2]], index=["S1", "S2"], columns=["f1"])
    tax = pd.DataFrame({"Genus": ["g"]}, index=["f1"])
    meta = pd.DataFrame({"group": ["a"]}, index=["S1"])

    with pytest.raises(ValueError, match="no metadata"):
        MicrobiomeDataset(counts, meta, tax)


def test_missing_taxonomy():
    counts = pd.DataFrame([[1, 2]], index=["S1"], columns=["f1", "f2"])
    tax = pd.DataFrame({"Genus": ["g"]}, index=["f1"])
    meta = pd.DataFrame({"group": ["a"]}, index=["S1"])

    with pytest.raises(ValueError, match="no taxonomy"):
        MicrobiomeDataset(counts, meta, tax)


@pytest.mark.parametrize("value", [-1, np.nan])
def test_invalid_counts(value):
    counts = pd.DataFrame([[1.0, value]], index=["S1"], columns=["f1", "f2"])
    tax = pd.DataFrame({"Genus": ["g1", "g2"]}, index=["f1", "f2"])
    meta = pd.DataFrame({"group": ["a"]}, index=["S1"])

    with pytest.raises(ValueError, match="Abundance counts"):
        MicrobiomeDataset(counts, meta, tax)
