"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import pandas as pd

from micromarker.data import MicrobiomeDataset


def make_dataset(counts, groups, genera=None, group_field="group"):
    """Build a MicrobiomeDataset from a samples × features count array."""
    counts = np.asarray(counts)
    n_samples, n_features = counts.shape
    samples = [f"S{i + 1}" for i in range(n_samples)]
    features = [f"OTU{j + 1}" for j in range(n_features)]
    genera = genera or [f"Genus{j + 1}" for j in range(n_features)]

    return MicrobiomeDataset(
        counts=pd.DataFrame(counts, index=samples, columns=features),
        sample_data=pd.DataFrame({group_field: list(groups)}, index=samples),
        tax_table=pd.DataFrame(
            {
                "Kingdom": ["Bacteria"] * n_features,
                "Phylum": ["Firmicutes"] * n_features,
                "Genus": genera,
            },
            index=features,
        ),
    )


@pytest.fixture
def toy_counts():
    """10 samples (5 per group) × 4 features with 1000 reads each.

    OTU1 averages 50% in group A and 10% in group B without overlap; OTU2 is
    a constant 20% everywhere.
    """
    f1 = np.array([480, 490, 500, 510, 520, 80, 90, 100, 110, 120])
    f2 = np.full(10, 200)
    rest = 1000 - f1 - f2
    f3 = rest // 2
    f4 = rest - f3
    return np.column_stack([f1, f2, f3, f4])


@pytest.fixture
def toy_dataset(toy_counts):
    return make_dataset(toy_counts, ["A"] * 5 + ["B"] * 5)


@pytest.fixture
def random_dataset():
    """40 samples (20 per group) × 30 features of Poisson counts.

    OTU1 is enriched in group "case"; OTU30 is absent except for one read.
    """
    rng = np.random.default_rng(7)
    rates = rng.uniform(5, 60, size=30)
    counts = rng.poisson(rates, size=(40, 30))
    counts[:20, 0] += rng.poisson(80, size=20)
    counts[:, 29] = 0
    counts[3, 29] = 1
    groups = ["case"] * 20 + ["control"] * 20
    return make_dataset(counts, groups)


@pytest.fixture
def dataset_factory():
    """Factory building datasets from count arrays and group labels."""
    return make_dataset
