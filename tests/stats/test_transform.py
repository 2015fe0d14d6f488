"""Tests for relative abundance and group splitting."""

import numpy as np
import pandas as pd
import pytest

from micromarker.errors import ConfigurationError, InvalidGroupError
from micromarker.stats.transform import group_labels, relative_abundance, split_groups


def test_relative_abundance_rows_sum_to_one():
    """Every non-empty sample sums to 1."""
    rng = np.random.default_rng(0)
    counts = pd.DataFrame(rng.poisson(20, size=(12, 6)))

    props = relative_abundance(counts)

    assert props.shape == counts.shape
    np.testing.assert_allclose(props.sum(axis=1), 1.0, atol=1e-9)


def test_relative_abundance_zero_row_stays_zero():
    """A sample without reads gives zeros, not NaN."""
    counts = pd.DataFrame([[0, 0, 0], [1, 3, 0]], columns=["a", "b", "c"])

    props = relative_abundance(counts)

    assert not props.isna().any().any()
    assert props.iloc[0].tolist() == [0.0, 0.0, 0.0]
    assert props.iloc[1].tolist() == pytest.approx([0.25, 0.75, 0.0])
    assert props.columns.tolist() == ["a", "b", "c"]


def test_split_groups_orders_by_label(toy_dataset):
    """Groups come out in sorted label order with aligned views."""
    labels = pd.Series(["B"] * 5 + ["A"] * 5, index=toy_dataset.counts.index)

    split = split_groups(toy_dataset.counts, labels)

    assert split.names == ("A", "B")
    assert split.sizes == (5, 5)
    assert split.counts[0].index.tolist() == ["S6", "S7", "S8", "S9", "S10"]
    assert split.proportions[0].index.equals(split.counts[0].index)
    assert split.proportions[1].columns.equals(toy_dataset.counts.columns)


def test_split_groups_orders_mixed_case_labels(toy_dataset):
    labels = pd.Series(["Control"] * 5 + ["case"] * 5, index=toy_dataset.counts.index)

    split = split_groups(toy_dataset.counts, labels)

    assert split.names == ("case", "Control")
    assert split.counts[0].index.tolist() == ["S6", "S7", "S8", "S9", "S10"]


def test_split_groups_rejects_three_groups(toy_dataset):
    labels = pd.Series(list("AAABBBCCCC"), index=toy_dataset.counts.index)

    with pytest.raises(InvalidGroupError, match="exactly 2 distinct"):
        split_groups(toy_dataset.counts, labels)


def test_split_groups_rejects_single_sample_group(toy_dataset):
    labels = pd.Series(["A"] + ["B"] * 9, index=toy_dataset.counts.index)

    with pytest.raises(InvalidGroupError, match="at least 2"):
        split_groups(toy_dataset.counts, labels)


def test_split_groups_rejects_missing_labels(toy_dataset):
    labels = pd.Series(["A"] * 5 + ["B"] * 4 + [None], index=toy_dataset.counts.index)

    with pytest.raises(InvalidGroupError, match="no group label"):
        split_groups(toy_dataset.counts, labels)


def test_group_labels_missing_field(toy_dataset):
    """An unknown metadata field is a configuration error."""
    with pytest.raises(ConfigurationError, match="sample metadata"):
        group_labels(toy_dataset.sample_data, "diagnosis")


def test_group_labels_casts_to_str():
    meta = pd.DataFrame({"visit": [1, 2, 1, 2]}, index=list("abcd"))

    labels = group_labels(meta, "visit")

    assert labels.tolist() == ["1", "2", "1", "2"]
