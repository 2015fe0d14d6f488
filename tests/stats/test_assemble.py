"""Tests for merging, p-value correction and marker filtering."""

import numpy as np
import pandas as pd
import pytest

from micromarker.errors import ConfigurationError, NoSignificantFeaturesWarning
from micromarker.stats.assemble import (
    adjust_pvalues,
    assemble_markers,
    filter_markers,
    merge_results,
    zero_ci_when_no_difference,
)


@pytest.fixture
def test_res():
    return pd.DataFrame(
        {
            "pvalue": [0.001, 0.02, 1.0, 0.3],
            "A_mean_rel_freq": [50.0, 5.0, 1.0, 2.0],
            "B_mean_rel_freq": [10.0, 4.0, 1.0, 1.0],
            "diff_mean": [40.0, 1.0, 0.0, 1.0],
            "ci_lower": [35.0, 0.2, -0.5, -1.0],
            "ci_upper": [45.0, 1.8, 0.5, 3.0],
        },
        index=["OTU1", "OTU2", "OTU3", "OTU4"],
    )


@pytest.fixture
def labels():
    return pd.Series(["Bacteroides", "Prevotella", "Blautia", "Dorea"], index=["OTU1", "OTU2", "OTU3", "OTU4"])


@pytest.fixture
def ratios():
    return pd.Series([5.0, 1.25, 1.0, 2.0], index=["OTU1", "OTU2", "OTU3", "OTU4"])


def test_bonferroni_known_vector():
    pvals = np.array([0.01, 0.04, 0.03, 0.005, 0.5])

    adjusted = adjust_pvalues(pvals, "bonferroni")

    np.testing.assert_allclose(adjusted, np.minimum(1.0, pvals * 5))


def test_adjust_none_returns_copy():
    pvals = np.array([0.2, 0.7])

    adjusted = adjust_pvalues(pvals, "none")

    np.testing.assert_array_equal(adjusted, pvals)
    assert adjusted is not pvals


@pytest.mark.parametrize(
    "method, expected",
    [
        # R: p.adjust(c(0.01, 0.02, 0.03, 0.04, 0.05), "BH")
        ("BH", [0.05, 0.05, 0.05, 0.05, 0.05]),
        ("fdr", [0.05, 0.05, 0.05, 0.05, 0.05]),
        # R: p.adjust(c(0.01, 0.02, 0.03, 0.04, 0.05), "holm")
        ("holm", [0.05, 0.08, 0.09, 0.09, 0.09]),
        # R: p.adjust(c(0.01, 0.02, 0.03, 0.04, 0.05), "hochberg")
        ("hochberg", [0.05, 0.05, 0.05, 0.05, 0.05]),
        # R: p.adjust(c(0.01, 0.02, 0.03, 0.04, 0.05), "BY")
        ("BY", [0.05 * (1 + 1 / 2 + 1 / 3 + 1 / 4 + 1 / 5)] * 5),
    ],
)
def test_adjust_matches_r_p_adjust(method, expected):
    adjusted = adjust_pvalues(np.array([0.01, 0.02, 0.03, 0.04, 0.05]), method)

    np.testing.assert_allclose(adjusted, expected)


def test_adjust_hommel_matches_r_p_adjust():
    # R: p.adjust(c(0.01, 0.04, 0.03, 0.005, 0.5), "hommel")
    adjusted = adjust_pvalues(np.array([0.01, 0.04, 0.03, 0.005, 0.5]), "hommel")

    np.testing.assert_allclose(adjusted, [0.04, 0.08, 0.06, 0.025, 0.5])


def test_adjust_keeps_nan_out_of_family():
    adjusted = adjust_pvalues(np.array([0.01, np.nan, 0.02]), "bonferroni")

    assert np.isnan(adjusted[1])
    np.testing.assert_allclose(adjusted[[0, 2]], [0.02, 0.04])


def test_adjust_unknown_method():
    with pytest.raises(ConfigurationError):
        adjust_pvalues(np.array([0.1]), "sidak")


def test_merge_results_puts_feature_first(test_res, labels, ratios):
    merged = merge_results(test_res, labels, ratios)

    assert merged.columns[0] == "feature"
    assert merged.columns[-1] == "ratio_proportion"
    assert merged.loc["OTU2", "feature"] == "Prevotella"
    assert "feature" not in test_res.columns


def test_zero_ci_when_no_difference(test_res):
    result = zero_ci_when_no_difference(test_res)

    assert result.loc["OTU3", ["ci_lower", "ci_upper"]].tolist() == [0.0, 0.0]
    assert result.loc["OTU1", "ci_lower"] == 35.0
    assert test_res.loc["OTU3", "ci_lower"] == -0.5


def test_filter_markers_pvalue_and_effect_size(test_res, labels, ratios):
    merged = merge_results(test_res, labels, ratios)
    merged["pvalue_corrected"] = merged["pvalue"]

    significant = filter_markers(merged, p_value_cutoff=0.05)
    large_diff = filter_markers(merged, p_value_cutoff=0.05, diff_mean_cutoff=10)
    large_ratio = filter_markers(merged, p_value_cutoff=0.05, ratio_proportion_cutoff=2)

    assert significant.index.tolist() == ["OTU1", "OTU2"]
    assert large_diff.index.tolist() == ["OTU1"]
    assert large_ratio.index.tolist() == ["OTU1"]


def test_filter_markers_ratio_below_inverse_cutoff(labels):
    frame = pd.DataFrame(
        {"feature": labels, "pvalue_corrected": [0.01] * 4, "diff_mean": [1.0] * 4,
         "ratio_proportion": [0.2, 0.9, 1.1, 4.0]},
    )

    kept = filter_markers(frame, ratio_proportion_cutoff=3)

    assert kept.index.tolist() == ["OTU1", "OTU4"]


def test_filter_markers_empty_returns_all(test_res, labels, ratios):
    merged = merge_results(test_res, labels, ratios)
    merged["pvalue_corrected"] = 0.9

    with pytest.warns(NoSignificantFeaturesWarning, match="No significant features"):
        kept = filter_markers(merged, p_value_cutoff=0.05)

    assert len(kept) == 4


def test_assemble_markers_pipeline(test_res, labels, ratios):
    markers = assemble_markers(test_res, labels, ratios, p_adjust="bonferroni")

    assert markers.index.tolist() == ["OTU1"]
    assert markers.loc["OTU1", "pvalue_corrected"] == pytest.approx(0.004)
    assert markers.columns.tolist() == [
        "feature",
        "pvalue",
        "A_mean_rel_freq",
        "B_mean_rel_freq",
        "diff_mean",
        "ci_lower",
        "ci_upper",
        "ratio_proportion",
        "pvalue_corrected",
    ]
