"""Public API for two-group differential abundance tests."""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from micromarker.data.dataset import MicrobiomeDataset
from micromarker.marker import MicrobiomeMarker
from micromarker.stats.assemble import assemble_markers
from micromarker.stats.config import PAdjustMethod, TestMethod, TwoGroupConfig
from micromarker.stats.effects import ratio_proportions, run_t_test
from micromarker.stats.transform import group_labels, split_groups
from micromarker.stats.white import run_white_test
from micromarker.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def _welch(split, config, rng, deadline):
    return run_t_test(
        split.proportions[0],
        split.proportions[1],
        conf_level=config.conf_level,
        pooled_variance=False,
        group_names=split.names,
    )


def _student(split, config, rng, deadline):
    return run_t_test(
        split.proportions[0],
        split.proportions[1],
        conf_level=config.conf_level,
        pooled_variance=True,
        group_names=split.names,
    )


def _white(split, config, rng, deadline):
    return run_white_test(
        split.proportions[0],
        split.proportions[1],
        split.counts[0],
        split.counts[1],
        group_names=split.names,
        conf_level=config.conf_level,
        nperm=config.nperm,
        rng=rng,
        n_jobs=config.n_jobs,
        deadline=deadline,
    )


TEST_RUNNERS = {
    TestMethod.WELCH: _welch,
    TestMethod.T: _student,
    TestMethod.WHITE: _white,
}


def test_two_groups(
    dataset: MicrobiomeDataset,
    group: str,
    rank_name: str,
    method: Union[str, TestMethod] = TestMethod.WELCH,
    p_adjust: Union[str, PAdjustMethod] = PAdjustMethod.NONE,
    p_value_cutoff: float = 0.05,
    diff_mean_cutoff: Optional[float] = None,
    ratio_proportion_cutoff: Optional[float] = None,
    conf_level: float = 0.95,
    nperm: int = 1000,
    random_state: Union[int, np.random.Generator, None] = None,
    n_jobs: int = 1,
    timeout: Optional[float] = None,
) -> MicrobiomeMarker:
    """Statistical test between two groups of samples.

    Args:
        dataset: Counts, sample metadata and taxonomy
        group: Sample metadata field defining the two groups
        rank_name: Taxonomic rank to compare features at
        method: welch.test, t.test or white.test (default: welch.test)
        p_adjust: Multiple-testing correction (default: none)
        p_value_cutoff: Corrected p-value threshold (default: 0.05)
        diff_mean_cutoff: Minimum |diff_mean| in percent (None = no filter)
        ratio_proportion_cutoff: Keep ratio >= cutoff or <= 1/cutoff (None = no filter)
        conf_level: Confidence level of intervals (default: 0.95)
        nperm: Permutations and bootstrap replicates for white.test (default: 1000)
        random_state: Seed or numpy Generator for white.test resampling
        n_jobs: joblib workers for the white.test bootstrap (default: 1)
        timeout: Time budget in seconds for resampling (None = unlimited)

    Returns:
        MicrobiomeMarker whose marker table holds the features passing the
        filters, or every feature (with a warning) when none pass

    Example:
        >>> from micromarker.stats import api
        >>> mm = api.test_two_groups(dataset, group="Enterotype", rank_name="Genus",
        ...                          method="white.test", p_adjust="fdr")
        >>> mm.marker_table.head()
    """
    config = TwoGroupConfig(
        group=group,
        rank_name=rank_name,
        method=method,
        p_adjust=p_adjust,
        p_value_cutoff=p_value_cutoff,
        diff_mean_cutoff=diff_mean_cutoff,
        ratio_proportion_cutoff=ratio_proportion_cutoff,
        conf_level=conf_level,
        nperm=nperm,
        random_state=random_state,
        n_jobs=n_jobs,
        timeout=timeout,
    )
    return test_two_groups_from_config(dataset, config)


def test_two_groups_from_config(
    dataset: MicrobiomeDataset, config: TwoGroupConfig
) -> MicrobiomeMarker:
    """Run a two-group test from a TwoGroupConfig.

    Rank and group are validated before any computation; the dataset is
    agglomerated to ``config.rank_name`` first.
    """
    dataset.check_rank(config.rank_name)
    labels = group_labels(dataset.sample_data, config.group)

    dataset = dataset.agglomerate(config.rank_name)
    split = split_groups(dataset.counts, labels)
    n1, n2 = split.sizes

    logger.info(
        f"Comparing {split.names[0]} (n={n1}) vs {split.names[1]} (n={n2}) "
        f"on {dataset.n_features} features at rank {config.rank_name}"
    )
    logger.info(f"Method: {config.method.value}; p-value correction: {config.p_adjust.value}")

    deadline = Deadline(config.timeout)
    rng = config.make_rng()
    test_res = TEST_RUNNERS[config.method](split, config, rng, deadline)

    ratio = ratio_proportions(split.proportions[0], split.proportions[1])
    marker_table = assemble_markers(
        test_res,
        features=dataset.taxa_at(config.rank_name),
        ratio=ratio,
        p_adjust=config.p_adjust,
        p_value_cutoff=config.p_value_cutoff,
        diff_mean_cutoff=config.diff_mean_cutoff,
        ratio_proportion_cutoff=config.ratio_proportion_cutoff,
    )

    return MicrobiomeMarker(
        marker_table=marker_table,
        otu_table=dataset.otu_table(),
        tax_table=dataset.tax_table.copy(),
    )


# Keep pytest from collecting the public API as tests when it is imported
test_two_groups.__test__ = False
test_two_groups_from_config.__test__ = False
