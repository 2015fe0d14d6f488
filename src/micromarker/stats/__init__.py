"""Two-group differential abundance statistics.

Tests available behind one output contract:

- Welch's t-test and Student's t-test on relative abundances
- White's non-parametric t-test: permutation p-values, bootstrap confidence
  intervals and Fisher's exact test for sparse features

Results are merged with the ratio of proportions, corrected for multiple
testing and filtered into a marker table.

Public API:
-----------
from micromarker.stats import api

marker = api.test_two_groups(
    dataset,
    group="Enterotype",
    rank_name="Genus",
    method="white.test",
    p_adjust="fdr",
    random_state=42,
)
"""

from micromarker.stats.api import test_two_groups, test_two_groups_from_config
from micromarker.stats.config import PAdjustMethod, TestMethod, TwoGroupConfig

__all__ = [
    "test_two_groups",
    "test_two_groups_from_config",
    "PAdjustMethod",
    "TestMethod",
    "TwoGroupConfig",
]
