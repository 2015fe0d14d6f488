"""
micromarker: differential abundance biomarkers for microbiome data.

This package provides:
- Welch and Student t-tests on relative abundances
- White's non-parametric t-test with permutation p-values, bootstrap
  confidence intervals and a Fisher exact-test fallback for sparse features
- Multiple-testing correction and effect-size filtering into marker tables
- A Typer CLI
"""

__version__ = "0.1.0"

from micromarker.data import MicrobiomeDataset, load_dataset
from micromarker.marker import MicrobiomeMarker
from micromarker.stats import TwoGroupConfig, test_two_groups

__all__ = [
    "__version__",
    "MicrobiomeDataset",
    "MicrobiomeMarker",
    "TwoGroupConfig",
    "load_dataset",
    "test_two_groups",
]
