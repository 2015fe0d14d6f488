"""Configuration for two-group differential abundance tests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from micromarker.errors import ConfigurationError


class TestMethod(str, Enum):
    """Two-group test used to compare feature proportions."""

    __test__ = False  # keep pytest from collecting this class

    WELCH = "welch.test"
    T = "t.test"
    WHITE = "white.test"

    @classmethod
    def parse(cls, value: Union[str, "TestMethod"]) -> TestMethod:
        """Resolve a method name; short aliases (welch, t, white) are accepted."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        aliases = {"welch": cls.WELCH, "t": cls.T, "student": cls.T, "white": cls.WHITE}
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f"method must be one of {[m.value for m in cls]}, got '{value}'"
            ) from None


class PAdjustMethod(str, Enum):
    """Multiple-testing correction, named as in R's p.adjust."""

    NONE = "none"
    FDR = "fdr"
    BONFERRONI = "bonferroni"
    HOLM = "holm"
    HOCHBERG = "hochberg"
    HOMMEL = "hommel"
    BH = "BH"
    BY = "BY"

    @property
    def statsmodels_name(self) -> Optional[str]:
        """Equivalent ``multipletests`` method, or None for no correction."""
        return {
            PAdjustMethod.NONE: None,
            PAdjustMethod.FDR: "fdr_bh",
            PAdjustMethod.BH: "fdr_bh",
            PAdjustMethod.BY: "fdr_by",
            PAdjustMethod.BONFERRONI: "bonferroni",
            PAdjustMethod.HOLM: "holm",
            PAdjustMethod.HOCHBERG: "simes-hochberg",
            PAdjustMethod.HOMMEL: "hommel",
        }[self]

    @classmethod
    def parse(cls, value: Union[str, "PAdjustMethod", None]) -> PAdjustMethod:
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        # BH / BY are case sensitive in R; accept lower-case spellings too
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise ConfigurationError(
            f"p_adjust must be one of {[m.value for m in cls]}, got '{value}'"
        )


@dataclass
class TwoGroupConfig:
    """Configuration for a two-group test.

    Attributes:
        group: Sample metadata field defining the two groups
        rank_name: Taxonomic rank features are agglomerated to
        method: Test method, welch.test, t.test or white.test (default: welch.test)
        p_adjust: Multiple-testing correction (default: none)
            Options: none, fdr, bonferroni, holm, hochberg, hommel, BH, BY
        p_value_cutoff: Corrected p-value threshold (default: 0.05)
        diff_mean_cutoff: Minimum |difference of mean proportions| in percent
            (None = no effect-size filter)
        ratio_proportion_cutoff: Keep ratio >= cutoff or <= 1/cutoff
            (None = no ratio filter)
        conf_level: Confidence level of intervals (default: 0.95)
        nperm: Permutations (and bootstrap replicates) for white.test (default: 1000)
        random_state: Seed or numpy Generator for resampling (None = fresh entropy)
        n_jobs: Parallel jobs for the bootstrap (default: 1)
        timeout: Time budget in seconds for resampling (None = unlimited)
    """

    group: str
    rank_name: str
    method: Union[str, TestMethod] = TestMethod.WELCH
    p_adjust: Union[str, PAdjustMethod] = PAdjustMethod.NONE
    p_value_cutoff: float = 0.05
    diff_mean_cutoff: Optional[float] = None
    ratio_proportion_cutoff: Optional[float] = None
    conf_level: float = 0.95
    nperm: int = 1000
    random_state: Union[int, np.random.Generator, None] = None
    n_jobs: int = 1
    timeout: Optional[float] = None

    def __post_init__(self):
        """Validate configuration."""
        self.method = TestMethod.parse(self.method)
        self.p_adjust = PAdjustMethod.parse(self.p_adjust)

        if not self.group:
            raise ConfigurationError("group must be a non-empty sample metadata field")

        if not self.rank_name:
            raise ConfigurationError("rank_name must be a non-empty taxonomic rank")

        if self.p_value_cutoff <= 0 or self.p_value_cutoff > 1:
            raise ConfigurationError(
                f"p_value_cutoff must be in (0, 1], got {self.p_value_cutoff}"
            )

        if self.conf_level <= 0 or self.conf_level >= 1:
            raise ConfigurationError(f"conf_level must be in (0, 1), got {self.conf_level}")

        if self.diff_mean_cutoff is not None and self.diff_mean_cutoff < 0:
            raise ConfigurationError(
                f"diff_mean_cutoff must be >= 0, got {self.diff_mean_cutoff}"
            )

        if self.ratio_proportion_cutoff is not None and self.ratio_proportion_cutoff <= 0:
            raise ConfigurationError(
                f"ratio_proportion_cutoff must be > 0, got {self.ratio_proportion_cutoff}"
            )

        if int(self.nperm) != self.nperm or self.nperm < 1:
            raise ConfigurationError(f"nperm must be a positive integer, got {self.nperm}")
        self.nperm = int(self.nperm)

        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {self.timeout}")

    def make_rng(self) -> np.random.Generator:
        """Generator used for every resampling call of the run."""
        if isinstance(self.random_state, np.random.Generator):
            return self.random_state
        return np.random.default_rng(self.random_state)
