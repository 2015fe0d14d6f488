"""Wall-clock budget for long resampling loops."""

from __future__ import annotations

import time
from typing import Optional

from micromarker.errors import ComputationTimeoutError


class Deadline:
    """Time budget checked between resampling iterations.

    Parameters
    ----------
    seconds : float, optional
        Budget in seconds; None means no limit.

    Examples
    --------
    >>> deadline = Deadline(30.0)
    >>> for i in range(nperm):
    ...     deadline.check("permutation")
    """

    def __init__(self, seconds: Optional[float] = None):
        if seconds is not None and seconds <= 0:
            raise ValueError(f"Deadline must be positive, got {seconds}")
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def check(self, stage: str = "computation") -> None:
        """Raise ComputationTimeoutError if the budget is spent."""
        if self.expired:
            raise ComputationTimeoutError(
                f"{stage} exceeded time budget of {self.seconds:g}s"
            )
