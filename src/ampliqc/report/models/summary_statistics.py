"""Model for a collection of summary statistics of a distribution.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

from typing import Self

import numpy as np
import pydantic


class SummaryStatistics(pydantic.BaseModel):
    """Boxplot-style summary statistics of an integer distribution."""

    mean: float
    std: float
    min: float
    q1: float
    median: float
    q3: float
    max: float
    count: int

    @pydantic.computed_field(
        return_type=float,
        description="The interquartile range.",
    )
    def iqr(self) -> float:
        """Return the interquartile range."""
        return self.q3 - self.q1

    @classmethod
    def from_histogram(cls, histogram: np.ndarray) -> Self:
        """Summarize a distribution given as counts per integer value.

        `histogram[v]` is the number of observations of value `v`. Quantiles
        are computed with linear interpolation between order statistics, the
        same as `numpy.quantile` on the expanded observations.

        :param histogram: a 1D array of non-negative counts
        :return: the summary statistics of the distribution
        :raises ValueError: if the histogram holds no observations
        """
        counts = np.asarray(histogram, dtype=np.int64)
        n = int(counts.sum())
        if n == 0:
            raise ValueError("Cannot summarize an empty distribution")

        values = np.arange(len(counts), dtype=np.float64)
        cumulative = np.cumsum(counts)

        def order_statistic(k: int) -> float:
            # index of the first value whose cumulative count exceeds k
            return float(np.searchsorted(cumulative, k, side="right"))

        def quantile(p: float) -> float:
            h = p * (n - 1)
            lo = int(np.floor(h))
            hi = min(lo + 1, n - 1)
            v_lo = order_statistic(lo)
            v_hi = order_statistic(hi)
            return v_lo + (h - lo) * (v_hi - v_lo)

        mean = float(np.dot(values, counts) / n)
        variance = float(np.dot(counts, (values - mean) ** 2) / n)

        return cls(
            mean=mean,
            std=float(np.sqrt(variance)),
            min=order_statistic(0),
            q1=quantile(0.25),
            median=quantile(0.5),
            q3=quantile(0.75),
            max=order_statistic(n - 1),
            count=n,
        )
