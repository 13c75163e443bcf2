"""Read retention statistics of a filter run.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd
import pydantic

from ampliqc.exception import DivisionUndefinedError
from ampliqc.filtering.report import FilterResult
from ampliqc.report.models.base import ReportModel

logger = logging.getLogger(__name__)


class RetentionStats(ReportModel):
    """Cohort level retention statistics.

    The ratio statistics are computed over the samples with input reads
    only and are None when there is no such sample. The read count medians
    are computed over all samples.
    """

    median_reads_in: float = pydantic.Field(
        ..., description="The median number of input read pairs per sample."
    )
    median_reads_out: float = pydantic.Field(
        ..., description="The median number of output read pairs per sample."
    )
    median_percent_retained: Optional[float] = pydantic.Field(
        ..., description="The median fraction of read pairs retained per sample."
    )
    max_percent_retained: Optional[float] = pydantic.Field(
        ..., description="The highest fraction of read pairs retained by a sample."
    )
    min_percent_retained: Optional[float] = pydantic.Field(
        ..., description="The lowest fraction of read pairs retained by a sample."
    )
    undefined_samples: list[str] = pydantic.Field(
        default_factory=list,
        description="Samples without input reads, excluded from the ratios.",
    )


def percent_retained(
    result: FilterResult, acknowledge_undefined: bool = False
) -> Optional[float]:
    """Return the fraction of read pairs of a sample that passed the filters.

    :param result: the read counts of the sample
    :param acknowledge_undefined: return None instead of raising for samples
        without input reads
    :returns: a ratio in [0, 1], or None for an acknowledged undefined ratio
    :raises DivisionUndefinedError: if the sample has no input reads and
        `acknowledge_undefined` is False
    """
    if result.reads_in == 0:
        if acknowledge_undefined:
            return None
        raise DivisionUndefinedError(result.sample_id)
    return result.reads_out / result.reads_in


def retention_series(results: Iterable[FilterResult]) -> pd.DataFrame:
    """Return the per-sample retention table.

    :param results: the read counts of all samples
    :returns pd.DataFrame: indexed by sample id, with the columns `reads_in`,
        `reads_out`, `percent_retained` (NaN when undefined) and `undefined`
    """
    rows = [
        {
            "sample_id": r.sample_id,
            "reads_in": r.reads_in,
            "reads_out": r.reads_out,
            "percent_retained": percent_retained(r, acknowledge_undefined=True),
            "undefined": r.reads_in == 0,
        }
        for r in results
    ]
    df = pd.DataFrame(
        rows,
        columns=["sample_id", "reads_in", "reads_out", "percent_retained", "undefined"],
    )
    df["percent_retained"] = df["percent_retained"].astype(float)
    return df.set_index("sample_id")


def analyze_retention(results: Iterable[FilterResult]) -> RetentionStats:
    """Compute the cohort level retention statistics.

    :param results: the read counts of all samples, collected after every
        sample has been filtered
    :returns RetentionStats: the cohort statistics
    :raises ValueError: if `results` is empty
    """
    df = retention_series(results)
    if df.empty:
        raise ValueError("Retention statistics need at least one sample")

    undefined = df.index[df["undefined"].to_numpy(dtype=bool)].tolist()
    if undefined:
        logger.warning(
            "Retention is undefined for %s samples without input reads: %s",
            len(undefined),
            ", ".join(undefined),
        )

    ratios = df["percent_retained"].dropna().to_numpy()
    median_ratio = max_ratio = min_ratio = None
    if ratios.size:
        median_ratio = float(np.median(ratios))
        max_ratio = float(np.max(ratios))
        min_ratio = float(np.min(ratios))

    return RetentionStats(
        median_reads_in=float(np.median(df["reads_in"])),
        median_reads_out=float(np.median(df["reads_out"])),
        median_percent_retained=median_ratio,
        max_percent_retained=max_ratio,
        min_percent_retained=min_ratio,
        undefined_samples=undefined,
    )
