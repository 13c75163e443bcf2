"""Tabular and JSON exports of quality profiles and retention statistics.

These files are the interface to external plotting and reporting tools.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from ampliqc.filtering.report import FilterResult
from ampliqc.quality.profile import QualityProfile
from ampliqc.retention import RetentionStats, retention_series
from ampliqc.types import PathType
from ampliqc.utils import np_encoder

logger = logging.getLogger(__name__)


def quality_profiles_dataframe(profiles: Iterable[QualityProfile]) -> pd.DataFrame:
    """Return a long format table with one row per profile and cycle."""
    frames = [p.to_dataframe() for p in profiles]
    if not frames:
        return pd.DataFrame(
            columns=[
                "name",
                "mate",
                "position",
                "count",
                "mean",
                "std",
                "min",
                "q1",
                "median",
                "q3",
                "max",
            ]
        )
    return pd.concat(frames, ignore_index=True)


def write_quality_profiles(
    profiles: Iterable[QualityProfile], output: PathType, stem: str
) -> tuple[Path, Path]:
    """Write quality profiles as `<stem>.quality.csv` and `<stem>.quality.json`.

    :param profiles: the profiles to write
    :param output: the output directory
    :param stem: the common file name prefix
    :returns: the paths of the CSV and the JSON file
    """
    profiles = list(profiles)
    output = Path(output)
    csv_path = output / f"{stem}.quality.csv"
    json_path = output / f"{stem}.quality.json"

    quality_profiles_dataframe(profiles).to_csv(csv_path, index=False)
    with open(json_path, "w") as fh:
        json.dump(
            [p.model_dump(mode="json") for p in profiles],
            fh,
            indent=4,
            default=np_encoder,
        )

    logger.debug("Wrote quality profiles to %s", csv_path)
    return csv_path, json_path


def write_retention(
    results: Iterable[FilterResult], stats: RetentionStats, output: PathType
) -> tuple[Path, Path]:
    """Write the per-sample retention table and the cohort statistics.

    :param results: the read counts of all samples
    :param stats: the cohort statistics
    :param output: the output directory
    :returns: the paths of `retention.csv` and `retention.json`
    """
    output = Path(output)
    csv_path = output / "retention.csv"
    json_path = output / "retention.json"

    retention_series(results).to_csv(csv_path, index=True)
    stats.write_json_file(json_path, indent=4)
    logger.debug("Wrote retention statistics to %s", csv_path)
    return csv_path, json_path
