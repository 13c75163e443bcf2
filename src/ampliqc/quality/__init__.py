"""Per-cycle quality profiling of read sets.

Copyright © 2025 Pixelgen Technologies AB.
"""

from ampliqc.quality.profile import (
    PositionQuality,
    QualityProfile,
    QualityProfileCollector,
    collect_read_file,
    phred_scores,
    profile_read_files,
)
from ampliqc.quality.step import PairedQualityProfiles, QualityProfileStep

__all__ = [
    "PositionQuality",
    "QualityProfile",
    "QualityProfileCollector",
    "PairedQualityProfiles",
    "QualityProfileStep",
    "collect_read_file",
    "phred_scores",
    "profile_read_files",
]
