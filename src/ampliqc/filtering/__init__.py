"""Filter and trim engine for paired-end amplicon reads.

Copyright © 2025 Pixelgen Technologies AB.
"""

from ampliqc.filtering.config import FilterConfig
from ampliqc.filtering.process import (
    POST_FILTER_PROFILE,
    PRE_FILTER_PROFILE,
    FilterRunResult,
    SampleFilterOutcome,
    build_pipeline,
    filter_and_trim,
    filter_sample,
    output_paths,
)
from ampliqc.filtering.report import (
    FilterResult,
    FilterSampleReport,
    RunSummary,
    SampleFailure,
)

__all__ = [
    "FilterConfig",
    "FilterResult",
    "FilterRunResult",
    "FilterSampleReport",
    "RunSummary",
    "SampleFailure",
    "SampleFilterOutcome",
    "PRE_FILTER_PROFILE",
    "POST_FILTER_PROFILE",
    "build_pipeline",
    "filter_and_trim",
    "filter_sample",
    "output_paths",
]
