"""Top-level package for ampliqc.

Copyright © 2025 Pixelgen Technologies AB.
"""

from importlib import metadata

__version__ = "0.0.0"

try:
    __version__ = metadata.version("ampliqc")
except metadata.PackageNotFoundError:
    pass


from ampliqc.discovery import SamplePair, discover_samples  # noqa: E402
from ampliqc.filtering import FilterConfig, filter_and_trim  # noqa: E402
from ampliqc.quality import profile_read_files  # noqa: E402
from ampliqc.retention import analyze_retention  # noqa: E402

__all__ = [
    "SamplePair",
    "discover_samples",
    "FilterConfig",
    "filter_and_trim",
    "profile_read_files",
    "analyze_retention",
]
