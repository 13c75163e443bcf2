"""Report models shared by the ampliqc commands.

Copyright © 2025 Pixelgen Technologies AB.
"""

from ampliqc.report.models.base import ReportModel, SampleReport
from ampliqc.report.models.summary_statistics import SummaryStatistics

__all__ = ["ReportModel", "SampleReport", "SummaryStatistics"]
