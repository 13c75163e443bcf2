"""Read modifiers of the filter and trim engine.

Copyright © 2025 Pixelgen Technologies AB.
"""

import numpy as np
from cutadapt.info import ModificationInfo
from cutadapt.modifiers import SingleEndModifier
from dnaio import SequenceRecord

from ampliqc.quality.profile import phred_scores


class QualityTruncator(SingleEndModifier):
    """Truncate a read before the first base with a low quality score.

    The first base whose quality score is at or below `threshold` and all
    bases after it are removed. Reads without such a base are unchanged.
    """

    def __init__(self, threshold: int):
        """Initialize the modifier.

        :param threshold: the highest quality score that triggers truncation
        """
        self.threshold = threshold

    def __repr__(self) -> str:
        """Return a string representation of the object."""
        return f"QualityTruncator(threshold={self.threshold})"

    def __call__(self, read: SequenceRecord, info: ModificationInfo) -> SequenceRecord:
        """Return the read truncated before its first low quality base."""
        low = np.flatnonzero(phred_scores(read) <= self.threshold)
        if low.size == 0:
            return read
        cut = int(low[0])
        return read[:cut]
