"""Processing pipeline for paired-end reads.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple

from cutadapt.info import ModificationInfo
from cutadapt.modifiers import PairedEndModifier
from cutadapt.steps import PairedEndStep
from dnaio import SequenceRecord

from ampliqc.read_processing.statistics import HasCustomStatistics

logger = logging.getLogger(__name__)

PairedStage = PairedEndModifier | PairedEndStep


class PairedFilterPipeline:
    """Run read pairs through a fixed sequence of modifiers and steps.

    Modifiers transform a pair and always return it. Steps may return
    `None`, which rejects the pair; later stages are then skipped. The
    last stage is normally a sink that writes the surviving pairs.

    :param stages: the modifiers and steps, in the order they are applied
    """

    def __init__(self, stages: Iterable[PairedStage]):
        """Initialize the pipeline."""
        self._stages: list[PairedStage] = list(stages)

    @property
    def stages(self) -> Sequence[PairedStage]:
        """Return the stages of the pipeline."""
        return tuple(self._stages)

    def _process_pair(
        self, read1: SequenceRecord, read2: SequenceRecord
    ) -> Optional[Tuple[SequenceRecord, SequenceRecord]]:
        info1 = ModificationInfo(read1)
        info2 = ModificationInfo(read2)
        reads: Optional[Tuple[SequenceRecord, SequenceRecord]] = (read1, read2)

        for stage in self._stages:
            reads = stage(*reads, info1, info2)  # type: ignore
            if reads is None:
                break

        return reads

    def process_reads(
        self, reader: Iterable[Tuple[SequenceRecord, SequenceRecord]]
    ) -> Tuple[int, int, int]:
        """Process all pairs delivered by `reader`.

        :param reader: an iterable of (forward, reverse) records
        :returns: (n_pairs, total forward bp, total reverse bp) of the input
        """
        n = 0
        total1_bp = 0
        total2_bp = 0

        for read1, read2 in reader:
            n += 1
            total1_bp += len(read1)
            total2_bp += len(read2)
            self._process_pair(read1, read2)

        logger.debug("Processed %s read pairs", n)
        return n, total1_bp, total2_bp

    def custom_statistics(self) -> dict:
        """Return the statistics of all stages exposing custom statistics.

        Statistics of stages sharing a name are merged with `+=`.
        """
        stats: dict = {}
        for stage in self._stages:
            if isinstance(stage, HasCustomStatistics):
                name = stage.get_statistics_name()
                if name in stats:
                    stats[name] += stage.get_statistics()
                else:
                    stats[name] = stage.get_statistics()
        return stats


class CountingPairedEndSink(PairedEndStep):
    """Write surviving read pairs and count them.

    This is the last stage of a pipeline; it consumes every pair it
    receives.
    """

    def __init__(self, writer):
        """Initialize the sink.

        :param writer: an object with a `write(read1, read2)` method
        """
        self._writer = writer
        self._written = 0
        self._written_bp = [0, 0]

    def __repr__(self) -> str:
        """Return a string representation of the object."""
        return f"CountingPairedEndSink(writer={self._writer})"

    def __call__(self, read1, read2, info1, info2) -> None:
        """Write a pair."""
        self._writer.write(read1, read2)
        self._written += 1
        self._written_bp[0] += len(read1)
        self._written_bp[1] += len(read2)
        return None

    def written_reads(self) -> int:
        """Return the number of written read pairs."""
        return self._written

    def written_bp(self) -> Tuple[int, int]:
        """Return the number of written forward and reverse bases."""
        return self._written_bp[0], self._written_bp[1]
