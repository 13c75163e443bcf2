"""Per-cycle quality score profiles of read sets.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
import typing
from pathlib import Path
from typing import Optional, Sequence

import dnaio
import numpy as np
import pandas as pd
import pydantic

from ampliqc.exception import MalformedReadFileError
from ampliqc.read_processing.io import input_errors
from ampliqc.report.models.summary_statistics import SummaryStatistics
from ampliqc.types import Mate, PathType

logger = logging.getLogger(__name__)

PHRED_OFFSET = 33
MAX_PHRED_SCORE = 93
N_SCORE_BINS = MAX_PHRED_SCORE + 1


def phred_scores(read: dnaio.SequenceRecord) -> np.ndarray:
    """Return the Phred+33 decoded quality scores of a read.

    :param read: a FASTQ record
    :returns np.ndarray: an int16 array with one score per base
    :raises MalformedReadFileError: if the read has no qualities or a score is
        out of range
    """
    if read.qualities is None:
        raise MalformedReadFileError(f"Read {read.name} has no quality scores")
    scores = (
        np.frombuffer(read.qualities_as_bytes(), dtype=np.uint8).astype(np.int16)
        - PHRED_OFFSET
    )
    if scores.size and (scores.min() < 0 or scores.max() > MAX_PHRED_SCORE):
        raise MalformedReadFileError(
            f"Read {read.name} has quality characters outside the Phred+33 range"
        )
    return scores


class PositionQuality(SummaryStatistics):
    """Summary of the quality scores observed at one cycle."""

    position: int


class QualityProfile(pydantic.BaseModel):
    """The per-cycle quality score distribution of a read set."""

    name: str
    mate: Mate
    read_count: int
    positions: list[PositionQuality]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the profile as a dataframe with one row per cycle."""
        columns = ["position", "count", "mean", "std", "min", "q1", "median", "q3", "max"]
        df = pd.DataFrame(
            [p.model_dump(include=set(columns)) for p in self.positions],
            columns=columns,
        )
        df.insert(0, "mate", self.mate)
        df.insert(0, "name", self.name)
        return df


class QualityProfileCollector:
    """Accumulate exact per-cycle quality score histograms.

    The histogram is a `(cycles, 94)` matrix of counts, one column per
    Phred score. Collectors can be merged with `+=`, which pools the
    observations of both read sets at every cycle.
    """

    def __init__(self):
        """Initialize an empty collector."""
        self._counts = np.zeros((0, N_SCORE_BINS), dtype=np.uint64)
        self._read_count = 0

    @property
    def read_count(self) -> int:
        """Return the number of reads added to the collector."""
        return self._read_count

    @property
    def max_length(self) -> int:
        """Return the length of the longest read added to the collector."""
        return self._counts.shape[0]

    @property
    def counts(self) -> np.ndarray:
        """Return a read-only view of the histogram matrix."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    def _grow(self, length: int) -> None:
        if length > self._counts.shape[0]:
            extra = np.zeros(
                (length - self._counts.shape[0], N_SCORE_BINS), dtype=np.uint64
            )
            self._counts = np.vstack([self._counts, extra])

    def add(self, scores: np.ndarray) -> None:
        """Add the quality scores of a single read.

        :param scores: the integer quality scores of the read, one per base
        """
        n = len(scores)
        self._read_count += 1
        if n == 0:
            return
        self._grow(n)
        # every (position, score) pair is unique within a read
        self._counts[np.arange(n), scores] += np.uint64(1)

    def add_read(self, read: dnaio.SequenceRecord) -> None:
        """Add the quality scores of a FASTQ record."""
        self.add(phred_scores(read))

    def __iadd__(self, other: "QualityProfileCollector"):
        """Merge the observations of another collector into this one."""
        self._grow(other.max_length)
        self._counts[: other.max_length] += other._counts
        self._read_count += other._read_count
        return self

    def profile(self, name: str, mate: Mate) -> QualityProfile:
        """Summarize the collected observations into a :class:`QualityProfile`.

        Cycles without any observation are omitted.
        """
        positions = []
        for position, histogram in enumerate(self._counts):
            if not histogram.any():
                continue
            stats = SummaryStatistics.from_histogram(histogram)
            positions.append(PositionQuality(position=position, **stats.model_dump()))

        return QualityProfile(
            name=name, mate=mate, read_count=self._read_count, positions=positions
        )


def collect_read_file(
    path: PathType, max_reads: Optional[int] = None
) -> QualityProfileCollector:
    """Stream a read file into a new :class:`QualityProfileCollector`.

    :param path: a FASTQ file, optionally compressed
    :param max_reads: only profile the first `max_reads` reads
    :returns QualityProfileCollector: the collector holding the observations
    :raises TruncatedReadError: if a record has mismatching sequence and
        quality lengths
    """
    collector = QualityProfileCollector()
    with input_errors(path):
        with dnaio.open(str(path), mode="r") as reader:
            for read in reader:
                if max_reads is not None and collector.read_count >= max_reads:
                    break
                collector.add_read(read)

    logger.debug("Profiled %s reads from %s", collector.read_count, path)
    return collector


def profile_read_files(
    paths: Sequence[PathType],
    mate: Mate,
    aggregate: bool = False,
    max_reads: Optional[int] = None,
) -> list[QualityProfile]:
    """Compute quality profiles of one mate for a set of read files.

    In per-sample mode one profile is returned per path, named after the
    file. In aggregate mode the observations of all files are pooled per
    cycle and a single profile named "aggregate" is returned.

    Limiting the number of reads with `max_reads` makes the profiles
    approximate. This is only meant for visualization of very large read
    sets; the default is exact accumulation.

    :param paths: the read files to profile, all of the same mate
    :param mate: which mate the files hold
    :param aggregate: pool all files into one profile
    :param max_reads: only profile the first `max_reads` reads of each file
    :returns list[QualityProfile]: the computed profiles
    :raises ValueError: if `paths` is empty
    """
    if not paths:
        raise ValueError("At least one read file is required to compute a profile")

    if mate not in typing.get_args(Mate):
        raise ValueError(f"Unknown mate: {mate}")

    collectors = [collect_read_file(p, max_reads=max_reads) for p in paths]

    if not aggregate:
        return [c.profile(Path(p).name, mate) for p, c in zip(paths, collectors)]

    pooled = QualityProfileCollector()
    for c in collectors:
        pooled += c
    return [pooled.profile("aggregate", mate)]
