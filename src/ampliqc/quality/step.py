"""Pipeline step collecting quality profiles of read pairs.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

from typing import Optional

from cutadapt.info import ModificationInfo
from cutadapt.steps import PairedEndStep
from dnaio import SequenceRecord

from ampliqc.quality.profile import QualityProfile, QualityProfileCollector
from ampliqc.read_processing.statistics import HasCustomStatistics


class PairedQualityProfiles:
    """Forward and reverse quality histograms of a set of read pairs."""

    def __init__(
        self,
        forward: Optional[QualityProfileCollector] = None,
        reverse: Optional[QualityProfileCollector] = None,
    ):
        """Initialize the paired profiles, empty unless collectors are given."""
        self.forward = forward if forward is not None else QualityProfileCollector()
        self.reverse = reverse if reverse is not None else QualityProfileCollector()

    def __iadd__(self, other: "PairedQualityProfiles"):
        """Pool the observations of another set of read pairs into this one."""
        self.forward += other.forward
        self.reverse += other.reverse
        return self

    def profiles(self, name: str) -> tuple[QualityProfile, QualityProfile]:
        """Return the forward and reverse profiles, both labeled with `name`."""
        return (
            self.forward.profile(name, "forward"),
            self.reverse.profile(name, "reverse"),
        )


class QualityProfileStep(PairedEndStep, HasCustomStatistics):
    """A pipeline step that records per-cycle quality histograms of both mates.

    Pairs pass through unchanged. Placing one step before and one after
    the filters gives the pre- and post-filter profiles of a sample in
    a single pass over its reads.
    """

    def __init__(self, name: str):
        """Initialize the step.

        :param name: the name the collected statistics are stored under
        """
        self._name = name
        self._profiles = PairedQualityProfiles()

    def __repr__(self) -> str:
        """Return a string representation of the object."""
        return f"QualityProfileStep(name={self._name!r})"

    def __call__(
        self,
        read1: SequenceRecord,
        read2: SequenceRecord,
        info1: ModificationInfo,
        info2: ModificationInfo,
    ) -> tuple[SequenceRecord, SequenceRecord]:
        """Add the quality scores of a pair to the histograms."""
        self._profiles.forward.add_read(read1)
        self._profiles.reverse.add_read(read2)
        return read1, read2

    def get_statistics_name(self) -> str:
        """Return the name of the statistics."""
        return self._name

    def get_statistics(self) -> PairedQualityProfiles:
        """Return the collected histograms."""
        return self._profiles
