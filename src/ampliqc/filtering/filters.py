"""Filter steps and read predicates of the filter and trim engine.

Copyright © 2025 Pixelgen Technologies AB.
"""

import math
from typing import Optional

import numpy as np
from cutadapt.info import ModificationInfo
from cutadapt.predicates import Predicate
from cutadapt.steps import PairedEndStep
from dnaio import SequenceRecord

from ampliqc.quality.profile import phred_scores


class PairedEndFilterWithFailureReason(PairedEndStep):
    """A paired-end read filter that records failure reasons.

    A pair is rejected when the predicate of either mate matches. One of
    the predicates may be None, in which case only the other mate is
    tested.

    The "descriptive_identifier" method is used to provide a string that will be
    appended to the read identifiers of filtered reads when a filtered writer is
    provided.
    """

    def __init__(
        self,
        predicate1: Optional[Predicate],
        predicate2: Optional[Predicate],
        writer=None,
    ):
        """Initialize a PairedEndFilterWithFailureReason pipeline step."""
        if predicate1 is None and predicate2 is None:
            raise ValueError("Not both predicates can be None")
        self._filtered = 0
        self._predicate1 = predicate1
        self._predicate2 = predicate2
        self._writer = writer

    def __repr__(self) -> str:
        """Return a string representation of the object."""
        return (
            f"PairedEndFilter(predicate1={self._predicate1}, "
            f"predicate2={self._predicate2}, writer={self._writer})"
        )

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this filter.

        Used in reports and added as a comment to the sequence id when writing failed reads.
        """
        predicate = self._predicate1 or self._predicate2
        return predicate.descriptive_identifier()  # type: ignore

    def filtered(self) -> int:
        """Return the number of filtered read pairs."""
        return self._filtered

    def __call__(
        self,
        read1: SequenceRecord,
        read2: SequenceRecord,
        info1: ModificationInfo,
        info2: ModificationInfo,
    ) -> Optional[tuple[SequenceRecord, SequenceRecord]]:
        """Filter a read pair.

        Args:
            read1: The forward read.
            read2: The reverse read.
            info1: The modification info of the forward read.
            info2: The modification info of the reverse read.

        """
        failed = (
            self._predicate1 is not None and self._predicate1.test(read1, info1)
        ) or (self._predicate2 is not None and self._predicate2.test(read2, info2))

        if not failed:
            return read1, read2

        self._filtered += 1
        if self._writer is not None:
            reason = self.descriptive_identifier()
            read1.name += f" {reason}"
            read2.name += f" {reason}"
            self._writer.write(read1, read2)
        return None


class ShorterThan(Predicate):
    """Select reads shorter than a given length.

    A read of exactly `length` bases is not selected.
    """

    def __init__(self, length: int, identifier: str = "too_short"):
        """Initialize the predicate.

        :param length: the minimum length a read must have
        :param identifier: the failure reason reported for selected reads
        """
        self.length = length
        self._identifier = identifier

    def __repr__(self):
        """Return a string representation of the object."""
        return f"ShorterThan(length={self.length}, identifier={self._identifier!r})"

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate."""
        return self._identifier

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if the read is shorter than the length."""
        return len(read) < self.length


class TooLong(Predicate):
    """Select reads longer than a maximum length."""

    def __init__(self, length: int):
        """Initialize the predicate with the maximum length."""
        self.length = length

    def __repr__(self):
        """Return a string representation of the object."""
        return f"TooLong(length={self.length})"

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate."""
        return "too_long"

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if the read is longer than the maximum length."""
        return len(read) > self.length


class TooManyN(Predicate):
    """Select reads that have too many 'N' bases."""

    def __init__(self, count: int):
        """Initialize a TooManyN pipeline predicate.

        :param count: reads with more than `count` N bases are selected
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        self.cutoff = count

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate.

        Used in reports and added as a comment to the sequence id when writing failed reads.
        """
        return "too_many_n"

    def __repr__(self):
        """Return a string representation of the object."""
        return f"TooManyN(cutoff={self.cutoff})"

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if the read has too many N bases.

        Args:
            read: The read to test.
            info: The modification info.

        Returns:
            True if the read has too many N bases, False otherwise.

        """
        return read.sequence.lower().count("n") > self.cutoff


class LowQualityBase(Predicate):
    """Select reads containing a base with a quality score below a minimum."""

    def __init__(self, min_quality: int):
        """Initialize the predicate with the minimum quality score."""
        self.min_quality = min_quality

    def __repr__(self):
        """Return a string representation of the object."""
        return f"LowQualityBase(min_quality={self.min_quality})"

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate."""
        return "low_quality_base"

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if any base has a quality score below the minimum."""
        scores = phred_scores(read)
        return bool(scores.size) and bool(scores.min() < self.min_quality)


class TooManyExpectedErrors(Predicate):
    """Select reads whose expected number of errors exceeds a limit.

    The expected number of errors is the sum of the error probabilities
    `10 ** (-q / 10)` of all bases. A read whose sum equals the limit, up
    to floating point rounding, is not selected.
    """

    def __init__(self, max_errors: float):
        """Initialize the predicate with the maximum expected number of errors."""
        self.max_errors = max_errors

    def __repr__(self):
        """Return a string representation of the object."""
        return f"TooManyExpectedErrors(max_errors={self.max_errors})"

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate."""
        return "too_many_expected_errors"

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if the read has more expected errors than the limit."""
        ee = expected_errors(read)
        return ee > self.max_errors and not math.isclose(
            ee, self.max_errors, rel_tol=1e-9, abs_tol=1e-12
        )


def expected_errors(read: SequenceRecord) -> float:
    """Return the expected number of base call errors in a read."""
    scores = phred_scores(read)
    return float(np.power(10.0, -scores / 10.0).sum())
