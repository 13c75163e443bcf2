"""K-mer screen for reads originating from a contaminant genome.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
import zlib
from pathlib import Path

import dnaio
from cutadapt.info import ModificationInfo
from cutadapt.predicates import Predicate

from ampliqc.exception import ConfigurationError
from ampliqc.types import PathType
from ampliqc.utils import reverse_complement

logger = logging.getLogger(__name__)


class KmerIndex:
    """The set of all k-mers of a reference, on both strands."""

    def __init__(self, sequences, k: int):
        """Index the k-mers of the given sequences.

        :param sequences: an iterable of DNA sequences
        :param k: the k-mer length
        """
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        self.k = k
        self._kmers: set[str] = set()
        for seq in sequences:
            seq = seq.upper()
            for strand in (seq, reverse_complement(seq)):
                self._kmers.update(
                    strand[i : i + k] for i in range(len(strand) - k + 1)
                )

    @classmethod
    def from_fasta(cls, path: PathType, k: int) -> "KmerIndex":
        """Build an index from a (compressed) FASTA or FASTQ file.

        :raises ConfigurationError: if the file cannot be parsed or holds no
            sequence of at least `k` bases
        """
        try:
            with dnaio.open(str(path), mode="r") as reader:
                index = cls((record.sequence for record in reader), k)
        except (
            dnaio.FileFormatError,
            dnaio.UnknownFileFormat,
            EOFError,
            OSError,
            zlib.error,
        ) as e:
            raise ConfigurationError(
                f"Could not read contaminant reference {path}: {e}"
            ) from e

        if not index:
            raise ConfigurationError(
                f"Contaminant reference {path} holds no sequence of at least {k} bases"
            )
        logger.debug("Indexed %s %s-mers from %s", len(index), k, Path(path).name)
        return index

    def __len__(self) -> int:
        return len(self._kmers)

    def __contains__(self, kmer: str) -> bool:
        return kmer in self._kmers

    def count_hits(self, sequence: str) -> int:
        """Return the number of k-mer positions in `sequence` found in the index."""
        seq = sequence.upper()
        k = self.k
        return sum(1 for i in range(len(seq) - k + 1) if seq[i : i + k] in self._kmers)


class MatchesContaminant(Predicate):
    """Select reads sharing k-mers with a contaminant reference."""

    def __init__(self, index: KmerIndex, min_matches: int = 2):
        """Initialize the predicate.

        :param index: the k-mer index of the contaminant reference
        :param min_matches: the number of shared k-mers that selects a read
        """
        self.index = index
        self.min_matches = min_matches

    def __repr__(self):
        """Return a string representation of the object."""
        return f"MatchesContaminant(k={self.index.k}, min_matches={self.min_matches})"

    def descriptive_identifier(self) -> str:
        """Return a string identifier for this predicate."""
        return "contaminant"

    def test(self, read, info: ModificationInfo) -> bool:
        """Return True if the read matches the contaminant reference."""
        return self.index.count_hits(read.sequence) >= self.min_matches
