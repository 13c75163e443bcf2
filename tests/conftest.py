"""Configuration and shared files/objects for the testing framework.

Copyright © 2025 Pixelgen Technologies AB.
"""

from pathlib import Path

import dnaio
import pytest

from ampliqc.discovery import SamplePair


def write_reads(path: Path, records) -> Path:
    """Write `(name, sequence, qualities)` tuples to a (gzipped) FASTQ file."""
    with dnaio.open(str(path), mode="w", fileformat="fastq") as writer:
        for name, sequence, qualities in records:
            writer.write(dnaio.SequenceRecord(name, sequence, qualities))
    return path


@pytest.fixture(name="make_sample")
def make_sample_fixture(tmp_path):
    """Return a factory writing the paired read files of a sample.

    `pairs` is a list of `(forward_seq, forward_qual, reverse_seq, reverse_qual)`
    tuples. Qualities default to all 'I' (Q40) when None.
    """

    def _make_sample(sample_id: str, pairs, directory: Path | None = None):
        directory = directory or tmp_path / "input"
        directory.mkdir(parents=True, exist_ok=True)
        forward = []
        reverse = []
        for i, (seq1, qual1, seq2, qual2) in enumerate(pairs):
            name = f"{sample_id}.{i}"
            forward.append((name, seq1, qual1 if qual1 is not None else "I" * len(seq1)))
            reverse.append((name, seq2, qual2 if qual2 is not None else "I" * len(seq2)))

        r1 = write_reads(directory / f"{sample_id}_1.fastq.gz", forward)
        r2 = write_reads(directory / f"{sample_id}_2.fastq.gz", reverse)
        return SamplePair(sample_id, r1, r2)

    return _make_sample


@pytest.fixture(name="simple_pairs")
def simple_pairs_fixture():
    """Ten clean read pairs of 50 bases."""
    bases = "ACGT"
    pairs = []
    for i in range(10):
        seq1 = "".join(bases[(i + j) % 4] for j in range(50))
        seq2 = "".join(bases[(i + 2 * j) % 4] for j in range(50))
        pairs.append((seq1, None, seq2, None))
    return pairs


@pytest.fixture(name="input_dir")
def input_dir_fixture(tmp_path, make_sample, simple_pairs):
    """An input directory with two samples."""
    directory = tmp_path / "input"
    make_sample("S1", simple_pairs, directory)
    make_sample("S2", simple_pairs[:5], directory)
    return directory


def read_names(path: Path) -> list[str]:
    """Return the names of all records in a read file."""
    with dnaio.open(str(path), mode="r") as reader:
        return [record.name for record in reader]


@pytest.fixture(name="read_names")
def read_names_fixture():
    """Return a function listing the record names of a read file."""
    return read_names


@pytest.fixture(name="read_records")
def read_records_fixture():
    """Return a function loading all records of a read file."""

    def _read_records(path: Path) -> list[dnaio.SequenceRecord]:
        with dnaio.open(str(path), mode="r") as reader:
            return list(reader)

    return _read_records
