"""Tests for the discovery of paired read files.

Copyright © 2025 Pixelgen Technologies AB.
"""

import pytest

from ampliqc.discovery import discover_samples, get_sample_id
from ampliqc.exception import (
    DuplicateSampleError,
    EmptyDirectoryError,
    MissingMateError,
)


def touch(path):
    path.write_bytes(b"")
    return path


@pytest.mark.parametrize(
    "filename,delimiter,expected",
    (
        ("SRR1_1.fastq.gz", "_", "SRR1"),
        ("/data/run/SRR1_1.fastq.gz", "_", "SRR1"),
        ("sample-A.R1.fastq.gz", ".", "sample-A"),
        ("nodelimiter.fastq.gz", "_", "nodelimiter.fastq.gz"),
    ),
)
def test_get_sample_id(filename, delimiter, expected):
    assert get_sample_id(filename, delimiter) == expected


def test_get_sample_id_empty_delimiter():
    with pytest.raises(ValueError):
        get_sample_id("SRR1_1.fastq.gz", "")


def test_discover_samples_pairs_in_order(tmp_path):
    for sample in ("SRR3", "SRR1", "SRR2"):
        touch(tmp_path / f"{sample}_1.fastq.gz")
        touch(tmp_path / f"{sample}_2.fastq.gz")
    touch(tmp_path / "notes.txt")

    pairs = discover_samples(tmp_path)

    assert [p.sample_id for p in pairs] == ["SRR1", "SRR2", "SRR3"]
    assert pairs[0].forward_path == tmp_path / "SRR1_1.fastq.gz"
    assert pairs[0].reverse_path == tmp_path / "SRR1_2.fastq.gz"
    assert pairs[0].paths() == (pairs[0].forward_path, pairs[0].reverse_path)


def test_discover_samples_custom_patterns(tmp_path):
    touch(tmp_path / "A.R1.fq.gz")
    touch(tmp_path / "A.R2.fq.gz")

    pairs = discover_samples(
        tmp_path,
        forward_pattern="*.R1.fq.gz",
        reverse_pattern="*.R2.fq.gz",
        delimiter=".",
    )

    assert len(pairs) == 1
    assert pairs[0].sample_id == "A"


def test_discover_samples_empty_directory(tmp_path):
    with pytest.raises(EmptyDirectoryError):
        discover_samples(tmp_path)


def test_discover_samples_not_a_directory(tmp_path):
    with pytest.raises(EmptyDirectoryError):
        discover_samples(tmp_path / "missing")


def test_discover_samples_missing_reverse(tmp_path):
    touch(tmp_path / "SRR1_1.fastq.gz")
    touch(tmp_path / "SRR1_2.fastq.gz")
    touch(tmp_path / "SRR2_1.fastq.gz")

    with pytest.raises(MissingMateError):
        discover_samples(tmp_path)


def test_discover_samples_mismatched_mates(tmp_path):
    touch(tmp_path / "SRR1_1.fastq.gz")
    touch(tmp_path / "SRR9_2.fastq.gz")

    with pytest.raises(MissingMateError) as excinfo:
        discover_samples(tmp_path)

    assert excinfo.value.sample_id == "SRR1"


def test_discover_samples_duplicate_sample_id(tmp_path):
    touch(tmp_path / "S1_a_1.fastq.gz")
    touch(tmp_path / "S1_a_2.fastq.gz")
    touch(tmp_path / "S1_b_1.fastq.gz")
    touch(tmp_path / "S1_b_2.fastq.gz")

    with pytest.raises(DuplicateSampleError):
        discover_samples(tmp_path)
