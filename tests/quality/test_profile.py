"""Tests for the per-cycle quality profiles.

Copyright © 2025 Pixelgen Technologies AB.
"""

import gzip

import dnaio
import numpy as np
import pytest

from ampliqc.exception import MalformedReadFileError, TruncatedReadError
from ampliqc.quality import (
    QualityProfileCollector,
    collect_read_file,
    phred_scores,
    profile_read_files,
)
from ampliqc.report.models import SummaryStatistics


def qual(*scores):
    return "".join(chr(s + 33) for s in scores)


def test_phred_scores():
    read = dnaio.SequenceRecord("r", "ACGT", qual(0, 10, 40, 93))
    np.testing.assert_array_equal(phred_scores(read), [0, 10, 40, 93])


def test_phred_scores_without_qualities():
    read = dnaio.SequenceRecord("r", "ACGT")
    with pytest.raises(MalformedReadFileError):
        phred_scores(read)


def test_summary_statistics_from_histogram():
    histogram = np.zeros(41, dtype=np.int64)
    for v in (28, 30, 32, 34):
        histogram[v] += 1

    stats = SummaryStatistics.from_histogram(histogram)
    values = np.array([28, 30, 32, 34])

    assert stats.count == 4
    assert stats.mean == pytest.approx(values.mean())
    assert stats.std == pytest.approx(values.std())
    assert stats.min == 28
    assert stats.max == 34
    assert stats.median == pytest.approx(np.median(values))
    assert stats.q1 == pytest.approx(np.quantile(values, 0.25))
    assert stats.q3 == pytest.approx(np.quantile(values, 0.75))
    assert stats.iqr == pytest.approx(stats.q3 - stats.q1)


def test_summary_statistics_empty_histogram():
    with pytest.raises(ValueError):
        SummaryStatistics.from_histogram(np.zeros(10))


def test_collector_counts():
    collector = QualityProfileCollector()
    collector.add(np.array([30, 31, 32]))
    collector.add(np.array([30]))
    collector.add(np.array([], dtype=np.int16))

    assert collector.read_count == 3
    assert collector.max_length == 3
    assert collector.counts[0, 30] == 2
    assert collector.counts[1, 31] == 1
    assert collector.counts.sum() == 4
    with pytest.raises(ValueError):
        collector.counts[0, 0] = 1


def test_collector_profile_per_cycle():
    collector = QualityProfileCollector()
    collector.add(np.array([30, 20]))
    collector.add(np.array([40]))

    profile = collector.profile("S1", "forward")

    assert profile.read_count == 2
    assert [p.position for p in profile.positions] == [0, 1]
    assert profile.positions[0].count == 2
    assert profile.positions[0].mean == 35
    assert profile.positions[1].count == 1
    assert profile.positions[1].median == 20


def test_aggregate_pools_observations(make_sample):
    """The aggregate is the summary of the pooled scores, not a mean of means."""
    s1 = make_sample("S1", [("AA", qual(30, 30), "AA", None), ("AA", qual(32, 30), "AA", None)])
    s2 = make_sample("S2", [("AA", qual(28, 30), "AA", None), ("AA", qual(34, 30), "AA", None)])

    (profile,) = profile_read_files(
        [s1.forward_path, s2.forward_path], "forward", aggregate=True
    )

    cycle0 = profile.positions[0]
    assert profile.name == "aggregate"
    assert profile.read_count == 4
    assert cycle0.count == 4
    assert cycle0.median == pytest.approx(31.0)
    assert cycle0.min == 28
    assert cycle0.max == 34
    assert cycle0.std == pytest.approx(np.std([28, 30, 32, 34]))


def test_per_sample_profiles(make_sample):
    s1 = make_sample("S1", [("AAA", qual(30, 30, 30), "AA", None)])
    s2 = make_sample("S2", [("AA", qual(20, 20), "AA", None)])

    profiles = profile_read_files([s1.reverse_path, s2.reverse_path], "reverse")

    assert [p.name for p in profiles] == ["S1_2.fastq.gz", "S2_2.fastq.gz"]
    assert all(p.mate == "reverse" for p in profiles)
    assert profiles[0].positions[0].mean == 40


def test_profile_read_files_max_reads(make_sample):
    pairs = [("A", qual(10), "A", None), ("A", qual(20), "A", None), ("A", qual(30), "A", None)]
    s1 = make_sample("S1", pairs)

    (profile,) = profile_read_files([s1.forward_path], "forward", max_reads=2)

    assert profile.read_count == 2
    assert profile.positions[0].max == 20


def test_profile_read_files_invalid_arguments(make_sample):
    with pytest.raises(ValueError):
        profile_read_files([], "forward")

    s1 = make_sample("S1", [("A", None, "A", None)])
    with pytest.raises(ValueError):
        profile_read_files([s1.forward_path], "sideways")  # type: ignore


def test_profile_to_dataframe(make_sample):
    s1 = make_sample("S1", [("AC", qual(30, 20), "A", None)])
    (profile,) = profile_read_files([s1.forward_path], "forward")

    df = profile.to_dataframe()

    assert list(df.columns) == [
        "name",
        "mate",
        "position",
        "count",
        "mean",
        "std",
        "min",
        "q1",
        "median",
        "q3",
        "max",
    ]
    assert len(df) == 2
    assert df["mean"].tolist() == [30.0, 20.0]


def test_truncated_record_is_reported(tmp_path):
    path = tmp_path / "bad_1.fastq.gz"
    with gzip.open(path, "wt") as fh:
        fh.write("@r1\nACGT\n+\nIII\n")

    with pytest.raises(TruncatedReadError) as excinfo:
        collect_read_file(path)

    assert excinfo.value.path == path


def test_not_a_fastq_file(tmp_path):
    path = tmp_path / "bad_1.fastq.gz"
    with gzip.open(path, "wt") as fh:
        fh.write("this is not\na read\nfile\nat all\n")

    with pytest.raises(MalformedReadFileError):
        collect_read_file(path)
