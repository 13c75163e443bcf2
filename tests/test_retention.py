"""Tests for the retention statistics.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
import math

import pytest

from ampliqc.exception import DivisionUndefinedError
from ampliqc.filtering.report import FilterResult
from ampliqc.retention import analyze_retention, percent_retained, retention_series


@pytest.fixture(name="cohort")
def cohort_fixture():
    return [
        FilterResult("S1", 100, 80),
        FilterResult("S2", 200, 190),
        FilterResult("S3", 50, 10),
    ]


def test_analyze_retention(cohort):
    stats = analyze_retention(cohort)

    assert stats.median_percent_retained == pytest.approx(0.8)
    assert stats.max_percent_retained == pytest.approx(0.95)
    assert stats.min_percent_retained == pytest.approx(0.2)
    assert stats.median_reads_in == 100
    assert stats.median_reads_out == 80
    assert stats.undefined_samples == []


def test_analyze_retention_does_not_depend_on_order(cohort):
    assert analyze_retention(cohort) == analyze_retention(reversed(cohort))


def test_analyze_retention_empty():
    with pytest.raises(ValueError):
        analyze_retention([])


def test_percent_retained():
    assert percent_retained(FilterResult("S1", 4, 1)) == 0.25
    assert percent_retained(FilterResult("S1", 4, 4)) == 1.0
    assert percent_retained(FilterResult("S1", 4, 0)) == 0.0


def test_percent_retained_undefined():
    empty = FilterResult("S0", 0, 0)

    with pytest.raises(DivisionUndefinedError) as excinfo:
        percent_retained(empty)
    assert excinfo.value.sample_id == "S0"
    assert "S0" in str(excinfo.value)

    assert percent_retained(empty, acknowledge_undefined=True) is None


def test_analyze_retention_excludes_undefined_samples(cohort, caplog):
    with caplog.at_level(logging.WARNING):
        stats = analyze_retention(cohort + [FilterResult("S0", 0, 0)])

    assert stats.undefined_samples == ["S0"]
    assert stats.median_percent_retained == pytest.approx(0.8)
    assert stats.min_percent_retained == pytest.approx(0.2)
    # read count medians are over all samples
    assert stats.median_reads_in == 75
    assert "S0" in caplog.text


def test_analyze_retention_only_undefined_samples():
    stats = analyze_retention([FilterResult("S0", 0, 0)])

    assert stats.median_percent_retained is None
    assert stats.max_percent_retained is None
    assert stats.min_percent_retained is None
    assert stats.undefined_samples == ["S0"]


def test_retention_series(cohort):
    df = retention_series(cohort + [FilterResult("S0", 0, 0)])

    assert list(df.index) == ["S1", "S2", "S3", "S0"]
    assert list(df.columns) == ["reads_in", "reads_out", "percent_retained", "undefined"]
    assert df.loc["S2", "percent_retained"] == pytest.approx(0.95)
    assert math.isnan(df.loc["S0", "percent_retained"])
    assert bool(df.loc["S0", "undefined"])
    assert not bool(df.loc["S1", "undefined"])


@pytest.mark.parametrize("reads_in,reads_out", [(10, 11), (0, 1), (5, -1)])
def test_filter_result_invalid_counts(reads_in, reads_out):
    with pytest.raises(ValueError):
        FilterResult("S1", reads_in, reads_out)
