"""Statistics and report models of the filter and trim engine.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import dataclasses
import typing
from typing import Iterable, Optional

import pydantic

from ampliqc.report.models.base import ReportModel, SampleReport


@dataclasses.dataclass(frozen=True)
class FilterResult:
    """The number of read pairs entering and leaving the filter for a sample.

    :ivar sample_id: the sample the counts belong to
    :ivar reads_in: the number of read pairs considered
    :ivar reads_out: the number of read pairs written
    :raises ValueError: if `0 <= reads_out <= reads_in` does not hold
    """

    sample_id: str
    reads_in: int
    reads_out: int

    def __post_init__(self):
        if self.reads_out < 0 or self.reads_out > self.reads_in:
            raise ValueError(
                f"Invalid read counts for sample {self.sample_id}: "
                f"reads_out={self.reads_out}, reads_in={self.reads_in}"
            )


class FilterStatistics:
    """Counts collected from the steps of a filter pipeline.

    Statistics of several pipelines (or read chunks) can be merged
    with `+=`.
    """

    def __init__(self) -> None:
        """Initialize empty statistics."""
        self.n = 0
        self.total_bp = [0, 0]
        self.written = 0
        self.written_bp = [0, 0]
        self.filtered: dict[str, int] = {}

    def __iadd__(self, other: "FilterStatistics"):
        """Merge statistics from another object into this one."""
        self.n += other.n
        self.written += other.written
        for i in (0, 1):
            self.total_bp[i] += other.total_bp[i]
            self.written_bp[i] += other.written_bp[i]
        for name, value in other.filtered.items():
            self.filtered[name] = self.filtered.get(name, 0) + value
        return self

    @property
    def total_filtered(self) -> int:
        """Return the number of read pairs rejected by any filter."""
        return sum(self.filtered.values())

    def collect(
        self, n: int, total_bp1: int, total_bp2: int, stages: Iterable
    ) -> "FilterStatistics":
        """Collect the counts of a pipeline that processed `n` read pairs.

        :param n: the number of processed read pairs
        :param total_bp1: the number of forward input bases
        :param total_bp2: the number of reverse input bases
        :param stages: the stages of the pipeline
        :returns: this object
        :raises ValueError: if the counts of the filters and the sink do not
            add up to `n`
        """
        self.n += n
        self.total_bp[0] += total_bp1
        self.total_bp[1] += total_bp2
        for stage in stages:
            if hasattr(stage, "filtered") and hasattr(stage, "descriptive_identifier"):
                name = stage.descriptive_identifier()
                self.filtered[name] = self.filtered.get(name, 0) + stage.filtered()
            elif hasattr(stage, "written_reads"):
                self.written += stage.written_reads()
                bp1, bp2 = stage.written_bp()
                self.written_bp[0] += bp1
                self.written_bp[1] += bp2

        if self.written + self.total_filtered != self.n:
            raise ValueError(
                f"Filter counts do not add up: {self.written} written and "
                f"{self.total_filtered} filtered of {self.n} read pairs"
            )
        return self


class BasesCountStatistics(pydantic.BaseModel):
    """The number of bases entering and leaving the filter."""

    input_read1: int = pydantic.Field(
        ..., description="The number of input bases in the forward reads."
    )
    input_read2: int = pydantic.Field(
        ..., description="The number of input bases in the reverse reads."
    )
    output_read1: int = pydantic.Field(
        ..., description="The number of output bases in the forward reads."
    )
    output_read2: int = pydantic.Field(
        ..., description="The number of output bases in the reverse reads."
    )

    @pydantic.computed_field(return_type=int)  # type: ignore
    @property
    def input(self) -> int:
        """Return the total number of input bases."""
        return self.input_read1 + self.input_read2

    @pydantic.computed_field(return_type=int)  # type: ignore
    @property
    def output(self) -> int:
        """Return the total number of output bases."""
        return self.output_read1 + self.output_read2


class FilterSampleReport(SampleReport):
    """Model for a filter and trim sample report."""

    report_type: typing.Literal["filter"] = "filter"

    input_reads: int = pydantic.Field(
        ..., description="The number of read pairs entering the filter."
    )

    output_reads: int = pydantic.Field(
        ..., description="The number of read pairs that passed all filters."
    )

    failed_reads: dict[str, int] = pydantic.Field(
        default_factory=dict,
        description="The number of read pairs discarded by each filter.",
    )

    basepair_counts: BasesCountStatistics = pydantic.Field(
        ..., description="Base count statistics of the filter."
    )

    forward_output: Optional[str] = pydantic.Field(
        None, description="The filtered forward read file."
    )

    reverse_output: Optional[str] = pydantic.Field(
        None, description="The filtered reverse read file."
    )

    @pydantic.computed_field(  # type: ignore
        description="The total number of read pairs discarded by the filters.",
        return_type=int,
    )
    @property
    def total_failed_reads(self) -> int:
        """Return the total number of discarded read pairs."""
        return sum(self.failed_reads.values())

    @pydantic.computed_field(  # type: ignore
        description=(
            "The fraction of read pairs that passed the filters, "
            "undefined for samples without input reads."
        ),
        return_type=Optional[float],
    )
    @property
    def fraction_retained(self) -> Optional[float]:
        """Return the fraction of read pairs that passed the filters."""
        if self.input_reads == 0:
            return None
        return self.output_reads / self.input_reads

    @classmethod
    def from_statistics(
        cls,
        sample_id: str,
        stats: FilterStatistics,
        forward_output: Optional[str] = None,
        reverse_output: Optional[str] = None,
    ) -> "FilterSampleReport":
        """Create a report from the statistics of a sample's pipeline."""
        return cls(
            sample_id=sample_id,
            input_reads=stats.n,
            output_reads=stats.written,
            failed_reads=dict(stats.filtered),
            basepair_counts=BasesCountStatistics(
                input_read1=stats.total_bp[0],
                input_read2=stats.total_bp[1],
                output_read1=stats.written_bp[0],
                output_read2=stats.written_bp[1],
            ),
            forward_output=forward_output,
            reverse_output=reverse_output,
        )

    def to_filter_result(self) -> FilterResult:
        """Return the read counts of the report."""
        return FilterResult(self.sample_id, self.input_reads, self.output_reads)


class SampleFailure(pydantic.BaseModel):
    """A sample that could not be processed and the cause."""

    sample_id: str
    error_type: str
    message: str
    path: Optional[str] = None

    @classmethod
    def from_exception(cls, sample_id: str, error: Exception) -> "SampleFailure":
        """Create a failure record from the exception that failed the sample."""
        path = getattr(error, "path", None)
        return cls(
            sample_id=sample_id,
            error_type=type(error).__name__,
            message=str(error),
            path=str(path) if path is not None else None,
        )


class RunSummary(ReportModel):
    """The outcome of a filter run over all samples."""

    samples_attempted: int
    samples_succeeded: int
    samples_failed: int
    samples_cancelled: int = 0
    failures: list[SampleFailure] = pydantic.Field(default_factory=list)
    cancelled_sample_ids: list[str] = pydantic.Field(default_factory=list)

    @classmethod
    def build(
        cls,
        samples_attempted: int,
        reports: Iterable[FilterSampleReport],
        failures: Iterable[SampleFailure],
        cancelled: Iterable[str] = (),
    ) -> "RunSummary":
        """Summarize the reports, failures and cancelled samples of a run."""
        failures = list(failures)
        cancelled = list(cancelled)
        return cls(
            samples_attempted=samples_attempted,
            samples_succeeded=len(list(reports)),
            samples_failed=len(failures),
            samples_cancelled=len(cancelled),
            failures=failures,
            cancelled_sample_ids=cancelled,
        )

    def summary_lines(self) -> list[str]:
        """Return a human readable summary of the run."""
        lines = [
            f"Samples attempted: {self.samples_attempted}",
            f"Samples succeeded: {self.samples_succeeded}",
            f"Samples failed: {self.samples_failed}",
        ]
        if self.samples_cancelled:
            lines.append(f"Samples cancelled: {self.samples_cancelled}")
        for failure in self.failures:
            lines.append(
                f"  {failure.sample_id}: {failure.error_type}: {failure.message}"
            )
        return lines
