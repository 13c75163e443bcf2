"""Filter and trim paired reads of one or many samples.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Optional, Sequence

from cutadapt.modifiers import PairedEndModifierWrapper, Shortener, UnconditionalCutter

from ampliqc.discovery import SamplePair
from ampliqc.exception import DuplicateSampleError, InputError
from ampliqc.filtering.config import FilterConfig
from ampliqc.filtering.contaminant import KmerIndex, MatchesContaminant
from ampliqc.filtering.filters import (
    LowQualityBase,
    PairedEndFilterWithFailureReason,
    ShorterThan,
    TooLong,
    TooManyExpectedErrors,
    TooManyN,
)
from ampliqc.filtering.modifiers import QualityTruncator
from ampliqc.filtering.report import (
    FilterResult,
    FilterSampleReport,
    FilterStatistics,
    RunSummary,
    SampleFailure,
)
from ampliqc.quality.step import PairedQualityProfiles, QualityProfileStep
from ampliqc.read_processing.io import (
    DEFAULT_COMPRESSION_LEVEL,
    PairedFastqWriter,
    input_errors,
    open_paired_reader,
)
from ampliqc.read_processing.pipeline import (
    CountingPairedEndSink,
    PairedFilterPipeline,
)
from ampliqc.read_processing.runners import SampleRunner, make_runner
from ampliqc.types import PathType
from ampliqc.utils import check_input_file, create_output_stage_dir

logger = logging.getLogger(__name__)

PRE_FILTER_PROFILE = "pre_filter_quality"
POST_FILTER_PROFILE = "post_filter_quality"


def output_paths(sample_id: str, output_dir: PathType) -> tuple[Path, Path]:
    """Return the filtered forward and reverse output files of a sample."""
    output_dir = Path(output_dir)
    return (
        output_dir / f"{sample_id}_F_filt.fastq.gz",
        output_dir / f"{sample_id}_R_filt.fastq.gz",
    )


def failed_paths(sample_id: str, output_dir: PathType) -> tuple[Path, Path]:
    """Return the output files receiving the rejected pairs of a sample."""
    output_dir = Path(output_dir)
    return (
        output_dir / f"{sample_id}_F_failed.fastq.gz",
        output_dir / f"{sample_id}_R_failed.fastq.gz",
    )


def _per_mate(cls, values, *args):
    return tuple(cls(v, *args) if v else None for v in values)


def build_pipeline(
    config: FilterConfig,
    writer,
    failed_writer=None,
    contaminant_index: Optional[KmerIndex] = None,
) -> PairedFilterPipeline:
    """Construct the filter pipeline for a configuration.

    The stages are, in order: the pre-filter quality profile, the maximum
    length filter, the left trim, quality truncation, length truncation,
    the right trim, the minimum length filter, the ambiguous base filter,
    the minimum quality filter, the expected error filter, the contaminant
    screen, the post-filter quality profile and the sink writing survivors.
    Stages that are disabled by the configuration are left out.

    :param config: the filter configuration
    :param writer: receives the surviving pairs
    :param failed_writer: receives the rejected pairs, with the failure
        reason appended to the read names
    :param contaminant_index: the contaminant k-mers, required when
        `config.remove_phix` is set
    :returns PairedFilterPipeline: the pipeline
    """

    def paired_filter(predicates):
        return PairedEndFilterWithFailureReason(
            predicates[0], predicates[1], writer=failed_writer
        )

    stages: list = [QualityProfileStep(PRE_FILTER_PROFILE)]

    if any(config.max_len):
        stages.append(paired_filter(_per_mate(TooLong, config.max_len)))

    if any(config.trim_left):
        stages.append(
            paired_filter(
                _per_mate(ShorterThan, config.trim_left, "shorter_than_trim_left")
            )
        )
        stages.append(
            PairedEndModifierWrapper(*_per_mate(UnconditionalCutter, config.trim_left))
        )

    if config.trunc_quality is not None:
        stages.append(
            PairedEndModifierWrapper(
                QualityTruncator(config.trunc_quality),
                QualityTruncator(config.trunc_quality),
            )
        )

    if any(config.trunc_len):
        stages.append(
            paired_filter(
                _per_mate(ShorterThan, config.trunc_len, "shorter_than_trunc_len")
            )
        )
        stages.append(PairedEndModifierWrapper(*_per_mate(Shortener, config.trunc_len)))

    if any(config.trim_right):
        stages.append(
            PairedEndModifierWrapper(
                *_per_mate(UnconditionalCutter, [-n for n in config.trim_right])
            )
        )

    # empty mates are always dropped
    stages.append(
        paired_filter(
            _per_mate(ShorterThan, [max(n, 1) for n in config.min_len], "too_short")
        )
    )
    stages.append(paired_filter((TooManyN(config.max_n), TooManyN(config.max_n))))

    if config.min_quality is not None:
        stages.append(
            paired_filter(
                (LowQualityBase(config.min_quality), LowQualityBase(config.min_quality))
            )
        )

    if any(v is not None for v in config.max_expected_error):
        stages.append(
            paired_filter(
                tuple(
                    TooManyExpectedErrors(v) if v is not None else None
                    for v in config.max_expected_error
                )
            )
        )

    if config.remove_phix:
        if contaminant_index is None:
            raise ValueError("remove_phix requires a contaminant index")
        screen = MatchesContaminant(contaminant_index, config.phix_min_matches)
        stages.append(paired_filter((screen, screen)))

    stages.append(QualityProfileStep(POST_FILTER_PROFILE))
    stages.append(CountingPairedEndSink(writer))
    return PairedFilterPipeline(stages)


@dataclasses.dataclass
class SampleFilterOutcome:
    """The report and the quality profiles of a filtered sample."""

    report: FilterSampleReport
    pre_quality: PairedQualityProfiles
    post_quality: PairedQualityProfiles

    @property
    def sample_id(self) -> str:
        """Return the id of the sample."""
        return self.report.sample_id

    @property
    def result(self) -> FilterResult:
        """Return the read counts of the sample."""
        return self.report.to_filter_result()


def filter_sample(
    pair: SamplePair,
    config: FilterConfig,
    output_dir: PathType,
    save_failed: bool = False,
    compresslevel: int = DEFAULT_COMPRESSION_LEVEL,
    contaminant_index: Optional[KmerIndex] = None,
) -> SampleFilterOutcome:
    """Filter and trim the read pairs of one sample.

    The forward and reverse files are read in lock step. Surviving pairs
    are written in input order to `<sample_id>_F_filt.fastq.gz` and
    `<sample_id>_R_filt.fastq.gz` in `output_dir`. The output files only
    appear once the whole sample has been processed.

    :param pair: the read files of the sample
    :param config: the filter configuration
    :param output_dir: the directory receiving the output files
    :param save_failed: also write the rejected pairs
    :param compresslevel: the gzip compression level of the outputs
    :param contaminant_index: the contaminant k-mers, built from
        `config.contaminant_reference` when not given
    :returns SampleFilterOutcome: the sample report and quality profiles
    :raises InputError: if the input files are empty, malformed or not paired
    :raises PathUnwritableError: if the output directory cannot be created
        or the output files cannot be written
    """
    check_input_file(pair.forward_path, pair.sample_id)
    check_input_file(pair.reverse_path, pair.sample_id)

    if config.remove_phix and contaminant_index is None:
        contaminant_index = KmerIndex.from_fasta(
            config.contaminant_reference, config.phix_word_size  # type: ignore
        )

    output_dir = Path(output_dir)
    create_output_stage_dir(output_dir.parent, output_dir.name)
    forward_out, reverse_out = output_paths(pair.sample_id, output_dir)
    logger.debug("Filtering sample %s", pair.sample_id)

    with ExitStack() as stack:
        writer = stack.enter_context(
            PairedFastqWriter(forward_out, reverse_out, compresslevel=compresslevel)
        )
        failed_writer = None
        if save_failed:
            failed_writer = stack.enter_context(
                PairedFastqWriter(
                    *failed_paths(pair.sample_id, output_dir),
                    compresslevel=compresslevel,
                )
            )

        pipeline = build_pipeline(config, writer, failed_writer, contaminant_index)
        reader = stack.enter_context(
            open_paired_reader(pair.forward_path, pair.reverse_path, pair.sample_id)
        )
        with input_errors(
            pair.forward_path, pair.sample_id, mate_path=pair.reverse_path
        ):
            n, bp1, bp2 = pipeline.process_reads(reader)

        writer.commit()
        if failed_writer is not None:
            failed_writer.commit()

    stats = FilterStatistics().collect(n, bp1, bp2, pipeline.stages)
    report = FilterSampleReport.from_statistics(
        pair.sample_id,
        stats,
        forward_output=str(forward_out),
        reverse_output=str(reverse_out),
    )
    custom = pipeline.custom_statistics()
    logger.info(
        "Sample %s: %s of %s read pairs passed the filters",
        pair.sample_id,
        report.output_reads,
        report.input_reads,
    )
    return SampleFilterOutcome(
        report=report,
        pre_quality=custom[PRE_FILTER_PROFILE],
        post_quality=custom[POST_FILTER_PROFILE],
    )


@dataclasses.dataclass(frozen=True)
class SampleTask:
    """Everything a worker needs to filter one sample."""

    pair: SamplePair
    config: FilterConfig
    output_dir: Path
    save_failed: bool = False
    compresslevel: int = DEFAULT_COMPRESSION_LEVEL
    contaminant_index: Optional[KmerIndex] = None

    @property
    def name(self) -> str:
        """Return the sample id of the task."""
        return self.pair.sample_id


def run_sample_task(task: SampleTask) -> SampleFilterOutcome | SampleFailure:
    """Filter one sample, turning input errors into a failure record."""
    try:
        return filter_sample(
            task.pair,
            task.config,
            task.output_dir,
            save_failed=task.save_failed,
            compresslevel=task.compresslevel,
            contaminant_index=task.contaminant_index,
        )
    except InputError as e:
        logger.error("Sample %s failed: %s", task.pair.sample_id, e)
        return SampleFailure.from_exception(task.pair.sample_id, e)


@dataclasses.dataclass
class FilterRunResult:
    """The outcome of filtering a set of samples.

    :ivar outcomes: the filtered samples, in input order
    :ivar failures: the samples that failed with an input error
    :ivar summary: the run summary
    :ivar cancelled: the ids of the samples that were never processed
    """

    outcomes: list[SampleFilterOutcome]
    failures: list[SampleFailure]
    summary: RunSummary
    cancelled: list[str] = dataclasses.field(default_factory=list)

    @property
    def results(self) -> list[FilterResult]:
        """Return the read counts of all filtered samples."""
        return [o.result for o in self.outcomes]

    @property
    def reports(self) -> list[FilterSampleReport]:
        """Return the reports of all filtered samples."""
        return [o.report for o in self.outcomes]

    def aggregate_quality(self, stage: str = PRE_FILTER_PROFILE) -> PairedQualityProfiles:
        """Pool the quality histograms of all filtered samples.

        :param stage: `PRE_FILTER_PROFILE` or `POST_FILTER_PROFILE`
        """
        if stage not in (PRE_FILTER_PROFILE, POST_FILTER_PROFILE):
            raise ValueError(f"Unknown quality profile stage: {stage}")
        pooled = PairedQualityProfiles()
        for outcome in self.outcomes:
            if stage == PRE_FILTER_PROFILE:
                pooled += outcome.pre_quality
            else:
                pooled += outcome.post_quality
        return pooled


def filter_and_trim(
    pairs: Sequence[SamplePair],
    config: FilterConfig,
    output_dir: PathType,
    threads: int = 1,
    save_failed: bool = False,
    compresslevel: int = DEFAULT_COMPRESSION_LEVEL,
    runner: Optional[SampleRunner] = None,
    contaminant_index: Optional[KmerIndex] = None,
) -> FilterRunResult:
    """Filter and trim the read pairs of all samples.

    Samples are independent and processed concurrently when `threads` is
    larger than one. A sample failing with an input error is recorded and
    does not stop the other samples. Output errors abort the run.

    :param pairs: the samples to process
    :param config: the filter configuration
    :param output_dir: the directory receiving the filtered read files
    :param threads: the number of worker processes, -1 for all cores
    :param save_failed: also write the rejected pairs of every sample
    :param compresslevel: the gzip compression level of the outputs
    :param runner: run the samples on this runner instead of a new one
    :param contaminant_index: the contaminant k-mers, built from
        `config.contaminant_reference` when not given
    :returns FilterRunResult: the outcomes, failures and run summary
    :raises DuplicateSampleError: if two pairs share a sample id
    :raises ConfigurationError: if the contaminant reference cannot be read
    :raises PathUnwritableError: if the output directory cannot be created
    """
    seen: set[str] = set()
    for pair in pairs:
        if pair.sample_id in seen:
            raise DuplicateSampleError(
                f'Sample id "{pair.sample_id}" occurs more than once',
                sample_id=pair.sample_id,
            )
        seen.add(pair.sample_id)

    if config.remove_phix and contaminant_index is None:
        contaminant_index = KmerIndex.from_fasta(
            config.contaminant_reference, config.phix_word_size  # type: ignore
        )

    output_dir = Path(output_dir)
    create_output_stage_dir(output_dir.parent, output_dir.name)

    tasks = [
        SampleTask(
            pair=pair,
            config=config,
            output_dir=output_dir,
            save_failed=save_failed,
            compresslevel=compresslevel,
            contaminant_index=contaminant_index,
        )
        for pair in pairs
    ]

    if runner is None:
        runner = make_runner(threads)

    with runner:
        run = runner.run(run_sample_task, tasks)

    outcomes = [r for r in run.results if isinstance(r, SampleFilterOutcome)]
    failures = [r for r in run.results if isinstance(r, SampleFailure)]
    summary = RunSummary.build(
        len(pairs), [o.report for o in outcomes], failures, run.cancelled
    )

    if run.cancelled:
        logger.warning("%s samples were cancelled", len(run.cancelled))

    return FilterRunResult(
        outcomes=outcomes,
        failures=failures,
        summary=summary,
        cancelled=list(run.cancelled),
    )
