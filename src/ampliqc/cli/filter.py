"""Console script for ampliqc filter.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import click
from click.core import ParameterSource

from ampliqc.cli.common import (
    input_dir_argument,
    logger,
    output_option,
    paired_int_option,
    sample_pattern_options,
    threads_option,
)
from ampliqc.discovery import discover_samples
from ampliqc.exception import ConfigurationError, InputError
from ampliqc.filtering import (
    POST_FILTER_PROFILE,
    PRE_FILTER_PROFILE,
    FilterConfig,
    FilterRunResult,
    filter_and_trim,
)
from ampliqc.filtering.contaminant import KmerIndex
from ampliqc.read_processing.runners import make_runner
from ampliqc.report.tables import write_quality_profiles, write_retention
from ampliqc.retention import analyze_retention
from ampliqc.utils import (
    create_output_stage_dir,
    log_step_start,
    timer,
    write_parameters_file,
)

# command line option -> FilterConfig field
CONFIG_OPTIONS = {
    "trunc_len": "trunc_len",
    "trim_left": "trim_left",
    "trim_right": "trim_right",
    "min_len": "min_len",
    "max_len": "max_len",
    "max_n": "max_n",
    "max_ee": "max_expected_error",
    "trunc_q": "trunc_quality",
    "min_quality": "min_quality",
    "rm_phix": "remove_phix",
    "phix_reference": "contaminant_reference",
}


def build_filter_config(ctx: click.Context, config_file: Optional[str]) -> FilterConfig:
    """Create the filter configuration from the command line options.

    With a configuration file, only options given explicitly on the
    command line override the values of the file.

    :raises ConfigurationError: if the configuration is invalid
    """
    values: dict[str, Any] = {}
    for option, field in CONFIG_OPTIONS.items():
        value = ctx.params.get(option)
        if value is None:
            continue
        source = ctx.get_parameter_source(option)
        if config_file is not None and source != ParameterSource.COMMANDLINE:
            continue
        values[field] = value

    if config_file is not None:
        return FilterConfig.from_yaml(config_file, **values)
    return FilterConfig(**values)


def write_quality_outputs(result: FilterRunResult, quality_output: Path) -> None:
    """Write the per-sample and aggregated pre- and post-filter profiles."""
    for stage, stem in ((PRE_FILTER_PROFILE, "pre_filter"), (POST_FILTER_PROFILE, "post_filter")):
        per_sample = []
        for outcome in result.outcomes:
            paired = (
                outcome.pre_quality
                if stage == PRE_FILTER_PROFILE
                else outcome.post_quality
            )
            per_sample.extend(paired.profiles(outcome.sample_id))
        write_quality_profiles(per_sample, quality_output, f"{stem}_per_sample")
        write_quality_profiles(
            result.aggregate_quality(stage).profiles("aggregate"),
            quality_output,
            f"{stem}_aggregate",
        )


@click.command(
    "filter",
    short_help="filter and trim the paired reads of all samples",
    options_metavar="<options>",
)
@input_dir_argument
@output_option
@sample_pattern_options
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help=(
        "YAML file with filter settings. "
        "Options given on the command line take precedence"
    ),
)
@paired_int_option(
    "--trunc-len",
    help=(
        "Truncate forward and reverse reads to this length and discard shorter "
        "reads. 0 disables truncation  [default: 0 0]"
    ),
)
@paired_int_option(
    "--trim-left",
    help="Remove this many bases from the start of forward and reverse reads  [default: 0 0]",
)
@paired_int_option(
    "--trim-right",
    help="Remove this many bases from the end of the truncated reads  [default: 0 0]",
)
@paired_int_option(
    "--min-len",
    help="Discard reads shorter than this after trimming  [default: 0 0]",
)
@paired_int_option(
    "--max-len",
    min_value=1,
    help="Discard reads longer than this before trimming",
)
@click.option(
    "--max-n",
    default=0,
    type=click.IntRange(min=0),
    show_default=True,
    help="Discard read pairs where a read has more ambiguous bases than this",
)
@click.option(
    "--max-ee",
    nargs=2,
    default=None,
    type=click.FloatRange(min=0),
    metavar="F R",
    help="Discard read pairs where a read has more expected errors than this",
)
@click.option(
    "--trunc-q",
    default=2,
    type=click.IntRange(min=0),
    show_default=True,
    help="Truncate reads at the first base with a quality score at or below this",
)
@click.option(
    "--min-quality",
    default=None,
    type=click.IntRange(min=0),
    help="Discard read pairs where a read has a base with a lower quality score",
)
@click.option(
    "--rm-phix/--no-rm-phix",
    default=False,
    show_default=True,
    help="Discard read pairs matching the contaminant reference",
)
@click.option(
    "--phix-reference",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="FASTA file of the contaminant genome, required with --rm-phix",
)
@click.option(
    "--save-failed",
    default=False,
    is_flag=True,
    type=click.BOOL,
    help="Save the discarded read pairs to separate files",
)
@click.option(
    "--allow-failed-samples",
    default=False,
    is_flag=True,
    type=click.BOOL,
    help="Exit with status 0 even if some samples could not be processed",
)
@click.option(
    "--compression-level",
    default=6,
    type=click.IntRange(1, 9),
    show_default=True,
    help="The gzip compression level of the filtered read files",
)
@threads_option
@click.pass_context
@timer
def filter_reads(
    ctx,
    input_dir: str,
    output: str,
    forward_pattern: str,
    reverse_pattern: str,
    delimiter: str,
    config_file: Optional[str],
    trunc_len,
    trim_left,
    trim_right,
    min_len,
    max_len,
    max_n: int,
    max_ee,
    trunc_q: int,
    min_quality: Optional[int],
    rm_phix: bool,
    phix_reference: Optional[str],
    save_failed: bool,
    allow_failed_samples: bool,
    compression_level: int,
    threads: int,
):
    """Filter and trim the paired reads of all samples in INPUT_DIR."""
    log_step_start(
        "filter",
        input_files=input_dir,
        output=output,
        config=config_file,
        trunc_len=trunc_len,
        trim_left=trim_left,
        max_n=max_n,
        max_ee=max_ee,
        trunc_q=trunc_q,
        rm_phix=rm_phix,
        threads=threads,
    )

    try:
        config = build_filter_config(ctx, config_file)
        contaminant_index = None
        if config.remove_phix:
            contaminant_index = KmerIndex.from_fasta(
                config.contaminant_reference,  # type: ignore
                config.phix_word_size,
            )
    except ConfigurationError as e:
        raise click.UsageError(str(e), ctx=ctx) from e

    try:
        pairs = discover_samples(
            input_dir,
            forward_pattern=forward_pattern,
            reverse_pattern=reverse_pattern,
            delimiter=delimiter,
        )
    except InputError as e:
        logger.error(str(e))
        ctx.exit(1)

    output_path = Path(output)
    filtered_output = create_output_stage_dir(output, "filtered")
    quality_output = create_output_stage_dir(output, "quality")
    write_parameters_file(
        ctx, output_path / "filter.meta.json", command_path="ampliqc filter"
    )
    logger.debug("Filter configuration: %s", config.model_dump_json())

    logging_setup = ctx.obj.get("LOGGER") if ctx.obj else None
    result = filter_and_trim(
        pairs,
        config,
        filtered_output,
        save_failed=save_failed,
        compresslevel=compression_level,
        runner=make_runner(threads, logging_setup=logging_setup),
        contaminant_index=contaminant_index,
    )

    for report in result.reports:
        report.write_json_file(
            filtered_output / f"{report.sample_id}.report.json", indent=4
        )
    write_quality_outputs(result, quality_output)

    if result.results:
        stats = analyze_retention(result.results)
        write_retention(result.results, stats, output_path)
        if stats.median_percent_retained is not None:
            logger.info(
                "Median retention %.1f%% (min %.1f%%, max %.1f%%)",
                100 * stats.median_percent_retained,
                100 * stats.min_percent_retained,  # type: ignore
                100 * stats.max_percent_retained,  # type: ignore
            )

    summary = result.summary
    summary.write_json_file(output_path / "run_summary.json", indent=4)
    for line in summary.summary_lines():
        logger.info(line)

    if summary.samples_cancelled:
        logger.error("The run was cancelled before all samples were processed")
        ctx.exit(1)

    if summary.samples_failed and not allow_failed_samples:
        logger.error(
            "%s of %s samples failed", summary.samples_failed, summary.samples_attempted
        )
        ctx.exit(1)
