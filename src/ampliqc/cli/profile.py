"""Console script for ampliqc profile.

Copyright © 2025 Pixelgen Technologies AB.
"""

from pathlib import Path
from typing import Optional

import click

from ampliqc.cli.common import (
    input_dir_argument,
    logger,
    output_option,
    sample_pattern_options,
)
from ampliqc.discovery import discover_samples
from ampliqc.exception import InputError
from ampliqc.quality import profile_read_files
from ampliqc.report.sampling import select_samples
from ampliqc.report.tables import write_quality_profiles
from ampliqc.utils import (
    create_output_stage_dir,
    log_step_start,
    timer,
    write_parameters_file,
)


@click.command(
    "profile",
    short_help="compute per-cycle quality profiles of raw reads",
    options_metavar="<options>",
)
@input_dir_argument
@output_option
@sample_pattern_options
@click.option(
    "--aggregate/--per-sample",
    default=False,
    show_default=True,
    help="Pool all samples into a single profile per mate",
)
@click.option(
    "--max-reads",
    default=None,
    type=click.IntRange(min=1),
    help=(
        "Only profile the first N reads of each file. "
        "The profiles are then approximate"
    ),
)
@click.option(
    "--n-samples",
    default=None,
    type=click.IntRange(min=1),
    help="Only profile a random subset of this many samples",
)
@click.option(
    "--seed",
    default=0,
    type=click.INT,
    show_default=True,
    help="The seed used to pick the random subset of samples",
)
@click.pass_context
@timer
def profile(
    ctx,
    input_dir: str,
    output: str,
    forward_pattern: str,
    reverse_pattern: str,
    delimiter: str,
    aggregate: bool,
    max_reads: Optional[int],
    n_samples: Optional[int],
    seed: int,
):
    """Compute the quality profiles of the raw read files in INPUT_DIR."""
    log_step_start(
        "profile",
        input_files=input_dir,
        output=output,
        aggregate=aggregate,
        max_reads=max_reads,
        n_samples=n_samples,
        seed=seed,
    )

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

    if n_samples is not None:
        picked = set(select_samples([p.sample_id for p in pairs], n_samples, seed))
        pairs = [p for p in pairs if p.sample_id in picked]
        logger.info("Profiling %s randomly selected samples", len(pairs))

    quality_output = create_output_stage_dir(output, "quality")
    write_parameters_file(
        ctx, Path(output) / "profile.meta.json", command_path="ampliqc profile"
    )

    stem = "aggregate" if aggregate else "per_sample"
    try:
        for mate, paths in (
            ("forward", [p.forward_path for p in pairs]),
            ("reverse", [p.reverse_path for p in pairs]),
        ):
            profiles = profile_read_files(
                paths, mate, aggregate=aggregate, max_reads=max_reads
            )
            write_quality_profiles(profiles, quality_output, f"{stem}_{mate}")
    except InputError as e:
        logger.error(str(e))
        ctx.exit(1)

    logger.info("Wrote quality profiles of %s samples to %s", len(pairs), quality_output)
