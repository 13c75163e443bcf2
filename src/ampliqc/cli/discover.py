"""Console script for ampliqc discover.

Copyright © 2025 Pixelgen Technologies AB.
"""

import click

from ampliqc.cli.common import input_dir_argument, logger, sample_pattern_options
from ampliqc.discovery import discover_samples
from ampliqc.exception import InputError
from ampliqc.utils import click_echo


@click.command(
    "discover",
    short_help="list the paired read files found in a directory",
    options_metavar="<options>",
)
@input_dir_argument
@sample_pattern_options
@click.pass_context
def discover(
    ctx, input_dir: str, forward_pattern: str, reverse_pattern: str, delimiter: str
):
    """List the samples and read file pairs found in INPUT_DIR."""
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

    click_echo("sample_id\tforward\treverse")
    for pair in pairs:
        click_echo(f"{pair.sample_id}\t{pair.forward_path}\t{pair.reverse_path}")
