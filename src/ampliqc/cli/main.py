"""Main console script for ampliqc.

Copyright © 2025 Pixelgen Technologies AB.
"""

import sys

import click

from ampliqc import __version__
from ampliqc.cli.common import OrderedGroup, logger
from ampliqc.cli.discover import discover
from ampliqc.cli.filter import filter_reads
from ampliqc.cli.profile import profile
from ampliqc.logging import LoggingSetup


@click.group(cls=OrderedGroup, name="ampliqc")
@click.version_option(__version__)
@click.option(
    "--verbose",
    type=click.BOOL,
    default=False,
    is_flag=True,
    help="Show extended messages during execution",
)
@click.option(
    "--log-file",
    required=False,
    default=None,
    type=click.Path(exists=False),
    help="The path to the log file (it is created if it does not exist)",
)
@click.pass_context
def main_cli(ctx, verbose: bool, log_file: str):
    """Run the main CLI entrypoint for ampliqc."""
    # early out if run in help mode
    if any(x in sys.argv for x in ["--help", "--version"]):
        return 0

    # Pass arguments to other commands
    ctx.ensure_object(dict)

    # This registers the logger with it's context manager,
    # so that it is clean-up properly when the command is done.
    ctx.obj["LOGGER"] = ctx.with_resource(LoggingSetup(log_file, verbose=verbose))
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logger.info("Running in VERBOSE mode")
    return 0


main_cli.add_command(discover)
main_cli.add_command(profile)
main_cli.add_command(filter_reads)


if __name__ == "__main__":
    sys.exit(main_cli())  # pragma: no cover
