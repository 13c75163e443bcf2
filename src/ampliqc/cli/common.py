"""
Console script for ampliqc (common functions)

Copyright © 2025 Pixelgen Technologies AB.
"""

import collections
import functools
import logging
from typing import Dict, Mapping, Optional

import click

from ampliqc.discovery import (
    DEFAULT_DELIMITER,
    DEFAULT_FORWARD_PATTERN,
    DEFAULT_REVERSE_PATTERN,
)

logger = logging.getLogger("ampliqc.cli")


# the purpose is to order subcommands in order of addition
class OrderedGroup(click.Group):
    """Custom click.Group that keeps insertion order for subcommands."""

    def __init__(  # noqa: D107
        self,
        name: Optional[str] = None,
        commands: Optional[Dict[str, click.Command]] = None,
        **kwargs,
    ):
        super(OrderedGroup, self).__init__(name, commands, **kwargs)
        self.commands = commands or collections.OrderedDict()

    def list_commands(  # type: ignore
        self, ctx: click.Context
    ) -> Mapping[str, click.Command]:
        """Return a list of subcommands."""
        return self.commands


def output_option(func):
    """Wrap a Click entrypoint to add the --output option."""

    @click.option(
        "--output",
        required=True,
        type=click.Path(exists=False, file_okay=False),
        help=(
            "The path where the results will be placed (it is created if it does not"
            " exist)"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def threads_option(func):
    """Decorate a click command and add the --threads option."""

    @click.option(
        "--threads",
        default=1,
        required=False,
        type=click.INT,
        show_default=True,
        help=(
            "The number of samples processed in parallel. "
            "Use -1 to use all available cores"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def input_dir_argument(func):
    """Decorate a click command and add the INPUT_DIR argument."""

    @click.argument(
        "input_dir",
        nargs=1,
        required=True,
        type=click.Path(exists=True, file_okay=False),
        metavar="INPUT_DIR",
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def sample_pattern_options(func):
    """Decorate a click command with the read file discovery options."""

    @click.option(
        "--forward-pattern",
        default=DEFAULT_FORWARD_PATTERN,
        show_default=True,
        help="Glob pattern matching the forward (read 1) files",
    )
    @click.option(
        "--reverse-pattern",
        default=DEFAULT_REVERSE_PATTERN,
        show_default=True,
        help="Glob pattern matching the reverse (read 2) files",
    )
    @click.option(
        "--delimiter",
        default=DEFAULT_DELIMITER,
        show_default=True,
        help=(
            "The sample id is the part of the file name before the first "
            "occurrence of this delimiter"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def paired_int_option(*param_decls, help: str, min_value: int = 0):
    """Return a click option taking a forward and a reverse integer value."""
    return click.option(
        *param_decls,
        nargs=2,
        type=click.IntRange(min=min_value),
        default=None,
        metavar="F R",
        help=help,
    )
