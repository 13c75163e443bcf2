"""Common functions and utilities for ampliqc.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import json
import logging
import multiprocessing
import textwrap
import time
from concurrent.futures import ProcessPoolExecutor
from functools import wraps
from logging.handlers import SocketHandler
from pathlib import Path
from typing import Any, List, Optional

import click
import numpy as np

from ampliqc.exception import (
    EmptyReadFileError,
    MissingMateError,
    PathUnwritableError,
)
from ampliqc.types import PathType

logger = logging.getLogger(__name__)

# this tr table is used to complement DNA sequences
_TRTABLE = str.maketrans("GTACN", "CATGN")


def click_echo(msg: str, multiline: bool = False):
    """Print a line to the console with optional long-line wrapping.

    :param msg: the message to print
    :param multiline: True to use text wrapping or False otherwise (default)
    """
    if multiline:
        click.echo(textwrap.fill(textwrap.dedent(msg), width=100))
    else:
        click.echo(msg)


def create_output_stage_dir(root: PathType, name: str) -> Path:
    """Create a new subfolder with `name` under the given `root` directory.

    :param root: the parent directory
    :param name: the name of the directory to create
    :returns Path: the created folder (Path)
    :raises PathUnwritableError: if the folder cannot be created
    """
    output = Path(root) / name
    try:
        output.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PathUnwritableError(
            f"Could not create output directory {output}: {e.strerror}", output
        ) from e
    return output


def check_input_file(path: PathType, sample_id: Optional[str] = None) -> None:
    """Raise an :class:`InputError` if `path` is missing or an empty file.

    :param path: the read file to check
    :param sample_id: the sample the file belongs to
    """
    p = Path(path)
    logger.debug("Sanity checking %s", p)
    if not p.is_file():
        raise MissingMateError(f"{p} does not exist", path=p, sample_id=sample_id)
    if p.stat().st_size == 0:
        raise EmptyReadFileError(f"{p} is an empty file", path=p, sample_id=sample_id)


def log_step_start(
    step_name: str,
    input_files: Optional[List[str] | str] = None,
    output: Optional[str] = None,
    **kwargs,
) -> None:
    """Add information about the start of an ampliqc step to the logs.

    :param step_name: name of the step that is starting
    :param input_files: collection of input file paths
    :param output: optional path to output
    :param **kwargs: any additional parameters that you wish to log
    :rtype: None
    """
    from ampliqc import __version__

    logger.info("Start ampliqc %s %s", step_name, __version__)

    if isinstance(input_files, list):
        logger.info("Input file(s) %s", ",".join(input_files))

    if isinstance(input_files, str):
        logger.info("Input file %s", input_files)

    if output is not None:
        logger.info("Output %s", output)

    if kwargs:
        params = [f"{key.replace('_', '-')}={value}" for key, value in kwargs.items()]
        logger.info("Parameters:%s", ",".join(params))


def np_encoder(object: Any):
    """Encoder for JSON serialization of numpy data types."""  # noqa: D401
    if isinstance(object, np.generic):
        return object.item()
    if isinstance(object, Path):
        return str(object)
    raise TypeError(f"Object of type {type(object).__name__} is not JSON serializable")


def reverse_complement(seq: str) -> str:
    """Compute the reverse complement of a DNA seq.

    :param seq: the DNA sequence
    :return: the reverse complement of the input sequence
    :rtype: str
    """
    return seq.upper().translate(_TRTABLE)[::-1]


def timer(func):
    """Time the different steps of a function."""

    @wraps(func)
    def wrapper(*args, **kwds):
        start_time = time.perf_counter()
        res = func(*args, **kwds)
        run_time = time.perf_counter() - start_time
        logger.info("Finished ampliqc %s in %.2fs", func.__name__, run_time)
        return res

    return wrapper


def write_parameters_file(
    click_context: click.Context, output_file: Path, command_path: Optional[str] = None
) -> None:
    """Write the parameters used in for a command to a JSON file.

    :param click_context: the click context object
    :param output_file: the output file
    :param command_path: the command to use as command name
    """
    command_path_fixed = command_path or click_context.command_path
    parameters = click_context.command.params
    parameter_values = click_context.params

    param_data = {}

    for param in parameters:
        if not isinstance(param, click.core.Option):
            continue

        name = param.opts[0]
        value = parameter_values.get(str(param.name))
        if value is not None and isinstance(param.type, click.Path):
            value = str(Path(value).resolve())

        param_data[name] = value

    data = {
        "cli": {
            "command": command_path_fixed,
            "options": param_data,
        }
    }

    logger.debug("Writing parameters file to %s", str(output_file))

    with open(output_file, "w") as fh:
        json.dump(data, fh, indent=4, default=np_encoder)


def _add_handlers_to_root_logger(port, log_level):
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    socket_handler = SocketHandler("localhost", port)
    root_logger.addHandler(socket_handler)


def _pre_multiprocessing_args(
    nbr_cores=None, logging_setup=None, context="spawn", **kwargs
):
    # If these variable are not set we will try to pick them
    # up from the click context
    current_click_context = click.get_current_context(silent=True)
    click_logging_setup = None
    if current_click_context and current_click_context.obj:
        click_logging_setup = current_click_context.obj.get("LOGGER")

    nbr_cores = nbr_cores if nbr_cores else multiprocessing.cpu_count()
    args_dict = {
        "max_workers": nbr_cores,
        "mp_context": multiprocessing.get_context(context),
    }

    setup = logging_setup or click_logging_setup
    if setup is not None and setup.port is not None:
        args_dict = args_dict | dict(
            initializer=_add_handlers_to_root_logger,
            initargs=(setup.port, setup.log_level),
        )
    args_dict = args_dict | kwargs
    return args_dict


def get_process_pool_executor(
    nbr_cores=None, logging_setup=None, context="spawn", **kwargs
) -> ProcessPoolExecutor:
    """Return a ProcessPool with some default settings.

    Worker log records are forwarded to the `LoggingSetup` listener when one
    is given or registered on the current click context.
    """
    args_dict = _pre_multiprocessing_args(nbr_cores, logging_setup, context, **kwargs)
    return ProcessPoolExecutor(**args_dict)
