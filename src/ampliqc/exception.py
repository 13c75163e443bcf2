"""
This module contains all the extra exception classes and handling
defined by ampliqc

Copyright © 2025 Pixelgen Technologies AB.
"""

from pathlib import Path
from typing import Optional, Union


class AmpliqcError(Exception):
    """Base class for all errors raised by ampliqc."""


class ConfigurationError(AmpliqcError):
    """Raised when a filter configuration is invalid.

    Configuration errors are reported before any read is processed.
    """


class InputError(AmpliqcError):
    """Base class for errors caused by missing or malformed input files.

    Input errors raised while processing a sample only fail that sample.

    Attributes:
        msg: the error message
        path: the offending file or directory, if known
        sample_id: the sample the error belongs to, if known
    """

    def __init__(
        self,
        msg: str,
        path: Optional[Union[str, Path]] = None,
        sample_id: Optional[str] = None,
    ):
        # all arguments are passed on so instances survive pickling
        super().__init__(msg, path, sample_id)
        self.msg = msg
        self.path = path
        self.sample_id = sample_id

    def __str__(self) -> str:
        return self.msg


class EmptyDirectoryError(InputError):
    """No read files matched the forward or reverse pattern."""


class MissingMateError(InputError):
    """The forward and reverse read files do not form complete pairs."""


class DuplicateSampleError(InputError):
    """Two read file pairs resolve to the same sample id."""


class MatePairingError(InputError):
    """The forward and reverse records of a sample are out of step."""


class TruncatedReadError(InputError):
    """A read record has a different number of bases and quality scores."""


class MalformedReadFileError(InputError):
    """A read file is not valid (compressed) FASTQ."""


class EmptyReadFileError(InputError):
    """A read file is empty."""


class PathUnwritableError(AmpliqcError):
    """An output location could not be created or written.

    Attributes:
        msg: the error message
        path: the output location
    """

    def __init__(self, msg: str, path: Union[str, Path]):
        super().__init__(msg, path)
        self.msg = msg
        self.path = path

    def __str__(self) -> str:
        return self.msg


class DivisionUndefinedError(AmpliqcError):
    """A retention ratio was requested for a sample without input reads."""

    def __init__(self, sample_id: str):
        super().__init__(sample_id)
        self.sample_id = sample_id

    def __str__(self) -> str:
        return f"Retention is undefined for sample {self.sample_id}: no input reads"
