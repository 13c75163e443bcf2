"""Reading and writing of paired FASTQ files.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import contextlib
import gzip
import logging
import os
import zlib
from contextlib import ExitStack
from pathlib import Path
from typing import Iterator, Optional

import dnaio

from ampliqc.exception import (
    InputError,
    MalformedReadFileError,
    MatePairingError,
    PathUnwritableError,
    TruncatedReadError,
)
from ampliqc.types import PathType

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 6


@contextlib.contextmanager
def input_errors(
    path: PathType,
    sample_id: Optional[str] = None,
    mate_path: Optional[PathType] = None,
) -> Iterator[None]:
    """Translate dnaio parsing errors into ampliqc input errors.

    When reading a pair of files, the error may come from either of them,
    so the messages name both files.

    :param path: the file (or first file of a pair) being read
    :param sample_id: the sample the file belongs to
    :param mate_path: the second file of a pair
    :raises MatePairingError: if the records of two files are out of step
    :raises TruncatedReadError: if a record is cut short or its sequence and
        qualities differ in length
    :raises MalformedReadFileError: for any other parsing error
    """
    where = str(path) if mate_path is None else f"{path} or {mate_path}"
    try:
        yield
    except InputError as e:
        if e.path is not None:
            raise
        raise type(e)(e.msg, path=path, sample_id=sample_id or e.sample_id) from e
    except dnaio.FileFormatError as e:
        lower = str(e).lower()
        msg = f"Error reading {where}: {e}"
        if "improperly paired" in lower:
            raise MatePairingError(msg, path=path, sample_id=sample_id) from e
        if "differ" in lower or "premature end" in lower:
            raise TruncatedReadError(msg, path=path, sample_id=sample_id) from e
        raise MalformedReadFileError(msg, path=path, sample_id=sample_id) from e
    except dnaio.UnknownFileFormat as e:
        raise MalformedReadFileError(
            f"Error reading {where}: {e}", path=path, sample_id=sample_id
        ) from e
    except (EOFError, gzip.BadGzipFile, zlib.error) as e:
        raise TruncatedReadError(
            f"Could not decompress {where}: {e}", path=path, sample_id=sample_id
        ) from e


def open_paired_reader(
    forward: PathType, reverse: PathType, sample_id: Optional[str] = None
) -> dnaio.PairedEndReader:
    """Open a forward and reverse FASTQ file for reading in lock step.

    :raises MalformedReadFileError: if the files do not hold quality scores
    """
    with input_errors(forward, sample_id, mate_path=reverse):
        reader = dnaio.open(str(forward), str(reverse), mode="r")

    if not reader.delivers_qualities:
        reader.close()
        raise MalformedReadFileError(
            f"{forward} does not contain quality scores (FASTA input?)",
            path=forward,
            sample_id=sample_id,
        )
    return reader


def _open_gzip(stack: ExitStack, path: Path, compresslevel: int) -> gzip.GzipFile:
    raw = stack.enter_context(open(path, "wb"))
    # No timestamp and no file name in the header, so repeated runs are
    # byte-identical.
    return stack.enter_context(
        gzip.GzipFile(
            filename="", mode="wb", fileobj=raw, mtime=0, compresslevel=compresslevel
        )
    )


class PairedFastqWriter:
    """Write paired records to two gzip compressed FASTQ files.

    Records are written to temporary `.partial` files that are renamed
    into place by :meth:`commit`. Closing the writer without committing
    removes the partial files, so a sample is either fully written or
    absent.
    """

    def __init__(
        self,
        forward: PathType,
        reverse: PathType,
        compresslevel: int = DEFAULT_COMPRESSION_LEVEL,
    ):
        """Open the partial output files.

        :param forward: the final path of the forward output
        :param reverse: the final path of the reverse output
        :param compresslevel: the gzip compression level
        :raises PathUnwritableError: if an output file cannot be opened
        """
        self.forward = Path(forward)
        self.reverse = Path(reverse)
        self._partials = (_partial_path(self.forward), _partial_path(self.reverse))
        self._committed = False
        self._stack = ExitStack()

        try:
            gz1 = _open_gzip(self._stack, self._partials[0], compresslevel)
            gz2 = _open_gzip(self._stack, self._partials[1], compresslevel)
        except OSError as e:
            self._stack.close()
            self._remove_partials()
            raise PathUnwritableError(
                f"Could not open output file for writing: {e}", self.forward.parent
            ) from e

        self._writer = dnaio.open(
            gz1, gz2, mode="w", fileformat="fastq", qualities=True
        )

    def write(self, read1: dnaio.SequenceRecord, read2: dnaio.SequenceRecord) -> None:
        """Write a pair of records."""
        self._writer.write(read1, read2)

    def commit(self) -> None:
        """Flush the output and move the partial files to their final paths."""
        self._close_files()
        os.replace(self._partials[0], self.forward)
        os.replace(self._partials[1], self.reverse)
        self._committed = True
        logger.debug("Wrote %s and %s", self.forward, self.reverse)

    def close(self) -> None:
        """Close the writer, discarding the output if it was not committed."""
        if self._committed:
            return
        try:
            self._close_files()
        finally:
            self._remove_partials()

    def _close_files(self) -> None:
        # the sequence writer must flush before the gzip streams are closed
        with self._stack:
            self._writer.close()

    def _remove_partials(self) -> None:
        for p in self._partials:
            p.unlink(missing_ok=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _partial_path(path: Path) -> Path:
    name = path.name
    for suffix in (".fastq.gz", ".fq.gz"):
        if name.endswith(suffix):
            return path.with_name(name[: -len(suffix)] + ".partial" + suffix)
    return path.with_name(name + ".partial")
