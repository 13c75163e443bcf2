"""Discovery of paired read files in an input directory.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from ampliqc.exception import (
    DuplicateSampleError,
    EmptyDirectoryError,
    MissingMateError,
)
from ampliqc.types import PathType

logger = logging.getLogger(__name__)

DEFAULT_FORWARD_PATTERN = "*_1.fastq.gz"
DEFAULT_REVERSE_PATTERN = "*_2.fastq.gz"
DEFAULT_DELIMITER = "_"


@dataclasses.dataclass(frozen=True)
class SamplePair:
    """The forward and reverse read files of one sample."""

    sample_id: str
    forward_path: Path
    reverse_path: Path

    def paths(self) -> tuple[Path, Path]:
        """Return the forward and reverse paths as a tuple."""
        return self.forward_path, self.reverse_path


def get_sample_id(filename: PathType, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Extract the sample id from a read filename.

    The sample id is the first token of the file's basename when split
    on `delimiter`, e.g. `SRR1_1.fastq.gz` gives `SRR1`.

    :param filename: path to the read file
    :param delimiter: the delimiter separating the sample id from the rest
    :returns str: the sample id
    """
    if not delimiter:
        raise ValueError("The sample id delimiter can not be empty")
    return Path(filename).name.split(delimiter)[0]


def discover_samples(
    directory: PathType,
    forward_pattern: str = DEFAULT_FORWARD_PATTERN,
    reverse_pattern: str = DEFAULT_REVERSE_PATTERN,
    delimiter: str = DEFAULT_DELIMITER,
) -> list[SamplePair]:
    """Scan a directory for paired read files.

    Forward and reverse files are matched with glob patterns, sorted by
    name and paired in order.

    :param directory: the directory to scan (not recursive)
    :param forward_pattern: glob pattern matching forward (read 1) files
    :param reverse_pattern: glob pattern matching reverse (read 2) files
    :param delimiter: the delimiter used to derive the sample id
    :returns list[SamplePair]: the discovered pairs, ordered by file name
    :raises EmptyDirectoryError: if no file matches either pattern
    :raises MissingMateError: if forward and reverse files do not pair up
    :raises DuplicateSampleError: if two pairs share a sample id
    """
    root = Path(directory)
    if not root.is_dir():
        raise EmptyDirectoryError(f"{root} is not a directory", path=root)

    forward = sorted(p for p in root.glob(forward_pattern) if p.is_file())
    reverse = sorted(p for p in root.glob(reverse_pattern) if p.is_file())
    logger.debug(
        "Found %s forward and %s reverse read files in %s",
        len(forward),
        len(reverse),
        root,
    )

    if not forward and not reverse:
        raise EmptyDirectoryError(
            f"No files matching {forward_pattern} or {reverse_pattern} in {root}",
            path=root,
        )

    if len(forward) != len(reverse):
        raise MissingMateError(
            f"Found {len(forward)} forward and {len(reverse)} reverse read files "
            f"in {root}",
            path=root,
        )

    pairs = []
    seen: dict[str, Path] = {}
    for fwd, rev in zip(forward, reverse):
        sample_id = get_sample_id(fwd, delimiter)
        reverse_id = get_sample_id(rev, delimiter)
        if sample_id != reverse_id:
            raise MissingMateError(
                f'Forward file "{fwd.name}" and reverse file "{rev.name}" belong to '
                f"different samples ({sample_id} vs {reverse_id})",
                path=fwd,
                sample_id=sample_id,
            )

        if sample_id in seen:
            raise DuplicateSampleError(
                f'Sample id "{sample_id}" is derived from both {seen[sample_id].name} '
                f"and {fwd.name}",
                path=fwd,
                sample_id=sample_id,
            )
        seen[sample_id] = fwd
        pairs.append(SamplePair(sample_id, fwd, rev))

    logger.info("Discovered %s samples in %s", len(pairs), root)
    return pairs
