"""Immutable configuration of the filter and trim engine.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pydantic
from pydantic import NonNegativeFloat, NonNegativeInt, PositiveInt
from ruamel import yaml
from ruamel.yaml.error import YAMLError

from ampliqc.exception import ConfigurationError
from ampliqc.types import PathType

logger = logging.getLogger(__name__)

PAIRED_FIELDS = (
    "trim_left",
    "trunc_len",
    "max_expected_error",
    "trim_right",
    "min_len",
    "max_len",
)


def load_yaml_file(path: PathType) -> Any:
    """Load an arbitrary yaml file.

    :param path: path to the yaml file
    :raises ConfigurationError: if the file does not exist or is not valid YAML
    :returns: a yaml object
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"{path} is not a file")

    if path.suffix not in (".yaml", ".yml"):
        raise ConfigurationError(f"{path} is not a yaml file")

    yaml_loader = yaml.YAML(typ="safe")
    try:
        with open(path, "r") as cf:
            return yaml_loader.load(cf)
    except YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e


def _format_validation_error(error: pydantic.ValidationError) -> str:
    messages = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "Invalid filter configuration: " + "; ".join(messages)


class FilterConfig(pydantic.BaseModel):
    """Settings of the filter and trim engine.

    Settings given as a `(forward, reverse)` pair may also be given as a
    single value that applies to both mates.

    :ivar trim_left: bases removed from the 5' end of each mate
    :ivar trunc_len: length each mate is truncated to, shorter mates are
        rejected; 0 disables truncation
    :ivar max_n: maximum number of ambiguous bases in a mate
    :ivar max_expected_error: maximum expected number of errors per mate,
        None disables the check
    :ivar trunc_quality: truncate each mate before the first base with a
        quality score at or below this value, None disables truncation
    :ivar remove_phix: reject pairs matching the contaminant reference
    :ivar contaminant_reference: FASTA file of the contaminant genome
    :ivar trim_right: bases removed from the 3' end after truncation
    :ivar min_len: minimum length of each mate after all trimming
    :ivar max_len: maximum length of each untrimmed mate, None disables
    :ivar min_quality: reject mates with any quality score below this value
    :ivar phix_word_size: k-mer length of the contaminant screen
    :ivar phix_min_matches: shared k-mers needed to call a contaminant match
    """

    model_config = pydantic.ConfigDict(frozen=True, extra="forbid")

    trim_left: tuple[NonNegativeInt, NonNegativeInt] = (0, 0)
    trunc_len: tuple[NonNegativeInt, NonNegativeInt] = (0, 0)
    max_n: NonNegativeInt = 0
    max_expected_error: tuple[
        Optional[NonNegativeFloat], Optional[NonNegativeFloat]
    ] = (None, None)
    trunc_quality: Optional[NonNegativeInt] = 2
    remove_phix: bool = False
    contaminant_reference: Optional[pydantic.FilePath] = None

    trim_right: tuple[NonNegativeInt, NonNegativeInt] = (0, 0)
    min_len: tuple[NonNegativeInt, NonNegativeInt] = (0, 0)
    max_len: tuple[Optional[PositiveInt], Optional[PositiveInt]] = (None, None)
    min_quality: Optional[NonNegativeInt] = None
    phix_word_size: PositiveInt = 16
    phix_min_matches: PositiveInt = 2

    def __init__(self, **data: Any):
        """Validate and initialize a configuration.

        :raises ConfigurationError: if the configuration is invalid
        """
        try:
            super().__init__(**data)
        except pydantic.ValidationError as e:
            raise ConfigurationError(_format_validation_error(e)) from e

    @pydantic.field_validator(*PAIRED_FIELDS, mode="before")
    @classmethod
    def expand_scalar(cls, value: Any) -> Any:
        if value is None or isinstance(value, (int, float)):
            return (value, value)
        return value

    @pydantic.model_validator(mode="after")
    def check_lengths(self) -> "FilterConfig":
        for mate, trim, trim_right, trunc in zip(
            ("forward", "reverse"), self.trim_left, self.trim_right, self.trunc_len
        ):
            if trunc == 0:
                continue
            if trim >= trunc:
                raise ValueError(
                    f"trim_left ({trim}) must be smaller than trunc_len ({trunc}) "
                    f"for the {mate} mate, otherwise every read is rejected"
                )
            if trim + trim_right >= trunc:
                raise ValueError(
                    f"trim_left + trim_right ({trim + trim_right}) must be smaller "
                    f"than trunc_len ({trunc}) for the {mate} mate"
                )

        if self.remove_phix and self.contaminant_reference is None:
            raise ValueError("remove_phix requires a contaminant_reference FASTA file")

        return self

    @classmethod
    def from_yaml(cls, path: PathType, **overrides: Any) -> "FilterConfig":
        """Load a configuration from a YAML file.

        Keyword arguments that are not None take precedence over the
        values of the file.

        :param path: the YAML file holding a mapping of settings
        :param overrides: settings overriding the file values
        :raises ConfigurationError: if the file or the result is invalid
        """
        data = load_yaml_file(path)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping of settings")

        data = {**data, **{k: v for k, v in overrides.items() if v is not None}}
        logger.debug("Loaded filter configuration from %s", path)
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "FilterConfig":
        """Return a validated copy with some settings replaced."""
        return type(self)(**(self.model_dump() | overrides))
