"""Base classes for ampliqc report models.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Self

import pydantic


class ReportModel(pydantic.BaseModel):
    """Base class for report models that are written to and read from JSON."""

    @classmethod
    def from_json(cls, p: Path) -> Self:
        """Initialize a report from a JSON file.

        :param p: The path to the report file.
        :return: A report object.
        """
        with open(p) as fp:
            json_data = json.load(fp)

        return cls(**json_data)

    def to_json(self, **kwargs: Any) -> str:  # noqa: DOC103
        """Dump the report to a json string.

        :param kwargs: Additional arguments to pass to `json.dumps`.
        :return: The report serialized to JSON as a string.
        """
        return json.dumps(self.model_dump(mode="json"), **kwargs)

    def write_json_file(self, p: str | os.PathLike, **kwargs: Any) -> None:
        """Write the JSON serialized report to a file.

        Non-existing intermediate directories in the path will be created.

        :param p: The path to the file to write.
        :param kwargs: Additional arguments to pass to pydantics `model_dump_json`.
        """
        Path(p).resolve().parent.mkdir(parents=True, exist_ok=True)

        with open(p, "w") as fp:
            r = self.model_dump_json(**kwargs)
            fp.write(r)


class SampleReport(ReportModel):
    """Base class for all per-sample reports.

    :ivar sample_id: The sample id for which the report is generated.
    """

    sample_id: str
