"""
This module contains helper typehints for the ampliqc package.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import os
import typing
from pathlib import Path, PurePath
from typing import Union

# type alias for path-like objects
PathType = Union[str, Path, PurePath, os.PathLike]

Mate = typing.Literal["forward", "reverse"]
