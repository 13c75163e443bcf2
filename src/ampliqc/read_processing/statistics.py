"""Interface for pipeline steps that expose custom statistics.

Copyright © 2025 Pixelgen Technologies AB.
"""

from abc import ABC, abstractmethod
from typing import Any


class HasCustomStatistics(ABC):
    """Mixin for pipeline steps that collect statistics beyond filter counts.

    The statistics object returned by `get_statistics` must support `+=`
    so that results from several steps of the same name can be merged.
    """

    @abstractmethod
    def get_statistics_name(self) -> str:
        """Return the key under which the statistics are stored."""

    @abstractmethod
    def get_statistics(self) -> Any:
        """Return the collected statistics."""
