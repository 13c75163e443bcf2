"""Seeded selection of samples for visual inspection.

Copyright © 2025 Pixelgen Technologies AB.
"""

from typing import Optional, Sequence

import numpy as np


def select_samples(
    sample_ids: Sequence[str], n: int, seed: Optional[int] = None
) -> list[str]:
    """Pick a random subset of samples, e.g. to plot their quality profiles.

    The selection only depends on `seed`, and the picked ids keep the
    order they have in `sample_ids`. All ids are returned when `n` is at
    least the number of samples.

    :param sample_ids: the ids to choose from
    :param n: the number of samples to pick
    :param seed: the seed of the random number generator
    :returns list[str]: the picked ids
    :raises ValueError: if `n` is negative
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    if n >= len(sample_ids):
        return list(sample_ids)

    rng = np.random.default_rng(seed)
    picked = rng.choice(len(sample_ids), size=n, replace=False)
    return [sample_ids[i] for i in sorted(picked)]
