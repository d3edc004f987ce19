"""Random number helpers shared by the search components."""

from __future__ import annotations

import numpy as np


def make_rng(seed: int | np.random.Generator | None = None) -> np.random.Generator:
    """Return a :class:`numpy.random.Generator`, passing existing generators through."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


__all__ = ["make_rng"]
