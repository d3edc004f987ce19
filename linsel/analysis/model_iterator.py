"""Walk through models by flipping one bit of an inclusion vector at a time."""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np


class ModelIterator(Iterator[np.ndarray]):
    """Iterator over inclusion vectors reachable by sequential bit flips.

    Step ``i`` flips bit ``i`` of the current vector. Flips that would exceed
    ``max_size`` active features are reverted and skipped, and a flip that
    empties the vector is reverted before it is yielded, so an empty model is
    never produced. The iterator stops after the last bit.

    The yielded array is the iterator's own state; copy it to keep a snapshot.
    """

    def __init__(self, include: np.ndarray, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1.")
        self.include = np.array(include, dtype=np.int8, copy=True)
        self.max_size = max_size
        self._current = 0

    def _flip(self, idx: int) -> None:
        self.include[idx] = 1 - self.include[idx]

    def undo_last_flip(self) -> None:
        """Revert the flip of the most recently yielded step."""
        if self._current > 0:
            self._flip(self._current - 1)

    def __next__(self) -> np.ndarray:
        while self._current < len(self.include):
            idx = self._current
            self._current += 1
            self._flip(idx)
            if self.include.sum() > self.max_size:
                self.include[idx] = 0
                continue
            if not self.include.any():
                self._flip(idx)
            return self.include
        raise StopIteration


__all__ = ["ModelIterator"]
