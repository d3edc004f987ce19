"""Train/test splitting of dataset files."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from sklearn.model_selection import train_test_split

from linsel.utils.paths import derived_path


logger = logging.getLogger(__name__)


def split_csv(
    filepath: str | Path,
    *,
    test_fraction: float = 0.2,
    random_state: int | None = None,
) -> tuple[Path, Path]:
    """Shuffle the rows of a CSV file into ``<stem>_train.csv`` and ``<stem>_test.csv``.

    The header is kept in both files. Uses
    :func:`sklearn.model_selection.train_test_split`, so ``test_fraction`` is
    the share of rows placed in the test file.

    Returns:
        Paths of the training and test files.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError("test_fraction must be in (0, 1).")
    df = pd.read_csv(filepath)
    train, test = train_test_split(df, test_size=test_fraction, random_state=random_state, shuffle=True)

    train_path = derived_path(filepath, "_train")
    test_path = derived_path(filepath, "_test")
    train.to_csv(train_path, index=False)
    test.to_csv(test_path, index=False)
    logger.info("Wrote %d training rows to %s and %d test rows to %s", len(train), train_path, len(test), test_path)
    return train_path, test_path


__all__ = ["split_csv"]
