"""Dataset container shared by every genome of a search."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd


_HEADER_STRIP = "#/ \n\t\r\v"


def _clean_header(name: str) -> str:
    return str(name).strip(_HEADER_STRIP)


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float, copy=True)
    values.flags.writeable = False
    return values


@dataclass(frozen=True, eq=False)
class Dataset:
    """Design matrix, target vector and column names of a regression problem.

    The arrays are stored read-only, so a single instance can be shared by all
    genomes of a population (and by concurrent evaluations) without copying.

    Attributes:
        X: Design matrix with shape ``(n_samples, n_features)``.
        y: Target vector with ``n_samples`` entries.
        col_names: Unique feature names; position ``j`` names column ``j`` of ``X``.
        target_name: Name of the target column.
    """

    X: np.ndarray
    y: np.ndarray
    col_names: tuple[str, ...] = ()
    target_name: str = ""
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        X = _read_only(np.atleast_2d(self.X)) if np.size(self.X) else _read_only(np.zeros((len(self.y), 0)))
        y = _read_only(np.ravel(self.y))
        names = tuple(self.col_names) if self.col_names else tuple(f"x{j}" for j in range(X.shape[1]))

        if X.shape[0] != y.shape[0]:
            raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]} entries.")
        if len(names) != X.shape[1]:
            raise ValueError(f"Expected {X.shape[1]} column names, got {len(names)}.")
        if len(set(names)) != len(names):
            raise ValueError("Column names must be unique.")

        object.__setattr__(self, "X", X)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "col_names", names)
        object.__setattr__(self, "_index", {name: j for j, name in enumerate(names)})

    # ------------------------------------------------------------------ construction
    @classmethod
    def from_frame(cls, df: pd.DataFrame, target: str | None) -> Dataset:
        """Build a dataset from a DataFrame; every non-target column becomes a feature.

        If ``target`` is ``None`` all columns go into ``X`` and ``y`` is filled
        with NaN, which is enough for prediction-only data.
        """
        df = df.rename(columns=_clean_header)
        if target is None:
            features = df
            y = np.full(len(df), np.nan)
            target = ""
        else:
            target = _clean_header(target)
            if target not in df.columns:
                raise KeyError(f"Target column '{target}' not found in the header.")
            features = df.drop(columns=[target])
            y = df[target].to_numpy(dtype=float)
        return cls(
            X=features.to_numpy(dtype=float),
            y=y,
            col_names=tuple(str(c) for c in features.columns),
            target_name=target,
        )

    @classmethod
    def from_csv(cls, filepath: str | Path, target: str | None = None, **kwargs: object) -> Dataset:
        """Load a dataset from a CSV file whose first line is a header.

        Args:
            filepath: Path to the CSV file
            target: Name of the target column (``None`` for prediction-only data)
            **kwargs: Forwarded to :func:`pandas.read_csv`

        Returns:
            Dataset with the target column removed from ``X``
        """
        df = pd.read_csv(filepath, skipinitialspace=True, **kwargs)
        non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
        if non_numeric:
            raise ValueError(f"Non-numeric columns in {filepath}: {non_numeric}")
        return cls.from_frame(df, target)

    def to_frame(self) -> pd.DataFrame:
        """Return features and target (last column) as a DataFrame."""
        df = pd.DataFrame(self.X, columns=list(self.col_names))
        df[self.target_name or "target"] = self.y
        return df

    def to_csv(self, filepath: str | Path) -> Path:
        """Write the dataset as CSV with the target appended as the last column."""
        filepath = Path(filepath)
        self.to_frame().to_csv(filepath, index=False, float_format="%.8f")
        return filepath

    # ------------------------------------------------------------------ shape
    @property
    def num_data(self) -> int:
        """Number of samples (rows of ``X``)."""
        return int(self.X.shape[0])

    @property
    def num_features(self) -> int:
        """Number of candidate features (columns of ``X``)."""
        return int(self.X.shape[1])

    def index_of(self, name: str) -> int:
        """Column index of ``name``; raises ``KeyError`` for unknown names."""
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"Unknown feature '{name}'.") from None

    # ------------------------------------------------------------------ derived views
    def included_features(self, include: Sequence[int] | np.ndarray) -> list[str]:
        """Names of the features whose indicator is 1."""
        return [name for name, flag in zip(self.col_names, include, strict=True) if flag == 1]

    def select(self, cols: Sequence[int]) -> Dataset:
        """Return a new dataset restricted to the column indices ``cols`` (in that order)."""
        cols = list(cols)
        return Dataset(
            X=self.X[:, cols],
            y=self.y,
            col_names=tuple(self.col_names[c] for c in cols),
            target_name=self.target_name,
        )

    def submatrix(self, names: Iterable[str]) -> np.ndarray:
        """Return the columns of ``X`` that correspond to ``names`` (in the given order)."""
        return self.X[:, [self.index_of(name) for name in names]]

    def subset_rows(self, rows: Sequence[int]) -> Dataset:
        """Return a new dataset holding only ``rows``."""
        rows = list(rows)
        return Dataset(X=self.X[rows], y=self.y[rows], col_names=self.col_names, target_name=self.target_name)

    def columns(self, pattern: str) -> list[int]:
        """Indices of all columns whose name contains ``pattern``."""
        return [j for j, name in enumerate(self.col_names) if pattern in name]

    def dot(self, coeffs: Mapping[str, float]) -> np.ndarray:
        """Predict with a sparse coefficient mapping; features not listed count as zero."""
        dense = np.zeros(self.num_features)
        for name, value in coeffs.items():
            dense[self.index_of(name)] = value
        return self.X @ dense

    def add_poly(self, cols: Sequence[int], order: int) -> Dataset:
        """Append polynomial versions ``x**k`` (``k = 2..order``) of the given columns.

        New columns are named ``f"{name}p{k}"``. The original dataset is left untouched.
        """
        if order < 1:
            raise ValueError("order must be >= 1")
        new_cols = [self.X]
        new_names = list(self.col_names)
        for power in range(2, order + 1):
            for c in cols:
                new_cols.append(self.X[:, [c]] ** power)
                new_names.append(f"{self.col_names[c]}p{power}")
        return Dataset(
            X=np.hstack(new_cols),
            y=self.y,
            col_names=tuple(new_names),
            target_name=self.target_name,
        )

    def is_equal(self, other: Dataset, tol: float = 1e-6) -> bool:
        """Approximate equality on values and column names."""
        return (
            self.X.shape == other.X.shape
            and self.col_names == other.col_names
            and bool(np.allclose(self.X, other.X, atol=tol, equal_nan=True))
            and bool(np.allclose(self.y, other.y, atol=tol, equal_nan=True))
        )


def closest_header_name(filepath: str | Path, fragment: str) -> str:
    """Return the first header entry of ``filepath`` that contains ``fragment``."""
    with Path(filepath).open(newline="", encoding="utf-8") as fh:
        header = next(csv.reader(fh), [])
    for raw in header:
        name = _clean_header(raw)
        if fragment in name:
            return name
    raise KeyError(f"No header contains '{fragment}'.")


__all__ = ["Dataset", "closest_header_name"]
