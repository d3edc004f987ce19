r"""Greedy forward selection by Orthogonal Matching Pursuit (OMP).

OMP grows a feature set one column at a time. In every round the residual of
the current fit is projected onto all (unit-norm) candidate columns and the
column with the largest absolute projection joins the set:

:math:`j^* = \arg\max_{j \notin S} |\tilde x_j^T r|`

after which the selected submatrix is refit and the residual updated. Every
prefix of the path is scored with the model-selection criterion, and the best
prefix is returned. The path is not stopped early when the score gets worse,
because information criteria are frequently non-monotone along the path.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .least_squares import fit, predict


if TYPE_CHECKING:
    from linsel.data import Dataset

    from .criteria import ScoreFunction


logger = logging.getLogger(__name__)

_NORM_TOL = 1e-16
_RESCORE_RTOL = 1e-8


@dataclass(frozen=True)
class OptimizeResult:
    """Outcome of a local optimization.

    Attributes:
        score: Criterion value of the selected model (lower is better).
        include: 0/1 inclusion vector over all candidate features.
        coeff: Coefficients of the included features in ascending column order.
    """

    score: float
    include: np.ndarray
    coeff: np.ndarray

    @property
    def selected(self) -> list[int]:
        """Indices of the included columns."""
        return [int(j) for j in np.flatnonzero(self.include)]

    def is_equal(self, other: OptimizeResult, tol: float = 1e-6) -> bool:
        """Approximate equality on score, inclusion bits and coefficients."""
        same_score = self.score == other.score or abs(self.score - other.score) < tol
        return (
            same_score
            and np.array_equal(self.include, other.include)
            and self.coeff.shape == other.coeff.shape
            and bool(np.allclose(self.coeff, other.coeff, atol=tol))
        )


def normalize_columns(X: np.ndarray) -> np.ndarray:
    """Return a copy of ``X`` with every column scaled to unit L2 norm.

    Columns whose norm is below ``1e-16`` are left as they are.
    """
    Xn = np.array(X, dtype=float, copy=True)
    norms = np.linalg.norm(Xn, axis=0)
    scale = np.where(norms > _NORM_TOL, norms, 1.0)
    return Xn / scale


def arg_abs_max(values: np.ndarray, exclude: Sequence[int] = ()) -> int:
    """Index of the largest absolute entry, skipping ``exclude``; first occurrence on ties."""
    magnitude = np.abs(np.asarray(values, dtype=float))
    if len(exclude):
        magnitude[list(exclude)] = -np.inf
    return int(np.argmax(magnitude))


def selection_to_bits(selected: Sequence[int], length: int) -> np.ndarray:
    """Convert column indices to a 0/1 inclusion vector of ``length`` entries."""
    include = np.zeros(length, dtype=np.int8)
    include[list(selected)] = 1
    return include


def orthogonal_matching_pursuit(
    dataset: Dataset,
    score_fn: ScoreFunction,
    max_features: int,
) -> OptimizeResult:
    """Select the best-scoring prefix of the OMP path.

    Args:
        dataset: Candidate features and target.
        score_fn: Criterion with signature ``score(X, y, coeff, names)``.
        max_features: Upper bound on the number of OMP rounds (and hence on
            the size of the returned model).

    Returns:
        The best subset with coefficients refit on the unnormalized columns
        and the score of that refit.

    Raises:
        ValueError: If ``max_features < 1`` or the dataset has no columns.
    """
    if max_features < 1:
        raise ValueError("max_features must be at least 1.")
    n_cols = dataset.num_features
    if n_cols == 0:
        raise ValueError("Cannot run OMP on a dataset without feature columns.")

    X = dataset.X
    y = dataset.y
    X_norm = normalize_columns(X)
    residual = y.copy()

    selected: list[int] = []
    best_score = math.inf
    best_selection: list[int] = []

    for _ in range(min(max_features, n_cols)):
        proj = X_norm.T @ residual
        selected.append(arg_abs_max(proj, exclude=selected))

        sub_norm = X_norm[:, selected]
        residual = y - predict(sub_norm, fit(sub_norm, y))

        sub = X[:, selected]
        score = score_fn(sub, y, fit(sub, y), [dataset.col_names[j] for j in selected])
        if score < best_score:
            best_score = score
            best_selection = list(selected)

    if not best_selection:
        logger.debug("Every OMP prefix scored inf; keeping column %s", dataset.col_names[selected[0]])
        best_selection = selected[:1]

    best_selection.sort()
    sub = X[:, best_selection]
    coeff = fit(sub, y)
    final_score = score_fn(sub, y, coeff, [dataset.col_names[j] for j in best_selection])

    if math.isfinite(best_score) and not math.isclose(final_score, best_score, rel_tol=_RESCORE_RTOL, abs_tol=0.0):
        logger.warning(
            "Rescoring the selected subset changed the score from %.10g to %.10g",
            best_score,
            final_score,
        )

    return OptimizeResult(
        score=float(final_score),
        include=selection_to_bits(best_selection, n_cols),
        coeff=coeff,
    )


__all__ = [
    "OptimizeResult",
    "arg_abs_max",
    "normalize_columns",
    "orthogonal_matching_pursuit",
    "selection_to_bits",
]
