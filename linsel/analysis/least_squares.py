r"""Least-squares fitting primitive used by every score evaluation.

:func:`fit` first tries a direct factorization-based solve. When the solver
signals failure (exactly singular or ill-conditioned triangular factor) the
solution is recomputed from a damped singular value decomposition

:math:`c = V \operatorname{diag}\left(\frac{s_i}{s_i^2 + \lambda}\right) U^T y`

which yields the (approximately) minimum-norm solution and stays bounded for
vanishing singular values. Greedy selection regularly asks for fits of
rank-deficient or underdetermined subsets, so the fallback is part of normal
operation and never raises.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy import linalg


SVD_DAMPING = 1e-8
"""Tikhonov-style damping :math:`\\lambda` of the SVD fallback."""


def _as_arrays(X: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    if X.ndim != 2:
        raise ValueError(f"X must be two-dimensional, got shape {X.shape}.")
    if X.shape[0] != y.shape[0]:
        raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]} entries.")
    return X, y


def _solve_direct(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    rows, cols = X.shape
    with warnings.catch_warnings():
        warnings.simplefilter("error", linalg.LinAlgWarning)
        if rows >= cols:
            q, r = linalg.qr(X, mode="economic")
            return linalg.solve(r, q.T @ y)
        # Minimum-norm solution through the LQ factorization X = L Q (QR of X^T).
        q, r = linalg.qr(X.T, mode="economic")
        return q @ linalg.solve(r.T, y)


def fit_svd(X: np.ndarray, y: np.ndarray, damping: float = SVD_DAMPING) -> np.ndarray:
    """Solve ``X c = y`` with a damped pseudo-inverse from the thin SVD."""
    X, y = _as_arrays(X, y)
    if X.shape[1] == 0:
        return np.zeros(0)
    u, s, vt = np.linalg.svd(X, full_matrices=False)
    inv_sigma = s / (s * s + damping)
    return vt.T @ (inv_sigma * (u.T @ y))


def fit(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Return the coefficient vector minimizing :math:`\\lVert Xc - y \\rVert_2`.

    Args:
        X: Design matrix ``(n, k)``.
        y: Target vector ``(n,)``.

    Returns:
        Coefficients ``(k,)``.

    Raises:
        ValueError: If the inputs have mismatched shapes or contain NaN/inf.
    """
    X, y = _as_arrays(X, y)
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        raise ValueError("Least-squares inputs must be finite.")
    if X.shape[1] == 0:
        return np.zeros(0)
    try:
        coeff = _solve_direct(X, y)
    except (linalg.LinAlgError, linalg.LinAlgWarning):
        return fit_svd(X, y)
    if not np.all(np.isfinite(coeff)):
        return fit_svd(X, y)
    return coeff


def predict(X: np.ndarray, coeff: np.ndarray) -> np.ndarray:
    """Linear prediction ``X @ coeff``.

    Raises:
        ValueError: If ``len(coeff)`` differs from the number of columns of ``X``.
    """
    X = np.asarray(X, dtype=float)
    coeff = np.asarray(coeff, dtype=float).ravel()
    if X.ndim != 2 or X.shape[1] != coeff.shape[0]:
        raise ValueError(
            f"Coefficient vector of length {coeff.shape[0]} does not match {np.shape(X)[-1]} feature columns.",
        )
    return X @ coeff


__all__ = ["SVD_DAMPING", "fit", "fit_svd", "predict"]
