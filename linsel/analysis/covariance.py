r"""Hat matrix and coefficient covariance from QR factorizations.

Both quantities are computed from the QR factorization of the design matrix
rather than from :math:`X^TX`, which squares the condition number and loses
precision for nearly collinear columns.

- Hat matrix: :math:`H = X(X^TX)^{-1}X^T = Q_1Q_1^T`, where :math:`Q_1` spans
  the column space of :math:`X`. Its trace equals the effective number of
  parameters (the rank of :math:`X`).
- Coefficient covariance: :math:`\operatorname{Cov}(\hat c) = \hat\sigma^2
  (X^TX)^{-1} = \hat\sigma^2 R^{-1}R^{-T}` with
  :math:`\hat\sigma^2 = RSS/(n-k)`.
"""

from __future__ import annotations

import numpy as np
from scipy import linalg


_RANK_RTOL = 1e-12


def hat_matrix(X: np.ndarray) -> np.ndarray:
    """Return the ``(n, n)`` projection matrix mapping targets onto fitted values.

    When ``X`` has more columns than rows, a least-squares fit reproduces any
    target exactly, so the identity is returned.
    """
    X = np.asarray(X, dtype=float)
    rows, cols = X.shape
    if cols > rows:
        return np.eye(rows)
    if cols == 0:
        return np.zeros((rows, rows))

    q, r, _ = linalg.qr(X, mode="economic", pivoting=True)
    diag = np.abs(np.diag(r))
    rank = int(np.sum(diag > _RANK_RTOL * diag[0])) if diag[0] > 0 else 0
    q1 = q[:, :rank]
    return q1 @ q1.T


def cov_matrix(X: np.ndarray, rss: float) -> np.ndarray:
    """Return the covariance matrix of the fitted coefficients.

    Args:
        X: Design matrix ``(n, k)`` with ``n >= k``.
        rss: Residual sum of squares of the fit.

    Raises:
        ValueError: If ``X`` has more columns than rows.
        numpy.linalg.LinAlgError: If ``X`` is rank deficient.
    """
    X = np.asarray(X, dtype=float)
    rows, cols = X.shape
    if cols > rows:
        raise ValueError("Coefficient covariance requires at least as many rows as columns.")

    if cols == 0:
        return np.zeros((0, 0))

    r = linalg.qr(X, mode="r")[0][:cols, :cols]
    diag = np.abs(np.diag(r))
    if diag.max() == 0.0 or np.any(diag <= _RANK_RTOL * diag.max()):
        raise np.linalg.LinAlgError("Design matrix is singular; coefficient covariance undefined.")
    # Inverse of the upper Cholesky factor gives (X^T X)^{-1} = R^{-1} R^{-T}.
    r_inv = linalg.solve_triangular(r, np.eye(cols), lower=False)
    cov = r_inv @ r_inv.T
    if not np.all(np.isfinite(cov)):
        raise np.linalg.LinAlgError("Design matrix is singular; coefficient covariance undefined.")

    scale = 1.0 / (rows - cols) if rows > cols else 1.0
    return scale * float(rss) * cov


__all__ = ["cov_matrix", "hat_matrix"]
