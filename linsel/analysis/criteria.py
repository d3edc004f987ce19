r"""Model-selection criteria for linear models fitted by least squares.

Every score function shares the signature ``score(X, y, coeff, names=None)``
and returns a float where lower is better. ``X`` is the design matrix
restricted to the selected features, ``coeff`` the fitted coefficients (one per
column) and ``names`` the feature names, which only external hooks consume.

With :math:`n` observations, :math:`k` coefficients and residual sum of
squares :math:`RSS`, the Gaussian log-likelihood at the MLE is

:math:`\log L = -\frac{n}{2}\left(\log 2\pi + 1 + \log\frac{RSS}{n}\right)`

and the criteria are

- :math:`\text{AIC} = 2k - 2\log L`
- :math:`\text{AICc} = \text{AIC} + \frac{2k(k+1)}{\max(n-k-1, 1)}`
- :math:`\text{BIC} = k\log n - 2\log L`
- :math:`\text{EBIC} = \text{BIC} + 2\gamma\log\binom{N}{k}` with :math:`N` candidate features

Scores never raise for infeasible models: an empty selection or a singular
covariance estimate yields ``inf`` so that the search simply rejects the
candidate.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np
from scipy.special import gammaln

from .covariance import cov_matrix, hat_matrix
from .least_squares import predict


if TYPE_CHECKING:
    from linsel.data import Dataset


LOG_2PI = math.log(2.0 * math.pi)
RSS_FLOOR = 1e-10
"""Lower bound of RSS/n inside the logarithm; keeps perfect fits finite."""


class ScoreFunction(Protocol):
    """Callable scoring a fitted linear model; lower is better."""

    def __call__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        coeff: np.ndarray,
        names: Sequence[str] | None = None,
    ) -> float: ...


def rss(X: np.ndarray, y: np.ndarray, coeff: np.ndarray) -> float:
    """Residual sum of squares :math:`\\sum_i (\\hat y_i - y_i)^2`."""
    resid = predict(X, coeff) - np.asarray(y, dtype=float).ravel()
    return float(resid @ resid)


def rmse(X: np.ndarray, y: np.ndarray, coeff: np.ndarray) -> float:
    """Root mean squared error of the in-sample predictions."""
    return math.sqrt(rss(X, y, coeff) / len(y))


def log_likelihood(X: np.ndarray, y: np.ndarray, coeff: np.ndarray) -> float:
    """Gaussian log-likelihood at the MLE with RSS/n floored at :data:`RSS_FLOOR`."""
    n = len(y)
    mean_rss = max(rss(X, y, coeff) / n, RSS_FLOOR)
    return -0.5 * n * (LOG_2PI + 1.0 + math.log(mean_rss))


def aic(X: np.ndarray, y: np.ndarray, coeff: np.ndarray, names: Sequence[str] | None = None) -> float:
    """Akaike information criterion."""
    k = len(coeff)
    if k == 0:
        return math.inf
    return 2.0 * k - 2.0 * log_likelihood(X, y, coeff)


def aicc(X: np.ndarray, y: np.ndarray, coeff: np.ndarray, names: Sequence[str] | None = None) -> float:
    """Small-sample corrected AIC; the denominator is clamped at 1 when ``k >= n - 2``."""
    k = len(coeff)
    if k == 0:
        return math.inf
    denom = max(len(y) - k - 1, 1)
    return aic(X, y, coeff) + 2.0 * k * (k + 1) / denom


def bic(X: np.ndarray, y: np.ndarray, coeff: np.ndarray, names: Sequence[str] | None = None) -> float:
    """Bayesian information criterion."""
    k = len(coeff)
    if k == 0:
        return math.inf
    return k * math.log(len(y)) - 2.0 * log_likelihood(X, y, coeff)


def log_generalized_binomial(n: float, k: float) -> float:
    """Logarithm of the generalized binomial coefficient via log-gamma."""
    return float(gammaln(n + 1.0) - gammaln(k + 1.0) - gammaln(n - k + 1.0))


@dataclass(frozen=True)
class EBIC:
    r"""Extended BIC for large candidate pools.

    BIC implicitly puts the same prior mass on every model. With many
    candidate features there are far more models of moderate size than small
    ones, so EBIC sets the prior of a size-:math:`k` model inversely
    proportional to :math:`\tau^\gamma` with :math:`\tau = \binom{N}{k}`:

    :math:`\text{EBIC} = \text{BIC} + 2\gamma\log\binom{N}{k}`

    Attributes:
        max_num_features: Total number of candidate features :math:`N`.
        gamma: Tuning constant in :math:`[0, 1]`; 0 reduces EBIC to BIC.
    """

    max_num_features: int
    gamma: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError("gamma must be in [0, 1].")
        if self.max_num_features < 1:
            raise ValueError("max_num_features must be positive.")

    def __call__(self, X: np.ndarray, y: np.ndarray, coeff: np.ndarray, names: Sequence[str] | None = None) -> float:
        base = bic(X, y, coeff)
        if self.gamma == 0.0 or math.isinf(base):
            return base
        return base + 2.0 * self.gamma * log_generalized_binomial(self.max_num_features, len(coeff))


def generalized_cv(rmse_value: float, X: np.ndarray) -> float:
    """Generalized cross-validation score ``rmse / (1 - tr(H)/n)``.

    Returns ``inf`` when the hat matrix trace reaches the number of rows.
    """
    n = np.shape(X)[0]
    denom = 1.0 - float(np.trace(hat_matrix(X))) / n
    if denom <= 0.0:
        return math.inf
    return rmse_value / denom


@dataclass(frozen=True)
class PredictionErrorFIC:
    r"""Focused information criterion on the prediction error of selected rows.

    Instead of the global fit, the criterion favours the model that predicts a
    designated subpopulation best. For focus rows :math:`i \in F`:

    - bias: :math:`b^2 = \sum_{i\in F} (x_i c - y_i)^2`
    - variance: :math:`v = \sum_{i\in F} x_i \operatorname{Cov}(\hat c) x_i^T`

    and the score is :math:`\sqrt{b^2 + v}`.

    Attributes:
        rows: Row indices of the focus subpopulation.
    """

    rows: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "rows", tuple(int(r) for r in self.rows))
        if not self.rows:
            raise ValueError("PredictionErrorFIC needs at least one focus row.")
        if min(self.rows) < 0:
            raise IndexError(f"Focus rows must be non-negative, got {min(self.rows)}.")

    def __call__(self, X: np.ndarray, y: np.ndarray, coeff: np.ndarray, names: Sequence[str] | None = None) -> float:
        if len(coeff) == 0:
            return math.inf
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()
        try:
            cov = cov_matrix(X, rss(X, y, coeff))
        except (ValueError, np.linalg.LinAlgError):
            return math.inf

        focus = X[list(self.rows)]
        bias_sq = float(np.sum((focus @ coeff - y[list(self.rows)]) ** 2))
        variance = float(np.einsum("ij,jk,ik->", focus, cov, focus))
        return math.sqrt(bias_sq + variance)


SCORE_FUNCTIONS: dict[str, Callable[..., float]] = {
    "aic": aic,
    "aicc": aicc,
    "bic": bic,
}


def get_score_function(name: str, dataset: Dataset | None = None) -> ScoreFunction:
    """Resolve a criterion by name (``aic``, ``aicc``, ``bic`` or ``ebic``).

    ``ebic`` needs the dataset to know the number of candidate features.
    """
    key = name.strip().lower()
    if key == "ebic":
        if dataset is None:
            raise ValueError("EBIC needs the dataset to know the number of candidate features.")
        return EBIC(max_num_features=dataset.num_features)
    try:
        return SCORE_FUNCTIONS[key]
    except KeyError:
        raise KeyError(f"Unknown score function '{name}'. Choose from {[*SCORE_FUNCTIONS, 'ebic']}.") from None


__all__ = [
    "EBIC",
    "LOG_2PI",
    "RSS_FLOOR",
    "SCORE_FUNCTIONS",
    "PredictionErrorFIC",
    "ScoreFunction",
    "aic",
    "aicc",
    "bic",
    "generalized_cv",
    "get_score_function",
    "log_generalized_binomial",
    "log_likelihood",
    "rmse",
    "rss",
]
