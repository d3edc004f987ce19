"""Classical OLS diagnostics for a selected model via statsmodels.

The search reports only coefficients and a criterion value. This module refits
the selected columns with :class:`statsmodels.api.OLS` to obtain standard
errors, t statistics, p-values and variance inflation factors. No intercept
is added: a constant column is part of the model only if the dataset carries
one and the search selected it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import variance_inflation_factor


if TYPE_CHECKING:
    from linsel.data import Dataset

    from .model_io import Model


@dataclass(frozen=True)
class ModelSummary:
    r"""OLS refit of a selected model.

    - :math:`R^2 = 1 - SS_{res}/SS_{tot}` (uncentered when no constant is present)
    - :math:`\text{RMSE} = \sqrt{SS_{res}/n}`
    """

    results: sm.regression.linear_model.RegressionResultsWrapper
    coefficients: pd.DataFrame
    """One row per feature: ``coef``, ``std_err``, ``t``, ``p_value``, ``vif``."""

    r2: float
    rmse: float
    aic: float
    bic: float
    n_obs: int

    def __repr__(self) -> str:
        return (
            f"ModelSummary(n_obs={self.n_obs}, n_features={len(self.coefficients)}, "
            f"r2={self.r2:.3f}, rmse={self.rmse:.4g}, aic={self.aic:.3f}, bic={self.bic:.3f})"
        )


def compute_vif(design: pd.DataFrame) -> pd.Series:
    """Variance inflation factor of every column; NaN for a single column."""
    if design.shape[1] < 2:
        return pd.Series(np.nan, index=design.columns, name="vif")
    values = design.to_numpy(dtype=float)
    return pd.Series(
        [variance_inflation_factor(values, j) for j in range(values.shape[1])],
        index=design.columns,
        name="vif",
    )


def summarize_model(dataset: Dataset, model: Model) -> ModelSummary:
    """Refit the features of ``model`` on ``dataset`` with statsmodels OLS.

    Raises:
        KeyError: If a model feature is not a column of ``dataset``.
        ValueError: If the model has no features.
    """
    names = list(model.coeffs)
    if not names:
        raise ValueError("Cannot summarize a model without features.")
    design = pd.DataFrame(dataset.submatrix(names), columns=names)
    results = sm.OLS(np.asarray(dataset.y, dtype=float), design).fit()

    table = pd.DataFrame(
        {
            "coef": results.params,
            "std_err": results.bse,
            "t": results.tvalues,
            "p_value": results.pvalues,
        },
    )
    table["vif"] = compute_vif(design)
    return ModelSummary(
        results=results,
        coefficients=table,
        r2=float(results.rsquared),
        rmse=float(np.sqrt(results.ssr / results.nobs)),
        aic=float(results.aic),
        bic=float(results.bic),
        n_obs=int(results.nobs),
    )


__all__ = ["ModelSummary", "compute_vif", "summarize_model"]
