"""Persisted linear models and predictions with uncertainty.

A saved model is a small JSON document

.. code-block:: json

    {
      "Datafile": "train.csv",
      "TargetName": "y",
      "Coeffs": {"x1": 0.5, "x3": -1.2},
      "Score": {"Name": "aicc", "Value": -12.3}
    }

holding only the included features. Predictions are written to CSV with the
header ``prediction,stddev``.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from .covariance import cov_matrix
from .criteria import rss


if TYPE_CHECKING:
    from linsel.data import Dataset

    from .genome import FeatureSubsetGenome


logger = logging.getLogger(__name__)

PREDICTION_COLUMNS = ("prediction", "stddev")


@dataclass(frozen=True)
class Score:
    """Named criterion value."""

    name: str
    value: float


@dataclass
class Model:
    """Sparse linear model: coefficient per included feature name.

    Attributes:
        datafile: Path of the data the model was fitted on.
        coeffs: Coefficient of every included feature.
        score: Criterion value of the fit.
        target_name: Name of the target column.
    """

    datafile: str
    coeffs: dict[str, float] = field(default_factory=dict)
    score: Score = field(default_factory=lambda: Score("", math.nan))
    target_name: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "Datafile": self.datafile,
            "TargetName": self.target_name,
            "Coeffs": dict(self.coeffs),
            "Score": {"Name": self.score.name, "Value": self.score.value},
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> Model:
        try:
            score = payload.get("Score") or {}
            return cls(
                datafile=str(payload["Datafile"]),
                coeffs={str(k): float(v) for k, v in dict(payload["Coeffs"]).items()},
                score=Score(str(score.get("Name", "")), float(score.get("Value", math.nan))),
                target_name=str(payload.get("TargetName", "")),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Malformed model document: {exc}") from exc


def save_model(filepath: str | Path, model: Model) -> Path:
    """Write ``model`` as indented JSON."""
    filepath = Path(filepath)
    filepath.write_text(json.dumps(model.to_dict(), indent=2), encoding="utf-8")
    return filepath


def read_model(filepath: str | Path) -> Model:
    """Load a model written by :func:`save_model`.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a valid model document.
    """
    filepath = Path(filepath)
    text = filepath.read_text(encoding="utf-8")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{filepath} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{filepath} does not contain a JSON object.")
    return Model.from_dict(payload)


def build_model(genome: FeatureSubsetGenome, datafile: str | Path, cost_name: str) -> Model:
    """Re-optimize ``genome`` and express the result as a :class:`Model`."""
    result = genome.optimize()
    dataset = genome.config.dataset
    names = dataset.included_features(result.include)
    return Model(
        datafile=str(datafile),
        coeffs={name: float(c) for name, c in zip(names, result.coeff, strict=True)},
        score=Score(cost_name, float(result.score)),
        target_name=dataset.target_name,
    )


@dataclass(frozen=True)
class Prediction:
    """Predicted value and its standard deviation."""

    value: float
    std: float

    def is_equal(self, other: Prediction, tol: float = 1e-6) -> bool:
        return abs(self.value - other.value) < tol and abs(self.std - other.std) < tol


def get_predictions(dataset: Dataset, model: Model, pred_data: Dataset | None = None) -> list[Prediction]:
    r"""Predict every row of ``pred_data`` (default: ``dataset``) with ``model``.

    The standard deviation combines the residual variance of the fit on
    ``dataset`` with the uncertainty of the coefficients:

    :math:`\sigma_i = \sqrt{\frac{RSS}{\max(n-k, 1)} + x_i \operatorname{Cov}(\hat c) x_i^T}`

    Raises:
        KeyError: If a model feature is missing from one of the datasets.
        numpy.linalg.LinAlgError: If the coefficient covariance is singular.
    """
    names = list(model.coeffs)
    coeff = np.array([model.coeffs[name] for name in names], dtype=float)
    sub = dataset.submatrix(names)
    fit_rss = rss(sub, dataset.y, coeff)
    n, k = sub.shape
    residual_var = fit_rss / max(n - k, 1)
    cov = cov_matrix(sub, fit_rss)

    target = dataset if pred_data is None else pred_data
    sub_pred = target.submatrix(names)
    values = sub_pred @ coeff
    variance = np.einsum("ij,jk,ik->i", sub_pred, cov, sub_pred)
    std = np.sqrt(residual_var + variance)
    return [Prediction(float(v), float(s)) for v, s in zip(values, std)]


def predictions_to_frame(predictions: Sequence[Prediction]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            PREDICTION_COLUMNS[0]: [p.value for p in predictions],
            PREDICTION_COLUMNS[1]: [p.std for p in predictions],
        },
    )


def save_predictions(filepath: str | Path, predictions: Sequence[Prediction]) -> Path:
    """Write predictions as CSV with the header ``prediction,stddev``."""
    filepath = Path(filepath)
    predictions_to_frame(predictions).to_csv(filepath, index=False)
    logger.info("Predictions written to %s", filepath)
    return filepath


def read_predictions(filepath: str | Path) -> list[Prediction]:
    """Read predictions written by :func:`save_predictions`."""
    df = pd.read_csv(filepath)
    missing = [c for c in PREDICTION_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{filepath} lacks the columns {missing}.")
    return [
        Prediction(float(v), float(s))
        for v, s in zip(df[PREDICTION_COLUMNS[0]], df[PREDICTION_COLUMNS[1]])
    ]


__all__ = [
    "PREDICTION_COLUMNS",
    "Model",
    "Prediction",
    "Score",
    "build_model",
    "get_predictions",
    "predictions_to_frame",
    "read_model",
    "read_predictions",
    "save_model",
    "save_predictions",
]
