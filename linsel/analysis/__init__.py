"""Fitting, scoring and search components for linear feature selection."""

from .covariance import cov_matrix, hat_matrix
from .criteria import (
    EBIC,
    SCORE_FUNCTIONS,
    PredictionErrorFIC,
    ScoreFunction,
    aic,
    aicc,
    bic,
    generalized_cv,
    get_score_function,
    log_likelihood,
    rmse,
    rss,
)
from .evolution import CheckpointCallback, EvolutionConfig, GeneticSearch, Genome, SearchResult
from .genome import FeatureSubsetGenome, GenomeConfig, GenomeFactory
from .greedy import OptimizeResult, orthogonal_matching_pursuit
from .hooks import COST_TAG, CaptureResult, CostFunctionHook, capture_cost_value, demo_cost_script
from .least_squares import SVD_DAMPING, fit, fit_svd, predict
from .model_io import (
    Model,
    Prediction,
    Score,
    build_model,
    get_predictions,
    read_model,
    read_predictions,
    save_model,
    save_predictions,
)
from .model_iterator import ModelIterator
from .ols_summary import ModelSummary, summarize_model


__all__ = [
    "COST_TAG",
    "EBIC",
    "SCORE_FUNCTIONS",
    "SVD_DAMPING",
    "CaptureResult",
    "CheckpointCallback",
    "CostFunctionHook",
    "EvolutionConfig",
    "FeatureSubsetGenome",
    "GeneticSearch",
    "Genome",
    "GenomeConfig",
    "GenomeFactory",
    "Model",
    "ModelIterator",
    "ModelSummary",
    "OptimizeResult",
    "Prediction",
    "PredictionErrorFIC",
    "Score",
    "ScoreFunction",
    "SearchResult",
    "aic",
    "aicc",
    "bic",
    "build_model",
    "capture_cost_value",
    "cov_matrix",
    "demo_cost_script",
    "fit",
    "fit_svd",
    "generalized_cv",
    "get_predictions",
    "get_score_function",
    "hat_matrix",
    "log_likelihood",
    "orthogonal_matching_pursuit",
    "predict",
    "read_model",
    "read_predictions",
    "rmse",
    "rss",
    "save_model",
    "save_predictions",
    "summarize_model",
]
