"""Feature selection for linear regression by genetic search and Orthogonal Matching Pursuit."""

from .analysis import (
    EvolutionConfig,
    FeatureSubsetGenome,
    GeneticSearch,
    GenomeConfig,
    GenomeFactory,
    Model,
    get_score_function,
    orthogonal_matching_pursuit,
)
from .data import Dataset


__all__ = [
    "Dataset",
    "EvolutionConfig",
    "FeatureSubsetGenome",
    "GeneticSearch",
    "GenomeConfig",
    "GenomeFactory",
    "Model",
    "get_score_function",
    "orthogonal_matching_pursuit",
]
