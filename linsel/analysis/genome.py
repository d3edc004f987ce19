"""Bit-vector genome over candidate features and its evolutionary operators.

A :class:`FeatureSubsetGenome` holds a shared :class:`GenomeConfig` and an
owned 0/1 inclusion vector. Fitness is the score of a local optimization
(OMP by default) restricted to the included columns, so the genetic search
only has to find a good *superset* of features and the greedy step picks the
best model inside it.

The inclusion vector is never all-zero after construction, mutation or
crossover: every operator repairs an empty vector by switching on exactly one
random bit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

from linsel.data import Dataset
from linsel.errors import EmptySelectionError

from .criteria import ScoreFunction, aicc
from .greedy import OptimizeResult, orthogonal_matching_pursuit
from .least_squares import fit


logger = logging.getLogger(__name__)

LocalSearch = Literal["greedy", "hill_climb"]

SPARSIFY_FRACTION = 0.5
"""Share of the active bits switched off by a sparsify mutation."""


@dataclass(frozen=True)
class GenomeConfig:
    """Configuration shared by every genome of a population.

    Attributes:
        dataset: Candidate features and target (shared, read-only).
        score_fn: Model-selection criterion; lower is better.
        mutation_rate: Per-bit flip probability of the flip mutation.
        num_splits: Number of cut points of the n-point crossover.
        max_feat_to_data_ratio: Upper bound on ``#features / #samples`` of the
            models considered by the greedy local search.
        local_search: ``"greedy"`` (OMP) or ``"hill_climb"`` (single bit flips).
    """

    dataset: Dataset
    score_fn: ScoreFunction = aicc
    mutation_rate: float = 0.5
    num_splits: int = 2
    max_feat_to_data_ratio: float = 0.5
    local_search: LocalSearch = "greedy"

    def __post_init__(self) -> None:
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValueError("mutation_rate must be in [0, 1].")
        if self.num_splits < 1:
            raise ValueError("num_splits must be at least 1.")
        if self.max_feat_to_data_ratio <= 0.0:
            raise ValueError("max_feat_to_data_ratio must be positive.")
        if self.local_search not in ("greedy", "hill_climb"):
            raise ValueError(f"Unknown local search '{self.local_search}'. Use 'greedy' or 'hill_climb'.")
        if self.dataset.num_features == 0:
            raise ValueError("The dataset has no feature columns to select from.")

    @property
    def num_features(self) -> int:
        """Length of the inclusion vector."""
        return self.dataset.num_features

    @property
    def largest_model(self) -> int:
        """Largest model size allowed by the feature-to-data ratio (at least 1)."""
        return max(1, int(self.max_feat_to_data_ratio * self.dataset.num_data))


def _repair(include: np.ndarray, rng: np.random.Generator) -> None:
    if not include.any():
        idx = int(rng.integers(len(include)))
        include[idx] = 1
        logger.debug("Empty inclusion vector repaired by activating bit %d", idx)


def flip_mutation(include: np.ndarray, rng: np.random.Generator, rate: float) -> None:
    """Flip every bit independently with probability ``rate`` (in place)."""
    mask = rng.random(len(include)) < rate
    include[mask] = 1 - include[mask]


def sparsify_mutation(include: np.ndarray, rng: np.random.Generator, fraction: float = SPARSIFY_FRACTION) -> None:
    """Switch off ``int(fraction * active)`` randomly chosen active bits (in place)."""
    active = np.flatnonzero(include)
    num_flip = int(fraction * len(active))
    if num_flip:
        include[rng.choice(active, size=num_flip, replace=False)] = 0


def n_point_crossover(first: np.ndarray, second: np.ndarray, num_splits: int, rng: np.random.Generator) -> None:
    """Swap alternate segments between two equally long vectors (in place).

    ``num_splits`` distinct cut points are drawn from ``1..len-1`` (capped at
    ``len - 1``); segments 1, 3, 5, ... between consecutive cuts are exchanged.
    """
    if len(first) != len(second):
        raise ValueError(f"Cannot cross genomes of length {len(first)} and {len(second)}.")
    length = len(first)
    num_cuts = min(num_splits, length - 1)
    if num_cuts < 1:
        return
    cuts = np.sort(rng.choice(np.arange(1, length), size=num_cuts, replace=False))
    bounds = [*cuts.tolist(), length]
    for start, stop in zip(bounds[0::2], bounds[1::2]):
        first[start:stop], second[start:stop] = second[start:stop].copy(), first[start:stop].copy()


@dataclass(eq=False)
class FeatureSubsetGenome:
    """Feature subset encoded as a 0/1 vector over the candidate columns.

    Attributes:
        config: Shared configuration, never copied.
        include: Owned inclusion vector (``int8``), 1 marks an active feature.
    """

    config: GenomeConfig
    include: np.ndarray = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.include is None:
            self.include = np.ones(self.config.num_features, dtype=np.int8)
        else:
            self.include = np.array(self.include, dtype=np.int8, copy=True)
        if self.include.shape != (self.config.num_features,):
            raise ValueError(
                f"Inclusion vector has shape {self.include.shape}, expected ({self.config.num_features},).",
            )
        if not np.isin(self.include, (0, 1)).all():
            raise ValueError("Inclusion vector must contain only 0 and 1.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureSubsetGenome):
            return NotImplemented
        return self.config is other.config and np.array_equal(self.include, other.include)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FeatureSubsetGenome(num_included={self.num_included}, include={''.join(map(str, self.include))})"

    # ------------------------------------------------------------------ inspection
    def included_cols(self) -> list[int]:
        """Column indices of the active features in ascending order."""
        return [int(j) for j in np.flatnonzero(self.include)]

    @property
    def num_included(self) -> int:
        return int(self.include.sum())

    def is_empty(self) -> bool:
        return not self.include.any()

    def included_features(self) -> list[str]:
        """Names of the active features."""
        return self.config.dataset.included_features(self.include)

    def sub_dataset(self) -> Dataset:
        """Dataset restricted to the active columns."""
        return self.config.dataset.select(self.included_cols())

    def coefficients(self) -> np.ndarray:
        """Least-squares coefficients of the active columns, without local search."""
        return fit(self.config.dataset.X[:, self.included_cols()], self.config.dataset.y)

    # ------------------------------------------------------------------ fitness
    def evaluate(self) -> float:
        """Fitness of the genome: the score of :meth:`optimize`.

        Raises:
            EmptySelectionError: If no feature is active.
        """
        if self.is_empty():
            raise EmptySelectionError("Cannot evaluate a genome without active features.")
        return self.optimize().score

    def optimize(self) -> OptimizeResult:
        """Run the configured local search on the active columns.

        The returned inclusion vector is expressed in full feature-index space.
        The genome itself is left unchanged.
        """
        if self.is_empty():
            raise EmptySelectionError("Cannot optimize a genome without active features.")
        cols = self.included_cols()
        sub = self.config.dataset.select(cols)
        if self.config.local_search == "hill_climb":
            local = _hill_climb(sub, self.config.score_fn)
        else:
            local = orthogonal_matching_pursuit(sub, self.config.score_fn, self.config.largest_model)

        include = np.zeros(self.config.num_features, dtype=np.int8)
        include[[cols[j] for j in np.flatnonzero(local.include)]] = 1
        return OptimizeResult(score=local.score, include=include, coeff=local.coeff)

    # ------------------------------------------------------------------ operators
    def mutate(self, rng: np.random.Generator) -> None:
        """Apply a flip or a sparsify mutation with equal probability, then repair."""
        if rng.integers(2) == 0:
            flip_mutation(self.include, rng, self.config.mutation_rate)
        else:
            sparsify_mutation(self.include, rng)
        _repair(self.include, rng)

    def crossover(self, other: FeatureSubsetGenome, rng: np.random.Generator) -> None:
        """N-point crossover with ``other`` in place; both genomes are repaired."""
        n_point_crossover(self.include, other.include, self.config.num_splits, rng)
        _repair(self.include, rng)
        _repair(other.include, rng)

    def clone(self) -> FeatureSubsetGenome:
        """Independent copy of the inclusion vector sharing the same config."""
        return FeatureSubsetGenome(self.config, self.include)


def _score_subset(dataset: Dataset, cols: list[int], score_fn: ScoreFunction) -> tuple[float, np.ndarray]:
    X = dataset.X[:, cols]
    coeff = fit(X, dataset.y)
    return score_fn(X, dataset.y, coeff, [dataset.col_names[j] for j in cols]), coeff


def _hill_climb(dataset: Dataset, score_fn: ScoreFunction) -> OptimizeResult:
    """Single round of bit-flip hill climbing over a dataset whose columns are all active.

    Each column is switched off once; the best strictly improving removal is
    kept. Removals that would leave the model empty are skipped.
    """
    all_cols = list(range(dataset.num_features))
    best_cols = all_cols
    best_score, best_coeff = _score_subset(dataset, all_cols, score_fn)

    if len(all_cols) > 1:
        for dropped in all_cols:
            cols = [j for j in all_cols if j != dropped]
            score, coeff = _score_subset(dataset, cols, score_fn)
            if score < best_score:
                best_score, best_coeff, best_cols = score, coeff, cols

    include = np.zeros(dataset.num_features, dtype=np.int8)
    include[best_cols] = 1
    return OptimizeResult(score=float(best_score), include=include, coeff=best_coeff)


@dataclass
class GenomeFactory:
    """Produces random genomes for an initial population.

    Attributes:
        config: Configuration shared by all produced genomes.
        init_prob: Probability that a feature is active in a new genome.
    """

    config: GenomeConfig
    init_prob: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 < self.init_prob <= 1.0:
            raise ValueError("init_prob must be in (0, 1].")

    def generate(self, rng: np.random.Generator) -> FeatureSubsetGenome:
        include = (rng.random(self.config.num_features) < self.init_prob).astype(np.int8)
        _repair(include, rng)
        return FeatureSubsetGenome(self.config, include)

    def __call__(self, rng: np.random.Generator) -> FeatureSubsetGenome:
        return self.generate(rng)


__all__ = [
    "SPARSIFY_FRACTION",
    "FeatureSubsetGenome",
    "GenomeConfig",
    "GenomeFactory",
    "LocalSearch",
    "flip_mutation",
    "n_point_crossover",
    "sparsify_mutation",
]
