"""Generational genetic search over any genome honoring :class:`Genome`.

The engine knows nothing about feature selection: it only calls
``evaluate``, ``mutate``, ``crossover`` and ``clone``. Genomes are wrapped in
DEAP individuals so that the DEAP toolbox (tournament selection, ``varAnd``
variation, hall of fame, statistics and logbook) drives the loop. Fitness is
minimized.

Each generation keeps the ``n_elites`` best genomes unchanged and fills the
rest of the population with offspring of tournament-selected parents.
Evaluation is sequential, and offspring that were neither crossed over nor
mutated keep their parent's fitness instead of being re-evaluated.
"""

from __future__ import annotations

import copy
import logging
import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np
import pandas as pd
from deap import algorithms, base, tools

from linsel.errors import SearchAbortedError
from linsel.utils.random import make_rng

from .model_io import build_model, save_model


if TYPE_CHECKING:
    from linsel.data import Dataset


logger = logging.getLogger(__name__)


class Genome(Protocol):
    """Capabilities the search engine needs from a genome."""

    def evaluate(self) -> float: ...

    def mutate(self, rng: np.random.Generator) -> None: ...

    def crossover(self, other: Any, rng: np.random.Generator) -> None: ...

    def clone(self) -> Genome: ...


@dataclass(frozen=True)
class EvolutionConfig:
    """Parameters of the generational loop.

    Attributes:
        pop_size: Number of genomes per generation.
        n_generations: Number of generations after the initial one.
        crossover_prob: Probability that a pair of offspring is crossed over.
        mutation_prob: Probability that an offspring is mutated.
        tournament_size: Number of contestants per tournament.
        n_elites: Genomes copied unchanged into the next generation.
        seed: Seed of the search's random generators.
    """

    pop_size: int = 30
    n_generations: int = 100
    crossover_prob: float = 0.8
    mutation_prob: float = 0.5
    tournament_size: int = 3
    n_elites: int = 1
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.pop_size < 2:
            raise ValueError("pop_size must be at least 2.")
        if self.n_generations < 0:
            raise ValueError("n_generations must be non-negative.")
        for name in ("crossover_prob", "mutation_prob"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1].")
        if not 1 <= self.tournament_size <= self.pop_size:
            raise ValueError("tournament_size must be in [1, pop_size].")
        if not 0 <= self.n_elites < self.pop_size:
            raise ValueError("n_elites must be in [0, pop_size).")


@dataclass(frozen=True)
class SearchResult:
    """Outcome of :meth:`GeneticSearch.minimize`.

    Attributes:
        best: Best genome seen during the whole run (hall of fame).
        best_fitness: Fitness of ``best``.
        history: One row per generation with columns ``best``, ``mean``,
            ``std``, ``diversity`` and ``nevals``.
    """

    best: Any
    best_fitness: float
    history: pd.DataFrame = field(repr=False)


GenerationCallback = Callable[[int, Any, float], None]


class FitnessMin(base.Fitness):
    """Single-objective DEAP fitness; lower values are better."""

    weights = (-1.0,)


class Individual:
    """DEAP individual: a genome plus the fitness slot the DEAP tools read."""

    def __init__(self, genome: Genome) -> None:
        self.genome = genome
        self.fitness = FitnessMin()

    def __deepcopy__(self, memo: dict[int, Any]) -> Individual:
        twin = Individual(self.genome.clone())
        twin.fitness = copy.deepcopy(self.fitness, memo)
        return twin


def population_diversity(population: Sequence[Any]) -> float:
    """Average pairwise Hamming distance as a fraction of the genome length.

    Uses the per-bit counts :math:`n_j` of ones,
    :math:`\\frac{1}{L N (N-1)} \\sum_j 2 n_j (N - n_j)`. Returns NaN when the
    genomes expose no ``include`` vector.
    """
    if not population or not all(hasattr(g, "include") for g in population):
        return float("nan")
    bits = np.asarray([g.include for g in population], dtype=int)
    n, length = bits.shape
    if n < 2 or length == 0:
        return 0.0
    ones = bits.sum(axis=0)
    return float((2.0 * ones * (n - ones)).sum() / (n * (n - 1)) / length)


def _finite_mean(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    finite = arr[np.isfinite(arr)]
    return float(finite.mean()) if finite.size else math.nan


def _finite_std(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    finite = arr[np.isfinite(arr)]
    return float(finite.std()) if finite.size else math.nan


def _fitness_statistics() -> tools.Statistics:
    stats = tools.Statistics(key=lambda ind: ind.fitness.values[0])
    stats.register("best", np.min)
    stats.register("mean", _finite_mean)
    stats.register("std", _finite_std)
    return stats


class GeneticSearch:
    """Minimize the fitness of genomes produced by ``factory``.

    Variation operators draw from a :class:`numpy.random.Generator`; DEAP's
    tournament selection and ``varAnd`` draw from the :mod:`random` module,
    which is reseeded at the start of :meth:`minimize` when a seed is set. The
    numpy generator is recreated from the same seed, so repeated calls replay
    the same run.

    Args:
        config: Loop parameters.
        factory: Callable producing a random genome from a generator.
        callback: Called after every generation as
            ``callback(generation, best_genome, best_fitness)``.
    """

    def __init__(
        self,
        config: EvolutionConfig,
        factory: Callable[[np.random.Generator], Genome],
        callback: GenerationCallback | None = None,
    ) -> None:
        self.config = config
        self.factory = factory
        self.callback = callback
        self.rng = make_rng(config.seed)
        self.hall_of_fame = tools.HallOfFame(1)
        self.toolbox = self._build_toolbox()
        self._generation = 0

    # ------------------------------------------------------------------ toolbox
    def _build_toolbox(self) -> base.Toolbox:
        toolbox = base.Toolbox()
        toolbox.register("individual", lambda: Individual(self.factory(self.rng)))
        toolbox.register("population", tools.initRepeat, list, toolbox.individual)
        toolbox.register("evaluate", self._evaluate)
        toolbox.register("mate", self._mate)
        toolbox.register("mutate", self._mutate)
        toolbox.register("select", tools.selTournament, tournsize=self.config.tournament_size)
        return toolbox

    def _mate(self, first: Individual, second: Individual) -> tuple[Individual, Individual]:
        first.genome.crossover(second.genome, self.rng)
        return first, second

    def _mutate(self, ind: Individual) -> tuple[Individual]:
        ind.genome.mutate(self.rng)
        return (ind,)

    def _evaluate(self, ind: Individual) -> tuple[float]:
        try:
            return (float(ind.genome.evaluate()),)
        except Exception as exc:
            best, best_fitness = self.best
            raise SearchAbortedError(
                f"Fitness evaluation failed in generation {self._generation}: {exc}",
                best=best,
                best_fitness=best_fitness,
                generation=self._generation,
            ) from exc

    def _evaluate_invalid(self, population: list[Individual]) -> int:
        invalid = [ind for ind in population if not ind.fitness.valid]
        for ind in invalid:
            ind.fitness.values = self.toolbox.evaluate(ind)
        return len(invalid)

    @property
    def best(self) -> tuple[Genome | None, float]:
        """Best genome seen so far and its fitness (``None``/``inf`` before the first evaluation)."""
        if not len(self.hall_of_fame):
            return None, math.inf
        top = self.hall_of_fame[0]
        return top.genome, float(top.fitness.values[0])

    # ------------------------------------------------------------------ public
    def minimize(self) -> SearchResult:
        """Run the search for the configured number of generations."""
        cfg = self.config
        self.rng = make_rng(cfg.seed)
        if cfg.seed is not None:
            random.seed(cfg.seed)
        self.hall_of_fame.clear()
        stats = _fitness_statistics()
        logbook = tools.Logbook()

        self._generation = 0
        population = self.toolbox.population(n=cfg.pop_size)
        nevals = self._evaluate_invalid(population)
        self._record(logbook, stats, population, nevals)

        for generation in range(1, cfg.n_generations + 1):
            self._generation = generation
            elites = [self.toolbox.clone(ind) for ind in tools.selBest(population, cfg.n_elites)]
            parents = self.toolbox.select(population, cfg.pop_size - cfg.n_elites)
            offspring = algorithms.varAnd(parents, self.toolbox, cfg.crossover_prob, cfg.mutation_prob)
            nevals = self._evaluate_invalid(offspring)
            population = elites + offspring
            record = self._record(logbook, stats, population, nevals)
            logger.debug(
                "Generation %d: best=%.6g mean=%.6g diversity=%.3f",
                generation,
                record["best"],
                record["mean"],
                record["diversity"],
            )

        best, best_fitness = self.best
        history = pd.DataFrame(list(logbook)).set_index("generation")
        return SearchResult(best=best, best_fitness=best_fitness, history=history)

    def _record(
        self,
        logbook: tools.Logbook,
        stats: tools.Statistics,
        population: list[Individual],
        nevals: int,
    ) -> dict[str, Any]:
        self.hall_of_fame.update(population)
        record = stats.compile(population)
        logbook.record(
            generation=self._generation,
            **record,
            diversity=population_diversity([ind.genome for ind in population]),
            nevals=nevals,
        )
        if self.callback is not None:
            self.callback(self._generation, *self.best)
        return logbook[-1]


@dataclass
class CheckpointCallback:
    """Save the best-so-far model every ``every`` generations.

    Attributes:
        dataset: Dataset the genomes select from.
        cost_name: Name stored with the model score.
        datafile: Data file recorded in the saved model.
        path: Destination of the JSON model.
        every: Checkpoint interval in generations.
    """

    dataset: Dataset
    cost_name: str
    datafile: str
    path: str | Path
    every: int = 10

    def __post_init__(self) -> None:
        if self.every < 1:
            raise ValueError("every must be at least 1.")

    def __call__(self, generation: int, best: Any, best_fitness: float) -> None:
        if best is None or generation % self.every:
            return
        model = build_model(best, self.datafile, self.cost_name)
        save_model(self.path, model)
        logger.info(
            "Generation %d: best %s = %.6g with %d of %d features, checkpoint written to %s",
            generation,
            self.cost_name,
            best_fitness,
            len(model.coeffs),
            self.dataset.num_features,
            self.path,
        )


__all__ = [
    "CheckpointCallback",
    "EvolutionConfig",
    "FitnessMin",
    "GenerationCallback",
    "GeneticSearch",
    "Genome",
    "Individual",
    "SearchResult",
    "population_diversity",
]
