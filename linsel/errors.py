"""Exception types raised by the linsel package."""

from __future__ import annotations

from typing import Any


class LinselError(Exception):
    """Base class for all package specific errors."""


class EmptySelectionError(LinselError, RuntimeError):
    """Raised when a genome with no active feature is evaluated.

    Initialization, mutation and crossover all repair empty inclusion vectors,
    so seeing this error means one of those invariants was broken.
    """


class HookError(LinselError):
    """Raised when an external cost-function script fails or its output cannot be parsed."""


class SearchAbortedError(LinselError):
    """Raised when a genetic search stops because a fitness evaluation failed.

    Attributes:
        best: Best genome found before the failure (``None`` if nothing was evaluated).
        best_fitness: Fitness of ``best`` (``inf`` if nothing was evaluated).
        generation: Generation during which the failure happened.
    """

    def __init__(self, message: str, *, best: Any = None, best_fitness: float = float("inf"), generation: int = 0) -> None:
        super().__init__(message)
        self.best = best
        self.best_fitness = best_fitness
        self.generation = generation


__all__ = ["EmptySelectionError", "HookError", "LinselError", "SearchAbortedError"]
