"""Test configuration for linsel."""

from pathlib import Path
import sys

import matplotlib
import numpy as np
import pytest


matplotlib.use("Agg")

# Ensure the local package is importable when the repo isn't installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible operator tests."""
    return np.random.default_rng(1234)


@pytest.fixture
def sparse_dataset():
    """60 samples, 8 Gaussian features, noiseless target ``3 x1 - 2 x4``."""
    from linsel.data import Dataset

    gen = np.random.default_rng(7)
    X = gen.normal(size=(60, 8))
    y = 3.0 * X[:, 1] - 2.0 * X[:, 4]
    return Dataset(X=X, y=y, col_names=tuple(f"x{j}" for j in range(8)), target_name="y")


@pytest.fixture
def poly_dataset():
    """Monomials ``x^0..x^5`` on [0, 1]; noiseless target ``1 + 2x - 3x^3``."""
    from linsel.data import Dataset

    x = np.linspace(0.0, 1.0, 40)
    X = np.column_stack([x**k for k in range(6)])
    y = 1.0 + 2.0 * x - 3.0 * x**3
    return Dataset(X=X, y=y, col_names=tuple(f"p{k}" for k in range(6)), target_name="y")


@pytest.fixture
def poly_csv(tmp_path: Path, poly_dataset) -> Path:
    """The polynomial dataset written to a CSV file."""
    return poly_dataset.to_csv(tmp_path / "poly.csv")
