"""Tests for hat matrix and coefficient covariance."""

import numpy as np
import pytest

from linsel.analysis.covariance import cov_matrix, hat_matrix


class TestHatMatrix:
    """Projection onto the column space."""

    def test_projection_properties(self, rng: np.random.Generator) -> None:
        """H is symmetric, idempotent and reproduces the columns of X."""
        X = rng.normal(size=(12, 3))
        H = hat_matrix(X)
        assert H.shape == (12, 12)
        assert np.allclose(H, H.T)
        assert np.allclose(H @ H, H, atol=1e-10)
        assert np.allclose(H @ X, X, atol=1e-10)

    def test_trace_equals_rank(self, rng: np.random.Generator) -> None:
        """Trace equals the number of columns for full rank, the rank otherwise."""
        X = rng.normal(size=(10, 3))
        assert np.trace(hat_matrix(X)) == pytest.approx(3.0)

        X_dup = np.column_stack([X[:, :2], X[:, 0]])
        assert np.trace(hat_matrix(X_dup)) == pytest.approx(2.0)

    def test_more_columns_than_rows_gives_identity(self, rng: np.random.Generator) -> None:
        """Trace equals the number of rows when the fit interpolates."""
        X = rng.normal(size=(4, 6))
        H = hat_matrix(X)
        assert np.array_equal(H, np.eye(4))
        assert np.trace(H) == pytest.approx(4.0)


class TestCovMatrix:
    """Coefficient covariance from the R factor."""

    def test_matches_normal_equations(self, rng: np.random.Generator) -> None:
        X = rng.normal(size=(20, 3))
        rss = 4.2
        expected = rss / (20 - 3) * np.linalg.inv(X.T @ X)
        assert np.allclose(cov_matrix(X, rss), expected, atol=1e-10)

    def test_square_system_scales_by_rss(self, rng: np.random.Generator) -> None:
        X = rng.normal(size=(3, 3))
        assert np.allclose(cov_matrix(X, 2.0), 2.0 * np.linalg.inv(X.T @ X), atol=1e-8)

    def test_more_columns_than_rows_raises(self) -> None:
        with pytest.raises(ValueError, match="at least as many rows"):
            cov_matrix(np.ones((2, 3)), 1.0)

    def test_singular_design_raises(self, rng: np.random.Generator) -> None:
        base = rng.normal(size=(10, 2))
        X = np.column_stack([base, base[:, 1]])
        with pytest.raises(np.linalg.LinAlgError):
            cov_matrix(X, 1.0)
