"""Tests for the least-squares primitive."""

import numpy as np
import pytest

from linsel.analysis.least_squares import SVD_DAMPING, fit, fit_svd, predict


class TestFit:
    """Direct solve and SVD fallback."""

    def test_recovers_coefficients_of_full_rank_system(self, rng: np.random.Generator) -> None:
        """A consistent overdetermined system is solved exactly."""
        X = rng.normal(size=(50, 4))
        coeff = np.array([1.5, -2.0, 0.25, 3.0])
        assert np.allclose(fit(X, X @ coeff), coeff, atol=1e-8)

    def test_matches_lstsq_with_noise(self, rng: np.random.Generator) -> None:
        """With noise the solution equals the least-squares optimum."""
        X = rng.normal(size=(40, 3))
        y = rng.normal(size=40)
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        assert np.allclose(fit(X, y), expected, atol=1e-8)

    def test_rank_deficient_falls_back_without_error(self, rng: np.random.Generator) -> None:
        """Duplicate columns do not raise and still reproduce a target in the column space."""
        base = rng.normal(size=(30, 2))
        X = np.column_stack([base, base[:, 0]])
        y = base @ np.array([1.0, -1.0])
        coeff = fit(X, y)
        assert np.all(np.isfinite(coeff))
        assert np.allclose(X @ coeff, y, atol=1e-6)

    def test_underdetermined_gives_minimum_norm_solution(self, rng: np.random.Generator) -> None:
        """More columns than rows: exact interpolation with the minimum-norm coefficients."""
        X = rng.normal(size=(3, 5))
        y = rng.normal(size=3)
        coeff = fit(X, y)
        assert np.allclose(X @ coeff, y, atol=1e-8)
        assert np.allclose(coeff, np.linalg.pinv(X) @ y, atol=1e-8)

    def test_single_row_minimum_norm(self) -> None:
        """One equation in two unknowns splits the weight evenly."""
        assert np.allclose(fit(np.array([[1.0, 1.0]]), np.array([1.0])), [0.5, 0.5], atol=1e-10)

    def test_square_system_round_trip(self, rng: np.random.Generator) -> None:
        """A non-singular square design is interpolated exactly."""
        X = rng.normal(size=(6, 6)) + 3.0 * np.eye(6)
        y = rng.normal(size=6)
        assert np.allclose(predict(X, fit(X, y)), y, atol=1e-8)

    def test_zero_columns_returns_empty(self) -> None:
        """An empty design yields an empty coefficient vector."""
        assert fit(np.zeros((4, 0)), np.ones(4)).shape == (0,)

    def test_non_finite_input_raises(self) -> None:
        """NaN or inf in the inputs is an invalid-input error."""
        X = np.ones((3, 1))
        with pytest.raises(ValueError, match="finite"):
            fit(X, np.array([1.0, np.nan, 2.0]))
        X_bad = X.copy()
        X_bad[0, 0] = np.inf
        with pytest.raises(ValueError, match="finite"):
            fit(X_bad, np.ones(3))

    def test_shape_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="rows"):
            fit(np.ones((3, 2)), np.ones(4))


class TestFitSvd:
    """Damped SVD solution."""

    def test_matches_lstsq_for_full_rank(self, rng: np.random.Generator) -> None:
        X = rng.normal(size=(25, 3))
        y = rng.normal(size=25)
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        assert np.allclose(fit_svd(X, y), expected, atol=1e-6)

    def test_zero_matrix_gives_zero_coefficients(self) -> None:
        """Vanishing singular values are damped instead of inverted."""
        assert np.allclose(fit_svd(np.zeros((4, 2)), np.ones(4)), 0.0)

    def test_damping_constant(self) -> None:
        assert SVD_DAMPING == pytest.approx(1e-8)


class TestPredict:
    """Linear prediction."""

    def test_predict_is_matrix_product(self) -> None:
        X = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert np.allclose(predict(X, np.array([1.0, -1.0])), [-1.0, -1.0])

    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="does not match"):
            predict(np.ones((3, 2)), np.ones(3))
