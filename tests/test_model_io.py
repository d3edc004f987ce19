"""Tests for model persistence and predictions."""

import json
from pathlib import Path

import numpy as np
import pytest

from linsel.analysis.covariance import cov_matrix
from linsel.analysis.criteria import rss
from linsel.analysis.genome import FeatureSubsetGenome, GenomeConfig
from linsel.analysis.model_io import (
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
from linsel.data import Dataset


@pytest.fixture
def noisy_dataset() -> Dataset:
    gen = np.random.default_rng(11)
    X = gen.normal(size=(25, 4))
    y = 2.0 * X[:, 0] + X[:, 2] + 0.1 * gen.normal(size=25)
    return Dataset(X=X, y=y, col_names=("a", "b", "c", "d"), target_name="t")


class TestModelPersistence:
    """JSON read/write."""

    def test_round_trip(self, tmp_path: Path) -> None:
        model = Model("train.csv", {"a": 1.5, "c": -0.25}, Score("aicc", -12.5), "t")
        path = save_model(tmp_path / "model.json", model)
        assert read_model(path) == model

    def test_json_field_names(self, tmp_path: Path) -> None:
        path = save_model(tmp_path / "model.json", Model("d.csv", {"x": 1.0}, Score("bic", 2.0), "y"))
        payload = json.loads(path.read_text())
        assert payload == {
            "Datafile": "d.csv",
            "TargetName": "y",
            "Coeffs": {"x": 1.0},
            "Score": {"Name": "bic", "Value": 2.0},
        }

    def test_missing_target_name_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "legacy.json"
        path.write_text(json.dumps({"Datafile": "d.csv", "Coeffs": {"x": 2.0}, "Score": {"Name": "aic", "Value": 1.0}}))
        assert read_model(path).target_name == ""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_model(tmp_path / "absent.json")

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"Coeffs": {}}'])
    def test_malformed_document_raises(self, tmp_path: Path, text: str) -> None:
        path = tmp_path / "bad.json"
        path.write_text(text)
        with pytest.raises(ValueError):
            read_model(path)

    def test_build_model_from_genome(self, sparse_dataset: Dataset) -> None:
        genome = FeatureSubsetGenome(GenomeConfig(dataset=sparse_dataset))
        model = build_model(genome, "sparse.csv", "aicc")
        assert model.datafile == "sparse.csv"
        assert model.target_name == "y"
        assert model.score.name == "aicc"
        assert model.score.value == pytest.approx(genome.evaluate())
        assert model.coeffs == pytest.approx({"x1": 3.0, "x4": -2.0}, abs=1e-8)


class TestPredictions:
    """Predicted values and their standard deviations."""

    def test_values_and_std(self, noisy_dataset: Dataset) -> None:
        model = Model("n.csv", {"a": 2.0, "c": 1.0}, Score("aicc", 0.0), "t")
        preds = get_predictions(noisy_dataset, model)

        X = noisy_dataset.submatrix(["a", "c"])
        coeff = np.array([2.0, 1.0])
        fit_rss = rss(X, noisy_dataset.y, coeff)
        cov = cov_matrix(X, fit_rss)
        expected_std = np.sqrt(fit_rss / (25 - 2) + np.einsum("ij,jk,ik->i", X, cov, X))

        assert len(preds) == 25
        assert np.allclose([p.value for p in preds], X @ coeff)
        assert np.allclose([p.std for p in preds], expected_std)
        assert all(p.std >= np.sqrt(fit_rss / 23) for p in preds)

    def test_predicts_other_dataset(self, noisy_dataset: Dataset) -> None:
        model = Model("n.csv", {"a": 2.0}, Score("aicc", 0.0), "t")
        new = Dataset(X=np.array([[1.0, 0.0], [3.0, 5.0]]), y=np.full(2, np.nan), col_names=("a", "z"))
        preds = get_predictions(noisy_dataset, model, new)
        assert [p.value for p in preds] == pytest.approx([2.0, 6.0])
        assert preds[1].std > preds[0].std

    def test_unknown_feature_raises(self, noisy_dataset: Dataset) -> None:
        model = Model("n.csv", {"missing": 1.0}, Score("aicc", 0.0), "t")
        with pytest.raises(KeyError):
            get_predictions(noisy_dataset, model)

    def test_csv_round_trip(self, tmp_path: Path) -> None:
        preds = [Prediction(1.0, 0.1), Prediction(-2.5, 0.3)]
        path = save_predictions(tmp_path / "pred.csv", preds)
        assert path.read_text().splitlines()[0] == "prediction,stddev"
        loaded = read_predictions(path)
        assert all(a.is_equal(b) for a, b in zip(preds, loaded))
        assert len(loaded) == 2

    def test_read_predictions_requires_header(self, tmp_path: Path) -> None:
        path = tmp_path / "other.csv"
        path.write_text("value,sigma\n1.0,0.1\n")
        with pytest.raises(ValueError, match="lacks"):
            read_predictions(path)
