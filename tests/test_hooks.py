"""Tests for external cost-function hooks."""

import json
import math
import subprocess
import sys
from pathlib import Path

import numpy as np
import pytest

from linsel.analysis.hooks import (
    COST_TAG,
    CaptureResult,
    CostFunctionHook,
    capture_cost_value,
    demo_cost_script,
    model_to_json,
)
from linsel.errors import HookError


def _write_script(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


@pytest.fixture
def model_arrays() -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    X = np.arange(6.0).reshape(3, 2)
    return X, np.array([1.0, 2.0, 3.0]), np.array([0.5, -0.5])


class TestCapture:
    """Parsing of the tagged cost line."""

    @pytest.mark.parametrize(
        ("out", "expected"),
        [
            (f"{COST_TAG} 1.02", 1.02),
            (f"{COST_TAG} 0.0002", 0.0002),
            (f"{COST_TAG} -10.2", -10.2),
            (f"{COST_TAG} 3", 3.0),
            (f"{COST_TAG} 1.5e-3", 1.5e-3),
            (f"{COST_TAG} 2E+4", 2e4),
            (f"My program\n{COST_TAG} 10.2\nOther info. Finished\n", 10.2),
            (f"{COST_TAG} 1.0\n{COST_TAG} 2.0\n", 1.0),
        ],
    )
    def test_extracts_first_value(self, out: str, expected: float) -> None:
        result = capture_cost_value(out)
        assert isinstance(result, CaptureResult)
        assert result.get_float("cost") == pytest.approx(expected)

    def test_missing_tag_raises(self) -> None:
        with pytest.raises(HookError, match="No"):
            capture_cost_value("cost is 0.5\n")

    def test_capture_result_accessors(self) -> None:
        result = CaptureResult(floats={"a": 1.0}, ints={"b": 2}, strings={"c": "x"})
        assert result.get_float("a") == 1.0
        assert result.get_int("b") == 2
        assert result.get_string("c") == "x"


class TestModelToJson:
    """Serialized payload passed to hook scripts."""

    def test_payload_layout(self, model_arrays) -> None:
        X, y, coeff = model_arrays
        payload = json.loads(model_to_json(X, y, coeff, ["a", "b"]))
        assert payload["Rows"] == 3
        assert payload["Cols"] == 2
        assert payload["X"] == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
        assert payload["Y"] == [1.0, 2.0, 3.0]
        assert payload["Coeff"] == [0.5, -0.5]
        assert payload["Names"] == ["a", "b"]


class TestCostFunctionHook:
    """Running scripts as score functions."""

    def test_reads_tagged_value_amid_noise(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(
            tmp_path / "cost.py",
            f"print('starting')\nprint('{COST_TAG} 0.6')\nprint('done 12.5')\n",
        )
        hook = CostFunctionHook(script, interpreter=(sys.executable,))
        assert hook(*model_arrays, ["a", "b"]) == 0.6

    def test_undecodable_bytes_are_ignored(self, tmp_path: Path, model_arrays) -> None:
        """Output that is not valid UTF-8 around the tag does not break parsing."""
        script = _write_script(
            tmp_path / "binary.py",
            "import sys\n"
            "sys.stdout.buffer.write(b\"\\xff\\xfe junk\\n\")\n"
            f"sys.stdout.buffer.write(b\"{COST_TAG} 0.6\\n\")\n",
        )
        hook = CostFunctionHook(script, interpreter=(sys.executable,))
        assert hook(*model_arrays) == 0.6

    def test_script_receives_model(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(
            tmp_path / "shape.py",
            "import json, sys\n"
            "args = json.loads(sys.argv[1])\n"
            f"print('{COST_TAG}', args['Rows'] * 10 + args['Cols'] + len(args['Names']))\n",
        )
        hook = CostFunctionHook(script, interpreter=(sys.executable,))
        assert hook(*model_arrays, ["a", "b"]) == 34.0

    def test_non_zero_exit_raises(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(tmp_path / "fail.py", "import sys\nsys.exit(3)\n")
        hook = CostFunctionHook(script, interpreter=(sys.executable,))
        with pytest.raises(HookError, match="status 3") as excinfo:
            hook(*model_arrays)
        assert isinstance(excinfo.value.__cause__, subprocess.CalledProcessError)

    def test_missing_tag_raises(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(tmp_path / "silent.py", "print('nothing to see')\n")
        with pytest.raises(HookError):
            CostFunctionHook(script, interpreter=(sys.executable,))(*model_arrays)

    def test_missing_executable_raises(self, tmp_path: Path, model_arrays) -> None:
        hook = CostFunctionHook(tmp_path / "does_not_exist.sh")
        with pytest.raises(HookError, match="Could not run") as excinfo:
            hook(*model_arrays)
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_timeout_scores_inf(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(tmp_path / "slow.py", f"import time\ntime.sleep(10)\nprint('{COST_TAG} 1.0')\n")
        hook = CostFunctionHook(script, timeout=0.5, interpreter=(sys.executable,))
        assert hook(*model_arrays) == math.inf

    def test_invalid_timeout_raises(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            CostFunctionHook("cost.py", timeout=0)


class TestDemoScript:
    """Template hook script."""

    def test_template_content(self) -> None:
        script = demo_cost_script("python3")
        assert script.startswith("#!/usr/bin/env python3\n")
        assert COST_TAG in script
        assert "cost_value = 0.6" in script

    def test_template_runs(self, tmp_path: Path, model_arrays) -> None:
        script = _write_script(tmp_path / "demo.py", demo_cost_script(sys.executable))
        hook = CostFunctionHook(script, interpreter=(sys.executable,))
        assert hook(*model_arrays, ["a", "b"]) == pytest.approx(0.6)
