"""External cost functions implemented as scripts.

A :class:`CostFunctionHook` turns any executable into a score function. Every
call serializes the fitted model to a JSON blob

.. code-block:: json

    {"Rows": 3, "Cols": 2, "X": [...], "Y": [...], "Coeff": [...], "Names": [...]}

with ``X`` flattened in row-major order, runs ``<script> <blob>`` and reads
the cost from the first line of standard output of the form
``LINSEL_COST: <float>``. Everything else the script prints is ignored.
"""

from __future__ import annotations

import json
import logging
import math
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from string import Template

import numpy as np

from linsel.errors import HookError


logger = logging.getLogger(__name__)

COST_TAG = "LINSEL_COST:"
DEFAULT_TIMEOUT = 60.0
_FLOAT_PATTERN = r"([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"


@dataclass
class CaptureResult:
    """Values captured from the output of a hook script."""

    floats: dict[str, float] = field(default_factory=dict)
    ints: dict[str, int] = field(default_factory=dict)
    strings: dict[str, str] = field(default_factory=dict)

    def get_float(self, name: str) -> float:
        return self.floats[name]

    def get_int(self, name: str) -> int:
        return self.ints[name]

    def get_string(self, name: str) -> str:
        return self.strings[name]


def capture_cost_value(out: str, tag: str = COST_TAG) -> CaptureResult:
    """Extract the number following the first occurrence of ``tag`` in ``out``.

    The value is stored under the key ``"cost"``.

    Raises:
        HookError: If ``out`` contains no ``tag <float>`` pair.
    """
    match = re.search(re.escape(tag) + r"\s*" + _FLOAT_PATTERN, out)
    if match is None:
        raise HookError(f"No '{tag} <value>' line found in the hook output.")
    return CaptureResult(floats={"cost": float(match.group(1))})


def model_to_json(
    X: np.ndarray,
    y: np.ndarray,
    coeff: np.ndarray,
    names: Sequence[str] | None = None,
) -> str:
    """Serialize a fitted model into the JSON blob passed to hook scripts."""
    X = np.asarray(X, dtype=float)
    rows, cols = X.shape
    return json.dumps(
        {
            "Rows": rows,
            "Cols": cols,
            "X": X.ravel(order="C").tolist(),
            "Y": np.asarray(y, dtype=float).ravel().tolist(),
            "Coeff": np.asarray(coeff, dtype=float).ravel().tolist(),
            "Names": list(names) if names is not None else [],
        },
    )


@dataclass(frozen=True)
class CostFunctionHook:
    """Score function that delegates to an external script.

    Attributes:
        script: Path of the executable script.
        timeout: Seconds before the child process is killed; a timed-out run
            scores ``inf``.
        interpreter: Command prefix, e.g. ``("python",)`` for scripts without a
            shebang line.
        tag: Marker preceding the cost value in the script output.
    """

    script: str | Path
    timeout: float | None = DEFAULT_TIMEOUT
    interpreter: tuple[str, ...] = ()
    tag: str = COST_TAG

    def __post_init__(self) -> None:
        object.__setattr__(self, "interpreter", tuple(self.interpreter))
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive.")

    @property
    def command(self) -> list[str]:
        return [*self.interpreter, str(self.script)]

    def __call__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        coeff: np.ndarray,
        names: Sequence[str] | None = None,
    ) -> float:
        blob = model_to_json(X, y, coeff, names)
        try:
            proc = subprocess.run(
                [*self.command, blob],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Cost hook %s timed out after %s s; treating the model as infeasible", self.script, self.timeout)
            return math.inf
        except subprocess.CalledProcessError as exc:
            raise HookError(
                f"Cost hook {self.script} exited with status {exc.returncode}: {(exc.stderr or '').strip()}",
            ) from exc
        except OSError as exc:
            raise HookError(f"Could not run cost hook {self.script}: {exc}") from exc

        return capture_cost_value(proc.stdout, self.tag).get_float("cost")


_DEMO_SCRIPT = Template(
    '''#!/usr/bin/env $python_exec
import json
import sys


def main(arg):
    args = json.loads(arg)

    # args holds
    # {
    #     "Rows": <number of rows in X>,
    #     "Cols": <number of columns in X>,
    #     "X": <design matrix, row-major>,
    #     "Y": <target values>,
    #     "Coeff": <fitted coefficients>,
    #     "Names": <name of each feature>
    # }
    # Predictions: y_pred[i] = sum(X[i * Cols + j] * Coeff[j] for j in range(Cols))

    # Compute the cost of the model and store it here
    cost_value = 0.6

    # linsel reads the cost from this line
    print("$tag {}".format(cost_value))


if __name__ == "__main__":
    main(sys.argv[1])
''',
)


def demo_cost_script(python_exec: str = "python") -> str:
    """Source of a runnable template hook script that reports a cost of 0.6."""
    return _DEMO_SCRIPT.substitute(python_exec=python_exec, tag=COST_TAG)


__all__ = [
    "COST_TAG",
    "DEFAULT_TIMEOUT",
    "CaptureResult",
    "CostFunctionHook",
    "capture_cost_value",
    "demo_cost_script",
    "model_to_json",
]
