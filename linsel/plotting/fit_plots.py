"""Plotting helpers for fitted models and search runs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from linsel.utils.plotting_config import DEFAULT_PLOT_CFG, PlottingConfig


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from linsel.analysis.model_io import Model
    from linsel.data import Dataset


_MARKERS = ("o", "s", "^", "D", "v", "P", "X")


def plot_predicted_vs_reference(
    datasets: Mapping[str, Dataset],
    model: Model,
    *,
    ax: plt.Axes | None = None,
    config: PlottingConfig | None = None,
) -> Figure:
    """Scatter of predicted against reference target values, one series per dataset.

    A dashed identity line spans the reference range padded by 5 % on each side.

    Args:
        datasets: Label (e.g. the file name) mapped to the dataset to plot.
        model: Sparse model; features missing from a dataset raise ``KeyError``.
        ax: Axes to draw on; a new 4x4 inch figure is created otherwise.
        config: Plot styling, defaults to :data:`DEFAULT_PLOT_CFG`.
    """
    if not datasets:
        raise ValueError("At least one dataset is required.")
    cfg = config or DEFAULT_PLOT_CFG

    frames = []
    for label, data in datasets.items():
        frames.append(
            pd.DataFrame({"predicted": data.dot(model.coeffs), "reference": data.y, "dataset": label}),
        )
    df = pd.concat(frames, ignore_index=True)

    with cfg.apply():
        if ax is None:
            fig, ax = plt.subplots(figsize=(4, 4))
        else:
            fig = ax.figure
        sns.scatterplot(
            data=df,
            x="predicted",
            y="reference",
            hue="dataset",
            style="dataset",
            markers=list(_MARKERS[: len(datasets)]) if len(datasets) <= len(_MARKERS) else True,
            ax=ax,
        )

        lo, hi = float(np.nanmin(df["reference"])), float(np.nanmax(df["reference"]))
        span = hi - lo if hi - lo > 1e-16 else 1.0
        pad = 0.05 * span
        ax.plot([lo - pad, hi + pad], [lo - pad, hi + pad], linestyle="--", color="0.4", linewidth=1.0)

        target = model.target_name or "target"
        ax.set_xlabel(f"{target} predicted")
        ax.set_ylabel(f"{target} reference")
        ax.set_title("Predicted vs reference")
        fig.tight_layout()
    return fig


def plot_search_history(
    history: pd.DataFrame,
    *,
    config: PlottingConfig | None = None,
) -> Figure:
    """Best/mean fitness and population diversity per generation."""
    cfg = config or DEFAULT_PLOT_CFG
    with cfg.apply():
        fig, (ax_fit, ax_div) = plt.subplots(2, 1, figsize=(7, 6), sharex=True)
        sns.lineplot(x=history.index, y=history["best"], ax=ax_fit, label="best", marker="o")
        sns.lineplot(x=history.index, y=history["mean"], ax=ax_fit, label="mean")
        ax_fit.set_ylabel("Fitness")
        ax_fit.set_title("Search history")

        sns.lineplot(x=history.index, y=history["diversity"], ax=ax_div, color="tab:green")
        ax_div.set_xlabel("Generation")
        ax_div.set_ylabel("Diversity")
        fig.tight_layout()
    return fig


__all__ = ["plot_predicted_vs_reference", "plot_search_history"]
