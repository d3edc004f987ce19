"""Plotting utilities for fitted models and search runs."""

from .fit_plots import plot_predicted_vs_reference, plot_search_history


__all__ = ["plot_predicted_vs_reference", "plot_search_history"]
