"""Command line front end: ``linsel fit|pred|rmse|poly|ttsplit|hook|plot``.

Examples
--------
- ``linsel fit -d train.csv -y energy -o model.json``
- ``linsel pred -m model.json -d new.csv -o predictions.csv``
- ``linsel rmse -d test.csv -m model.json --summary``
- ``linsel poly -d train.csv -p conc -n 3``
- ``linsel ttsplit -d data.csv -f 0.2``
- ``linsel hook -o cost.py``
- ``linsel plot -d train.csv,test.csv -m model.json -o fit.png``
"""

from __future__ import annotations

import argparse
import csv
import logging
import os
import stat
import sys
from collections.abc import Sequence
from pathlib import Path

import matplotlib as mpl

from linsel.analysis import (
    CheckpointCallback,
    CostFunctionHook,
    EvolutionConfig,
    GeneticSearch,
    GenomeConfig,
    GenomeFactory,
    build_model,
    demo_cost_script,
    generalized_cv,
    get_predictions,
    get_score_function,
    read_model,
    rmse,
    save_model,
    save_predictions,
    summarize_model,
)
from linsel.data import Dataset, closest_header_name, split_csv
from linsel.errors import LinselError
from linsel.utils.paths import derived_path


logger = logging.getLogger("linsel")


def _resolve_target(datafile: str | Path, fragment: str | None) -> str:
    """Header entry containing ``fragment``; the last column when no fragment is given."""
    if fragment:
        return closest_header_name(datafile, fragment)
    with Path(datafile).open(newline="", encoding="utf-8") as fh:
        header = next(csv.reader(fh), [])
    if not header:
        raise ValueError(f"{datafile} has no header line.")
    return header[-1].strip("#/ \t")


# ---------------------------------------------------------------------- commands
def cmd_fit(args: argparse.Namespace) -> None:
    target = _resolve_target(args.data, args.target)
    logger.info("Using %s as target column", target)
    dataset = Dataset.from_csv(args.data, target)

    if args.hook:
        score_fn = CostFunctionHook(args.hook, timeout=args.hook_timeout)
        cost_name = f"hook:{Path(args.hook).name}"
    else:
        score_fn = get_score_function(args.cost, dataset)
        cost_name = args.cost

    genome_cfg = GenomeConfig(
        dataset=dataset,
        score_fn=score_fn,
        mutation_rate=args.mutrate,
        num_splits=args.csplits,
        max_feat_to_data_ratio=args.max_ratio,
        local_search=args.local_search,
    )
    evo_cfg = EvolutionConfig(pop_size=args.popsize, n_generations=args.numgen, seed=args.seed)
    callback = CheckpointCallback(dataset, cost_name, str(args.data), args.out, every=args.lograte)
    search = GeneticSearch(evo_cfg, GenomeFactory(genome_cfg, init_prob=args.iprob), callback=callback)
    result = search.minimize()

    model = build_model(result.best, args.data, cost_name)
    save_model(args.out, model)
    logger.info(
        "Best model: %d features, %s = %.6g. Written to %s",
        len(model.coeffs),
        cost_name,
        model.score.value,
        args.out,
    )
    if args.history:
        result.history.to_csv(args.history)
        logger.info("Search history written to %s", args.history)


def cmd_pred(args: argparse.Namespace) -> None:
    model = read_model(args.model)
    train = Dataset.from_csv(model.datafile, model.target_name or None)
    pred_data = Dataset.from_csv(args.data, None)
    predictions = get_predictions(train, model, pred_data)
    out = args.out or derived_path(args.data, "_predictions")
    save_predictions(out, predictions)
    logger.info("Predictions for the data in %s written to %s", args.data, out)


def cmd_rmse(args: argparse.Namespace) -> None:
    model = read_model(args.model)
    target = _resolve_target(args.data, args.target or model.target_name)
    data = Dataset.from_csv(args.data, target)

    names = list(model.coeffs)
    X = data.submatrix(names)
    coeff = [model.coeffs[name] for name in names]
    rmse_value = rmse(X, data.y, coeff)
    logger.info("RMSE: %f", rmse_value)
    logger.info("Generalized CV (GCV): %f", generalized_cv(rmse_value, X))

    if args.summary:
        summary = summarize_model(data, model)
        logger.info("%s\n%s", summary, summary.coefficients.to_string(float_format="%.4g"))


def cmd_poly(args: argparse.Namespace) -> None:
    target = _resolve_target(args.data, args.target)
    logger.info("Using %s as target value", target)
    data = Dataset.from_csv(args.data, target)
    cols = data.columns(args.pattern)
    if not cols:
        raise KeyError(f"No feature name contains '{args.pattern}'.")
    for c in cols:
        logger.info("Selected column %d: %s", c, data.col_names[c])

    new_data = data.add_poly(cols, args.order)
    out = args.out or derived_path(args.data, f"_poly{args.order}")
    new_data.to_csv(out)
    logger.info("New dataset written to %s", out)


def cmd_ttsplit(args: argparse.Namespace) -> None:
    split_csv(args.data, test_fraction=args.fraction, random_state=args.seed)


def cmd_hook(args: argparse.Namespace) -> None:
    if args.type != "cost":
        raise ValueError(f"Unknown script template '{args.type}'. Only 'cost' is supported.")
    out = Path(args.out)
    out.write_text(demo_cost_script(args.pyexec), encoding="utf-8")
    out.chmod(out.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Script written to %s", out)


def cmd_plot(args: argparse.Namespace) -> None:
    mpl.use("Agg")
    from linsel.plotting import plot_predicted_vs_reference

    model = read_model(args.model)
    files = [f.strip() for f in args.data.split(",") if f.strip()]
    datasets = {os.path.basename(f): Dataset.from_csv(f, model.target_name or None) for f in files}
    fig = plot_predicted_vs_reference(datasets, model)
    fig.savefig(args.out, dpi=150)
    logger.info("Plot saved to %s", args.out)


# ---------------------------------------------------------------------- parser
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linsel",
        description="Feature selection for linear regression by genetic search and OMP.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("fit", help="Select features and fit a linear model")
    p.add_argument("-d", "--data", required=True, help="CSV file with a header line")
    p.add_argument("-y", "--target", default=None, help="Target column (substring match; default: last column)")
    p.add_argument("-o", "--out", default="model.json", help="JSON file for the best model")
    p.add_argument("-c", "--cost", default="aicc", help="Criterion: aic, aicc, bic or ebic")
    p.add_argument("--hook", default=None, help="External cost-function script (overrides --cost)")
    p.add_argument("--hook-timeout", type=float, default=60.0, help="Seconds before a hook run is abandoned")
    p.add_argument("-m", "--mutrate", type=float, default=0.5, help="Per-bit mutation rate")
    p.add_argument("-s", "--csplits", type=int, default=2, help="Number of crossover cut points")
    p.add_argument("-g", "--numgen", type=int, default=100, help="Number of generations")
    p.add_argument("-p", "--popsize", type=int, default=30, help="Population size")
    p.add_argument("-i", "--iprob", type=float, default=0.5, help="Initial feature activation probability")
    p.add_argument("-r", "--lograte", type=int, default=100, help="Generations between checkpoints")
    p.add_argument("--max-ratio", type=float, default=0.5, help="Maximum features-to-samples ratio")
    p.add_argument("--local-search", choices=("greedy", "hill_climb"), default="greedy")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.add_argument("--history", default=None, help="CSV file for the per-generation history")
    p.set_defaults(func=cmd_fit)

    p = sub.add_parser("pred", help="Predict new data with a saved model")
    p.add_argument("-m", "--model", required=True, help="JSON model file")
    p.add_argument("-d", "--data", required=True, help="CSV file with the data to predict")
    p.add_argument("-o", "--out", default=None, help="Output CSV (default: <data>_predictions.csv)")
    p.set_defaults(func=cmd_pred)

    p = sub.add_parser("rmse", help="RMSE and GCV of a saved model on a dataset")
    p.add_argument("-d", "--data", required=True, help="CSV file with data")
    p.add_argument("-m", "--model", required=True, help="JSON model file")
    p.add_argument("-y", "--target", default=None, help="Target column (default: the model's target)")
    p.add_argument("--summary", action="store_true", help="Also log a statsmodels OLS coefficient table")
    p.set_defaults(func=cmd_rmse)

    p = sub.add_parser("poly", help="Add polynomial versions of a subset of the columns")
    p.add_argument("-d", "--data", required=True, help="Original data file")
    p.add_argument("-p", "--pattern", required=True, help="Expand every feature whose name contains this")
    p.add_argument("-n", "--order", type=int, default=2, help="Polynomial order")
    p.add_argument("-y", "--target", default=None, help="Target column (default: last column)")
    p.add_argument("-o", "--out", default=None, help="Output CSV (default: <data>_poly<order>.csv)")
    p.set_defaults(func=cmd_poly)

    p = sub.add_parser("ttsplit", help="Split a dataset into a train and a test file")
    p.add_argument("-d", "--data", required=True, help="CSV file with data")
    p.add_argument("-f", "--fraction", type=float, default=0.2, help="Fraction of rows in the test file")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.set_defaults(func=cmd_ttsplit)

    p = sub.add_parser("hook", help="Write a template hook script")
    p.add_argument("-t", "--type", default="cost", help="Template type (only 'cost')")
    p.add_argument("-o", "--out", default="cost.py", help="Output file")
    p.add_argument("-p", "--pyexec", default="python", help="Python executable for the shebang line")
    p.set_defaults(func=cmd_hook)

    p = sub.add_parser("plot", help="Scatter plot of predicted against reference values")
    p.add_argument("-d", "--data", required=True, help="Comma separated list of CSV files")
    p.add_argument("-m", "--model", required=True, help="JSON model file")
    p.add_argument("-o", "--out", default="linsel_plot.png", help="Image file")
    p.set_defaults(func=cmd_plot)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    try:
        args.func(args)
    except (LinselError, OSError, ValueError, KeyError, IndexError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
