"""Command-line argument parsing for training and tagging."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from .data import FEATURE_GENERATIONS
from .training import ALGORITHMS

DESCRIPTION = """Train and apply linear classifiers on sparse feature files.

If several DATA files are given, the instances of the i-th file form group i
(0-based); if none is given, the data set is read from STDIN."""


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sparselin", description=DESCRIPTION, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("files", nargs="*", type=Path, metavar="DATA", help="Data file(s) to read.")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-l", "--learn", dest="mode", action="store_const", const="learn", help="Train a model (default)."
    )
    mode.add_argument(
        "-t", "--tag", dest="mode", action="store_const", const="tag", help="Tag the data with the model given by -m."
    )
    mode.add_argument(
        "--help-algorithm",
        dest="mode",
        action="store_const",
        const="help-algorithm",
        help="Show the parameters of the algorithm given by -a and exit.",
    )
    parser.set_defaults(mode="learn")

    parser.add_argument(
        "-f",
        "--task",
        default="multiclass",
        help="Task type: b/binary, m/multiclass, s/selection or r/ranking (default: multiclass).",
    )
    parser.add_argument("-m", "--model", type=Path, default=None, help="Store/load a model to/from this file.")
    parser.add_argument(
        "-n",
        "--negative",
        default="-1 O",
        help="Space-separated negative labels excluded from precision/recall (default: '-1 O').",
    )
    parser.add_argument(
        "-a",
        "--algorithm",
        default="lbfgs.logistic",
        help=f"Training algorithm: {', '.join(ALGORITHMS)} (default: lbfgs.logistic).",
    )
    parser.add_argument(
        "-p",
        "--set",
        dest="params",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set an algorithm-specific parameter; may be repeated.",
    )
    parser.add_argument("-g", "--split", type=int, default=0, help="Split the instances into N groups.")
    parser.add_argument(
        "-e", "--holdout", type=int, default=-1, help="Use group M for holdout evaluation and the rest for training."
    )
    parser.add_argument(
        "-x",
        "--cross-validate",
        action="store_true",
        help="Repeat holdout evaluations for every group (N-fold cross validation).",
    )
    parser.add_argument(
        "-b",
        "--bias",
        type=float,
        default=0.0,
        help="Value of the bias feature added to every instance (default: 0, no bias).",
    )
    parser.add_argument("--filter", default=None, help="Regular expression; only matching attributes are used.")
    parser.add_argument(
        "--feature-generation",
        choices=FEATURE_GENERATIONS,
        default="sparse",
        help="Attribute x label features for multiclass/selection tasks (default: sparse).",
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Number of worker threads for cross validation (default: 1)."
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="When tagging, evaluate the predictions against the labels in the data.",
    )
    parser.add_argument(
        "--output-report",
        type=Path,
        default=None,
        help="Optional path to save the evaluation report as JSON.",
    )
    return parser.parse_args(argv)
