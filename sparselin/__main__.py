"""Train linear classifiers on sparse feature files, or tag data with a trained model."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from .cli import parse_args
from .data import create_dataset, resolve_task
from .errors import SparselinError
from .evaluation import cross_validate, holdout_evaluation
from .model import read_model, tag, write_model
from .params import format_params
from .reader import ReaderOptions, read_data, read_dataset
from .reporting import evaluation_to_dict, fold_table, print_cross_validation, print_results
from .training import create_trainer, trainer_factory

LOGGER = logging.getLogger(__name__)


def run_training(args) -> Dict[str, object]:
    task = resolve_task(args.task)
    make_trainer = trainer_factory(args.algorithm, args.params)
    negatives = [label for label in args.negative.split(" ") if label]

    data = create_dataset(task, negatives, args.bias, args.feature_generation)
    num_groups = read_dataset(data, args.files, args.split, ReaderOptions.build(args.filter))
    data.finalize()
    if not len(data):
        raise SystemExit("No data available.")

    report: Dict[str, object] = {"task": task, "algorithm": args.algorithm}
    if args.cross_validate:
        if num_groups < 2:
            raise SystemExit("Cross validation requires at least two groups (use --split or several files).")
        result = cross_validate(data, make_trainer, num_groups, n_jobs=args.jobs)
        print_cross_validation(result)
        report["folds"] = [
            {"fold": fold.fold, "message": fold.message, "metrics": evaluation_to_dict(fold.evaluation)}
            for fold in result.folds
        ]
        report["mean"] = fold_table(result).loc["mean"].to_dict()
        report["pooled"] = evaluation_to_dict(result.pooled())
        return report

    trainer = make_trainer()
    result = trainer.train(data, holdout=args.holdout)
    report["message"] = result.message
    if args.holdout != -1:
        evaluation = holdout_evaluation(data, trainer.weights, args.holdout)
        print_results(f"{trainer.name} (holdout group {args.holdout})", evaluation)
        report["holdout"] = evaluation_to_dict(evaluation)
    if args.model:
        write_model(args.model, data, trainer.weights)
    return report


def run_tagging(args) -> Dict[str, object]:
    if not args.model:
        raise SystemExit("Tagging requires a model file (-m).")
    task = resolve_task(args.task)
    negatives = [label for label in args.negative.split(" ") if label]

    LOGGER.info("Loading the model from %s", args.model)
    model = read_model(args.model, bias=args.bias or 1.0)
    data = model.new_dataset(task, negatives, args.bias)
    read_data(data, args.files, ReaderOptions.build(args.filter))
    evaluation = tag(data, model, None if args.test else sys.stdout)

    report: Dict[str, object] = {"task": task, "model": str(args.model)}
    if args.test:
        print_results(f"model {args.model}", evaluation)
        report["test"] = evaluation_to_dict(evaluation)
    return report


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", stream=sys.stderr)

    try:
        if args.mode == "help-algorithm":
            print(format_params(create_trainer(args.algorithm).config))
            return
        if args.mode == "tag":
            report = run_tagging(args)
        else:
            report = run_training(args)
    except SparselinError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(f"ERROR: {exc}") from exc

    if args.output_report:
        LOGGER.info("Writing report to %s", args.output_report)
        Path(args.output_report).write_text(
            json.dumps(report, indent=2, ensure_ascii=False, default=float), encoding="utf8"
        )


if __name__ == "__main__":
    main()
