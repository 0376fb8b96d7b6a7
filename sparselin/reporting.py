"""Pretty-print helpers for evaluation outputs."""

from __future__ import annotations

from typing import Dict

import pandas as pd

from .evaluation import CrossValidationResult, EvaluationResult


def label_report(evaluation: EvaluationResult) -> pd.DataFrame:
    """Per-label counts and scores over the positive labels."""

    rows = []
    for name, scores in evaluation.labelwise().items():
        rows.append(
            {
                "label": name,
                "match": scores.num_match,
                "model": scores.num_prediction,
                "reference": scores.num_reference,
                "precision": scores.precision,
                "recall": scores.recall,
                "f1": scores.f1,
            }
        )
    return pd.DataFrame(rows, columns=["label", "match", "model", "reference", "precision", "recall", "f1"])


def confusion_frame(evaluation: EvaluationResult) -> pd.DataFrame:
    return pd.DataFrame(
        evaluation.confusion.matrix, index=evaluation.label_names, columns=evaluation.label_names
    )


def evaluation_to_dict(evaluation: EvaluationResult) -> Dict[str, object]:
    report: Dict[str, object] = dict(evaluation.summary())
    report["num_match"] = evaluation.accuracy.num_match
    report["num_total"] = evaluation.accuracy.num_total
    if not evaluation.accuracy_only:
        report["labels"] = label_report(evaluation).to_dict(orient="records")
        report["confusion_matrix"] = evaluation.confusion.matrix.tolist()
    return report


def print_results(name: str, evaluation: EvaluationResult) -> None:
    print("\n" + "=" * 80)
    print(f"Results for {name}")
    print("=" * 80)
    print(evaluation.accuracy)
    if evaluation.accuracy_only:
        return

    labels = label_report(evaluation)
    if not labels.empty:
        print("\nPerformance by label:")
        print(labels.to_string(index=False, float_format=lambda value: f"{value:.4f}"))
    micro = evaluation.micro()
    print(
        f"Micro P, R, F1: {micro.precision:.4f} ({micro.num_match}/{micro.num_prediction}), "
        f"{micro.recall:.4f} ({micro.num_match}/{micro.num_reference}), {micro.f1:.4f}"
    )
    macro = evaluation.macro()
    print(f"Macro P, R, F1: {macro.precision:.4f}, {macro.recall:.4f}, {macro.f1:.4f}")

    if len(evaluation.label_names) > 1:
        print("\nConfusion matrix (rows = gold, columns = predicted):")
        print(confusion_frame(evaluation).to_string())


def fold_table(result: CrossValidationResult) -> pd.DataFrame:
    rows = []
    for fold in result.folds:
        row = {"fold": fold.fold}
        row.update(fold.evaluation.summary())
        rows.append(row)
    table = pd.DataFrame(rows).set_index("fold")
    table.loc["mean"] = table.mean()
    return table


def print_cross_validation(result: CrossValidationResult) -> None:
    print("\n" + "#" * 80)
    print(f"{len(result.folds)}-fold cross validation")
    print("#" * 80)
    print(fold_table(result).to_string(float_format=lambda value: f"{value:.4f}"))
    print_results("all folds (pooled)", result.pooled())
