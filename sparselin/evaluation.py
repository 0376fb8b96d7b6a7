"""Holdout evaluation and cross-validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

import numpy as np
from joblib import Parallel, delayed

from .classify import LinearClassifier
from .data import Dataset
from .metrics import Accuracy, ConfusionMatrix, Precall, Scores

LOGGER = logging.getLogger(__name__)

UNCLASSIFIED = -2


def split_groups(data: Dataset, num_groups: int) -> int:
    """Assign group ``i mod num_groups`` to the i-th instance (file order)."""

    if num_groups <= 0:
        raise ValueError("the number of groups must be positive")
    for i, instance in enumerate(data.instances):
        instance.group = i % num_groups
    return num_groups


@dataclass
class EvaluationResult:
    accuracy: Accuracy
    precall: Precall
    confusion: ConfusionMatrix
    label_names: List[str]
    positive_labels: List[int]
    accuracy_only: bool = False

    def micro(self) -> Scores:
        return self.precall.micro(self.positive_labels)

    def macro(self) -> Scores:
        return self.precall.macro(self.positive_labels)

    def labelwise(self) -> Dict[str, Scores]:
        return {self.label_names[lid]: scores for lid, scores in self.precall.labelwise(self.positive_labels).items()}

    def merge(self, other: "EvaluationResult") -> None:
        self.accuracy.merge(other.accuracy)
        self.precall.merge(other.precall)
        self.confusion.merge(other.confusion)

    def summary(self) -> Dict[str, float]:
        summary = {"accuracy": self.accuracy.value}
        if not self.accuracy_only:
            micro = self.micro()
            macro = self.macro()
            summary.update(
                {
                    "micro_precision": micro.precision,
                    "micro_recall": micro.recall,
                    "micro_f1": micro.f1,
                    "macro_precision": macro.precision,
                    "macro_recall": macro.recall,
                    "macro_f1": macro.f1,
                }
            )
        return summary

    def log(self) -> None:
        LOGGER.info("%s", self.accuracy)
        if self.accuracy_only:
            return
        micro = self.micro()
        LOGGER.info(
            "Micro P, R, F1: %.4f (%d/%d), %.4f (%d/%d), %.4f",
            micro.precision,
            micro.num_match,
            micro.num_prediction,
            micro.recall,
            micro.num_match,
            micro.num_reference,
            micro.f1,
        )
        macro = self.macro()
        LOGGER.info("Macro P, R, F1: %.4f, %.4f, %.4f", macro.precision, macro.recall, macro.f1)


def evaluate_instances(instances: Iterable, weights: np.ndarray, data: Dataset) -> EvaluationResult:
    """Classify ``instances`` with frozen ``weights`` and count the outcomes."""

    accuracy_only = data.task == "ranking"
    num_labels = 0 if accuracy_only else data.num_labels
    cls = LinearClassifier(weights, data.feature_generator)

    # candidate indices for accuracy, label ids for the label scores
    truths: List[int] = []
    picks: List[int] = []
    references: List[int] = []
    predictions: List[int] = []
    for instance in instances:
        itrue = instance.true_index()
        truths.append(itrue)
        if not cls.classify(instance):
            picks.append(UNCLASSIFIED)
            continue
        picks.append(cls.argmax)
        if accuracy_only:
            continue
        predictions.append(cls.label(cls.argmax))
        references.append(instance.candidates[itrue].label if itrue >= 0 else -1)

    accuracy = Accuracy.from_pairs(truths, picks)
    confusion = ConfusionMatrix.from_pairs(references, predictions, num_labels)
    precall = Precall.from_pairs(references, predictions, num_labels)

    return EvaluationResult(
        accuracy=accuracy,
        precall=precall,
        confusion=confusion,
        label_names=list(data.labels),
        positive_labels=list(data.positive_labels),
        accuracy_only=accuracy_only,
    )


def holdout_evaluation(data: Dataset, weights: np.ndarray, holdout: int) -> EvaluationResult:
    return evaluate_instances(data.holdout_instances(holdout), weights, data)


@dataclass
class FoldResult:
    fold: int
    message: str
    evaluation: EvaluationResult
    weights: np.ndarray = field(repr=False)


@dataclass
class CrossValidationResult:
    folds: List[FoldResult]

    def pooled(self) -> EvaluationResult:
        """Merge the counts of every fold into one evaluation."""

        first = self.folds[0].evaluation
        pooled = EvaluationResult(
            accuracy=Accuracy(),
            precall=Precall(len(first.precall)),
            confusion=ConfusionMatrix(len(first.confusion.matrix)),
            label_names=first.label_names,
            positive_labels=first.positive_labels,
            accuracy_only=first.accuracy_only,
        )
        for fold in self.folds:
            pooled.merge(fold.evaluation)
        return pooled

    def mean(self) -> Dict[str, float]:
        summaries = [fold.evaluation.summary() for fold in self.folds]
        return {key: float(np.mean([s[key] for s in summaries])) for key in summaries[0]}


def _train_fold(data: Dataset, make_trainer: Callable, fold: int) -> FoldResult:
    LOGGER.info("===== Cross validation (%d) =====", fold)
    trainer = make_trainer()
    result = trainer.train(data, holdout=fold)
    evaluation = holdout_evaluation(data, trainer.weights, fold)
    return FoldResult(fold, result.message, evaluation, trainer.weights)


def cross_validate(data: Dataset, make_trainer: Callable, num_folds: int, n_jobs: int = 1) -> CrossValidationResult:
    """Train one model per fold with that fold held out.

    ``make_trainer`` builds a fresh trainer for each fold, so folds share
    nothing but the finalized, read-only data set and may run on
    ``n_jobs`` worker threads.
    """

    data.finalize()
    folds = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_train_fold)(data, make_trainer, fold) for fold in range(num_folds)
    )
    return CrossValidationResult(list(folds))
