"""Accuracy, precision/recall/F1 and confusion matrices.

The counts are computed with :mod:`sklearn.metrics` over (reference,
predicted) pairs of label ids and kept as integers so that the results of
several folds can be merged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix


def divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class Scores:
    precision: float
    recall: float
    f1: float
    num_match: int = 0
    num_prediction: int = 0
    num_reference: int = 0

    @classmethod
    def from_counts(cls, num_match: int, num_prediction: int, num_reference: int) -> "Scores":
        precision = divide(num_match, num_prediction)
        recall = divide(num_match, num_reference)
        f1 = divide(2 * precision * recall, precision + recall)
        return cls(precision, recall, f1, num_match, num_prediction, num_reference)


class Accuracy:
    """Counts matches among classified instances."""

    def __init__(self) -> None:
        self.num_match = 0
        self.num_total = 0

    @classmethod
    def from_pairs(cls, references: Sequence[int], predictions: Sequence[int]) -> "Accuracy":
        accuracy = cls()
        if len(references):
            accuracy.num_match = int(accuracy_score(references, predictions, normalize=False))
        accuracy.num_total = len(references)
        return accuracy

    def merge(self, other: "Accuracy") -> None:
        self.num_match += other.num_match
        self.num_total += other.num_total

    @property
    def value(self) -> float:
        return divide(self.num_match, self.num_total)

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return f"Accuracy: {self.value:.4f} ({self.num_match}/{self.num_total})"


class Precall:
    """Per-label counts of true positives, predictions and references."""

    def __init__(self, num_labels: int) -> None:
        self.num_match = np.zeros(num_labels, dtype=np.int64)
        self.num_prediction = np.zeros(num_labels, dtype=np.int64)
        self.num_reference = np.zeros(num_labels, dtype=np.int64)

    def __len__(self) -> int:
        return len(self.num_match)

    @classmethod
    def from_pairs(cls, references: Sequence[int], predictions: Sequence[int], num_labels: int) -> "Precall":
        """Counts from the confusion matrix plus the decisions involving unknown labels."""

        precall = ConfusionMatrix.from_pairs(references, predictions, num_labels).precall()
        for reference, predicted in zip(references, predictions):
            precall.count_unknown(predicted, reference)
        return precall

    def count_unknown(self, predicted: int, reference: int) -> None:
        """Count a decision whose reference or prediction is not a known label."""

        if reference >= 0 and predicted < 0:
            self.num_reference[reference] += 1
        elif predicted >= 0 and reference < 0:
            self.num_prediction[predicted] += 1

    def merge(self, other: "Precall") -> None:
        self.num_match += other.num_match
        self.num_prediction += other.num_prediction
        self.num_reference += other.num_reference

    def label(self, lid: int) -> Scores:
        return Scores.from_counts(
            int(self.num_match[lid]), int(self.num_prediction[lid]), int(self.num_reference[lid])
        )

    def labelwise(self, labels: Iterable[int]) -> Dict[int, Scores]:
        return {lid: self.label(lid) for lid in labels}

    def micro(self, labels: Iterable[int]) -> Scores:
        """Pool the counts of ``labels`` and compute one set of scores."""

        labels = list(labels)
        return Scores.from_counts(
            int(self.num_match[labels].sum()),
            int(self.num_prediction[labels].sum()),
            int(self.num_reference[labels].sum()),
        )

    def macro(self, labels: Iterable[int]) -> Scores:
        """Average the label scores over ``labels`` that were predicted or referenced."""

        supported = [
            self.label(lid)
            for lid in labels
            if self.num_prediction[lid] > 0 or self.num_reference[lid] > 0
        ]
        if not supported:
            return Scores(0.0, 0.0, 0.0)
        n = len(supported)
        return Scores(
            sum(s.precision for s in supported) / n,
            sum(s.recall for s in supported) / n,
            sum(s.f1 for s in supported) / n,
        )


class ConfusionMatrix:
    """Label x label counts; rows are reference labels, columns predictions."""

    def __init__(self, num_labels: int) -> None:
        self.matrix = np.zeros((num_labels, num_labels), dtype=np.int64)

    @classmethod
    def from_pairs(cls, references: Sequence[int], predictions: Sequence[int], num_labels: int) -> "ConfusionMatrix":
        """Count the pairs whose reference and prediction are both known labels."""

        confusion = cls(num_labels)
        pairs = [(r, p) for r, p in zip(references, predictions) if r >= 0 and p >= 0]
        if num_labels and pairs:
            known_references, known_predictions = zip(*pairs)
            confusion.matrix = confusion_matrix(
                known_references, known_predictions, labels=list(range(num_labels))
            ).astype(np.int64)
        return confusion

    def merge(self, other: "ConfusionMatrix") -> None:
        self.matrix += other.matrix

    def precall(self) -> Precall:
        precall = Precall(len(self.matrix))
        precall.num_match = np.diag(self.matrix).copy()
        precall.num_prediction = self.matrix.sum(axis=0)
        precall.num_reference = self.matrix.sum(axis=1)
        return precall
