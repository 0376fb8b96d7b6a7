"""Linear scoring of instance candidates."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from .data import FeatureGenerator
from .quark import NOT_FOUND


class LinearClassifier:
    """Scores the candidates of one instance with a borrowed weight vector.

    Usage per instance: :meth:`resize` to the number of candidates,
    :meth:`accumulate` every candidate, then :meth:`finalize`.  The argmax
    favours the first candidate among equal scores.
    """

    def __init__(self, weights: np.ndarray, feature_generator: FeatureGenerator) -> None:
        self.weights = weights
        self.feature_generator = feature_generator
        self.scores = np.zeros(0)
        self.probs = np.zeros(0)
        self.labels: List[int] = []
        self.norm = 0.0
        self.log_norm = 0.0
        self.argmax = NOT_FOUND

    def __len__(self) -> int:
        return len(self.labels)

    def resize(self, n: int) -> None:
        self.scores = np.zeros(n)
        self.probs = np.zeros(n)
        self.labels = [NOT_FOUND] * n
        self.norm = 0.0
        self.log_norm = 0.0
        self.argmax = NOT_FOUND

    def accumulate(self, i: int, attributes: Sequence[Tuple[int, float]], label: int) -> None:
        """Set ``score[i]`` to the inner product of the weights and the candidate features."""

        forward = self.feature_generator.forward
        weights = self.weights
        score = 0.0
        for aid, value in attributes:
            fid = forward(aid, label)
            if fid >= 0:
                score += weights[fid] * value
        self.scores[i] = score
        self.labels[i] = label

    def finalize(self, probabilities: bool = False) -> bool:
        if not self.labels:
            return False

        self.argmax = int(np.argmax(self.scores))
        if probabilities:
            # Factor out the largest score so that exp() cannot overflow.
            vmax = self.scores[self.argmax]
            exps = np.exp(self.scores - vmax)
            self.norm = float(exps.sum())
            self.probs = exps / self.norm
            self.log_norm = float(vmax) + math.log(self.norm)
        return True

    def score(self, i: int) -> float:
        return float(self.scores[i])

    def prob(self, i: int) -> float:
        return float(self.probs[i])

    def log_prob(self, i: int) -> float:
        return float(self.scores[i]) - self.log_norm

    def label(self, i: int) -> int:
        return self.labels[i]

    def gradient_contribution(
        self,
        buffer: np.ndarray,
        attributes: Sequence[Tuple[int, float]],
        label: int,
        coefficient: float,
    ) -> None:
        """Add ``coefficient * value`` to ``buffer`` at the feature of every attribute."""

        forward = self.feature_generator.forward
        for aid, value in attributes:
            fid = forward(aid, label)
            if fid >= 0:
                buffer[fid] += coefficient * value

    def classify(self, instance, probabilities: bool = False) -> bool:
        """Score all candidates of ``instance`` and finalize."""

        candidates = instance.candidates
        self.resize(len(candidates))
        for i, candidate in enumerate(candidates):
            self.accumulate(i, candidate.attributes, candidate.label)
        return self.finalize(probabilities)
