import math

import numpy as np
import pytest

from sparselin.classify import LinearClassifier
from sparselin.data import IdentityFeatureGenerator, Instance


def ranked_instance() -> Instance:
    instance = Instance()
    for aid in range(3):
        candidate = instance.new_candidate(aid, truth=(aid == 1))
        candidate.append(aid)
    return instance


def test_softmax_of_scores():
    cls = LinearClassifier(np.array([2.0, 1.0, 0.0]), IdentityFeatureGenerator(3))
    assert cls.classify(ranked_instance(), probabilities=True)

    norm = math.exp(2) + math.exp(1) + math.exp(0)
    assert cls.argmax == 0
    assert [cls.score(i) for i in range(3)] == [2.0, 1.0, 0.0]
    assert cls.prob(0) == pytest.approx(math.exp(2) / norm)
    assert cls.prob(1) == pytest.approx(math.exp(1) / norm)
    assert cls.prob(2) == pytest.approx(1.0 / norm)
    assert cls.log_prob(1) == pytest.approx(1.0 - math.log(norm))
    assert sum(cls.prob(i) for i in range(3)) == pytest.approx(1.0)


def test_large_scores_do_not_overflow():
    cls = LinearClassifier(np.array([1000.0, 999.0, 0.0]), IdentityFeatureGenerator(3))
    cls.classify(ranked_instance(), probabilities=True)
    assert np.all(np.isfinite(cls.probs))
    assert cls.prob(0) == pytest.approx(1.0 / (1.0 + math.exp(-1)))


def test_argmax_prefers_first_of_ties():
    cls = LinearClassifier(np.zeros(3), IdentityFeatureGenerator(3))
    cls.classify(ranked_instance())
    assert cls.argmax == 0


def test_empty_instance_cannot_be_classified():
    cls = LinearClassifier(np.zeros(3), IdentityFeatureGenerator(3))
    assert not cls.classify(Instance())


def test_unknown_features_are_ignored():
    cls = LinearClassifier(np.array([1.0, 2.0]), IdentityFeatureGenerator(2))
    cls.resize(1)
    cls.accumulate(0, [(0, 3.0), (5, 100.0), (-1, 1.0)], 0)
    assert cls.score(0) == 3.0


def test_gradient_contribution():
    cls = LinearClassifier(np.zeros(3), IdentityFeatureGenerator(3))
    buffer = np.zeros(3)
    cls.gradient_contribution(buffer, [(0, 1.0), (2, 0.5), (7, 1.0)], 0, -2.0)
    assert buffer.tolist() == [-2.0, 0.0, -1.0]
