"""Online training: averaged perceptron, Pegasos and truncated gradient.

:class:`OnlineTrainer` drives the epochs and the instance order; an
:class:`OnlineAlgorithm` applies the per-instance update.  Pegasos and
truncated gradient share the same sub-gradient step and differ only in the
learning-rate schedule and the step applied after each update (projection
onto an L2 ball, or L1 truncation).
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from sklearn.utils import check_random_state

from .classify import LinearClassifier
from .data import NO_HOLDOUT, Dataset, require_true_index
from .errors import InvalidParameterError
from .evaluation import EvaluationResult, holdout_evaluation
from .params import boolean, format_params, param

LOGGER = logging.getLogger(__name__)


def require_positive_sigma(sigma: float) -> None:
    if not sigma > 0.0:
        raise InvalidParameterError(f"regularization.sigma must be positive: {sigma}")


@dataclass
class OnlineConfig:
    max_iterations: int = param("max_iterations", 10, "The number of epochs over the training data.")
    shuffle: bool = param("shuffle", False, "Shuffle the training instances before every epoch.", type=boolean)
    random_seed: int = param("random_seed", 0, "The seed used to shuffle the training instances.")

    def validate(self) -> None:
        """Reject parameter values the epochs cannot run with."""

        if self.max_iterations < 1:
            raise InvalidParameterError(f"max_iterations must be at least 1: {self.max_iterations}")


@dataclass
class PegasosConfig(OnlineConfig):
    regularization_sigma: float = param(
        "regularization.sigma", 5.0, "Regularization coefficient (sigma); lambda = 1 / (sigma^2 * N)."
    )

    def validate(self) -> None:
        super().validate()
        require_positive_sigma(self.regularization_sigma)


@dataclass
class TruncatedGradientConfig(OnlineConfig):
    regularization_sigma: float = param(
        "regularization.sigma", 5.0, "Regularization coefficient (sigma); the L1 coefficient is 1 / sigma."
    )
    eta: float = param("eta", 0.1, "The initial learning rate.")
    period: int = param("truncate.period", 1, "Truncate the weights every this number of instances.")
    theta: float = param("truncate.theta", math.inf, "Only weights whose magnitude is at most theta are truncated.")

    def validate(self) -> None:
        super().validate()
        require_positive_sigma(self.regularization_sigma)
        if not self.eta > 0.0:
            raise InvalidParameterError(f"eta must be positive: {self.eta}")
        if self.period < 1:
            raise InvalidParameterError(f"truncate.period must be at least 1: {self.period}")
        if self.theta < 0.0:
            raise InvalidParameterError(f"truncate.theta must not be negative: {self.theta}")


class LogisticLoss:
    """Negative log-likelihood of the true candidate under the softmax."""

    name = "logistic"
    needs_probabilities = True

    def gradient(self, cls: LinearClassifier, itrue: int) -> Tuple[float, np.ndarray]:
        coefficients = cls.probs.copy()
        coefficients[itrue] -= 1.0
        return -cls.log_prob(itrue), coefficients


class HingeLoss:
    """Margin loss against the highest scoring wrong candidate (margin 1)."""

    name = "hinge"
    needs_probabilities = False

    def gradient(self, cls: LinearClassifier, itrue: int) -> Tuple[float, np.ndarray]:
        coefficients = np.zeros(len(cls))
        rivals = [i for i in range(len(cls)) if i != itrue]
        if not rivals:
            return 0.0, coefficients
        rival = max(rivals, key=lambda i: cls.scores[i])
        loss = 1.0 - (cls.score(itrue) - cls.score(rival))
        if loss <= 0.0:
            return 0.0, coefficients
        coefficients[itrue] = -1.0
        coefficients[rival] = 1.0
        return loss, coefficients


LOSSES = {"logistic": LogisticLoss, "hinge": HingeLoss}


class OnlineAlgorithm:
    """Per-instance update rule operating on :attr:`weights` in place."""

    name = ""

    def __init__(self, config: Optional[OnlineConfig] = None) -> None:
        self.config = config or OnlineConfig()
        self.weights = np.zeros(0)

    def begin(self, num_features: int, num_instances: int, regularization_start: int = 0) -> None:
        self.weights = np.zeros(num_features)
        self.num_instances = num_instances
        self.regularization_start = regularization_start

    def update(self, instance, itrue: int, cls: LinearClassifier) -> float:
        raise NotImplementedError

    def final_weights(self) -> np.ndarray:
        return self.weights.copy()


class AveragedPerceptron(OnlineAlgorithm):
    """Perceptron whose output is the average of the weights after every instance.

    The sum of all historical weight vectors is kept lazily: ``summed``
    accumulates ``c * delta`` for every update made at step ``c`` and the
    average is ``weights - summed / c``.
    """

    name = "averaged_perceptron"

    def begin(self, num_features: int, num_instances: int, regularization_start: int = 0) -> None:
        super().begin(num_features, num_instances, regularization_start)
        self.summed = np.zeros(num_features)
        self.count = 1

    def update(self, instance, itrue: int, cls: LinearClassifier) -> float:
        candidates = instance.candidates
        cls.classify(instance)
        loss = 0.0
        if cls.argmax != itrue:
            truth = candidates[itrue]
            predicted = candidates[cls.argmax]
            weight = instance.weight
            cls.gradient_contribution(self.weights, truth.attributes, truth.label, weight)
            cls.gradient_contribution(self.weights, predicted.attributes, predicted.label, -weight)
            cls.gradient_contribution(self.summed, truth.attributes, truth.label, self.count * weight)
            cls.gradient_contribution(self.summed, predicted.attributes, predicted.label, -self.count * weight)
            loss = 1.0
        self.count += 1
        return loss

    def final_weights(self) -> np.ndarray:
        return self.weights - self.summed / self.count


class SubgradientDescent(OnlineAlgorithm):
    """Stochastic sub-gradient step ``w <- w - eta_t * grad`` of a candidate loss."""

    algorithm = ""

    def __init__(self, loss, config: Optional[OnlineConfig] = None) -> None:
        super().__init__(config)
        self.loss = loss
        self.name = f"{self.algorithm}.{loss.name}"

    def begin(self, num_features: int, num_instances: int, regularization_start: int = 0) -> None:
        super().begin(num_features, num_instances, regularization_start)
        self.t = 0

    def learning_rate(self) -> float:
        raise NotImplementedError

    def pre_update(self, eta: float) -> None:
        pass

    def post_update(self, eta: float) -> None:
        pass

    def update(self, instance, itrue: int, cls: LinearClassifier) -> float:
        self.t += 1
        eta = self.learning_rate()
        candidates = instance.candidates
        cls.classify(instance, probabilities=self.loss.needs_probabilities)
        loss, coefficients = self.loss.gradient(cls, itrue)

        self.pre_update(eta)
        for i, candidate in enumerate(candidates):
            if coefficients[i] != 0.0:
                cls.gradient_contribution(
                    self.weights, candidate.attributes, candidate.label, -eta * instance.weight * coefficients[i]
                )
        self.post_update(eta)
        return loss


class Pegasos(SubgradientDescent):
    """Primal estimated sub-gradient solver with projection onto ``‖w‖ <= 1/sqrt(lambda)``."""

    algorithm = "pegasos"

    def __init__(self, loss, config: Optional[PegasosConfig] = None) -> None:
        super().__init__(loss, config or PegasosConfig())

    def begin(self, num_features: int, num_instances: int, regularization_start: int = 0) -> None:
        super().begin(num_features, num_instances, regularization_start)
        sigma = self.config.regularization_sigma
        self.lam = 1.0 / (sigma * sigma * max(num_instances, 1))
        self.radius = 1.0 / math.sqrt(self.lam)

    def learning_rate(self) -> float:
        return 1.0 / (self.lam * self.t)

    def pre_update(self, eta: float) -> None:
        self.weights[self.regularization_start :] *= 1.0 - eta * self.lam

    def post_update(self, eta: float) -> None:
        w = self.weights[self.regularization_start :]
        norm = float(np.linalg.norm(w))
        if norm > self.radius:
            w *= self.radius / norm


class TruncatedGradient(SubgradientDescent):
    """Sub-gradient descent with periodic L1 truncation toward zero."""

    algorithm = "truncated_gradient"

    def __init__(self, loss, config: Optional[TruncatedGradientConfig] = None) -> None:
        super().__init__(loss, config or TruncatedGradientConfig())

    def begin(self, num_features: int, num_instances: int, regularization_start: int = 0) -> None:
        super().begin(num_features, num_instances, regularization_start)
        self.c1 = 1.0 / self.config.regularization_sigma

    def learning_rate(self) -> float:
        return self.config.eta / (1.0 + self.t / max(self.num_instances, 1))

    def post_update(self, eta: float) -> None:
        period = self.config.period
        if self.t % period != 0:
            return
        gravity = period * eta * self.c1
        w = self.weights[self.regularization_start :]
        small = np.abs(w) <= self.config.theta
        positive = small & (w > 0.0)
        negative = small & (w < 0.0)
        w[positive] = np.maximum(0.0, w[positive] - gravity)
        w[negative] = np.minimum(0.0, w[negative] + gravity)


@dataclass
class EpochReport:
    epoch: int
    loss: float
    num_updates: int
    feature_norm: float
    num_active: int
    num_features: int
    seconds: float


@dataclass
class OnlineResult:
    epochs: int
    loss: float
    message: str
    history: List[EpochReport] = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return True


class OnlineTrainer:
    """Runs an :class:`OnlineAlgorithm` for a number of epochs."""

    def __init__(self, algorithm: OnlineAlgorithm) -> None:
        self.algorithm = algorithm
        self.weights = np.zeros(0)
        self.history: List[EpochReport] = []
        self.holdout_history: List[EvaluationResult] = []

    @property
    def name(self) -> str:
        return self.algorithm.name

    @property
    def config(self) -> OnlineConfig:
        return self.algorithm.config

    def train(self, data: Dataset, holdout: int = NO_HOLDOUT) -> OnlineResult:
        config = self.config
        config.validate()
        data.finalize()
        self.history = []
        self.holdout_history = []

        instances = list(data.training_instances(holdout))
        truths = [require_true_index(instance) for instance in instances]

        LOGGER.info("Training with %s", self.name)
        for line in format_params(config).splitlines():
            LOGGER.info("%s", line)

        algorithm = self.algorithm
        algorithm.begin(data.num_features, len(instances), data.user_feature_start)
        cls = LinearClassifier(algorithm.weights, data.feature_generator)
        rng = check_random_state(config.random_seed)
        order = np.arange(len(instances))

        loss = 0.0
        for epoch in range(1, config.max_iterations + 1):
            started = time.perf_counter()
            if config.shuffle:
                rng.shuffle(order)
            loss = 0.0
            num_updates = 0
            for index in order:
                instance = instances[index]
                value = algorithm.update(instance, truths[index], cls)
                if value > 0.0:
                    num_updates += 1
                loss += instance.weight * value

            self.weights = algorithm.final_weights()
            report = EpochReport(
                epoch=epoch,
                loss=loss,
                num_updates=num_updates,
                feature_norm=float(np.linalg.norm(self.weights)),
                num_active=int(np.count_nonzero(self.weights)),
                num_features=len(self.weights),
                seconds=time.perf_counter() - started,
            )
            self.history.append(report)
            LOGGER.info("***** Epoch #%d *****", epoch)
            LOGGER.info("Loss: %g", report.loss)
            LOGGER.info("Instances with non-zero loss: %d / %d", num_updates, len(instances))
            LOGGER.info("Feature norm: %g", report.feature_norm)
            LOGGER.info("Active features: %d / %d", report.num_active, report.num_features)
            LOGGER.info("Seconds required for this epoch: %.3f", report.seconds)

            if holdout != NO_HOLDOUT:
                evaluation = holdout_evaluation(data, self.weights, holdout)
                evaluation.log()
                self.holdout_history.append(evaluation)

        message = f"{self.name} terminated after {config.max_iterations} epochs"
        LOGGER.info("%s", message)
        return OnlineResult(config.max_iterations, loss, message, list(self.history))
