"""Maximum entropy (log-linear) models trained with L-BFGS."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .classify import LinearClassifier
from .data import NO_HOLDOUT, Dataset, require_true_index
from .errors import InvalidParameterError
from .evaluation import EvaluationResult, holdout_evaluation
from .lbfgs import LINESEARCH_METHODS, IterationReport, LBFGSObjective, LBFGSParams, LBFGSResult, minimize
from .params import format_params, optional_int, param

LOGGER = logging.getLogger(__name__)


@dataclass
class MaxEntConfig:
    regularization: str = param(
        "regularization",
        "L2",
        "Regularization method (prior):\n{'': no regularization, 'L1': L1-regularization, 'L2': L2-regularization}",
    )
    regularization_sigma: float = param("regularization.sigma", 5.0, "Regularization coefficient (sigma).")
    num_memories: int = param(
        "lbfgs.num_memories", 6, "The number of corrections to approximate the inverse hessian matrix."
    )
    epsilon: float = param("lbfgs.epsilon", 1e-5, "Epsilon for testing the convergence of the log likelihood.")
    stop: int = param("lbfgs.stop", 10, "The duration of iterations to test the stopping criterion.")
    delta: float = param(
        "lbfgs.delta",
        1e-5,
        "The threshold for the stopping criterion; an L-BFGS iteration stops when the\n"
        "improvement of the log likelihood over the last ${lbfgs.stop} iterations is\n"
        "no greater than this threshold.",
    )
    max_iterations: Optional[int] = param(
        "lbfgs.max_iterations", None, "The maximum number of L-BFGS iterations (None: unbounded).", type=optional_int
    )
    linesearch: str = param(
        "lbfgs.linesearch",
        "MoreThuente",
        "The line search algorithm used in L-BFGS updates:\n"
        "{'MoreThuente': More and Thuente's method, 'Backtracking': backtracking}",
    )
    max_linesearch: int = param(
        "lbfgs.max_linesearch", 20, "The maximum number of trials for the line search algorithm."
    )

    def validate(self) -> None:
        """Reject parameter values the optimizer cannot run with."""

        if self.regularization.upper() in ("L1", "L2") and not self.regularization_sigma > 0.0:
            raise InvalidParameterError(f"regularization.sigma must be positive: {self.regularization_sigma}")
        if self.num_memories < 1:
            raise InvalidParameterError(f"lbfgs.num_memories must be at least 1: {self.num_memories}")
        if self.epsilon < 0.0:
            raise InvalidParameterError(f"lbfgs.epsilon must not be negative: {self.epsilon}")
        if self.stop < 0:
            raise InvalidParameterError(f"lbfgs.stop must not be negative: {self.stop}")
        if self.delta < 0.0:
            raise InvalidParameterError(f"lbfgs.delta must not be negative: {self.delta}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise InvalidParameterError(f"lbfgs.max_iterations must be at least 1: {self.max_iterations}")
        if self.max_linesearch < 1:
            raise InvalidParameterError(f"lbfgs.max_linesearch must be at least 1: {self.max_linesearch}")


class MaxEntTrainer(LBFGSObjective):
    """Minimizes the regularized negative log-likelihood of the true candidates.

    The observation expectations are computed once; every evaluation then
    sweeps the training instances, accumulating model expectations weighted
    by the candidate probabilities.  Instances of the holdout group are left
    out of training and scored after every iteration instead.
    """

    name = "lbfgs.logistic"

    def __init__(self, config: Optional[MaxEntConfig] = None) -> None:
        self.config = config or MaxEntConfig()
        self.data: Optional[Dataset] = None
        self.holdout = NO_HOLDOUT
        self.weights = np.zeros(0)
        self.observation_expectation = np.zeros(0)
        self.model_expectation = np.zeros(0)
        self.c1 = 0.0
        self.c2 = 0.0
        self.linesearch = self.config.linesearch
        self.regularization_start = 0
        self.history: List[IterationReport] = []
        self.holdout_history: List[EvaluationResult] = []
        self._instances: List = []

    def resolve_regularization(self) -> None:
        """Derive the L1/L2 coefficients and the line search from the configuration."""

        config = self.config
        config.validate()
        regularization = config.regularization.upper()
        self.linesearch = config.linesearch
        if regularization == "L1":
            self.c1 = 1.0 / config.regularization_sigma
            self.c2 = 0.0
            self.linesearch = "Backtracking"
        elif regularization == "L2":
            self.c1 = 0.0
            self.c2 = 1.0 / (config.regularization_sigma * config.regularization_sigma)
        elif regularization in ("", "NONE"):
            self.c1 = 0.0
            self.c2 = 0.0
        else:
            raise InvalidParameterError(f"unknown regularization: {config.regularization}")
        if self.linesearch not in LINESEARCH_METHODS:
            raise InvalidParameterError(f"unknown line search algorithm: {self.linesearch}")

    def train(self, data: Dataset, holdout: int = NO_HOLDOUT) -> LBFGSResult:
        data.finalize()
        self.resolve_regularization()
        self.data = data
        self.holdout = holdout
        self.history = []
        self.holdout_history = []

        num_features = data.num_features
        self.weights = np.zeros(num_features)
        self.observation_expectation = np.zeros(num_features)
        self.model_expectation = np.zeros(num_features)
        self.regularization_start = data.user_feature_start

        LOGGER.info("Training a maximum entropy model")
        for line in format_params(self.config).splitlines():
            LOGGER.info("%s", line)
        LOGGER.info("Line search: %s (reported only, L-BFGS-B runs its own line search)", self.linesearch)

        cls = LinearClassifier(self.weights, data.feature_generator)
        self._instances = []
        for instance in data.training_instances(holdout):
            itrue = require_true_index(instance)
            candidate = instance.candidates[itrue]
            cls.gradient_contribution(
                self.observation_expectation, candidate.attributes, candidate.label, instance.weight
            )
            self._instances.append(instance)

        params = LBFGSParams(
            num_memories=self.config.num_memories,
            epsilon=self.config.epsilon,
            stop=self.config.stop,
            delta=self.config.delta,
            max_iterations=self.config.max_iterations,
            linesearch=self.linesearch,
            max_linesearch=self.config.max_linesearch,
            orthantwise_c=self.c1,
            orthantwise_start=self.regularization_start,
        )
        result = minimize(self, self.weights, params)
        self.weights = result.x
        if result.ok:
            LOGGER.info("%s", result.message)
        else:
            LOGGER.warning("%s", result.message)
        return result

    def evaluate(self, x: np.ndarray) -> Tuple[float, np.ndarray]:
        cls = LinearClassifier(x, self.data.feature_generator)
        mexps = self.model_expectation
        mexps[:] = 0.0
        loss = 0.0

        for instance in self._instances:
            candidates = instance.candidates
            cls.resize(len(candidates))
            itrue = -1
            for i, candidate in enumerate(candidates):
                cls.accumulate(i, candidate.attributes, candidate.label)
                if candidate.truth:
                    itrue = i
            cls.finalize(True)

            for i, candidate in enumerate(candidates):
                cls.gradient_contribution(mexps, candidate.attributes, candidate.label, instance.weight * cls.prob(i))
            loss -= instance.weight * cls.log_prob(itrue)

        gradient = mexps - self.observation_expectation

        if self.c2 != 0.0:
            start = self.regularization_start
            gradient[start:] += self.c2 * x[start:]
            loss += 0.5 * self.c2 * float(np.dot(x[start:], x[start:]))

        return loss, gradient

    def progress(self, report: IterationReport) -> bool:
        self.history.append(report)
        LOGGER.info("***** Iteration #%d *****", report.iteration)
        LOGGER.info("Log-likelihood: %g", -report.fx)
        LOGGER.info("Feature norm: %g", report.xnorm)
        LOGGER.info("Error norm: %g", report.gnorm)
        LOGGER.info("Active features: %d / %d", report.num_active, report.num_features)
        LOGGER.info("Line search trials: %d", report.linesearch_trials)
        LOGGER.info("Line search step: %g", report.step)
        LOGGER.info("Seconds required for this iteration: %.3f", report.seconds)

        if self.holdout != NO_HOLDOUT:
            evaluation = holdout_evaluation(self.data, report.x, self.holdout)
            evaluation.log()
            self.holdout_history.append(evaluation)
        return True
