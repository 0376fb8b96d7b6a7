"""Training algorithm registry."""

from __future__ import annotations

import functools
from typing import Callable, Sequence, Union

from .errors import InvalidAlgorithmError
from .maxent import MaxEntConfig, MaxEntTrainer
from .online import (
    LOSSES,
    AveragedPerceptron,
    OnlineConfig,
    OnlineTrainer,
    Pegasos,
    PegasosConfig,
    TruncatedGradient,
    TruncatedGradientConfig,
)
from .params import set_params

ALGORITHMS = (
    "lbfgs.logistic",
    "averaged_perceptron",
    "pegasos.logistic",
    "pegasos.hinge",
    "truncated_gradient.logistic",
    "truncated_gradient.hinge",
)

ALGORITHM_ALIASES = {"maxent": "lbfgs.logistic", "logress": "lbfgs.logistic"}

Trainer = Union[MaxEntTrainer, OnlineTrainer]


def resolve_algorithm(algorithm: str) -> str:
    name = ALGORITHM_ALIASES.get(algorithm.lower(), algorithm)
    if name not in ALGORITHMS:
        raise InvalidAlgorithmError(algorithm)
    return name


def create_trainer(algorithm: str, params: Sequence[str] = ()) -> Trainer:
    """Build a trainer for ``algorithm`` with ``NAME=VALUE`` parameter overrides.

    Unknown algorithms, unknown parameters and out-of-range parameter values
    are rejected here, before any data is read.
    """

    name = resolve_algorithm(algorithm)
    if name == "lbfgs.logistic":
        trainer = MaxEntTrainer(set_params(MaxEntConfig(), params))
        trainer.resolve_regularization()
        return trainer
    if name == "averaged_perceptron":
        online = AveragedPerceptron(set_params(OnlineConfig(), params))
    else:
        family, loss_name = name.split(".")
        loss = LOSSES[loss_name]()
        if family == "pegasos":
            online = Pegasos(loss, set_params(PegasosConfig(), params))
        else:
            online = TruncatedGradient(loss, set_params(TruncatedGradientConfig(), params))
    online.config.validate()
    return OnlineTrainer(online)


def trainer_factory(algorithm: str, params: Sequence[str] = ()) -> Callable[[], Trainer]:
    """Validate the configuration once and return a builder of fresh trainers."""

    create_trainer(algorithm, params)
    return functools.partial(create_trainer, algorithm, tuple(params))
