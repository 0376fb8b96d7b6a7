"""L-BFGS minimization with evaluate/progress callbacks, backed by SciPy.

Objectives implement :class:`LBFGSObjective`; :func:`minimize` drives
``scipy.optimize.minimize(method="L-BFGS-B")`` and calls back once per
evaluation and once per iteration.

L1 regularization (``orthantwise_c > 0``) is solved on split variables
``x = u - v`` with ``u, v >= 0`` and the penalty ``c * sum(u + v)`` for every
index at or past ``orthantwise_start``; indices below it are left
unpenalized.  Reported gradient norms then use the OWL-QN pseudo-gradient.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from scipy import optimize

LOGGER = logging.getLogger(__name__)

LINESEARCH_METHODS = ("MoreThuente", "Backtracking")
MAX_ITERATIONS = 2**31 - 1


class LBFGSStatus(Enum):
    SUCCESS = "success"
    CONVERGENCE = "convergence"
    STOP = "stop"
    MAXIMUM_ITERATION = "maximum iteration"
    LINESEARCH_FAILURE = "line search failure"
    NUMERICAL_ERROR = "numerical error"
    CANCELED = "canceled"

    @property
    def ok(self) -> bool:
        return self in (LBFGSStatus.SUCCESS, LBFGSStatus.CONVERGENCE, LBFGSStatus.STOP)


STATUS_MESSAGES = {
    LBFGSStatus.SUCCESS: "L-BFGS resulted in convergence",
    LBFGSStatus.CONVERGENCE: "L-BFGS resulted in convergence",
    LBFGSStatus.STOP: "L-BFGS terminated with the stopping criteria",
    LBFGSStatus.MAXIMUM_ITERATION: "L-BFGS terminated with the maximum number of iterations",
    LBFGSStatus.LINESEARCH_FAILURE: "L-BFGS terminated with a line search failure",
    LBFGSStatus.NUMERICAL_ERROR: "L-BFGS terminated with a non-finite objective or gradient",
    LBFGSStatus.CANCELED: "L-BFGS was canceled by the progress callback",
}


@dataclass
class LBFGSParams:
    num_memories: int = 6
    epsilon: float = 1e-5
    stop: int = 10
    delta: float = 1e-5
    max_iterations: Optional[int] = None
    linesearch: str = "MoreThuente"
    max_linesearch: int = 20
    orthantwise_c: float = 0.0
    orthantwise_start: int = 0


@dataclass
class IterationReport:
    iteration: int
    fx: float
    xnorm: float
    gnorm: float
    step: float
    num_active: int
    num_features: int
    linesearch_trials: int
    seconds: float
    x: np.ndarray = field(repr=False)


@dataclass
class LBFGSResult:
    status: LBFGSStatus
    x: np.ndarray = field(repr=False)
    fx: float
    iterations: int
    message: str

    @property
    def ok(self) -> bool:
        return self.status.ok


class LBFGSObjective(ABC):
    """Callbacks invoked by :func:`minimize`."""

    @abstractmethod
    def evaluate(self, x: np.ndarray) -> Tuple[float, np.ndarray]:
        """Return the objective value and its gradient at ``x``."""

    def progress(self, report: IterationReport) -> bool:
        """Called after every iteration; returning ``False`` cancels the run."""

        return True


class _Abort(Exception):
    def __init__(self, status: LBFGSStatus) -> None:
        super().__init__(status.value)
        self.status = status


def pseudo_gradient(x: np.ndarray, g: np.ndarray, c: float, start: int = 0) -> np.ndarray:
    """Return the OWL-QN pseudo-gradient of ``f(x) + c * |x[start:]|_1``."""

    pg = g.copy()
    xs = x[start:]
    gs = g[start:]
    pg[start:] = np.where(
        xs > 0.0,
        gs + c,
        np.where(
            xs < 0.0,
            gs - c,
            np.where(gs + c < 0.0, gs + c, np.where(gs - c > 0.0, gs - c, 0.0)),
        ),
    )
    return pg


class _SolverState:
    def __init__(self, x0: np.ndarray) -> None:
        self.evaluations = 0
        self.evaluations_before = 0
        self.iteration = 0
        self.last_z: Optional[np.ndarray] = None
        self.last_fx = 0.0
        self.last_g: Optional[np.ndarray] = None
        self.best = x0.copy()
        self.best_fx = float("nan")
        self.history: List[float] = []
        self.status: Optional[LBFGSStatus] = None
        self.clock = time.perf_counter()


def minimize(objective: LBFGSObjective, x0: np.ndarray, params: Optional[LBFGSParams] = None) -> LBFGSResult:
    """Minimize ``objective`` starting from ``x0``.

    Termination: ``‖g‖ / max(1, ‖x‖) <= epsilon`` (convergence), the relative
    improvement over the last ``stop`` iterations below ``delta`` (stop), the
    iteration limit, a line search failure, or a non-finite objective or
    gradient.  The returned vector is the last accepted iterate.
    """

    params = params or LBFGSParams()
    x0 = np.asarray(x0, dtype=float)
    n = x0.size
    c = params.orthantwise_c
    start = params.orthantwise_start
    split = c > 0.0
    state = _SolverState(x0)

    if split:
        u0 = np.maximum(x0, 0.0)
        v0 = np.maximum(-x0, 0.0)
        u0[:start] = x0[:start]
        v0[:start] = 0.0
        z0 = np.concatenate([u0, v0])
        lower = np.concatenate([np.full(start, -np.inf), np.zeros(n - start), np.zeros(n)])
        upper = np.concatenate([np.full(n, np.inf), np.zeros(start), np.full(n - start, np.inf)])
        bounds = optimize.Bounds(lower, upper)
    else:
        z0 = x0.copy()
        bounds = None

    def to_x(z: np.ndarray) -> np.ndarray:
        return z[:n] - z[n:] if split else z

    def fun(z: np.ndarray) -> Tuple[float, np.ndarray]:
        x = to_x(z)
        fx, g = objective.evaluate(x)
        state.evaluations += 1
        if not np.isfinite(fx) or not np.all(np.isfinite(g)):
            raise _Abort(LBFGSStatus.NUMERICAL_ERROR)
        if split:
            fx += c * (z[start:n].sum() + z[n + start :].sum())
            gz = np.concatenate([g, -g])
            gz[start:n] += c
            gz[n + start :] += c
        else:
            gz = g
        if state.evaluations == 1:
            state.best_fx = fx
            state.history.append(fx)
        state.last_z = z.copy()
        state.last_fx = fx
        state.last_g = g
        return fx, gz

    def callback(zk: np.ndarray) -> None:
        if state.last_z is None or not np.array_equal(state.last_z, zk):
            fun(zk)
        fx = state.last_fx
        g = state.last_g
        x = to_x(zk).copy()

        state.iteration += 1
        trials = state.evaluations - state.evaluations_before
        state.evaluations_before = state.evaluations

        xnorm = float(np.linalg.norm(x))
        gnorm = float(np.linalg.norm(pseudo_gradient(x, g, c, start) if split else g))
        step = float(np.linalg.norm(x - state.best))
        now = time.perf_counter()
        seconds = now - state.clock
        state.clock = now
        state.best = x
        state.best_fx = fx

        report = IterationReport(
            iteration=state.iteration,
            fx=fx,
            xnorm=xnorm,
            gnorm=gnorm,
            step=step,
            num_active=int(np.count_nonzero(x)),
            num_features=n,
            linesearch_trials=trials,
            seconds=seconds,
            x=x,
        )
        if objective.progress(report) is False:
            state.status = LBFGSStatus.CANCELED
            raise StopIteration

        if gnorm / max(1.0, xnorm) <= params.epsilon:
            state.status = LBFGSStatus.CONVERGENCE
            raise StopIteration

        if params.stop > 0 and len(state.history) >= params.stop:
            previous = state.history[-params.stop]
            rate = (previous - fx) / (abs(fx) if fx != 0.0 else 1.0)
            if rate < params.delta:
                state.status = LBFGSStatus.STOP
                raise StopIteration
        state.history.append(fx)

    options = {
        "maxcor": params.num_memories,
        "maxls": params.max_linesearch,
        "maxiter": params.max_iterations if params.max_iterations is not None else MAX_ITERATIONS,
        "maxfun": MAX_ITERATIONS,
    }
    try:
        result = optimize.minimize(
            fun, z0, jac=True, method="L-BFGS-B", bounds=bounds, callback=callback, options=options
        )
    except _Abort as abort:
        LOGGER.warning("%s", STATUS_MESSAGES[abort.status])
        return LBFGSResult(
            abort.status, state.best, state.best_fx, state.iteration, STATUS_MESSAGES[abort.status]
        )

    if state.status is not None:
        status = state.status
        message = STATUS_MESSAGES[status]
        x = state.best
        fx = state.best_fx
    else:
        status = {0: LBFGSStatus.SUCCESS, 1: LBFGSStatus.MAXIMUM_ITERATION}.get(
            result.status, LBFGSStatus.LINESEARCH_FAILURE
        )
        message = f"{STATUS_MESSAGES[status]} ({result.message})"
        if status is LBFGSStatus.LINESEARCH_FAILURE:
            x = state.best
            fx = state.best_fx
        else:
            x = to_x(result.x).copy()
            fx = float(result.fun)
    return LBFGSResult(status, x, fx, state.iteration, message)
