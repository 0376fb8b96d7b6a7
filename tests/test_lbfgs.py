import numpy as np
import pytest

from sparselin.lbfgs import LBFGSObjective, LBFGSParams, LBFGSStatus, minimize, pseudo_gradient


class Quadratic(LBFGSObjective):
    """0.5 * |x - target|^2"""

    def __init__(self, target, cancel=False):
        self.target = np.asarray(target, dtype=float)
        self.cancel = cancel
        self.reports = []

    def evaluate(self, x):
        diff = x - self.target
        return 0.5 * float(diff @ diff), diff.copy()

    def progress(self, report):
        self.reports.append(report)
        return not self.cancel


class NotANumber(LBFGSObjective):
    def evaluate(self, x):
        return float("nan"), np.zeros_like(x)


def test_quadratic_minimum():
    objective = Quadratic([1.0, -2.0, 3.0])
    result = minimize(objective, np.zeros(3))
    assert result.ok
    assert result.x == pytest.approx([1.0, -2.0, 3.0], abs=1e-4)
    assert result.iterations == len(objective.reports) >= 1
    assert objective.reports[0].iteration == 1
    assert objective.reports[0].num_features == 3


def test_l1_shrinks_toward_zero():
    params = LBFGSParams(orthantwise_c=1.0)
    result = minimize(Quadratic([3.0, 0.5, -4.0]), np.zeros(3), params)
    assert result.ok
    assert result.x == pytest.approx([2.0, 0.0, -3.0], abs=1e-3)


def test_l1_leaves_leading_weights_unpenalized():
    params = LBFGSParams(orthantwise_c=1.0, orthantwise_start=1)
    result = minimize(Quadratic([0.5, 0.5]), np.zeros(2), params)
    assert result.x == pytest.approx([0.5, 0.0], abs=1e-3)


def test_progress_can_cancel():
    objective = Quadratic([5.0, 5.0], cancel=True)
    result = minimize(objective, np.zeros(2))
    assert result.status is LBFGSStatus.CANCELED
    assert not result.ok
    assert result.iterations == 1


def test_non_finite_objective_aborts():
    x0 = np.array([1.0, 2.0])
    result = minimize(NotANumber(), x0)
    assert result.status is LBFGSStatus.NUMERICAL_ERROR
    assert np.array_equal(result.x, x0)


def test_pseudo_gradient():
    x = np.array([1.0, -1.0, 0.0, 0.0, 0.0])
    g = np.array([0.5, 0.5, -2.0, 2.0, 0.5])
    assert pseudo_gradient(x, g, 1.0).tolist() == [1.5, -0.5, -1.0, 1.0, 0.0]
    assert pseudo_gradient(x, g, 1.0, start=1)[0] == 0.5
