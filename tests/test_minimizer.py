from __future__ import annotations

import numpy as np
import pytest

from panmix.binomix.minimizer import BarrierNelderMead

UNIT_BOX_UI = np.vstack((np.eye(2), -np.eye(2)))
UNIT_BOX_CI = np.array([0.0, 0.0, -1.0, -1.0])


def test_interior_optimum_is_found() -> None:
    def objective(x: np.ndarray) -> float:
        return float((x[0] - 0.3) ** 2 + (x[1] - 0.6) ** 2)

    result = BarrierNelderMead().minimize(
        objective, np.array([0.5, 0.5]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI
    )

    assert np.allclose(result.x, [0.3, 0.6], atol=1e-2)
    assert result.value == pytest.approx(objective(result.x))
    assert result.evaluations > 0
    assert result.outer_iterations >= 1


def test_constrained_optimum_stays_feasible() -> None:
    def objective(x: np.ndarray) -> float:
        return float((x[0] - 2.0) ** 2 + (x[1] - 2.0) ** 2)

    result = BarrierNelderMead().minimize(
        objective, np.array([0.5, 0.5]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI
    )

    assert np.all(UNIT_BOX_UI @ result.x - UNIT_BOX_CI >= 0)
    assert np.allclose(result.x, [1.0, 1.0], atol=2e-2)


def test_infinite_objective_regions_are_avoided() -> None:
    def objective(x: np.ndarray) -> float:
        if x[0] + x[1] > 1.2:
            return np.inf
        return float(-(x[0] + x[1]))

    result = BarrierNelderMead().minimize(
        objective, np.array([0.3, 0.3]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI
    )

    assert np.isfinite(result.value)
    assert result.x.sum() <= 1.2


def test_rejects_infeasible_start() -> None:
    with pytest.raises(ValueError, match="interior"):
        BarrierNelderMead().minimize(
            lambda x: 0.0, np.array([1.0, 0.5]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI
        )


def test_is_deterministic() -> None:
    def objective(x: np.ndarray) -> float:
        return float(np.sin(3 * x[0]) + (x[1] - 0.2) ** 2)

    first = BarrierNelderMead().minimize(objective, np.array([0.5, 0.5]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI)
    second = BarrierNelderMead().minimize(objective, np.array([0.5, 0.5]), ui=UNIT_BOX_UI, ci=UNIT_BOX_CI)

    assert first.x.tolist() == second.x.tolist()
    assert first.value == second.value
