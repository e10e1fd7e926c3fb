from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

import numpy as np
from scipy.optimize import minimize

Objective = Callable[[np.ndarray], float]


@dataclass(frozen=True, slots=True)
class MinimizerResult:
    x: np.ndarray
    value: float
    barrier_value: float
    outer_iterations: int
    evaluations: int
    converged: bool
    message: str


class Minimizer(Protocol):
    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        *,
        ui: np.ndarray,
        ci: np.ndarray,
    ) -> MinimizerResult: ...


def _initial_simplex(x0: np.ndarray) -> np.ndarray:
    step = 0.1 * float(np.max(np.abs(x0)))
    if step == 0.0:
        step = 0.1
    return np.vstack((x0, x0 + step * np.eye(x0.size)))


class BarrierNelderMead:
    """Nelder-Mead under linear inequality constraints ``ui @ x - ci >= 0``.

    An adaptive logarithmic barrier keeps the simplex strictly inside the
    feasible region. Each outer iteration re-centres the barrier on the current
    iterate and runs a bounded Nelder-Mead search on the barrier-augmented
    objective. The search stops when the barrier value settles, when the plain
    objective stops decreasing, or after ``outer_iterations`` rounds.
    """

    def __init__(
        self,
        *,
        max_iter: int = 300,
        reltol: float = 1e-6,
        mu: float = 1e-4,
        outer_iterations: int = 100,
        outer_eps: float = 1e-5,
        logger: logging.Logger | None = None,
    ) -> None:
        self.max_iter = max_iter
        self.reltol = reltol
        self.mu = mu
        self.outer_iterations = outer_iterations
        self.outer_eps = outer_eps
        self.logger = logger

    def _barrier(
        self,
        objective: Objective,
        theta: np.ndarray,
        theta_old: np.ndarray,
        ui: np.ndarray,
        ci: np.ndarray,
    ) -> float:
        ui_theta = ui @ theta
        gi = ui_theta - ci
        if np.any(gi < 0):
            return np.inf
        gi_old = ui @ theta_old - ci
        with np.errstate(divide="ignore", invalid="ignore"):
            bar = float(np.sum(gi_old * np.log(gi) - ui_theta))
        if not np.isfinite(bar):
            bar = -np.inf
        value = objective(theta) - self.mu * bar
        return value if np.isfinite(value) else np.inf

    def _inner(self, fun: Objective, x0: np.ndarray):
        f_start = fun(x0)
        fatol = self.reltol * (abs(f_start) + self.reltol) if np.isfinite(f_start) else self.reltol
        return minimize(
            fun,
            x0,
            method="Nelder-Mead",
            options={
                "maxfev": self.max_iter,
                "xatol": np.inf,
                "fatol": fatol,
                "initial_simplex": _initial_simplex(x0),
            },
        )

    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        *,
        ui: np.ndarray,
        ci: np.ndarray,
    ) -> MinimizerResult:
        theta = np.asarray(x0, dtype=float)
        if np.any(ui @ theta - ci <= 0):
            raise ValueError("Initial value is not in the interior of the feasible region.")

        obj = objective(theta)
        r = self._barrier(objective, theta, theta, ui, ci)
        evaluations = 0
        converged = True
        message = "converged"
        inner = None
        outer = 0

        for outer in range(1, self.outer_iterations + 1):
            obj_old = obj
            r_old = r
            theta_old = theta

            inner = self._inner(
                lambda candidate: self._barrier(objective, candidate, theta_old, ui, ci),
                theta_old,
            )
            evaluations += int(inner.nfev)
            r = float(inner.fun)
            if np.isfinite(r) and np.isfinite(r_old) and abs(r - r_old) < (1e-3 + abs(r)) * self.outer_eps:
                break
            theta = inner.x
            obj = objective(theta)
            if obj > obj_old:
                break
        else:
            converged = False
            message = "Barrier algorithm ran out of iterations and did not converge"

        if obj > obj_old:
            converged = False
            message = f"Objective function increased at outer iteration {outer}"
        elif inner is not None and not inner.success:
            converged = False
            message = f"Nelder-Mead stopped early: {inner.message}"

        x_best = np.asarray(inner.x, dtype=float)
        value = objective(x_best)
        if self.logger is not None:
            self.logger.debug(
                "Barrier Nelder-Mead finished after %d outer iteration(s), %d evaluation(s): %s",
                outer,
                evaluations,
                message,
            )

        return MinimizerResult(
            x=x_best,
            value=float(value),
            barrier_value=float(inner.fun) - float(value),
            outer_iterations=outer,
            evaluations=evaluations,
            converged=converged,
            message=message,
        )
