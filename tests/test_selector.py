from __future__ import annotations

import logging
import warnings

import numpy as np
import pytest
from scipy import stats

from panmix.binomix.minimizer import MinimizerResult
from panmix.binomix.selector import (
    boundary_optimum,
    estimate_binomix,
    estimate_binomix_from_histogram,
)
from panmix.exceptions import BoundaryOptimumWarning, InvalidComponentRange, PanMixUsageError

HISTOGRAM = np.array([14, 6, 4, 3, 5, 22])


class ScriptedMinimizer:
    """Reports a preset objective value per number of components."""

    def __init__(self, values_by_k: dict[int, float], converged: bool = True) -> None:
        self.values_by_k = values_by_k
        self.converged = converged

    def minimize(self, objective, x0, *, ui, ci) -> MinimizerResult:  # type: ignore[no-untyped-def]
        k = x0.size // 2 + 1
        return MinimizerResult(
            x=np.asarray(x0, dtype=float),
            value=self.values_by_k[k],
            barrier_value=0.0,
            outer_iterations=1,
            evaluations=1,
            converged=self.converged,
            message="converged" if self.converged else "ran out of iterations",
        )


def test_boundary_optimum_helper() -> None:
    assert boundary_optimum([30.0, 20.0, 10.0])
    assert not boundary_optimum([30.0, 10.0, 20.0])
    assert boundary_optimum([5.0])
    assert not boundary_optimum([])


def test_warns_when_minimum_bic_is_at_largest_k() -> None:
    minimizer = ScriptedMinimizer({3: 500.0, 4: 100.0})

    with pytest.warns(BoundaryOptimumWarning, match="increase upper limit"):
        result = estimate_binomix_from_histogram(HISTOGRAM, [3, 4], minimizer=minimizer)

    assert [row.k for row in result.bic_table] == [3, 4]
    assert len(result.mixture_table) == 3 + 4
    assert any("Minimum BIC at maximum K" in message for message in result.warnings)


def _five_component_histogram(n_genomes: int = 12, pan_size: int = 20000) -> np.ndarray:
    weights = np.array([0.3, 0.15, 0.15, 0.1, 0.3])
    detection = np.array([0.05, 0.25, 0.5, 0.8, 1.0])
    genomes = np.arange(1, n_genomes + 1)[:, None]
    expected = pan_size * (weights * stats.binom.pmf(genomes, n_genomes, detection)).sum(axis=1)
    return np.rint(expected).astype(np.int64)


def test_real_fit_warns_when_range_stops_below_true_component_count() -> None:
    histogram = _five_component_histogram()

    with pytest.warns(BoundaryOptimumWarning):
        result = estimate_binomix_from_histogram(histogram, [3, 4], verbose=False)

    assert [row.k for row in result.bic_table] == [3, 4]
    assert result.bic_table[1].bic < result.bic_table[0].bic
    assert len(result.mixture_table) == 3 + 4
    for row in result.bic_table:
        assert row.core_size <= row.pan_size
        assert row.pan_size >= int(histogram.sum())


def test_no_warning_for_interior_optimum() -> None:
    minimizer = ScriptedMinimizer({3: 300.0, 4: 100.0, 5: 300.0})

    with warnings.catch_warnings():
        warnings.simplefilter("error", BoundaryOptimumWarning)
        result = estimate_binomix_from_histogram(HISTOGRAM, [3, 4, 5], minimizer=minimizer)

    assert result.warnings == []
    assert result.optimal_fit().k == 4


def test_tables_follow_k_range_order_when_parallel() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", BoundaryOptimumWarning)
        serial = estimate_binomix_from_histogram(HISTOGRAM, [5, 2, 3], verbose=False, threads=1)
        parallel = estimate_binomix_from_histogram(HISTOGRAM, [5, 2, 3], verbose=False, threads=3)

    assert [row.k for row in parallel.bic_table] == [5, 2, 3]
    assert [row.k for row in parallel.mixture_table] == [5] * 5 + [2] * 2 + [3] * 3
    assert parallel.bic_table == serial.bic_table
    assert parallel.mixture_table == serial.mixture_table


def test_mixture_table_groups_are_sorted_and_normalised() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", BoundaryOptimumWarning)
        result = estimate_binomix_from_histogram(HISTOGRAM, [2, 3, 4], verbose=False)

    for k in (2, 3, 4):
        rows = [row for row in result.mixture_table if row.k == k]
        assert len(rows) == k
        detections = [row.detection_prob for row in rows]
        assert detections == sorted(detections)
        assert abs(sum(row.mixing_proportion for row in rows) - 1.0) < 1e-6

    for row in result.bic_table:
        assert row.core_size <= row.pan_size
        assert row.pan_size >= int(HISTOGRAM.sum())


def test_progress_callback_and_verbose_logging(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="panmix.binomix")
    calls: list[tuple[int, str]] = []
    minimizer = ScriptedMinimizer({3: 300.0, 4: 100.0, 5: 300.0})

    estimate_binomix_from_histogram(
        HISTOGRAM,
        [3, 4, 5],
        progress=lambda k, status: calls.append((k, status)),
        minimizer=minimizer,
    )

    assert calls == [
        (3, "fitting"),
        (3, "done"),
        (4, "fitting"),
        (4, "done"),
        (5, "fitting"),
        (5, "done"),
    ]
    assert "Fitting 4 component model..." in caplog.text


def test_quiet_selector_does_not_log_progress(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="panmix.binomix")
    minimizer = ScriptedMinimizer({3: 300.0, 4: 100.0, 5: 300.0})

    estimate_binomix_from_histogram(HISTOGRAM, [3, 4, 5], verbose=False, minimizer=minimizer)

    assert "Fitting" not in caplog.text


def test_non_converged_fits_are_reported() -> None:
    minimizer = ScriptedMinimizer({3: 300.0, 4: 100.0, 5: 300.0}, converged=False)

    result = estimate_binomix_from_histogram(HISTOGRAM, [3, 4, 5], minimizer=minimizer)

    assert len(result.bic_table) == 3
    assert sum("did not converge" in message for message in result.warnings) == 3


def test_estimate_from_pan_matrix_uses_presence_only() -> None:
    counts = np.array(
        [
            [1, 1, 2, 0, 1, 3, 1, 0],
            [1, 0, 1, 1, 1, 1, 0, 0],
            [2, 0, 1, 0, 1, 1, 0, 1],
            [1, 0, 4, 0, 1, 2, 0, 0],
        ]
    )
    minimizer = ScriptedMinimizer({3: 300.0, 4: 100.0, 5: 300.0})

    copies = estimate_binomix(counts, minimizer=minimizer, verbose=False)
    presence = estimate_binomix((counts > 0).astype(int), minimizer=minimizer, verbose=False)

    assert copies.bic_table == presence.bic_table
    assert [row.k for row in copies.bic_table] == [3, 4, 5]


@pytest.mark.parametrize("k_range", [[1, 3], [], [3, 0]])
def test_rejects_invalid_k_range(k_range: list[int]) -> None:
    with pytest.raises(InvalidComponentRange):
        estimate_binomix_from_histogram(HISTOGRAM, k_range)


def test_rejects_invalid_threads() -> None:
    with pytest.raises(PanMixUsageError):
        estimate_binomix_from_histogram(HISTOGRAM, [3], threads=0)
