from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike

from panmix.binomix.fitter import ComponentRow, MixtureFit, fit_binomix
from panmix.binomix.histogram import presence_histogram
from panmix.binomix.minimizer import Minimizer
from panmix.exceptions import BoundaryOptimumWarning, PanMixUsageError
from panmix.logging import get_logger
from panmix.panmatrix import PanMatrix
from panmix.utils.validation import validate_core_detect_prob, validate_k_range

logger = get_logger("panmix.binomix")

DEFAULT_K_RANGE = (3, 4, 5)

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True, slots=True)
class BicRow:
    k: int
    core_size: int
    pan_size: int
    bic: float


@dataclass(slots=True)
class BinomixResult:
    """Model comparison over a range of component counts."""

    bic_table: list[BicRow]
    mixture_table: list[ComponentRow]
    fits: list[MixtureFit]
    warnings: list[str] = field(default_factory=list)

    def optimal_fit(self) -> MixtureFit:
        """Fit with minimum BIC; the smallest K wins ties."""

        return min(self.fits, key=lambda fit: fit.bic)


def boundary_optimum(bics: Sequence[float]) -> bool:
    """True when the minimum BIC is reached by the last model tried."""

    return bool(bics) and bics[-1] == min(bics)


def _fit_all(
    histogram: np.ndarray,
    k_values: list[int],
    core_detect_prob: float,
    *,
    verbose: bool,
    progress: ProgressCallback | None,
    threads: int,
    minimizer: Minimizer | None,
) -> list[MixtureFit]:
    def _fit_one(k: int) -> MixtureFit:
        if verbose:
            logger.info("Fitting %d component model...", k)
        if progress is not None:
            progress(k, "fitting")
        return fit_binomix(histogram, k, core_detect_prob, minimizer=minimizer)

    if threads <= 1 or len(k_values) == 1:
        fits = []
        for k in k_values:
            fits.append(_fit_one(k))
            if progress is not None:
                progress(k, "done")
        return fits

    fits_by_index: dict[int, MixtureFit] = {}
    with ThreadPoolExecutor(max_workers=threads) as pool:
        futures = {pool.submit(_fit_one, k): idx for idx, k in enumerate(k_values)}
        for future in as_completed(futures):
            idx = futures[future]
            fits_by_index[idx] = future.result()
            if progress is not None:
                progress(k_values[idx], "done")

    return [fits_by_index[idx] for idx in range(len(k_values))]


def estimate_binomix_from_histogram(
    histogram: ArrayLike,
    k_range: Sequence[int] = DEFAULT_K_RANGE,
    core_detect_prob: float = 1.0,
    *,
    verbose: bool = True,
    progress: ProgressCallback | None = None,
    threads: int = 1,
    minimizer: Minimizer | None = None,
) -> BinomixResult:
    """Fit one binomial mixture per entry of ``k_range`` and compare them by BIC.

    Rows of both tables follow the order of ``k_range`` regardless of
    ``threads``. If the smallest BIC belongs to the last K tried, the optimum
    may lie beyond the range: a :class:`BoundaryOptimumWarning` is issued and
    recorded on the result, which is still returned in full.
    """

    k_values = validate_k_range(k_range)
    core_detect_prob = validate_core_detect_prob(core_detect_prob)
    if threads < 1:
        raise PanMixUsageError(f"threads must be >= 1, got {threads}")
    y = np.asarray(histogram, dtype=np.int64)

    fits = _fit_all(
        y,
        k_values,
        core_detect_prob,
        verbose=verbose,
        progress=progress,
        threads=threads,
        minimizer=minimizer,
    )

    result = BinomixResult(
        bic_table=[
            BicRow(k=fit.k, core_size=fit.core_size, pan_size=fit.pan_size, bic=fit.bic)
            for fit in fits
        ],
        mixture_table=[row for fit in fits for row in fit.component_rows()],
        fits=fits,
    )

    for fit in fits:
        if not fit.converged:
            result.warnings.append(f"{fit.k} component model did not converge: {fit.message}")

    if boundary_optimum([row.bic for row in result.bic_table]):
        message = "Minimum BIC at maximum K, increase upper limit of K range"
        result.warnings.append(message)
        warnings.warn(message, BoundaryOptimumWarning, stacklevel=2)

    return result


def estimate_binomix(
    pan_matrix: PanMatrix | ArrayLike,
    k_range: Sequence[int] = DEFAULT_K_RANGE,
    core_detect_prob: float = 1.0,
    *,
    verbose: bool = True,
    progress: ProgressCallback | None = None,
    threads: int = 1,
    minimizer: Minimizer | None = None,
) -> BinomixResult:
    """Binomial mixture estimates of pan- and core-genome size from a pan-matrix.

    Only presence/absence matters: copy numbers are binarised before the
    presence histogram is built.
    """

    return estimate_binomix_from_histogram(
        presence_histogram(pan_matrix),
        k_range,
        core_detect_prob,
        verbose=verbose,
        progress=progress,
        threads=threads,
        minimizer=minimizer,
    )
