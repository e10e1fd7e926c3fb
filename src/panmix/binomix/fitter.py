from __future__ import annotations

import math
from dataclasses import dataclass
from functools import partial

import numpy as np

from panmix.binomix.likelihood import negative_truncated_log_likelihood
from panmix.binomix.minimizer import BarrierNelderMead, Minimizer
from panmix.binomix.params import MixtureParameters, initial_free_parameters, linear_constraints
from panmix.exceptions import PanMixUsageError
from panmix.logging import get_logger
from panmix.utils.validation import validate_core_detect_prob, validate_k_range

logger = get_logger("panmix.binomix")


@dataclass(frozen=True, slots=True)
class SizeEstimates:
    core_size: int
    pan_size: int
    bic: float


@dataclass(frozen=True, slots=True)
class ComponentRow:
    k: int
    detection_prob: float
    mixing_proportion: float


@dataclass(frozen=True, slots=True)
class MixtureFit:
    """A fitted K-component binomial mixture and the sizes derived from it."""

    k: int
    core_size: int
    pan_size: int
    bic: float
    detection_probs: tuple[float, ...]
    mixing_proportions: tuple[float, ...]
    neg_log_likelihood: float
    converged: bool
    message: str

    @property
    def estimates(self) -> SizeEstimates:
        return SizeEstimates(core_size=self.core_size, pan_size=self.pan_size, bic=self.bic)

    def component_rows(self) -> list[ComponentRow]:
        return [
            ComponentRow(k=self.k, detection_prob=detection, mixing_proportion=proportion)
            for detection, proportion in zip(self.detection_probs, self.mixing_proportions)
        ]


def bayesian_information_criterion(neg_log_likelihood: float, n_clusters: int, k: int) -> float:
    # penalty counts (K - 1) + K parameters
    return 2.0 * neg_log_likelihood + math.log(n_clusters) * ((k - 1) + k)


def fit_binomix(
    histogram: np.ndarray,
    k: int,
    core_detect_prob: float = 1.0,
    *,
    minimizer: Minimizer | None = None,
) -> MixtureFit:
    """Fit a K-component zero-truncated binomial mixture to a presence histogram.

    The core component's detection probability is held at ``core_detect_prob``;
    the remaining K-1 detection probabilities and K-1 weights are estimated.
    The unobserved zero class predicted by the fit extrapolates the pan-genome
    size, and the weight of components at or above the core detection
    probability gives the core size.
    """

    (k,) = validate_k_range([k])
    core_detect_prob = validate_core_detect_prob(core_detect_prob)
    y = np.asarray(histogram, dtype=np.int64)
    n_clusters = int(y.sum())
    n_genomes = int(y.size)
    if n_clusters <= 0:
        raise PanMixUsageError("Presence histogram holds no observed gene clusters.")

    engine = minimizer if minimizer is not None else BarrierNelderMead(logger=logger)
    ui, ci = linear_constraints(k)
    result = engine.minimize(
        partial(negative_truncated_log_likelihood, histogram=y, core_detect_prob=core_detect_prob),
        initial_free_parameters(k),
        ui=ui,
        ci=ci,
    )
    if not result.converged:
        logger.warning("%d component model did not converge: %s", k, result.message)

    params = MixtureParameters.from_free(result.x, core_detect_prob).sorted_by_detection()
    theta_0 = params.zero_class_probability(n_genomes)
    pan_size = n_clusters + int(round(n_clusters * theta_0 / (1.0 - theta_0)))
    is_core = params.detection_probs >= core_detect_prob
    core_size = int(round(pan_size * float(np.sum(params.mixing_proportions[is_core]))))

    return MixtureFit(
        k=k,
        core_size=core_size,
        pan_size=pan_size,
        bic=bayesian_information_criterion(result.value, n_clusters, k),
        detection_probs=tuple(float(p) for p in params.detection_probs),
        mixing_proportions=tuple(float(w) for w in params.mixing_proportions),
        neg_log_likelihood=result.value,
        converged=result.converged,
        message=result.message,
    )
