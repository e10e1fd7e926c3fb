from __future__ import annotations

import numpy as np
from scipy.special import gammaln, logsumexp, xlog1py, xlogy

from panmix.binomix.params import MixtureParameters


def log_bin_probabilities(params: MixtureParameters, n_genomes: int) -> np.ndarray:
    """log P(cluster observed in exactly g genomes) for g = 1..G under the mixture."""

    genomes = np.arange(1, n_genomes + 1)[:, None]
    absent = n_genomes - genomes
    log_choose = gammaln(n_genomes + 1) - gammaln(genomes + 1) - gammaln(absent + 1)
    detection = params.detection_probs[None, :]
    with np.errstate(divide="ignore"):
        log_weights = np.log(params.mixing_proportions)[None, :]
    # rows: genome counts, columns: components; xlogy keeps 0 * log(0) at 0
    log_terms = log_weights + log_choose + xlogy(genomes, detection) + xlog1py(absent, -detection)
    return logsumexp(log_terms, axis=1)


def negative_truncated_log_likelihood(
    free: np.ndarray,
    histogram: np.ndarray,
    core_detect_prob: float,
) -> float:
    """Negative zero-truncated log-likelihood of a binomial mixture.

    Clusters present in zero genomes are never recorded, so the likelihood of
    the observed bins is renormalised by ``1 - theta_0``. Parameter vectors
    outside the simplex, or that give an observed bin zero probability, score
    ``inf``.
    """

    params = MixtureParameters.from_free(free, core_detect_prob)
    if not params.is_valid():
        return np.inf

    y = np.asarray(histogram, dtype=float)
    n_genomes = y.size
    n_clusters = y.sum()

    theta_0 = params.zero_class_probability(n_genomes)
    if theta_0 >= 1.0:
        return np.inf

    observed = y > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        log_theta = log_bin_probabilities(params, n_genomes)
        log_lik = -n_clusters * np.log1p(-theta_0) + np.sum(y[observed] * log_theta[observed])

    if not np.isfinite(log_lik):
        return np.inf
    return float(-log_lik)
