from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike

from panmix.panmatrix import PanMatrix


def presence_histogram(pan_matrix: PanMatrix | ArrayLike) -> np.ndarray:
    """Count gene clusters by the number of genomes they are present in.

    Bin ``g - 1`` holds the number of clusters found in exactly ``g`` genomes,
    for ``g = 1..G``. Copy numbers are reduced to presence/absence first, and
    clusters absent from every genome are not observable, so they are dropped.
    """

    counts = pan_matrix.counts if isinstance(pan_matrix, PanMatrix) else np.asarray(pan_matrix)
    if counts.ndim != 2:
        raise ValueError(f"Pan-matrix must be two-dimensional, got {counts.ndim} dimension(s).")

    n_genomes, n_clusters = counts.shape
    if n_genomes == 0 or n_clusters == 0:
        raise ValueError("Pan-matrix needs at least one genome and one gene cluster.")
    if np.any(counts < 0):
        raise ValueError("Pan-matrix counts must be non-negative.")

    presence = pan_matrix.presence() if isinstance(pan_matrix, PanMatrix) else counts > 0
    genomes_per_cluster = presence.sum(axis=0)
    return np.bincount(genomes_per_cluster, minlength=n_genomes + 1)[1:].astype(np.int64)
