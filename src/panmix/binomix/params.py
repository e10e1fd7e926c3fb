from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class MixtureParameters:
    """Full K-length mixture: one detection probability and weight per component."""

    detection_probs: np.ndarray
    mixing_proportions: np.ndarray

    @classmethod
    def from_free(cls, free: np.ndarray, core_detect_prob: float) -> "MixtureParameters":
        """Expand the ``2 (K - 1)`` optimised scalars into the full mixture.

        ``free`` holds the K-1 free weights followed by the K-1 free detection
        probabilities. The core component comes first, its weight is whatever
        the free weights leave and its detection probability is fixed.
        """

        free = np.asarray(free, dtype=float)
        n_free = free.size // 2
        weights = free[:n_free]
        detections = free[n_free:]
        return cls(
            detection_probs=np.concatenate(([core_detect_prob], detections)),
            mixing_proportions=np.concatenate(([1.0 - weights.sum()], weights)),
        )

    @property
    def n_components(self) -> int:
        return int(self.detection_probs.size)

    def is_valid(self) -> bool:
        return bool(
            np.all(self.mixing_proportions >= 0.0)
            and np.all(self.detection_probs >= 0.0)
            and np.all(self.detection_probs <= 1.0)
        )

    def sorted_by_detection(self) -> "MixtureParameters":
        order = np.argsort(self.detection_probs, kind="stable")
        return MixtureParameters(
            detection_probs=self.detection_probs[order],
            mixing_proportions=self.mixing_proportions[order],
        )

    def zero_class_probability(self, n_genomes: int) -> float:
        """Mixture mass on clusters present in none of ``n_genomes`` genomes."""

        return float(np.sum(self.mixing_proportions * (1.0 - self.detection_probs) ** n_genomes))


def initial_free_parameters(k: int) -> np.ndarray:
    # flat weights, detection probabilities spread evenly inside (0, 1)
    n_free = k - 1
    weights = np.full(n_free, 1.0 / k)
    detections = np.arange(1, n_free + 1) / (n_free + 1)
    return np.concatenate((weights, detections))


def linear_constraints(k: int) -> tuple[np.ndarray, np.ndarray]:
    """Feasible region ``ui @ x - ci >= 0`` for the free parameters of a K-mixture.

    Rows: sum of free weights >= 0, sum of free weights <= 1, then every free
    parameter >= 0 and every free parameter <= 1.
    """

    n_free = k - 1
    n_params = 2 * n_free
    weight_row = np.concatenate((np.ones(n_free), np.zeros(n_free)))
    ui = np.vstack(
        (
            weight_row,
            -weight_row,
            np.eye(n_params),
            -np.eye(n_params),
        )
    )
    ci = np.concatenate(([0.0, -1.0], np.zeros(n_params), -np.ones(n_params)))
    return ui, ci
