"""Binomial mixture models of gene cluster presence across genomes."""

from panmix.binomix.fitter import ComponentRow, MixtureFit, SizeEstimates, fit_binomix
from panmix.binomix.histogram import presence_histogram
from panmix.binomix.minimizer import BarrierNelderMead, Minimizer, MinimizerResult
from panmix.binomix.selector import (
    BicRow,
    BinomixResult,
    estimate_binomix,
    estimate_binomix_from_histogram,
)

__all__ = [
    "BarrierNelderMead",
    "BicRow",
    "BinomixResult",
    "ComponentRow",
    "Minimizer",
    "MinimizerResult",
    "MixtureFit",
    "SizeEstimates",
    "estimate_binomix",
    "estimate_binomix_from_histogram",
    "fit_binomix",
    "presence_histogram",
]
