"""PanMix: binomial mixture estimates of pan-genome and core-genome size."""

__version__ = "0.1.0"
