"""Datasets and feature filters."""

from .dataset import MAX_FOLD_DATA_RATIO, Sample, SampleDataset
from .filters import FeatureFilter

__all__ = [
    "Sample",
    "SampleDataset",
    "MAX_FOLD_DATA_RATIO",
    "FeatureFilter",
]
