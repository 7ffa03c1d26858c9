"""Finished models, their confidence metrics, and diagnostics."""

from .base import Model
from .confidence import (
    NO_VALIDATION_PENALTY,
    TRAINING_TO_VALIDATION_RATIO_COEFF,
    ConfidenceMetrics,
)
from .diagnostics import DiagnosticRecord
from .network import NetworkModel

__all__ = [
    "Model",
    "NetworkModel",
    "ConfidenceMetrics",
    "NO_VALIDATION_PENALTY",
    "TRAINING_TO_VALIDATION_RATIO_COEFF",
    "DiagnosticRecord",
]
