"""Training configuration of single network models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ffensemble.core.config import BaseConfig
from ffensemble.core.exceptions import ConfigurationError

BATCH_SIZE_AUTO = 0
"""Batch size resolved from the number of training samples."""

BATCH_SIZE_FULL = -1
"""All training samples in one batch."""

SUPPORTED_ACTIVATIONS = ("tanh", "relu", "leaky_relu", "elu", "gelu", "sigmoid", "identity")
SUPPORTED_OPTIMIZERS = ("adamw", "adam", "sgd")


@dataclass
class TrainingConfig(BaseConfig):
    """
    Configuration of the training controller.

    Args:
        attempts: Number of training attempts, each starting from new random weights.
        attempt_epochs: Maximum number of epochs within one attempt.
        batch_size: Mini-batch size, ``BATCH_SIZE_AUTO`` or ``BATCH_SIZE_FULL``.
        learning_rate: Learning rate for optimizer.
        optimizer: Optimizer name ('adamw', 'adam', or 'sgd').
        weight_decay: Weight decay for optimizer.
        grad_clip: Maximum gradient norm for clipping (0 disables clipping).
        patience: Share of ``attempt_epochs`` without improvement after which
            the attempt stops.
        fine_tune: Whether to keep training a classifier after it reaches
            perfect binary accuracy on validation-aware metrics.
        class_balanced_loss: Whether to weight the loss by inverse class frequency.

    Example:
        >>> config = TrainingConfig(attempts=2, attempt_epochs=50)
        >>> config.save("training_config.json")
        >>> loaded = TrainingConfig.load("training_config.json")
    """

    attempts: int = 1
    attempt_epochs: int = 200
    batch_size: int = BATCH_SIZE_AUTO

    # Optimizer
    learning_rate: float = 5e-3
    optimizer: str = "adam"
    weight_decay: float = 0.0
    grad_clip: float = 0.0

    # Stopping
    patience: float = 0.25
    fine_tune: bool = True

    class_balanced_loss: bool = False

    def _validate(self) -> None:
        if self.attempts <= 0:
            raise ConfigurationError(f"attempts must be positive, got {self.attempts}")
        if self.attempt_epochs <= 0:
            raise ConfigurationError(
                f"attempt_epochs must be positive, got {self.attempt_epochs}"
            )
        if self.batch_size < BATCH_SIZE_FULL:
            raise ConfigurationError(
                f"batch_size must be positive, {BATCH_SIZE_AUTO} (auto) or "
                f"{BATCH_SIZE_FULL} (full), got {self.batch_size}"
            )
        if self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.optimizer not in SUPPORTED_OPTIMIZERS:
            raise ConfigurationError(
                f"optimizer must be 'adamw', 'adam', or 'sgd', got '{self.optimizer}'"
            )
        if self.weight_decay < 0:
            raise ConfigurationError(f"weight_decay must be non-negative, got {self.weight_decay}")
        if self.grad_clip < 0:
            raise ConfigurationError(f"grad_clip must be non-negative, got {self.grad_clip}")
        if not (0.0 < self.patience <= 1.0):
            raise ConfigurationError(f"patience must be in (0, 1], got {self.patience}")

    def resolve_batch_size(self, num_samples: int) -> int:
        """Resolve auto and full batch sizes for the given number of samples."""
        if self.batch_size == BATCH_SIZE_FULL:
            return num_samples
        if self.batch_size == BATCH_SIZE_AUTO:
            return max(1, min(num_samples, min(128, max(32, num_samples // 100))))
        return max(1, min(self.batch_size, num_samples))


@dataclass
class HiddenLayerConfig(BaseConfig):
    """Size and activation of one hidden layer."""

    neurons: int
    activation: str = "tanh"

    def _validate(self) -> None:
        if self.neurons <= 0:
            raise ConfigurationError(f"neurons must be positive, got {self.neurons}")
        if self.activation not in SUPPORTED_ACTIVATIONS:
            raise ConfigurationError(
                f"activation must be one of {SUPPORTED_ACTIVATIONS}, got '{self.activation}'"
            )


@dataclass
class NetworkModelConfig(BaseConfig):
    """
    Configuration of a single feed-forward network model.

    The output layer is derived from the task kind: linear for regression,
    sigmoid for binary and softmax for categorical tasks.

    Args:
        hidden_layers: Hidden layers in input-to-output order (may be empty).
        training: Training controller configuration.
    """

    kind = "network"

    hidden_layers: list[HiddenLayerConfig] = field(default_factory=list)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    def _validate(self) -> None:
        for layer in self.hidden_layers:
            if not isinstance(layer, HiddenLayerConfig):
                raise ConfigurationError(
                    f"hidden_layers must contain HiddenLayerConfig, got {type(layer).__name__}",
                    config_name="network",
                )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NetworkModelConfig:
        d = cls._strip_kind(d)
        return cls(
            hidden_layers=[HiddenLayerConfig.from_dict(h) for h in d.pop("hidden_layers", [])],
            training=TrainingConfig.from_dict(d.pop("training", {})),
            **d,
        )
