"""Feed-forward network engine and its epoch trainer (torch)."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np
import torch
import torch.nn as nn
from torch.optim import AdamW, Optimizer

from ffensemble.core.exceptions import ConfigurationError, ShapeMismatchError
from ffensemble.core.task import OutputTaskKind
from ffensemble.stats.basic import BasicStat

from .config import HiddenLayerConfig, TrainingConfig

logger = logging.getLogger(__name__)

_ACTIVATIONS: dict[str, type[nn.Module]] = {
    "tanh": nn.Tanh,
    "relu": nn.ReLU,
    "leaky_relu": nn.LeakyReLU,
    "elu": nn.ELU,
    "gelu": nn.GELU,
    "sigmoid": nn.Sigmoid,
    "identity": nn.Identity,
}


def create_activation(name: str) -> nn.Module:
    """Create an activation module by name."""
    if name not in _ACTIVATIONS:
        raise ConfigurationError(
            f"Unknown activation: '{name}'. Supported activations: {sorted(_ACTIVATIONS)}"
        )
    return _ACTIVATIONS[name]()


class MLPEngine(nn.Module):
    """
    Feed-forward network producing task-specific outputs.

    ``forward`` returns raw output-layer values (logits for classification);
    :meth:`predict` applies the output activation of the task kind.

    Args:
        input_size: Length of the input vector.
        output_size: Number of output features.
        task_kind: Task kind selecting the output activation.
        hidden_layers: Hidden layer configurations.
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        task_kind: OutputTaskKind,
        hidden_layers: Sequence[HiddenLayerConfig] = (),
    ):
        super().__init__()
        self.input_size = input_size
        self.output_size = output_size
        self.task_kind = task_kind
        layers: list[nn.Module] = []
        prev = input_size
        for layer_cfg in hidden_layers:
            layers.append(nn.Linear(prev, layer_cfg.neurons))
            layers.append(create_activation(layer_cfg.activation))
            prev = layer_cfg.neurons
        layers.append(nn.Linear(prev, output_size))
        self.net = nn.Sequential(*layers).double()

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(x)

    def predict(self, x: torch.Tensor) -> torch.Tensor:
        """Apply the network and the output activation of the task kind."""
        out = self(x)
        if self.task_kind is OutputTaskKind.BINARY:
            return torch.sigmoid(out)
        if self.task_kind is OutputTaskKind.CATEGORICAL:
            return torch.softmax(out, dim=-1)
        return out

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        """Compute outputs for a matrix of input rows."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != self.input_size:
            raise ShapeMismatchError(
                "Engine input mismatch", expected=(self.input_size,), got=tuple(matrix.shape[1:])
            )
        with torch.no_grad():
            return self.predict(torch.tensor(matrix, dtype=torch.float64)).numpy()

    def reset_parameters(self, rng: np.random.Generator) -> None:
        """Draw new Glorot-uniform weights and zero biases from ``rng``."""
        with torch.no_grad():
            for module in self.net:
                if isinstance(module, nn.Linear):
                    fan_out, fan_in = module.weight.shape
                    bound = math.sqrt(6.0 / (fan_in + fan_out))
                    weights = rng.uniform(-bound, bound, size=(fan_out, fan_in))
                    module.weight.copy_(torch.from_numpy(weights))
                    module.bias.zero_()

    def weights_stat(self) -> BasicStat:
        """Statistic over all weights and biases."""
        stat = BasicStat()
        with torch.no_grad():
            for param in self.parameters():
                stat.merge(BasicStat.of_array(param.detach().cpu().numpy()))
        return stat


class EngineTrainer:
    """
    Trains an :class:`MLPEngine` one epoch at a time.

    Inputs and ideal outputs are expected already filtered to the engine's
    working range. Mini-batch order and weight initialization are drawn from
    the given generator, so runs with the same seed are reproducible.

    Args:
        engine: Engine to train in place.
        inputs: Training input matrix.
        outputs: Training ideal output matrix.
        config: Training configuration.
        rng: Random generator of the build.
    """

    def __init__(
        self,
        engine: MLPEngine,
        inputs: np.ndarray,
        outputs: np.ndarray,
        config: TrainingConfig,
        rng: np.random.Generator,
    ):
        self.engine = engine
        self.config = config
        self.rng = rng
        self._inputs = torch.from_numpy(np.asarray(inputs, dtype=np.float64))
        self._outputs = torch.from_numpy(np.asarray(outputs, dtype=np.float64))
        self.batch_size = config.resolve_batch_size(len(self._inputs))
        self.loss_fn = self._create_loss()
        self.optimizer = self._create_optimizer()
        self.last_loss = float("nan")

    def _create_loss(self) -> nn.Module:
        task_kind = self.engine.task_kind
        if task_kind is OutputTaskKind.REGRESSION:
            return nn.MSELoss()
        if task_kind is OutputTaskKind.BINARY:
            pos_weight = None
            if self.config.class_balanced_loss:
                positives = (self._outputs >= 0.5).sum(dim=0).double()
                negatives = len(self._outputs) - positives
                pos_weight = torch.where(positives > 0, negatives / positives.clamp(min=1), 1.0)
            return nn.BCEWithLogitsLoss(pos_weight=pos_weight)
        weight = None
        if self.config.class_balanced_loss:
            counts = torch.bincount(
                self._outputs.argmax(dim=1), minlength=self.engine.output_size
            ).double()
            weight = torch.where(
                counts > 0, len(self._outputs) / (counts.clamp(min=1) * len(counts)), 0.0
            )
        return nn.CrossEntropyLoss(weight=weight)

    def _create_optimizer(self) -> Optimizer:
        """Create optimizer based on config."""
        params = self.engine.parameters()

        if self.config.optimizer == "adamw":
            return AdamW(
                params,
                lr=self.config.learning_rate,
                weight_decay=self.config.weight_decay,
            )
        elif self.config.optimizer == "adam":
            return torch.optim.Adam(
                params,
                lr=self.config.learning_rate,
                weight_decay=self.config.weight_decay,
            )
        elif self.config.optimizer == "sgd":
            return torch.optim.SGD(
                params,
                lr=self.config.learning_rate,
                weight_decay=self.config.weight_decay,
                momentum=0.9,
            )
        else:
            raise ConfigurationError(
                f"Unknown optimizer: '{self.config.optimizer}'. "
                f"Supported optimizers: 'adamw', 'adam', 'sgd'"
            )

    def _targets(self, batch: torch.Tensor) -> torch.Tensor:
        if self.engine.task_kind is OutputTaskKind.CATEGORICAL:
            return batch.argmax(dim=1)
        if self.engine.task_kind is OutputTaskKind.BINARY:
            return (batch >= 0.5).double()
        return batch

    def reset(self) -> None:
        """Re-randomize the engine weights and start a fresh optimizer."""
        self.engine.reset_parameters(self.rng)
        self.optimizer = self._create_optimizer()
        self.last_loss = float("nan")

    def run_epoch(self) -> bool:
        """Train one epoch over shuffled mini-batches.

        Returns:
            False if the epoch produced a non-finite loss or left non-finite
            weights, otherwise True.
        """
        self.engine.train()
        order = torch.from_numpy(self.rng.permutation(len(self._inputs)))
        total_loss = 0.0
        for start in range(0, len(order), self.batch_size):
            idx = order[start : start + self.batch_size]
            logits = self.engine(self._inputs[idx])
            loss = self.loss_fn(logits, self._targets(self._outputs[idx]))
            self.optimizer.zero_grad()
            loss.backward()
            if self.config.grad_clip > 0:
                torch.nn.utils.clip_grad_norm_(self.engine.parameters(), self.config.grad_clip)
            self.optimizer.step()
            total_loss += float(loss.item()) * len(idx)
        self.engine.eval()
        self.last_loss = total_loss / max(1, len(order))
        if not math.isfinite(self.last_loss):
            logger.warning(f"Non-finite training loss: {self.last_loss}")
            return False
        if not all(bool(torch.isfinite(p).all()) for p in self.engine.parameters()):
            logger.warning("Non-finite engine weights after optimizer step")
            return False
        return True
