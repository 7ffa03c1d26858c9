"""Random vector functional link (random-projection) models."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import torch
import torch.nn as nn

from ffensemble.core.exceptions import ShapeMismatchError, ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.data.filters import FeatureFilter
from ffensemble.models.base import Model
from ffensemble.models.diagnostics import DiagnosticRecord
from ffensemble.training.callbacks import BuildCallback
from ffensemble.training.engine import create_activation

from .base import child_seed
from .config import RVFLModelConfig, RVFLPoolConfig

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RandomPool:
    """A pool of neurons with fixed random weights of shape ``(inputs, neurons)``."""

    weights: np.ndarray
    biases: np.ndarray
    activation: nn.Module
    use_output: bool

    @classmethod
    def draw(
        cls,
        config: RVFLPoolConfig,
        num_inputs: int,
        scale_factor: float,
        rng: np.random.Generator,
    ) -> RandomPool:
        """Draw weights and biases uniformly from ``[-scale_factor, scale_factor]``."""
        weights = rng.uniform(-scale_factor, scale_factor, size=(num_inputs, config.neurons))
        biases = rng.uniform(-scale_factor, scale_factor, size=config.neurons)
        return cls(weights, biases, create_activation(config.activation), config.use_output)

    @property
    def neurons(self) -> int:
        return len(self.biases)

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        with torch.no_grad():
            pre = torch.from_numpy(matrix @ self.weights + self.biases)
            return self.activation(pre).numpy()


class RandomProjection:
    """
    Fixed random layers projecting standardized input rows.

    Pools of the first layer read the standardized input; pools of every
    following layer read the concatenated outputs of all pools of the
    previous layer. The projection consists of the outputs of the pools
    marked ``use_output`` in layer order, prepended with the standardized
    input when ``route_input`` is set.

    Args:
        input_filter: Fitted filter standardizing the input.
        layers: Random pools, layer by layer.
        route_input: Whether the projection includes the standardized input.
    """

    def __init__(
        self,
        input_filter: FeatureFilter,
        layers: Sequence[Sequence[RandomPool]],
        route_input: bool,
    ):
        self.input_filter = input_filter
        self.layers: tuple[tuple[RandomPool, ...], ...] = tuple(tuple(layer) for layer in layers)
        self.route_input = route_input

    @classmethod
    def draw(
        cls,
        config: RVFLModelConfig,
        training_data: SampleDataset,
        rng: np.random.Generator,
    ) -> RandomProjection:
        """Fit the input filter on ``training_data`` and draw every pool from ``rng``."""
        layers: list[list[RandomPool]] = []
        num_inputs = training_data.input_length
        for layer_config in config.layers:
            layer = [
                RandomPool.draw(pool_config, num_inputs, config.scale_factor, rng)
                for pool_config in layer_config
            ]
            layers.append(layer)
            num_inputs = sum(pool.neurons for pool in layer)
        return cls(FeatureFilter().fit(training_data.inputs), layers, config.route_input)

    @property
    def num_features(self) -> int:
        """Length of a projected row."""
        count = sum(pool.neurons for layer in self.layers for pool in layer if pool.use_output)
        return count + (self.input_filter.num_features if self.route_input else 0)

    def transform(self, matrix: np.ndarray) -> np.ndarray:
        """Project input rows."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != self.input_filter.num_features:
            raise ShapeMismatchError(
                "Input length mismatch",
                expected=(self.input_filter.num_features,),
                got=matrix.shape[1:],
            )
        standardized = self.input_filter.apply(matrix)
        features = [standardized] if self.route_input else []
        layer_input = standardized
        for layer in self.layers:
            outputs = [pool.compute_batch(layer_input) for pool in layer]
            features.extend(out for pool, out in zip(layer, outputs) if pool.use_output)
            layer_input = np.hstack(outputs)
        return np.hstack(features)

    def transform_dataset(self, data: SampleDataset) -> SampleDataset:
        """Dataset of projected inputs with the ideal outputs of ``data``."""
        return data.with_inputs(self.transform(data.inputs))


class RandomProjectionModel(Model):
    """
    A random projection followed by a trained end-model.

    The model reports the end-model's confidence metrics.

    Args:
        name: Model name.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        projection: Fixed random projection of the input.
        end_model: Model computing the output from the projected rows.
    """

    def __init__(
        self,
        name: str,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        projection: RandomProjection,
        end_model: Model,
    ):
        if end_model.task_kind is not task_kind:
            raise ValidationError(
                f"End-model {end_model.name} solves a {end_model.task_kind.value} task, "
                f"{name} a {task_kind.value} task"
            )
        if end_model.num_output_features != len(output_feature_names):
            raise ValidationError(
                f"End-model {end_model.name} has {end_model.num_output_features} output "
                f"features, {name} expects {len(output_feature_names)}"
            )
        super().__init__(name, task_kind, output_feature_names, end_model.metrics)
        self.projection = projection
        self.end_model = end_model

    def compute(self, input_vector: np.ndarray) -> np.ndarray:
        return self.compute_batch(np.asarray(input_vector, dtype=np.float64)[np.newaxis, :])[0]

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        return self.end_model.compute_batch(self.projection.transform(matrix))

    def _child_diagnostics(self, data: SampleDataset) -> list[DiagnosticRecord]:
        return [self.end_model.diagnostic_test(self.projection.transform_dataset(data))]

    def get_info_text(self, detail: bool = False, margin: int = 0) -> str:
        lines = self._info_header(margin)
        pad = " " * (margin + 4)
        pools = [[pool.neurons for pool in layer] for layer in self.projection.layers]
        lines.append(f"{pad}Random pools (neurons): {pools}")
        lines.append(f"{pad}Projected features: {self.projection.num_features}")
        if detail:
            lines.append(self.end_model.get_info_text(detail=True, margin=margin + 4))
        return "\n".join(lines)


def build_random_projection_model(
    config: RVFLModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    validation_data: SampleDataset | None = None,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "RVFL",
) -> RandomProjectionModel:
    """
    Build a random-projection model.

    The input filter is fitted on the training data, the pool weights are
    drawn from the build's generator and the end-model is built on the
    projected training (and validation) data.

    Args:
        config: Random-projection model configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        validation_data: Optional validation data of the end-model.
        callbacks: Build callbacks passed to the end-model build.
        seed: Seed of the build's random generator.
        name: Name of the model.

    Returns:
        The finished :class:`RandomProjectionModel`.

    Raises:
        ValidationError: If the training data is empty.
    """
    from .builder import build_model

    if len(training_data) == 0:
        raise ValidationError("The training data is empty")
    rng = np.random.default_rng(seed)
    projection = RandomProjection.draw(config, training_data, rng)
    logger.info(
        f"[{name}] projecting {training_data.input_length} input feature(s) to "
        f"{projection.num_features}"
    )
    end_model = build_model(
        config.end_model,
        task_kind,
        output_feature_names,
        projection.transform_dataset(training_data),
        projection.transform_dataset(validation_data) if validation_data is not None else None,
        callbacks=callbacks,
        seed=child_seed(rng),
        name=f"{name}.End",
    )
    return RandomProjectionModel(name, task_kind, output_feature_names, projection, end_model)
