"""Shared fixtures: small deterministic datasets and a tiny network configuration."""

import numpy as np
import pytest

from ffensemble.data import SampleDataset
from ffensemble.training import (
    BATCH_SIZE_FULL,
    HiddenLayerConfig,
    NetworkModelConfig,
    TrainingConfig,
)


@pytest.fixture
def logic_gates() -> SampleDataset:
    """AND, OR and XOR of two binary inputs."""
    inputs = [[0, 0], [0, 1], [1, 0], [1, 1]]
    outputs = [[0, 0, 0], [0, 1, 1], [0, 1, 1], [1, 1, 0]]
    return SampleDataset.from_arrays(inputs, outputs)


@pytest.fixture
def binary_grid() -> SampleDataset:
    """5x5 grid labelled 1 above the anti-diagonal (10 positives, 15 negatives)."""
    axis = np.linspace(0.0, 1.0, 5)
    inputs = [[x, y] for x in axis for y in axis]
    outputs = [[1.0 if x + y > 1.0 + 1e-9 else 0.0] for x, y in inputs]
    return SampleDataset.from_arrays(inputs, outputs)


@pytest.fixture
def regression_curve() -> SampleDataset:
    x = np.linspace(-1.0, 1.0, 20)
    return SampleDataset.from_arrays(x[:, np.newaxis], np.sin(np.pi * x)[:, np.newaxis])


@pytest.fixture
def categorical_clusters() -> SampleDataset:
    """Three classes with four samples each around distinct centers."""
    centers = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)]
    offsets = [(0.05, 0.0), (-0.05, 0.0), (0.0, 0.05), (0.0, -0.05)]
    data = SampleDataset()
    for label, (cx, cy) in enumerate(centers):
        for dx, dy in offsets:
            one_hot = [0.0, 0.0, 0.0]
            one_hot[label] = 1.0
            data.add_sample([cx + dx, cy + dy], one_hot)
    return data


@pytest.fixture
def tiny_network() -> NetworkModelConfig:
    return NetworkModelConfig(
        hidden_layers=[HiddenLayerConfig(4)],
        training=TrainingConfig(attempts=1, attempt_epochs=3, batch_size=BATCH_SIZE_FULL),
    )
