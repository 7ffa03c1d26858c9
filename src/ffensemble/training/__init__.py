"""Training infrastructure for single network models."""

from .callbacks import (
    BuildCallback,
    BuildProgress,
    CallbackList,
    HistoryCallback,
    LoggingCallback,
)
from .config import (
    BATCH_SIZE_AUTO,
    BATCH_SIZE_FULL,
    HiddenLayerConfig,
    NetworkModelConfig,
    TrainingConfig,
)
from .controller import ControllerState, TrainingController, train_network
from .engine import EngineTrainer, MLPEngine, create_activation

__all__ = [
    # Config
    "TrainingConfig",
    "HiddenLayerConfig",
    "NetworkModelConfig",
    "BATCH_SIZE_AUTO",
    "BATCH_SIZE_FULL",
    # Controller
    "TrainingController",
    "ControllerState",
    "train_network",
    # Engine
    "MLPEngine",
    "EngineTrainer",
    "create_activation",
    # Callbacks
    "BuildCallback",
    "BuildProgress",
    "CallbackList",
    "LoggingCallback",
    "HistoryCallback",
]
