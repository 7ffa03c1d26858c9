"""Custom exceptions for ffensemble."""


class FFEnsembleError(Exception):
    """Base exception for all ffensemble errors."""

    pass


class ConfigurationError(FFEnsembleError):
    """Raised when a model or training configuration is invalid."""

    def __init__(self, message: str, config_name: str | None = None):
        self.config_name = config_name
        if config_name:
            message = f"[{config_name}] {message}"
        super().__init__(message)


class ShapeMismatchError(FFEnsembleError):
    """Raised when vector lengths don't match expected dimensions."""

    def __init__(
        self,
        message: str,
        expected: tuple[int, ...] | None = None,
        got: tuple[int, ...] | None = None,
    ):
        self.expected = expected
        self.got = got
        if expected is not None and got is not None:
            message = f"{message} (expected {expected}, got {got})"
        super().__init__(message)


class StateError(FFEnsembleError):
    """Raised when an object is used before it reaches the required state."""

    pass


class ValidationError(FFEnsembleError):
    """Raised when runtime validation of data or members fails."""

    pass


class UnsupportedOperationError(FFEnsembleError):
    """Raised when an operation is not applicable to the receiving object."""

    pass


class TrainingError(FFEnsembleError):
    """Raised when training encounters an error."""

    pass
