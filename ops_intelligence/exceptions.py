"""
Error types raised by the prediction and optimization engine.
"""


class EngineError(Exception):
    """Base class for all engine errors."""


class UnknownModel(EngineError, KeyError):
    """Raised when a model id was never registered."""

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Model {model_id} is not registered")

    def __str__(self) -> str:
        return self.args[0]


class ModelNotLoaded(EngineError):
    """Raised when a registered model has no weights, or no trained weights."""

    def __init__(self, model_id: str, reason: str = "not loaded"):
        self.model_id = model_id
        super().__init__(f"Model {model_id} is {reason}")


class ShapeMismatch(EngineError, ValueError):
    """Raised when a feature vector width disagrees with the model's input width."""

    def __init__(self, model_id: str, expected: int, actual: int):
        self.model_id = model_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Model {model_id} expects {expected} features, got {actual}"
        )


class NoModelForType(EngineError):
    """Raised when an equipment type has no registered maintenance model."""

    def __init__(self, equipment_type: str):
        self.equipment_type = equipment_type
        super().__init__(f"No model available for equipment type {equipment_type}")


class EquipmentNotFound(EngineError):
    """Raised when the data store has no equipment with the given id."""

    def __init__(self, equipment_id: str):
        self.equipment_id = equipment_id
        super().__init__(f"Equipment {equipment_id} not found")


class InsufficientHistory(EngineError):
    """
    Soft condition: not enough real history to train on.

    The feature pipeline raises it; the engines catch it, log a warning and
    fall back to synthetic training data.
    """

    def __init__(self, subject: str, available: int, required: int):
        self.subject = subject
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient history for {subject}: {available} available, {required} required"
        )
