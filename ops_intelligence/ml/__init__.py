"""
Model registry and trainer.
"""

from .models import (
    Architecture,
    ModelMetrics,
    PredictionModel,
    PredictionResult,
    TaskKind,
    TrainingSet,
)
from .registry import ModelRegistry

__all__ = [
    "Architecture",
    "ModelMetrics",
    "ModelRegistry",
    "PredictionModel",
    "PredictionResult",
    "TaskKind",
    "TrainingSet",
]
