"""
Data models for the model registry.
"""

from typing import List, Dict, Any, Optional, Union
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
import numpy as np
import pandas as pd


class TaskKind(str, Enum):
    REGRESSION = 'regression'
    CLASSIFICATION = 'classification'
    TIMESERIES = 'timeseries'
    ANOMALY_DETECTION = 'anomaly_detection'


class Architecture(str, Enum):
    SIMPLE = 'simple'
    DEEP = 'deep'
    LSTM = 'lstm'
    CNN = 'cnn'


@dataclass
class PredictionModel:
    """A registered model: metadata plus the opaque trainable network."""

    id: str
    name: str
    task_kind: TaskKind
    architecture: Architecture
    input_width: int
    output_width: int
    version: str = '1.0.0'
    accuracy: Optional[float] = None
    last_trained: Optional[datetime] = None
    is_trained: bool = False
    network: Optional[Any] = field(default=None, repr=False)

    @property
    def is_loaded(self) -> bool:
        """Whether the model currently holds a network."""
        return self.network is not None

    def next_version(self) -> str:
        """Version string after one more successful training run."""
        major, minor, patch = (int(part) for part in self.version.split('.'))
        return f"{major}.{minor}.{patch + 1}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'task_kind': self.task_kind.value,
            'architecture': self.architecture.value,
            'input_width': self.input_width,
            'output_width': self.output_width,
            'version': self.version,
            'accuracy': self.accuracy,
            'last_trained': self.last_trained.isoformat() if self.last_trained else None,
            'is_loaded': self.is_loaded,
            'is_trained': self.is_trained,
        }


@dataclass
class TrainingSet:
    """Parallel arrays of feature vectors and labels."""

    features: np.ndarray
    labels: np.ndarray
    feature_names: List[str]
    target_name: str

    def __post_init__(self):
        self.features = np.asarray(self.features, dtype=float)
        self.labels = np.asarray(self.labels, dtype=float)
        if self.features.ndim != 2:
            raise ValueError("Features must be a 2-D array of equal-length vectors")
        if len(self.labels) != len(self.features):
            raise ValueError(
                f"Got {len(self.features)} feature rows but {len(self.labels)} labels"
            )

    @classmethod
    def from_rows(cls,
                  rows: List[List[float]],
                  labels: List[float],
                  feature_names: List[str],
                  target_name: str) -> 'TrainingSet':
        """Build a set from Python lists; an empty list yields a 0 x n set."""
        features = np.array(rows, dtype=float).reshape(-1, len(feature_names))
        return cls(features, np.array(labels, dtype=float), feature_names, target_name)

    @property
    def width(self) -> int:
        return self.features.shape[1]

    def __len__(self) -> int:
        return len(self.features)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a pandas DataFrame with the target as the last column."""
        frame = pd.DataFrame(self.features, columns=self.feature_names)
        if self.labels.ndim == 1:
            frame[self.target_name] = self.labels
        return frame


@dataclass
class PredictionResult:
    """Result of a single prediction."""

    value: Union[float, List[float]]
    confidence: float
    explanation: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'confidence': self.confidence,
            'explanation': self.explanation,
            'recommendations': list(self.recommendations),
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ModelMetrics:
    """Metrics reported after a training run."""

    accuracy: float
    loss: float
    val_loss: float
    epochs_trained: int
    stopped_early: bool = False
    mse: Optional[float] = None
    rmse: Optional[float] = None
    mae: Optional[float] = None
    precision: Optional[float] = None
    recall: Optional[float] = None
    f1: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accuracy': self.accuracy,
            'loss': self.loss,
            'val_loss': self.val_loss,
            'epochs_trained': self.epochs_trained,
            'stopped_early': self.stopped_early,
            'mse': self.mse,
            'rmse': self.rmse,
            'mae': self.mae,
            'precision': self.precision,
            'recall': self.recall,
            'f1': self.f1,
        }
