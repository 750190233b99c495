"""
Operations Intelligence Engine

Model registry plus predictive maintenance and workforce optimization for
equipment-heavy operations.
"""

from .config import EngineConfig
from .context import EngineContext
from .datastore import DataStore, InMemoryDataStore
from .maintenance import PredictiveMaintenanceEngine
from .ml import ModelRegistry
from .workforce import WorkforceOptimizer, WorkloadForecaster

__all__ = [
    "EngineConfig",
    "EngineContext",
    "DataStore",
    "InMemoryDataStore",
    "PredictiveMaintenanceEngine",
    "ModelRegistry",
    "WorkforceOptimizer",
    "WorkloadForecaster",
]
