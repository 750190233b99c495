"""
Engine context: one registry and both engines, built once per process.
"""

from typing import Callable, Dict, List, Optional
from datetime import datetime
from threading import Lock
import logging

from .config import EngineConfig
from .datastore import DataStore
from .maintenance import MaintenanceAlert, MaintenancePrediction, PredictiveMaintenanceEngine
from .ml import ModelMetrics, ModelRegistry
from .workforce import (
    Candidate,
    OptimizationResult,
    ScheduleConstraints,
    ShiftSchedule,
    Timeframe,
    WorkforceFactors,
    WorkforceForecast,
    WorkforceOptimizer,
    WorkTask,
)


logger = logging.getLogger(__name__)


class EngineContext:
    """
    Holds the shared model registry and the engines that use it.

    Every operation warms the engines up first, so the first call after
    start-up trains the models and later calls reuse them.
    """

    def __init__(self,
                 registry: ModelRegistry,
                 maintenance: PredictiveMaintenanceEngine,
                 workforce: WorkforceOptimizer,
                 store: DataStore,
                 config: EngineConfig):
        self.registry = registry
        self.store = store
        self.maintenance = maintenance
        self.workforce = workforce
        self.config = config
        self._init_lock = Lock()

    @classmethod
    def create(cls,
               store: DataStore,
               config: Optional[EngineConfig] = None,
               clock: Callable[[], datetime] = datetime.now) -> 'EngineContext':
        """Build a registry and both engines over one data store."""
        config = config or EngineConfig()
        registry = ModelRegistry(
            regression_confidence=config.regression_confidence,
            random_state=config.random_state,
            sequence_timesteps=config.sequence_timesteps,
        )
        return cls(
            registry=registry,
            maintenance=PredictiveMaintenanceEngine(registry, store, config, clock),
            workforce=WorkforceOptimizer(registry, store, config, clock),
            store=store,
            config=config,
        )

    @property
    def is_initialized(self) -> bool:
        return self.maintenance.is_initialized and self.workforce.is_initialized

    def initialize(self) -> Dict[str, ModelMetrics]:
        """Create and train every model; later calls do nothing."""
        with self._init_lock:
            if self.is_initialized:
                return {}
            metrics = {}
            metrics.update(self.maintenance.initialize())
            metrics.update(self.workforce.initialize())
        logger.info("Engine context initialized with %d models", len(self.registry.list_models()))
        return metrics

    def retrain_maintenance(self) -> Dict[str, ModelMetrics]:
        """Retrain every maintenance model on the store's current history."""
        self.initialize()
        with self._init_lock:
            metrics = self.maintenance.retrain()
        logger.info("Retrained %d maintenance models", len(metrics))
        return metrics

    def predict_maintenance(self, equipment_id: str) -> MaintenancePrediction:
        self.initialize()
        return self.maintenance.predict_maintenance(equipment_id)

    def generate_alerts(self) -> List[MaintenanceAlert]:
        self.initialize()
        return self.maintenance.generate_alerts()

    def optimize_assignments(self, tasks: List[WorkTask]) -> OptimizationResult:
        self.initialize()
        return self.workforce.optimize_assignments(tasks)

    def optimize_schedules(self, workers: List[Candidate],
                           constraints: Optional[ScheduleConstraints] = None) -> List[ShiftSchedule]:
        self.initialize()
        return self.workforce.optimize_schedules(workers, constraints)

    def predict_workforce_needs(self,
                                timeframe: Timeframe = Timeframe.WEEKLY,
                                factors: Optional[WorkforceFactors] = None) -> WorkforceForecast:
        self.initialize()
        return self.workforce.predict_workforce_needs(timeframe, factors)
