"""
Predictive maintenance engine.

Trains one regression model per equipment type that predicts the days until
the next maintenance event, and turns those predictions into risk scores,
priorities, cost estimates, recommendations and alerts.
"""

from typing import Callable, Dict, List, Optional
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
import logging
import numpy as np

from ..config import EngineConfig
from ..exceptions import EquipmentNotFound, InsufficientHistory, NoModelForType
from ..ml import Architecture, ModelMetrics, ModelRegistry, TaskKind
from . import rules
from .features import (
    MAINTENANCE_FEATURE_NAMES,
    build_maintenance_training_set,
    equipment_feature_vector,
    synthetic_maintenance_training_set,
)
from .models import EquipmentSnapshot, MaintenanceAlert, MaintenancePrediction


logger = logging.getLogger(__name__)


def model_id_for(equipment_type: str) -> str:
    return f"maintenance_{equipment_type.lower()}"


class PredictiveMaintenanceEngine:
    """
    Maintenance predictions backed by per-type models in a shared registry.

    The engine reads equipment through the data store and never mutates it.
    ``clock`` supplies "now" so that predictions are reproducible in tests.
    """

    def __init__(self,
                 registry: ModelRegistry,
                 store,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize engine.

        Args:
            registry: Model registry shared with the other engines
            store: DataStore supplying equipment snapshots
            config: Engine configuration
            clock: Callable returning the current time
        """
        self.registry = registry
        self.store = store
        self.config = config or EngineConfig()
        self.clock = clock
        self.is_initialized = False

    def initialize(self) -> Dict[str, ModelMetrics]:
        """
        Create and train a model for every configured equipment type.

        Safe to call repeatedly; after the first successful call it does
        nothing. Use ``retrain`` to force a new training pass.

        Returns:
            Training metrics by equipment type (empty when already initialized)
        """
        if self.is_initialized:
            return {}
        metrics = self._train_all()
        self.is_initialized = True
        logger.info("Predictive maintenance engine initialized for %d equipment types",
                    len(metrics))
        return metrics

    def retrain(self) -> Dict[str, ModelMetrics]:
        """
        Re-run training for every equipment type on the current history.

        Existing models keep serving their old weights until the new fit
        is swapped in.
        """
        metrics = self._train_all()
        self.is_initialized = True
        return metrics

    def _train_all(self) -> Dict[str, ModelMetrics]:
        rng = np.random.default_rng(self.config.random_state)
        metrics = {}
        for equipment_type in self.config.equipment_types:
            model_id = model_id_for(equipment_type)
            model = self.registry.get_model(model_id)
            if model is None or not model.is_loaded:
                self.registry.create_model(
                    model_id,
                    name=f"{equipment_type} Maintenance Predictor",
                    task_kind=TaskKind.REGRESSION,
                    input_width=len(MAINTENANCE_FEATURE_NAMES),
                    output_width=1,
                    architecture=Architecture.DEEP,
                )
            metrics[equipment_type] = self._train_type(model_id, equipment_type, rng)
        return metrics

    def _train_type(self, model_id: str, equipment_type: str,
                    rng: np.random.Generator) -> ModelMetrics:
        config = self.config
        snapshots = self.store.list_equipment_by_type(equipment_type)
        try:
            training_set = build_maintenance_training_set(snapshots, config.min_history_units)
        except InsufficientHistory as e:
            logger.warning("%s; training %s on synthetic data", e, model_id)
            training_set = None

        if training_set is not None and len(training_set) > 0:
            logger.info("Training %s on %d historical maintenance intervals",
                        model_id, len(training_set))
            return self.registry.train(
                model_id,
                training_set,
                epochs=config.maintenance_epochs,
                batch_size=config.maintenance_batch_size,
                validation_split=config.validation_split,
                patience=config.patience,
            )

        if training_set is not None:
            logger.warning("No clean maintenance intervals for %s; training on synthetic data",
                           equipment_type)
        synthetic = synthetic_maintenance_training_set(
            equipment_type, config.synthetic_samples, rng)
        return self.registry.train(
            model_id,
            synthetic,
            epochs=config.synthetic_epochs,
            batch_size=config.synthetic_batch_size,
            validation_split=config.validation_split,
            patience=config.patience,
        )

    def _get_equipment(self, equipment_id: str) -> EquipmentSnapshot:
        snapshot = self.store.get_equipment(equipment_id)
        if snapshot is None:
            raise EquipmentNotFound(equipment_id)
        return snapshot

    def predict_maintenance(self, equipment_id: str) -> MaintenancePrediction:
        """
        Predict the next maintenance need for one equipment unit.

        Args:
            equipment_id: Equipment id in the data store

        Returns:
            MaintenancePrediction with risk, priority, failure type, cost
            estimate and recommendations
        """
        snapshot = self._get_equipment(equipment_id)
        return self._predict(snapshot, self.clock())

    def _predict(self, snapshot: EquipmentSnapshot, now: datetime) -> MaintenancePrediction:
        model_id = model_id_for(snapshot.type)
        if not self.registry.has_model(model_id):
            raise NoModelForType(snapshot.type)

        features = equipment_feature_vector(snapshot, now)
        result = self.registry.predict(model_id, features)
        days = max(1, int(round(result.value)))

        risk = rules.calculate_risk_score(snapshot, days, now, self.config.critical_equipment_types)
        return MaintenancePrediction(
            equipment_id=snapshot.id,
            equipment_name=snapshot.name,
            risk_score=risk,
            predicted_failure_date=now + timedelta(days=days),
            days_until_maintenance=days,
            failure_type=rules.predict_failure_type(snapshot.type, features),
            confidence=result.confidence,
            recommendations=rules.generate_recommendations(snapshot, risk, days),
            critical_components=rules.identify_critical_components(snapshot.type, features),
            estimated_cost=rules.estimate_maintenance_cost(snapshot, risk, now),
            priority=rules.calculate_priority(risk, days),
        )

    def generate_alerts(self) -> List[MaintenanceAlert]:
        """
        Predict every active unit and collect the resulting alerts.

        Units whose prediction fails are logged and skipped.
        """
        snapshots = self.store.list_active_equipment()
        now = self.clock()

        def alert_for(snapshot: EquipmentSnapshot) -> Optional[MaintenanceAlert]:
            try:
                return rules.build_alert(self._predict(snapshot, now), now)
            except Exception:
                logger.exception("Maintenance prediction failed for equipment %s", snapshot.id)
                return None

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            alerts = [alert for alert in executor.map(alert_for, snapshots) if alert is not None]

        logger.info("Generated %d maintenance alerts for %d active units",
                    len(alerts), len(snapshots))
        return alerts
