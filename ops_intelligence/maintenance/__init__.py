"""
Predictive maintenance module.
"""

from .engine import PredictiveMaintenanceEngine
from .models import (
    AlertType,
    EquipmentSnapshot,
    FailureType,
    MaintenanceAlert,
    MaintenancePrediction,
    MaintenanceRecord,
    Priority,
    Severity,
    UsageSession,
)

__all__ = [
    "PredictiveMaintenanceEngine",
    "AlertType",
    "EquipmentSnapshot",
    "FailureType",
    "MaintenanceAlert",
    "MaintenancePrediction",
    "MaintenanceRecord",
    "Priority",
    "Severity",
    "UsageSession",
]
