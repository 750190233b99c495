"""
Rule layer that turns a predicted maintenance horizon into business decisions.

All functions are pure: the same snapshot, prediction and clock always give
the same risk score, priority, failure type, components, cost and advice.
"""

from typing import List, Iterable, Optional
from datetime import datetime

from .models import (
    AlertType,
    EquipmentSnapshot,
    FailureType,
    MaintenanceAlert,
    MaintenancePrediction,
    Priority,
    Severity,
)


TIME_PRESSURE_HORIZON_DAYS = 90
BASE_MAINTENANCE_COST = 5000

COST_MULTIPLIERS = {
    'DUMP_TRUCK': 1.5,
    'EXCAVATOR': 1.2,
    'DRILL_RIG': 1.8,
    'BULLDOZER': 1.3,
    'LOADER': 1.1,
}


def age_in_months(snapshot: EquipmentSnapshot, now: datetime) -> Optional[float]:
    """Fractional age in 30-day months, None without a purchase date."""
    if snapshot.purchase_date is None:
        return None
    return (now - snapshot.purchase_date).total_seconds() / (86400 * 30)


def calculate_risk_score(snapshot: EquipmentSnapshot,
                         days_until_maintenance: float,
                         now: datetime,
                         critical_types: Iterable[str]) -> float:
    """
    Weighted risk in [0, 1].

    Time pressure contributes up to 0.4, age up to 0.3, usage against the
    service interval up to 0.2, and critical equipment types a flat 0.1.
    """
    risk = max(0.0, 1 - days_until_maintenance / TIME_PRESSURE_HORIZON_DAYS) * 0.4

    age = age_in_months(snapshot, now)
    if age is not None:
        risk += min(0.3, max(0.0, age) / 100)

    if snapshot.current_hours and snapshot.service_interval_hours:
        usage_ratio = snapshot.current_hours / snapshot.service_interval_hours
        risk += min(0.2, max(0.0, usage_ratio) * 0.2)

    if snapshot.type in critical_types:
        risk += 0.1

    return min(1.0, max(0.0, risk))


def calculate_priority(risk_score: float, days_until_maintenance: float) -> Priority:
    if risk_score > 0.8 or days_until_maintenance <= 3:
        return Priority.CRITICAL
    if risk_score > 0.6 or days_until_maintenance <= 7:
        return Priority.HIGH
    if risk_score > 0.4 or days_until_maintenance <= 14:
        return Priority.MEDIUM
    return Priority.LOW


def predict_failure_type(equipment_type: str, features) -> FailureType:
    """Most likely failure mode from the type and the usage features."""
    age, hours, km, hours_since_service = features[0], features[1], features[2], features[3]

    if equipment_type == 'EXCAVATOR':
        if hours_since_service > 500:
            return FailureType.HYDRAULIC
        if age > 36:
            return FailureType.MECHANICAL
        return FailureType.GENERAL

    if equipment_type == 'DUMP_TRUCK':
        if km > 80000:
            return FailureType.ENGINE
        if hours > 8000:
            return FailureType.MECHANICAL
        return FailureType.GENERAL

    return FailureType.GENERAL


def identify_critical_components(equipment_type: str, features) -> List[str]:
    age, hours, km = features[0], features[1], features[2]
    components = []

    if equipment_type == 'EXCAVATOR':
        if hours > 3000:
            components.append('Hydraulic pump')
        if age > 24:
            components.append('Main boom cylinder')
        if hours > 5000:
            components.append('Track chains')

    if equipment_type == 'DUMP_TRUCK':
        if km > 50000:
            components.append('Engine')
        if hours > 6000:
            components.append('Transmission')
        if km > 40000:
            components.append('Brake system')

    return components


def estimate_maintenance_cost(snapshot: EquipmentSnapshot, risk_score: float, now: datetime) -> float:
    """Base cost scaled by type, risk (up to +50%) and age (up to +50%)."""
    cost = BASE_MAINTENANCE_COST * COST_MULTIPLIERS.get(snapshot.type, 1.0)
    cost *= 1 + risk_score * 0.5

    age = age_in_months(snapshot, now)
    if age is not None:
        cost *= 1 + min(0.5, max(0.0, age) / 60)

    return float(round(cost))


def generate_recommendations(snapshot: EquipmentSnapshot,
                             risk_score: float,
                             days_until_maintenance: float) -> List[str]:
    recommendations = []

    if days_until_maintenance <= 3:
        recommendations.append('Schedule immediate maintenance to prevent breakdown')
        recommendations.append('Consider taking equipment offline until maintenance is completed')
    elif days_until_maintenance <= 7:
        recommendations.append('Schedule maintenance within the next week')
        recommendations.append('Reduce usage intensity until maintenance')

    if risk_score > 0.7:
        recommendations.append('Increase monitoring frequency')
        recommendations.append('Prepare backup equipment')
        recommendations.append('Order critical spare parts in advance')

    if (snapshot.current_hours and snapshot.service_interval_hours
            and snapshot.current_hours > snapshot.service_interval_hours * 1.2):
        recommendations.append('Equipment is overdue for service - prioritize maintenance')

    if snapshot.type == 'DUMP_TRUCK' and risk_score > 0.5:
        recommendations.append('Check tire condition and brake systems')
        recommendations.append('Inspect engine cooling system')

    if snapshot.type == 'EXCAVATOR' and risk_score > 0.5:
        recommendations.append('Inspect hydraulic lines and pump pressure')

    return recommendations


def build_alert(prediction: MaintenancePrediction, now: datetime) -> Optional[MaintenanceAlert]:
    """
    Alert for a prediction, or None when nothing needs attention.

    CRITICAL within 3 days is IMMEDIATE, HIGH within 7 days is SCHEDULE,
    anything else with risk above 0.6 is MONITOR.
    """
    days = prediction.days_until_maintenance
    name = prediction.equipment_name

    if prediction.priority == Priority.CRITICAL and days <= 3:
        alert_type = AlertType.IMMEDIATE
        severity = Severity.CRITICAL
        message = (f"{name} requires immediate maintenance! "
                   f"Risk score: {prediction.risk_score * 100:.0f}%")
    elif prediction.priority == Priority.HIGH and days <= 7:
        alert_type = AlertType.SCHEDULE
        severity = Severity.WARNING
        message = f"Schedule maintenance for {name} within {days} days"
    elif prediction.risk_score > 0.6:
        alert_type = AlertType.MONITOR
        severity = Severity.INFO
        message = f"Monitor {name} closely - elevated risk detected"
    else:
        return None

    return MaintenanceAlert(
        id=f"alert_{prediction.equipment_id}_{int(now.timestamp() * 1000)}",
        equipment_id=prediction.equipment_id,
        alert_type=alert_type,
        message=message,
        severity=severity,
        generated_at=now,
    )
