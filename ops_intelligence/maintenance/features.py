"""
Equipment feature pipeline for maintenance models.

Every vector follows MAINTENANCE_FEATURE_NAMES. Changing that list changes
the input width of every maintenance model, so bump
MAINTENANCE_FEATURE_VERSION alongside it.
"""

from typing import List, Dict, Optional
from datetime import datetime
from dataclasses import dataclass
import math
import numpy as np
import pandas as pd

from ..exceptions import InsufficientHistory
from .models import EquipmentSnapshot, MaintenanceRecord, UsageSession
from ..ml.models import TrainingSet


MAINTENANCE_FEATURE_VERSION = 1

MAINTENANCE_FEATURE_NAMES = [
    'age_months', 'current_hours', 'current_km', 'hours_since_service',
    'km_since_service', 'avg_daily_hours', 'avg_fuel_consumption',
    'usage_intensity', 'maintenance_frequency', 'cost_trend',
    'season', 'operating_conditions', 'operator_experience',
    'component_age_engine', 'component_age_hydraulic', 'component_age_transmission',
    'failure_history_count', 'emergency_repairs', 'preventive_ratio', 'downtime_hours',
]

MAINTENANCE_TARGET = 'days_until_maintenance'

# Operating conditions and operator experience are not tracked yet
OPERATING_CONDITIONS = 0.5
OPERATOR_EXPERIENCE = 0.7

MAX_INTERVAL_DAYS = 365
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class EquipmentTypeProfile:
    """Baseline ranges used to generate synthetic history for a type."""

    max_hours: float
    max_km: float
    base_maintenance_interval: float


EQUIPMENT_TYPE_PROFILES: Dict[str, EquipmentTypeProfile] = {
    'EXCAVATOR': EquipmentTypeProfile(10000, 50000, 90),
    'DUMP_TRUCK': EquipmentTypeProfile(15000, 100000, 60),
    'DRILL_RIG': EquipmentTypeProfile(8000, 20000, 120),
    'LOADER': EquipmentTypeProfile(12000, 60000, 75),
    'BULLDOZER': EquipmentTypeProfile(10000, 40000, 85),
}

DEFAULT_PROFILE = EquipmentTypeProfile(10000, 50000, 90)


def profile_for(equipment_type: str) -> EquipmentTypeProfile:
    return EQUIPMENT_TYPE_PROFILES.get(equipment_type, DEFAULT_PROFILE)


def months_between(start: datetime, end: datetime) -> int:
    """Whole 30-day months from start to end."""
    return math.floor((end - start).total_seconds() / (86400 * DAYS_PER_MONTH))


def season_index(date: datetime) -> int:
    """Quarter of the year, 0-3."""
    return (date.month - 1) // 3


def fuel_consumption(usage: List[UsageSession]) -> float:
    """Average fuel used per session."""
    if not usage:
        return 0.0
    return sum(u.fuel_used or 0 for u in usage) / len(usage)


def usage_intensity(usage: List[UsageSession]) -> float:
    """Average session length as a fraction of a day."""
    if not usage:
        return 0.0
    return sum(u.hours for u in usage) / (len(usage) * 24)


def cost_trend(records: List[MaintenanceRecord]) -> float:
    """Average cost of the five most recent records (chronological input)."""
    if len(records) < 2:
        return 0.0
    recent = records[-5:]
    return sum(r.cost or 0 for r in recent) / len(recent)


def count_of_type(records: List[MaintenanceRecord], record_type: str) -> int:
    return sum(1 for r in records if r.type == record_type)


def preventive_ratio(records: List[MaintenanceRecord]) -> float:
    if not records:
        return 0.0
    return count_of_type(records, 'ROUTINE_SERVICE') / len(records)


def downtime_hours(records: List[MaintenanceRecord]) -> float:
    return sum(r.downtime_hours for r in records)


def _feature_row(age_months: float,
                 hours: float,
                 km: float,
                 hours_since_service: float,
                 km_since_service: float,
                 usage: List[UsageSession],
                 record_count: int,
                 history: List[MaintenanceRecord],
                 season_date: datetime) -> List[float]:
    return [
        age_months,
        hours,
        km,
        hours_since_service,
        km_since_service,
        hours / max(age_months, 1),
        fuel_consumption(usage),
        usage_intensity(usage),
        record_count / max(age_months, 1),
        cost_trend(history),
        season_index(season_date),
        OPERATING_CONDITIONS,
        OPERATOR_EXPERIENCE,
        age_months * 0.8,
        age_months * 0.6,
        age_months * 0.7,
        count_of_type(history, 'REPAIR'),
        count_of_type(history, 'EMERGENCY'),
        preventive_ratio(history),
        downtime_hours(history),
    ]


def equipment_age_months(snapshot: EquipmentSnapshot, now: datetime) -> Optional[int]:
    """Age from purchase date, or None when the purchase date is unknown."""
    if snapshot.purchase_date is None:
        return None
    return months_between(snapshot.purchase_date, now)


def equipment_feature_vector(snapshot: EquipmentSnapshot, now: datetime) -> np.ndarray:
    """
    Feature vector describing an equipment unit as of ``now``.

    Units without a purchase date are treated as 12 months old.
    """
    age = equipment_age_months(snapshot, now)
    age_months = age if age is not None else 12
    hours = snapshot.current_hours or 0
    km = snapshot.current_km or 0

    history = snapshot.chronological_records()
    last = history[-1] if history else None
    hours_since_service = hours - (last.hours_reading or 0) if last else hours
    km_since_service = km - (last.km_reading or 0) if last else km

    row = _feature_row(age_months, hours, km, hours_since_service, km_since_service,
                       snapshot.usage, len(history), history, now)
    return np.array(row, dtype=float)


def maintenance_rows(snapshot: EquipmentSnapshot) -> pd.DataFrame:
    """
    One row per adjacent pair of maintenance events.

    Features describe the unit when the earlier event completed; the label is
    the number of days until the next event was scheduled. The later event
    only needs a scheduled date, so upcoming work still yields a row. Rows
    with a gap outside (0, 365] days are dropped as outliers.
    """
    records = snapshot.chronological_records()
    origin = snapshot.purchase_date or snapshot.created_at
    hours = snapshot.current_hours or 0
    km = snapshot.current_km or 0

    rows = []
    labels = []
    for i in range(1, len(records)):
        previous, current = records[i - 1], records[i]
        if current.scheduled_date is None or previous.completed_date is None:
            continue
        gap_days = math.floor(
            (current.scheduled_date - previous.completed_date).total_seconds() / 86400
        )
        age_months = months_between(origin, previous.completed_date)
        history = records[:i]
        rows.append(_feature_row(
            age_months,
            hours,
            km,
            hours - (previous.hours_reading or 0),
            km - (previous.km_reading or 0),
            snapshot.usage,
            len(records),
            history,
            previous.completed_date,
        ))
        labels.append(gap_days)

    frame = pd.DataFrame(rows, columns=MAINTENANCE_FEATURE_NAMES)
    frame[MAINTENANCE_TARGET] = pd.Series(labels, dtype=float)
    plausible = (frame[MAINTENANCE_TARGET] > 0) & (frame[MAINTENANCE_TARGET] <= MAX_INTERVAL_DAYS)
    return frame[plausible].reset_index(drop=True)


def build_maintenance_training_set(snapshots: List[EquipmentSnapshot],
                                   min_units: int = 5) -> TrainingSet:
    """
    Real-data training set for one equipment type.

    Args:
        snapshots: Units of a single equipment type
        min_units: Fewest units worth training on

    Returns:
        TrainingSet, possibly empty when no clean event pairs exist

    Raises:
        InsufficientHistory: when fewer than ``min_units`` units are supplied
    """
    if len(snapshots) < min_units:
        subject = snapshots[0].type if snapshots else 'equipment'
        raise InsufficientHistory(subject, len(snapshots), min_units)

    frames = [maintenance_rows(snapshot) for snapshot in snapshots]
    frame = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(
        columns=MAINTENANCE_FEATURE_NAMES + [MAINTENANCE_TARGET])
    return TrainingSet(
        features=frame[MAINTENANCE_FEATURE_NAMES].to_numpy(dtype=float).reshape(
            -1, len(MAINTENANCE_FEATURE_NAMES)),
        labels=frame[MAINTENANCE_TARGET].to_numpy(dtype=float),
        feature_names=list(MAINTENANCE_FEATURE_NAMES),
        target_name=MAINTENANCE_TARGET,
    )


def synthetic_maintenance_training_set(equipment_type: str,
                                       n_samples: int = 1000,
                                       rng: Optional[np.random.Generator] = None) -> TrainingSet:
    """
    Plausible random history for a type with too little real data.

    Days until maintenance shrink with age and usage intensity around the
    type's base interval, with +/-20% noise.
    """
    rng = rng if rng is not None else np.random.default_rng()
    profile = profile_for(equipment_type)

    age = rng.random(n_samples) * 60
    hours = rng.random(n_samples) * profile.max_hours
    km = rng.random(n_samples) * profile.max_km
    intensity = rng.random(n_samples)

    age_factor = np.maximum(0.5, 1 - age / 100)
    intensity_factor = np.maximum(0.5, 1 - intensity)
    noise = 0.8 + rng.random(n_samples) * 0.4
    days = np.floor(profile.base_maintenance_interval * age_factor * intensity_factor * noise)

    features = np.column_stack([
        age,
        hours,
        km,
        hours * 0.1,
        km * 0.05,
        hours / np.maximum(age, 1),
        rng.random(n_samples) * 50,
        intensity,
        rng.random(n_samples),
        rng.random(n_samples) * 1000,
        rng.integers(0, 4, n_samples),
        rng.random(n_samples),
        rng.random(n_samples),
        age * 0.8,
        age * 0.6,
        age * 0.7,
        rng.integers(0, 10, n_samples),
        rng.integers(0, 3, n_samples),
        rng.random(n_samples),
        rng.random(n_samples) * 100,
    ])
    return TrainingSet(
        features=features,
        labels=np.maximum(1, days),
        feature_names=list(MAINTENANCE_FEATURE_NAMES),
        target_name=MAINTENANCE_TARGET,
    )
