"""
Data models for predictive maintenance.
"""

from typing import List, Dict, Any, Optional
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
import pandas as pd


class Priority(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'
    CRITICAL = 'CRITICAL'


class FailureType(str, Enum):
    MECHANICAL = 'MECHANICAL'
    ELECTRICAL = 'ELECTRICAL'
    HYDRAULIC = 'HYDRAULIC'
    ENGINE = 'ENGINE'
    GENERAL = 'GENERAL'


class AlertType(str, Enum):
    IMMEDIATE = 'IMMEDIATE'
    SCHEDULE = 'SCHEDULE'
    MONITOR = 'MONITOR'
    OPTIMIZE = 'OPTIMIZE'


class Severity(str, Enum):
    INFO = 'INFO'
    WARNING = 'WARNING'
    CRITICAL = 'CRITICAL'


ACTIVE_EQUIPMENT_STATUSES = ('AVAILABLE', 'IN_USE')


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class MaintenanceRecord:
    """A single maintenance event in an equipment's history."""

    id: str
    type: str
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    cost: Optional[float] = None
    hours_reading: Optional[float] = None
    km_reading: Optional[float] = None
    status: str = 'COMPLETED'

    @classmethod
    def from_dict(cls, data: Dict) -> 'MaintenanceRecord':
        return cls(
            id=data['id'],
            type=data['type'],
            scheduled_date=_parse_datetime(data.get('scheduled_date')),
            completed_date=_parse_datetime(data.get('completed_date')),
            cost=data.get('cost'),
            hours_reading=data.get('hours_reading'),
            km_reading=data.get('km_reading'),
            status=data.get('status', 'COMPLETED'),
        )

    @property
    def downtime_hours(self) -> float:
        """Hours between scheduled and completed dates, 0 when either is missing."""
        if not self.scheduled_date or not self.completed_date:
            return 0.0
        return (self.completed_date - self.scheduled_date).total_seconds() / 3600


@dataclass
class UsageSession:
    """A single usage session of a piece of equipment."""

    id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    fuel_used: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'UsageSession':
        return cls(
            id=data['id'],
            start_time=_parse_datetime(data['start_time']),
            end_time=_parse_datetime(data.get('end_time')),
            fuel_used=data.get('fuel_used'),
        )

    @property
    def hours(self) -> float:
        if not self.end_time:
            return 0.0
        return (self.end_time - self.start_time).total_seconds() / 3600


@dataclass
class EquipmentSnapshot:
    """
    Read-only view of one equipment unit and its history.

    Maintenance records and usage sessions are kept in chronological order
    (oldest first).
    """

    id: str
    name: str
    type: str
    created_at: datetime
    status: str = 'AVAILABLE'
    current_hours: Optional[float] = None
    current_km: Optional[float] = None
    purchase_date: Optional[datetime] = None
    service_interval_hours: Optional[float] = None
    maintenance_records: List[MaintenanceRecord] = field(default_factory=list)
    usage: List[UsageSession] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'EquipmentSnapshot':
        """Create EquipmentSnapshot instance from dictionary."""
        return cls(
            id=data['id'],
            name=data['name'],
            type=data['type'],
            created_at=_parse_datetime(data['created_at']),
            status=data.get('status', 'AVAILABLE'),
            current_hours=data.get('current_hours'),
            current_km=data.get('current_km'),
            purchase_date=_parse_datetime(data.get('purchase_date')),
            service_interval_hours=data.get('service_interval_hours'),
            maintenance_records=[MaintenanceRecord.from_dict(r)
                                 for r in data.get('maintenance_records', [])],
            usage=[UsageSession.from_dict(u) for u in data.get('usage', [])],
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_EQUIPMENT_STATUSES

    def chronological_records(self) -> List[MaintenanceRecord]:
        """Every maintenance record ordered by scheduled (else completed) date."""
        return sorted(
            self.maintenance_records,
            key=lambda r: r.scheduled_date or r.completed_date or datetime.min,
        )


@dataclass
class MaintenancePrediction:
    """Prediction for a single equipment unit."""

    equipment_id: str
    equipment_name: str
    risk_score: float
    predicted_failure_date: datetime
    days_until_maintenance: int
    failure_type: FailureType
    confidence: float
    recommendations: List[str]
    critical_components: List[str]
    estimated_cost: float
    priority: Priority

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'equipment_id': self.equipment_id,
            'equipment_name': self.equipment_name,
            'risk_score': self.risk_score,
            'predicted_failure_date': self.predicted_failure_date.isoformat(),
            'days_until_maintenance': self.days_until_maintenance,
            'failure_type': self.failure_type.value,
            'confidence': self.confidence,
            'recommendations': list(self.recommendations),
            'critical_components': list(self.critical_components),
            'estimated_cost': self.estimated_cost,
            'priority': self.priority.value,
        }


@dataclass
class MaintenanceAlert:
    """User-facing alert derived from a maintenance prediction."""

    id: str
    equipment_id: str
    alert_type: AlertType
    message: str
    severity: Severity
    generated_at: datetime
    is_acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'equipment_id': self.equipment_id,
            'alert_type': self.alert_type.value,
            'message': self.message,
            'severity': self.severity.value,
            'generated_at': self.generated_at.isoformat(),
            'is_acknowledged': self.is_acknowledged,
        }


def alerts_to_dataframe(alerts: List[MaintenanceAlert]) -> pd.DataFrame:
    """Convert alerts to a pandas DataFrame."""
    return pd.DataFrame([alert.to_dict() for alert in alerts],
                        columns=['id', 'equipment_id', 'alert_type', 'message',
                                 'severity', 'generated_at', 'is_acknowledged'])
