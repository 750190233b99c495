"""
Data models for workforce optimization.

Employees and contractors share one candidate interface (skills, hourly
cost for a task, weekly capacity, availability) so the optimizer never
needs to inspect which kind of worker it is scoring.
"""

from typing import List, Dict, Any, Optional, Union
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
import pandas as pd

from ..maintenance.models import Priority


DEFAULT_EMPLOYEE_RATE = 45.0
DEFAULT_CONTRACTOR_RATE = 65.0
DEFAULT_CONTRACTOR_EMERGENCY_RATE = 80.0
DEFAULT_MAX_HOURS_PER_WEEK = 40.0
HOURS_PER_DAY = 8


class WorkerKind(str, Enum):
    EMPLOYEE = 'EMPLOYEE'
    CONTRACTOR = 'CONTRACTOR'


class Shift(str, Enum):
    DAY = 'DAY'
    NIGHT = 'NIGHT'


class Timeframe(str, Enum):
    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'


class Weather(str, Enum):
    GOOD = 'GOOD'
    POOR = 'POOR'
    EXTREME = 'EXTREME'


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Skill:
    """A skill held by a worker."""

    name: str
    category: str = 'GENERAL'
    level: str = 'INTERMEDIATE'
    verified: bool = False
    experience_years: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'Skill':
        return cls(
            name=data['name'],
            category=data.get('category', 'GENERAL'),
            level=data.get('level', 'INTERMEDIATE'),
            verified=data.get('verified', False),
            experience_years=data.get('experience_years'),
        )


@dataclass
class WorkTask:
    """A unit of work to be staffed."""

    id: str
    title: str
    priority: Priority
    estimated_hours: float
    required_skills: List[str] = field(default_factory=list)
    preferred_experience: float = 0
    description: Optional[str] = None
    location: Optional[str] = None
    equipment_required: List[str] = field(default_factory=list)
    deadline: Optional[datetime] = None
    shift_preference: Optional[str] = None
    min_workers: int = 1
    max_workers: int = 1
    cost_budget: Optional[float] = None

    def __post_init__(self):
        self.priority = Priority(self.priority)

    @classmethod
    def from_dict(cls, data: Dict) -> 'WorkTask':
        """Create WorkTask instance from dictionary."""
        return cls(
            id=data['id'],
            title=data.get('title') or data['id'],
            priority=Priority(data.get('priority', 'MEDIUM')),
            estimated_hours=float(data['estimated_hours']),
            required_skills=list(data.get('required_skills', [])),
            preferred_experience=data.get('preferred_experience', 0),
            description=data.get('description'),
            location=data.get('location'),
            equipment_required=list(data.get('equipment_required', [])),
            deadline=_parse_datetime(data.get('deadline')),
            shift_preference=data.get('shift_preference'),
            min_workers=data.get('min_workers', 1),
            max_workers=data.get('max_workers', 1),
            cost_budget=data.get('cost_budget'),
        )


@dataclass
class Employee:
    """A permanent worker."""

    id: str
    name: str
    role: str = 'OPERATOR'
    status: str = 'ACTIVE'
    department: Optional[str] = None
    hourly_rate: Optional[float] = None
    max_hours_per_week: Optional[float] = None
    preferred_shift: Optional[str] = None
    skills: List[Skill] = field(default_factory=list)

    worker_kind = WorkerKind.EMPLOYEE

    @classmethod
    def from_dict(cls, data: Dict) -> 'Employee':
        return cls(
            id=data['id'],
            name=data['name'],
            role=data.get('role', 'OPERATOR'),
            status=data.get('status', 'ACTIVE'),
            department=data.get('department'),
            hourly_rate=data.get('hourly_rate'),
            max_hours_per_week=data.get('max_hours_per_week'),
            preferred_shift=data.get('preferred_shift'),
            skills=[Skill.from_dict(s) for s in data.get('skills', [])],
        )

    def skill_names(self) -> List[str]:
        return [skill.name.lower() for skill in self.skills]

    def skills_for_scoring(self) -> List[Skill]:
        return list(self.skills)

    def cost_per_hour(self, task: WorkTask) -> float:
        return self.hourly_rate or DEFAULT_EMPLOYEE_RATE

    @property
    def weekly_capacity(self) -> float:
        return self.max_hours_per_week or DEFAULT_MAX_HOURS_PER_WEEK

    def is_available(self) -> bool:
        return self.status == 'ACTIVE'


@dataclass
class Contractor:
    """An external contractor, billed by the hour, day or emergency call-out."""

    id: str
    company_name: str
    contact_name: str
    status: str = 'ACTIVE'
    available: bool = True
    hourly_rate: Optional[float] = None
    daily_rate: Optional[float] = None
    emergency_rate: Optional[float] = None
    max_hours_per_week: Optional[float] = None
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None
    skills: List[str] = field(default_factory=list)

    worker_kind = WorkerKind.CONTRACTOR
    preferred_shift = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'Contractor':
        return cls(
            id=data['id'],
            company_name=data['company_name'],
            contact_name=data['contact_name'],
            status=data.get('status', 'ACTIVE'),
            available=data.get('available', True),
            hourly_rate=data.get('hourly_rate'),
            daily_rate=data.get('daily_rate'),
            emergency_rate=data.get('emergency_rate'),
            max_hours_per_week=data.get('max_hours_per_week'),
            available_from=_parse_datetime(data.get('available_from')),
            available_to=_parse_datetime(data.get('available_to')),
            skills=list(data.get('skills', [])),
        )

    @property
    def name(self) -> str:
        return self.contact_name

    def skill_names(self) -> List[str]:
        return [skill.lower() for skill in self.skills]

    def skills_for_scoring(self) -> List[Skill]:
        # Contractor skills carry no detail; score them as verified, mid-level
        return [Skill(name=s, level='INTERMEDIATE', verified=True, experience_years=3)
                for s in self.skills]

    def cost_per_hour(self, task: WorkTask) -> float:
        day_derived = self.daily_rate / HOURS_PER_DAY if self.daily_rate else 0
        if task.priority == Priority.CRITICAL:
            return (self.emergency_rate or self.hourly_rate or day_derived
                    or DEFAULT_CONTRACTOR_EMERGENCY_RATE)
        return self.hourly_rate or day_derived or DEFAULT_CONTRACTOR_RATE

    @property
    def weekly_capacity(self) -> float:
        return self.max_hours_per_week or DEFAULT_MAX_HOURS_PER_WEEK

    def is_available(self) -> bool:
        return self.status == 'ACTIVE' and self.available


Candidate = Union[Employee, Contractor]


@dataclass
class WorkSession:
    """A recorded block of work by one worker."""

    worker_id: str
    start_time: datetime
    end_time: datetime

    @property
    def hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def is_night(self) -> bool:
        return self.start_time.hour >= 19 or self.start_time.hour < 7


@dataclass
class WorkerHistory:
    """Summary of a worker's recent working pattern."""

    average_hours: float = 37.5
    burnout_risk: float = 0.15
    efficiency: float = 0.85
    reliability: float = 0.9
    night_share: Optional[float] = None

    @classmethod
    def from_sessions(cls, sessions: List[WorkSession]) -> 'WorkerHistory':
        """
        Weekly averages from recorded sessions.

        Burnout risk grows linearly from 40 to 60 hours per week. Efficiency
        and reliability are not measured yet and keep their nominal values.
        """
        if not sessions:
            return cls()

        frame = pd.DataFrame({
            'start': [s.start_time for s in sessions],
            'hours': [s.hours for s in sessions],
            'night': [s.is_night for s in sessions],
        })
        frame['week'] = pd.to_datetime(frame['start']).dt.to_period('W')
        weekly = frame.groupby('week')['hours'].sum()
        average_hours = float(weekly.mean())

        return cls(
            average_hours=average_hours,
            burnout_risk=min(1.0, max(0.0, (average_hours - 40) / 20)),
            night_share=float(frame['night'].mean()),
        )


@dataclass
class AssignmentOutcome:
    """A historical assignment with an observed fitness in [0, 1]."""

    task: WorkTask
    candidate: Candidate
    fitness: float
    recorded_at: Optional[datetime] = None


@dataclass
class SkillCatalogEntry:
    name: str
    category: str = 'GENERAL'
    holder_count: int = 0


@dataclass
class WorkAssignment:
    """A worker assigned to a task."""

    task_id: str
    worker_id: str
    worker_kind: WorkerKind
    assigned_hours: float
    skill_match: float
    cost_per_hour: float
    total_cost: float
    confidence: float
    score: float
    reasoning: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'task_id': self.task_id,
            'worker_id': self.worker_id,
            'worker_kind': self.worker_kind.value,
            'assigned_hours': self.assigned_hours,
            'skill_match': self.skill_match,
            'cost_per_hour': self.cost_per_hour,
            'total_cost': self.total_cost,
            'confidence': self.confidence,
            'score': self.score,
            'reasoning': list(self.reasoning),
        }


@dataclass
class ShiftSchedule:
    """One worker's shift with the assignments it covers."""

    worker_id: str
    worker_name: str
    worker_kind: WorkerKind
    shift: Shift
    date: datetime
    start_time: datetime
    end_time: datetime
    assignments: List[WorkAssignment]
    total_hours: float
    utilization_rate: float
    efficiency: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'worker_id': self.worker_id,
            'worker_name': self.worker_name,
            'worker_kind': self.worker_kind.value,
            'shift': self.shift.value,
            'date': self.date.isoformat(),
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'assignments': [a.to_dict() for a in self.assignments],
            'total_hours': self.total_hours,
            'utilization_rate': self.utilization_rate,
            'efficiency': self.efficiency,
        }


@dataclass
class OptimizationMetrics:
    total_cost: float
    average_skill_match: float
    utilization_rate: float
    completion_rate: float
    risk_score: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'total_cost': self.total_cost,
            'average_skill_match': self.average_skill_match,
            'utilization_rate': self.utilization_rate,
            'completion_rate': self.completion_rate,
            'risk_score': self.risk_score,
        }


@dataclass
class OptimizationResult:
    """Results of an assignment optimization run."""

    assignments: List[WorkAssignment]
    schedules: List[ShiftSchedule]
    metrics: OptimizationMetrics
    recommendations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def contractor_share(self) -> float:
        """Fraction of assignments given to contractors."""
        if not self.assignments:
            return 0.0
        contractors = sum(1 for a in self.assignments if a.worker_kind == WorkerKind.CONTRACTOR)
        return contractors / len(self.assignments)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert assignments to pandas DataFrame."""
        return pd.DataFrame([a.to_dict() for a in self.assignments])

    def get_summary_report(self) -> str:
        """Generate a text summary report."""
        report = []
        report.append("=== ASSIGNMENT OPTIMIZATION SUMMARY ===")
        report.append(f"Assignments: {len(self.assignments)}")
        report.append(f"Schedules: {len(self.schedules)}")
        report.append(f"Total cost: ${self.metrics.total_cost:,.2f}")
        report.append(f"Average skill match: {self.metrics.average_skill_match:.0%}")
        report.append(f"Utilization: {self.metrics.utilization_rate:.0%}")
        report.append(f"Completion rate: {self.metrics.completion_rate:.0%}")
        report.append(f"Risk score: {self.metrics.risk_score:.2f}")
        report.append("")
        report.append("ASSIGNMENTS:")
        for assignment in self.assignments:
            report.append(f"  {assignment.task_id} -> {assignment.worker_id} "
                          f"({assignment.worker_kind.value}): {assignment.assigned_hours:g}h "
                          f"@ ${assignment.cost_per_hour:.2f}/h, match {assignment.skill_match:.0%}")
        if self.recommendations:
            report.append("")
            report.append("RECOMMENDATIONS:")
            report.extend(f"  - {r}" for r in self.recommendations)
        if self.warnings:
            report.append("")
            report.append("WARNINGS:")
            report.extend(f"  ! {w}" for w in self.warnings)
        return "\n".join(report)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'assignments': [a.to_dict() for a in self.assignments],
            'schedules': [s.to_dict() for s in self.schedules],
            'metrics': self.metrics.to_dict(),
            'recommendations': list(self.recommendations),
            'warnings': list(self.warnings),
        }


@dataclass
class ScheduleConstraints:
    shift_length: float = 8
    max_consecutive_days: int = 5
    min_rest_hours: float = 12
    coverage_24h: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> 'ScheduleConstraints':
        return cls(
            shift_length=data.get('shift_length') or 8,
            max_consecutive_days=data.get('max_consecutive_days') or 5,
            min_rest_hours=data.get('min_rest_hours') or 12,
            coverage_24h=data.get('coverage_24h', False),
        )


@dataclass
class WorkforceFactors:
    """Conditions that shape a workforce-needs forecast."""

    seasonality: bool = False
    project_deadlines: List[datetime] = field(default_factory=list)
    equipment_maintenance: List[str] = field(default_factory=list)
    weather_conditions: Weather = Weather.GOOD
    utilization: Optional[float] = None

    def __post_init__(self):
        self.weather_conditions = Weather(self.weather_conditions or Weather.GOOD)


@dataclass
class SkillGap:
    skill: str
    shortage: int

    def to_dict(self) -> Dict[str, Any]:
        return {'skill': self.skill, 'shortage': self.shortage}


@dataclass
class WorkerMix:
    employees: int
    contractors: int
    breakdown: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'employees': self.employees,
            'contractors': self.contractors,
            'breakdown': dict(self.breakdown),
        }


@dataclass
class WorkforceForecast:
    """Recommended headcount and what it would take to get there."""

    timeframe: Timeframe
    current_workers: int
    recommended_workers: int
    skill_gaps: List[SkillGap]
    cost_projection: float
    optimal_mix: WorkerMix
    confidence_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timeframe': self.timeframe.value,
            'current_workers': self.current_workers,
            'recommended_workers': self.recommended_workers,
            'skill_gaps': [g.to_dict() for g in self.skill_gaps],
            'cost_projection': self.cost_projection,
            'optimal_mix': self.optimal_mix.to_dict(),
            'confidence_score': self.confidence_score,
        }
