"""
Workforce optimization module.
"""

from .demand import WorkloadForecast, WorkloadForecaster
from .models import (
    AssignmentOutcome,
    Candidate,
    Contractor,
    Employee,
    OptimizationMetrics,
    OptimizationResult,
    ScheduleConstraints,
    Shift,
    ShiftSchedule,
    Skill,
    SkillCatalogEntry,
    SkillGap,
    Timeframe,
    Weather,
    WorkAssignment,
    WorkerHistory,
    WorkerKind,
    WorkerMix,
    WorkforceFactors,
    WorkforceForecast,
    WorkSession,
    WorkTask,
)
from .optimizer import WorkforceOptimizer

__all__ = [
    "WorkforceOptimizer",
    "WorkloadForecaster",
    "WorkloadForecast",
    "AssignmentOutcome",
    "Candidate",
    "Contractor",
    "Employee",
    "OptimizationMetrics",
    "OptimizationResult",
    "ScheduleConstraints",
    "Shift",
    "ShiftSchedule",
    "Skill",
    "SkillCatalogEntry",
    "SkillGap",
    "Timeframe",
    "Weather",
    "WorkAssignment",
    "WorkerHistory",
    "WorkerKind",
    "WorkerMix",
    "WorkforceFactors",
    "WorkforceForecast",
    "WorkSession",
    "WorkTask",
]
