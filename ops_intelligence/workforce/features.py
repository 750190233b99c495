"""
Feature pipeline for the workforce models.

Three fixed-width vectors feed the three workforce models: candidate/task
fitness (assignment), worker/shift fitness (schedule) and headcount demand
(workload). The synthetic generators and the inference builders below scale
every column the same way, so a model trained on one can score the other.
"""

from typing import List, Optional, Sequence
from datetime import datetime
import math
import numpy as np

from ..maintenance.models import Priority
from ..ml.models import TrainingSet
from .models import (
    AssignmentOutcome,
    Candidate,
    ScheduleConstraints,
    Skill,
    Timeframe,
    Weather,
    WorkerHistory,
    WorkerKind,
    WorkTask,
)


ASSIGNMENT_FEATURE_NAMES = [
    'skill_match', 'experience', 'cost', 'availability', 'priority',
    'hours', 'worker_type', 'location', 'workload', 'urgency',
    'team_size', 'shift', 'reliability', 'equipment', 'randomness',
]
ASSIGNMENT_TARGET = 'assignment_score'

SCHEDULE_FEATURE_NAMES = [
    'day_preference', 'night_preference', 'max_hours', 'avg_hours',
    'burnout_risk', 'skill_value', 'shift_length', 'max_consecutive',
    'rest_hours', 'coverage_24h', 'efficiency', 'reliability',
]
SCHEDULE_TARGET = 'schedule_score'

WORKLOAD_FEATURE_NAMES = [
    'current_workers', 'utilization', 'seasonality', 'deadlines',
    'maintenance', 'weather', 'avg_workload', 'peak_demand', 'timeframe', 'skill_coverage',
]
WORKLOAD_TARGET = 'recommended_workers'

# Headcount labels are stored in hundreds of workers
WORKLOAD_LABEL_SCALE = 100

# Location, workload balance and equipment familiarity are not tracked yet
LOCATION_PREFERENCE = 0.9
WORKLOAD_BALANCE = 0.75
EQUIPMENT_FAMILIARITY = 0.8
MAX_JITTER = 0.1

PRIORITY_WEIGHTS = {
    Priority.LOW: 0.25,
    Priority.MEDIUM: 0.5,
    Priority.HIGH: 0.75,
    Priority.CRITICAL: 1.0,
}

WEATHER_IMPACT = {
    Weather.GOOD: 1.0,
    Weather.POOR: 0.8,
    Weather.EXTREME: 0.5,
}

TIMEFRAME_FACTORS = {
    Timeframe.DAILY: 0.33,
    Timeframe.WEEKLY: 0.66,
    Timeframe.MONTHLY: 1.0,
}

# Demand multipliers shared by the synthetic labels and the forecast floor
HIGH_UTILIZATION = 0.9
HIGH_UTILIZATION_MULTIPLIER = 1.2
MANY_DEADLINES = 5
MANY_DEADLINES_MULTIPLIER = 1.1
HEAVY_MAINTENANCE = 2
HEAVY_MAINTENANCE_MULTIPLIER = 0.9
BAD_WEATHER = 0.3
BAD_WEATHER_MULTIPLIER = 0.8


def skill_match(skill_names: Sequence[str], required_skills: Sequence[str]) -> float:
    """
    Fraction of required skills the worker covers.

    A required skill is covered when it and one of the worker's skill names
    contain each other (case-insensitive). No requirements is a full match.
    """
    if not required_skills:
        return 1.0
    names = [name.lower() for name in skill_names]
    matches = [required for required in required_skills
               if any(required.lower() in name or name in required.lower() for name in names)]
    return len(matches) / len(required_skills)


def experience_score(skills: Sequence[Skill]) -> float:
    """Mean years of experience over 10, defaulting to 2 years per skill."""
    if not skills:
        return 0.0
    years = [s.experience_years if s.experience_years is not None else 2 for s in skills]
    return min(1.0, float(np.mean(years)) / 10)


def priority_weight(priority: Priority) -> float:
    return PRIORITY_WEIGHTS[Priority(priority)]


def urgency_score(deadline: Optional[datetime], now: datetime) -> float:
    """1 for an overdue deadline, falling to 0 at 30 days out; 0.5 without one."""
    if deadline is None:
        return 0.5
    days_until = (deadline - now).total_seconds() / 86400
    return max(0.0, min(1.0, 1 - days_until / 30))


def shift_compatibility(candidate: Candidate, shift_preference: Optional[str]) -> float:
    if not shift_preference or shift_preference == 'ANY':
        return 1.0
    if candidate.preferred_shift:
        return 1.0 if candidate.preferred_shift == shift_preference else 0.6
    return 0.8


def equipment_familiarity(equipment_required: Sequence[str]) -> float:
    return 1.0 if not equipment_required else EQUIPMENT_FAMILIARITY


def skill_value(skills: Sequence[Skill]) -> float:
    """Breadth (up to 5 skills) weighted by the verified share."""
    if not skills:
        return 0.0
    verified = sum(1 for s in skills if s.verified) / len(skills)
    return min(1.0, len(skills) / 5) * verified


def weather_impact(weather: Optional[Weather]) -> float:
    return WEATHER_IMPACT[Weather(weather or Weather.GOOD)]


def timeframe_factor(timeframe: Timeframe) -> float:
    return TIMEFRAME_FACTORS[Timeframe(timeframe)]


def seasonality_factor(seasonality: bool, now: datetime) -> float:
    """0.5 baseline, swinging by 0.2 over the year when seasonality applies."""
    if not seasonality:
        return 0.5
    year_fraction = now.timestamp() / (86400 * 365)
    return math.sin(year_fraction * 2 * math.pi) * 0.2 + 0.5


def demand_multiplier(utilization: float, deadlines: int,
                      maintenance_events: int = 0, weather: float = 1.0) -> float:
    """Headcount multiplier applied for demand pressure and relief."""
    multiplier = 1.0
    if utilization > HIGH_UTILIZATION:
        multiplier *= HIGH_UTILIZATION_MULTIPLIER
    if deadlines > MANY_DEADLINES:
        multiplier *= MANY_DEADLINES_MULTIPLIER
    if maintenance_events > HEAVY_MAINTENANCE:
        multiplier *= HEAVY_MAINTENANCE_MULTIPLIER
    if weather < BAD_WEATHER:
        multiplier *= BAD_WEATHER_MULTIPLIER
    return multiplier


def assignment_features(candidate: Candidate,
                        task: WorkTask,
                        now: datetime,
                        reliability: float = 0.85,
                        jitter: float = 0.0) -> np.ndarray:
    """Candidate/task vector in ASSIGNMENT_FEATURE_NAMES order."""
    skills = candidate.skills_for_scoring()
    return np.array([
        skill_match(candidate.skill_names(), task.required_skills),
        experience_score(skills),
        candidate.cost_per_hour(task) / 100,
        1.0 if candidate.is_available() else 0.0,
        priority_weight(task.priority),
        task.estimated_hours / 8,
        1.0 if candidate.worker_kind == WorkerKind.EMPLOYEE else 0.0,
        LOCATION_PREFERENCE,
        WORKLOAD_BALANCE,
        urgency_score(task.deadline, now),
        min(task.max_workers, 5) / 5,
        shift_compatibility(candidate, task.shift_preference),
        reliability,
        equipment_familiarity(task.equipment_required),
        jitter,
    ], dtype=float)


def schedule_features(candidate: Candidate,
                      history: WorkerHistory,
                      constraints: ScheduleConstraints,
                      preferred_shift: Optional[str] = None) -> np.ndarray:
    """Worker/shift vector in SCHEDULE_FEATURE_NAMES order."""
    preferred = preferred_shift or candidate.preferred_shift
    return np.array([
        0.9 if preferred == 'DAY' else 0.3,
        0.9 if preferred == 'NIGHT' else 0.3,
        candidate.weekly_capacity / 60,
        history.average_hours / 50,
        history.burnout_risk,
        skill_value(candidate.skills_for_scoring()),
        constraints.shift_length / 12,
        constraints.max_consecutive_days / 7,
        1.0 if constraints.min_rest_hours else 0.0,
        1.0 if constraints.coverage_24h else 0.0,
        history.efficiency,
        history.reliability,
    ], dtype=float)


def workload_features(current_workers: int,
                      utilization: float,
                      seasonality: float,
                      deadlines: int,
                      maintenance_events: int,
                      weather: float,
                      average_workload: float,
                      peak_demand: float,
                      timeframe: float,
                      skill_coverage: float) -> np.ndarray:
    """Demand vector in WORKLOAD_FEATURE_NAMES order."""
    return np.array([
        current_workers / 100,
        utilization,
        seasonality,
        deadlines / 10,
        maintenance_events / 5,
        weather,
        average_workload,
        peak_demand,
        timeframe,
        skill_coverage,
    ], dtype=float)


def build_assignment_training_set(outcomes: List[AssignmentOutcome]) -> TrainingSet:
    """
    Real-data training set from recorded assignment outcomes.

    Each outcome is featurised as of its recording time with no jitter; the
    label is the observed fitness.
    """
    rows = [
        assignment_features(o.candidate, o.task, o.recorded_at or datetime.now())
        for o in outcomes
    ]
    return TrainingSet.from_rows(
        rows,
        [min(1.0, max(0.0, o.fitness)) for o in outcomes],
        feature_names=list(ASSIGNMENT_FEATURE_NAMES),
        target_name=ASSIGNMENT_TARGET,
    )


def synthetic_assignment_training_set(n_samples: int = 1000,
                                      rng: Optional[np.random.Generator] = None) -> TrainingSet:
    """
    Random candidate/task pairs scored by a weighted rule.

    Skill match weighs most, then experience and availability; cheaper,
    higher-priority and more reliable candidates score a little higher.
    """
    rng = rng if rng is not None else np.random.default_rng()

    skill = rng.random(n_samples)
    experience = rng.random(n_samples)
    cost = 20 + rng.random(n_samples) * 100
    availability = (rng.random(n_samples) > 0.3).astype(float)
    priority = rng.random(n_samples)
    hours = 1 + rng.random(n_samples) * 10
    worker_type = (rng.random(n_samples) > 0.7).astype(float)
    reliability = rng.random(n_samples)

    score = (skill * 0.3 + experience * 0.2 + availability * 0.2
             + (1 - cost / 120) * 0.1 + priority * 0.1 + reliability * 0.1)
    score = np.clip(score + (rng.random(n_samples) - 0.5) * 0.2, 0, 1)

    features = np.column_stack([
        skill,
        experience,
        cost / 100,
        availability,
        priority,
        hours / 8,
        worker_type,
        rng.random(n_samples),
        rng.random(n_samples),
        rng.random(n_samples),
        rng.random(n_samples),
        rng.random(n_samples),
        reliability,
        rng.random(n_samples),
        rng.random(n_samples) * MAX_JITTER,
    ])
    return TrainingSet(features, score, list(ASSIGNMENT_FEATURE_NAMES), ASSIGNMENT_TARGET)


def synthetic_schedule_training_set(n_samples: int = 800,
                                    rng: Optional[np.random.Generator] = None) -> TrainingSet:
    rng = rng if rng is not None else np.random.default_rng()

    day = rng.random(n_samples)
    night = 1 - day
    max_hours = 35 + rng.random(n_samples) * 20
    avg_hours = 30 + rng.random(n_samples) * 15
    burnout = rng.random(n_samples)
    skill = rng.random(n_samples)
    shift_length = 8 + rng.random(n_samples) * 4
    max_consecutive = 3 + rng.random(n_samples) * 4
    rest = (rng.random(n_samples) > 0.5).astype(float)
    coverage = (rng.random(n_samples) > 0.6).astype(float)
    efficiency = rng.random(n_samples)
    reliability = rng.random(n_samples)

    score = ((day + night) * 0.2 + (1 - burnout) * 0.25 + skill * 0.2
             + efficiency * 0.2 + reliability * 0.15)

    features = np.column_stack([
        day, night, max_hours / 60, avg_hours / 50,
        burnout, skill, shift_length / 12, max_consecutive / 7,
        rest, coverage, efficiency, reliability,
    ])
    return TrainingSet(features, np.clip(score, 0, 1), list(SCHEDULE_FEATURE_NAMES), SCHEDULE_TARGET)


def synthetic_workload_training_set(n_samples: int = 600,
                                    rng: Optional[np.random.Generator] = None) -> TrainingSet:
    """
    Random demand situations labelled with the headcount they call for.

    The label starts from the current headcount and applies the demand
    multipliers, clamped to [5, 200] workers and stored in hundreds.
    """
    rng = rng if rng is not None else np.random.default_rng()

    current = 10 + rng.random(n_samples) * 100
    utilization = rng.random(n_samples)
    seasonality = rng.random(n_samples)
    deadlines = rng.integers(0, 10, n_samples)
    maintenance = rng.integers(0, 5, n_samples)
    weather = rng.random(n_samples)

    multipliers = np.array([
        demand_multiplier(u, d, m, w)
        for u, d, m, w in zip(utilization, deadlines, maintenance, weather)
    ])
    recommended = np.clip(current * multipliers, 5, 200)

    features = np.column_stack([
        current / 100, utilization, seasonality, deadlines / 10,
        maintenance / 5, weather, rng.random(n_samples), rng.random(n_samples),
        rng.random(n_samples), rng.random(n_samples),
    ])
    return TrainingSet(features, recommended / WORKLOAD_LABEL_SCALE,
                       list(WORKLOAD_FEATURE_NAMES), WORKLOAD_TARGET)
