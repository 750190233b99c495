"""
Workforce optimizer.

Implements three capabilities over the shared model registry:
1. Task assignment: score every available candidate against each task and keep
   the best-scoring ones up to the task's worker limit
2. Shift scheduling: score each worker's fit for a shift under the given
   constraints and emit a schedule for those above the threshold
3. Workforce forecasting: predict the headcount a timeframe calls for, with
   skill gaps, an employee/contractor mix and a cost projection
"""

from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime, timedelta
from threading import Lock
import logging
import math
import numpy as np

from ..config import EngineConfig
from ..ml import Architecture, ModelMetrics, ModelRegistry, TaskKind
from .demand import WorkloadForecaster
from .features import (
    ASSIGNMENT_FEATURE_NAMES,
    MAX_JITTER,
    SCHEDULE_FEATURE_NAMES,
    WORKLOAD_FEATURE_NAMES,
    WORKLOAD_LABEL_SCALE,
    assignment_features,
    build_assignment_training_set,
    demand_multiplier,
    schedule_features,
    seasonality_factor,
    skill_match,
    synthetic_assignment_training_set,
    synthetic_schedule_training_set,
    synthetic_workload_training_set,
    timeframe_factor,
    weather_impact,
    workload_features,
)
from .models import (
    DEFAULT_CONTRACTOR_RATE,
    DEFAULT_EMPLOYEE_RATE,
    Candidate,
    OptimizationMetrics,
    OptimizationResult,
    ScheduleConstraints,
    Shift,
    ShiftSchedule,
    SkillGap,
    Timeframe,
    WorkAssignment,
    WorkerMix,
    WorkforceFactors,
    WorkforceForecast,
    WorkTask,
)


logger = logging.getLogger(__name__)

ASSIGNMENT_MODEL = 'task_assignment'
SCHEDULE_MODEL = 'shift_scheduler'
WORKLOAD_MODEL = 'workload_balancer'

DAY_SHIFT_START = 7
NIGHT_SHIFT_START = 19

TIMEFRAME_HOURS = {Timeframe.DAILY: 8, Timeframe.WEEKLY: 40, Timeframe.MONTHLY: 160}
TIMEFRAME_DAYS = {Timeframe.DAILY: 1, Timeframe.WEEKLY: 7, Timeframe.MONTHLY: 30}

EMPLOYEE_SHARE = 0.7
EMPLOYEE_ROLE_SHARES = {
    'OPERATORS': 0.6,
    'TECHNICIANS': 0.2,
    'SUPERVISORS': 0.1,
    'SPECIALISTS': 0.1,
}
CONTRACTOR_ROLE_SHARES = {
    'CONTRACT_OPERATORS': 0.8,
    'CONTRACT_SPECIALISTS': 0.2,
}
SKILL_HOLDER_SHARE = 0.1

# Used when there is nothing to measure them from
DEFAULT_UTILIZATION = 0.75
DEFAULT_OPERATOR_COVERAGE = 0.8

SHIFT_NAMES = (Shift.DAY.value, Shift.NIGHT.value)


def _preferred_shift(preference: Optional[str]) -> Shift:
    return Shift(preference) if preference in SHIFT_NAMES else Shift.DAY


class WorkforceOptimizer:
    """
    Assigns tasks, schedules shifts and forecasts headcount.

    Each call reads the current workforce from the data store and keeps no
    state between calls apart from the trained models in the registry.
    """

    def __init__(self,
                 registry: ModelRegistry,
                 store,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize optimizer.

        Args:
            registry: Model registry shared with the other engines
            store: DataStore supplying employees, contractors and history
            config: Engine configuration
            clock: Callable returning the current time
        """
        self.registry = registry
        self.store = store
        self.config = config or EngineConfig()
        self.clock = clock
        self.is_initialized = False
        self._rng = np.random.default_rng(self.config.random_state)
        self._rng_lock = Lock()

    def initialize(self) -> Dict[str, ModelMetrics]:
        """
        Create and train the assignment, schedule and workload models.

        Safe to call repeatedly; after the first successful call it does
        nothing.
        """
        if self.is_initialized:
            return {}

        specs = [
            (ASSIGNMENT_MODEL, 'Task Assignment Optimizer', ASSIGNMENT_FEATURE_NAMES, Architecture.DEEP),
            (SCHEDULE_MODEL, 'Shift Schedule Optimizer', SCHEDULE_FEATURE_NAMES, Architecture.DEEP),
            (WORKLOAD_MODEL, 'Workload Balance Optimizer', WORKLOAD_FEATURE_NAMES, Architecture.SIMPLE),
        ]
        for model_id, name, feature_names, architecture in specs:
            self.registry.create_model(
                model_id,
                name=name,
                task_kind=TaskKind.REGRESSION,
                input_width=len(feature_names),
                output_width=1,
                architecture=architecture,
            )

        metrics = self._train_models()
        self.is_initialized = True
        logger.info("Workforce optimizer initialized")
        return metrics

    def _train_models(self) -> Dict[str, ModelMetrics]:
        config = self.config
        rng = np.random.default_rng(config.random_state)

        outcomes = self.store.list_assignment_outcomes()
        if outcomes:
            logger.info("Training %s on %d recorded assignment outcomes",
                        ASSIGNMENT_MODEL, len(outcomes))
            assignment_set = build_assignment_training_set(outcomes)
        else:
            logger.warning("No recorded assignment outcomes; training %s on synthetic data",
                           ASSIGNMENT_MODEL)
            assignment_set = synthetic_assignment_training_set(config.synthetic_samples, rng)

        plan = [
            (ASSIGNMENT_MODEL, assignment_set, config.assignment_epochs, config.workforce_batch_size),
            (SCHEDULE_MODEL,
             synthetic_schedule_training_set(config.schedule_synthetic_samples, rng),
             config.schedule_epochs, config.workforce_batch_size),
            (WORKLOAD_MODEL,
             synthetic_workload_training_set(config.workload_synthetic_samples, rng),
             config.workload_epochs, config.workload_batch_size),
        ]
        metrics = {}
        for model_id, training_set, epochs, batch_size in plan:
            metrics[model_id] = self.registry.train(
                model_id,
                training_set,
                epochs=epochs,
                batch_size=batch_size,
                validation_split=config.validation_split,
                patience=config.patience,
            )
        return metrics

    def _jitter(self) -> float:
        with self._rng_lock:
            return float(self._rng.random() * MAX_JITTER)

    def _candidates(self) -> List[Candidate]:
        return [*self.store.list_active_employees(), *self.store.list_available_contractors()]

    def optimize_assignments(self, tasks: List[WorkTask]) -> OptimizationResult:
        """
        Assign candidates to tasks and build the resulting schedules.

        A task that fails to score is logged and left unassigned.

        Args:
            tasks: Tasks to staff

        Returns:
            OptimizationResult with assignments, schedules, metrics,
            recommendations and warnings
        """
        candidates = self._candidates()
        now = self.clock()

        assignments = []
        for task in tasks:
            try:
                assignments.extend(self._assign_task(task, candidates, now))
            except Exception:
                logger.exception("Assignment failed for task %s", task.id)

        schedules = self._schedules_for(assignments, candidates, tasks, now)
        metrics = OptimizationMetrics(
            total_cost=float(sum(a.total_cost for a in assignments)),
            average_skill_match=(float(np.mean([a.skill_match for a in assignments]))
                                 if assignments else 0.0),
            utilization_rate=(float(np.mean([s.utilization_rate for s in schedules]))
                              if schedules else 0.0),
            completion_rate=self._completion_rate(assignments, tasks),
            risk_score=self._risk_score(schedules, assignments),
        )
        result = OptimizationResult(
            assignments=assignments,
            schedules=schedules,
            metrics=metrics,
        )
        result.recommendations = self._recommendations(result)
        result.warnings = self._warnings(result)

        logger.info("Optimized %d tasks: %d assignments, completion %.0f%%",
                    len(tasks), len(assignments), metrics.completion_rate * 100)
        return result

    def _assign_task(self, task: WorkTask, candidates: List[Candidate],
                     now: datetime) -> List[WorkAssignment]:
        config = self.config
        scored = []
        for candidate in candidates:
            match = skill_match(candidate.skill_names(), task.required_skills)
            if not candidate.is_available() or match < config.min_skill_match:
                continue

            history = self.store.get_worker_history(candidate.id)
            features = assignment_features(candidate, task, now,
                                           reliability=history.reliability,
                                           jitter=self._jitter())
            prediction = self.registry.predict(ASSIGNMENT_MODEL, features)
            score = float(prediction.value)
            if score <= config.assignment_threshold:
                continue

            cost_per_hour = candidate.cost_per_hour(task)
            hours = min(task.estimated_hours, candidate.weekly_capacity)
            scored.append(WorkAssignment(
                task_id=task.id,
                worker_id=candidate.id,
                worker_kind=candidate.worker_kind,
                assigned_hours=hours,
                skill_match=match,
                cost_per_hour=cost_per_hour,
                total_cost=cost_per_hour * hours,
                confidence=prediction.confidence,
                score=score,
                reasoning=self._reasoning(match, cost_per_hour, score),
            ))

        # Stable: equal confidence keeps candidate order
        scored.sort(key=lambda a: a.confidence, reverse=True)
        return scored[:task.max_workers]

    @staticmethod
    def _reasoning(match: float, cost_per_hour: float, score: float) -> List[str]:
        reasons = []
        if match > 0.8:
            reasons.append('Excellent skill match for task requirements')
        if cost_per_hour < 50:
            reasons.append('Cost-effective assignment')
        if score > 0.8:
            reasons.append('High confidence in assignment success')
        return reasons

    def _schedules_for(self, assignments: List[WorkAssignment], candidates: List[Candidate],
                       tasks: List[WorkTask], now: datetime) -> List[ShiftSchedule]:
        """One schedule per assigned worker, covering all of that worker's tasks."""
        by_id = {c.id: c for c in candidates}
        tasks_by_id = {t.id: t for t in tasks}
        grouped: Dict[str, List[WorkAssignment]] = {}
        for assignment in assignments:
            grouped.setdefault(assignment.worker_id, []).append(assignment)

        schedules = []
        for worker_id, worker_assignments in grouped.items():
            candidate = by_id[worker_id]
            shift = self._shift_for(candidate, [tasks_by_id[a.task_id] for a in worker_assignments])
            total_hours = sum(a.assigned_hours for a in worker_assignments)
            start, end = self._shift_window(now, shift, total_hours)
            mean_match = float(np.mean([a.skill_match for a in worker_assignments]))
            schedules.append(ShiftSchedule(
                worker_id=worker_id,
                worker_name=candidate.name,
                worker_kind=candidate.worker_kind,
                shift=shift,
                date=start.replace(hour=0),
                start_time=start,
                end_time=end,
                assignments=worker_assignments,
                total_hours=total_hours,
                utilization_rate=min(1.0, total_hours / (candidate.weekly_capacity / 5)),
                efficiency=min(1.0, mean_match * 1.2),
            ))
        return schedules

    @staticmethod
    def _shift_for(candidate: Candidate, tasks: List[WorkTask]) -> Shift:
        """Night only when most of the worker's shift-bound tasks ask for it."""
        preferences = [t.shift_preference for t in tasks if t.shift_preference in SHIFT_NAMES]
        if preferences:
            nights = preferences.count('NIGHT')
            return Shift.NIGHT if nights > len(preferences) - nights else Shift.DAY
        return _preferred_shift(candidate.preferred_shift)

    @staticmethod
    def _shift_window(now: datetime, shift: Shift, hours: float) -> Tuple[datetime, datetime]:
        start_hour = DAY_SHIFT_START if shift == Shift.DAY else NIGHT_SHIFT_START
        start = now.replace(hour=start_hour, minute=0, second=0, microsecond=0)
        return start, start + timedelta(hours=hours)

    @staticmethod
    def _completion_rate(assignments: List[WorkAssignment], tasks: List[WorkTask]) -> float:
        """Share of tasks with at least one assignment; 1 for no tasks."""
        if not tasks:
            return 1.0
        assigned = {a.task_id for a in assignments}
        return len(assigned & {t.id for t in tasks}) / len({t.id for t in tasks})

    @staticmethod
    def _risk_score(schedules: List[ShiftSchedule], assignments: List[WorkAssignment]) -> float:
        risk = 0.0
        if schedules:
            overutilized = sum(1 for s in schedules if s.utilization_rate > 0.9)
            risk += overutilized / len(schedules) * 0.4
        if assignments:
            poor_matches = sum(1 for a in assignments if a.skill_match < 0.5)
            risk += poor_matches / len(assignments) * 0.3
            if np.mean([a.cost_per_hour for a in assignments]) > 80:
                risk += 0.3
        return min(1.0, max(0.0, risk))

    @staticmethod
    def _recommendations(result: OptimizationResult) -> List[str]:
        metrics = result.metrics
        recommendations = []

        if metrics.utilization_rate < 0.7:
            recommendations.append(
                'Consider reducing workforce or increasing task load to improve utilization')
        if metrics.average_skill_match < 0.8:
            recommendations.append(
                'Invest in training programs to better match worker skills with task requirements')
        if metrics.risk_score > 0.6:
            recommendations.append(
                'High risk detected - review assignments and consider workload redistribution')
        if result.contractor_share > 0.4:
            recommendations.append(
                'High contractor usage - consider hiring permanent staff for cost efficiency')

        overworked = sum(1 for s in result.schedules if s.total_hours > 45)
        if overworked:
            recommendations.append(
                f'{overworked} workers scheduled for excessive hours - consider workload balancing')
        return recommendations

    @staticmethod
    def _warnings(result: OptimizationResult) -> List[str]:
        metrics = result.metrics
        warnings = []

        if metrics.completion_rate < 0.8:
            warnings.append(
                'WARNING: Less than 80% of tasks have been assigned - workforce shortage detected')
        if metrics.risk_score > 0.8:
            warnings.append('CRITICAL: High risk score indicates potential operational issues')

        burnout = sum(1 for s in result.schedules if s.total_hours > 50)
        if burnout:
            warnings.append(f'ALERT: {burnout} workers at risk of burnout due to excessive hours')
        return warnings

    def optimize_schedules(self, workers: List[Candidate],
                           constraints: Optional[ScheduleConstraints] = None) -> List[ShiftSchedule]:
        """
        Score each worker's shift fit and schedule those above the threshold.

        Args:
            workers: Workers to schedule
            constraints: Shift constraints (defaults to 8h shifts, 5 days, 12h rest)

        Returns:
            One ShiftSchedule per accepted worker
        """
        constraints = constraints or ScheduleConstraints()
        now = self.clock()

        schedules = []
        for worker in workers:
            try:
                schedule = self._schedule_worker(worker, constraints, now)
            except Exception:
                logger.exception("Scheduling failed for worker %s", worker.id)
                continue
            if schedule is not None:
                schedules.append(schedule)

        return self.balance_coverage(schedules, constraints)

    def _schedule_worker(self, worker: Candidate, constraints: ScheduleConstraints,
                         now: datetime) -> Optional[ShiftSchedule]:
        history = self.store.get_worker_history(worker.id)
        preferred = worker.preferred_shift if worker.preferred_shift in SHIFT_NAMES else None
        if not preferred and history.night_share is not None:
            preferred = Shift.NIGHT.value if history.night_share > 0.5 else Shift.DAY.value

        features = schedule_features(worker, history, constraints, preferred)
        score = float(self.registry.predict(SCHEDULE_MODEL, features).value)
        if score < self.config.schedule_threshold:
            return None

        shift = _preferred_shift(preferred)
        total_hours = min(constraints.shift_length, worker.weekly_capacity / 5)
        start, end = self._shift_window(now, shift, total_hours)
        fitness = min(1.0, max(0.0, score))
        return ShiftSchedule(
            worker_id=worker.id,
            worker_name=worker.name,
            worker_kind=worker.worker_kind,
            shift=shift,
            date=start.replace(hour=0),
            start_time=start,
            end_time=end,
            assignments=[],
            total_hours=total_hours,
            utilization_rate=fitness,
            efficiency=fitness,
        )

    def balance_coverage(self, schedules: List[ShiftSchedule],
                         constraints: ScheduleConstraints) -> List[ShiftSchedule]:
        """Hook for 24-hour coverage balancing; schedules pass through unchanged."""
        return schedules

    def predict_workforce_needs(self,
                                timeframe: Timeframe = Timeframe.WEEKLY,
                                factors: Optional[WorkforceFactors] = None) -> WorkforceForecast:
        """
        Recommend a headcount for the timeframe.

        The model's prediction is floored under demand pressure: with
        utilization above 0.9 or more than five project deadlines, the
        recommendation is at least the current headcount scaled by the same
        multipliers used to label the training data.

        Args:
            timeframe: DAILY, WEEKLY or MONTHLY
            factors: Seasonality, deadlines, maintenance, weather, utilization

        Returns:
            WorkforceForecast
        """
        timeframe = Timeframe(timeframe)
        factors = factors or WorkforceFactors()
        now = self.clock()

        employees = self.store.list_active_employees()
        contractors = self.store.list_available_contractors()
        current_workers = len(employees) + len(contractors)
        utilization = (factors.utilization if factors.utilization is not None
                       else self._current_utilization(employees))
        average_workload, peak_demand = self._workload_profile(timeframe)

        features = workload_features(
            current_workers=current_workers,
            utilization=utilization,
            seasonality=seasonality_factor(factors.seasonality, now),
            deadlines=len(factors.project_deadlines),
            maintenance_events=len(factors.equipment_maintenance),
            weather=weather_impact(factors.weather_conditions),
            average_workload=average_workload,
            peak_demand=peak_demand,
            timeframe=timeframe_factor(timeframe),
            skill_coverage=self._operator_coverage(employees),
        )
        prediction = self.registry.predict(WORKLOAD_MODEL, features)
        recommended = max(1, int(round(float(prediction.value) * WORKLOAD_LABEL_SCALE)))

        pressure = demand_multiplier(utilization, len(factors.project_deadlines))
        if pressure > 1:
            recommended = max(recommended, math.ceil(current_workers * pressure))

        mix = self._worker_mix(recommended)
        forecast = WorkforceForecast(
            timeframe=timeframe,
            current_workers=current_workers,
            recommended_workers=recommended,
            skill_gaps=self._skill_gaps(recommended),
            cost_projection=float((mix.employees * DEFAULT_EMPLOYEE_RATE
                                   + mix.contractors * DEFAULT_CONTRACTOR_RATE)
                                  * TIMEFRAME_HOURS[timeframe]),
            optimal_mix=mix,
            confidence_score=prediction.confidence,
        )
        logger.info("Workforce forecast (%s): %d recommended, %d current",
                    timeframe.value, recommended, current_workers)
        return forecast

    def _current_utilization(self, employees) -> float:
        if not employees:
            return DEFAULT_UTILIZATION
        ratios = [min(1.0, self.store.get_worker_history(e.id).average_hours / e.weekly_capacity)
                  for e in employees]
        return float(np.mean(ratios))

    @staticmethod
    def _operator_coverage(employees) -> float:
        if not employees:
            return DEFAULT_OPERATOR_COVERAGE
        return sum(1 for e in employees if e.role == 'OPERATOR') / len(employees)

    def _workload_profile(self, timeframe: Timeframe) -> Tuple[float, float]:
        forecaster = WorkloadForecaster()
        history = self.store.workload_history()
        if not history.empty:
            forecaster.load_history(history)
        return forecaster.workload_profile(TIMEFRAME_DAYS[timeframe],
                                           self.config.workload_forecast_method)

    def _skill_gaps(self, recommended: int) -> List[SkillGap]:
        target = math.floor(recommended * SKILL_HOLDER_SHARE)
        gaps = [SkillGap(skill=entry.name, shortage=target - entry.holder_count)
                for entry in self.store.list_skill_catalog()]
        return [gap for gap in gaps if gap.shortage > 0]

    @staticmethod
    def _worker_mix(total: int) -> WorkerMix:
        employees = math.floor(total * EMPLOYEE_SHARE)
        contractors = total - employees
        breakdown = {role: math.floor(employees * share)
                     for role, share in EMPLOYEE_ROLE_SHARES.items()}
        breakdown.update({role: math.floor(contractors * share)
                          for role, share in CONTRACTOR_ROLE_SHARES.items()})
        return WorkerMix(employees=employees, contractors=contractors, breakdown=breakdown)
