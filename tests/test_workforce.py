"""
Tests for workforce models, features and the workforce optimizer.
"""

from datetime import datetime, timedelta
import math
import pytest

from conftest import FIXED_NOW, fast_config
from ops_intelligence.ml import ModelRegistry
from ops_intelligence.workforce import (
    AssignmentOutcome,
    Contractor,
    Employee,
    ScheduleConstraints,
    Shift,
    Skill,
    Timeframe,
    Weather,
    WorkerHistory,
    WorkerKind,
    WorkforceFactors,
    WorkforceOptimizer,
    WorkSession,
    WorkTask,
)
from ops_intelligence.workforce.features import (
    demand_multiplier,
    skill_match,
    urgency_score,
    weather_impact,
)


def make_optimizer(store, **overrides):
    config = fast_config(**overrides)
    optimizer = WorkforceOptimizer(ModelRegistry(random_state=config.random_state), store,
                                   config, clock=lambda: FIXED_NOW)
    optimizer.initialize()
    return optimizer


def welding_task(**overrides):
    settings = dict(id='T-1', title='Weld bucket', priority='HIGH',
                    estimated_hours=6, required_skills=['welding'])
    settings.update(overrides)
    return WorkTask(**settings)


class TestWorkerModels:
    """Test candidate costs, capacity and availability."""

    def test_employee_rate_defaults(self):
        task = welding_task()

        assert Employee(id='E', name='E').cost_per_hour(task) == 45
        assert Employee(id='E', name='E', hourly_rate=52).cost_per_hour(task) == 52

    def test_contractor_cost_rules(self):
        normal = welding_task(priority='MEDIUM')
        critical = welding_task(priority='CRITICAL')
        hourly = Contractor(id='C', company_name='Co', contact_name='Lee',
                            hourly_rate=60, emergency_rate=90)
        daily = Contractor(id='C', company_name='Co', contact_name='Lee', daily_rate=480)
        bare = Contractor(id='C', company_name='Co', contact_name='Lee')

        assert hourly.cost_per_hour(normal) == 60
        assert hourly.cost_per_hour(critical) == 90
        assert daily.cost_per_hour(normal) == 60
        assert daily.cost_per_hour(critical) == 60
        assert bare.cost_per_hour(normal) == 65
        assert bare.cost_per_hour(critical) == 80

    def test_unavailable_contractor(self):
        contractor = Contractor(id='C', company_name='Co', contact_name='Lee', available=False)

        assert not contractor.is_available()
        assert contractor.name == 'Lee'
        assert contractor.preferred_shift is None

    def test_task_from_dict_defaults(self):
        task = WorkTask.from_dict({'id': 'T-9', 'estimated_hours': '3'})

        assert task.title == 'T-9'
        assert task.priority.value == 'MEDIUM'
        assert task.estimated_hours == 3.0
        assert task.max_workers == 1

    def test_invalid_priority(self):
        with pytest.raises(ValueError):
            welding_task(priority='URGENT')


class TestWorkerHistory:
    """Test history summaries from recorded sessions."""

    def test_no_sessions_gives_nominal_history(self):
        history = WorkerHistory.from_sessions([])

        assert history.average_hours == 37.5
        assert history.burnout_risk == 0.15
        assert history.night_share is None

    def test_long_night_week(self):
        monday = datetime(2025, 6, 16, 20, 0)
        sessions = [WorkSession('E-1', monday + timedelta(days=d),
                                monday + timedelta(days=d, hours=10))
                    for d in range(5)]

        history = WorkerHistory.from_sessions(sessions)

        assert history.average_hours == pytest.approx(50)
        assert history.burnout_risk == pytest.approx(0.5)
        assert history.night_share == 1.0


class TestFeatureHelpers:
    """Test the scoring helpers shared by training and inference."""

    def test_skill_match_is_case_insensitive_and_partial(self):
        assert skill_match(['welding', 'rigging'], ['Welding']) == 1.0
        assert skill_match(['welding'], ['Welding', 'Electrical']) == 0.5
        assert skill_match([], ['Welding']) == 0.0
        assert skill_match(['anything'], []) == 1.0

    def test_urgency(self):
        assert urgency_score(None, FIXED_NOW) == 0.5
        assert urgency_score(FIXED_NOW - timedelta(days=1), FIXED_NOW) == 1.0
        assert urgency_score(FIXED_NOW + timedelta(days=45), FIXED_NOW) == 0.0

    def test_demand_multiplier(self):
        assert demand_multiplier(0.5, 2) == 1.0
        assert demand_multiplier(0.95, 8) == pytest.approx(1.32)
        assert demand_multiplier(0.5, 0, maintenance_events=3, weather=0.2) == pytest.approx(0.72)


class TestTaskAssignment:
    """Test task assignment and the resulting schedules."""

    def test_single_welder_gets_the_welding_task(self, welder_store):
        optimizer = make_optimizer(welder_store, assignment_threshold=float('-inf'))

        result = optimizer.optimize_assignments([welding_task()])

        assert len(result.assignments) == 1
        assignment = result.assignments[0]
        assert assignment.worker_id == 'E-100'
        assert assignment.skill_match == 1.0
        assert assignment.assigned_hours == 6
        assert assignment.total_cost == 240
        assert assignment.confidence == 0.8
        assert result.metrics.completion_rate == 1.0

        schedule = result.schedules[0]
        assert schedule.shift == Shift.DAY
        assert schedule.start_time == FIXED_NOW.replace(hour=7, minute=0)
        assert schedule.end_time == schedule.start_time + timedelta(hours=6)
        assert 0 <= schedule.utilization_rate <= 1

    @pytest.mark.parametrize('priority', ['LOW', 'MEDIUM', 'HIGH', 'CRITICAL'])
    def test_welder_clears_the_default_threshold(self, welder_store, priority):
        optimizer = make_optimizer(welder_store)
        assert optimizer.config.assignment_threshold == 0.6

        result = optimizer.optimize_assignments([welding_task(priority=priority, max_workers=1)])

        assert len(result.assignments) == 1
        assert result.assignments[0].worker_id == 'E-100'
        assert result.assignments[0].skill_match == 1.0
        assert result.metrics.completion_rate == 1.0

    def test_no_tasks_is_complete(self, welder_store):
        optimizer = make_optimizer(welder_store)

        result = optimizer.optimize_assignments([])

        assert result.assignments == []
        assert result.schedules == []
        assert result.metrics.completion_rate == 1.0
        assert result.warnings == []

    def test_unstaffable_task(self, welder_store):
        optimizer = make_optimizer(welder_store, assignment_threshold=float('-inf'))

        result = optimizer.optimize_assignments([welding_task(required_skills=['Blasting'])])

        assert result.assignments == []
        assert result.metrics.completion_rate == 0.0
        assert any('Less than 80%' in w for w in result.warnings)

    def test_threshold_rejects_every_candidate(self, welder_store):
        optimizer = make_optimizer(welder_store, assignment_threshold=float('inf'))

        result = optimizer.optimize_assignments([welding_task()])

        assert result.assignments == []

    def test_employees_and_contractors_compete(self, mixed_store):
        optimizer = make_optimizer(mixed_store, assignment_threshold=float('-inf'))
        task = welding_task(priority='CRITICAL', max_workers=3, shift_preference='NIGHT')

        result = optimizer.optimize_assignments([task])

        by_worker = {a.worker_id: a for a in result.assignments}
        assert set(by_worker) == {'E-2', 'C-1'}
        assert by_worker['C-1'].cost_per_hour == 90
        assert by_worker['C-1'].worker_kind == WorkerKind.CONTRACTOR
        assert by_worker['E-2'].cost_per_hour == 45
        assert all(s.shift == Shift.NIGHT for s in result.schedules)
        assert result.contractor_share == 0.5
        assert 0 <= result.metrics.completion_rate <= 1

    def test_max_workers_limits_assignments(self, mixed_store):
        optimizer = make_optimizer(mixed_store, assignment_threshold=float('-inf'))

        result = optimizer.optimize_assignments([welding_task(max_workers=1)])

        assert len(result.assignments) == 1

    def test_trains_on_recorded_outcomes(self, welder_store):
        employee = welder_store.list_active_employees()[0]
        for i in range(20):
            welder_store.add_assignment_outcome(AssignmentOutcome(
                task=welding_task(id=f'T-{i}', estimated_hours=2 + i % 6),
                candidate=employee,
                fitness=0.5 + (i % 5) / 10,
                recorded_at=FIXED_NOW - timedelta(days=i),
            ))

        optimizer = make_optimizer(welder_store)

        assert optimizer.registry.get_model('task_assignment').is_trained

    def test_summary_report(self, welder_store):
        optimizer = make_optimizer(welder_store, assignment_threshold=float('-inf'))

        report = optimizer.optimize_assignments([welding_task()]).get_summary_report()

        assert 'ASSIGNMENT OPTIMIZATION SUMMARY' in report
        assert 'T-1 -> E-100' in report


class TestShiftScheduling:
    """Test shift schedule optimization."""

    def test_hours_are_capped_by_daily_capacity(self, mixed_store):
        optimizer = make_optimizer(mixed_store, schedule_threshold=float('-inf'))

        schedules = optimizer.optimize_schedules(mixed_store.list_active_employees(),
                                                 ScheduleConstraints(shift_length=10))

        by_worker = {s.worker_id: s for s in schedules}
        assert set(by_worker) == {'E-1', 'E-2'}
        assert all(s.total_hours == 8 for s in schedules)
        assert by_worker['E-1'].shift == Shift.DAY
        assert by_worker['E-2'].shift == Shift.NIGHT
        assert by_worker['E-2'].start_time.hour == 19
        assert all(0 <= s.utilization_rate <= 1 for s in schedules)

    def test_short_shifts_are_kept(self, mixed_store):
        optimizer = make_optimizer(mixed_store, schedule_threshold=float('-inf'))

        schedules = optimizer.optimize_schedules(mixed_store.list_active_employees(),
                                                 ScheduleConstraints(shift_length=6))

        assert all(s.total_hours == 6 for s in schedules)

    def test_threshold_rejects_everyone(self, mixed_store):
        optimizer = make_optimizer(mixed_store, schedule_threshold=float('inf'))

        assert optimizer.optimize_schedules(mixed_store.list_active_employees()) == []

    def test_night_history_picks_night_shift(self, store):
        store.add_employee(Employee(id='E-7', name='Quinn', skills=[Skill(name='Loader')]))
        for d in range(1, 6):
            start = (FIXED_NOW - timedelta(days=d)).replace(hour=21, minute=0)
            store.add_work_session(WorkSession('E-7', start, start + timedelta(hours=8)))
        optimizer = make_optimizer(store, schedule_threshold=float('-inf'))

        schedules = optimizer.optimize_schedules(store.list_active_employees())

        assert schedules[0].shift == Shift.NIGHT


class TestWorkforceForecast:
    """Test headcount forecasting."""

    def test_demand_pressure_raises_headcount(self, mixed_store):
        optimizer = make_optimizer(mixed_store)
        deadlines = [FIXED_NOW + timedelta(days=d) for d in range(1, 9)]

        forecast = optimizer.predict_workforce_needs(
            Timeframe.WEEKLY, WorkforceFactors(utilization=0.95, project_deadlines=deadlines))

        assert forecast.current_workers == 3
        assert forecast.recommended_workers >= math.ceil(3 * 1.32)
        assert forecast.recommended_workers > forecast.current_workers
        mix = forecast.optimal_mix
        assert mix.employees + mix.contractors == forecast.recommended_workers
        assert forecast.cost_projection == (mix.employees * 45 + mix.contractors * 65) * 40
        assert forecast.confidence_score == 0.8

    def test_empty_workforce_still_recommends_someone(self, store):
        optimizer = make_optimizer(store)

        forecast = optimizer.predict_workforce_needs(Timeframe.DAILY)

        assert forecast.current_workers == 0
        assert forecast.recommended_workers >= 1

    def test_monthly_cost_uses_monthly_hours(self, mixed_store):
        optimizer = make_optimizer(mixed_store)

        forecast = optimizer.predict_workforce_needs('MONTHLY')

        mix = forecast.optimal_mix
        assert forecast.timeframe == Timeframe.MONTHLY
        assert forecast.cost_projection == (mix.employees * 45 + mix.contractors * 65) * 160

    def test_skill_gaps(self, mixed_store):
        optimizer = WorkforceOptimizer(ModelRegistry(), mixed_store, fast_config())

        gaps = {gap.skill: gap.shortage for gap in optimizer._skill_gaps(30)}

        assert gaps == {'Blasting': 3, 'Excavator operation': 2, 'Hydraulics': 2, 'Welding': 2}

    def test_worker_mix(self):
        mix = WorkforceOptimizer._worker_mix(10)

        assert (mix.employees, mix.contractors) == (7, 3)
        assert mix.breakdown['OPERATORS'] == 4
        assert mix.breakdown['TECHNICIANS'] == 1
        assert mix.breakdown['CONTRACT_OPERATORS'] == 2

    def test_weather_is_coerced_to_the_enum(self):
        factors = WorkforceFactors(weather_conditions='EXTREME')

        assert factors.weather_conditions is Weather.EXTREME
        assert WorkforceFactors(weather_conditions=None).weather_conditions is Weather.GOOD
        assert weather_impact(factors.weather_conditions) == 0.5

    def test_unknown_weather_is_a_value_error(self, mixed_store):
        optimizer = make_optimizer(mixed_store)
        factors = WorkforceFactors()
        factors.weather_conditions = 'good'

        with pytest.raises(ValueError):
            WorkforceFactors(weather_conditions='good')
        with pytest.raises(ValueError):
            optimizer.predict_workforce_needs(Timeframe.WEEKLY, factors)
