#!/usr/bin/env python3
"""
Example usage of the Operations Intelligence Engine.

This script trains the maintenance and workforce models on demo data, then
walks through maintenance predictions, alerts, task assignment, shift
scheduling and a workforce forecast.
"""

from datetime import datetime, timedelta
from ops_intelligence import EngineConfig, EngineContext
from ops_intelligence.config import configure_logging
from ops_intelligence.demo import build_demo_store
from ops_intelligence.maintenance.models import alerts_to_dataframe
from ops_intelligence.workforce import ScheduleConstraints, Timeframe, WorkforceFactors, WorkTask


def main():
    configure_logging('WARNING')
    print("=== Operations Intelligence Engine Demo ===\n")

    # 1. Build data store and engine context
    print("1. Loading demo data...")
    now = datetime.now()
    store = build_demo_store(now)
    print(f"Loaded {len(store.list_equipment())} equipment units, "
          f"{len(store.list_active_employees())} employees, "
          f"{len(store.list_available_contractors())} contractors")

    context = EngineContext.create(store, EngineConfig())

    # 2. Train models
    print("\n2. Training models (synthetic fallback where history is short)...")
    metrics = context.initialize()
    for name, result in metrics.items():
        print(f"     {name}: {result.epochs_trained} epochs, accuracy {result.accuracy:.2f}")

    # 3. Maintenance predictions
    print("\n3. Maintenance predictions:")
    for snapshot in store.list_equipment():
        prediction = context.predict_maintenance(snapshot.id)
        print(f"     {prediction.equipment_name}: {prediction.days_until_maintenance} days, "
              f"risk {prediction.risk_score:.2f}, {prediction.priority.value}, "
              f"~${prediction.estimated_cost:,.0f}")

    # 4. Alerts
    print("\n4. Maintenance alerts:")
    alerts = context.generate_alerts()
    if alerts:
        print(alerts_to_dataframe(alerts)[['equipment_id', 'alert_type', 'severity', 'message']]
              .to_string(index=False))
    else:
        print("   No alerts")

    # 5. Task assignment
    print("\n5. Optimizing task assignments...")
    tasks = [
        WorkTask(id='T-1', title='Repair bucket linkage', priority='HIGH', estimated_hours=6,
                 required_skills=['Welding'], deadline=now + timedelta(days=2)),
        WorkTask(id='T-2', title='Overburden removal', priority='MEDIUM', estimated_hours=8,
                 required_skills=['Excavator operation'], max_workers=2),
        WorkTask(id='T-3', title='Replace sensor loom', priority='CRITICAL', estimated_hours=4,
                 required_skills=['Electrical'], shift_preference='NIGHT'),
    ]
    result = context.optimize_assignments(tasks)
    print(result.get_summary_report())

    # 6. Shift scheduling
    print("\n6. Shift schedules:")
    schedules = context.optimize_schedules(store.list_active_employees(),
                                           ScheduleConstraints(shift_length=10))
    for schedule in schedules:
        print(f"     {schedule.worker_name}: {schedule.shift.value} "
              f"{schedule.start_time.strftime('%H:%M')}-{schedule.end_time.strftime('%H:%M')}")

    # 7. Workforce forecast
    print("\n7. Workforce forecast (weekly, busy period):")
    forecast = context.predict_workforce_needs(
        Timeframe.WEEKLY,
        WorkforceFactors(utilization=0.95,
                         project_deadlines=[now + timedelta(days=d) for d in range(1, 9)]),
    )
    print(f"   Current workers: {forecast.current_workers}")
    print(f"   Recommended: {forecast.recommended_workers} "
          f"({forecast.optimal_mix.employees} employees, {forecast.optimal_mix.contractors} contractors)")
    print(f"   Cost projection: ${forecast.cost_projection:,.0f}")
    for gap in forecast.skill_gaps:
        print(f"     Short {gap.shortage} x {gap.skill}")

    # 8. Export results
    print("\n8. Exporting results...")
    result.to_dataframe().to_csv('assignments_output.csv', index=False)
    print("   Assignments saved to assignments_output.csv")

    print("\n=== Demo Complete ===")


if __name__ == "__main__":
    main()
