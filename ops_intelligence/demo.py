"""
Demo data for the example script and the API server.

Builds an in-memory store with a small mixed fleet, a crew of employees and
contractors, some work sessions and four weeks of daily load history.
"""

from datetime import datetime, timedelta
from typing import Optional
import numpy as np
import pandas as pd

from .datastore import InMemoryDataStore
from .maintenance.models import EquipmentSnapshot, MaintenanceRecord, UsageSession
from .workforce.models import Contractor, Employee, Skill, WorkSession


FLEET = [
    # id, name, type, years in service, hours, km, service interval
    ('EX-01', 'Excavator 01', 'EXCAVATOR', 4, 7200, 21000, 500),
    ('EX-02', 'Excavator 02', 'EXCAVATOR', 1, 1400, 4000, 500),
    ('DT-01', 'Dump Truck 01', 'DUMP_TRUCK', 5, 9800, 92000, 400),
    ('DT-02', 'Dump Truck 02', 'DUMP_TRUCK', 2, 3100, 38000, 400),
    ('DR-01', 'Drill Rig 01', 'DRILL_RIG', 3, 4500, 6000, 600),
    ('LD-01', 'Loader 01', 'LOADER', 2, 2600, 15000, 450),
    ('BD-01', 'Bulldozer 01', 'BULLDOZER', 6, 8800, 30000, 500),
]

CREW = [
    # id, name, role, rate, preferred shift, skills
    ('E-001', 'Alex Morgan', 'OPERATOR', 42, 'DAY', ['Excavator operation', 'Rigging']),
    ('E-002', 'Sam Taylor', 'TECHNICIAN', 48, 'NIGHT', ['Welding', 'Hydraulics']),
    ('E-003', 'Jordan Lee', 'OPERATOR', 40, 'DAY', ['Haul truck operation']),
    ('E-004', 'Casey Kim', 'SUPERVISOR', 55, None, ['Safety', 'Blasting', 'Rigging']),
]


def _maintenance_history(equipment_id: str, purchased: datetime, hours: float,
                         interval_days: int, now: datetime):
    records = []
    date = purchased + timedelta(days=interval_days)
    reading = 0.0
    i = 0
    while date < now - timedelta(days=7):
        reading += hours * interval_days / max(1, (now - purchased).days)
        if i % 7 == 6:
            record_type = 'EMERGENCY'
        elif i % 5 == 4:
            record_type = 'REPAIR'
        else:
            record_type = 'ROUTINE_SERVICE'
        records.append(MaintenanceRecord(
            id=f'{equipment_id}-M{i:03d}',
            type=record_type,
            scheduled_date=date,
            completed_date=date + timedelta(hours=6),
            cost=1500 + 120 * i,
            hours_reading=round(reading),
            km_reading=None,
        ))
        date += timedelta(days=interval_days)
        i += 1
    return records


def build_demo_store(now: Optional[datetime] = None) -> InMemoryDataStore:
    """
    In-memory store populated with demo equipment, workers and history.

    Args:
        now: Reference time for all generated history (defaults to now)
    """
    now = now or datetime.now()
    store = InMemoryDataStore()

    for equipment_id, name, equipment_type, years, hours, km, interval in FLEET:
        purchased = now - timedelta(days=365 * years)
        usage = [
            UsageSession(
                id=f'{equipment_id}-U{day}',
                start_time=now - timedelta(days=day, hours=10),
                end_time=now - timedelta(days=day, hours=2),
                fuel_used=120.0,
            )
            for day in range(1, 8)
        ]
        store.add_equipment(EquipmentSnapshot(
            id=equipment_id,
            name=name,
            type=equipment_type,
            created_at=purchased,
            status='IN_USE',
            current_hours=hours,
            current_km=km,
            purchase_date=purchased,
            service_interval_hours=interval,
            maintenance_records=_maintenance_history(equipment_id, purchased, hours, 75, now),
            usage=usage,
        ))

    for employee_id, name, role, rate, shift, skills in CREW:
        store.add_employee(Employee(
            id=employee_id,
            name=name,
            role=role,
            hourly_rate=rate,
            max_hours_per_week=40,
            preferred_shift=shift,
            skills=[Skill(name=s, experience_years=4, verified=True) for s in skills],
        ))
        start_hour = 19 if shift == 'NIGHT' else 7
        for day in range(1, 15):
            start = (now - timedelta(days=day)).replace(hour=start_hour, minute=0, second=0, microsecond=0)
            store.add_work_session(WorkSession(employee_id, start, start + timedelta(hours=8)))

    store.add_contractor(Contractor(
        id='C-001',
        company_name='Northern Welding Services',
        contact_name='Robin Hale',
        hourly_rate=62,
        emergency_rate=85,
        skills=['Welding', 'Fabrication'],
    ))
    store.add_contractor(Contractor(
        id='C-002',
        company_name='Ridge Electrical',
        contact_name='Drew Park',
        daily_rate=560,
        skills=['Electrical', 'Instrumentation'],
    ))
    store.add_skill('Electrical', 'TECHNICAL')
    store.add_skill('Instrumentation', 'TECHNICAL')

    rng = np.random.default_rng(7)
    dates = pd.date_range(end=now.date(), periods=28, freq='D')
    weekday_load = np.array([14, 16, 16, 15, 17, 9, 6])
    store.set_workload_history(pd.DataFrame({
        'date': dates,
        'load_units': weekday_load[dates.dayofweek.to_numpy()] + rng.integers(-2, 3, len(dates)),
    }))
    return store
