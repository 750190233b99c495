"""
Pytest configuration and fixtures for the operations intelligence test suite.
"""

from datetime import datetime, timedelta
import pytest

from ops_intelligence.config import EngineConfig
from ops_intelligence.context import EngineContext
from ops_intelligence.datastore import InMemoryDataStore
from ops_intelligence.demo import build_demo_store
from ops_intelligence.maintenance.models import EquipmentSnapshot, MaintenanceRecord, UsageSession
from ops_intelligence.workforce.models import Contractor, Employee, Skill


FIXED_NOW = datetime(2025, 6, 16, 9, 30)


def fast_config(**overrides) -> EngineConfig:
    """Small sample counts and epoch budgets so training takes seconds."""
    settings = dict(
        synthetic_samples=200,
        schedule_synthetic_samples=160,
        workload_synthetic_samples=160,
        maintenance_epochs=5,
        synthetic_epochs=5,
        assignment_epochs=5,
        schedule_epochs=5,
        workload_epochs=5,
        patience=3,
        max_workers=2,
    )
    settings.update(overrides)
    return EngineConfig(**settings)


def make_equipment(equipment_id='EX-01', equipment_type='EXCAVATOR', status='AVAILABLE',
                   age_days=730, hours=4000, km=12000, service_interval_hours=500,
                   interval_days=60, records=6, now=FIXED_NOW) -> EquipmentSnapshot:
    """Equipment unit with evenly spaced completed maintenance."""
    purchased = now - timedelta(days=age_days)
    history = []
    for i in range(records):
        scheduled = purchased + timedelta(days=interval_days * (i + 1))
        history.append(MaintenanceRecord(
            id=f'{equipment_id}-M{i}',
            type='REPAIR' if i % 3 == 2 else 'ROUTINE_SERVICE',
            scheduled_date=scheduled,
            completed_date=scheduled + timedelta(hours=4),
            cost=1000 + 100 * i,
            hours_reading=hours * (i + 1) / (records + 1),
            km_reading=km * (i + 1) / (records + 1),
        ))
    usage = [
        UsageSession(id=f'{equipment_id}-U{d}',
                     start_time=now - timedelta(days=d, hours=9),
                     end_time=now - timedelta(days=d, hours=1),
                     fuel_used=90.0)
        for d in range(1, 4)
    ]
    return EquipmentSnapshot(
        id=equipment_id,
        name=f'{equipment_type.title()} {equipment_id}',
        type=equipment_type,
        created_at=purchased,
        status=status,
        current_hours=hours,
        current_km=km,
        purchase_date=purchased,
        service_interval_hours=service_interval_hours,
        maintenance_records=history,
        usage=usage,
    )


@pytest.fixture
def config():
    return fast_config()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryDataStore()


@pytest.fixture
def welder_store():
    """One available employee who welds and rigs, nobody else."""
    store = InMemoryDataStore()
    store.add_employee(Employee(
        id='E-100',
        name='Pat Welder',
        hourly_rate=40,
        skills=[Skill(name='welding', verified=True, experience_years=6),
                Skill(name='rigging', verified=True, experience_years=3)],
    ))
    return store


@pytest.fixture
def mixed_store():
    """Two employees and two contractors with overlapping skills."""
    store = InMemoryDataStore()
    store.add_employee(Employee(id='E-1', name='Alex', role='OPERATOR', hourly_rate=42,
                                preferred_shift='DAY',
                                skills=[Skill(name='Excavator operation', verified=True)]))
    store.add_employee(Employee(id='E-2', name='Sam', role='TECHNICIAN',
                                preferred_shift='NIGHT',
                                skills=[Skill(name='Welding'), Skill(name='Hydraulics')]))
    store.add_contractor(Contractor(id='C-1', company_name='Weld Co', contact_name='Robin',
                                    hourly_rate=60, emergency_rate=90, skills=['Welding']))
    store.add_contractor(Contractor(id='C-2', company_name='Sparks Ltd', contact_name='Drew',
                                    daily_rate=480, skills=['Electrical'], available=False))
    store.add_skill('Blasting', 'SPECIALIST')
    return store


@pytest.fixture(scope='session')
def demo_context():
    """Initialized context over the demo store, shared across tests."""
    context = EngineContext.create(build_demo_store(FIXED_NOW), fast_config(),
                                   clock=lambda: FIXED_NOW)
    context.initialize()
    return context
