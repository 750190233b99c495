"""
Tests for the equipment feature pipeline.
"""

from datetime import timedelta
import numpy as np
import pytest

from conftest import FIXED_NOW, make_equipment
from ops_intelligence.exceptions import InsufficientHistory
from ops_intelligence.maintenance.features import (
    MAINTENANCE_FEATURE_NAMES,
    build_maintenance_training_set,
    equipment_feature_vector,
    maintenance_rows,
    season_index,
    synthetic_maintenance_training_set,
)
from ops_intelligence.maintenance.models import MaintenanceRecord


class TestEquipmentFeatureVector:
    """Test the per-unit feature vector."""

    def test_vector_has_fixed_width_and_finite_values(self):
        vector = equipment_feature_vector(make_equipment(), FIXED_NOW)

        assert vector.shape == (len(MAINTENANCE_FEATURE_NAMES),)
        assert len(MAINTENANCE_FEATURE_NAMES) == 20
        assert np.all(np.isfinite(vector))

    def test_unit_without_history(self):
        snapshot = make_equipment(records=0, hours=300, km=900)

        vector = equipment_feature_vector(snapshot, FIXED_NOW)

        # Hours and km since service fall back to the totals
        assert vector[3] == 300
        assert vector[4] == 900
        assert vector[16] == 0

    def test_missing_purchase_date_counts_as_twelve_months(self):
        snapshot = make_equipment()
        snapshot.purchase_date = None

        vector = equipment_feature_vector(snapshot, FIXED_NOW)

        assert vector[0] == 12

    def test_season_is_quarter_index(self):
        assert season_index(FIXED_NOW.replace(month=1)) == 0
        assert season_index(FIXED_NOW.replace(month=6)) == 1
        assert season_index(FIXED_NOW.replace(month=12)) == 3


class TestTrainingRows:
    """Test real-history training rows."""

    def test_one_row_per_adjacent_pair(self):
        frame = maintenance_rows(make_equipment(records=6, interval_days=60))

        assert len(frame) == 5
        # Next event scheduled 60 days after the previous one finished 4 hours in
        assert (frame['days_until_maintenance'] == 59).all()

    def test_implausible_gaps_are_dropped(self):
        snapshot = make_equipment(records=3, interval_days=60)
        last = snapshot.maintenance_records[-1]
        snapshot.maintenance_records.append(MaintenanceRecord(
            id='late',
            type='ROUTINE_SERVICE',
            scheduled_date=last.completed_date + timedelta(days=500),
            completed_date=last.completed_date + timedelta(days=501),
        ))

        frame = maintenance_rows(snapshot)

        assert len(frame) == 2
        assert frame['days_until_maintenance'].max() <= 365

    def test_upcoming_scheduled_event_still_yields_a_row(self):
        snapshot = make_equipment(records=2, interval_days=60)
        last = snapshot.maintenance_records[-1]
        snapshot.maintenance_records.append(MaintenanceRecord(
            id='upcoming',
            type='ROUTINE_SERVICE',
            scheduled_date=last.completed_date + timedelta(days=30),
            status='SCHEDULED',
        ))

        frame = maintenance_rows(snapshot)

        assert len(frame) == 2
        assert frame['days_until_maintenance'].tolist() == [59, 30]

    def test_unfinished_event_cannot_start_a_pair(self):
        snapshot = make_equipment(records=1, interval_days=60)
        first = snapshot.maintenance_records[0]
        snapshot.maintenance_records.extend([
            MaintenanceRecord(id='open', type='REPAIR',
                              scheduled_date=first.completed_date + timedelta(days=20),
                              status='IN_PROGRESS'),
            MaintenanceRecord(id='next', type='ROUTINE_SERVICE',
                              scheduled_date=first.completed_date + timedelta(days=50),
                              status='SCHEDULED'),
        ])

        frame = maintenance_rows(snapshot)

        assert frame['days_until_maintenance'].tolist() == [20]

    def test_too_few_units_raise(self):
        units = [make_equipment(equipment_id=f'EX-{i}') for i in range(3)]

        with pytest.raises(InsufficientHistory) as excinfo:
            build_maintenance_training_set(units, min_units=5)

        assert excinfo.value.available == 3
        assert excinfo.value.required == 5

    def test_enough_units_build_a_set(self):
        units = [make_equipment(equipment_id=f'EX-{i}') for i in range(5)]

        training_set = build_maintenance_training_set(units, min_units=5)

        assert len(training_set) == 25
        assert training_set.width == 20


class TestSyntheticData:
    """Test synthetic fallback data."""

    def test_shape_and_label_floor(self):
        rng = np.random.default_rng(1)

        training_set = synthetic_maintenance_training_set('DUMP_TRUCK', 300, rng)

        assert training_set.features.shape == (300, 20)
        assert training_set.labels.min() >= 1
        # Dump trucks have a 60 day base interval, +20% noise at most
        assert training_set.labels.max() <= 72

    def test_seeded_generation_is_reproducible(self):
        first = synthetic_maintenance_training_set('LOADER', 50, np.random.default_rng(3))
        second = synthetic_maintenance_training_set('LOADER', 50, np.random.default_rng(3))

        np.testing.assert_array_equal(first.features, second.features)
        np.testing.assert_array_equal(first.labels, second.labels)
