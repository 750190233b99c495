"""
Tests for numeric preprocessing helpers.
"""

import numpy as np
import pytest

from ops_intelligence.ml.preprocessing import create_time_series_sequences, normalize


class TestNormalize:
    """Test min-max scaling."""

    def test_columns_scaled_to_unit_range(self):
        data = np.array([[0.0, 10.0], [5.0, 20.0], [10.0, 30.0]])

        normalized, minimum, maximum = normalize(data)

        np.testing.assert_allclose(normalized[:, 0], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(normalized[:, 1], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(minimum, [0.0, 10.0])
        np.testing.assert_allclose(maximum, [10.0, 30.0])

    def test_constant_column_maps_to_zero(self):
        data = np.array([[3.0, 1.0], [3.0, 2.0]])

        normalized, _, _ = normalize(data)

        np.testing.assert_allclose(normalized[:, 0], [0.0, 0.0])

    def test_empty_input_raises(self):
        with pytest.raises(ValueError):
            normalize([])


class TestTimeSeriesSequences:
    """Test windowing of a series into sequences and targets."""

    def test_windows_and_next_step_targets(self):
        sequences, targets = create_time_series_sequences(range(6), sequence_length=3)

        assert sequences.shape == (3, 3)
        np.testing.assert_allclose(sequences[0], [0, 1, 2])
        np.testing.assert_allclose(targets, [3, 4, 5])

    def test_prediction_horizon_shifts_targets(self):
        sequences, targets = create_time_series_sequences(range(8), sequence_length=3,
                                                          prediction_horizon=2)

        assert len(sequences) == 4
        np.testing.assert_allclose(targets, [4, 5, 6, 7])

    def test_short_series_gives_no_windows(self):
        sequences, targets = create_time_series_sequences([1, 2], sequence_length=3)

        assert sequences.shape == (0, 3)
        assert len(targets) == 0
