"""
Numeric preprocessing helpers shared by the feature pipelines.
"""

from typing import Tuple
import numpy as np


def normalize(data) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Min-max scale each column to [0, 1].

    Constant columns map to 0.

    Returns:
        (normalized, column minimums, column maximums)
    """
    data = np.asarray(data, dtype=float)
    if data.size == 0:
        raise ValueError("Empty data array")
    minimum = data.min(axis=0)
    maximum = data.max(axis=0)
    span = maximum - minimum
    safe_span = np.where(span == 0, 1.0, span)
    normalized = np.where(span == 0, 0.0, (data - minimum) / safe_span)
    return normalized, minimum, maximum


def create_time_series_sequences(series,
                                 sequence_length: int,
                                 prediction_horizon: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Slice a series into overlapping input windows and their targets.

    The target for a window starting at i is the value ``prediction_horizon``
    steps after the window ends.

    Args:
        series: 1-D sequence of values
        sequence_length: Window length
        prediction_horizon: Steps ahead of the window to predict

    Returns:
        (sequences of shape (n, sequence_length), targets of shape (n,))
    """
    values = np.asarray(series, dtype=float)
    if sequence_length < 1 or prediction_horizon < 1:
        raise ValueError("Sequence length and prediction horizon must be positive")

    count = len(values) - sequence_length - prediction_horizon + 1
    if count <= 0:
        return np.empty((0, sequence_length)), np.empty(0)

    sequences = np.stack([values[i:i + sequence_length] for i in range(count)])
    targets = values[sequence_length + prediction_horizon - 1:
                     sequence_length + prediction_horizon - 1 + count]
    return sequences, targets
