"""
Workload forecasting from daily load history.

Feeds the workforce-needs forecast with the expected average and peak
workload. Five baseline methods are available; unless one is named, the
profile backtests them all on the most recent week and keeps the one with
the lowest mean absolute error.
"""

from typing import List, Dict, Optional, Tuple
from datetime import datetime, timedelta
from dataclasses import dataclass
import logging
import pandas as pd
import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error


logger = logging.getLogger(__name__)

# Profile reported when no load history is available
DEFAULT_AVERAGE_WORKLOAD = 0.7
DEFAULT_PEAK_DEMAND = 0.9

BACKTEST_DAYS = 7


@dataclass
class WorkloadForecast:
    """Daily load predictions and the method that produced them."""
    dates: List[datetime]
    predictions: List[int]
    method: str

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'date': self.dates,
            'load_units': self.predictions,
            'day_name': [d.strftime('%A') for d in self.dates]
        })


class WorkloadForecaster:
    """
    Baseline forecasts of daily load units.
    """

    SUPPORTED_METHODS = [
        'last_week_pattern',
        'moving_average',
        'seasonal_moving_average',
        'day_of_week_average',
        'simple_average'
    ]

    def __init__(self, default_method: str = 'last_week_pattern'):
        if default_method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Method must be one of {self.SUPPORTED_METHODS}")

        self.default_method = default_method
        self._history = None

    @property
    def has_history(self) -> bool:
        return self._history is not None and len(self._history) > 0

    @property
    def history_span(self) -> Optional[Tuple[datetime, datetime]]:
        """First and last day of the loaded history."""
        if not self.has_history:
            return None
        return self._history['date'].min(), self._history['date'].max()

    def load_history(self, data: pd.DataFrame) -> None:
        """
        Replace the history with ``data`` (columns 'date' and 'load_units').

        Dates that are not already datetimes are read as DD-MM-YYYY, falling
        back to pandas' day-first parsing.
        """
        missing_cols = [col for col in ('date', 'load_units') if col not in data.columns]
        if missing_cols:
            raise ValueError(f"Missing required columns: {missing_cols}")

        data = data.copy()
        if not pd.api.types.is_datetime64_any_dtype(data['date']):
            parsed = pd.to_datetime(data['date'], format='%d-%m-%Y', errors='coerce')
            if parsed.isna().any():
                parsed = pd.to_datetime(data['date'], dayfirst=True)
            data['date'] = parsed

        data = data.sort_values('date').reset_index(drop=True)
        data['day_of_week'] = data['date'].dt.dayofweek

        self._history = data
        logger.info("Loaded %d days of workload history", len(data))

    def forecast(self,
                 days: int = 7,
                 method: Optional[str] = None) -> WorkloadForecast:
        """
        Predict load units for the ``days`` after the last recorded day.
        """
        if not self.has_history:
            raise ValueError("Workload history not loaded. Call load_history() first.")

        method = method or self.default_method
        if method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Method must be one of {self.SUPPORTED_METHODS}")

        last_date = self._history['date'].max()
        future_dates = [last_date + timedelta(days=i + 1) for i in range(days)]

        return WorkloadForecast(
            dates=future_dates,
            predictions=self._get_predictions(method, future_dates),
            method=method
        )

    def _get_predictions(self, method: str, future_dates: List[datetime]) -> List[int]:
        by_method = {
            'last_week_pattern': self._last_week_pattern_forecast,
            'moving_average': self._moving_average_forecast,
            'seasonal_moving_average': self._seasonal_moving_average_forecast,
            'day_of_week_average': self._day_of_week_average_forecast,
            'simple_average': self._simple_average_forecast,
        }
        if method not in by_method:
            raise ValueError(f"Unknown method: {method}")
        return by_method[method](future_dates)

    @property
    def _loads(self) -> pd.Series:
        return self._history['load_units']

    def _weekday_means(self) -> pd.Series:
        return self._loads.groupby(self._history['day_of_week']).mean()

    def _last_week_pattern_forecast(self, future_dates: List[datetime]) -> List[int]:
        """Repeat the last seven recorded days in order."""
        pattern = self._loads.tail(7).tolist()
        return [int(pattern[i % len(pattern)]) for i in range(len(future_dates))]

    def _moving_average_forecast(self, future_dates: List[datetime], window: int = 7) -> List[int]:
        level = max(1, round(self._loads.tail(window).mean()))
        return [level] * len(future_dates)

    def _seasonal_moving_average_forecast(self, future_dates: List[datetime], window: int = 7) -> List[int]:
        """Recent level scaled by each weekday's share of the overall mean."""
        level = self._loads.tail(window).mean()
        overall = self._loads.mean()
        shape = self._weekday_means() / overall if overall > 0 else pd.Series(dtype=float)
        return [max(1, round(level * shape.get(d.weekday(), 1.0))) for d in future_dates]

    def _day_of_week_average_forecast(self, future_dates: List[datetime]) -> List[int]:
        by_weekday = self._weekday_means()
        overall = self._loads.mean()
        return [max(1, round(by_weekday.get(d.weekday(), overall))) for d in future_dates]

    def _simple_average_forecast(self, future_dates: List[datetime]) -> List[int]:
        level = max(1, round(self._loads.mean()))
        return [level] * len(future_dates)

    def evaluate_model(self,
                       test_data: pd.DataFrame,
                       method: Optional[str] = None) -> Dict[str, float]:
        """
        Score a method against actual load on days after the history.

        Returns:
            'mae', 'rmse' and 'mape' (percent, over non-zero actuals; NaN
            when every actual is zero)
        """
        if not self.has_history:
            raise ValueError("Workload history not loaded. Call load_history() first.")
        method = method or self.default_method

        predicted = np.array(
            self._get_predictions(method, pd.to_datetime(test_data['date']).tolist()), dtype=float)
        actual = test_data['load_units'].to_numpy(dtype=float)

        nonzero = actual != 0
        if nonzero.any():
            mape = float(np.mean(np.abs(1 - predicted[nonzero] / actual[nonzero])) * 100)
        else:
            mape = float('nan')
        return {
            'mae': float(mean_absolute_error(actual, predicted)),
            'rmse': float(np.sqrt(mean_squared_error(actual, predicted))),
            'mape': mape,
        }

    def select_method(self, holdout_days: int = BACKTEST_DAYS) -> str:
        """
        Method with the lowest MAE when the last ``holdout_days`` are held out.

        Ties go to the earlier entry in SUPPORTED_METHODS. Histories shorter
        than two holdout windows keep the default method.
        """
        if not self.has_history or len(self._history) < 2 * holdout_days:
            return self.default_method

        backtest = WorkloadForecaster(self.default_method)
        backtest._history = self._history.iloc[:-holdout_days].reset_index(drop=True)
        actual = self._history.iloc[-holdout_days:]

        errors = {method: backtest.evaluate_model(actual, method)['mae']
                  for method in self.SUPPORTED_METHODS}
        best = min(self.SUPPORTED_METHODS, key=lambda method: errors[method])
        logger.debug("Backtest MAE by method: %s; using %s", errors, best)
        return best

    def workload_profile(self, horizon_days: int = 7,
                         method: Optional[str] = None) -> Tuple[float, float]:
        """
        Average and peak forecast workload relative to the historical peak.

        Args:
            horizon_days: Days to forecast
            method: Forecasting method; None picks one with ``select_method``

        Returns:
            (average_workload, peak_demand), both in [0, 1]; the nominal
            (0.7, 0.9) when no history is loaded
        """
        if not self.has_history:
            return DEFAULT_AVERAGE_WORKLOAD, DEFAULT_PEAK_DEMAND

        historical_peak = float(self._history['load_units'].max())
        if historical_peak <= 0:
            return 0.0, 0.0

        method = method or self.select_method()
        predictions = np.array(self.forecast(horizon_days, method).predictions, dtype=float)
        ratios = np.clip(predictions / historical_peak, 0, 1)
        return float(ratios.mean()), float(ratios.max())
