"""
Engine configuration.

All thresholds that drive training and decision rules live here so callers
(and tests) can tune them without touching the engines.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


DEFAULT_EQUIPMENT_TYPES = [
    'EXCAVATOR',
    'DUMP_TRUCK',
    'DRILL_RIG',
    'LOADER',
    'BULLDOZER',
]

DEFAULT_CRITICAL_EQUIPMENT_TYPES = ['DUMP_TRUCK', 'EXCAVATOR', 'DRILL_RIG']


@dataclass
class EngineConfig:
    """Tunable parameters for the registry, feature pipeline and engines."""

    # Synthetic fallback
    min_history_units: int = 5
    synthetic_samples: int = 1000
    schedule_synthetic_samples: int = 800
    workload_synthetic_samples: int = 600

    # Maintenance model training
    maintenance_epochs: int = 50
    maintenance_batch_size: int = 16
    synthetic_epochs: int = 30
    synthetic_batch_size: int = 32
    validation_split: float = 0.2
    patience: int = 10

    # Workforce model training
    assignment_epochs: int = 30
    schedule_epochs: int = 25
    workload_epochs: int = 20
    workforce_batch_size: int = 16
    workload_batch_size: int = 32

    # Decision thresholds
    assignment_threshold: float = 0.6
    schedule_threshold: float = 0.5
    min_skill_match: float = 0.3
    regression_confidence: float = 0.8

    # Execution
    random_state: int = 42
    max_workers: int = 4
    sequence_timesteps: int = 0

    equipment_types: List[str] = field(default_factory=lambda: list(DEFAULT_EQUIPMENT_TYPES))
    critical_equipment_types: List[str] = field(
        default_factory=lambda: list(DEFAULT_CRITICAL_EQUIPMENT_TYPES)
    )
    # None backtests every forecasting method and keeps the most accurate
    workload_forecast_method: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def configure_logging(level: str = 'INFO') -> None:
    """Set up root logging for scripts and the API server."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
