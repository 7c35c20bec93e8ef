"""Data models, sample windows and data sources."""

from .models import (
    MetricKind,
    ConnectionState,
    Severity,
    BloodPressure,
    Sample,
    Insight,
    WINDOW_CAPACITY,
)
from .window import MetricWindow, MetricStore
from .source import DataSource, SampleCallback
from .simulated import AnomalyScheduler, AnomalyState, HealthSignalGenerator, SimulatedSource

__all__ = [
    "MetricKind",
    "ConnectionState",
    "Severity",
    "BloodPressure",
    "Sample",
    "Insight",
    "WINDOW_CAPACITY",
    "MetricWindow",
    "MetricStore",
    "DataSource",
    "SampleCallback",
    "AnomalyScheduler",
    "AnomalyState",
    "HealthSignalGenerator",
    "SimulatedSource",
]
