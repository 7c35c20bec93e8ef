"""Wearable vital-sign acquisition and rule-based health insights."""

from .config import MonitorConfig, get_config
from .connection import ConnectionManager, ReconnectPolicy
from .data.models import (
    BloodPressure,
    ConnectionState,
    Insight,
    MetricKind,
    Sample,
    Severity,
)
from .data.window import MetricStore, MetricWindow
from .errors import (
    DecodeError,
    DeviceConnectionError,
    DeviceUnavailable,
    PeripheralDisconnected,
    PulsewatchError,
    ServiceSetupFailed,
)
from .insights import ScoringEngine
from .monitor import HealthMonitor, create_live_monitor, create_simulated_monitor

__version__ = "0.1.0"

__all__ = [
    "MonitorConfig",
    "get_config",
    "ConnectionManager",
    "ReconnectPolicy",
    "BloodPressure",
    "ConnectionState",
    "Insight",
    "MetricKind",
    "Sample",
    "Severity",
    "MetricStore",
    "MetricWindow",
    "DecodeError",
    "DeviceConnectionError",
    "DeviceUnavailable",
    "PeripheralDisconnected",
    "PulsewatchError",
    "ServiceSetupFailed",
    "ScoringEngine",
    "HealthMonitor",
    "create_live_monitor",
    "create_simulated_monitor",
]
