"""
Data models and types for the vital-sign monitor.

Defines the measurement, connection and insight structures shared by the
acquisition, storage and scoring layers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class MetricKind(Enum):
    """Measured physiological streams."""
    PULSE_SIGNAL = "ppg"
    BLOOD_PRESSURE = "bp"
    OXYGEN_SATURATION = "spo2"
    TEMPERATURE = "temperature"
    STEP_COUNT = "steps"


class ConnectionState(Enum):
    """Live-device connection lifecycle states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    SIMULATED = "simulated"


class Severity(Enum):
    """Insight grading."""
    POSITIVE = "positive"
    WARNING = "warning"
    ALERT = "alert"


@dataclass(frozen=True)
class BloodPressure:
    """
    Blood pressure pair.

    Systolic/diastolic pressures in mmHg.
    """
    systolic: float
    diastolic: float


SampleValue = Union[float, int, BloodPressure]


@dataclass(frozen=True)
class Sample:
    """
    Single timestamped metric reading.

    The timestamp is a monotonic instant in seconds, not wall-clock time.
    """
    kind: MetricKind
    value: SampleValue
    timestamp: float


@dataclass(frozen=True)
class Insight:
    """One graded conclusion produced by a scoring rule."""
    metric: str
    severity: Severity
    message: str
    score: int


# Ring-buffer capacity per metric stream
WINDOW_CAPACITY: Dict[MetricKind, int] = {
    MetricKind.PULSE_SIGNAL: 100,
    MetricKind.BLOOD_PRESSURE: 50,
    MetricKind.OXYGEN_SATURATION: 20,
    MetricKind.TEMPERATURE: 20,
    MetricKind.STEP_COUNT: 50,
}
