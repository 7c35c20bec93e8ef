"""
Simulated data source.

Generates realistic vital-sign streams when no live device is available:
- Pulse: 1.2 Hz optical waveform with noise
- Blood pressure: mean-reverting walk around 120/80
- SpO2: mean-reverting walk around 98%
- Temperature: mean-reverting walk around 36.5 C
- Steps: cumulative counter, active hours only

Every 15 seconds a 5 second anomaly window pushes the signals out of their
baseline range so the scoring rules have something to react to.
"""

import asyncio
import logging
import math
import time
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from .models import BloodPressure, MetricKind, Sample
from .source import SampleCallback

logger = logging.getLogger(__name__)


def local_hour() -> int:
    return datetime.now().hour


class AnomalyState(Enum):
    QUIESCENT = "quiescent"
    ANOMALOUS = "anomalous"


class AnomalyScheduler:
    """
    Two-state anomaly window timer.

    QUIESCENT → ANOMALOUS once `interval` has passed since the previous
    activation; ANOMALOUS → QUIESCENT after `duration`.
    """

    INTERVAL = 15.0   # seconds between anomaly starts
    DURATION = 5.0    # seconds an anomaly lasts

    def __init__(self, start_time: float, interval: float = INTERVAL, duration: float = DURATION):
        self.interval = interval
        self.duration = duration
        self.state = AnomalyState.QUIESCENT
        self._last_activation = start_time

    @property
    def active(self) -> bool:
        return self.state == AnomalyState.ANOMALOUS

    def update(self, now: float) -> bool:
        """Advance the timer to `now`; returns whether an anomaly is active."""
        if self.state == AnomalyState.ANOMALOUS:
            if now - self._last_activation >= self.duration:
                self.state = AnomalyState.QUIESCENT
                logger.debug("Simulated anomaly window ended")
        elif now - self._last_activation > self.interval:
            self.state = AnomalyState.ANOMALOUS
            self._last_activation = now
            logger.debug("Simulated anomaly window started")
        return self.active


class HealthSignalGenerator:
    """
    Stateful waveform generators for every metric kind.

    State is only touched by step(); pass a seed for reproducible runs.
    """

    # Baseline physiological values
    BASE_SYSTOLIC = 120.0
    BASE_DIASTOLIC = 80.0
    BASE_SPO2 = 98.0
    BASE_TEMPERATURE = 36.5

    # Anomaly limits
    MAX_SYSTOLIC = 160.0
    MAX_DIASTOLIC = 100.0
    MIN_SPO2 = 93.0
    MAX_TEMPERATURE = 37.8

    PULSE_FREQUENCY = 1.2   # Hz
    PULSE_AMPLITUDE = 0.5
    ACTIVE_HOURS = (7, 22)  # inclusive

    def __init__(
        self,
        seed: Optional[int] = None,
        hour_provider: Callable[[], int] = local_hour,
        anomaly_interval: float = AnomalyScheduler.INTERVAL,
        anomaly_duration: float = AnomalyScheduler.DURATION,
        start_time: Optional[float] = None,
    ):
        self._rng = np.random.default_rng(seed)
        self._hour_provider = hour_provider
        self._anomaly_interval = anomaly_interval
        self._anomaly_duration = anomaly_duration
        self.anomaly: Optional[AnomalyScheduler] = None
        if start_time is not None:
            self.anomaly = AnomalyScheduler(start_time, anomaly_interval, anomaly_duration)

        self._systolic = self.BASE_SYSTOLIC
        self._diastolic = self.BASE_DIASTOLIC
        self._spo2 = self.BASE_SPO2
        self._temperature = self.BASE_TEMPERATURE
        self._steps = 0

    @property
    def steps(self) -> int:
        return self._steps

    def step(self, now: float) -> List[Sample]:
        """Generate one sample of every metric kind at time `now`."""
        if self.anomaly is None:
            self.anomaly = AnomalyScheduler(now, self._anomaly_interval, self._anomaly_duration)
        anomalous = self.anomaly.update(now)

        return [
            Sample(MetricKind.PULSE_SIGNAL, self._pulse(now, anomalous), now),
            Sample(MetricKind.BLOOD_PRESSURE, self._blood_pressure(anomalous), now),
            Sample(MetricKind.OXYGEN_SATURATION, self._oxygen_saturation(anomalous), now),
            Sample(MetricKind.TEMPERATURE, self._temperature_value(anomalous), now),
            Sample(MetricKind.STEP_COUNT, self._step_count(anomalous), now),
        ]

    def _uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def _pulse(self, t: float, anomalous: bool) -> float:
        base = math.sin(t * self.PULSE_FREQUENCY * 2 * math.pi) * self.PULSE_AMPLITUDE
        if anomalous:
            return base * 1.5 + self._uniform(0.0, 0.3)
        return base + self._uniform(0.0, 0.1)

    def _blood_pressure(self, anomalous: bool) -> BloodPressure:
        if anomalous:
            # Drift upward toward the cap
            self._systolic = min(self.MAX_SYSTOLIC, self._systolic + self._uniform(-1.0, 3.0))
            self._diastolic = min(self.MAX_DIASTOLIC, self._diastolic + self._uniform(-1.0, 2.0))
        else:
            if self._systolic > self.BASE_SYSTOLIC:
                self._systolic -= self._uniform(0.0, 2.0)
            else:
                self._systolic = self.BASE_SYSTOLIC + self._uniform(-2.0, 2.0)
            if self._diastolic > self.BASE_DIASTOLIC:
                self._diastolic -= self._uniform(0.0, 1.5)
            else:
                self._diastolic = self.BASE_DIASTOLIC + self._uniform(-1.5, 1.5)

        return BloodPressure(systolic=round(self._systolic), diastolic=round(self._diastolic))

    def _oxygen_saturation(self, anomalous: bool) -> int:
        if anomalous:
            self._spo2 = max(self.MIN_SPO2, self._spo2 - self._uniform(0.0, 0.5))
        elif self._spo2 < self.BASE_SPO2:
            self._spo2 += self._uniform(0.0, 0.3)
        else:
            self._spo2 = self.BASE_SPO2 + self._uniform(-0.2, 0.2)
        return round(self._spo2)

    def _temperature_value(self, anomalous: bool) -> float:
        if anomalous:
            self._temperature = min(self.MAX_TEMPERATURE, self._temperature + self._uniform(0.0, 0.1))
        elif self._temperature > self.BASE_TEMPERATURE:
            self._temperature -= self._uniform(0.0, 0.05)
        else:
            self._temperature = self.BASE_TEMPERATURE + self._uniform(-0.1, 0.1)
        return self._temperature

    def _step_count(self, anomalous: bool) -> int:
        start, end = self.ACTIVE_HOURS
        if start <= self._hour_provider() <= end:
            if anomalous:
                # Burst of activity
                self._steps += int(round(self._uniform(0.0, 5.0)))
            elif self._rng.random() < 0.3:
                self._steps += 1
        return self._steps


class SimulatedSource:
    """
    Fallback data source driven by HealthSignalGenerator.

    Emits one sample of each kind every `interval` seconds. start() never
    fails, so switching to simulation always succeeds.
    """

    SAMPLE_INTERVAL = 0.1  # seconds (10 Hz)

    def __init__(
        self,
        on_sample: Optional[SampleCallback] = None,
        generator: Optional[HealthSignalGenerator] = None,
        interval: float = SAMPLE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_sample = on_sample
        self.generator = generator or HealthSignalGenerator()
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Simulated data source started (%.0f ms interval)", self.interval * 1000)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Simulated data source stopped after %d ticks", self._tick_count)

    def tick(self) -> List[Sample]:
        """Generate and emit one round of samples."""
        samples = self.generator.step(self._clock())
        self._tick_count += 1
        if self.on_sample is not None:
            for sample in samples:
                self.on_sample(sample)
        return samples

    async def _run(self) -> None:
        while True:
            start = time.perf_counter()
            self.tick()
            elapsed = time.perf_counter() - start
            await asyncio.sleep(max(0.0, self.interval - elapsed))
