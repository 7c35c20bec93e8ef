"""
Rule-based health insights.

Turns the latest blood pressure, SpO2, temperature and step readings into
eight graded insights. Rules 1-7 are independent threshold checks; rule 8
(overall health) folds their raw scores together.

These are heuristic thresholds, not clinically validated algorithms.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from .data.models import Insight, MetricKind, Severity
from .data.simulated import local_hour
from .data.window import MetricStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthScores:
    """Raw (unrounded) outputs of rules 1-7."""
    stress: float
    sleep: float
    recovery: float
    cardio_risk: float
    hydration_risk: float
    fatigue: float
    respiratory: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_readings(
    systolic: float,
    diastolic: float,
    spo2: float,
    temperature: float,
    steps: float,
    hour: int,
) -> HealthScores:
    """Apply rules 1-7 to one set of readings."""
    # 1. Physical stress
    stress = 0.0
    if systolic > 130:
        stress += 30
    if temperature > 37.0:
        stress += 20
    if steps > 8000:
        stress += 20

    # 2. Sleep quality
    sleep = 100.0
    if temperature > 37.2:
        sleep -= 20
    if systolic > 125:
        sleep -= 15
    if hour >= 22 and steps > 500:
        sleep -= 25

    # 3. Exercise recovery
    recovery = 100.0
    if systolic > 130:
        recovery -= 20
    if spo2 < 96:
        recovery -= 30
    if steps > 10000:
        recovery -= 20

    # 4. Cardiovascular risk
    cardio_risk = 0.0
    if systolic > 140:
        cardio_risk += 40
    if diastolic > 90:
        cardio_risk += 30
    if spo2 < 95:
        cardio_risk += 30

    # 5. Hydration risk
    hydration_risk = 0.0
    if temperature > 37.2:
        hydration_risk += 30
    if systolic > 130:
        hydration_risk += 20
    if steps > 8000:
        hydration_risk += 20

    # 6. Physical fatigue
    fatigue = 0.0
    if spo2 < 96:
        fatigue += 20
    if steps > 10000:
        fatigue += 30
    if temperature > 37.0:
        fatigue += 20
    if systolic > 130:
        fatigue += 20

    # 7. Respiratory health; the two SpO2 penalties stack
    respiratory = 100.0
    if spo2 < 95:
        respiratory -= 40
    if spo2 < 97:
        respiratory -= 20
    if steps > 5000 and spo2 < 96:
        respiratory -= 20

    return HealthScores(
        stress=stress,
        sleep=sleep,
        recovery=recovery,
        cardio_risk=cardio_risk,
        hydration_risk=hydration_risk,
        fatigue=fatigue,
        respiratory=respiratory,
    )


def overall_score(scores: HealthScores) -> float:
    """Rule 8: combine the raw rule scores, clamped to [0, 100]."""
    overall = 100.0
    overall -= scores.stress / 2
    overall -= (100 - scores.sleep) / 2
    overall -= (100 - scores.recovery) / 2
    overall -= scores.cardio_risk
    overall -= scores.hydration_risk / 2
    overall -= scores.fatigue / 2
    overall -= (100 - scores.respiratory) / 2
    return float(np.clip(overall, 0.0, 100.0))


def _graded(metric: str, score: float, warn: bool, positive_msg: str, warning_msg: str) -> Insight:
    if warn:
        return Insight(metric, Severity.WARNING, warning_msg, _round_half_up(score))
    return Insight(metric, Severity.POSITIVE, positive_msg, _round_half_up(score))


def build_insights(scores: HealthScores) -> List[Insight]:
    """Eight insights in fixed order: rules 1-7, then overall health."""
    insights = [
        _graded("Physical Stress", scores.stress, scores.stress > 50,
                "Normal physical stress levels", "High physical stress detected"),
        _graded("Sleep Quality", scores.sleep, scores.sleep < 70,
                "Good sleep quality predicted", "Sleep quality might be affected"),
        _graded("Exercise Recovery", scores.recovery, scores.recovery < 60,
                "Good recovery status", "Recovery level is low"),
    ]

    if scores.cardio_risk > 50:
        cardio = (Severity.ALERT, "Elevated cardiovascular risk")
    elif scores.cardio_risk > 30:
        cardio = (Severity.WARNING, "Moderate cardiovascular risk")
    else:
        cardio = (Severity.POSITIVE, "Low cardiovascular risk")
    insights.append(Insight("Cardiovascular Risk", cardio[0], cardio[1], _round_half_up(scores.cardio_risk)))

    insights.extend([
        _graded("Hydration Risk", scores.hydration_risk, scores.hydration_risk > 40,
                "Hydration levels appear normal", "Increased risk of dehydration"),
        _graded("Physical Fatigue", scores.fatigue, scores.fatigue > 50,
                "Normal energy levels", "High fatigue level detected"),
        _graded("Respiratory Health", scores.respiratory, scores.respiratory < 70,
                "Good respiratory health", "Respiratory health needs attention"),
    ])

    overall = overall_score(scores)
    if overall < 60:
        severity, wording = Severity.ALERT, "concerning"
    elif overall < 80:
        severity, wording = Severity.WARNING, "moderate"
    else:
        severity, wording = Severity.POSITIVE, "good"
    insights.append(Insight("Overall Health", severity, f"Health indicators are {wording}", _round_half_up(overall)))

    return insights


class ScoringEngine:
    """
    Scheduled insight generator.

    analyze() runs the rule table at most once per `min_interval` seconds,
    measured from clock deltas. Calls inside the cooldown, or before every
    required metric has a sample, return an empty list.
    """

    MIN_INTERVAL = 5.0  # seconds

    REQUIRED_METRICS = (
        MetricKind.BLOOD_PRESSURE,
        MetricKind.OXYGEN_SATURATION,
        MetricKind.TEMPERATURE,
        MetricKind.STEP_COUNT,
    )

    def __init__(
        self,
        min_interval: float = MIN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        hour_provider: Callable[[], int] = local_hour,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._hour_provider = hour_provider
        self.last_analysis: Optional[float] = None
        self.analysis_count = 0

    def analyze(self, store: MetricStore) -> List[Insight]:
        now = self._clock()
        if self.last_analysis is not None and now - self.last_analysis < self.min_interval:
            return []
        # The cooldown is consumed even if data turns out to be insufficient
        self.last_analysis = now

        latest = {kind: store.latest(kind) for kind in self.REQUIRED_METRICS}
        missing = [kind.value for kind, sample in latest.items() if sample is None]
        if missing:
            logger.debug("Skipping analysis, no samples yet for: %s", ", ".join(missing))
            return []

        bp = latest[MetricKind.BLOOD_PRESSURE].value
        scores = score_readings(
            systolic=bp.systolic,
            diastolic=bp.diastolic,
            spo2=latest[MetricKind.OXYGEN_SATURATION].value,
            temperature=latest[MetricKind.TEMPERATURE].value,
            steps=latest[MetricKind.STEP_COUNT].value,
            hour=self._hour_provider(),
        )
        self.analysis_count += 1
        return build_insights(scores)
