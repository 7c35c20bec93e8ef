"""Tests for the health insight rules and scoring schedule."""

import pytest

from pulsewatch.data.models import BloodPressure, MetricKind, Sample, Severity
from pulsewatch.data.simulated import local_hour
from pulsewatch.data.window import MetricStore
from pulsewatch.insights import (
    HealthScores,
    ScoringEngine,
    build_insights,
    overall_score,
    score_readings,
)

INSIGHT_ORDER = [
    "Physical Stress",
    "Sleep Quality",
    "Exercise Recovery",
    "Cardiovascular Risk",
    "Hydration Risk",
    "Physical Fatigue",
    "Respiratory Health",
    "Overall Health",
]

HEALTHY = dict(systolic=118, diastolic=78, spo2=98, temperature=36.6, steps=1200, hour=12)
NEUTRAL = HealthScores(stress=0, sleep=100, recovery=100, cardio_risk=0,
                       hydration_risk=0, fatigue=0, respiratory=100)


def fill_store(store, systolic=120, diastolic=80, spo2=98, temperature=36.5, steps=100):
    store.add(Sample(MetricKind.BLOOD_PRESSURE, BloodPressure(systolic, diastolic), 0.0))
    store.add(Sample(MetricKind.OXYGEN_SATURATION, spo2, 0.0))
    store.add(Sample(MetricKind.TEMPERATURE, temperature, 0.0))
    store.add(Sample(MetricKind.STEP_COUNT, steps, 0.0))


class TestRules:
    """Rule table."""

    def test_cardiovascular_risk_alert(self):
        scores = score_readings(systolic=145, diastolic=95, spo2=90, temperature=36.5, steps=0, hour=12)
        assert scores.cardio_risk == 100

        cardio = build_insights(scores)[3]
        assert cardio.metric == "Cardiovascular Risk"
        assert cardio.severity == Severity.ALERT
        assert cardio.score == 100
        assert cardio.message == "Elevated cardiovascular risk"

    def test_cardiovascular_risk_moderate(self):
        scores = score_readings(systolic=145, diastolic=80, spo2=98, temperature=36.5, steps=0, hour=12)
        cardio = build_insights(scores)[3]
        assert scores.cardio_risk == 40
        assert cardio.severity == Severity.WARNING
        assert cardio.message == "Moderate cardiovascular risk"

    def test_overall_from_raw_scores(self):
        scores = HealthScores(stress=50, sleep=100, recovery=100, cardio_risk=0,
                              hydration_risk=0, fatigue=0, respiratory=100)
        assert overall_score(scores) == 75

        overall = build_insights(scores)[-1]
        assert overall.metric == "Overall Health"
        assert overall.severity == Severity.WARNING
        assert overall.score == 75
        assert overall.message == "Health indicators are moderate"

    def test_overall_is_clamped_to_zero(self):
        scores = score_readings(systolic=150, diastolic=95, spo2=90, temperature=38.0, steps=12000, hour=23)
        assert overall_score(scores) == 0

        overall = build_insights(scores)[-1]
        assert overall.severity == Severity.ALERT
        assert overall.message == "Health indicators are concerning"

    def test_overall_rounds_half_up(self):
        scores = HealthScores(stress=0, sleep=85, recovery=100, cardio_risk=0,
                              hydration_risk=0, fatigue=0, respiratory=100)
        assert overall_score(scores) == 92.5
        assert build_insights(scores)[-1].score == 93

    def test_healthy_readings_are_all_positive(self):
        insights = build_insights(score_readings(**HEALTHY))
        assert [i.metric for i in insights] == INSIGHT_ORDER
        assert all(i.severity == Severity.POSITIVE for i in insights)
        assert insights[-1].score == 100
        assert insights[-1].message == "Health indicators are good"

    def test_respiratory_penalties_stack(self):
        assert score_readings(**{**HEALTHY, "spo2": 96}).respiratory == 80
        assert score_readings(**{**HEALTHY, "spo2": 94}).respiratory == 40
        assert score_readings(**{**HEALTHY, "spo2": 94, "steps": 6000}).respiratory == 20

        respiratory = build_insights(score_readings(**{**HEALTHY, "spo2": 94}))[6]
        assert respiratory.severity == Severity.WARNING
        assert respiratory.message == "Respiratory health needs attention"

    @pytest.mark.parametrize("hour, expected", [(21, 100), (22, 75), (23, 75)])
    def test_late_activity_affects_sleep(self, hour, expected):
        assert score_readings(**{**HEALTHY, "steps": 600, "hour": hour}).sleep == expected

    def test_thresholds_are_strict(self):
        scores = score_readings(systolic=130, diastolic=90, spo2=96, temperature=37.0, steps=8000, hour=12)
        assert scores.stress == 0
        assert scores.cardio_risk == 0
        assert scores.hydration_risk == 0
        assert scores.fatigue == 0
        assert scores.recovery == 100
        assert scores.sleep == 85  # systolic 130 > 125

    def test_stress_and_hydration_warnings(self):
        scores = score_readings(systolic=135, diastolic=80, spo2=98, temperature=37.5, steps=9000, hour=12)
        insights = build_insights(scores)
        assert scores.stress == 70
        assert scores.hydration_risk == 70
        assert insights[0].severity == Severity.WARNING
        assert insights[0].message == "High physical stress detected"
        assert insights[4].severity == Severity.WARNING
        assert insights[4].message == "Increased risk of dehydration"

    def test_fatigue_and_recovery(self):
        scores = score_readings(systolic=135, diastolic=80, spo2=95, temperature=36.5, steps=11000, hour=12)
        insights = build_insights(scores)
        assert scores.fatigue == 70
        assert scores.recovery == 30
        assert insights[2].message == "Recovery level is low"
        assert insights[5].message == "High fatigue level detected"

    def test_neutral_scores(self):
        insights = build_insights(NEUTRAL)
        assert [i.score for i in insights] == [0, 100, 100, 0, 0, 0, 100, 100]


class TestScoringEngine:
    """Cooldown and data requirements."""

    def test_requires_all_metrics(self, clock):
        store = MetricStore()
        store.add(Sample(MetricKind.BLOOD_PRESSURE, BloodPressure(120, 80), 0.0))
        store.add(Sample(MetricKind.OXYGEN_SATURATION, 98, 0.0))
        store.add(Sample(MetricKind.TEMPERATURE, 36.5, 0.0))
        engine = ScoringEngine(clock=clock, hour_provider=lambda: 12)

        assert engine.analyze(store) == []
        assert engine.analysis_count == 0

    def test_cooldown(self, clock):
        store = MetricStore()
        fill_store(store)
        engine = ScoringEngine(clock=clock, hour_provider=lambda: 12)

        first = engine.analyze(store)
        assert [i.metric for i in first] == INSIGHT_ORDER
        assert engine.analyze(store) == []

        clock.advance(4)
        assert engine.analyze(store) == []

        clock.advance(1)
        second = engine.analyze(store)
        assert len(second) == 8
        assert [i.metric for i in second] == INSIGHT_ORDER
        assert engine.analysis_count == 2

    def test_insufficient_data_consumes_cooldown(self, clock):
        store = MetricStore()
        engine = ScoringEngine(clock=clock, hour_provider=lambda: 12)
        assert engine.analyze(store) == []
        assert engine.last_analysis == 0

        fill_store(store)
        assert engine.analyze(store) == []
        clock.advance(5)
        assert len(engine.analyze(store)) == 8

    def test_uses_latest_samples(self, clock):
        store = MetricStore()
        fill_store(store)
        store.add(Sample(MetricKind.BLOOD_PRESSURE, BloodPressure(145, 95), 1.0))
        store.add(Sample(MetricKind.OXYGEN_SATURATION, 90, 1.0))
        engine = ScoringEngine(clock=clock, hour_provider=lambda: 12)

        cardio = engine.analyze(store)[3]
        assert cardio.score == 100
        assert cardio.severity == Severity.ALERT

    def test_default_hour_matches_simulator(self):
        assert ScoringEngine()._hour_provider is local_hour

    def test_hour_feeds_sleep_rule(self, clock):
        store = MetricStore()
        fill_store(store, steps=900)
        engine = ScoringEngine(clock=clock, hour_provider=lambda: 23)
        assert engine.analyze(store)[1].score == 75
