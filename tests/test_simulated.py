"""Tests for the simulated data source."""

import asyncio

import pytest

from pulsewatch.data.models import BloodPressure, MetricKind
from pulsewatch.data.simulated import (
    AnomalyScheduler,
    HealthSignalGenerator,
    SimulatedSource,
)

KIND_ORDER = [
    MetricKind.PULSE_SIGNAL,
    MetricKind.BLOOD_PRESSURE,
    MetricKind.OXYGEN_SATURATION,
    MetricKind.TEMPERATURE,
    MetricKind.STEP_COUNT,
]


def run_generator(generator, ticks, dt=0.125, start=0.125):
    return [generator.step(start + i * dt) for i in range(ticks)]


def values(rounds, kind):
    index = KIND_ORDER.index(kind)
    return [samples[index].value for samples in rounds]


class TestAnomalyScheduler:
    """Anomaly window timing."""

    def test_timeline(self):
        scheduler = AnomalyScheduler(start_time=0.0)
        timeline = [(15.0, False), (15.5, True), (20.0, True), (20.5, False), (30.0, False), (31.0, True)]
        for now, expected in timeline:
            assert scheduler.update(now) is expected, now
            assert scheduler.active is expected

    def test_quiet_without_elapsed_interval(self):
        scheduler = AnomalyScheduler(start_time=100.0, interval=15.0, duration=5.0)
        assert not any(scheduler.update(100.0 + t) for t in range(16))


class TestHealthSignalGenerator:
    """Waveform generators."""

    def test_sample_kinds_in_order(self):
        generator = HealthSignalGenerator(seed=1, hour_provider=lambda: 12)
        samples = generator.step(0.0)
        assert [s.kind for s in samples] == KIND_ORDER
        assert all(s.timestamp == 0.0 for s in samples)
        assert isinstance(samples[1].value, BloodPressure)

    def test_seed_reproducibility(self):
        first = HealthSignalGenerator(seed=7, hour_provider=lambda: 12, start_time=0.0)
        second = HealthSignalGenerator(seed=7, hour_provider=lambda: 12, start_time=0.0)
        assert run_generator(first, 200) == run_generator(second, 200)

    def test_baseline_ranges(self):
        generator = HealthSignalGenerator(seed=3, hour_provider=lambda: 12, anomaly_interval=1e9, start_time=0.0)
        rounds = run_generator(generator, 400)

        for bp in values(rounds, MetricKind.BLOOD_PRESSURE):
            assert 118 <= bp.systolic <= 122
            assert 78 <= bp.diastolic <= 82
        assert set(values(rounds, MetricKind.OXYGEN_SATURATION)) == {98}
        assert all(36.4 <= t <= 36.6 for t in values(rounds, MetricKind.TEMPERATURE))
        assert all(-0.5 <= p <= 0.6 for p in values(rounds, MetricKind.PULSE_SIGNAL))

    def test_anomaly_caps(self):
        generator = HealthSignalGenerator(
            seed=11, hour_provider=lambda: 12, anomaly_interval=0.0, anomaly_duration=1e9, start_time=0.0,
        )
        rounds = run_generator(generator, 500)
        bps = values(rounds, MetricKind.BLOOD_PRESSURE)
        spo2 = values(rounds, MetricKind.OXYGEN_SATURATION)
        temperatures = values(rounds, MetricKind.TEMPERATURE)

        assert generator.anomaly.active
        assert all(bp.systolic <= 160 and bp.diastolic <= 100 for bp in bps)
        assert max(bp.systolic for bp in bps) == 160
        assert all(value >= 93 for value in spo2)
        assert spo2[-1] == 93
        assert all(t <= 37.8 for t in temperatures)
        assert temperatures[-1] == pytest.approx(37.8)
        assert all(-0.75 <= p <= 1.05 for p in values(rounds, MetricKind.PULSE_SIGNAL))

    def test_steps_are_monotonic(self):
        generator = HealthSignalGenerator(seed=5, hour_provider=lambda: 12, anomaly_interval=2.0, start_time=0.0)
        steps = values(run_generator(generator, 400), MetricKind.STEP_COUNT)
        assert all(b >= a for a, b in zip(steps, steps[1:]))
        assert steps[-1] > 0
        assert generator.steps == steps[-1]

    def test_steps_flat_outside_active_hours(self):
        generator = HealthSignalGenerator(
            seed=5, hour_provider=lambda: 3, anomaly_interval=0.0, anomaly_duration=1e9, start_time=0.0,
        )
        assert set(values(run_generator(generator, 200), MetricKind.STEP_COUNT)) == {0}

    @pytest.mark.parametrize("hour", [7, 22])
    def test_active_hours_are_inclusive(self, hour):
        generator = HealthSignalGenerator(seed=5, hour_provider=lambda: hour, start_time=0.0)
        run_generator(generator, 200)
        assert generator.steps > 0


class TestSimulatedSource:
    """Emission loop."""

    def test_tick_emits_every_kind(self, clock):
        received = []
        generator = HealthSignalGenerator(seed=2, hour_provider=lambda: 12)
        source = SimulatedSource(on_sample=received.append, generator=generator, clock=clock)

        samples = source.tick()
        clock.advance(0.125)
        source.tick()

        assert [s.kind for s in received] == KIND_ORDER * 2
        assert received[:5] == samples
        assert received[5].timestamp == 0.125
        assert source.tick_count == 2

    def test_run_and_stop(self, waiter):
        async def scenario():
            received = []
            source = SimulatedSource(
                on_sample=received.append,
                generator=HealthSignalGenerator(seed=4, hour_provider=lambda: 12),
                interval=0.005,
            )
            await source.start()
            task = source._task
            await source.start()
            assert source._task is task
            assert source.running

            await waiter(lambda: source.tick_count >= 3)
            await source.stop()
            ticks = source.tick_count
            await asyncio.sleep(0.02)
            return source, received, ticks

        source, received, ticks = asyncio.run(scenario())
        assert not source.running
        assert source.tick_count == ticks
        assert len(received) == 5 * ticks

    def test_stop_when_idle(self):
        source = SimulatedSource(generator=HealthSignalGenerator(seed=0))
        asyncio.run(source.stop())
        assert not source.running
