"""
Main monitoring orchestrator.

Coordinates all system components:
- Live device connection with automatic reconnection
- Fallback to simulated data
- Per-metric sample windows
- Scheduled health insight scoring

Whichever source is active pushes samples through the same path; the monitor
never special-cases live vs simulated data.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .config import MonitorConfig
from .connection import ConnectionManager, ReconnectPolicy
from .data.live.ble import BleHealthSource
from .data.models import Insight, MetricKind, Sample
from .data.simulated import HealthSignalGenerator, SimulatedSource
from .data.source import DataSource
from .data.window import MetricStore
from .errors import DeviceConnectionError
from .insights import ScoringEngine

logger = logging.getLogger(__name__)


class HealthMonitor:
    """
    Vital-sign monitoring pipeline.

    Lifetime of the connection manager, scoring engine and both timers is
    scoped to start()/stop().
    """

    def __init__(
        self,
        live_source: Optional[DataSource] = None,
        simulated_source: Optional[SimulatedSource] = None,
        store: Optional[MetricStore] = None,
        engine: Optional[ScoringEngine] = None,
        config: Optional[MonitorConfig] = None,
    ):
        """
        Initialize monitoring pipeline.

        Args:
            live_source: Live device source (None to run simulated only)
            simulated_source: Fallback source (default: 10 Hz simulator)
            store: Sample windows (default: standard capacities)
            engine: Insight scoring engine (default: 5s cooldown)
            config: Timing and reconnect settings
        """
        self.config = config or MonitorConfig()
        self.store = store or MetricStore()
        self.engine = engine or ScoringEngine(min_interval=self.config.scoring_interval)

        self.live_source = live_source
        self.simulated_source = simulated_source or SimulatedSource(
            generator=HealthSignalGenerator(
                anomaly_interval=self.config.anomaly_interval,
                anomaly_duration=self.config.anomaly_duration,
            ),
            interval=self.config.sample_interval,
        )
        self.simulated_source.on_sample = self._ingest
        if self.live_source is not None:
            self.live_source.on_sample = self._ingest

        self.connection: Optional[ConnectionManager] = None
        self.active_source = None
        self.insights: List[Insight] = []
        self.running = False

        # Callbacks for the presentation layer
        self.on_sample: Optional[Callable[[Sample], None]] = None
        self.on_insights: Optional[Callable[[List[Insight]], None]] = None
        self.on_connection_change: Optional[Callable[[bool, bool], None]] = None

        self._scoring_task: Optional[asyncio.Task] = None
        self._fallback_task: Optional[asyncio.Task] = None
        self._sample_count = 0
        self._start_time: Optional[float] = None

    @property
    def simulated(self) -> bool:
        return self.active_source is self.simulated_source

    async def start(self) -> None:
        """Connect (or fall back to simulation) and start the scoring timer."""
        if self.running:
            return
        self.running = True
        self._start_time = time.monotonic()

        if self.live_source is not None:
            self.connection = ConnectionManager(
                self.live_source,
                policy=ReconnectPolicy(
                    max_attempts=self.config.max_reconnect_attempts,
                    initial_delay=self.config.reconnect_initial_delay,
                    max_delay=self.config.reconnect_max_delay,
                ),
                on_state_change=self._handle_connection_change,
                attempt_timeout=self.config.scan_timeout + self.config.connect_timeout,
            )
            try:
                await self.connection.connect()
            except DeviceConnectionError as exc:
                logger.warning("Live device unavailable (%s); falling back to simulated data", exc)
                await self._activate_simulation()
            else:
                self.active_source = self.live_source
        else:
            await self._activate_simulation()

        self._scoring_task = asyncio.get_running_loop().create_task(self._scoring_loop())
        self.refresh_insights()
        logger.info("Monitoring started (%s data)", "simulated" if self.simulated else "live")

    async def stop(self) -> None:
        """Stop both timers, release the device and stop the simulator."""
        if not self.running:
            return
        self.running = False

        for task in (self._scoring_task, self._fallback_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._scoring_task = None
        self._fallback_task = None

        if self.connection is not None:
            await self.connection.disconnect()
        await self.simulated_source.stop()
        self.active_source = None
        logger.info("Monitoring stopped after %d samples", self._sample_count)

    async def connect_live(self) -> bool:
        """
        Manually retry the live device while running on simulated data.

        Returns:
            True if the live device is now the active source
        """
        if self.connection is None:
            return False
        if self.connection.is_connected:
            return True

        await self.simulated_source.stop()
        try:
            await self.connection.connect()
        except DeviceConnectionError as exc:
            logger.warning("Live device still unavailable (%s); resuming simulated data", exc)
            await self._activate_simulation()
            return False
        self.active_source = self.live_source
        return True

    def refresh_insights(self) -> List[Insight]:
        """Run a scoring cycle; a non-empty result replaces the current insights."""
        insights = self.engine.analyze(self.store)
        if insights:
            self.insights = insights
            logger.info(
                "Insights updated: %s",
                ", ".join(f"{i.metric}={i.score} ({i.severity.value})" for i in insights),
            )
            if self.on_insights:
                self.on_insights(insights)
        return insights

    async def run(self, duration: Optional[float] = None) -> None:
        """
        Run monitoring for a fixed duration (None for until cancelled).

        Args:
            duration: Run time in seconds
        """
        await self.start()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            await self.stop()

    def _ingest(self, sample: Sample) -> None:
        self.store.add(sample)
        self._sample_count += 1
        if self.on_sample:
            self.on_sample(sample)

    async def _activate_simulation(self) -> None:
        await self.simulated_source.start()
        self.active_source = self.simulated_source

    def _handle_connection_change(self, is_connected: bool, switched_to_simulation: bool) -> None:
        if self.on_connection_change:
            self.on_connection_change(is_connected, switched_to_simulation)

        if switched_to_simulation and self.running:
            self._fallback_task = asyncio.get_running_loop().create_task(self._activate_simulation())

    async def _scoring_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.scoring_tick)
            self.refresh_insights()

    def get_status(self) -> dict:
        """Get current system status."""
        elapsed = time.monotonic() - self._start_time if self._start_time else 0

        status = {
            "running": self.running,
            "source": "simulated" if self.simulated else ("live" if self.active_source else "none"),
            "samples_processed": self._sample_count,
            "elapsed_time": elapsed,
            "analyses": self.engine.analysis_count,
            "window_sizes": {kind.value: self.store.size(kind) for kind in MetricKind},
        }
        if self.connection is not None:
            status["connection"] = self.connection.get_status()
        if self.live_source is not None and hasattr(self.live_source, "get_status"):
            status["device"] = self.live_source.get_status()
        return status


def create_simulated_monitor(config: Optional[MonitorConfig] = None, seed: Optional[int] = None) -> HealthMonitor:
    """
    Create a monitor that only uses simulated data.

    Convenience function for testing and development.
    """
    config = config or MonitorConfig()
    simulator = SimulatedSource(
        generator=HealthSignalGenerator(
            seed=seed,
            anomaly_interval=config.anomaly_interval,
            anomaly_duration=config.anomaly_duration,
        ),
        interval=config.sample_interval,
    )
    return HealthMonitor(simulated_source=simulator, config=config)


def create_live_monitor(config: Optional[MonitorConfig] = None) -> HealthMonitor:
    """
    Create a monitor that connects to a BLE health sensor, falling back to
    simulated data when the device cannot be reached.
    """
    config = config or MonitorConfig()
    live = BleHealthSource(
        address=config.device_address,
        scan_timeout=config.scan_timeout,
        connect_timeout=config.connect_timeout,
    )
    return HealthMonitor(live_source=live, config=config)
