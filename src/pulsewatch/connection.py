"""
Live device connection lifecycle.

DISCONNECTED → CONNECTING → CONNECTED ⇄ RECONNECTING → SIMULATED

An unsolicited disconnect starts a background retry loop with exponential
backoff. When the retries run out, the manager parks in SIMULATED and signals
the switch exactly once. From there only a manual connect() tries the device
again.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Dict, Optional

from .data.models import ConnectionState
from .errors import DeviceConnectionError, DeviceUnavailable, PeripheralDisconnected

logger = logging.getLogger(__name__)


# (is_connected, switched_to_simulation)
StateChangeCallback = Callable[[bool, bool], None]


class ReconnectPolicy:
    """
    Exponential backoff schedule for automatic reconnection.

    After k consecutive failures the delay is min(initial * 2**k, max_delay).
    """

    MAX_ATTEMPTS = 5
    INITIAL_DELAY = 1.0   # seconds
    MAX_DELAY = 10.0      # seconds

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay: float = INITIAL_DELAY,
        max_delay: float = MAX_DELAY,
    ):
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.attempt = 0
        self.delay = initial_delay

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def record_failure(self) -> None:
        self.attempt += 1
        self.delay = min(self.delay * 2, self.max_delay)

    def reset(self) -> None:
        self.attempt = 0
        self.delay = self.initial_delay


class ConnectionManager:
    """
    Owns a live source and drives its connect/reconnect lifecycle.

    The source must provide async start()/stop() and an ``on_disconnect``
    attribute, which the manager takes over.
    """

    def __init__(
        self,
        source,
        policy: Optional[ReconnectPolicy] = None,
        on_state_change: Optional[StateChangeCallback] = None,
        attempt_timeout: Optional[float] = None,
    ):
        """
        Args:
            source: Live data source to manage
            policy: Reconnect schedule (default: 5 attempts, 1s doubling to 10s)
            on_state_change: Called with (is_connected, switched_to_simulation)
                on every state transition
            attempt_timeout: Upper bound in seconds for a single connect attempt
        """
        self.source = source
        self.policy = policy or ReconnectPolicy()
        self.on_state_change = on_state_change
        self.attempt_timeout = attempt_timeout

        self.state = ConnectionState.DISCONNECTED
        self.state_entered_at = time.monotonic()
        self.history = deque(maxlen=100)

        self._attempt_lock = asyncio.Lock()
        self._reconnect_task: Optional[asyncio.Task] = None

        source.on_disconnect = self.handle_disconnect

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def connect(self) -> None:
        """
        Connect to the live device.

        Raises:
            DeviceUnavailable: No device, no Bluetooth, or the attempt timed out.
            ServiceSetupFailed: Device lacks a required service/characteristic.
        """
        if self.state == ConnectionState.CONNECTED:
            return
        await self._cancel_reconnect()

        async with self._attempt_lock:
            self._transition(ConnectionState.CONNECTING, "Manual connect")
            try:
                await self._attempt()
            except DeviceConnectionError as exc:
                self._transition(ConnectionState.DISCONNECTED, f"Connect failed: {exc}")
                raise
            self.policy.reset()
            self._transition(ConnectionState.CONNECTED, "Connected")

    async def disconnect(self) -> None:
        """Cancel any pending retry, release the device, go DISCONNECTED."""
        await self._cancel_reconnect()
        async with self._attempt_lock:
            await self.source.stop()
            self._transition(ConnectionState.DISCONNECTED, "Manual disconnect")

    def handle_disconnect(self, reason: Optional[PeripheralDisconnected] = None) -> None:
        """Entry point for unsolicited peripheral disconnects."""
        if self.state != ConnectionState.CONNECTED:
            return
        if self.policy.exhausted:
            self._transition(ConnectionState.SIMULATED, "Reconnect budget exhausted", switched=True)
            return

        self._transition(ConnectionState.RECONNECTING, str(reason) if reason else "Peripheral disconnected")
        if not self.reconnect_pending:
            self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while self.state == ConnectionState.RECONNECTING:
            logger.warning(
                "Reconnecting in %.1fs (attempt %d/%d)",
                self.policy.delay, self.policy.attempt + 1, self.policy.max_attempts,
            )
            await asyncio.sleep(self.policy.delay)

            async with self._attempt_lock:
                if self.state != ConnectionState.RECONNECTING:
                    return
                try:
                    await self._attempt()
                except DeviceConnectionError as exc:
                    self.policy.record_failure()
                    logger.warning(
                        "Reconnection attempt %d/%d failed: %s",
                        self.policy.attempt, self.policy.max_attempts, exc,
                    )
                    if self.policy.exhausted:
                        logger.warning("Max reconnection attempts reached. Switching to simulated data.")
                        self._transition(ConnectionState.SIMULATED, "Reconnect budget exhausted", switched=True)
                        return
                    continue

                self.policy.reset()
                self._transition(ConnectionState.CONNECTED, "Reconnected")
                return

    async def _attempt(self) -> None:
        try:
            if self.attempt_timeout is None:
                await self.source.start()
            else:
                await asyncio.wait_for(self.source.start(), timeout=self.attempt_timeout)
        except asyncio.TimeoutError:
            await self.source.stop()
            raise DeviceUnavailable(f"Connect attempt timed out after {self.attempt_timeout}s") from None

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _transition(self, new_state: ConnectionState, reason: str, switched: bool = False) -> None:
        if new_state == self.state:
            return

        self.history.append({
            "time": time.time(),
            "from": self.state.value,
            "to": new_state.value,
            "reason": reason,
        })
        logger.info("Connection %s -> %s (%s)", self.state.value, new_state.value, reason)
        self.state = new_state
        self.state_entered_at = time.monotonic()

        if self.on_state_change is not None:
            self.on_state_change(new_state == ConnectionState.CONNECTED, switched)

    def get_status(self) -> Dict:
        return {
            "state": self.state.value,
            "duration": time.monotonic() - self.state_entered_at,
            "reconnect_attempt": self.policy.attempt,
            "reconnect_delay": self.policy.delay,
            "reconnect_pending": self.reconnect_pending,
            "transitions": len(self.history),
            "last_transition": self.history[-1] if self.history else None,
        }
