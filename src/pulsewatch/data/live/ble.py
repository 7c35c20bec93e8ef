"""
Live Bluetooth LE health sensor.

Connects to a wearable exposing the Health, Optical (PPG) and Step services
and subscribes to one notifying characteristic per metric. A standard Blood
Pressure service is used as well when the device has one.

Service UUIDs:
- Health (thermometer + SpO2): 0x183C
- Optical signal (custom PPG): 0x1822
- Step (running speed and cadence): 0x1814
- Blood Pressure (optional): 0x1810
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from ...errors import (
    DecodeError,
    DeviceUnavailable,
    PeripheralDisconnected,
    ServiceSetupFailed,
)
from ..models import MetricKind, Sample, SampleValue
from ..source import SampleCallback
from .decoders import (
    decode_blood_pressure,
    decode_pulse,
    decode_spo2,
    decode_steps,
    decode_temperature,
)

logger = logging.getLogger(__name__)


HEALTH_SERVICE = "0000183c-0000-1000-8000-00805f9b34fb"
OPTICAL_SERVICE = "00001822-0000-1000-8000-00805f9b34fb"
STEP_SERVICE = "00001814-0000-1000-8000-00805f9b34fb"
BLOOD_PRESSURE_SERVICE = "00001810-0000-1000-8000-00805f9b34fb"

REQUIRED_SERVICES = (HEALTH_SERVICE, OPTICAL_SERVICE, STEP_SERVICE)


@dataclass(frozen=True)
class MetricChannel:
    """One subscribed characteristic and how to decode it."""
    kind: MetricKind
    service_uuid: str
    char_uuid: str
    decode: Callable[[bytes], SampleValue]
    required: bool = True


CHANNELS = (
    MetricChannel(MetricKind.PULSE_SIGNAL, OPTICAL_SERVICE,
                  "00002a37-0000-1000-8000-00805f9b34fb", decode_pulse),
    MetricChannel(MetricKind.OXYGEN_SATURATION, HEALTH_SERVICE,
                  "00002a5f-0000-1000-8000-00805f9b34fb", decode_spo2),
    MetricChannel(MetricKind.TEMPERATURE, HEALTH_SERVICE,
                  "00002a1c-0000-1000-8000-00805f9b34fb", decode_temperature),
    MetricChannel(MetricKind.STEP_COUNT, STEP_SERVICE,
                  "00002a53-0000-1000-8000-00805f9b34fb", decode_steps),
    MetricChannel(MetricKind.BLOOD_PRESSURE, BLOOD_PRESSURE_SERVICE,
                  "00002a35-0000-1000-8000-00805f9b34fb", decode_blood_pressure,
                  required=False),
)

_BLE_FAILURES = (BleakError, OSError, asyncio.TimeoutError)


class BleHealthSource:
    """
    Live data source backed by bleak.

    The discovered device is remembered so reconnect attempts skip the scan.
    ``on_disconnect`` is only called when the peripheral drops the link on
    its own; stop() never triggers it.
    """

    def __init__(
        self,
        address: Optional[str] = None,
        on_sample: Optional[SampleCallback] = None,
        on_disconnect: Optional[Callable[[PeripheralDisconnected], None]] = None,
        scan_timeout: float = 10.0,
        connect_timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        scanner=BleakScanner,
        client_factory=BleakClient,
    ):
        """
        Args:
            address: MAC address (or platform UUID) of the device; None scans
                for the first device advertising a required service
            on_sample: Called with each decoded Sample
            on_disconnect: Called when the peripheral drops the connection
            scan_timeout: Seconds to scan before giving up
            connect_timeout: Seconds to wait for the GATT connection
        """
        self.address = address
        self.on_sample = on_sample
        self.on_disconnect = on_disconnect
        self.scan_timeout = scan_timeout
        self.connect_timeout = connect_timeout
        self._clock = clock
        self._scanner = scanner
        self._client_factory = client_factory

        self._device = None
        self._client = None
        self._subscribed: List = []
        self._stopping = False

        self.dropped_payloads = 0

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    async def start(self) -> None:
        if self.is_connected:
            return
        self._stopping = False
        device = self._device or await self._discover()

        client = self._client_factory(
            device,
            disconnected_callback=self._handle_disconnect,
            timeout=self.connect_timeout,
        )
        try:
            await client.connect()
        except _BLE_FAILURES as exc:
            raise DeviceUnavailable(f"Could not connect to {self._describe(device)}: {exc}") from exc

        self._device = device
        self._client = client
        try:
            await self._subscribe(client)
        except ServiceSetupFailed:
            await self._release()
            raise
        except _BLE_FAILURES as exc:
            await self._release()
            raise ServiceSetupFailed(f"Notification setup failed: {exc}") from exc

        logger.info("Connected to %s (%d characteristics)", self._describe(device), len(self._subscribed))

    async def stop(self) -> None:
        self._stopping = True
        await self._release()

    async def _discover(self):
        try:
            if self.address:
                device = await self._scanner.find_device_by_address(self.address, timeout=self.scan_timeout)
            else:
                device = await self._scanner.find_device_by_filter(
                    self._advertises_required_service, timeout=self.scan_timeout
                )
        except _BLE_FAILURES as exc:
            raise DeviceUnavailable(f"Bluetooth scan failed: {exc}") from exc

        if device is None:
            target = self.address or "a compatible health sensor"
            raise DeviceUnavailable(f"No device found for {target} within {self.scan_timeout:.0f}s")
        return device

    @staticmethod
    def _advertises_required_service(device, advertisement) -> bool:
        uuids = {uuid.lower() for uuid in (advertisement.service_uuids or [])}
        return any(service in uuids for service in REQUIRED_SERVICES)

    async def _subscribe(self, client) -> None:
        # Resolve everything first so a missing characteristic fails before any subscription
        resolved = []
        for channel in CHANNELS:
            characteristic = self._resolve(client, channel)
            if characteristic is not None:
                resolved.append((channel, characteristic))

        for channel, characteristic in resolved:
            await client.start_notify(characteristic, self._make_handler(channel))
            self._subscribed.append(characteristic)

    def _resolve(self, client, channel: MetricChannel):
        service = client.services.get_service(channel.service_uuid)
        if service is None:
            if channel.required:
                raise ServiceSetupFailed(f"Service {channel.service_uuid} not found")
            logger.debug("Optional service %s not present", channel.service_uuid)
            return None

        characteristic = service.get_characteristic(channel.char_uuid)
        if characteristic is None:
            if channel.required:
                raise ServiceSetupFailed(
                    f"Characteristic {channel.char_uuid} missing from service {channel.service_uuid}"
                )
            return None

        if not {"notify", "indicate"} & set(characteristic.properties):
            if channel.required:
                raise ServiceSetupFailed(f"Characteristic {channel.char_uuid} does not support notifications")
            return None
        return characteristic

    def _make_handler(self, channel: MetricChannel):
        def handle(_sender, data: bytearray) -> None:
            try:
                value = channel.decode(bytes(data))
            except DecodeError as exc:
                self.dropped_payloads += 1
                logger.debug("Dropped %s payload %s: %s", channel.kind.value, bytes(data).hex(), exc)
                return
            if self.on_sample is not None:
                self.on_sample(Sample(channel.kind, value, self._clock()))
        return handle

    def _handle_disconnect(self, client) -> None:
        if self._stopping or client is not self._client:
            return
        self._client = None
        self._subscribed = []
        reason = PeripheralDisconnected(f"{self._describe(self._device)} dropped the connection")
        logger.warning("%s", reason)
        if self.on_disconnect is not None:
            self.on_disconnect(reason)

    async def _release(self) -> None:
        client, self._client = self._client, None
        subscribed, self._subscribed = self._subscribed, []
        if client is None:
            return
        if client.is_connected:
            for characteristic in subscribed:
                try:
                    await client.stop_notify(characteristic)
                except _BLE_FAILURES as exc:
                    logger.debug("stop_notify failed for %s: %s", characteristic, exc)
        try:
            await client.disconnect()
        except _BLE_FAILURES as exc:
            logger.debug("Disconnect failed: %s", exc)

    def _describe(self, device) -> str:
        if device is None:
            return self.address or "device"
        name = getattr(device, "name", None)
        address = getattr(device, "address", None) or self.address
        return f"{name} ({address})" if name else str(address)

    def get_status(self) -> Dict:
        return {
            "connected": self.is_connected,
            "address": getattr(self._device, "address", None) or self.address,
            "subscriptions": len(self._subscribed),
            "dropped_payloads": self.dropped_payloads,
        }
