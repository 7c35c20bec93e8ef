"""
Live sensor connection modules.

BleHealthSource talks to the wearable over Bluetooth LE; decoders turn each
characteristic's notification payload into a metric value.
"""

from .ble import BleHealthSource, CHANNELS, REQUIRED_SERVICES
from .decoders import (
    decode_blood_pressure,
    decode_pulse,
    decode_spo2,
    decode_steps,
    decode_temperature,
)

__all__ = [
    "BleHealthSource",
    "CHANNELS",
    "REQUIRED_SERVICES",
    "decode_blood_pressure",
    "decode_pulse",
    "decode_spo2",
    "decode_steps",
    "decode_temperature",
]
