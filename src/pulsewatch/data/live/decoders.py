"""
Characteristic payload decoders.

Every decoder takes the raw notification bytes and returns the metric value,
or raises DecodeError for a short or malformed payload.
"""

import math
import struct

from ...errors import DecodeError
from ..models import BloodPressure

KPA_TO_MMHG = 7.50062

# IEEE-11073 16-bit SFLOAT special values
_SFLOAT_RESERVED = {
    0x07FF,  # NaN
    0x0800,  # NRes
    0x07FE,  # +INFINITY
    0x0802,  # -INFINITY
    0x0801,  # reserved
}


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise DecodeError(f"{what} payload needs {size} bytes, got {len(data)}")


def decode_pulse(data: bytes) -> int:
    """Optical pulse value: little-endian uint16."""
    _require(data, 2, "pulse")
    return data[0] + data[1] * 256


def decode_spo2(data: bytes) -> int:
    """Oxygen saturation percent: uint8."""
    _require(data, 1, "SpO2")
    return data[0]


def decode_temperature(data: bytes) -> float:
    """Body temperature in C: little-endian IEEE-754 float32."""
    _require(data, 4, "temperature")
    (value,) = struct.unpack_from("<f", data)
    if not math.isfinite(value):
        raise DecodeError(f"temperature payload is not a finite number: {value}")
    return value


def decode_steps(data: bytes) -> int:
    """Cumulative step count: little-endian uint16."""
    _require(data, 2, "step count")
    (value,) = struct.unpack_from("<H", data)
    return value


def _sfloat(raw: int) -> float:
    """Convert a 16-bit IEEE-11073 SFLOAT to float."""
    if raw in _SFLOAT_RESERVED:
        raise DecodeError(f"SFLOAT special value 0x{raw:04X}")
    mantissa = raw & 0x0FFF
    exponent = raw >> 12
    if mantissa >= 0x0800:
        mantissa -= 0x1000
    if exponent >= 0x8:
        exponent -= 0x10
    return mantissa * (10.0 ** exponent)


def decode_blood_pressure(data: bytes) -> BloodPressure:
    """
    Bluetooth Blood Pressure Measurement (0x2A35).

    Layout: flags (uint8), systolic, diastolic, MAP (SFLOAT each). Flag bit 0
    set means the values are in kPa.
    """
    _require(data, 7, "blood pressure")
    flags = data[0]
    raw_sys, raw_dia, _raw_map = struct.unpack_from("<HHH", data, 1)
    systolic = _sfloat(raw_sys)
    diastolic = _sfloat(raw_dia)
    if flags & 0x01:
        systolic *= KPA_TO_MMHG
        diastolic *= KPA_TO_MMHG
    return BloodPressure(systolic=round(systolic, 1), diastolic=round(diastolic, 1))
