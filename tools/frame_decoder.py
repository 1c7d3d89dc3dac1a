#!/usr/bin/env python3
"""
frame_decoder.py - Uplink Frame Decoder

Decodes the fixed-layout uplink frame sent by the LoRaWAN test device
(tx reason, tx power, data rate, supply voltage, optional sensor block)
into typed fields plus warnings and errors.

Two frame layouts exist in the field:

    V1: reason, tx power, data rate, voltage (u16)        5 bytes
        + temp1 (u16), temp2 (u16), humidity (u8)        when longer than 5
    V2: reason, tx power, data rate, spreading factor,
        voltage (u16)                                     6 bytes

The wire format carries no version tag, so the caller must say which
layout the device sends.

Usage:
    from frame_decoder import FrameDecoder, LayoutVersion

    decoder = FrameDecoder(LayoutVersion.V2)
    result = decoder.decode(bytes([1, 200, 5, 7, 0x0A, 0x28]))

    # Or the TTN payload formatter shape
    output = decode_uplink({'bytes': [0, 10, 3, 0x0C, 0x1C], 'fPort': 10}, 'v1')
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, List, Tuple, Union


class LayoutVersion(Enum):
    V1 = 'v1'
    V2 = 'v2'

    @property
    def min_length(self) -> int:
        return _MIN_LENGTH[self]

    @classmethod
    def parse(cls, value: Union['LayoutVersion', str, int]) -> 'LayoutVersion':
        """Accept a LayoutVersion, 'v1'/'V2'/'1' or 1/2."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if not text.startswith('v'):
            text = 'v' + text
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown layout version: {value!r}") from None


_MIN_LENGTH = {
    LayoutVersion.V1: 5,
    LayoutVersion.V2: 6,
}

# V1 sensor block: temp1 (u16), temp2 (u16), humidity (u8)
V1_SENSOR_BLOCK_SIZE = 5


# =============================================================================
# Lookup tables
# =============================================================================

TX_REASONS = MappingProxyType({
    0: "Timer Event",
    1: "User Button Event",
    2: "Input Event",
    3: "FUOTA Event",
    4: "App Cycle Event",
    5: "Timeout Event",
    255: "Undefined Event",
})

# EU868 channel plan
BANDWIDTH_KHZ = MappingProxyType({
    0: 125,  # SF12
    1: 125,  # SF11
    2: 125,  # SF10
    3: 125,  # SF9
    4: 125,  # SF8
    5: 125,  # SF7
    6: 250,  # SF7/250kHz
})
DEFAULT_BANDWIDTH_KHZ = 125

BITRATE_BPS = MappingProxyType({
    0: 250,
    1: 440,
    2: 980,
    3: 1760,
    4: 3125,
    5: 5470,
})
DEFAULT_BITRATE_BPS = 0

TEMPERATURE_SENTINELS = MappingProxyType({
    0x8000: "Unknown Error",
    0x8001: "Overflow",
    0x8002: "Underflow",
})

# Inclusive lower bounds in mV, highest first
BATTERY_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (3000, "Good"),
    (2700, "Medium"),
    (2400, "Low"),
)
BATTERY_CRITICAL = "Critical"

# Substitute labels for lookup misses
FALLBACK_LABELS = MappingProxyType({
    'tx_reason': "Unknown ({code})",
})


# =============================================================================
# Table helpers
# =============================================================================

def fallback_label(kind: str, code: int) -> str:
    """Label used when a lookup table has no entry for code."""
    return FALLBACK_LABELS[kind].format(code=code)


def tx_reason_label(code: int) -> str:
    label = TX_REASONS.get(code)
    if label is None:
        return fallback_label('tx_reason', code)
    return label


def bandwidth_khz(datarate: int) -> int:
    return BANDWIDTH_KHZ.get(datarate, DEFAULT_BANDWIDTH_KHZ)


def bitrate_bps(datarate: int) -> int:
    return BITRATE_BPS.get(datarate, DEFAULT_BITRATE_BPS)


def datarate_descriptor(datarate: int) -> str:
    """
    Composite data rate label, e.g. DR3/SF9/125kHz/1760bps.

    The spreading factor is derived as 12 - DR, which only holds for
    DR0..DR5 of the EU868 plan; other indices keep the same arithmetic.
    """
    return (f"DR{datarate}/SF{12 - datarate}/"
            f"{bandwidth_khz(datarate)}kHz/{bitrate_bps(datarate)}bps")


def temperature_value(raw: int) -> Union[float, str]:
    """
    Convert a raw u16 temperature reading to degrees C.

    Sentinel codes become their label. Other values are read unsigned,
    so negative temperatures cannot be represented by this frame format.
    """
    label = TEMPERATURE_SENTINELS.get(raw)
    if label is not None:
        return label
    return raw / 10


def battery_status(millivolts: int) -> str:
    for threshold, status in BATTERY_THRESHOLDS:
        if millivolts >= threshold:
            return status
    return BATTERY_CRITICAL


def to_int8(value: int) -> int:
    """Two's complement interpretation of one byte."""
    return value - 256 if value > 127 else value


# =============================================================================
# Decoder
# =============================================================================

@dataclass
class DecodeResult:
    """Result of decoding an uplink frame."""
    data: Dict[str, Any]
    bytes_consumed: int = 0
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        """TTN payload formatter return shape."""
        return {
            'data': dict(self.data),
            'warnings': list(self.warnings),
            'errors': list(self.errors),
        }


class FrameDecoder:
    """
    Decoder for one frame layout.

    Holds nothing but the layout, so a single instance may be shared
    between threads.
    """

    def __init__(self, layout: Union[LayoutVersion, str, int] = LayoutVersion.V1):
        self.layout = LayoutVersion.parse(layout)

    def _read_u8(self, buf: bytes, pos: int) -> Tuple[int, int]:
        return buf[pos], pos + 1

    def _read_u16(self, buf: bytes, pos: int) -> Tuple[int, int]:
        return int.from_bytes(buf[pos:pos + 2], 'big'), pos + 2

    def decode(self, payload) -> DecodeResult:
        """
        Decode payload bytes.

        Args:
            payload: bytes-like object or sequence of ints 0..255

        Returns:
            DecodeResult; data is empty whenever errors is not
        """
        result = DecodeResult(data={})

        try:
            # bytes(n) would build n zero bytes
            if isinstance(payload, int):
                raise TypeError(f"expected bytes, got int {payload}")
            buf = bytes(payload)
        except (TypeError, ValueError) as e:
            result.errors.append(f"Invalid payload: {e}")
            return result

        min_length = self.layout.min_length
        if len(buf) < min_length:
            result.errors.append(
                f"Payload too short: {len(buf)} bytes (expected at least {min_length})"
            )
            return result

        if self.layout == LayoutVersion.V1:
            pos = self._decode_v1(buf, result)
        else:
            pos = self._decode_v2(buf, result)

        result.bytes_consumed = pos
        return result

    def _decode_v1(self, buf: bytes, result: DecodeResult) -> int:
        data = result.data
        pos = 0

        reason, pos = self._read_u8(buf, pos)
        data['tx_reason'] = tx_reason_label(reason)

        tx_power, pos = self._read_u8(buf, pos)
        data['tx_power_dbm'] = to_int8(tx_power)

        datarate, pos = self._read_u8(buf, pos)

        voltage_mv, pos = self._read_u16(buf, pos)
        data['supply_voltage'] = round(voltage_mv / 1000, 3)

        data['datarate'] = datarate_descriptor(datarate)

        if len(buf) > pos:
            pos = self._decode_v1_sensors(buf, pos, result)

        return pos

    def _decode_v1_sensors(self, buf: bytes, pos: int, result: DecodeResult) -> int:
        """Optional temperature/humidity block; keeps whatever fits."""
        data = result.data
        available = len(buf) - pos

        if available >= 2:
            temp1, pos = self._read_u16(buf, pos)
            data['temp1'] = temperature_value(temp1)
        if available >= 4:
            temp2, pos = self._read_u16(buf, pos)
            data['temp2'] = temp2 / 10
        if available >= V1_SENSOR_BLOCK_SIZE:
            humidity, pos = self._read_u8(buf, pos)
            data['humidity'] = humidity
        else:
            result.warnings.append(
                f"Extended sensor block truncated: {available} of "
                f"{V1_SENSOR_BLOCK_SIZE} bytes present"
            )
            # Dangling odd byte is not part of any field
            pos = len(buf)

        return pos

    def _decode_v2(self, buf: bytes, result: DecodeResult) -> int:
        data = result.data
        pos = 0

        reason, pos = self._read_u8(buf, pos)
        data['tx_reason_code'] = reason
        data['tx_reason'] = tx_reason_label(reason)

        tx_power, pos = self._read_u8(buf, pos)
        data['tx_power_dbm'] = to_int8(tx_power)

        datarate, pos = self._read_u8(buf, pos)
        data['datarate'] = datarate
        data['datarate_name'] = f"DR{datarate}"
        data['bandwidth_khz'] = bandwidth_khz(datarate)
        data['bitrate_bps'] = bitrate_bps(datarate)

        spreading_factor, pos = self._read_u8(buf, pos)
        data['spreading_factor'] = spreading_factor
        data['spreading_factor_name'] = f"SF{spreading_factor}"

        voltage_mv, pos = self._read_u16(buf, pos)
        data['supply_voltage_mv'] = voltage_mv
        data['supply_voltage_v'] = round(voltage_mv / 1000, 3)

        status = battery_status(voltage_mv)
        data['battery_status'] = status
        if status == BATTERY_CRITICAL:
            result.warnings.append(f"Battery critical: {voltage_mv} mV")

        return pos


def decode_frame(payload, layout: Union[LayoutVersion, str, int]) -> DecodeResult:
    """Convenience function to decode one frame."""
    return FrameDecoder(layout).decode(payload)


def decode_uplink(uplink_input: Dict[str, Any],
                  layout: Union[LayoutVersion, str, int]) -> Dict[str, Any]:
    """
    TTN payload formatter entry point.

    uplink_input is the formatter input object ({'bytes': [...], 'fPort': n});
    returns {'data': ..., 'warnings': [...], 'errors': [...]}.
    """
    payload = uplink_input.get('bytes') if isinstance(uplink_input, dict) else None
    if payload is None:
        return DecodeResult(data={}, errors=["Missing input bytes"]).to_dict()
    return decode_frame(payload, layout).to_dict()


if __name__ == '__main__':
    print("=== Frame Decoder Demo ===\n")

    samples = [
        (LayoutVersion.V1, bytes([0x00, 0x0A, 0x03, 0x0C, 0x1C])),
        (LayoutVersion.V1, bytes([0x01, 0x0E, 0x00, 0x0B, 0xB6, 0x00, 0xD7, 0x00, 0xC8, 0x37])),
        (LayoutVersion.V2, bytes([0x01, 0xC8, 0x05, 0x07, 0x0A, 0x28])),
        (LayoutVersion.V2, bytes([0x00, 0x0E, 0x00, 0x0C, 0x08, 0xFF])),
    ]

    for layout, payload in samples:
        result = decode_frame(payload, layout)
        print(f"Layout: {layout.value}  Payload: {payload.hex().upper()}")
        for k, v in result.data.items():
            print(f"  {k}: {v}")
        for w in result.warnings:
            print(f"  WARNING: {w}")
        print()
