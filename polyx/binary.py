"""Little-endian field codecs and framing for the receiver's binary messages.

A frame is laid out as ``AF 20 <type> <sub id> <payload length, u16>``,
followed by the payload and a two-byte Fletcher checksum over the payload.
"""

from __future__ import annotations

import struct

from polyx.geodesy import DEG_TO_RAD, GpsClock
from polyx.messages import (
    CorrectedImu,
    Dmi,
    Geoid,
    GnssHmr,
    Kalman,
    LeapSeconds,
    RawImu,
    SolutionStatus,
    TimeSync,
)

SYNC1 = 0xAF
SYNC2 = 0x20
HEADER_LEN = 6
CHECKSUM_LEN = 2


class ChecksumError(ValueError):
    """A frame's checksum does not match its payload, or the frame is cut short."""


def _unpack(fmt: str, data: bytes | bytearray | memoryview, offset: int) -> tuple:
    try:
        return struct.unpack_from("<" + fmt, data, offset)
    except struct.error as exc:
        raise ValueError(
            f"need {struct.calcsize('<' + fmt)} bytes at offset {offset}, "
            f"buffer holds {len(data)}"
        ) from exc


def decode_f64(data: bytes | bytearray | memoryview, offset: int = 0) -> float:
    return _unpack("d", data, offset)[0]


def decode_f32(data: bytes | bytearray | memoryview, offset: int = 0) -> float:
    return _unpack("f", data, offset)[0]


def decode_u32(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    return _unpack("I", data, offset)[0]


def decode_i32(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    return _unpack("i", data, offset)[0]


def decode_u16(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    return _unpack("H", data, offset)[0]


def decode_i16(data: bytes | bytearray | memoryview, offset: int = 0) -> int:
    return _unpack("h", data, offset)[0]


def encode_f64(value: float) -> bytes:
    return struct.pack("<d", value)


def encode_f32(value: float) -> bytes:
    return struct.pack("<f", value)


def encode_u32(value: int) -> bytes:
    return struct.pack("<I", value)


def encode_i32(value: int) -> bytes:
    return struct.pack("<i", value)


def encode_u16(value: int) -> bytes:
    return struct.pack("<H", value)


def encode_i16(value: int) -> bytes:
    return struct.pack("<h", value)


def make_header(msg_type: int, sub_id: int, payload_len: int) -> bytes:
    """Build the six-byte frame header."""
    return bytes((SYNC1, SYNC2, msg_type & 0xFF, sub_id & 0xFF)) + encode_u16(payload_len)


def checksum(data: bytes | bytearray | memoryview) -> tuple[int, int]:
    """Return the two 8-bit Fletcher sums (CK_A, CK_B) of the data."""
    ck_a = ck_b = 0
    for byte in bytes(data):
        ck_a = (ck_a + byte) & 0xFF
        ck_b = (ck_b + ck_a) & 0xFF
    return ck_a, ck_b


def frame_message(msg_type: int, sub_id: int, payload: bytes | bytearray) -> bytes:
    """Wrap a payload in a header and trailing checksum."""
    payload = bytes(payload)
    return make_header(msg_type, sub_id, len(payload)) + payload + bytes(checksum(payload))


def check_message_type(frame: bytes | bytearray | memoryview) -> int:
    """Return the frame's message type after verifying its checksum.

    Raises ChecksumError when the frame is truncated or the checksum fails.
    """
    frame = bytes(frame)
    if len(frame) < HEADER_LEN:
        raise ChecksumError("frame shorter than its header")
    length = decode_u16(frame, 4)
    end = HEADER_LEN + length
    if len(frame) < end + CHECKSUM_LEN:
        raise ChecksumError(f"frame truncated: payload length {length}, got {len(frame)} bytes")
    if checksum(frame[HEADER_LEN:end]) != (frame[end], frame[end + 1]):
        raise ChecksumError("invalid message checksum")
    return frame[2]


def _deg_vec_to_rad(values) -> tuple[float, float, float]:
    a, b, c = (v * DEG_TO_RAD for v in values)
    return a, b, c


def parse_kalman(frame: bytes | bytearray | memoryview) -> Kalman:
    """Decode a Kalman filter navigation message (sub id 1)."""
    values = _unpack("11d3B", frame, HEADER_LEN)
    return Kalman(*values)


def parse_gnss_hmr(frame: bytes | bytearray | memoryview) -> GnssHmr:
    """Decode a GNSS heading message (sub id 14)."""
    msow, week, heading, heading_std, baseline, pitch, pitch_std = _unpack("IH5f", frame, HEADER_LEN)
    return GnssHmr(
        gps_time_of_week=msow * 0.001,
        gps_week_number=week,
        heading_deg=heading,
        heading_std_deg=heading_std,
        baseline_length=baseline,
        pitch_deg=pitch,
        pitch_std_deg=pitch_std,
    )


def parse_raw_imu(frame: bytes | bytearray | memoryview) -> RawImu:
    """Decode a scaled raw IMU message (sub id 8); rates come out in rad/s."""
    values = _unpack("7d", frame, HEADER_LEN)
    return RawImu(
        system_time=values[0],
        acceleration=(values[1], values[2], values[3]),
        rotation_rate=_deg_vec_to_rad(values[4:7]),
    )


def parse_solution_status(frame: bytes | bytearray | memoryview) -> SolutionStatus:
    """Decode a solution status message (sub id 9); attitude RMS in rad."""
    values = _unpack("dBBHd9d", frame, HEADER_LEN)
    return SolutionStatus(
        system_time=values[0],
        number_of_svs=values[1],
        processing_mode=values[2],
        gps_week_number=values[3],
        gps_time_week=values[4],
        position_rms=(values[5], values[6], values[7]),
        velocity_rms=(values[8], values[9], values[10]),
        attitude_rms=_deg_vec_to_rad(values[11:14]),
    )


def parse_time_sync(frame: bytes | bytearray | memoryview) -> TimeSync:
    """Decode a time synchronisation message (sub id 16)."""
    system_time, bias = _unpack("2d", frame, HEADER_LEN)
    return TimeSync(system_computer_time=system_time, bias_to_gps_time=bias)


def parse_geoid(frame: bytes | bytearray | memoryview) -> Geoid:
    """Decode a geoid height message (sub id 22)."""
    gps_time, height = _unpack("2d", frame, HEADER_LEN)
    return Geoid(gps_time=gps_time, geoid_height=height)


def parse_corrected_imu(frame: bytes | bytearray | memoryview) -> CorrectedImu:
    """Decode a corrected IMU message (sub id 23); rates come out in rad/s."""
    values = _unpack("7dH", frame, HEADER_LEN)
    return CorrectedImu(
        gps_time_week=values[0],
        acceleration=(values[1], values[2], values[3]),
        rotation_rate=_deg_vec_to_rad(values[4:7]),
        gps_week_number=values[7],
    )


def parse_leap_seconds(frame: bytes | bytearray | memoryview, clock: GpsClock) -> LeapSeconds:
    """Decode a leap seconds message (sub id 24) and apply it to the clock."""
    (leap,) = _unpack("B", frame, HEADER_LEN)
    clock.leap_seconds = leap
    return LeapSeconds(leap_seconds=leap)


def parse_dmi(frame: bytes | bytearray | memoryview) -> Dmi:
    """Decode a distance measurement instrument message (sub id 12)."""
    system_time, pulses, dmi_id = _unpack("diB", frame, HEADER_LEN)
    return Dmi(system_time=system_time, pulse_count=pulses, id=dmi_id)