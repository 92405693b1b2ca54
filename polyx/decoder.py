"""Byte-stream framing for the receiver output and decoding of navigation frames."""

from __future__ import annotations

import enum
import logging
import struct
import time
from collections.abc import Callable

from polyx.binary import CHECKSUM_LEN, HEADER_LEN, SYNC1, SYNC2
from polyx.convert import assign_diag_cov3
from polyx.geodesy import DEG_TO_RAD, GpsClock, RefFrameTrans, convert_to_nad83, gps_to_epoch
from polyx.messages import CompactNav, Imu, Quaternion, Time, Vector3

log = logging.getLogger(__name__)

MAX_MSG_LEN = 2048
INVALID_WEEK = 0xFFFF
IMU_FRAME_ID = "imu_link_ned"

_DOLLAR = ord("$")
_NMEA_G = ord("G")
_STAR = ord("*")
_SYNC_PAIRS = ((SYNC1, SYNC2), (_DOLLAR, _NMEA_G))

_COMPACT_NAV = struct.Struct("<3d23fHB")
_ATTITUDE_IMU = struct.Struct("<d4d3f3d3dH")


class DecodeState(enum.Enum):
    """Position of the stream decoder within a frame."""

    SYNC = 0
    HEAD = 1
    MSG = 2


class StreamDecoder:
    """Splits a raw byte stream into binary frames and NMEA sentences.

    Binary frames start with the two sync bytes and are returned whole,
    header and checksum included; NMEA sentences start with ``$G`` and are
    returned up to the two checksum characters after ``*``. Checksums are
    not verified here.
    """

    def __init__(self, max_len: int = MAX_MSG_LEN) -> None:
        self.max_len = max_len
        self.state = DecodeState.SYNC
        self._buf = bytearray()
        self._prev = 0
        self._msglen = 0

    def feed(self, data: bytes | bytearray | memoryview) -> list[bytes]:
        """Consume bytes and return every frame completed by them, in order."""
        frames = []
        for ch in bytes(data):
            frame = self._step(ch)
            if frame is not None:
                frames.append(frame)
        return frames

    def _reset(self) -> None:
        self.state = DecodeState.SYNC
        # The second sync byte stays as the look-behind for the next sync search.
        self._prev = self._buf[1]

    def _step(self, ch: int) -> bytes | None:
        if self.state is DecodeState.SYNC:
            pair = (self._prev, ch)
            self._prev = ch
            if pair in _SYNC_PAIRS:
                self._buf = bytearray(pair)
                self.state = DecodeState.HEAD
            return None

        self._buf.append(ch)
        size = len(self._buf)
        nmea = self._buf[0] == _DOLLAR

        if self.state is DecodeState.HEAD:
            if nmea:
                if ch < 32 or ch > 126 or size >= self.max_len:
                    self._reset()
                elif ch == _STAR:
                    self.state = DecodeState.MSG
                    self._msglen = size + 2
            elif size == HEADER_LEN:
                self._msglen = self._buf[4] | (self._buf[5] << 8)
                if self._msglen > self.max_len:
                    log.warning("invalid message length %d", self._msglen)
                    self._reset()
                else:
                    self.state = DecodeState.MSG
            return None

        frame = None
        if nmea:
            if size >= self._msglen:
                frame = bytes(self._buf)
                self._reset()
        elif size == self._msglen + HEADER_LEN + CHECKSUM_LEN:
            frame = bytes(self._buf)
            self._reset()

        if size >= self.max_len:
            if frame is None:
                log.warning("message overflow, length %d", self._msglen)
            self._reset()
        return frame


def _unpack(layout: struct.Struct, frame: bytes | bytearray | memoryview) -> tuple:
    try:
        return layout.unpack_from(frame, HEADER_LEN)
    except struct.error as exc:
        raise ValueError(
            f"frame needs {HEADER_LEN + layout.size} bytes, got {len(frame)}"
        ) from exc


def _system_now() -> Time:
    return Time.from_seconds(time.time())


def _triple(values) -> tuple[float, float, float]:
    a, b, c = values
    return a, b, c


def parse_compact_nav(
    frame: bytes | bytearray | memoryview,
    clock: GpsClock,
    frame_trans: RefFrameTrans = RefFrameTrans.NO_FRAME_TRANS,
    now: Callable[[], Time] | None = None,
) -> CompactNav:
    """Decode a CompactNav frame (sub id 13) into radians and SI units.

    The clock records the first valid GPS week; a week of 0xFFFF stamps the
    message with the current time instead of its GPS time.
    """
    values = _unpack(_COMPACT_NAV, frame)
    tow, lat_deg, lon_deg = values[0:3]
    f = values[3:26]
    week, alignment = values[26], values[27]

    lat = lat_deg * DEG_TO_RAD
    lon = lon_deg * DEG_TO_RAD
    alt = f[0]

    clock.note_week(week)
    if frame_trans is RefFrameTrans.WGS84_TO_NAD83:
        lat, lon, alt = convert_to_nad83(week, tow, lat, lon, alt)

    if week == INVALID_WEEK:
        stamp = (now or _system_now)()
    else:
        stamp = clock.to_epoch(week, tow)

    w, x, y, z = f[4:8]
    return CompactNav(
        stamp=stamp,
        gps_time_week=tow,
        latitude=lat,
        longitude=lon,
        altitude=alt,
        velocity_ned=_triple(f[1:4]),
        quaternion=(w, x, y, z),
        acceleration=_triple(f[8:11]),
        rotation_rate=_triple(v * DEG_TO_RAD for v in f[11:14]),
        position_rms=_triple(f[14:17]),
        velocity_rms=_triple(f[17:20]),
        attitude_rms=_triple(v * DEG_TO_RAD for v in f[20:23]),
        gps_week_number=week,
        alignment=alignment,
    )


def parse_attitude_imu(
    frame: bytes | bytearray | memoryview,
    now: Callable[[], Time] | None = None,
) -> Imu:
    """Decode an attitude and IMU frame (sub id 59).

    Orientation is body to NED; rates are rad/s and accelerations m/s^2.
    """
    values = _unpack(_ATTITUDE_IMU, frame)
    gps_time = values[0]
    qx, qy, qz, qw = values[1:5]
    att_rms = values[5:8]
    rates = values[8:11]
    accel = values[11:14]
    week = values[14]

    unknown = (-1.0,) + (0.0,) * 8
    if week == INVALID_WEEK:
        stamp = (now or _system_now)()
    else:
        stamp = gps_to_epoch(week, gps_time)

    return Imu(
        stamp=stamp,
        frame_id=IMU_FRAME_ID,
        orientation=Quaternion(x=qx, y=qy, z=qz, w=qw),
        orientation_covariance=assign_diag_cov3(att_rms),
        angular_velocity=Vector3(*rates),
        angular_velocity_covariance=unknown,
        linear_acceleration=Vector3(*accel),
        linear_acceleration_covariance=unknown,
    )