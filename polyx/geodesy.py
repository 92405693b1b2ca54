"""GPS time handling, WGS84 coordinate conversions and frame transforms."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass

from polyx.messages import Quaternion, Time

RAD_TO_DEG = 57.295779513082323
DEG_TO_RAD = 0.017453292519943295
WGS84_A = 6378137.0
WGS84_E2 = 6.69437999014e-3
GPS_TIME_BEG = 315964800.0
SEC_PER_WEEK = 604800.0
MAS_TO_RAD = 4.84813681109535940e-09
DEFAULT_LEAP_SECONDS = 18
M_SQRT1_2 = 0.70710678118654746

Vec3 = tuple[float, float, float]
Matrix3 = tuple[Vec3, Vec3, Vec3]


class RefFrameTrans(enum.Enum):
    """Reference frame transformation applied to decoded positions."""

    NO_FRAME_TRANS = 0
    WGS84_TO_NAD83 = 1


def gps_to_epoch(gps_week: int, gps_tow: float, leap_seconds: int = DEFAULT_LEAP_SECONDS) -> Time:
    """Convert GPS week and time of week to a UNIX timestamp.

    A non-positive week means the time of week is already an epoch time.
    """
    if gps_week > 0:
        t = GPS_TIME_BEG + gps_week * SEC_PER_WEEK + gps_tow - leap_seconds
    else:
        t = gps_tow
    return Time.from_seconds(t)


def epoch_to_gps(stamp: Time, leap_seconds: int = DEFAULT_LEAP_SECONDS) -> tuple[int, float]:
    """Convert a UNIX timestamp to GPS week and time of week."""
    t = stamp.sec - GPS_TIME_BEG + stamp.nanosec * 1.0e-9 + leap_seconds
    week = math.floor(t / SEC_PER_WEEK)
    return week, t - week * SEC_PER_WEEK


@dataclass
class GpsClock:
    """Leap-second offset and first observed GPS week for a receiver session."""

    leap_seconds: int = DEFAULT_LEAP_SECONDS
    initial_week: int = -1

    def to_epoch(self, gps_week: int, gps_tow: float) -> Time:
        return gps_to_epoch(gps_week, gps_tow, self.leap_seconds)

    def from_epoch(self, stamp: Time) -> tuple[int, float]:
        return epoch_to_gps(stamp, self.leap_seconds)

    def note_week(self, gps_week: int) -> None:
        """Remember the first positive GPS week seen."""
        if self.initial_week < 0 and gps_week > 0:
            self.initial_week = gps_week


def quat_prod(q1: Quaternion, q2: Quaternion) -> Quaternion:
    """Return the quaternion product q1 * q2."""
    return Quaternion(
        x=q1.w * q2.x + q1.x * q2.w + q1.y * q2.z - q1.z * q2.y,
        y=q1.w * q2.y + q1.y * q2.w + q1.z * q2.x - q1.x * q2.z,
        z=q1.w * q2.z + q1.z * q2.w + q1.x * q2.y - q1.y * q2.x,
        w=q1.w * q2.w - q1.x * q2.x - q1.y * q2.y - q1.z * q2.z,
    )


def quat_ned_to_enu() -> Quaternion:
    """Quaternion of the transformation from NED to ENU."""
    return Quaternion(x=M_SQRT1_2, y=M_SQRT1_2, z=0.0, w=0.0)


def geodetic_to_ecef(lat: float, lon: float, alt: float) -> Vec3:
    """Convert latitude, longitude (rad) and ellipsoidal height (m) to ECEF."""
    clat, slat = math.cos(lat), math.sin(lat)
    clon, slon = math.cos(lon), math.sin(lon)
    rn = WGS84_A / math.sqrt(1.0 - WGS84_E2 * slat * slat)
    r = rn + alt
    return (r * clat * clon, r * clat * slon, (rn * (1.0 - WGS84_E2) + alt) * slat)


def ecef_to_geodetic(r: Vec3) -> Vec3:
    """Convert ECEF coordinates to latitude, longitude (rad) and height (m)."""
    x, y, z = r
    lon = math.atan2(y, x)
    p = math.hypot(x, y)
    polar_cap = p < 1.0e5

    alt = 0.0
    lat = math.atan2(z, (1.0 - WGS84_E2) * p)
    delta = 1.0e3
    while delta > 0.001:
        slat, clat = math.sin(lat), math.cos(lat)
        rn = WGS84_A / math.sqrt(1.0 - WGS84_E2 * slat * slat)
        if polar_cap:
            p0 = rn * clat
            z0 = rn * (1.0 - WGS84_E2) * slat
            h = math.hypot(p - p0, z - z0)
            if abs(z) < abs(z0):
                h = -h
        else:
            h = p / clat - rn
        delta = abs(h - alt)
        alt = h
        lat = math.atan2(z, p * (1.0 - WGS84_E2 * rn / (rn + h)))
    return lat, lon, alt


def dcm_ecef_to_ned(lat: float, lon: float) -> Matrix3:
    """Direction cosine matrix from ECEF to the local NED frame."""
    clat, slat = math.cos(lat), math.sin(lat)
    clon, slon = math.cos(lon), math.sin(lon)
    return (
        (-slat * clon, -slat * slon, clat),
        (-slon, clon, 0.0),
        (-clat * clon, -clat * slon, -slat),
    )


@dataclass(frozen=True)
class Origin:
    """Local NED origin: its ECEF position and ECEF-to-NED rotation."""

    r: Vec3
    cen: Matrix3

    @classmethod
    def from_geodetic(cls, lat: float, lon: float, alt: float) -> "Origin":
        return cls(geodetic_to_ecef(lat, lon, alt), dcm_ecef_to_ned(lat, lon))

    def to_ned(self, lat: float, lon: float, alt: float) -> Vec3:
        """North, east, down offset (m) of a geodetic point from this origin."""
        dr = [a - b for a, b in zip(geodetic_to_ecef(lat, lon, alt), self.r)]
        north, east, down = (sum(c * d for c, d in zip(row, dr)) for row in self.cen)
        return north, east, down


@dataclass(frozen=True)
class FrameTransform:
    """Seven-parameter similarity transform between ECEF frames."""

    trans: Vec3
    rot: Vec3
    scale: float

    def apply(self, x: Vec3) -> Vec3:
        s = 1.0 + self.scale
        rx, ry, rz = self.rot
        rows = ((s, -rz, ry), (rz, s, -rx), (-ry, rx, s))
        out = (sum(t * v for t, v in zip(row, x)) + d for row, d in zip(rows, self.trans))
        a, b, c = out
        return a, b, c


def nad83_transform(week: int, tow: float) -> FrameTransform:
    """Time-dependent WGS84 to NAD83 transform at the given GPS time."""
    epoch = 1980.0 + (5.0 + week * 7.0 + tow / 86400.0) / 365.25
    dy = epoch - 2000.0
    return FrameTransform(
        trans=(0.9958 + 0.1e-3 * dy, -1.9046 - 0.5e-3 * dy, -0.5461 - 3.2e-3 * dy),
        rot=(
            (25.9496 + 0.0532 * dy) * MAS_TO_RAD,
            (7.4231 - 0.7423 * dy) * MAS_TO_RAD,
            (11.6252 - 0.0116 * dy) * MAS_TO_RAD,
        ),
        scale=2.92e-9 + 0.09e-9 * dy,
    )


def convert_to_nad83(week: int, tow: float, lat: float, lon: float, alt: float) -> Vec3:
    """Transform a WGS84 geodetic position to NAD83 at the given GPS time."""
    r = geodetic_to_ecef(lat, lon, alt)
    return ecef_to_geodetic(nad83_transform(week, tow).apply(r))