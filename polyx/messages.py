"""Message records produced by the receiver decoder and its converters."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar

Vec3 = tuple[float, float, float]
Cov9 = tuple[float, float, float, float, float, float, float, float, float]

_ZERO3: Vec3 = (0.0, 0.0, 0.0)
_ZERO9: Cov9 = (0.0,) * 9  # type: ignore[assignment]


@dataclass(order=True)
class Time:
    """A timestamp split into whole seconds and nanoseconds."""

    sec: int = 0
    nanosec: int = 0

    def to_seconds(self) -> float:
        """Return the timestamp as fractional seconds."""
        return self.sec + self.nanosec * 1.0e-9

    @classmethod
    def from_seconds(cls, seconds: float) -> "Time":
        """Build a timestamp from fractional seconds, flooring both parts."""
        sec = math.floor(seconds)
        return cls(sec, math.floor((seconds - sec) * 1.0e9))


@dataclass
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


@dataclass
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Kalman:
    system_time: float = 0.0
    gps_time: float = 0.0
    latitude: float = 0.0
    longitude: float = 0.0
    ellipsoidal_height: float = 0.0
    velocity_north: float = 0.0
    velocity_east: float = 0.0
    velocity_down: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    heading: float = 0.0
    position_mode: int = 0
    velocity_mode: int = 0
    attitude_status: int = 0


@dataclass
class GnssHmr:
    gps_time_of_week: float = 0.0
    gps_week_number: int = 0
    heading_deg: float = 0.0
    heading_std_deg: float = 0.0
    baseline_length: float = 0.0
    pitch_deg: float = 0.0
    pitch_std_deg: float = 0.0


@dataclass
class RawImu:
    stamp: Time = field(default_factory=Time)
    system_time: float = 0.0
    acceleration: Vec3 = _ZERO3
    rotation_rate: Vec3 = _ZERO3


@dataclass
class SolutionStatus:
    system_time: float = 0.0
    number_of_svs: int = 0
    processing_mode: int = 0
    gps_week_number: int = 0
    gps_time_week: float = 0.0
    position_rms: Vec3 = _ZERO3
    velocity_rms: Vec3 = _ZERO3
    attitude_rms: Vec3 = _ZERO3


@dataclass
class CompactNav:
    stamp: Time = field(default_factory=Time)
    gps_time_week: float = 0.0
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    velocity_ned: Vec3 = _ZERO3
    quaternion: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    acceleration: Vec3 = _ZERO3
    rotation_rate: Vec3 = _ZERO3
    position_rms: Vec3 = _ZERO3
    velocity_rms: Vec3 = _ZERO3
    attitude_rms: Vec3 = _ZERO3
    gps_week_number: int = 0
    alignment: int = 0


@dataclass
class EulerAttitude:
    gps_time_week: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    heading: float = 0.0


@dataclass
class TimeSync:
    system_computer_time: float = 0.0
    bias_to_gps_time: float = 0.0


@dataclass
class Geoid:
    gps_time: float = 0.0
    geoid_height: float = 0.0


@dataclass
class CorrectedImu:
    gps_time_week: float = 0.0
    acceleration: Vec3 = _ZERO3
    rotation_rate: Vec3 = _ZERO3
    gps_week_number: int = 0


@dataclass
class LeapSeconds:
    leap_seconds: int = 0


@dataclass
class Dmi:
    stamp: Time = field(default_factory=Time)
    system_time: float = 0.0
    pulse_count: int = 0
    id: int = 0


@dataclass
class NmeaGGA:
    utc_hour: int = 0
    utc_minute: int = 0
    utc_millisec: int = 0
    latitude: float = 0.0
    longitude: float = 0.0
    fix_quality: int = 0
    n_sv_used: int = 0
    hdop: float = 0.0
    orthometric_height: float = 0.0
    geoid_undulation: float = 0.0
    differential_age: float = 0.0
    ref_station_id: int = 0


@dataclass
class NavSatFix:
    STATUS_FIX: ClassVar[int] = 0
    SERVICE_GPS: ClassVar[int] = 1
    SERVICE_GLONASS: ClassVar[int] = 2
    COVARIANCE_TYPE_UNKNOWN: ClassVar[int] = 0
    COVARIANCE_TYPE_DIAGONAL_KNOWN: ClassVar[int] = 2

    stamp: Time = field(default_factory=Time)
    status: int = 0
    service: int = 0
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    position_covariance: Cov9 = _ZERO9
    position_covariance_type: int = 0


@dataclass
class Imu:
    stamp: Time = field(default_factory=Time)
    frame_id: str = ""
    orientation: Quaternion = field(default_factory=Quaternion)
    orientation_covariance: Cov9 = _ZERO9
    angular_velocity: Vector3 = field(default_factory=Vector3)
    angular_velocity_covariance: Cov9 = _ZERO9
    linear_acceleration: Vector3 = field(default_factory=Vector3)
    linear_acceleration_covariance: Cov9 = _ZERO9


@dataclass
class TwistStamped:
    stamp: Time = field(default_factory=Time)
    linear: Vector3 = field(default_factory=Vector3)
    angular: Vector3 = field(default_factory=Vector3)


@dataclass
class AccelStamped:
    stamp: Time = field(default_factory=Time)
    linear: Vector3 = field(default_factory=Vector3)
    angular: Vector3 = field(default_factory=Vector3)


@dataclass
class PoseStamped:
    stamp: Time = field(default_factory=Time)
    position: Vector3 = field(default_factory=Vector3)
    orientation: Quaternion = field(default_factory=Quaternion)