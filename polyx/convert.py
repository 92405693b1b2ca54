"""Conversions from CompactNav navigation messages to standard message records."""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence

from polyx.geodesy import RAD_TO_DEG, Origin
from polyx.messages import (
    AccelStamped,
    CompactNav,
    EulerAttitude,
    Imu,
    NavSatFix,
    PoseStamped,
    Quaternion,
    TwistStamped,
    Vector3,
)


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def assign_diag_cov3(rms: Sequence[float]) -> tuple[float, ...]:
    """Row-major 3x3 covariance with the squared RMS values on the diagonal."""
    cov = [0.0] * 9
    for k, value in enumerate(rms[:3]):
        cov[4 * k] = value * value
    return tuple(cov)


def assign_diag_cov6(rms1: Sequence[float], rms2: Sequence[float]) -> tuple[float, ...]:
    """Row-major 6x6 covariance whose diagonal holds rms1 then rms2 squared."""
    cov = [0.0] * 36
    for k, value in enumerate([*rms1[:3], *rms2[:3]]):
        cov[7 * k] = value * value
    return tuple(cov)


def _body_to_ned(msg: CompactNav) -> Quaternion:
    w, x, y, z = msg.quaternion
    return Quaternion(x=x, y=y, z=z, w=w)


def to_nav_sat_fix(msg: CompactNav) -> NavSatFix:
    """Position fix in degrees with diagonal position covariance."""
    return NavSatFix(
        stamp=msg.stamp,
        status=NavSatFix.STATUS_FIX,
        service=NavSatFix.SERVICE_GPS | NavSatFix.SERVICE_GLONASS,
        latitude=msg.latitude * RAD_TO_DEG,
        longitude=msg.longitude * RAD_TO_DEG,
        altitude=msg.altitude,
        position_covariance=assign_diag_cov3(msg.position_rms),
        position_covariance_type=NavSatFix.COVARIANCE_TYPE_DIAGONAL_KNOWN,
    )


def to_imu(msg: CompactNav) -> Imu:
    """IMU record: body-to-NED orientation, body rates and accelerations."""
    unknown = (-1.0,) + (0.0,) * 8
    return Imu(
        stamp=msg.stamp,
        orientation=_body_to_ned(msg),
        orientation_covariance=assign_diag_cov3(msg.attitude_rms),
        angular_velocity=Vector3(*msg.rotation_rate),
        angular_velocity_covariance=unknown,
        linear_acceleration=Vector3(*msg.acceleration),
        linear_acceleration_covariance=unknown,
    )


def to_twist_stamped(msg: CompactNav) -> TwistStamped:
    """NED velocity with body rotation rates."""
    return TwistStamped(
        stamp=msg.stamp,
        linear=Vector3(*msg.velocity_ned),
        angular=Vector3(*msg.rotation_rate),
    )


def to_accel_stamped(msg: CompactNav) -> AccelStamped:
    """Linear acceleration; angular acceleration is unknown and left zero."""
    return AccelStamped(stamp=msg.stamp, linear=Vector3(*msg.acceleration))


def set_origin(msg: CompactNav) -> Origin:
    """Local NED origin at the message's position."""
    return Origin.from_geodetic(msg.latitude, msg.longitude, msg.altitude)


def to_pose_stamped(msg: CompactNav, origin: Origin) -> PoseStamped:
    """Pose as north/east/down offset from the origin with body-to-NED orientation."""
    north, east, down = origin.to_ned(msg.latitude, msg.longitude, msg.altitude)
    return PoseStamped(
        stamp=msg.stamp,
        position=Vector3(north, east, down),
        orientation=_body_to_ned(msg),
    )


def euler_attitude(msg: CompactNav) -> EulerAttitude | None:
    """Roll, pitch and heading (rad) from the attitude quaternion.

    Returns None near pitch of +/-90 degrees, where roll and heading are undefined.
    """
    a, b, c, d = msg.quaternion
    q0, q1, q2, q3 = (_f32(v * v) for v in (a, b, c, d))
    c31 = _f32(2.0 * (b * d - a * c))
    c32 = _f32(2.0 * (c * d + a * b))
    c33 = _f32(q0 - q1 - q2 + q3)
    if abs(c31) >= 0.999:
        return None
    c11 = _f32(q0 + q1 - q2 - q3)
    c21 = _f32(2.0 * (b * c + a * d))
    return EulerAttitude(
        gps_time_week=msg.gps_time_week,
        roll=math.atan2(c32, c33),
        pitch=math.atan(-c31 / math.sqrt(c32 * c32 + c33 * c33)),
        heading=math.atan2(c21, c11),
    )