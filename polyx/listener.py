"""Human-readable reports of the messages the receiver node publishes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from polyx.geodesy import RAD_TO_DEG
from polyx.messages import (
    CompactNav,
    CorrectedImu,
    EulerAttitude,
    Geoid,
    Kalman,
    RawImu,
    SolutionStatus,
    Time,
    TimeSync,
)


def _vec(values, spec: str) -> str:
    return "[" + ",".join(format(v, spec) for v in values) + "]"


def format_kalman(msg: Kalman) -> str:
    """Report of a Kalman filter navigation message; angles of position in degrees."""
    return "\n".join(
        [
            f"SystemTime={msg.system_time:f}",
            f"GPSTime={msg.gps_time:f}",
            f"Latitude={msg.latitude * RAD_TO_DEG:.9f}",
            f"Longitude={msg.longitude * RAD_TO_DEG:.9f}",
            f"EllipsoidalHeight={msg.ellipsoidal_height:f}",
            f"VelocityNorth={msg.velocity_north:f}",
            f"VelocityEast={msg.velocity_east:f}",
            f"VelocityDown={msg.velocity_down:f}",
            f"Roll={msg.roll:f}",
            f"Pitch={msg.pitch:f}",
            f"Heading={msg.heading:f}",
            f"PositionMode={msg.position_mode:d}",
            f"VelocityMode={msg.velocity_mode:d}",
            f"AttitudeStatus={msg.attitude_status:d}",
        ]
    )


def format_raw_imu(msg: RawImu) -> str:
    """Report of a scaled raw IMU message."""
    return "\n".join(
        [
            f"SystemTime={msg.system_time:f}",
            f"Acceleration={_vec(msg.acceleration, 'f')}",
            f"RotationRate={_vec(msg.rotation_rate, 'f')}",
        ]
    )


def format_solution_status(msg: SolutionStatus) -> str:
    """Report of a solution status message."""
    return "\n".join(
        [
            f"system_time={msg.system_time:f}",
            f"GpsWeekNumber={msg.gps_week_number:d}",
            f"NumberOfSVs={msg.number_of_svs:d}",
            f"ProcessingMode={msg.processing_mode:d}",
            f"GpsTimeWeek={msg.gps_time_week:f}",
            f"PositionRMS={_vec(msg.position_rms, 'f')}",
            f"VelocityRMS={_vec(msg.velocity_rms, 'f')}",
            f"AttitudeRMS={_vec(msg.attitude_rms, 'f')}",
        ]
    )


def format_compact_nav(msg: CompactNav) -> str:
    """Report of a CompactNav message; latitude and longitude in degrees."""
    return "\n".join(
        [
            f"GpsTimeOfWeek={msg.gps_time_week:.3f}",
            f"Latitude={msg.latitude * RAD_TO_DEG:.9f}",
            f"Longitude={msg.longitude * RAD_TO_DEG:.9f}",
            f"Altitude={msg.altitude:.3f}",
            f"VelocityNED={_vec(msg.velocity_ned, '.3f')}",
            f"Attitude={_vec(msg.quaternion, 'e')}",
            f"Acceleration={_vec(msg.acceleration, 'e')}",
            f"RotationRate={_vec(msg.rotation_rate, 'e')}",
            f"PositionRMS={_vec(msg.position_rms, '.3f')}",
            f"VelocityRMS={_vec(msg.velocity_rms, '.3f')}",
            f"AttitudeRMS={_vec(msg.attitude_rms, '.3f')}",
            f"GpsWeekNumber={msg.gps_week_number:d}",
            f"Alignment={msg.alignment:d}",
        ]
    )


def format_time_sync(msg: TimeSync) -> str:
    """Report of a time synchronisation message."""
    return "\n".join(
        [
            f"System Computer Time={msg.system_computer_time:f}",
            f"Bias with respect To GPS Time={msg.bias_to_gps_time:f}",
        ]
    )


def format_geoid(msg: Geoid) -> str:
    """Report of a geoid height message."""
    return "\n".join([f"GPSTime={msg.gps_time:f}", f"GeoidHeight={msg.geoid_height:f}"])


def format_corrected_imu(msg: CorrectedImu) -> str:
    """Report of a corrected IMU message."""
    return "\n".join(
        [
            f"GpsTimeWeek={msg.gps_time_week:f}",
            f"Acceleration={_vec(msg.acceleration, 'f')}",
            f"RotationRate={_vec(msg.rotation_rate, 'f')}",
            f"GpsWeekNumber={msg.gps_week_number:d}",
        ]
    )


def format_euler_attitude(msg: EulerAttitude) -> str:
    """Report of Euler angles, converted to degrees."""
    return "\n".join(
        [
            f"GpsTimeWeek={msg.gps_time_week:f}",
            f"roll={msg.roll * RAD_TO_DEG:f}",
            f"pitch={msg.pitch * RAD_TO_DEG:f}",
            f"heading={msg.heading * RAD_TO_DEG:f}",
        ]
    )


def format_stamped(name: str, stamp: Time) -> str:
    """Arrival notice and timestamp of a stamped standard message."""
    return (
        f">>> Received a {name} message:\n"
        f"time={stamp.sec:09d}:{stamp.nanosec:09d}"
    )


def _compact_nav_report(msg: CompactNav) -> str:
    return f"week={msg.gps_week_number:d}\n" + format_compact_nav(msg)


_REPORTS: dict[str, tuple[str, Callable[[Any], str]]] = {
    "polyx_Kalman": ("a Kalman Filter Navigation message", format_kalman),
    "polyx_rawIMU": ("a Scaled Raw IMU Data message", format_raw_imu),
    "polyx_solutionStatus": ("a Solution Status message", format_solution_status),
    "polyx_ICD": ("an CompactNav message", _compact_nav_report),
    "polyx_compactNav": ("an CompactNav message", _compact_nav_report),
    "polyx_EulerAttitude": ("an EulerAttitude message", format_euler_attitude),
    "polyx_timeSync": ("a Time Sync message", format_time_sync),
    "polyx_Geoid": ("a Geoid Height message", format_geoid),
    "polyx_correctedIMU": ("a Corrected IMU Data message", format_corrected_imu),
}

_STAMPED = {
    "current_pose": "geometry_msgs::PoseStamped",
    "current_velocity": "geometry_msgs::TwistStamped",
    "current_acceleration": "geometry_msgs::AccelStamped",
    "current_navsatfix": "sensor_msgs::NavSatFix",
    "current_imu": "sensor_msgs::Imu",
}


def format_message(topic: str, msg: Any) -> str:
    """Full report of a message received on a topic.

    Raises ValueError for a topic the listener does not follow.
    """
    if topic in _STAMPED:
        return format_stamped(_STAMPED[topic], msg.stamp)
    try:
        what, formatter = _REPORTS[topic]
    except KeyError:
        raise ValueError(f"unknown topic {topic!r}") from None
    return f">>> Received {what}:\n" + formatter(msg)