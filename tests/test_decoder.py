import math
import struct

import pytest

from polyx.binary import frame_message
from polyx.convert import assign_diag_cov3
from polyx.decoder import (
    DecodeState,
    StreamDecoder,
    parse_attitude_imu,
    parse_compact_nav,
)
from polyx.geodesy import GpsClock, RefFrameTrans, convert_to_nad83, gps_to_epoch
from polyx.messages import Time


def _compact_nav_frame(week=2100, tow=345600.5, lat_deg=37.5, lon_deg=-122.25, alt=12.5):
    floats = [alt]
    floats += [1.0, -2.0, 0.5]  # velocity
    floats += [1.0, 0.0, 0.0, 0.0]  # quaternion w, x, y, z
    floats += [0.25, 0.5, -9.75]  # acceleration
    floats += [90.0, -45.0, 180.0]  # rotation rate, deg/s
    floats += [0.5, 0.75, 1.5]  # position rms
    floats += [0.125, 0.25, 0.375]  # velocity rms
    floats += [2.0, 4.0, 8.0]  # attitude rms, deg
    payload = struct.pack("<3d23fHB", tow, lat_deg, lon_deg, *floats, week, 3)
    return frame_message(5, 13, payload)


def _attitude_imu_frame(week=2100, gps_time=1000.0):
    payload = struct.pack(
        "<d4d3f3d3dH",
        gps_time,
        0.1, 0.2, 0.3, 0.9,
        0.5, 0.25, 1.5,
        0.01, 0.02, 0.03,
        1.0, 2.0, 3.0,
        week,
    )
    return frame_message(5, 59, payload)


def test_single_binary_frame_is_returned():
    frame = frame_message(5, 16, bytes(16))
    assert StreamDecoder().feed(frame) == [frame]


def test_noise_before_frame_is_skipped():
    frame = frame_message(5, 22, b"\x01\x02\x03")
    assert StreamDecoder().feed(b"\x00\x13\xaf\x55" + frame) == [frame]


def test_two_frames_in_one_chunk():
    a = frame_message(5, 16, bytes(16))
    b = frame_message(5, 24, b"\x12")
    assert StreamDecoder().feed(a + b) == [a, b]


def test_frame_split_across_feeds():
    frame = frame_message(5, 1, bytes(range(40)))
    decoder = StreamDecoder()
    assert decoder.feed(frame[:7]) == []
    assert decoder.state is DecodeState.MSG
    assert decoder.feed(frame[7:]) == [frame]
    assert decoder.state is DecodeState.SYNC


def test_bytewise_feeding_matches_whole():
    frames = [frame_message(5, n, bytes([n]) * n) for n in (1, 2, 9)]
    stream = b"".join(frames)
    decoder = StreamDecoder()
    collected = [f for i in range(len(stream)) for f in decoder.feed(stream[i : i + 1])]
    assert collected == frames


def test_nmea_sentence_returned_with_checksum_chars():
    sentence = b"$GPGGA,123519,4807.038,N*4F"
    assert StreamDecoder().feed(b"\r\n" + sentence + b"\r\n") == [sentence]


def test_nmea_with_control_character_is_dropped():
    decoder = StreamDecoder()
    assert decoder.feed(b"$GPGGA,12\x0135*00") == []
    assert decoder.state is DecodeState.SYNC


def test_oversized_length_is_rejected_and_stream_recovers():
    decoder = StreamDecoder(max_len=32)
    bad = frame_message(5, 1, bytes(40))
    good = frame_message(5, 2, bytes(4))
    assert decoder.feed(bad[:6]) == []
    assert decoder.state is DecodeState.SYNC
    assert decoder.feed(bad[6:] + good) == [good]


def test_frame_longer_than_buffer_overflows():
    decoder = StreamDecoder(max_len=16)
    frame = frame_message(5, 1, bytes(10))
    assert decoder.feed(frame) == []
    assert decoder.state is DecodeState.SYNC


def test_compact_nav_decodes_fields():
    clock = GpsClock()
    msg = parse_compact_nav(_compact_nav_frame(), clock)
    assert msg.latitude == pytest.approx(math.radians(37.5))
    assert msg.longitude == pytest.approx(math.radians(-122.25))
    assert msg.altitude == 12.5
    assert msg.velocity_ned == (1.0, -2.0, 0.5)
    assert msg.quaternion == (1.0, 0.0, 0.0, 0.0)
    assert msg.rotation_rate == pytest.approx(tuple(math.radians(v) for v in (90.0, -45.0, 180.0)))
    assert msg.attitude_rms == pytest.approx(tuple(math.radians(v) for v in (2.0, 4.0, 8.0)))
    assert msg.position_rms == (0.5, 0.75, 1.5)
    assert msg.gps_week_number == 2100
    assert msg.alignment == 3


def test_compact_nav_stamp_and_initial_week():
    clock = GpsClock(leap_seconds=18)
    msg = parse_compact_nav(_compact_nav_frame(week=2100, tow=345600.5), clock)
    assert msg.stamp == clock.to_epoch(2100, 345600.5)
    assert clock.initial_week == 2100
    parse_compact_nav(_compact_nav_frame(week=2101), clock)
    assert clock.initial_week == 2100


def test_compact_nav_invalid_week_uses_now():
    fixed = Time(sec=42, nanosec=7)
    msg = parse_compact_nav(_compact_nav_frame(week=0xFFFF), GpsClock(), now=lambda: fixed)
    assert msg.stamp == fixed


def test_compact_nav_nad83_transform():
    clock = GpsClock()
    plain = parse_compact_nav(_compact_nav_frame(), clock)
    moved = parse_compact_nav(_compact_nav_frame(), clock, RefFrameTrans.WGS84_TO_NAD83)
    expected = convert_to_nad83(2100, 345600.5, plain.latitude, plain.longitude, plain.altitude)
    assert (moved.latitude, moved.longitude, moved.altitude) == pytest.approx(expected)


def test_compact_nav_truncated_raises():
    with pytest.raises(ValueError):
        parse_compact_nav(_compact_nav_frame()[:30], GpsClock())


def test_attitude_imu_fields():
    imu = parse_attitude_imu(_attitude_imu_frame())
    assert imu.frame_id == "imu_link_ned"
    assert (imu.orientation.x, imu.orientation.y, imu.orientation.z, imu.orientation.w) == (
        0.1, 0.2, 0.3, 0.9,
    )
    assert imu.orientation_covariance == assign_diag_cov3((0.5, 0.25, 1.5))
    assert (imu.angular_velocity.x, imu.angular_velocity.y, imu.angular_velocity.z) == (0.01, 0.02, 0.03)
    assert (imu.linear_acceleration.x, imu.linear_acceleration.z) == (1.0, 3.0)
    assert imu.angular_velocity_covariance[0] == -1.0
    assert imu.linear_acceleration_covariance[0] == -1.0


def test_attitude_imu_stamp():
    imu = parse_attitude_imu(_attitude_imu_frame(week=2100, gps_time=1000.0))
    assert imu.stamp == gps_to_epoch(2100, 1000.0)
    fixed = Time(sec=5, nanosec=0)
    assert parse_attitude_imu(_attitude_imu_frame(week=0xFFFF), now=lambda: fixed).stamp == fixed


def test_attitude_imu_truncated_raises():
    with pytest.raises(ValueError):
        parse_attitude_imu(_attitude_imu_frame()[:20])