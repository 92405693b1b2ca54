import socket
import struct
import threading

from polyx.binary import frame_message
from polyx.geodesy import GpsClock
from polyx.messages import Kalman, LeapSeconds, Time, TimeSync
from polyx.nmea import nmea_checksum, parse_nmea_gga
from polyx.talker import OutputFlag, Talker, main

FIXED_NOW = Time(42, 7)


def _now():
    return FIXED_NOW


def _talker(output=None):
    if output is None:
        return Talker(now=_now)
    return Talker(output=output, now=_now)


KALMAN_VALUES = (1.5, 2.5, 0.5, 0.25, 100.0, 1.0, 2.0, 3.0, 0.1, 0.2, 0.3)


def _kalman_frame():
    payload = struct.pack("<11d3B", *KALMAN_VALUES, 1, 2, 3)
    return frame_message(5, 1, payload)


def _compact_nav_frame(lat_deg=45.0, lon_deg=10.0, week=2200, tow=1000.0, quat=(1.0, 0.0, 0.0, 0.0)):
    floats = (
        [100.0]
        + [1.0, 2.0, 3.0]
        + list(quat)
        + [0.5, 0.25, 9.75]
        + [0.0, 0.0, 0.0]
        + [1.0, 2.0, 3.0]
        + [0.5, 0.5, 0.5]
        + [0.0, 0.0, 0.0]
    )
    payload = struct.pack("<3d23fHB", tow, lat_deg, lon_deg, *floats, week, 1)
    return frame_message(5, 13, payload)


def _gga_sentence():
    body = "$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,"
    return next(
        f"{body}*{c:02X}" for c in range(256) if nmea_checksum(f"{body}*{c:02X}")
    )


def test_kalman_frame_is_published():
    pubs = _talker().handle_frame(_kalman_frame())
    assert pubs == [("polyx_Kalman", Kalman(*KALMAN_VALUES, 1, 2, 3))]


def test_bad_checksum_is_dropped():
    frame = bytearray(_kalman_frame())
    frame[-1] ^= 0xFF
    assert _talker().handle_frame(bytes(frame)) == []


def test_other_message_type_is_ignored():
    payload = struct.pack("<11d3B", *KALMAN_VALUES, 1, 2, 3)
    assert _talker().handle_frame(frame_message(6, 1, payload)) == []


def test_unknown_sub_id_is_ignored():
    assert _talker().handle_frame(frame_message(5, 99, b"\x00" * 8)) == []


def test_process_joins_chunks():
    talker = _talker()
    frame = _kalman_frame()
    assert talker.process(frame[:10]) == []
    pubs = talker.process(frame[10:])
    assert [topic for topic, _ in pubs] == ["polyx_Kalman"]


def test_gga_sentence_is_published():
    sentence = _gga_sentence()
    pubs = _talker().process(b"junk" + sentence.encode() + b"\r\n")
    assert pubs == [("polyx_nmeaGGA", parse_nmea_gga(sentence))]


def test_gga_with_bad_checksum_is_dropped():
    sentence = _gga_sentence()
    broken = sentence[:-2] + ("00" if sentence[-2:] != "00" else "01")
    assert _talker().process(broken.encode() + b"\r\n") == []


def test_compact_nav_publishes_all_outputs():
    pubs = _talker().handle_frame(_compact_nav_frame())
    assert [topic for topic, _ in pubs] == [
        "polyx_compactNav",
        "current_velocity",
        "current_acceleration",
        "current_navsatfix",
        "polyx_EulerAttitude",
        "current_imu",
        "current_pose",
    ]


def test_compact_nav_respects_output_mask():
    talker = _talker(OutputFlag.COMPACTNAV)
    pubs = talker.handle_frame(_compact_nav_frame())
    assert [topic for topic, _ in pubs] == ["polyx_compactNav"]
    assert talker.origin is not None


def test_output_can_change_between_frames():
    talker = _talker(0)
    assert talker.handle_frame(_compact_nav_frame()) == []
    talker.output = OutputFlag.TWIST
    assert [t for t, _ in talker.handle_frame(_compact_nav_frame())] == ["current_velocity"]


def test_pose_origin_is_first_position():
    talker = _talker(OutputFlag.POSE)
    (_, first), = talker.handle_frame(_compact_nav_frame(lat_deg=45.0))
    assert abs(first.position.x) < 1e-6
    assert abs(first.position.y) < 1e-6
    assert abs(first.position.z) < 1e-6
    (_, second), = talker.handle_frame(_compact_nav_frame(lat_deg=45.001))
    assert second.position.x > 100.0


def test_compact_nav_records_initial_week_and_gps_stamp():
    talker = _talker(OutputFlag.COMPACTNAV)
    (_, msg), = talker.handle_frame(_compact_nav_frame(week=2200, tow=1000.0))
    assert talker.clock.initial_week == 2200
    assert msg.stamp == talker.clock.to_epoch(2200, 1000.0)


def test_invalid_week_stamps_with_now():
    talker = _talker(OutputFlag.COMPACTNAV)
    (_, msg), = talker.handle_frame(_compact_nav_frame(week=0xFFFF))
    assert msg.stamp == FIXED_NOW


def test_time_stamp_before_sync_uses_now():
    assert _talker().time_stamp(100.0) == FIXED_NOW


def test_time_stamp_after_sync_uses_gps_time():
    talker = _talker(OutputFlag.COMPACTNAV)
    pubs = talker.handle_frame(frame_message(5, 16, struct.pack("<2d", 5.0, 2.0)))
    assert pubs == [("polyx_timeSync", TimeSync(5.0, 2.0))]
    talker.handle_frame(_compact_nav_frame(week=2200))
    assert talker.time_stamp(100.0) == talker.clock.to_epoch(2200, 98.0)


def test_raw_imu_is_stamped_from_system_time():
    talker = _talker(OutputFlag.COMPACTNAV)
    talker.handle_frame(frame_message(5, 16, struct.pack("<2d", 5.0, 2.0)))
    talker.handle_frame(_compact_nav_frame(week=2200))
    payload = struct.pack("<7d", 50.0, 0.0, 0.0, 9.75, 0.0, 0.0, 0.0)
    (topic, msg), = talker.handle_frame(frame_message(5, 8, payload))
    assert topic == "polyx_rawIMU"
    assert msg.stamp == talker.time_stamp(50.0)


def test_dmi_before_sync_uses_now():
    payload = struct.pack("<diB", 12.5, 321, 4)
    (topic, msg), = _talker().handle_frame(frame_message(5, 12, payload))
    assert topic == "polyx_dmi"
    assert (msg.pulse_count, msg.id, msg.stamp) == (321, 4, FIXED_NOW)


def test_leap_seconds_update_clock():
    clock = GpsClock()
    talker = Talker(clock=clock, now=_now)
    pubs = talker.handle_frame(frame_message(5, 24, bytes([17])))
    assert pubs == [("polyx_leapSeconds", LeapSeconds(17))]
    assert clock.leap_seconds == 17


def _attitude_imu_frame():
    payload = struct.pack(
        "<d4d3f3d3dH", 10.0, 0.0, 0.0, 0.0, 1.0, 0.5, 0.5, 0.5,
        0.1, 0.2, 0.3, 1.0, 2.0, 3.0, 0xFFFF,
    )
    return frame_message(5, 59, payload)


def test_attitude_imu_published_with_imu_output():
    (topic, msg), = _talker(OutputFlag.IMU).handle_frame(_attitude_imu_frame())
    assert topic == "attitude_imu"
    assert msg.frame_id == "imu_link_ned"
    assert msg.stamp == FIXED_NOW


def test_attitude_imu_suppressed_without_imu_output():
    assert _talker(OutputFlag.POSE).handle_frame(_attitude_imu_frame()) == []


def test_main_reports_frames_from_ethernet(capsys):
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]

    def serve():
        conn, _ = server.accept()
        with conn:
            conn.sendall(_kalman_frame())

    thread = threading.Thread(target=serve)
    thread.start()
    try:
        rc = main(["--eth-enable", "--eth-server", "127.0.0.1", "--eth-port", str(port)])
    finally:
        thread.join(timeout=5)
        server.close()
    assert rc == 0
    assert "Received a Kalman Filter Navigation message" in capsys.readouterr().out


def test_main_fails_when_ethernet_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    rc = main(["--eth-enable", "--eth-server", "127.0.0.1", "--eth-port", str(port)])
    assert rc == 1