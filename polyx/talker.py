"""Receiver node: turns the receiver's byte stream into published messages."""

from __future__ import annotations

import argparse
import enum
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from polyx.binary import (
    ChecksumError,
    check_message_type,
    parse_corrected_imu,
    parse_dmi,
    parse_geoid,
    parse_gnss_hmr,
    parse_kalman,
    parse_leap_seconds,
    parse_raw_imu,
    parse_solution_status,
    parse_time_sync,
)
from polyx.convert import (
    euler_attitude,
    set_origin,
    to_accel_stamped,
    to_imu,
    to_nav_sat_fix,
    to_pose_stamped,
    to_twist_stamped,
)
from polyx.decoder import MAX_MSG_LEN, StreamDecoder, parse_attitude_imu, parse_compact_nav
from polyx.geodesy import GpsClock, Origin, RefFrameTrans
from polyx.listener import format_message
from polyx.messages import Time, TimeSync
from polyx.nmea import nmea_checksum, parse_nmea_gga
from polyx.transport import (
    DEFAULT_BAUD,
    DEFAULT_ETH_PORT,
    DEFAULT_SERIAL_PORT,
    DEFAULT_SERVER,
    TransportError,
    connect_ethernet,
    open_serial,
    read_chunks,
)

log = logging.getLogger(__name__)

ICD_TYPE = 5
_SERIAL_RETRY_WAIT = 0.2

Publication = tuple[str, Any]


class OutputFlag(enum.IntFlag):
    """Selects which messages derived from CompactNav frames are published."""

    COMPACTNAV = 0x01
    POSE = 0x02
    TWIST = 0x04
    ACCEL = 0x08
    NAVSATFIX = 0x10
    IMU = 0x20
    GEOPOSE = 0x40
    EULER_ATT = 0x80


DEFAULT_OUTPUT = (
    OutputFlag.COMPACTNAV
    | OutputFlag.GEOPOSE
    | OutputFlag.TWIST
    | OutputFlag.ACCEL
    | OutputFlag.NAVSATFIX
    | OutputFlag.IMU
    | OutputFlag.EULER_ATT
    | OutputFlag.POSE
)


def _system_now() -> Time:
    return Time.from_seconds(time.time())


class Talker:
    """Decodes receiver output and yields (topic, message) publications."""

    def __init__(
        self,
        output: int = DEFAULT_OUTPUT,
        frame_trans: RefFrameTrans = RefFrameTrans.NO_FRAME_TRANS,
        clock: GpsClock | None = None,
        now: Callable[[], Time] | None = None,
    ) -> None:
        self.output = int(output)
        self.frame_trans = frame_trans
        self.clock = clock if clock is not None else GpsClock()
        self.now = now or _system_now
        self.time_sync = TimeSync()
        self.origin: Origin | None = None
        self.decoder = StreamDecoder(MAX_MSG_LEN)
        self._handlers: dict[int, Callable[[bytes], list[Publication]]] = {
            1: self._kalman,
            8: self._raw_imu,
            9: self._solution_status,
            12: self._dmi,
            13: self._compact_nav,
            14: self._gnss_hmr,
            16: self._time_sync,
            22: self._geoid,
            23: self._corrected_imu,
            24: self._leap_seconds,
            59: self._attitude_imu,
        }

    def time_stamp(self, t: float) -> Time:
        """Stamp for a receiver system time, or the current time before sync."""
        if self.clock.initial_week > 0 and self.time_sync.system_computer_time:
            t_gps = t - self.time_sync.bias_to_gps_time
            return self.clock.to_epoch(self.clock.initial_week, t_gps)
        return self.now()

    def process(self, data: bytes | bytearray | memoryview) -> list[Publication]:
        """Feed raw bytes and return the publications of every completed frame."""
        publications: list[Publication] = []
        for frame in self.decoder.feed(data):
            publications.extend(self.handle_frame(frame))
        return publications

    def handle_frame(self, frame: bytes | bytearray | memoryview) -> list[Publication]:
        """Decode one whole frame or NMEA sentence into publications."""
        frame = bytes(frame)
        if frame[:1] == b"$":
            return self._nmea(frame)
        try:
            msg_type = check_message_type(frame)
        except ChecksumError as exc:
            log.warning("invalid message: %s", exc)
            return []
        if msg_type != ICD_TYPE:
            return []
        handler = self._handlers.get(frame[3])
        return handler(frame) if handler else []

    def _nmea(self, frame: bytes) -> list[Publication]:
        if not nmea_checksum(frame):
            log.warning("NMEA checksum failure")
            return []
        if frame[3:7] == b"GGA,":
            topic = "polyx_nmeaGGA"
        elif frame[3:8] == b"GGA2,":
            topic = "polyx_nmeaGGA2"
        else:
            return []
        try:
            return [(topic, parse_nmea_gga(frame))]
        except ValueError as exc:
            log.warning("malformed GGA sentence: %s", exc)
            return []

    def _kalman(self, frame: bytes) -> list[Publication]:
        return [("polyx_Kalman", parse_kalman(frame))]

    def _raw_imu(self, frame: bytes) -> list[Publication]:
        msg = parse_raw_imu(frame)
        return [("polyx_rawIMU", replace(msg, stamp=self.time_stamp(msg.system_time)))]

    def _solution_status(self, frame: bytes) -> list[Publication]:
        return [("polyx_solutionStatus", parse_solution_status(frame))]

    def _dmi(self, frame: bytes) -> list[Publication]:
        msg = parse_dmi(frame)
        return [("polyx_dmi", replace(msg, stamp=self.time_stamp(msg.system_time)))]

    def _compact_nav(self, frame: bytes) -> list[Publication]:
        msg = parse_compact_nav(frame, self.clock, self.frame_trans, self.now)
        out = self.output
        publications: list[Publication] = []
        if out & OutputFlag.COMPACTNAV:
            publications.append(("polyx_compactNav", msg))
        if out & OutputFlag.TWIST:
            publications.append(("current_velocity", to_twist_stamped(msg)))
        if out & OutputFlag.ACCEL:
            publications.append(("current_acceleration", to_accel_stamped(msg)))
        if out & OutputFlag.NAVSATFIX:
            publications.append(("current_navsatfix", to_nav_sat_fix(msg)))
        if out & OutputFlag.EULER_ATT:
            attitude = euler_attitude(msg)
            if attitude is not None:
                publications.append(("polyx_EulerAttitude", attitude))
        if out & OutputFlag.IMU:
            publications.append(("current_imu", to_imu(msg)))
        if self.origin is None:
            self.origin = set_origin(msg)
        if out & OutputFlag.POSE:
            publications.append(("current_pose", to_pose_stamped(msg, self.origin)))
        return publications

    def _gnss_hmr(self, frame: bytes) -> list[Publication]:
        return [("polyx_gnssHmr", parse_gnss_hmr(frame))]

    def _time_sync(self, frame: bytes) -> list[Publication]:
        self.time_sync = parse_time_sync(frame)
        return [("polyx_timeSync", self.time_sync)]

    def _geoid(self, frame: bytes) -> list[Publication]:
        return [("polyx_Geoid", parse_geoid(frame))]

    def _corrected_imu(self, frame: bytes) -> list[Publication]:
        return [("polyx_correctedIMU", parse_corrected_imu(frame))]

    def _leap_seconds(self, frame: bytes) -> list[Publication]:
        return [("polyx_leapSeconds", parse_leap_seconds(frame, self.clock))]

    def _attitude_imu(self, frame: bytes) -> list[Publication]:
        if not self.output & OutputFlag.IMU:
            return []
        return [("attitude_imu", parse_attitude_imu(frame, self.now))]


def _report(publications: Iterable[Publication]) -> None:
    for topic, msg in publications:
        try:
            text = format_message(topic, msg)
        except ValueError:
            text = f">>> {topic}: {msg}"
        print(text, flush=True)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="polyx-talker",
        description="Decode receiver output from a serial port or TCP link.",
    )
    parser.add_argument("--eth-enable", action="store_true", help="read from TCP instead of serial")
    parser.add_argument("--eth-server", default=DEFAULT_SERVER)
    parser.add_argument("--eth-port", default=DEFAULT_ETH_PORT)
    parser.add_argument("--port", default=DEFAULT_SERIAL_PORT, help="serial device or pyserial URL")
    parser.add_argument("--baud", type=int, default=DEFAULT_BAUD)
    parser.add_argument(
        "--output",
        type=lambda s: int(s, 0),
        default=int(DEFAULT_OUTPUT),
        help="bit mask of derived messages to publish",
    )
    parser.add_argument("--nad83", action="store_true", help="transform CompactNav positions to NAD83")
    return parser.parse_args(argv)


def _run_ethernet(talker: Talker, args: argparse.Namespace) -> int:
    try:
        sock = connect_ethernet(args.eth_server, args.eth_port)
    except TransportError as exc:
        log.critical("connectEthernet Failure! %s", exc)
        return 1
    log.info("connectEthernet Success!")
    with sock:
        try:
            for chunk in read_chunks(sock):
                _report(talker.process(chunk))
        except TransportError as exc:
            log.error("%s", exc)
            return 1
    return 0


def _run_serial(talker: Talker, args: argparse.Namespace) -> int:
    while True:
        try:
            link = open_serial(args.port, args.baud)
        except TransportError as exc:
            log.error("open serial port error: %s", exc)
            time.sleep(_SERIAL_RETRY_WAIT)
            continue
        with link:
            try:
                for chunk in read_chunks(link):
                    _report(talker.process(chunk))
            except TransportError as exc:
                log.error("read serial port error: %s", exc)


def main(argv: list[str] | None = None) -> int:
    """Run the talker until the link closes or the user interrupts it."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    frame_trans = RefFrameTrans.WGS84_TO_NAD83 if args.nad83 else RefFrameTrans.NO_FRAME_TRANS
    talker = Talker(output=args.output, frame_trans=frame_trans)
    log.info("output msgs=%d", args.output)
    try:
        if args.eth_enable:
            return _run_ethernet(talker, args)
        return _run_serial(talker, args)
    except KeyboardInterrupt:
        print("polyx_node_talker: Ctrl-C hit, will stop!", flush=True)
        return 0


if __name__ == "__main__":
    raise SystemExit(main())