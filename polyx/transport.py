"""Serial and TCP links to the receiver, and chunked reading from them."""

from __future__ import annotations

import select
import socket
import time
from collections.abc import Iterator

import serial

DEFAULT_SERIAL_PORT = "/dev/ttyUSB1"
DEFAULT_BAUD = 230400
DEFAULT_SERVER = "192.168.230.97"
DEFAULT_ETH_PORT = "2100"
CONNECT_TIMEOUT = 10.0
SERIAL_READ_TIMEOUT = 1.1
READ_SIZE = 2048
_IDLE_WAIT = 0.005


class TransportError(OSError):
    """The link to the receiver could not be opened or has failed."""


def open_serial(port: str = DEFAULT_SERIAL_PORT, baud: int = DEFAULT_BAUD) -> serial.SerialBase:
    """Open a raw 8N1 serial link with flow control off.

    ``port`` may be a device path or a pyserial URL.
    """
    try:
        return serial.serial_for_url(
            port,
            baudrate=baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=SERIAL_READ_TIMEOUT,
        )
    except (serial.SerialException, ValueError, OSError) as exc:
        raise TransportError(f"cannot open serial port {port}: {exc}") from exc


def connect_ethernet(
    server: str = DEFAULT_SERVER,
    port: str | int = DEFAULT_ETH_PORT,
    timeout: float = CONNECT_TIMEOUT,
) -> socket.socket:
    """Open a TCP connection to the receiver, waiting at most ``timeout`` seconds."""
    try:
        port_number = int(port)
    except ValueError as exc:
        raise TransportError(f"invalid port {port!r}") from exc
    try:
        return socket.create_connection((server, port_number), timeout=timeout)
    except OSError as exc:
        raise TransportError(f"cannot connect to {server}:{port_number}: {exc}") from exc


def _socket_chunks(sock: socket.socket, size: int) -> Iterator[bytes]:
    while True:
        try:
            data = sock.recv(size)
        except socket.timeout:
            continue
        except BlockingIOError:
            select.select([sock], [], [], 0.1)
            continue
        except OSError as exc:
            raise TransportError(f"socket read failed: {exc}") from exc
        if not data:
            return
        yield data


def _stream_chunks(stream, size: int) -> Iterator[bytes]:
    is_serial = isinstance(stream, serial.SerialBase)
    while True:
        try:
            if is_serial:
                data = stream.read(min(stream.in_waiting, size) or 1)
            else:
                data = stream.read(size)
        except serial.SerialException as exc:
            raise TransportError(f"serial read failed: {exc}") from exc
        if data is None:
            time.sleep(_IDLE_WAIT)
            continue
        if not data:
            if is_serial:
                continue
            return
        yield bytes(data)


def read_chunks(stream, size: int = READ_SIZE) -> Iterator[bytes]:
    """Yield non-empty chunks of at most ``size`` bytes as they arrive.

    Works with sockets, serial ports and binary file-like objects. Read
    timeouts are waited out; the iteration ends when the peer closes the
    connection or a plain stream reaches its end.
    """
    if size <= 0:
        raise ValueError("chunk size must be positive")
    if hasattr(stream, "recv"):
        return _socket_chunks(stream, size)
    return _stream_chunks(stream, size)