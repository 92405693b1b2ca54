"""NMEA sentence checksum validation and GGA parsing."""

from __future__ import annotations

import re

from polyx.messages import NmeaGGA

_GGA_DELIMITERS = 15
_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _as_text(msg: str | bytes | bytearray) -> str:
    if isinstance(msg, (bytes, bytearray)):
        return bytes(msg).decode("latin-1")
    return msg


def _atoi(text: str) -> int:
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def _atof(text: str) -> float:
    match = _FLOAT_RE.match(text)
    return float(match.group(1)) if match else 0.0


def nmea_checksum(msg: str | bytes | bytearray) -> bool:
    """Return True if the sentence carries a valid upper-case hex checksum."""
    text = _as_text(msg)
    star = text.rfind("*")
    if star <= 0:
        return False
    value = 0
    for ch in text[1:star]:
        value ^= ord(ch) & 0xFF
    return text[star + 1 : star + 3] == f"{value:02X}"


def parse_nmea_gga(msg: str | bytes | bytearray) -> NmeaGGA:
    """Decode a GGA sentence; empty fields become zero.

    Raises ValueError when the sentence has fewer than fifteen delimiters.
    """
    text = _as_text(msg)
    d = [i for i, ch in enumerate(text) if ch in ",*"][:_GGA_DELIMITERS]
    if len(d) < _GGA_DELIMITERS:
        raise ValueError(f"GGA sentence has {len(d)} delimiters, expected {_GGA_DELIMITERS}")

    def between(a: int, b: int) -> str:
        return text[d[a] + 1 : d[b]]

    gga = NmeaGGA()

    if d[1] - d[0] > 5:
        start = d[0] + 1
        gga.utc_hour = _atoi(text[start : start + 2]) & 0xFF
        gga.utc_minute = _atoi(text[start + 2 : start + 4]) & 0xFF
        gga.utc_millisec = int(_atof(text[start + 4 : d[1]]) * 1000.0)

    if d[2] - d[1] > 3:
        start = d[1] + 1
        lat = _atof(text[start : start + 2]) + _atof(text[start + 2 : d[2]]) / 60.0
        gga.latitude = -lat if text[d[2] + 1] == "S" else lat

    if d[4] - d[3] > 4:
        start = d[3] + 1
        lon = _atof(text[start : start + 3]) + _atof(text[start + 3 : d[4]]) / 60.0
        gga.longitude = -lon if text[d[4] + 1] == "W" else lon

    gga.fix_quality = _atoi(between(5, 6)) & 0xFF
    gga.n_sv_used = _atoi(between(6, 7)) & 0xFF
    gga.hdop = _atof(between(7, 8))
    gga.orthometric_height = _atof(between(8, 9))
    gga.geoid_undulation = _atof(between(10, 11))
    gga.differential_age = _atof(between(12, 13))
    gga.ref_station_id = _atoi(between(13, 14)) & 0xFFFF
    return gga