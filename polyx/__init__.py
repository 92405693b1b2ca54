"""Decoding of PolyNav GNSS/INS receiver output, with geodesy helpers and message converters."""

__version__ = "0.1.0"