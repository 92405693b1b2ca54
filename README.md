# polyx

This package reads the output of a PolyNav GNSS/INS receiver. It handles the
binary ICD messages and the NMEA GGA sentences. It also converts CompactNav
navigation messages into common navigation records: position fix, IMU, twist,
acceleration, local NED pose and Euler attitude.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Command line

`polyx-talker` reads the receiver stream from one of two sources:

- a serial port, which is the default;
- a TCP connection, when `--eth-enable` is given.

It decodes the stream and prints a text report of every message it produces.

```
polyx-talker --help
```

| Option | Purpose |
| --- | --- |
| `--port` | Serial device or pyserial URL. Default `/dev/ttyUSB1`. |
| `--baud` | Baud rate. Default `230400`. |
| `--eth-enable` | Read from TCP instead of serial. |
| `--eth-server` | TCP host. Default `192.168.230.97`. |
| `--eth-port` | TCP port. Default `2100`. |
| `--output` | Bit mask of the messages derived from CompactNav. Accepts decimal or `0x` hex. |
| `--nad83` | Transform CompactNav positions from WGS84 to NAD83. |

When the serial port cannot be opened, or a read from it fails, the command
keeps retrying. In TCP mode it stops when the peer closes the connection.
Ctrl-C stops it in either mode.

## Library use

### Splitting the stream into frames

`polyx.decoder.StreamDecoder` takes raw bytes. Its `feed()` method returns a
list of every frame that those bytes complete. A frame is one of:

- a whole binary frame, with header and checksum;
- an NMEA sentence starting with `$G`.

```python
from polyx.decoder import StreamDecoder

decoder = StreamDecoder(2048)
for frame in decoder.feed(chunk):
    ...
```

### Turning frames into messages

`polyx.talker.Talker` builds on the decoder. Its `process(data)` method
returns a list of `(topic, message)` pairs, and `handle_frame(frame)` does the
same for a single frame. It checks each frame's checksum and dispatches the
frame by its sub id. From a CompactNav frame it derives the messages selected
by `OutputFlag`:

- `COMPACTNAV`
- `POSE`
- `TWIST`
- `ACCEL`
- `NAVSATFIX`
- `IMU`
- `EULER_ATT`

The first CompactNav message it receives sets the origin of the local pose.

### Parsers and codecs

`polyx.binary` holds the individual frame parsers:

- `parse_kalman`
- `parse_gnss_hmr`
- `parse_raw_imu`
- `parse_solution_status`
- `parse_time_sync`
- `parse_geoid`
- `parse_corrected_imu`
- `parse_leap_seconds`
- `parse_dmi`

It also has the little-endian `decode_*` and `encode_*` helpers, and
`frame_message` for building a frame. `check_message_type` raises
`ChecksumError` when a frame is truncated or fails its checksum.

`polyx.decoder` has `parse_compact_nav` and `parse_attitude_imu`.

### Converters

`polyx.convert` has the converters from `CompactNav`:

- `to_nav_sat_fix`
- `to_imu`
- `to_twist_stamped`
- `to_accel_stamped`
- `to_pose_stamped`
- `euler_attitude`, which returns `None` near ±90° pitch.

### NMEA sentences

```python
from polyx.nmea import nmea_checksum, parse_nmea_gga

if nmea_checksum(sentence):
    gga = parse_nmea_gga(sentence)
    print(gga.latitude, gga.longitude, gga.fix_quality)
```

`parse_nmea_gga` raises `ValueError` for a sentence with fewer than fifteen
delimiters.

### Geodesy

`polyx.geodesy` has the following helpers:

- `geodetic_to_ecef` and `ecef_to_geodetic` convert between geodetic and ECEF coordinates.
- `dcm_ecef_to_ned` gives the rotation from ECEF to the local NED frame.
- `Origin` holds a local NED origin.
- `convert_to_nad83` converts a WGS84 position to NAD83.
- `gps_to_epoch` and `epoch_to_gps` convert between GPS time and UNIX time.
- `GpsClock` keeps the leap seconds and the first GPS week seen.

### Links and reports

`polyx.transport` does the I/O:

- `open_serial` opens a serial link.
- `connect_ethernet` opens a TCP link.
- `read_chunks` yields incoming data from either link, or from a binary file.

`polyx.listener.format_message(topic, msg)` renders a message from a followed
topic as readable text.

## What it does not do

The package does not publish to any message bus. `Talker` only returns
`(topic, message)` pairs, and `polyx-talker` only prints them.

There is no separate command that subscribes to these topics. The listener
module only formats messages.

The `GEOPOSE` output flag is accepted, but no geographic pose message is
produced.