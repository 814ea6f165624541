# hslidar

A library for working with the UDP data streams of rotating and
solid-state lidar sensors: decoding packet fields, reading packets from a
socket or a pcap capture, and writing packets to pcap files. It has no
third-party dependencies.

## What is in it

- `hslidar.params`: driver settings as dataclasses — `DriverParam`,
  `InputParam`, `DecoderParam`, `TransformParam` — and the enums
  `SourceType`, `PtcMode` and `UseTimestampType`. `InputParam` checks that
  `udp_port` and `ptc_port` lie in 0..65535 and raises `ValueError`
  otherwise.
- Packet structures. Each is a frozen dataclass with a
  `from_bytes(data)` class method that reads the little-endian wire layout
  and raises `ValueError` when `data` is too short:
  - `hslidar.protocol_p64`: `P64Header`, `P64ChannelUnit`, `P64Azimuth`,
    `P64SeqNum`, `P64Tail`, and `micro_lidar_time(utc, timestamp,
    year_offset)`, which turns the six UTC bytes and the microsecond stamp
    into microseconds since the epoch.
  - `hslidar.protocol_v2`: the 2.4 and 2.5 protocols — `EtHeader` (with
    `packet_size_v4()` and `packet_size_v5()`), `EtTail`, `EtV4LaserUnit`,
    `EtV4Seq`, `EtV5LaserUnit`, `EtV5Seq` — and `SimpleLossCounter`.
  - `hslidar.protocol_v3_2`: `QtV2Header` (with `packet_size()`),
    `QtV2Tail`, `QtV2ChannelUnit` (with or without a confidence byte),
    `QtV2FunctionSafety`, and `PacketLossCounter`.
  - `hslidar.protocol_v6_1`: `XtV1Header`, `XtV1Tail` (which carries the
    sequence number), `XtV1ChannelData`.
  - `hslidar.fault_message`: `FaultMessage` reads the 99-byte fault
    message; `to_info()` gives a `FaultMessageInfo` with operate state,
    fault state, DTC state, temperature, the 12×8 lens dirty grid,
    software and hardware versions, heating and high-temperature shutdown
    state. Unknown codes map to the enum's `UNDEFINED` member.
- Loss counters: `SimpleLossCounter.update(seq_num, now_us)` and
  `PacketLossCounter.update(seq_num, now_us)` count gaps in sequence
  numbers and return a `LossReport(lost, span)` once a reporting second
  has passed (the latter only when packets were lost), otherwise `None`.
- Sources, all subclasses of `hslidar.source.Source` and usable as context
  managers:
  - `hslidar.socket_source.SocketSource(port=2368, multicast_ip="")`
    binds a UDP socket, optionally joins a multicast group.
    `receive(size, flags, timeout)` takes the timeout in microseconds and
    returns a `UdpPacket`, one flagged `is_timeout` when the wait ran out,
    or `None` when nothing could be read.
  - `hslidar.pcap_source.PcapSource(path, packet_interval=0)` loads a pcap
    file into memory. `next()` returns a `PcapEntry` whose `kind` is an
    `EntryKind` (`UDP`, `TCP`, `IGNORED`, `OVERSIZED`, `UNKNOWN`), and
    `None` at the end of the file (setting `is_pcap_end`) or on a
    truncated record. IPv4, IPv6 and VLAN-tagged frames are understood;
    TCP payloads are returned only when `tcp_callback` is set.
    `receive()` wraps `next()` and returns a `UdpPacket`.
    `destination_port()` gives the port of the last UDP packet read.
  - The module also builds the fake frame headers used when recording:
    `pcap_file_header()`, `udp_header()`, `tcp_header()`,
    `udp_v6_header()` and `tcp_v6_header()`.
- `hslidar.pcap_saver.PcapSaver`: `start()` opens `pcap_path` and records
  packets queued with `dump(data, port)` from a background thread;
  `tcp_dump(data, max_packet_len, port)` writes data split into TCP
  segments; `save_frame(record_path, packets, port)` and
  `save_frames(record_path, frames, port)` append whole frames to a file,
  writing the pcap header when the file is new; `close()` writes out what
  is still queued and closes the file. Payloads that do not fit a
  1500-byte frame raise `ValueError`.
- `hslidar.et_corrections`: `ETCorrections` holds the ET angle tables;
  `azimuth_adjust_v2(azi, ele)` and `elevation_adjust_v2(azi, ele)` give
  the bilinear adjustment, or 0 outside the grid.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Decode a packet header:

```python
from hslidar.protocol_v3_2 import QtV2Header

header = QtV2Header.from_bytes(packet[6:12])
print(header.laser_num, header.block_num, header.dist_unit())
print("expected size:", header.packet_size())
```

Replay a capture:

```python
from hslidar.pcap_source import EntryKind, PcapSource

with PcapSource("capture.pcap") as source:
    while (entry := source.next()) is not None:
        if entry.kind is EntryKind.UDP:
            print(entry.port, len(entry.payload))
```

Record packets:

```python
from hslidar.pcap_saver import PcapSaver

with PcapSaver("out.pcap") as saver:
    saver.start()
    saver.dump(b"\xee\xff" + bytes(100), port=2368)
```

## What it does not do

The package decodes packet fields and moves packets around; it does not
turn packets into point clouds, load correction or firetime files, split
frames, or talk to a sensor over its control (PTC) channel. There is no
command-line program; everything is used as a library.