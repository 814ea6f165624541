import struct

import pytest

from hslidar.protocol_v6_1 import XtV1ChannelData, XtV1Header, XtV1Tail


def _tail_bytes(return_mode=0x37, shutdown=0, utc=bytes(6), timestamp=0, seq=0):
    return struct.pack(
        "<HBHBHBBBH6sIBI",
        10, 1, 20, 2, 30, 3, shutdown, return_mode, 600, utc, timestamp, 0x42, seq,
    )


def test_channel_data_roundtrip():
    unit = XtV1ChannelData.from_bytes(struct.pack("<HBB", 1234, 56, 2))
    assert (unit.distance, unit.reflectivity, unit.confidence) == (1234, 56, 2)


def test_channel_data_too_short():
    with pytest.raises(ValueError):
        XtV1ChannelData.from_bytes(b"\x01\x02")


def test_tail_size_and_fields():
    assert XtV1Tail.SIZE == 28
    tail = XtV1Tail.from_bytes(_tail_bytes(seq=77, timestamp=5))
    assert tail.data0 == 10 and tail.sts_id0 == 1
    assert tail.data2 == 30 and tail.sts_id2 == 3
    assert tail.motor_speed == 600
    assert tail.factory_info == 0x42
    assert tail.seq_num == 77
    assert tail.timestamp == 5


def test_tail_return_modes():
    assert XtV1Tail.from_bytes(_tail_bytes(return_mode=0x37)).is_strongest_return()
    assert XtV1Tail.from_bytes(_tail_bytes(return_mode=0x38)).is_last_return()
    dual = XtV1Tail.from_bytes(_tail_bytes(return_mode=0x39))
    assert dual.is_dual_return()
    assert not dual.is_last_return()


def test_tail_shutdown_flag():
    assert XtV1Tail.from_bytes(_tail_bytes(shutdown=0x01)).has_shutdown()
    assert not XtV1Tail.from_bytes(_tail_bytes(shutdown=0x02)).has_shutdown()


def test_tail_utc_data_out_of_range_uses_first():
    tail = XtV1Tail.from_bytes(_tail_bytes(utc=bytes([9, 2, 3, 4, 5, 6])))
    assert tail.utc_data(3) == 4
    assert tail.utc_data(6) == 9


def test_tail_time_from_unix_seconds():
    seconds = 1700000000
    utc = b"\x00\x00" + seconds.to_bytes(4, "big")
    tail = XtV1Tail.from_bytes(_tail_bytes(utc=utc, timestamp=123))
    assert tail.micro_lidar_time() == seconds * 1000000 + 123


def test_tail_time_from_calendar():
    tail = XtV1Tail.from_bytes(_tail_bytes(utc=bytes([23, 1, 1, 0, 0, 0]), timestamp=7))
    assert tail.micro_lidar_time() == 1672531200 * 1000000 + 7


def test_tail_too_short():
    with pytest.raises(ValueError):
        XtV1Tail.from_bytes(bytes(27))


def test_header_fields_and_flags():
    header = XtV1Header.from_bytes(bytes([32, 8, 1, 4, 2, 1]))
    assert header.laser_num == 32
    assert header.block_num == 8
    assert header.dist_unit() == pytest.approx(0.004)
    assert header.has_seq_num()
    assert header.is_first_block_last_return()
    assert not header.is_first_block_strongest_return()


def test_header_xt32_packet_size():
    header = XtV1Header.from_bytes(bytes([32, 8, 1, 4, 1, 0]))
    assert header.packet_size() == 1080


def test_header_packet_size_grows_with_blocks():
    small = XtV1Header.from_bytes(bytes([16, 4, 1, 4, 1, 0]))
    large = XtV1Header.from_bytes(bytes([16, 5, 1, 4, 1, 0]))
    assert large.packet_size() - small.packet_size() == 2 + XtV1ChannelData.SIZE * 16


def test_header_too_short():
    with pytest.raises(ValueError):
        XtV1Header.from_bytes(bytes(5))