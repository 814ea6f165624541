import struct

import pytest

from hslidar.protocol_p64 import micro_lidar_time
from hslidar.protocol_v2 import LossReport
from hslidar.protocol_v3_2 import (
    PacketLossCounter,
    QtV2ChannelUnit,
    QtV2FunctionSafety,
    QtV2Header,
    QtV2Tail,
)


def _tail_bytes(return_mode=0x37, utc=b"\x17\x05\x0a\x0c\x1e\x2d", ts=123456):
    return struct.pack(
        "<HBHBHBHBBH6sIB",
        0x1234, 7, 0, 2, 0x5678, 9, 0xABCD, 1, return_mode, 600, utc, ts, 0x42
    )


def test_channel_unit_with_and_without_confidence():
    raw = struct.pack("<HBB", 1000, 55, 3)
    with_conf = QtV2ChannelUnit.from_bytes(raw, True)
    assert (with_conf.distance, with_conf.reflectivity, with_conf.confidence) == (1000, 55, 3)
    no_conf = QtV2ChannelUnit.from_bytes(raw, False)
    assert (no_conf.distance, no_conf.reflectivity, no_conf.confidence) == (1000, 55, None)


def test_channel_unit_short_data():
    with pytest.raises(ValueError):
        QtV2ChannelUnit.from_bytes(b"\x01\x02\x03", True)


def test_function_safety_roundtrip():
    raw = struct.pack("<BBBH8sI", 1, 2, 3, 0x0102, b"abcdefgh", 0xDEADBEEF)
    fs = QtV2FunctionSafety.from_bytes(raw)
    assert fs.out_code == 0x0102
    assert fs.reserved == b"abcdefgh"
    assert fs.crc == 0xDEADBEEF
    assert QtV2FunctionSafety.SIZE == len(raw)


def test_tail_fields_and_modes():
    tail = QtV2Tail.from_bytes(_tail_bytes())
    assert tail.data1 == 0x1234
    assert tail.sts_id1 == 7
    assert tail.data3 == 0x5678
    assert tail.sts_id3 == 9
    assert tail.motor_speed == 600
    assert tail.timestamp == 123456
    assert tail.factory_info == 0x42
    assert tail.is_strongest_return()
    assert not tail.is_last_return()
    assert QtV2Tail.from_bytes(_tail_bytes(0x38)).is_last_return()
    assert QtV2Tail.from_bytes(_tail_bytes(0x39)).is_last_and_strongest_return()


def test_tail_utc_data_out_of_range_falls_back():
    tail = QtV2Tail.from_bytes(_tail_bytes())
    assert tail.utc_data(2) == 0x0A
    assert tail.utc_data(6) == tail.utc_data(0)


def test_tail_micro_time_calendar_matches_helper():
    utc = b"\x17\x05\x0a\x0c\x1e\x2d"
    tail = QtV2Tail.from_bytes(_tail_bytes(utc=utc, ts=99))
    assert tail.micro_lidar_time() == micro_lidar_time(utc, 99, 100)


def test_tail_micro_time_unix_seconds():
    seconds = 1700000000
    utc = b"\x00\x00" + seconds.to_bytes(4, "big")
    tail = QtV2Tail.from_bytes(_tail_bytes(utc=utc, ts=250))
    assert tail.micro_lidar_time() == seconds * 1000000 + 250


def test_header_flags_and_dist_unit():
    header = QtV2Header.from_bytes(bytes([128, 2, 1, 4, 2, 0x7F]))
    assert header.laser_num == 128
    assert header.block_num == 2
    assert header.is_first_block_last_return()
    assert header.has_seq_num()
    assert header.has_function_safety()
    assert header.has_cyber_security()
    assert header.has_confidence_level()
    assert header.has_slope()
    assert header.has_self_define()
    assert header.dist_unit() == pytest.approx(0.004)


def test_packet_size_depends_on_flags():
    base = QtV2Header(128, 2, 1, 4, 2, 0).packet_size()
    conf = QtV2Header(128, 2, 1, 4, 2, QtV2Header.CONFIDENCE_LEVEL_FLAG).packet_size()
    assert conf - base == 128 * 2
    seq = QtV2Header(128, 2, 1, 4, 2, QtV2Header.SEQUENCE_NUM_FLAG).packet_size()
    assert seq - base == 4
    fs = QtV2Header(128, 2, 1, 4, 2, QtV2Header.FUNCTION_SAFETY_FLAG).packet_size()
    assert fs - base == QtV2FunctionSafety.SIZE
    cyber = QtV2Header(128, 2, 1, 4, 2, QtV2Header.CYBER_SECURITY_FLAG).packet_size()
    assert cyber - base == 32


def test_loss_counter_first_packet_initialises():
    counter = PacketLossCounter()
    assert counter.update(10, 500) is None
    assert counter.start_seq_num == 10
    assert counter.total_start_seq_num == 10
    assert counter.start_time == 500


def test_loss_counter_reports_after_interval():
    counter = PacketLossCounter()
    counter.update(1, 0)
    assert counter.update(5, 10) is None
    assert counter.loss_count == 3
    assert counter.total_loss_count == 3
    report = counter.update(6, 1_000_010)
    assert report == LossReport(3, 5)
    assert counter.loss_count == 0
    assert counter.total_loss_count == 3
    assert counter.start_seq_num == 6


def test_loss_counter_no_report_without_loss():
    counter = PacketLossCounter()
    counter.update(1, 0)
    assert counter.update(2, 5_000_000) is None
    assert counter.last_seq_num == 2