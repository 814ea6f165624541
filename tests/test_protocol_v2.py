import struct
from datetime import datetime, timezone

import pytest

from hslidar.protocol_v2 import (
    EtHeader,
    EtTail,
    EtV4LaserUnit,
    EtV4Seq,
    EtV5LaserUnit,
    EtV5Seq,
    SimpleLossCounter,
)


def _tail_bytes(return_mode=0x37, shutdown=0, utc=b"\x00" * 6, timestamp=0):
    return struct.pack(
        "<HBHBHBBBB6sIB",
        0x1234, 1, 0x5678, 2, 0x9ABC, 3, 7, shutdown, return_mode, utc, timestamp, 0x42,
    )


def test_v4_laser_unit_round_trip():
    unit = EtV4LaserUnit.from_bytes(struct.pack("<HBB", 1500, 80, 2))
    assert (unit.distance, unit.reflectivity, unit.confidence) == (1500, 80, 2)


def test_v4_seq_signed_angles():
    seq = EtV4Seq.from_bytes(struct.pack("<hh", -300, 250))
    assert (seq.horizontal_angle, seq.vertical_angle) == (-300, 250)


def test_v5_laser_unit_round_trip():
    unit = EtV5LaserUnit.from_bytes(struct.pack("<HB", 65535, 255))
    assert (unit.distance, unit.reflectivity) == (65535, 255)


def test_v5_seq_round_trip():
    seq = EtV5Seq.from_bytes(struct.pack("<hhB", -1, 32767, 9))
    assert (seq.horizontal_angle, seq.vertical_angle, seq.confidence) == (-1, 32767, 9)


def test_short_data_raises():
    with pytest.raises(ValueError):
        EtV5Seq.from_bytes(b"\x00\x00")
    with pytest.raises(ValueError):
        EtTail.from_bytes(b"\x00" * 5)


def test_tail_fields_and_size():
    tail = EtTail.from_bytes(_tail_bytes(shutdown=1))
    assert EtTail.SIZE == 23
    assert (tail.sts_id0, tail.data0) == (1, 0x1234)
    assert (tail.sts_id1, tail.data1) == (2, 0x5678)
    assert (tail.sts_id2, tail.data2) == (3, 0x9ABC)
    assert tail.frame_id == 7
    assert tail.factory_info == EtTail.FACTORY_INFO
    assert tail.has_shutdown() is True


@pytest.mark.parametrize(
    "mode, first, strongest, last, dual",
    [
        (0x33, True, False, False, False),
        (0x37, False, True, False, False),
        (0x38, False, False, True, False),
        (0x39, False, False, False, True),
    ],
)
def test_tail_return_modes(mode, first, strongest, last, dual):
    tail = EtTail.from_bytes(_tail_bytes(return_mode=mode))
    assert tail.is_first_return() is first
    assert tail.is_strongest_return() is strongest
    assert tail.is_last_return() is last
    assert tail.is_dual_return() is dual


def test_tail_utc_data_out_of_range_uses_first():
    utc = bytes([5, 6, 7, 8, 9, 10])
    tail = EtTail.from_bytes(_tail_bytes(utc=utc))
    assert tail.utc_data(3) == utc[3]
    assert tail.utc_data(6) == utc[0]


def test_tail_time_from_unix_seconds():
    utc = b"\x00\x00" + (1700000000).to_bytes(4, "big")
    tail = EtTail.from_bytes(_tail_bytes(utc=utc, timestamp=123))
    assert tail.micro_lidar_time() == 1700000000 * 1000000 + 123


def test_tail_time_from_calendar_fields():
    # year byte counts from 1900 in this protocol
    utc = bytes([123, 5, 17, 8, 30, 15])
    tail = EtTail.from_bytes(_tail_bytes(utc=utc, timestamp=456))
    expected = int(datetime(2023, 5, 17, 8, 30, 15, tzinfo=timezone.utc).timestamp())
    assert tail.micro_lidar_time() == expected * 1000000 + 456


def test_header_fields_and_flags():
    header = EtHeader.from_bytes(bytes([64, 4, 1, 5, 2, 8, 0x3F]))
    assert header.laser_num == EtHeader.LASER_NUM
    assert header.block_num == EtHeader.BLOCK_NUM
    assert header.dist_unit() == pytest.approx(0.005)
    assert header.is_first_block_last_return()
    assert not header.is_first_block_strongest_return()
    assert header.has_seq_num()
    assert header.has_imu()
    assert header.has_func_safety()
    assert header.has_cyber_security()
    assert header.has_confidence_level()
    assert header.has_weight_factor()


def test_header_no_flags():
    header = EtHeader.from_bytes(bytes([64, 4, 2, 5, 2, 8, 0]))
    assert header.is_first_block_strongest_return()
    assert not any(
        (
            header.has_seq_num(),
            header.has_imu(),
            header.has_func_safety(),
            header.has_cyber_security(),
            header.has_confidence_level(),
            header.has_weight_factor(),
        )
    )


def test_packet_sizes():
    header = EtHeader.from_bytes(bytes([64, 4, 1, 5, 2, 8, 0]))
    assert header.packet_size_v4() == 1208
    assert header.packet_size_v5() == 1016


def test_packet_size_grows_with_blocks():
    small = EtHeader.from_bytes(bytes([64, 1, 1, 5, 2, 8, 0]))
    large = EtHeader.from_bytes(bytes([64, 2, 1, 5, 2, 8, 0]))
    assert large.packet_size_v4() > small.packet_size_v4()
    assert large.packet_size_v5() > small.packet_size_v5()


def test_packet_size_without_sequences_raises():
    header = EtHeader.from_bytes(bytes([64, 4, 1, 5, 2, 0, 0]))
    with pytest.raises(ValueError):
        header.packet_size_v4()


def test_loss_counter_counts_gaps_and_reports():
    counter = SimpleLossCounter()
    assert counter.update(1, 0) is None
    assert counter.update(5, 10) is None
    assert counter.loss_count == 3
    report = counter.update(6, 1_000_010)
    assert report is not None
    assert report.lost == 3
    assert report.span == 6
    assert counter.loss_count == 0
    assert counter.start_seq_num == 6


def test_loss_counter_no_gap():
    counter = SimpleLossCounter()
    for seq in range(1, 10):
        counter.update(seq, seq)
    assert counter.loss_count == 0
    assert counter.last_seq_num == 9