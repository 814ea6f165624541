"""Packet structures of the UDP 3.2 protocol."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import ClassVar, Optional

from .protocol_p64 import _float32, _require, micro_lidar_time
from .protocol_v2 import LossReport

logger = logging.getLogger(__name__)

PRE_HEADER_SIZE = 6
AZIMUTH_SIZE = 2
BODY_CRC_SIZE = 4
TAIL_SEQ_NUM_SIZE = 4
TAIL_CRC_SIZE = 4
CYBER_SECURITY_SIZE = 32

_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class QtV2ChannelUnit:
    """One channel return; confidence is present only when the header says so."""

    _LAYOUT_CONF: ClassVar[struct.Struct] = struct.Struct("<HBB")
    _LAYOUT_NO_CONF: ClassVar[struct.Struct] = struct.Struct("<HB")
    SIZE_WITH_CONFIDENCE: ClassVar[int] = _LAYOUT_CONF.size
    SIZE_NO_CONFIDENCE: ClassVar[int] = _LAYOUT_NO_CONF.size

    distance: int
    reflectivity: int
    confidence: Optional[int] = None

    @classmethod
    def size(cls, with_confidence: bool) -> int:
        return cls.SIZE_WITH_CONFIDENCE if with_confidence else cls.SIZE_NO_CONFIDENCE

    @classmethod
    def from_bytes(cls, data: bytes, with_confidence: bool = True) -> "QtV2ChannelUnit":
        layout = cls._LAYOUT_CONF if with_confidence else cls._LAYOUT_NO_CONF
        _require(data, layout.size, "channel unit")
        return cls(*layout.unpack_from(data))


@dataclass(frozen=True)
class QtV2FunctionSafety:
    """Function safety block."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBBH8sI")
    SIZE: ClassVar[int] = _LAYOUT.size

    fs_version: int
    state: int
    code: int
    out_code: int
    reserved: bytes
    crc: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "QtV2FunctionSafety":
        _require(data, cls.SIZE, "function safety")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class QtV2Tail:
    """Tail of a 3.2 packet."""

    SHUTDOWN: ClassVar[int] = 0x01
    FIRST_RETURN: ClassVar[int] = 0x33
    SECOND_RETURN: ClassVar[int] = 0x34
    STRONGEST_RETURN: ClassVar[int] = 0x37
    LAST_RETURN: ClassVar[int] = 0x38
    LAST_AND_STRONGEST_RETURN: ClassVar[int] = 0x39
    FIRST_AND_SECOND_RETURN: ClassVar[int] = 0x3A
    FIRST_AND_LAST_RETURN: ClassVar[int] = 0x3B
    FIRST_AND_STRONGEST_RETURN: ClassVar[int] = 0x3C
    STRONGEST_AND_SECOND_RETURN: ClassVar[int] = 0x3E

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HBHBHBHBBH6sIB")
    SIZE: ClassVar[int] = _LAYOUT.size

    data1: int
    sts_id1: int
    reserved2: int
    mode_flag: int
    data3: int
    sts_id3: int
    azimuth_flag: int
    working_mode: int
    return_mode: int
    motor_speed: int
    utc: bytes
    timestamp: int
    factory_info: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "QtV2Tail":
        _require(data, cls.SIZE, "tail")
        return cls(*cls._LAYOUT.unpack_from(data))

    def is_last_return(self) -> bool:
        return self.return_mode == self.LAST_RETURN

    def is_strongest_return(self) -> bool:
        return self.return_mode == self.STRONGEST_RETURN

    def is_last_and_strongest_return(self) -> bool:
        return self.return_mode == self.LAST_AND_STRONGEST_RETURN

    def utc_data(self, index: int) -> int:
        return self.utc[index if index < len(self.utc) else 0]

    def micro_lidar_time(self) -> int:
        """Lidar time in microseconds; calendar years count from 2000."""
        return micro_lidar_time(self.utc, self.timestamp, 100)


@dataclass(frozen=True)
class QtV2Header:
    """Header of a 3.2 packet."""

    SEQUENCE_NUM_FLAG: ClassVar[int] = 0x01
    IMU_FLAG: ClassVar[int] = 0x02
    FUNCTION_SAFETY_FLAG: ClassVar[int] = 0x04
    CYBER_SECURITY_FLAG: ClassVar[int] = 0x08
    CONFIDENCE_LEVEL_FLAG: ClassVar[int] = 0x10
    SLOPE_FLAG: ClassVar[int] = 0x20
    SELF_DEFINE_FLAG: ClassVar[int] = 0x40
    DIST_UNIT: ClassVar[int] = 0x04
    FIRST_BLOCK_LAST_RETURN: ClassVar[int] = 0x01
    FIRST_BLOCK_STRONGEST_RETURN: ClassVar[int] = 0x02

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<6B")
    SIZE: ClassVar[int] = _LAYOUT.size

    laser_num: int
    block_num: int
    echo_count: int
    raw_dist_unit: int
    echo_num: int
    status: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "QtV2Header":
        _require(data, cls.SIZE, "header")
        return cls(*cls._LAYOUT.unpack_from(data))

    def dist_unit(self) -> float:
        """Distance unit in metres."""
        return _float32(self.raw_dist_unit / 1000.0)

    def is_first_block_last_return(self) -> bool:
        return self.echo_count == self.FIRST_BLOCK_LAST_RETURN

    def is_first_block_strongest_return(self) -> bool:
        return self.echo_count == self.FIRST_BLOCK_STRONGEST_RETURN

    def has_seq_num(self) -> bool:
        return bool(self.status & self.SEQUENCE_NUM_FLAG)

    def has_function_safety(self) -> bool:
        return bool(self.status & self.FUNCTION_SAFETY_FLAG)

    def has_cyber_security(self) -> bool:
        return bool(self.status & self.CYBER_SECURITY_FLAG)

    def has_confidence_level(self) -> bool:
        return bool(self.status & self.CONFIDENCE_LEVEL_FLAG)

    def has_slope(self) -> bool:
        return bool(self.status & self.SLOPE_FLAG)

    def has_self_define(self) -> bool:
        return bool(self.status & self.SELF_DEFINE_FLAG)

    def packet_size(self) -> int:
        """Expected size in bytes of a whole packet with this header."""
        unit = QtV2ChannelUnit.size(self.has_confidence_level())
        size = (
            PRE_HEADER_SIZE
            + self.SIZE
            + (AZIMUTH_SIZE + unit * self.laser_num) * self.block_num
            + BODY_CRC_SIZE
            + (QtV2FunctionSafety.SIZE if self.has_function_safety() else 0)
            + QtV2Tail.SIZE
            + (TAIL_SEQ_NUM_SIZE if self.has_seq_num() else 0)
            + TAIL_CRC_SIZE
            + (CYBER_SECURITY_SIZE if self.has_cyber_security() else 0)
        )
        return size & 0xFFFF


class PacketLossCounter:
    """Counts gaps in packet sequence numbers, with running totals.

    The first packet (or any while the period start is zero) only sets the
    counter up. A report is made once a second, and only when packets were lost.
    """

    REPORT_INTERVAL_US = 1_000_000

    def __init__(self) -> None:
        self.start_seq_num = 0
        self.last_seq_num = 0
        self.loss_count = 0
        self.start_time = 0
        self.total_loss_count = 0
        self.total_start_seq_num = 0

    def update(self, seq_num: int, now_us: int) -> Optional[LossReport]:
        """Record a packet; return a report when one is due."""
        seq_num &= _U32
        now_us &= _U32
        if self.start_seq_num == 0:
            self.loss_count = 0
            self.total_loss_count = 0
            self.start_time = now_us
            self.start_seq_num = seq_num
            self.last_seq_num = seq_num
            self.total_start_seq_num = seq_num
            return None
        gap = (seq_num - self.last_seq_num) & _U32
        if gap > 1:
            self.loss_count = (self.loss_count + gap - 1) & _U32
            self.total_loss_count = (self.total_loss_count + gap - 1) & _U32
        report = None
        if (
            self.loss_count != 0
            and ((now_us - self.start_time) & _U32) >= self.REPORT_INTERVAL_US
        ):
            report = LossReport(self.loss_count, (seq_num - self.start_seq_num) & _U32)
            logger.info("pkt loss freq: %u/%u", report.lost, report.span)
            self.loss_count = 0
            self.start_time = now_us
            self.start_seq_num = seq_num
        self.last_seq_num = seq_num
        return report