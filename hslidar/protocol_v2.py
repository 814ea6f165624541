"""Packet structures of the UDP 2.4 and 2.5 protocols."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Optional

from .protocol_p64 import _float32, _require, micro_lidar_time

logger = logging.getLogger(__name__)

PRE_HEADER_SIZE = 6
BODY_CRC_SIZE = 4
TAIL_SEQ_NUM_SIZE = 4
TAIL_CRC_SIZE = 4
CYBER_SECURITY_SIZE = 32

_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class EtV4LaserUnit:
    """One laser return in a 2.4 packet."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HBB")
    SIZE: ClassVar[int] = _LAYOUT.size

    distance: int
    reflectivity: int
    confidence: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtV4LaserUnit":
        _require(data, cls.SIZE, "laser unit")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class EtV4Seq:
    """Angles that open a sequence in a 2.4 packet."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<hh")
    SIZE: ClassVar[int] = _LAYOUT.size

    horizontal_angle: int
    vertical_angle: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtV4Seq":
        _require(data, cls.SIZE, "sequence")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class EtV5LaserUnit:
    """One laser return in a 2.5 packet."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HB")
    SIZE: ClassVar[int] = _LAYOUT.size

    distance: int
    reflectivity: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtV5LaserUnit":
        _require(data, cls.SIZE, "laser unit")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class EtV5Seq:
    """Angles and confidence that open a sequence in a 2.5 packet."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<hhB")
    SIZE: ClassVar[int] = _LAYOUT.size

    horizontal_angle: int
    vertical_angle: int
    confidence: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtV5Seq":
        _require(data, cls.SIZE, "sequence")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class EtTail:
    """Tail fields shared by the 2.4 and 2.5 protocols."""

    SHUTDOWN: ClassVar[int] = 0x01
    FIRST_RETURN: ClassVar[int] = 0x33
    STRONGEST_RETURN: ClassVar[int] = 0x37
    LAST_RETURN: ClassVar[int] = 0x38
    DUAL_RETURN: ClassVar[int] = 0x39
    FACTORY_INFO: ClassVar[int] = 0x42

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HBHBHBBBB6sIB")
    SIZE: ClassVar[int] = _LAYOUT.size

    data0: int
    sts_id0: int
    data1: int
    sts_id1: int
    data2: int
    sts_id2: int
    frame_id: int
    shutdown: int
    return_mode: int
    utc: bytes
    timestamp: int
    factory_info: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtTail":
        _require(data, cls.SIZE, "tail")
        return cls(*cls._LAYOUT.unpack_from(data))

    def has_shutdown(self) -> bool:
        return bool(self.shutdown & self.SHUTDOWN)

    def is_first_return(self) -> bool:
        return self.return_mode == self.FIRST_RETURN

    def is_strongest_return(self) -> bool:
        return self.return_mode == self.STRONGEST_RETURN

    def is_last_return(self) -> bool:
        return self.return_mode == self.LAST_RETURN

    def is_dual_return(self) -> bool:
        return self.return_mode == self.DUAL_RETURN

    def utc_data(self, index: int) -> int:
        return self.utc[index if index < len(self.utc) else 0]

    def micro_lidar_time(self) -> int:
        """Lidar time in microseconds; calendar years count from 1900."""
        return micro_lidar_time(self.utc, self.timestamp, 0)


@dataclass(frozen=True)
class EtHeader:
    """Header shared by the 2.4 and 2.5 protocols."""

    LASER_NUM: ClassVar[int] = 0x40
    BLOCK_NUM: ClassVar[int] = 0x04
    FIRST_BLOCK_LAST_RETURN: ClassVar[int] = 0x01
    FIRST_BLOCK_STRONGEST_RETURN: ClassVar[int] = 0x02
    DIST_UNIT: ClassVar[int] = 0x05
    SEQ_NUM: ClassVar[int] = 0x08
    SEQUENCE_NUM_FLAG: ClassVar[int] = 0x01
    IMU_FLAG: ClassVar[int] = 0x02
    FUNCTION_SAFETY_FLAG: ClassVar[int] = 0x04
    CYBER_SECURITY_FLAG: ClassVar[int] = 0x08
    CONFIDENCE_LEVEL_FLAG: ClassVar[int] = 0x10
    WEIGHT_FACTOR_FLAG: ClassVar[int] = 0x20

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<7B")
    SIZE: ClassVar[int] = _LAYOUT.size

    laser_num: int
    block_num: int
    echo_count: int
    raw_dist_unit: int
    echo_num: int
    seq_num: int
    flags: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "EtHeader":
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
        return bool(self.flags & self.SEQUENCE_NUM_FLAG)

    def has_imu(self) -> bool:
        return bool(self.flags & self.IMU_FLAG)

    def has_func_safety(self) -> bool:
        return bool(self.flags & self.FUNCTION_SAFETY_FLAG)

    def has_cyber_security(self) -> bool:
        return bool(self.flags & self.CYBER_SECURITY_FLAG)

    def has_confidence_level(self) -> bool:
        return bool(self.flags & self.CONFIDENCE_LEVEL_FLAG)

    def has_weight_factor(self) -> bool:
        return bool(self.flags & self.WEIGHT_FACTOR_FLAG)

    def _lasers_per_seq(self) -> int:
        if self.seq_num == 0:
            raise ValueError("header has no sequences; packet size is undefined")
        return self.laser_num // self.seq_num

    def _body_size(self, unit_size: int, seq_size: int) -> int:
        per_seq = unit_size * self._lasers_per_seq() + seq_size
        return (2 + per_seq * self.seq_num) * self.block_num

    def packet_size_v4(self) -> int:
        """Expected size in bytes of a whole 2.4 packet."""
        size = (
            PRE_HEADER_SIZE
            + self.SIZE
            + self._body_size(EtV4LaserUnit.SIZE, EtV4Seq.SIZE)
            + BODY_CRC_SIZE
            + EtTail.SIZE
            + TAIL_SEQ_NUM_SIZE
            + TAIL_CRC_SIZE
        )
        return size & 0xFFFF

    def packet_size_v5(self) -> int:
        """Expected size in bytes of a whole 2.5 packet."""
        size = (
            PRE_HEADER_SIZE
            + self.SIZE
            + self._body_size(EtV5LaserUnit.SIZE, EtV5Seq.SIZE)
            + BODY_CRC_SIZE
            + EtTail.SIZE
            + TAIL_SEQ_NUM_SIZE
            + TAIL_CRC_SIZE
            + CYBER_SECURITY_SIZE
        )
        return size & 0xFFFF


class LossReport(NamedTuple):
    """Packets lost against sequence numbers covered in a reporting period."""

    lost: int
    span: int


class SimpleLossCounter:
    """Counts gaps in packet sequence numbers, reporting once a second."""

    REPORT_INTERVAL_US = 1_000_000

    def __init__(self) -> None:
        self.start_seq_num = 0
        self.last_seq_num = 0
        self.loss_count = 0
        self.start_time = 0

    def update(self, seq_num: int, now_us: int) -> Optional[LossReport]:
        """Record a packet; return a report when a period has elapsed."""
        seq_num &= _U32
        gap = (seq_num - self.last_seq_num) & _U32
        if gap > 1:
            self.loss_count = (self.loss_count + gap - 1) & _U32
        report = None
        if ((now_us - self.start_time) & _U32) >= self.REPORT_INTERVAL_US:
            report = LossReport(self.loss_count, (seq_num - self.start_seq_num) & _U32)
            logger.info("pkt loss freq: %u/%u", report.lost, report.span)
            self.loss_count = 0
            self.start_time = now_us & _U32
            self.start_seq_num = seq_num
        self.last_seq_num = seq_num
        return report