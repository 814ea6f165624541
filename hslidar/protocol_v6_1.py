"""Packet structures of the UDP 6.1 protocol."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from .protocol_p64 import _float32, _require, micro_lidar_time

PRE_HEADER_SIZE = 6
AZIMUTH_SIZE = 2


@dataclass(frozen=True)
class XtV1ChannelData:
    """One channel return."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HBB")
    SIZE: ClassVar[int] = _LAYOUT.size

    distance: int
    reflectivity: int
    confidence: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "XtV1ChannelData":
        _require(data, cls.SIZE, "channel data")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class XtV1Tail:
    """Tail of a 6.1 packet, sequence number included."""

    SHUTDOWN: ClassVar[int] = 0x01
    STRONGEST_RETURN: ClassVar[int] = 0x37
    LAST_RETURN: ClassVar[int] = 0x38
    DUAL_RETURN: ClassVar[int] = 0x39

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HBHBHBBBH6sIBI")
    SIZE: ClassVar[int] = _LAYOUT.size

    data0: int
    sts_id0: int
    data1: int
    sts_id1: int
    data2: int
    sts_id2: int
    shutdown: int
    return_mode: int
    motor_speed: int
    utc: bytes
    timestamp: int
    factory_info: int
    seq_num: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "XtV1Tail":
        _require(data, cls.SIZE, "tail")
        return cls(*cls._LAYOUT.unpack_from(data))

    def has_shutdown(self) -> bool:
        return bool(self.shutdown & self.SHUTDOWN)

    def is_last_return(self) -> bool:
        return self.return_mode == self.LAST_RETURN

    def is_strongest_return(self) -> bool:
        return self.return_mode == self.STRONGEST_RETURN

    def is_dual_return(self) -> bool:
        return self.return_mode == self.DUAL_RETURN

    def utc_data(self, index: int) -> int:
        return self.utc[index if index < len(self.utc) else 0]

    def micro_lidar_time(self) -> int:
        """Lidar time in microseconds; calendar years count from 2000."""
        return micro_lidar_time(self.utc, self.timestamp, 100)


@dataclass(frozen=True)
class XtV1Header:
    """Header of a 6.1 packet."""

    SEQUENCE_NUM_FLAG: ClassVar[int] = 0x01
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
    def from_bytes(cls, data: bytes) -> "XtV1Header":
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

    def packet_size(self) -> int:
        """Expected size in bytes of a whole packet with this header."""
        size = (
            PRE_HEADER_SIZE
            + self.SIZE
            + XtV1Tail.SIZE
            + (AZIMUTH_SIZE + XtV1ChannelData.SIZE * self.laser_num) * self.block_num
        )
        return size & 0xFFFF