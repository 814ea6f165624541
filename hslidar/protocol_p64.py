"""Packet structures of the Pandar64 UDP protocol."""

from __future__ import annotations

import calendar
import struct
from dataclasses import dataclass
from typing import ClassVar


def _float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


def micro_lidar_time(utc: bytes, timestamp: int, year_offset: int = 100) -> int:
    """Lidar time in microseconds from the 6 UTC bytes and the microsecond stamp.

    A non-zero first byte means calendar fields (years counted from 1900 after
    adding ``year_offset``); otherwise bytes 2..5 hold big-endian unix seconds.
    """
    if utc[0] != 0:
        tm_year = utc[0] + year_offset
        if tm_year >= 200:
            tm_year -= 100
        extra_years, month0 = divmod(utc[1] - 1, 12)
        seconds = calendar.timegm(
            (1900 + tm_year + extra_years, month0 + 1, utc[2], utc[3], utc[4], utc[5], 0, 0, 0)
        )
    else:
        seconds = int.from_bytes(bytes(utc[2:6]), "big")
    return seconds * 1000000 + timestamp


@dataclass(frozen=True)
class P64Header:
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<H6B")
    SIZE: ClassVar[int] = _LAYOUT.size

    sob: int
    laser_num: int
    block_num: int
    return_type: int
    raw_dist_unit: int
    reserved0: int
    reserved1: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "P64Header":
        _require(data, cls.SIZE, "header")
        return cls(*cls._LAYOUT.unpack_from(data))

    def dist_unit(self) -> float:
        """Distance unit in metres."""
        return _float32(self.raw_dist_unit / 1000.0)


@dataclass(frozen=True)
class P64ChannelUnit:
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HB")
    SIZE: ClassVar[int] = _LAYOUT.size

    distance: int
    reflectivity: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "P64ChannelUnit":
        _require(data, cls.SIZE, "channel unit")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class P64Azimuth:
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<H")
    SIZE: ClassVar[int] = _LAYOUT.size

    azimuth: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "P64Azimuth":
        _require(data, cls.SIZE, "azimuth")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class P64SeqNum:
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<I")
    SIZE: ClassVar[int] = _LAYOUT.size

    seq_num: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "P64SeqNum":
        _require(data, cls.SIZE, "sequence number")
        return cls(*cls._LAYOUT.unpack_from(data))


@dataclass(frozen=True)
class P64Tail:
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HB2sBHHIBB6s")
    SIZE: ClassVar[int] = _LAYOUT.size

    status_data: int
    status_id: int
    reserved: bytes
    shutdown: int
    error_code: int
    motor_speed: int
    timestamp: int
    return_mode: int
    factory_info: int
    utc: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "P64Tail":
        _require(data, cls.SIZE, "tail")
        return cls(*cls._LAYOUT.unpack_from(data))

    def utc_data(self, index: int) -> int:
        return self.utc[index if index < len(self.utc) else 0]

    def micro_lidar_time(self) -> int:
        return micro_lidar_time(self.utc, self.timestamp, 100)