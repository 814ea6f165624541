"""Fault message packet (version 3) and its decoded form."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Tuple

LENS_AZIMUTH_AREA_NUM = 12
LENS_ELEVATION_AREA_NUM = 8

_LAYOUT = struct.Struct("<HB6sI6BI27s8sBB3sI32s")
MESSAGE_SIZE = _LAYOUT.size
_TEMPERATURE_SCALE = struct.unpack("<f", struct.pack("<f", 0.1))[0]


class _Coded(IntEnum):
    """Enum whose unknown codes map to its UNDEFINED member."""

    @classmethod
    def _missing_(cls, value):
        return cls.__members__["UNDEFINED"]


class DTCState(IntEnum):
    NO_FAULT = 0
    FAULT = 1


class LidarOperateState(_Coded):
    BOOT = 0
    INIT = 1
    FULL_PERFORMANCE = 2
    HALF_POWER = 3
    SLEEP_MODE = 4
    HIGH_TEMPERATURE_SHUTDOWN = 5
    FAULT_SHUTDOWN = 6
    UNDEFINED = -1


class LidarFaultState(_Coded):
    NORMAL = 0
    WARNING = 1
    PRE_PERFORMANCE_DEGRADATION = 2
    PERFORMANCE_DEGRADATION = 3
    PRE_SHUTDOWN = 4
    SHUTDOWN = 5
    PRE_RESET = 6
    RESET = 7
    UNDEFINED = -1


class FaultCodeType(_Coded):
    CURRENT = 1
    HISTORY = 2
    UNDEFINED = -1


class TDMDataIndicate(_Coded):
    INVALID = 0
    LENS_DIRTY_INFO = 1
    UNDEFINED = -1


class LensDirtyState(_Coded):
    NORMAL = 0
    PASSABLE = 1
    UNPASSABLE = 3
    UNDEFINED = -1


class HeatingState(_Coded):
    OFF = 0
    HEATING = 1
    HEATING_PROHIBIT = 2
    UNDEFINED = -1


class HighTemperatureShutdownState(_Coded):
    PRE_SHUTDOWN = 1
    SHUTDOWN_MODE_1 = 2
    SHUTDOWN_MODE_2 = 6
    SHUTDOWN_MODE_2_FAIL = 10
    UNDEFINED = -1


LensGrid = Tuple[Tuple[LensDirtyState, ...], ...]


@dataclass(frozen=True)
class FaultMessageInfo:
    """Decoded content of a fault message."""

    version: int
    utc_time: bytes
    timestamp: int
    total_time: float
    operate_state: LidarOperateState
    fault_state: LidarFaultState
    faultcode_type: FaultCodeType
    rolling_counter: int
    total_faultcode_num: int
    faultcode_id: int
    faultcode: int
    dtc_num: int
    dtc_state: DTCState
    tdm_data_indicate: TDMDataIndicate
    temperature: float
    lens_dirty_state: LensGrid
    software_id: int
    software_version: int
    hardware_version: int
    bt_version: int
    heating_state: HeatingState
    high_temperature_shutdown_state: HighTemperatureShutdownState
    reversed: bytes
    crc: int
    cyber_security: bytes


@dataclass(frozen=True)
class FaultMessage:
    """Raw fields of a 99-byte fault message."""

    SIZE: ClassVar[int] = MESSAGE_SIZE

    sob: int
    version_info: int
    utc_time: bytes
    time_stamp: int
    raw_operate_state: int
    raw_fault_state: int
    raw_fault_code_type: int
    rolling_counter: int
    total_fault_code_num: int
    fault_code_id: int
    fault_code: int
    time_division_multiplexing: bytes
    software_version: bytes
    raw_heating_state: int
    raw_high_temp_state: int
    reversed: bytes
    crc: int
    cyber_security: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "FaultMessage":
        if len(data) < MESSAGE_SIZE:
            raise ValueError(
                f"fault message needs {MESSAGE_SIZE} bytes, got {len(data)}"
            )
        return cls(*_LAYOUT.unpack_from(data))

    def dtc_state(self) -> DTCState:
        return DTCState.FAULT if self.fault_code & 0x01 else DTCState.NO_FAULT

    def operate_state(self) -> LidarOperateState:
        return LidarOperateState(self.raw_operate_state)

    def fault_state(self) -> LidarFaultState:
        return LidarFaultState(self.raw_fault_state)

    def fault_code_type(self) -> FaultCodeType:
        return FaultCodeType(self.raw_fault_code_type)

    def tdm_data_indicate(self) -> TDMDataIndicate:
        return TDMDataIndicate(self.time_division_multiplexing[0])

    def lens_dirty_state(self) -> LensGrid:
        """Per-area lens state, indexed [azimuth area][elevation area]."""
        tdm = self.time_division_multiplexing
        has_lens_info = tdm[0] == 1
        rows = []
        for area in range(LENS_AZIMUTH_AREA_NUM):
            raw = int.from_bytes(tdm[3 + area * 2 : 5 + area * 2], "little")
            rows.append(
                tuple(
                    LensDirtyState((raw >> (2 * j)) & 0x3)
                    if has_lens_info
                    else LensDirtyState.UNDEFINED
                    for j in range(LENS_ELEVATION_AREA_NUM)
                )
            )
        return tuple(rows)

    def heating_state(self) -> HeatingState:
        return HeatingState(self.raw_heating_state)

    def high_temperature_shutdown_state(self) -> HighTemperatureShutdownState:
        return HighTemperatureShutdownState(self.raw_high_temp_state)

    def temperature(self) -> float:
        raw = int.from_bytes(self.time_division_multiplexing[1:3], "little")
        return raw * _TEMPERATURE_SCALE

    def _unix_seconds(self) -> float:
        utc = self.utc_time
        if utc[0] != 0:
            year = utc[0]
            if year >= 200:
                year -= 100
            try:
                return float(
                    time.mktime(
                        (1900 + year, utc[1], utc[2], utc[3], utc[4], utc[5], 0, 0, 0)
                    )
                )
            except (OverflowError, ValueError):
                return -1.0
        return float(int.from_bytes(utc[2:6], "big"))

    def to_info(self) -> FaultMessageInfo:
        sw = self.software_version
        return FaultMessageInfo(
            version=self.version_info,
            utc_time=self.utc_time,
            timestamp=self.time_stamp,
            total_time=self._unix_seconds() + self.time_stamp / 1000000.0,
            operate_state=self.operate_state(),
            fault_state=self.fault_state(),
            faultcode_type=self.fault_code_type(),
            rolling_counter=self.rolling_counter,
            total_faultcode_num=self.total_fault_code_num,
            faultcode_id=self.fault_code_id,
            faultcode=self.fault_code,
            dtc_num=(self.fault_code & 0x0000FFC0) >> 6,
            dtc_state=self.dtc_state(),
            tdm_data_indicate=self.tdm_data_indicate(),
            temperature=self.temperature(),
            lens_dirty_state=self.lens_dirty_state(),
            software_id=int.from_bytes(sw[0:2], "little"),
            software_version=int.from_bytes(sw[2:4], "little"),
            hardware_version=int.from_bytes(sw[4:6], "little"),
            bt_version=int.from_bytes(sw[6:8], "little"),
            heating_state=self.heating_state(),
            high_temperature_shutdown_state=self.high_temperature_shutdown_state(),
            reversed=self.reversed,
            crc=self.crc,
            cyber_security=self.cyber_security,
        )