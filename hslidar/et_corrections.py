"""Angle correction tables of the ET lidar (UDP 2.5 protocol)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

ET_MAX_CHANNEL_NUM = 512
ADJUST_TABLE_SIZE = 3000

_AZIMUTH_FOV = 120.0
_ELEVATION_FOV = 25.0
_ADJUST_INTERVAL_RESOLUTION = 0.5


@dataclass
class ETCorrectionsHeader:
    """Header of an ET correction file."""

    delimiter: bytes = b"\x00\x00"
    major_version: int = 0
    min_version: int = 0
    reserved1: int = 0
    reserved2: int = 0
    channel_number: int = 0
    mirror_number_reserved3: int = 0
    angle_division: int = 1
    apha: int = 0
    beta: int = 0
    gamma: int = 0


def _zeros(n: int) -> List[int]:
    return [0] * n


@dataclass
class ETCorrections:
    """Per-channel angles and the azimuth/elevation adjustment grids."""

    header: ETCorrectionsHeader = field(default_factory=ETCorrectionsHeader)
    azimuths: List[float] = field(default_factory=lambda: [0.0] * ET_MAX_CHANNEL_NUM)
    elevations: List[float] = field(default_factory=lambda: [0.0] * ET_MAX_CHANNEL_NUM)
    raw_azimuths: List[int] = field(default_factory=lambda: _zeros(ET_MAX_CHANNEL_NUM))
    raw_elevations: List[int] = field(default_factory=lambda: _zeros(ET_MAX_CHANNEL_NUM))
    elevation_adjust: List[int] = field(default_factory=lambda: _zeros(ADJUST_TABLE_SIZE))
    azimuth_adjust: List[int] = field(default_factory=lambda: _zeros(ADJUST_TABLE_SIZE))
    azimuth_adjust_interval: int = 0
    elevation_adjust_interval: int = 0
    sha_value: bytes = bytes(32)

    def _interpolate(self, table: Sequence[int], azi: float, ele: float) -> float:
        az_step = self.azimuth_adjust_interval * _ADJUST_INTERVAL_RESOLUTION
        el_step = self.elevation_adjust_interval * _ADJUST_INTERVAL_RESOLUTION
        if az_step <= 0 or el_step <= 0:
            raise ValueError("adjust intervals must be positive")
        az_num = int(_AZIMUTH_FOV / az_step + 1)
        el_num = int(_ELEVATION_FOV / el_step + 1)
        i1 = int((azi + _AZIMUTH_FOV / 2) / az_step)
        i2 = int((ele + _ELEVATION_FOV / 2) / el_step)
        if i1 >= az_num - 1 or i2 >= el_num - 1:
            return 0.0
        if i1 < 0 or i2 < 0:
            return 0.0
        c1 = ((i1 + 1) * az_step - azi - _AZIMUTH_FOV / 2) / az_step
        c2 = ((i2 + 1) * el_step - ele - _ELEVATION_FOV / 2) / el_step
        row = i2 * az_num
        next_row = (i2 + 1) * az_num
        offset1 = c1 * table[i1 + row] + (1 - c1) * table[i1 + 1 + row]
        offset2 = c1 * table[i1 + next_row] + (1 - c1) * table[i1 + 1 + next_row]
        return (c2 * offset1 + (1 - c2) * offset2) / self.header.angle_division

    def azimuth_adjust_v2(self, azi: float, ele: float) -> float:
        """Bilinear azimuth adjustment at (azi, ele) in degrees; 0 outside the grid."""
        return self._interpolate(self.azimuth_adjust, azi, ele)

    def elevation_adjust_v2(self, azi: float, ele: float) -> float:
        """Bilinear elevation adjustment at (azi, ele) in degrees; 0 outside the grid."""
        return self._interpolate(self.elevation_adjust, azi, ele)