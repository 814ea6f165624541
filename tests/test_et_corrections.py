import pytest

from hslidar.et_corrections import ADJUST_TABLE_SIZE, ETCorrections, ETCorrectionsHeader


def _corrections(interval=2, division=1):
    c = ETCorrections(header=ETCorrectionsHeader(angle_division=division))
    c.azimuth_adjust_interval = interval
    c.elevation_adjust_interval = interval
    return c


def test_header_defaults():
    header = ETCorrectionsHeader()
    assert header.angle_division == 1
    assert header.major_version == 0
    assert header.min_version == 0


def test_default_tables_sizes():
    c = ETCorrections()
    assert len(c.azimuth_adjust) == ADJUST_TABLE_SIZE
    assert len(c.elevation_adjust) == ADJUST_TABLE_SIZE
    assert len(c.azimuths) == len(c.raw_elevations) == 512


def test_zero_tables_give_zero():
    c = _corrections()
    assert c.azimuth_adjust_v2(10.3, 2.7) == 0.0
    assert c.elevation_adjust_v2(-20.1, -5.2) == 0.0


@pytest.mark.parametrize("azi,ele", [(0.0, 0.0), (-33.3, 4.4), (45.7, -11.0)])
def test_constant_table_gives_value_over_division(azi, ele):
    c = _corrections(division=4)
    c.azimuth_adjust = [8] * ADJUST_TABLE_SIZE
    c.elevation_adjust = [12] * ADJUST_TABLE_SIZE
    assert c.azimuth_adjust_v2(azi, ele) == pytest.approx(8 / 4)
    assert c.elevation_adjust_v2(azi, ele) == pytest.approx(12 / 4)


def test_grid_point_reads_table_cell():
    c = _corrections(interval=2)
    # step 1 degree, 121 columns: azi -57 -> column 3, ele -10.5 -> row 2
    c.azimuth_adjust[3 + 2 * 121] = 40
    assert c.azimuth_adjust_v2(-57.0, -10.5) == pytest.approx(40)
    assert c.elevation_adjust_v2(-57.0, -10.5) == 0.0


def test_midpoint_interpolates_between_columns():
    c = _corrections(interval=2)
    c.elevation_adjust[3 + 2 * 121] = 40
    c.elevation_adjust[4 + 2 * 121] = 20
    assert c.elevation_adjust_v2(-56.5, -10.5) == pytest.approx((40 + 20) / 2)


@pytest.mark.parametrize("azi,ele", [(100.0, 0.0), (-100.0, 0.0), (0.0, 20.0), (0.0, -20.0), (60.0, 0.0)])
def test_outside_grid_is_zero(azi, ele):
    c = _corrections()
    c.azimuth_adjust = [5] * ADJUST_TABLE_SIZE
    assert c.azimuth_adjust_v2(azi, ele) == 0.0


def test_zero_interval_raises():
    c = ETCorrections()
    with pytest.raises(ValueError):
        c.azimuth_adjust_v2(0.0, 0.0)
    with pytest.raises(ValueError):
        c.elevation_adjust_v2(0.0, 0.0)