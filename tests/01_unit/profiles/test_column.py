import numpy as np
import pytest

from harmonia.exceptions import InvalidArgumentError
from harmonia.profiles import (
    column_from_partial_column,
    stratospheric_column_from_partial_column_and_altitude,
    stratospheric_column_from_partial_column_and_pressure,
    tropospheric_column_from_partial_column_and_altitude,
    tropospheric_column_from_partial_column_and_pressure,
)

PARTIAL_COLUMN = np.array([4.0, 3.0, 2.0, 1.0])
ALTITUDE_BOUNDS = np.array(
    [[0.0, 2000.0], [2000.0, 4000.0], [4000.0, 8000.0], [8000.0, 16000.0]]
)
PRESSURE_BOUNDS = np.array(
    [[100000.0, 80000.0], [80000.0, 60000.0], [60000.0, 30000.0], [30000.0, 10000.0]]
)


def test_column_all_nan():
    assert np.isnan(column_from_partial_column([np.nan, np.nan, np.nan]))


def test_column_skips_nan():
    assert column_from_partial_column([1.0, np.nan, 2.0]) == 3.0
    np.testing.assert_array_equal(
        column_from_partial_column([[1.0, 2.0], [np.nan, np.nan]]), [3.0, np.nan]
    )


@pytest.mark.parametrize("tropopause", [500.0, 2000.0, 5000.0, 15999.0])
def test_altitude_split_adds_up(tropopause):
    tropospheric = tropospheric_column_from_partial_column_and_altitude(
        PARTIAL_COLUMN, ALTITUDE_BOUNDS, tropopause
    )
    stratospheric = stratospheric_column_from_partial_column_and_altitude(
        PARTIAL_COLUMN, ALTITUDE_BOUNDS, tropopause
    )
    assert tropospheric + stratospheric == pytest.approx(
        column_from_partial_column(PARTIAL_COLUMN)
    )


@pytest.mark.parametrize("tropopause", [90000.0, 80000.0, 45000.0, 10001.0])
def test_pressure_split_adds_up(tropopause):
    tropospheric = tropospheric_column_from_partial_column_and_pressure(
        PARTIAL_COLUMN, PRESSURE_BOUNDS, tropopause
    )
    stratospheric = stratospheric_column_from_partial_column_and_pressure(
        PARTIAL_COLUMN, PRESSURE_BOUNDS, tropopause
    )
    assert tropospheric + stratospheric == pytest.approx(
        column_from_partial_column(PARTIAL_COLUMN)
    )


def test_altitude_proration():
    # Tropopause at mid-height of the third layer
    assert tropospheric_column_from_partial_column_and_altitude(
        PARTIAL_COLUMN, ALTITUDE_BOUNDS, 6000.0
    ) == pytest.approx(8.0)
    assert stratospheric_column_from_partial_column_and_altitude(
        PARTIAL_COLUMN, ALTITUDE_BOUNDS, 6000.0
    ) == pytest.approx(2.0)


def test_pressure_proration():
    # Tropopause at the log-pressure midpoint of the first layer
    tropopause = np.sqrt(100000.0 * 80000.0)
    assert tropospheric_column_from_partial_column_and_pressure(
        PARTIAL_COLUMN, PRESSURE_BOUNDS, tropopause
    ) == pytest.approx(2.0)


def test_region_outside_profile():
    # Tropopause below the profile: no tropospheric layer
    assert np.isnan(
        tropospheric_column_from_partial_column_and_altitude(
            PARTIAL_COLUMN, ALTITUDE_BOUNDS, -100.0
        )
    )
    # Missing tropopause
    assert np.isnan(
        stratospheric_column_from_partial_column_and_altitude(
            PARTIAL_COLUMN, ALTITUDE_BOUNDS, np.nan
        )
    )


def test_broadcast_over_samples():
    partial_column = np.stack([PARTIAL_COLUMN, 2.0 * PARTIAL_COLUMN])
    bounds = np.stack([ALTITUDE_BOUNDS, ALTITUDE_BOUNDS])
    result = tropospheric_column_from_partial_column_and_altitude(
        partial_column, bounds, np.array([6000.0, 16000.0])
    )
    np.testing.assert_allclose(result, [8.0, 20.0])


def test_invalid_bounds():
    with pytest.raises(InvalidArgumentError, match="altitude_bounds"):
        tropospheric_column_from_partial_column_and_altitude(
            PARTIAL_COLUMN, ALTITUDE_BOUNDS[:2], 6000.0
        )
