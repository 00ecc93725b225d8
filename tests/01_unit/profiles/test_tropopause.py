import numpy as np
import pytest

from harmonia.profiles import (
    tropopause_altitude_from_altitude_and_temperature,
    tropopause_index_from_altitude_and_temperature,
    tropopause_pressure_from_altitude_and_temperature,
)

PRESSURE = np.array([70000.0, 50500.0, 30000.0, 10000.0, 6000.0])
ALTITUDE = np.array([0.0, 1000.0, 2000.0, 3000.0, 4000.0])


@pytest.fixture
def temperature_with_tropopause():
    # Lapse rate drops from 6 K/km to 1 K/km at the 30000 Pa level
    return np.array([300.0, 294.0, 288.0, 287.0, 286.0])


@pytest.fixture
def temperature_without_tropopause():
    # Constant 7 K/km lapse rate
    return np.array([300.0, 293.0, 286.0, 279.0, 272.0])


def test_tropopause_index(temperature_with_tropopause):
    assert (
        tropopause_index_from_altitude_and_temperature(
            ALTITUDE, PRESSURE, temperature_with_tropopause
        )
        == 2
    )


def test_tropopause_not_found(temperature_without_tropopause):
    assert (
        tropopause_index_from_altitude_and_temperature(
            ALTITUDE, PRESSURE, temperature_without_tropopause
        )
        is None
    )
    assert np.isnan(
        tropopause_altitude_from_altitude_and_temperature(
            ALTITUDE, PRESSURE, temperature_without_tropopause
        )
    )
    assert np.isnan(
        tropopause_pressure_from_altitude_and_temperature(
            ALTITUDE, PRESSURE, temperature_without_tropopause
        )
    )


def test_tropopause_altitude_pressure(temperature_with_tropopause):
    assert tropopause_altitude_from_altitude_and_temperature(
        ALTITUDE, PRESSURE, temperature_with_tropopause
    ) == pytest.approx(2000.0)
    assert tropopause_pressure_from_altitude_and_temperature(
        ALTITUDE, PRESSURE, temperature_with_tropopause
    ) == pytest.approx(30000.0)


def test_tropopause_look_ahead():
    # The lapse rate drops at level 1 but the average lapse rate within 2 km
    # above exceeds the threshold: the next candidate (level 4) is retained
    pressure = np.array([70000.0, 45000.0, 30000.0, 20000.0, 15000.0, 10000.0, 8000.0])
    altitude = np.array([0.0, 1000.0, 2000.0, 3000.0, 4000.0, 5000.0, 6000.0])
    temperature = np.array([300.0, 294.0, 293.0, 287.0, 281.0, 280.5, 280.0])

    assert (
        tropopause_index_from_altitude_and_temperature(altitude, pressure, temperature)
        == 4
    )


def test_tropopause_decreasing_altitude(temperature_with_tropopause):
    altitude = np.array([0.0, 1000.0, 500.0, 3000.0, 4000.0])
    assert (
        tropopause_index_from_altitude_and_temperature(
            altitude, PRESSURE, temperature_with_tropopause
        )
        is None
    )


def test_tropopause_empty_window(temperature_with_tropopause):
    # All levels below the search window
    pressure = np.full(5, 90000.0)
    assert (
        tropopause_index_from_altitude_and_temperature(
            ALTITUDE, pressure, temperature_with_tropopause
        )
        is None
    )
