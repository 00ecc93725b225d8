import numpy as np
import pytest

from harmonia.exceptions import InvalidArgumentError
from harmonia.profiles import (
    altitude_from_gph_and_latitude,
    column_mass_density_from_surface_pressure_and_profile,
    geopotential_from_gph,
    gph_from_altitude_and_latitude,
    gph_from_geopotential,
    pressure_bounds_from_hybrid_coefficients,
    pressure_from_hybrid_coefficients,
    profile_altitude_from_pressure,
    profile_gph_from_pressure,
    profile_pressure_from_altitude,
    profile_pressure_from_gph,
    surface_first_order,
    valid_length,
)
from harmonia.units import unit_registry as ureg

PRESSURE = np.array([90000.0, 50000.0, 10000.0])
TEMPERATURE = np.array([290.0, 250.0, 220.0])
MOLAR_MASS = np.array([28.9, 28.9, 28.9])


def test_altitude_from_pressure_worked_scenario():
    altitude = profile_altitude_from_pressure(
        PRESSURE, TEMPERATURE, MOLAR_MASS, 100000.0, 0.0, 45.0
    )

    assert np.all(np.diff(altitude) > 0)
    assert 700.0 < altitude[0] < 1000.0
    assert altitude[1] == pytest.approx(5550.0, rel=0.02)
    assert altitude[2] == pytest.approx(16650.0, rel=0.02)


def test_altitude_from_pressure_first_layer():
    # Hypsometric equation with normal gravity at 45 degrees
    altitude = profile_altitude_from_pressure(
        PRESSURE, TEMPERATURE, MOLAR_MASS, 100000.0, 0.0, 45.0
    )
    expected = 8.3144621 / 9.80619920 * 290.0 / 28.9e-3 * np.log(100000.0 / 90000.0)
    assert altitude[0] == pytest.approx(expected, rel=1e-6)


def test_altitude_from_pressure_orientation():
    # A top-of-atmosphere first profile gives the reversed result
    surface_first = profile_altitude_from_pressure(
        PRESSURE, TEMPERATURE, MOLAR_MASS, 100000.0, 0.0, 45.0
    )
    toa_first = profile_altitude_from_pressure(
        PRESSURE[::-1], TEMPERATURE[::-1], MOLAR_MASS, 100000.0, 0.0, 45.0
    )
    np.testing.assert_allclose(toa_first, surface_first[::-1])


@pytest.mark.parametrize("reverse", [False, True], ids=["surface_first", "toa_first"])
@pytest.mark.parametrize("latitude", [0.0, 45.0, -80.0])
def test_pressure_altitude_round_trip(reverse, latitude):
    pressure = np.array([95000.0, 80000.0, 60000.0, 30000.0, 10000.0, 1000.0])
    temperature = np.array([288.0, 280.0, 265.0, 235.0, 210.0, 230.0])
    molar_mass = np.full(6, 28.9644)
    if reverse:
        pressure, temperature = pressure[::-1], temperature[::-1]

    altitude = profile_altitude_from_pressure(
        pressure, temperature, molar_mass, 101325.0, 120.0, latitude
    )
    result = profile_pressure_from_altitude(
        altitude, temperature, molar_mass, 101325.0, 120.0, latitude
    )
    np.testing.assert_allclose(result, pressure, rtol=1e-6)


def test_pressure_gph_round_trip():
    gph = np.array([500.0, 2000.0, 8000.0, 20000.0])
    temperature = np.array([285.0, 275.0, 235.0, 215.0])
    molar_mass = np.full(4, 28.9644)

    pressure = profile_pressure_from_gph(gph, temperature, molar_mass, 101325.0, 0.0)
    assert np.all(np.diff(pressure) < 0)

    result = profile_gph_from_pressure(
        pressure, temperature, molar_mass, 101325.0, 0.0
    )
    np.testing.assert_allclose(result, gph, rtol=1e-9)


def test_profile_quantities():
    # Quantities are converted to the expected units
    altitude = profile_altitude_from_pressure(
        ureg.Quantity(PRESSURE / 100.0, "hPa"),
        TEMPERATURE,
        ureg.Quantity(MOLAR_MASS * 1e-3, "kg/mol"),
        ureg.Quantity(1.0, "bar"),
        ureg.Quantity(0.0, "km"),
        45.0,
    )
    expected = profile_altitude_from_pressure(
        PRESSURE, TEMPERATURE, MOLAR_MASS, 100000.0, 0.0, 45.0
    )
    np.testing.assert_allclose(altitude, expected)


def test_profile_inconsistent_lengths():
    with pytest.raises(InvalidArgumentError, match="temperature"):
        profile_altitude_from_pressure(
            PRESSURE, TEMPERATURE[:2], MOLAR_MASS, 100000.0, 0.0, 45.0
        )


@pytest.mark.parametrize("latitude", [0.0, 30.0, 60.0, 90.0])
def test_gph_altitude_round_trip(latitude):
    altitude = np.array([0.0, 1000.0, 10000.0, 50000.0])
    gph = gph_from_altitude_and_latitude(altitude, latitude)

    # Geopotential height lags behind altitude as gravity decreases
    assert np.all(gph[1:] < altitude[1:] * 1.01)
    np.testing.assert_allclose(
        altitude_from_gph_and_latitude(gph, latitude), altitude, atol=1e-6
    )


def test_geopotential():
    assert geopotential_from_gph(1000.0) == pytest.approx(9806.65)
    assert gph_from_geopotential(9806.65) == pytest.approx(1000.0)
    assert gph_from_geopotential(ureg.Quantity(9.80665e-3, "km^2/s^2")) == pytest.approx(
        1000.0
    )


def test_surface_first_order():
    np.testing.assert_array_equal(
        surface_first_order(np.array([1.0, 2.0, 3.0]), increases_upward=True),
        [0, 1, 2],
    )
    np.testing.assert_array_equal(
        surface_first_order(np.array([3.0, 2.0, 1.0]), increases_upward=True),
        [2, 1, 0],
    )
    np.testing.assert_array_equal(
        surface_first_order(np.array([3.0, 2.0, 1.0]), increases_upward=False),
        [0, 1, 2],
    )


def test_valid_length():
    assert valid_length([1.0, 2.0, np.nan, np.nan]) == 2
    assert valid_length([1.0, np.nan, 3.0]) == 3
    assert valid_length([np.nan, np.nan]) == 2
    assert valid_length([]) == 0


def test_column_mass_density():
    bounds = np.array([[100000.0, 50000.0], [50000.0, 0.0]])
    altitude = np.array([0.0, 0.0])
    result = column_mass_density_from_surface_pressure_and_profile(
        100000.0, bounds, altitude, 45.0
    )
    assert result == pytest.approx(100000.0 / 9.80619920, rel=1e-6)

    with pytest.raises(InvalidArgumentError):
        column_mass_density_from_surface_pressure_and_profile(
            100000.0, bounds[:1], altitude, 45.0
        )


def test_hybrid_coefficients():
    # Interfaces given from the top of atmosphere down
    a = np.array([0.0, 5000.0, 0.0])
    b = np.array([0.0, 0.2, 1.0])

    bounds = pressure_bounds_from_hybrid_coefficients(a, b, 100000.0)
    np.testing.assert_allclose(bounds, [[100000.0, 25000.0], [25000.0, 0.0]])

    pressure = pressure_from_hybrid_coefficients(a, b, np.array([100000.0, 50000.0]))
    np.testing.assert_allclose(pressure, [[62500.0, 12500.0], [32500.0, 7500.0]])

    with pytest.raises(InvalidArgumentError):
        pressure_from_hybrid_coefficients(a[:1], b[:1], 100000.0)
