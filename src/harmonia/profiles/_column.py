"""
Integration of partial column profiles into total, tropospheric and
stratospheric columns.

All functions operate along the last axis and broadcast over leading
dimensions. NaN partial columns are ignored; a column is NaN only if no layer
contributes to it. Bounds arrays are shaped (..., N, 2), with the lower
(surface side) bound at index 0 of the last axis.
"""

from __future__ import annotations

import numpy as np

from ..exceptions import InvalidArgumentError


def _check_bounds(partial_column: np.ndarray, bounds: np.ndarray, name: str) -> None:
    if bounds.shape[-1:] != (2,) or bounds.shape[-2:-1] != partial_column.shape[-1:]:
        raise InvalidArgumentError(
            f"'{name}' must be shaped (..., {partial_column.shape[-1]}, 2), "
            f"got {bounds.shape}"
        )


def _integrate(partial_column: np.ndarray, fraction: np.ndarray) -> np.ndarray:
    # A layer contributes if its partial column is valid and its fraction is
    # not NaN (NaN marks layers outside the integrated region)
    contributes = ~np.isnan(partial_column) & ~np.isnan(fraction)
    column = np.sum(np.where(contributes, partial_column * fraction, 0.0), axis=-1)
    return np.where(np.any(contributes, axis=-1), column, np.nan)[()]


def column_from_partial_column(partial_column):
    """
    Integrate a partial column profile into a total column.

    Parameters
    ----------
    partial_column : array-like
        Partial column profile(s), vertical dimension last.

    Returns
    -------
    float or ndarray
        Total column, NaN if every partial column is NaN.
    """
    partial_column = np.asarray(partial_column, dtype=np.float64)
    return _integrate(partial_column, np.ones_like(partial_column))


def tropospheric_column_from_partial_column_and_altitude(
    partial_column, altitude_bounds, tropopause_altitude
):
    """
    Integrate the part of a partial column profile below the tropopause. The
    layer containing the tropopause is prorated linearly in altitude.

    Parameters
    ----------
    partial_column : array-like
        Partial column profile(s), shaped (..., N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    tropopause_altitude : float or array-like
        Tropopause altitude, shaped (...) [m].

    Returns
    -------
    float or ndarray
        Tropospheric column.
    """
    partial_column = np.asarray(partial_column, dtype=np.float64)
    bounds = np.asarray(altitude_bounds, dtype=np.float64)
    _check_bounds(partial_column, bounds, "altitude_bounds")
    trop = np.asarray(tropopause_altitude, dtype=np.float64)[..., np.newaxis]
    lower, upper = bounds[..., 0], bounds[..., 1]

    with np.errstate(divide="ignore", invalid="ignore"):
        fraction = np.where(upper <= trop, 1.0, (trop - lower) / (upper - lower))
    fraction = np.where(lower < trop, fraction, np.nan)

    return _integrate(partial_column, fraction)


def stratospheric_column_from_partial_column_and_altitude(
    partial_column, altitude_bounds, tropopause_altitude
):
    """
    Integrate the part of a partial column profile above the tropopause. The
    layer containing the tropopause is prorated linearly in altitude, so that
    tropospheric and stratospheric columns add up to the total column.

    Parameters
    ----------
    partial_column : array-like
        Partial column profile(s), shaped (..., N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    tropopause_altitude : float or array-like
        Tropopause altitude, shaped (...) [m].

    Returns
    -------
    float or ndarray
        Stratospheric column.
    """
    partial_column = np.asarray(partial_column, dtype=np.float64)
    bounds = np.asarray(altitude_bounds, dtype=np.float64)
    _check_bounds(partial_column, bounds, "altitude_bounds")
    trop = np.asarray(tropopause_altitude, dtype=np.float64)[..., np.newaxis]
    lower, upper = bounds[..., 0], bounds[..., 1]

    with np.errstate(divide="ignore", invalid="ignore"):
        fraction = np.where(lower >= trop, 1.0, (upper - trop) / (upper - lower))
    fraction = np.where(upper > trop, fraction, np.nan)

    return _integrate(partial_column, fraction)


def tropospheric_column_from_partial_column_and_pressure(
    partial_column, pressure_bounds, tropopause_pressure
):
    """
    Integrate the part of a partial column profile below the tropopause. The
    layer containing the tropopause is prorated linearly in log-pressure.

    Parameters
    ----------
    partial_column : array-like
        Partial column profile(s), shaped (..., N).

    pressure_bounds : array-like
        Pressure bounds, shaped (..., N, 2) [Pa].

    tropopause_pressure : float or array-like
        Tropopause pressure, shaped (...) [Pa].

    Returns
    -------
    float or ndarray
        Tropospheric column.
    """
    partial_column = np.asarray(partial_column, dtype=np.float64)
    bounds = np.asarray(pressure_bounds, dtype=np.float64)
    _check_bounds(partial_column, bounds, "pressure_bounds")
    trop = np.asarray(tropopause_pressure, dtype=np.float64)[..., np.newaxis]
    lower, upper = bounds[..., 0], bounds[..., 1]

    with np.errstate(divide="ignore", invalid="ignore"):
        fraction = np.where(
            upper >= trop, 1.0, np.log(trop / lower) / np.log(upper / lower)
        )
    fraction = np.where(lower > trop, fraction, np.nan)

    return _integrate(partial_column, fraction)


def stratospheric_column_from_partial_column_and_pressure(
    partial_column, pressure_bounds, tropopause_pressure
):
    """
    Integrate the part of a partial column profile above the tropopause. The
    layer containing the tropopause is prorated linearly in log-pressure, so
    that tropospheric and stratospheric columns add up to the total column.

    Parameters
    ----------
    partial_column : array-like
        Partial column profile(s), shaped (..., N).

    pressure_bounds : array-like
        Pressure bounds, shaped (..., N, 2) [Pa].

    tropopause_pressure : float or array-like
        Tropopause pressure, shaped (...) [Pa].

    Returns
    -------
    float or ndarray
        Stratospheric column.
    """
    partial_column = np.asarray(partial_column, dtype=np.float64)
    bounds = np.asarray(pressure_bounds, dtype=np.float64)
    _check_bounds(partial_column, bounds, "pressure_bounds")
    trop = np.asarray(tropopause_pressure, dtype=np.float64)[..., np.newaxis]
    lower, upper = bounds[..., 0], bounds[..., 1]

    with np.errstate(divide="ignore", invalid="ignore"):
        fraction = np.where(
            lower <= trop, 1.0, np.log(upper / trop) / np.log(upper / lower)
        )
    fraction = np.where(upper < trop, fraction, np.nan)

    return _integrate(partial_column, fraction)
