"""
Thermal tropopause detection following the WMO definition: the tropopause is
the lowest level at which the lapse rate drops to 2 K/km or less, provided the
average lapse rate between that level and all higher levels within 2 km does
not exceed 2 K/km.
"""

from __future__ import annotations

import numpy as np

from ..constants import EPSILON
from ..units import unit_registry as ureg
from ._conversion import _as_profiles

#: Lapse rate threshold [K/m]
LAPSE_RATE_THRESHOLD = 0.002

#: Levels at higher pressure than this are never considered [Pa]
PRESSURE_WINDOW_BOTTOM = 50000.0

#: Levels at lower or equal pressure than this are never considered [Pa]
PRESSURE_WINDOW_TOP = 5000.0

#: Depth of the layer above a candidate level over which the average lapse
#: rate is checked [m]
LOOK_AHEAD_DEPTH = 2000.0


@ureg.wraps(ret=None, args=("m", "Pa", "K"), strict=False)
def tropopause_index_from_altitude_and_temperature(altitude, pressure, temperature):
    """
    Find the WMO thermal tropopause level of a profile.

    Parameters
    ----------
    altitude : array-like
        Altitude profile, surface first [m].

    pressure : array-like
        Pressure profile, surface first [Pa].

    temperature : array-like
        Temperature profile, surface first [K].

    Returns
    -------
    int or None
        Index of the tropopause level, or ``None`` if the search window
        (50000 Pa, 5000 Pa] is empty, if altitude decreases within the window
        or if no level qualifies.
    """
    z, p, t = _as_profiles(altitude=altitude, pressure=pressure, temperature=temperature)
    n = z.shape[0]

    i = 1
    while i < n - 1 and p[i] > PRESSURE_WINDOW_BOTTOM:
        i += 1
    if i >= n - 1:
        return None

    height = z[i] - z[i - 1]
    if height < 0:
        return None
    lapse_below = (t[i - 1] - t[i]) / height if height >= EPSILON else np.nan

    while i < n - 1 and p[i] > PRESSURE_WINDOW_TOP:
        height = z[i + 1] - z[i]
        if height < 0:
            return None

        # Layers that are too thin carry the lapse rate of the layer below
        lapse_above = (t[i] - t[i + 1]) / height if height >= EPSILON else lapse_below

        if lapse_below > LAPSE_RATE_THRESHOLD and lapse_above <= LAPSE_RATE_THRESHOLD:
            lapse_rates = []
            k = i + 2
            while k < n and z[k] <= z[i] + LOOK_AHEAD_DEPTH:
                height = z[k] - z[k - 1]
                if height >= EPSILON:
                    lapse_rates.append((t[k - 1] - t[k]) / height)
                k += 1

            if not lapse_rates or np.mean(lapse_rates) <= LAPSE_RATE_THRESHOLD:
                return i

        lapse_below = lapse_above
        i += 1

    return None


@ureg.wraps(ret=None, args=("m", "Pa", "K"), strict=False)
def tropopause_altitude_from_altitude_and_temperature(altitude, pressure, temperature):
    """
    Return the altitude [m] of the WMO thermal tropopause, or NaN if there is
    none. See :func:`tropopause_index_from_altitude_and_temperature`.
    """
    index = tropopause_index_from_altitude_and_temperature(altitude, pressure, temperature)
    if index is None:
        return np.nan
    return float(np.asarray(altitude, dtype=np.float64)[index])


@ureg.wraps(ret=None, args=("m", "Pa", "K"), strict=False)
def tropopause_pressure_from_altitude_and_temperature(altitude, pressure, temperature):
    """
    Return the pressure [Pa] of the WMO thermal tropopause, or NaN if there is
    none. See :func:`tropopause_index_from_altitude_and_temperature`.
    """
    index = tropopause_index_from_altitude_and_temperature(altitude, pressure, temperature)
    if index is None:
        return np.nan
    return float(np.asarray(pressure, dtype=np.float64)[index])
