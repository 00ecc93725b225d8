"""
Conversions between pressure, altitude and geopotential height profiles.

Profiles may be stored either from the surface upward or from the top of the
atmosphere downward. Each profile integrator detects the storage order from
the end points of its driving axis, integrates from the surface upward, and
writes results back at the caller's indices.
"""

from __future__ import annotations

import numpy as np

from ..constants import MOLAR_GAS_CONSTANT, STANDARD_GRAVITY
from ..exceptions import InvalidArgumentError
from ..geodesy import (
    gravity_from_latitude_and_altitude,
    local_curvature_radius_at_surface_from_latitude,
    normal_gravity_from_latitude,
)
from ..units import unit_registry as ureg

_G0 = STANDARD_GRAVITY.m_as("m / s ** 2")
_R = MOLAR_GAS_CONSTANT.m_as("J / mol / K")


# ------------------------------------------------------------------------------
#                                 Helpers
# ------------------------------------------------------------------------------


def _as_profiles(**profiles) -> list[np.ndarray]:
    # Convert profiles to 1D double arrays of equal length
    result = []
    length = None

    for name, values in profiles.items():
        values = np.asarray(values, dtype=np.float64)

        if values.ndim != 1:
            raise InvalidArgumentError(
                f"'{name}' must be a 1D profile, got an array of shape "
                f"{values.shape}"
            )

        if length is None:
            length = values.shape[0]
        elif values.shape[0] != length:
            raise InvalidArgumentError(
                f"'{name}' has {values.shape[0]} levels, expected {length}"
            )

        result.append(values)

    return result


def surface_first_order(axis: np.ndarray, increases_upward: bool) -> np.ndarray:
    """
    Return the level indices of a profile ordered from the surface upward.

    Parameters
    ----------
    axis : ndarray
        Driving vertical axis of the profile (pressure, altitude, ...).

    increases_upward : bool
        ``True`` if the axis values increase with height (altitude,
        geopotential height), ``False`` if they decrease (pressure).

    Returns
    -------
    ndarray
        Index map such that ``axis[order]`` runs from the surface upward.
    """
    indices = np.arange(axis.shape[0])

    if axis.shape[0] == 0:
        return indices

    if increases_upward:
        toa_first = axis[0] > axis[-1]
    else:
        toa_first = axis[0] < axis[-1]

    return indices[::-1] if toa_first else indices


def valid_length(profile) -> int:
    """
    Return the number of levels of a profile once trailing NaN padding is
    discarded. An all-NaN profile is considered full length.
    """
    profile = np.asarray(profile)
    valid = np.flatnonzero(~np.isnan(profile))
    return int(valid[-1]) + 1 if valid.size else profile.shape[0]


def _layer_ratio(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    # Ratio of each level's value (first level) or of the sum of the two
    # bounding levels' values (other levels), in surface-first order
    ratio = np.empty_like(numerator)
    ratio[:1] = numerator[:1] / denominator[:1]
    ratio[1:] = (numerator[:-1] + numerator[1:]) / (denominator[:-1] + denominator[1:])
    return ratio


# ------------------------------------------------------------------------------
#                     Geopotential height / altitude
# ------------------------------------------------------------------------------


@ureg.wraps(ret=None, args=("m", "deg"), strict=False)
def altitude_from_gph_and_latitude(gph, latitude):
    r"""
    Convert geopotential height to geometric altitude.

    .. math::
       z = \frac{g_0 R h}{g R - g_0 h}

    where :math:`g_0` is the standard gravity, :math:`g` the normal gravity at
    the given latitude and :math:`R` the local earth radius.

    Parameters
    ----------
    gph : float or array-like
        Geopotential height [m].

    latitude : float or array-like
        Latitude [deg].

    Returns
    -------
    float or array-like
        Altitude [m].
    """
    g = normal_gravity_from_latitude(latitude)
    r = local_curvature_radius_at_surface_from_latitude(latitude)
    return _G0 * r * gph / (g * r - _G0 * gph)


@ureg.wraps(ret=None, args=("m", "deg"), strict=False)
def gph_from_altitude_and_latitude(altitude, latitude):
    r"""
    Convert geometric altitude to geopotential height. Inverse of
    :func:`altitude_from_gph_and_latitude`.

    .. math::
       h = \frac{g}{g_0} \frac{R z}{z + R}

    Parameters
    ----------
    altitude : float or array-like
        Altitude [m].

    latitude : float or array-like
        Latitude [deg].

    Returns
    -------
    float or array-like
        Geopotential height [m].
    """
    g = normal_gravity_from_latitude(latitude)
    r = local_curvature_radius_at_surface_from_latitude(latitude)
    return (g / _G0) * r * altitude / (altitude + r)


@ureg.wraps(ret=None, args="m", strict=False)
def geopotential_from_gph(gph):
    """
    Convert geopotential height [m] to geopotential [m^2/s^2].
    """
    return _G0 * gph


@ureg.wraps(ret=None, args="m^2/s^2", strict=False)
def gph_from_geopotential(geopotential):
    """
    Convert geopotential [m^2/s^2] to geopotential height [m].
    """
    return geopotential / _G0


# ------------------------------------------------------------------------------
#                          Profile integration
# ------------------------------------------------------------------------------


@ureg.wraps(ret=None, args=("Pa", "K", "g/mol", "Pa", "m", "deg"), strict=False)
def profile_altitude_from_pressure(
    pressure,
    temperature,
    molar_mass_air,
    surface_pressure,
    surface_height,
    latitude,
):
    r"""
    Convert a pressure profile to an altitude profile by integrating the
    hypsometric equation from the surface upward.

    The first layer spans the surface to the first level and uses the
    temperature and molar mass of that level, with the normal gravity at sea
    level. Each subsequent layer uses the mean temperature and molar mass of
    its two bounding levels and the gravity evaluated at the altitude of its
    lower level:

    .. math::
       z_i = z_{i-1} + \frac{R}{g(\varphi, z_{i-1})}
       \frac{T_{i-1} + T_i}{M_{i-1} + M_i} \ln \frac{p_{i-1}}{p_i}

    Parameters
    ----------
    pressure : array-like
        Pressure profile [Pa].

    temperature : array-like
        Temperature profile [K].

    molar_mass_air : array-like
        Molar mass of total air [g/mol].

    surface_pressure : float
        Surface pressure [Pa].

    surface_height : float
        Surface height [m].

    latitude : float
        Latitude [deg].

    Returns
    -------
    ndarray
        Altitude profile [m], in the same order as ``pressure``.
    """
    p, t, m = _as_profiles(
        pressure=pressure, temperature=temperature, molar_mass_air=molar_mass_air
    )
    order = surface_first_order(p, increases_upward=False)
    altitude = np.empty_like(p)
    ratio = _layer_ratio(t[order], m[order])

    prev_z = prev_p = None
    for i, k in enumerate(order):
        if i == 0:
            g = normal_gravity_from_latitude(latitude)
            z = surface_height + 1e3 * ratio[i] * (_R / g) * np.log(
                surface_pressure / p[k]
            )
        else:
            # Gravity depends on the altitude just computed for the level below
            g = gravity_from_latitude_and_altitude(latitude, prev_z)
            z = prev_z + 1e3 * ratio[i] * (_R / g) * np.log(prev_p / p[k])

        altitude[k] = z
        prev_z = z
        prev_p = p[k]

    return altitude


@ureg.wraps(ret=None, args=("m", "K", "g/mol", "Pa", "m", "deg"), strict=False)
def profile_pressure_from_altitude(
    altitude,
    temperature,
    molar_mass_air,
    surface_pressure,
    surface_height,
    latitude,
):
    r"""
    Convert an altitude profile to a pressure profile. This is the algebraic
    inverse of :func:`profile_altitude_from_pressure`: gravity is evaluated at
    the same points (sea level for the first layer, lower level altitude for
    the others).

    .. math::
       p_i = p_{i-1} \exp \left( - \frac{g(\varphi, z_{i-1})}{R}
       \frac{M_{i-1} + M_i}{T_{i-1} + T_i} (z_i - z_{i-1}) \right)

    Parameters
    ----------
    altitude : array-like
        Altitude profile [m].

    temperature : array-like
        Temperature profile [K].

    molar_mass_air : array-like
        Molar mass of total air [g/mol].

    surface_pressure : float
        Surface pressure [Pa].

    surface_height : float
        Surface height [m].

    latitude : float
        Latitude [deg].

    Returns
    -------
    ndarray
        Pressure profile [Pa], in the same order as ``altitude``.
    """
    z, t, m = _as_profiles(
        altitude=altitude, temperature=temperature, molar_mass_air=molar_mass_air
    )
    order = surface_first_order(z, increases_upward=True)
    pressure = np.empty_like(z)

    if z.shape[0] == 0:
        return pressure

    z_ordered = z[order]
    ratio = _layer_ratio(m[order], t[order])

    g = np.empty_like(z_ordered)
    g[0] = normal_gravity_from_latitude(latitude)
    g[1:] = gravity_from_latitude_and_altitude(latitude, z_ordered[:-1])

    dz = np.empty_like(z_ordered)
    dz[0] = z_ordered[0] - surface_height
    dz[1:] = z_ordered[1:] - z_ordered[:-1]

    factors = np.exp(-1e-3 * ratio * (g / _R) * dz)
    factors[0] *= surface_pressure
    pressure[order] = np.cumprod(factors)

    return pressure


@ureg.wraps(ret=None, args=("m", "K", "g/mol", "Pa", "m"), strict=False)
def profile_pressure_from_gph(
    gph,
    temperature,
    molar_mass_air,
    surface_pressure,
    surface_height,
):
    """
    Convert a geopotential height profile to a pressure profile.

    Unlike :func:`profile_pressure_from_altitude`, this conversion uses the
    constant standard gravity: this is what geopotential height is defined
    against.

    Parameters
    ----------
    gph : array-like
        Geopotential height profile [m].

    temperature : array-like
        Temperature profile [K].

    molar_mass_air : array-like
        Molar mass of total air [g/mol].

    surface_pressure : float
        Surface pressure [Pa].

    surface_height : float
        Surface height [m].

    Returns
    -------
    ndarray
        Pressure profile [Pa], in the same order as ``gph``.
    """
    h, t, m = _as_profiles(
        gph=gph, temperature=temperature, molar_mass_air=molar_mass_air
    )
    order = surface_first_order(h, increases_upward=True)
    pressure = np.empty_like(h)

    if h.shape[0] == 0:
        return pressure

    h_ordered = h[order]
    ratio = _layer_ratio(m[order], t[order])

    dh = np.empty_like(h_ordered)
    dh[0] = h_ordered[0] - surface_height
    dh[1:] = h_ordered[1:] - h_ordered[:-1]

    factors = np.exp(-1e-3 * ratio * (_G0 / _R) * dh)
    factors[0] *= surface_pressure
    pressure[order] = np.cumprod(factors)

    return pressure


@ureg.wraps(ret=None, args=("Pa", "K", "g/mol", "Pa", "m"), strict=False)
def profile_gph_from_pressure(
    pressure,
    temperature,
    molar_mass_air,
    surface_pressure,
    surface_height,
):
    """
    Convert a pressure profile to a geopotential height profile. Constant
    standard gravity counterpart of :func:`profile_altitude_from_pressure`.

    Parameters
    ----------
    pressure : array-like
        Pressure profile [Pa].

    temperature : array-like
        Temperature profile [K].

    molar_mass_air : array-like
        Molar mass of total air [g/mol].

    surface_pressure : float
        Surface pressure [Pa].

    surface_height : float
        Surface height [m].

    Returns
    -------
    ndarray
        Geopotential height profile [m], in the same order as ``pressure``.
    """
    p, t, m = _as_profiles(
        pressure=pressure, temperature=temperature, molar_mass_air=molar_mass_air
    )
    order = surface_first_order(p, increases_upward=False)
    gph = np.empty_like(p)

    if p.shape[0] == 0:
        return gph

    p_ordered = p[order]
    ratio = _layer_ratio(t[order], m[order])

    log_ratio = np.empty_like(p_ordered)
    log_ratio[0] = np.log(surface_pressure / p_ordered[0])
    log_ratio[1:] = np.log(p_ordered[:-1] / p_ordered[1:])

    increments = 1e3 * ratio * (_R / _G0) * log_ratio
    increments[0] += surface_height
    gph[order] = np.cumsum(increments)

    return gph


# ------------------------------------------------------------------------------
#                           Column mass density
# ------------------------------------------------------------------------------


@ureg.wraps(ret=None, args=("Pa", "Pa", "m", "deg"), strict=False)
def column_mass_density_from_surface_pressure_and_profile(
    surface_pressure,
    pressure_bounds,
    altitude,
    latitude,
):
    r"""
    Compute the total column mass density of air from the surface pressure.
    Gravity is averaged over the column, weighting each level by the pressure
    width of its layer:

    .. math::
       \sigma = p_s \frac{\sum_i \Delta p_i / g(\varphi, z_i)}{\sum_i \Delta p_i}

    Parameters
    ----------
    surface_pressure : float
        Surface pressure [Pa].

    pressure_bounds : array-like
        Lower and upper pressure bounds of each layer, shaped (N, 2), in
        decreasing order [Pa].

    altitude : array-like
        Altitude profile, in increasing order [m].

    latitude : float
        Latitude [deg].

    Returns
    -------
    float
        Column mass density [kg/m^2].
    """
    bounds = np.asarray(pressure_bounds, dtype=np.float64)
    (z,) = _as_profiles(altitude=altitude)

    if bounds.shape != (z.shape[0], 2):
        raise InvalidArgumentError(
            f"'pressure_bounds' must be shaped ({z.shape[0]}, 2), "
            f"got {bounds.shape}"
        )

    g = gravity_from_latitude_and_altitude(latitude, z)
    width = bounds[:, 0] - bounds[:, 1]
    return surface_pressure * np.sum(width / g) / np.sum(width)


# ------------------------------------------------------------------------------
#                         Hybrid sigma-pressure levels
# ------------------------------------------------------------------------------


def _half_level_pressure(a, b, surface_pressure) -> np.ndarray:
    a, b = _as_profiles(a=a, b=b)

    if a.shape[0] < 2:
        raise InvalidArgumentError(
            "at least two half-level coefficients are required, got "
            f"{a.shape[0]}"
        )

    surface_pressure = np.asarray(surface_pressure, dtype=np.float64)
    half = a + b * surface_pressure[..., np.newaxis]

    # Order half levels from the surface upward
    reference = half.reshape(-1, half.shape[-1])[0]
    return half[..., surface_first_order(reference, increases_upward=False)]


@ureg.wraps(ret=None, args=("Pa", None, "Pa"), strict=False)
def pressure_bounds_from_hybrid_coefficients(a, b, surface_pressure):
    r"""
    Compute layer pressure bounds from hybrid sigma-pressure coefficients
    given at the N+1 layer interfaces:

    .. math::
       p_{k+1/2} = a_{k+1/2} + b_{k+1/2} \, p_s

    Parameters
    ----------
    a : array-like
        Pressure coefficients at the N+1 interfaces [Pa].

    b : array-like
        Dimensionless sigma coefficients at the N+1 interfaces.

    surface_pressure : float or array-like
        Surface pressure [Pa]. Leading dimensions are broadcast.

    Returns
    -------
    ndarray
        Pressure bounds shaped (..., N, 2) [Pa], surface first, with the lower
        (higher pressure) bound at index 0 of the last axis.
    """
    half = _half_level_pressure(a, b, surface_pressure)
    return np.stack([half[..., :-1], half[..., 1:]], axis=-1)


@ureg.wraps(ret=None, args=("Pa", None, "Pa"), strict=False)
def pressure_from_hybrid_coefficients(a, b, surface_pressure):
    """
    Compute full-level pressures from hybrid sigma-pressure coefficients as
    the mean of the two bounding interface pressures.

    Parameters
    ----------
    a : array-like
        Pressure coefficients at the N+1 interfaces [Pa].

    b : array-like
        Dimensionless sigma coefficients at the N+1 interfaces.

    surface_pressure : float or array-like
        Surface pressure [Pa]. Leading dimensions are broadcast.

    Returns
    -------
    ndarray
        Pressure shaped (..., N) [Pa], surface first.
    """
    half = _half_level_pressure(a, b, surface_pressure)
    return 0.5 * (half[..., :-1] + half[..., 1:])
