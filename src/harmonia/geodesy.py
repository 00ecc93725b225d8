"""
Gravity and earth curvature models on the WGS84 ellipsoid.

All functions accept scalars or arrays (or the equivalent
:class:`pint.Quantity`) and broadcast their arguments.
"""

from __future__ import annotations

import numpy as np

from .constants import (
    WGS84_ECCENTRICITY_SQUARED,
    WGS84_EQUATORIAL_GRAVITY,
    WGS84_FLATTENING,
    WGS84_GRAVITY_RATIO,
    WGS84_SEMI_MAJOR_AXIS,
    WGS84_SEMI_MINOR_AXIS,
    WGS84_SOMIGLIANA_CONSTANT,
)
from .units import unit_registry as ureg

_A = WGS84_SEMI_MAJOR_AXIS.m_as("m")
_B = WGS84_SEMI_MINOR_AXIS.m_as("m")
_GE = WGS84_EQUATORIAL_GRAVITY.m_as("m / s ** 2")


@ureg.wraps(ret=None, args="deg", strict=False)
def normal_gravity_from_latitude(latitude):
    r"""
    Compute the normal gravity at the surface of the WGS84 ellipsoid using
    Somigliana's formula:

    .. math::
       g(\varphi) = g_e \frac{1 + k \sin^2 \varphi}
       {\sqrt{1 - e^2 \sin^2 \varphi}}

    Parameters
    ----------
    latitude : float or array-like
        Latitude [deg].

    Returns
    -------
    float or array-like
        Normal gravity [m/s^2].
    """
    sin2 = np.sin(np.deg2rad(latitude)) ** 2
    return (
        _GE
        * (1.0 + WGS84_SOMIGLIANA_CONSTANT * sin2)
        / np.sqrt(1.0 - WGS84_ECCENTRICITY_SQUARED * sin2)
    )


@ureg.wraps(ret=None, args=("deg", "m"), strict=False)
def gravity_from_latitude_and_altitude(latitude, altitude):
    r"""
    Compute gravity above the WGS84 ellipsoid using the second-order free-air
    correction:

    .. math::
       g(\varphi, z) = g(\varphi) \left[ 1 - \frac{2}{a}
       \left( 1 + f + m - 2 f \sin^2 \varphi \right) z + \frac{3}{a^2} z^2
       \right]

    Parameters
    ----------
    latitude : float or array-like
        Latitude [deg].

    altitude : float or array-like
        Altitude above the ellipsoid [m].

    Returns
    -------
    float or array-like
        Gravity [m/s^2].
    """
    sin2 = np.sin(np.deg2rad(latitude)) ** 2
    g = normal_gravity_from_latitude(latitude)
    return g * (
        1.0
        - 2.0
        / _A
        * (1.0 + WGS84_FLATTENING + WGS84_GRAVITY_RATIO - 2.0 * WGS84_FLATTENING * sin2)
        * altitude
        + 3.0 / (_A * _A) * altitude * altitude
    )


@ureg.wraps(ret=None, args="deg", strict=False)
def local_curvature_radius_at_surface_from_latitude(latitude):
    r"""
    Compute the local (geocentric) radius of the WGS84 ellipsoid:

    .. math::
       R(\varphi) = \sqrt{\frac{(a^2 \cos \varphi)^2 + (b^2 \sin \varphi)^2}
       {(a \cos \varphi)^2 + (b \sin \varphi)^2}}

    Parameters
    ----------
    latitude : float or array-like
        Latitude [deg].

    Returns
    -------
    float or array-like
        Radius [m].
    """
    phi = np.deg2rad(latitude)
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)
    return np.sqrt(
        ((_A * _A * cos_phi) ** 2 + (_B * _B * sin_phi) ** 2)
        / ((_A * cos_phi) ** 2 + (_B * sin_phi) ** 2)
    )
