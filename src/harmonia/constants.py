"""
Mathematical and physical constants.
"""

import scipy.constants

from .units import unit_registry as ureg

#: Standard acceleration of gravity (WMO), also used as the reference gravity
#: for geopotential height
STANDARD_GRAVITY = 9.80665 * ureg("m / s ** 2")

#: Molar gas constant
MOLAR_GAS_CONSTANT = 8.3144621 * ureg("J / mol / K")

#: Boltzmann constant
BOLTZMANN_CONSTANT = scipy.constants.Boltzmann * ureg("J / K")

#: Molar mass of dry air
MOLAR_MASS_DRY_AIR = 28.9644 * ureg("g / mol")

#: Molar mass of water vapour
MOLAR_MASS_H2O = 18.01528 * ureg("g / mol")

#: WGS84 semi-major axis
WGS84_SEMI_MAJOR_AXIS = 6378137.0 * ureg.m

#: WGS84 semi-minor axis
WGS84_SEMI_MINOR_AXIS = 6356752.314245 * ureg.m

#: WGS84 flattening
WGS84_FLATTENING = 1.0 / 298.257223563

#: WGS84 first eccentricity squared
WGS84_ECCENTRICITY_SQUARED = 6.69437999014e-3

#: WGS84 normal gravity at the equator
WGS84_EQUATORIAL_GRAVITY = 9.7803253359 * ureg("m / s ** 2")

#: WGS84 Somigliana constant k = (b * g_p) / (a * g_e) - 1
WGS84_SOMIGLIANA_CONSTANT = 1.931852652458e-3

#: WGS84 gravity ratio m = omega^2 * a^2 * b / GM
WGS84_GRAVITY_RATIO = 3.449786506841e-3

#: Threshold below which layer thicknesses and densities are considered zero
EPSILON = 1e-10
