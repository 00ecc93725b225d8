"""
Variable derivation.

:func:`get_derived_variable` resolves a variable in two stages:

1. a variable stored in the product, possibly broadcast along a missing leading
   time dimension;
2. the derivation rules registered with :func:`derivation`, tried in
   registration order. Rules obtain their inputs by resolving other variables
   recursively.

The result is converted to the requested unit and data type.
"""

from __future__ import annotations

import functools
import logging
import re
import typing as t

import attrs
import numpy as np
import numpy.typing as npt

from .. import avk, profiles
from ..constants import BOLTZMANN_CONSTANT, MOLAR_MASS_DRY_AIR, MOLAR_MASS_H2O
from ..exceptions import DerivationError, InvalidArgumentError
from ._dimension import DimensionType
from ._dimension import dimension_types as _dimension_types
from ._product import Product
from ._variable import Variable

logger = logging.getLogger(__name__)

#: Maximum nesting depth of derivation rules
MAX_DEPTH = 12

_T = DimensionType.TIME
_V = DimensionType.VERTICAL
_I = DimensionType.INDEPENDENT

#: Vertical axis variables and the unit in which derivation rules produce them
AXIS_UNITS = {"altitude": "m", "pressure": "Pa", "geopotential_height": "m"}

_SPECIES = r"(?P<species>[A-Za-z0-9]+)"


# ------------------------------------------------------------------------------
#                                Rule registry
# ------------------------------------------------------------------------------


@attrs.define
class DerivationRule:
    """
    A rule producing a variable from other variables.
    """

    pattern: re.Pattern = attrs.field(converter=re.compile)
    dimension_types: tuple[DimensionType, ...] = attrs.field(converter=_dimension_types)
    unit: str | None = attrs.field()
    func: t.Callable = attrs.field()

    def match(
        self, name: str, requested: tuple[DimensionType, ...] | None
    ) -> dict | None:
        """
        Return the named groups of the rule's pattern if the rule can produce
        ``name`` with the ``requested`` dimensions, ``None`` otherwise.
        """
        match = self.pattern.fullmatch(name)
        if match is None:
            return None

        if requested is not None and requested not in (
            self.dimension_types,
            (_T,) + self.dimension_types,
        ):
            return None

        return match.groupdict()


_RULES: list[DerivationRule] = []


def derivation(pattern: str, dimension_types: t.Sequence, unit: str | None):
    """
    Register the decorated function as a derivation rule.

    The function is called with a ``derive(name, unit, dimension_types)``
    callable returning the double precision data of another variable, and with
    the named groups of ``pattern`` as keyword arguments. It returns the data
    of the derived variable, with dimensions ``dimension_types`` and unit
    ``unit``.
    """

    def decorator(func):
        _RULES.append(DerivationRule(pattern, dimension_types, unit, func))
        return func

    return decorator


def derivation_rules() -> list[DerivationRule]:
    """Return the registered derivation rules, in resolution order."""
    return list(_RULES)


# ------------------------------------------------------------------------------
#                                 Resolution
# ------------------------------------------------------------------------------


def _fit(
    product: Product, variable: Variable, requested: tuple[DimensionType, ...] | None
) -> Variable | None:
    # Match a variable to requested dimensions, broadcasting along time if needed
    if requested is None or requested == variable.dimension_types:
        return variable

    if requested == (_T,) + variable.dimension_types:
        num_samples = product.get_dimension(_T)
        if num_samples > 0:
            return Variable(
                name=variable.name,
                data=np.broadcast_to(variable.data, (num_samples,) + variable.shape),
                dimension_types=requested,
                unit=variable.unit,
                description=variable.description,
            )

    return None


def _finalize(
    variable: Variable, unit: str | None, data_type: npt.DTypeLike | None
) -> Variable:
    try:
        return variable.converted(unit, data_type)
    except InvalidArgumentError as e:
        raise DerivationError(
            f"could not derive variable '{variable.name}' in unit '{unit}'"
        ) from e


def _derive(product, name, unit, requested, data_type, stack) -> Variable:
    key = (name, requested)
    if key in stack or len(stack) >= MAX_DEPTH:
        raise DerivationError(
            f"could not derive variable '{name}' (circular or too deep derivation)"
        )
    stack = stack + (key,)

    if name in product:
        fitted = _fit(product, product.get_variable(name), requested)
        if fitted is not None:
            return _finalize(fitted, unit, data_type)

    def derive(source: str, source_unit: str | None, source_types) -> np.ndarray:
        source_types = _dimension_types(source_types)
        return _derive(
            product, source, source_unit, source_types, np.float64, stack
        ).data

    for rule in _RULES:
        groups = rule.match(name, requested)
        if groups is None:
            continue

        try:
            data = rule.func(derive, **groups)
        except (DerivationError, InvalidArgumentError) as e:
            logger.debug("rule '%s' not applicable to '%s': %s", rule.pattern.pattern, name, e)
            continue

        variable = Variable(name, data, rule.dimension_types, unit=rule.unit)
        fitted = _fit(product, variable, requested)
        if fitted is not None:
            return _finalize(fitted, unit, data_type)

    if requested is None:
        raise DerivationError(f"could not derive variable '{name}'")
    else:
        dims = ", ".join(dimension_type.value for dimension_type in requested)
        raise DerivationError(f"could not derive variable '{name} {{{dims}}}'")


def get_derived_variable(
    product: Product,
    name: str,
    unit: str | None = None,
    dimension_types: t.Sequence | None = None,
    data_type: npt.DTypeLike | None = None,
) -> Variable:
    """
    Get a variable from a product, deriving it from other variables if it is
    not stored.

    Parameters
    ----------
    product : :class:`.Product`
        Product from which to get the variable. It is not modified.

    name : str
        Variable name.

    unit : str, optional
        Unit of the returned variable. If unset, the unit is left unchanged.

    dimension_types : sequence of :class:`.DimensionType` or str, optional
        Dimensions of the returned variable. If unset, any dimensions are
        accepted.

    data_type : dtype-like, optional
        Data type of the returned variable. If unset, the data type is left
        unchanged.

    Returns
    -------
    :class:`.Variable`
        A new variable, not owned by any product.

    Raises
    ------
    :class:`.DerivationError`
        If the variable can neither be found nor derived.
    """
    requested = None if dimension_types is None else _dimension_types(dimension_types)
    return _derive(product, name, unit, requested, data_type, ())


def add_derived_variable(
    product: Product,
    name: str,
    unit: str | None = None,
    dimension_types: t.Sequence | None = None,
    data_type: npt.DTypeLike | None = None,
) -> None:
    """
    Derive a variable with :func:`get_derived_variable` and store it in the
    product, replacing any stored variable with the same name.
    """
    variable = get_derived_variable(product, name, unit, dimension_types, data_type)
    product.replace_variable(variable)


# ------------------------------------------------------------------------------
#                                  Helpers
# ------------------------------------------------------------------------------


def _per_profile(func, profile_arrays, sample_arrays=(), axis_index: int = 0):
    # Apply a 1D profile function to each time sample; levels beyond the valid
    # length of the driving profile stay NaN
    driver = profile_arrays[axis_index]
    result = np.full(driver.shape, np.nan)

    for i in range(driver.shape[0]):
        length = profiles.valid_length(driver[i])
        result[i, :length] = func(
            *(array[i, :length] for array in profile_arrays),
            *(array[i] for array in sample_arrays),
        )

    return result


def _per_sample(func, profile_arrays, sample_arrays=(), axis_index: int = 0):
    # Apply a function reducing a profile to a scalar to each time sample
    driver = profile_arrays[axis_index]
    result = np.full(driver.shape[0], np.nan)

    for i in range(driver.shape[0]):
        length = profiles.valid_length(driver[i])
        result[i] = func(
            *(array[i, :length] for array in profile_arrays),
            *(array[i] for array in sample_arrays),
        )

    return result


def bounds_from_grid(grid: npt.ArrayLike, log: bool = False) -> np.ndarray:
    """
    Compute layer bounds from a vertical grid. Interior bounds are level
    midpoints (geometric means if ``log`` is ``True``); outer bounds are
    extrapolated symmetrically. Trailing NaN padding is preserved.

    Parameters
    ----------
    grid : array-like
        Vertical grid, shaped (..., N).

    log : bool, default: False
        If ``True``, compute midpoints in log space (use for pressure).

    Returns
    -------
    ndarray
        Bounds, shaped (..., N, 2).
    """
    grid = np.asarray(grid, dtype=np.float64)
    result = np.full(grid.shape + (2,), np.nan)

    for index in np.ndindex(grid.shape[:-1]):
        x = grid[index]
        length = profiles.valid_length(x)
        if length < 2:
            continue

        x = np.log(x[:length]) if log else x[:length]
        mid = 0.5 * (x[:-1] + x[1:])
        lower = np.concatenate([[2.0 * x[0] - mid[0]], mid])
        upper = np.concatenate([mid, [2.0 * x[-1] - mid[-1]]])
        bounds = np.stack([lower, upper], axis=-1)
        result[index][:length] = np.exp(bounds) if log else bounds

    return result


def get_derived_bounds_for_grid(product: Product, grid: Variable) -> Variable:
    """
    Get the bounds of a vertical grid variable. Bounds are looked up (or
    derived) in the product first, and computed from the grid otherwise.
    """
    name = f"{grid.name}_bounds"
    try:
        return get_derived_variable(
            product, name, grid.unit, grid.dimension_types + (_I,), np.float64
        )
    except DerivationError:
        logger.debug("computing '%s' from grid values", name)
        return Variable(
            name=name,
            data=bounds_from_grid(grid.data, log="pressure" in grid.name),
            dimension_types=grid.dimension_types + (_I,),
            unit=grid.unit,
        )


# ------------------------------------------------------------------------------
#                              Derivation rules
# ------------------------------------------------------------------------------

# -- Axis bounds ---------------------------------------------------------------


def _axis_bounds(derive, axis: str, unit: str, types: tuple):
    return bounds_from_grid(derive(axis, unit, types), log=axis == "pressure")


for _axis, _unit in AXIS_UNITS.items():
    derivation(f"{_axis}_bounds", [_T, _V, _I], _unit)(
        functools.partial(_axis_bounds, axis=_axis, unit=_unit, types=(_T, _V))
    )
    derivation(f"{_axis}_bounds", [_V, _I], _unit)(
        functools.partial(_axis_bounds, axis=_axis, unit=_unit, types=(_V,))
    )

del _axis, _unit

# -- Air properties ------------------------------------------------------------


@derivation("molar_mass", [_T, _V], "g/mol")
def _molar_mass_from_h2o(derive):
    x = derive("H2O_volume_mixing_ratio", "", [_T, _V])
    return (1.0 - x) * MOLAR_MASS_DRY_AIR.m_as("g/mol") + x * MOLAR_MASS_H2O.m_as(
        "g/mol"
    )


@derivation("number_density", [_T, _V], "molec/m^3")
def _number_density_from_pressure(derive):
    p = derive("pressure", "Pa", [_T, _V])
    temperature = derive("temperature", "K", [_T, _V])
    return p / (BOLTZMANN_CONSTANT.m_as("J/K") * temperature)


@derivation(rf"{_SPECIES}_number_density", [_T, _V], "molec/m^3")
def _species_number_density_from_vmr(derive, species):
    x = derive(f"{species}_volume_mixing_ratio", "", [_T, _V])
    return x * derive("number_density", "molec/m^3", [_T, _V])


@derivation("column_density", [_T], "kg/m^2")
def _column_density(derive):
    def column_density(pressure_bounds, altitude, surface_pressure, latitude):
        return profiles.column_mass_density_from_surface_pressure_and_profile(
            surface_pressure, pressure_bounds, altitude, latitude
        )

    return _per_sample(
        column_density,
        [derive("pressure_bounds", "Pa", [_T, _V, _I]), derive("altitude", "m", [_T, _V])],
        [derive("surface_pressure", "Pa", [_T]), derive("latitude", "degree", [_T])],
        axis_index=1,
    )


# -- Vertical axes -------------------------------------------------------------


def _surface(derive):
    return [
        derive("surface_pressure", "Pa", [_T]),
        derive("surface_altitude", "m", [_T]),
    ]


@derivation("altitude", [_T, _V], "m")
def _altitude_from_gph(derive):
    gph = derive("geopotential_height", "m", [_T, _V])
    latitude = derive("latitude", "degree", [_T])
    return profiles.altitude_from_gph_and_latitude(gph, latitude[:, np.newaxis])


@derivation("altitude", [_T, _V], "m")
def _altitude_from_pressure(derive):
    return _per_profile(
        profiles.profile_altitude_from_pressure,
        [
            derive("pressure", "Pa", [_T, _V]),
            derive("temperature", "K", [_T, _V]),
            derive("molar_mass", "g/mol", [_T, _V]),
        ],
        _surface(derive) + [derive("latitude", "degree", [_T])],
    )


@derivation("pressure", [_T, _V], "Pa")
def _pressure_from_altitude(derive):
    return _per_profile(
        profiles.profile_pressure_from_altitude,
        [
            derive("altitude", "m", [_T, _V]),
            derive("temperature", "K", [_T, _V]),
            derive("molar_mass", "g/mol", [_T, _V]),
        ],
        _surface(derive) + [derive("latitude", "degree", [_T])],
    )


@derivation("pressure", [_T, _V], "Pa")
def _pressure_from_gph(derive):
    return _per_profile(
        profiles.profile_pressure_from_gph,
        [
            derive("geopotential_height", "m", [_T, _V]),
            derive("temperature", "K", [_T, _V]),
            derive("molar_mass", "g/mol", [_T, _V]),
        ],
        _surface(derive),
    )


@derivation("geopotential_height", [_T, _V], "m")
def _gph_from_geopotential(derive):
    return profiles.gph_from_geopotential(derive("geopotential", "m^2/s^2", [_T, _V]))


@derivation("geopotential_height", [_T, _V], "m")
def _gph_from_altitude(derive):
    altitude = derive("altitude", "m", [_T, _V])
    latitude = derive("latitude", "degree", [_T])
    return profiles.gph_from_altitude_and_latitude(altitude, latitude[:, np.newaxis])


@derivation("geopotential_height", [_T, _V], "m")
def _gph_from_pressure(derive):
    return _per_profile(
        profiles.profile_gph_from_pressure,
        [
            derive("pressure", "Pa", [_T, _V]),
            derive("temperature", "K", [_T, _V]),
            derive("molar_mass", "g/mol", [_T, _V]),
        ],
        _surface(derive),
    )


@derivation("geopotential", [_T, _V], "m^2/s^2")
def _geopotential_from_gph(derive):
    return profiles.geopotential_from_gph(derive("geopotential_height", "m", [_T, _V]))


# -- Tropopause ----------------------------------------------------------------


def _tropopause_profiles(derive):
    return [
        derive("altitude", "m", [_T, _V]),
        derive("pressure", "Pa", [_T, _V]),
        derive("temperature", "K", [_T, _V]),
    ]


@derivation("tropopause_altitude", [_T], "m")
def _tropopause_altitude(derive):
    return _per_sample(
        profiles.tropopause_altitude_from_altitude_and_temperature,
        _tropopause_profiles(derive),
    )


@derivation("tropopause_pressure", [_T], "Pa")
def _tropopause_pressure(derive):
    return _per_sample(
        profiles.tropopause_pressure_from_altitude_and_temperature,
        _tropopause_profiles(derive),
    )


# -- Columns -------------------------------------------------------------------


@derivation(rf"{_SPECIES}_column_number_density", [_T, _V], "molec/m^2")
def _partial_column_from_density(derive, species):
    density = derive(f"{species}_number_density", "molec/m^3", [_T, _V])
    bounds = derive("altitude_bounds", "m", [_T, _V, _I])
    return density * np.abs(bounds[..., 1] - bounds[..., 0])


@derivation(rf"{_SPECIES}_column_number_density", [_T], "molec/m^2")
def _column_from_partial_column(derive, species):
    partial_column = derive(f"{species}_column_number_density", "molec/m^2", [_T, _V])
    return profiles.column_from_partial_column(partial_column)


def _partial_column_region(derive, species, func, axis, unit):
    return func(
        derive(f"{species}_column_number_density", "molec/m^2", [_T, _V]),
        derive(f"{axis}_bounds", unit, [_T, _V, _I]),
        derive(f"tropopause_{axis}", unit, [_T]),
    )


for _region in ["tropospheric", "stratospheric"]:
    for _axis in ["altitude", "pressure"]:
        derivation(rf"{_region}_{_SPECIES}_column_number_density", [_T], "molec/m^2")(
            functools.partial(
                _partial_column_region,
                func=getattr(
                    profiles, f"{_region}_column_from_partial_column_and_{_axis}"
                ),
                axis=_axis,
                unit=AXIS_UNITS[_axis],
            )
        )

# -- Averaging kernels ---------------------------------------------------------


@derivation(rf"{_SPECIES}_column_number_density_avk", [_T, _V], "")
def _column_avk(derive, species):
    return avk.column_avk_from_partial_column_avk(
        derive(f"{species}_column_number_density_avk", "", [_T, _V, _V])
    )


def _column_avk_region(derive, species, func):
    return func(
        derive(f"{species}_column_number_density_avk", "", [_T, _V]),
        derive("altitude_bounds", "m", [_T, _V, _I]),
        derive("tropopause_altitude", "m", [_T]),
    )


for _region in ["tropospheric", "stratospheric"]:
    derivation(rf"{_region}_{_SPECIES}_column_number_density_avk", [_T, _V], "")(
        functools.partial(
            _column_avk_region,
            func=getattr(avk, f"{_region}_column_avk_from_column_avk"),
        )
    )

del _region, _axis


@derivation(rf"{_SPECIES}_number_density_avk", [_T, _V, _V], "")
def _density_avk_from_partial_column_avk(derive, species):
    return avk.density_avk_from_partial_column_avk(
        derive(f"{species}_column_number_density_avk", "", [_T, _V, _V]),
        derive("altitude_bounds", "m", [_T, _V, _I]),
    )


@derivation(rf"{_SPECIES}_column_number_density_avk", [_T, _V, _V], "")
def _partial_column_avk_from_density_avk(derive, species):
    return avk.partial_column_avk_from_density_avk(
        derive(f"{species}_number_density_avk", "", [_T, _V, _V]),
        derive("altitude_bounds", "m", [_T, _V, _I]),
    )


@derivation(rf"{_SPECIES}_number_density_avk", [_T, _V, _V], "")
def _number_density_avk_from_vmr_avk(derive, species):
    return avk.number_density_avk_from_volume_mixing_ratio_avk(
        derive(f"{species}_volume_mixing_ratio_avk", "", [_T, _V, _V]),
        derive("number_density", "molec/m^3", [_T, _V]),
    )


@derivation(rf"{_SPECIES}_volume_mixing_ratio_avk", [_T, _V, _V], "")
def _vmr_avk_from_number_density_avk(derive, species):
    return avk.volume_mixing_ratio_avk_from_number_density_avk(
        derive(f"{species}_number_density_avk", "", [_T, _V, _V]),
        derive("number_density", "molec/m^3", [_T, _V]),
    )
