from __future__ import annotations

__all__ = [
    "convert_units",
    "symbol",
    "to_quantity",
    "units_compatible",
    "unit_registry",
]

import numpy as np
import numpy.typing as npt
import pint
import xarray

from .exceptions import UnitError

# -- Global data members -------------------------------------------------------

#: Unit registry common to all harmonia components. All units used in harmonia
#: must be created using this registry. Aliased in :mod:`harmonia`.
unit_registry = pint.get_application_registry()

#: Extra definitions for units commonly found in atmospheric products.
_DEFINITIONS = [
    "degree_north = degree = degN",
    "degree_east = degree = degE",
    "dobson_unit = 2.6867e20 * molecule / m ** 2 = DU",
]


def _load_definitions(ureg: pint.UnitRegistry, definitions: list[str]) -> None:
    # Add extra definitions, skipping those that already exist with an identical
    # value
    for definition in definitions:
        _unit_name, _unit_definition = list(
            map(lambda x: x.strip(), definition.split("="))
        )[0:2]

        if _unit_name in ureg:
            if 1.0 * ureg(_unit_definition) == 1.0 * ureg(_unit_name):
                continue
            else:
                ureg.define(definition)
        else:
            ureg.define(definition)


_load_definitions(unit_registry, _DEFINITIONS)


# -- Public functions ----------------------------------------------------------


def _as_unit(units: pint.Unit | str | None) -> pint.Unit:
    # Empty and missing units both mean dimensionless
    if units is None or units == "":
        return unit_registry.dimensionless

    try:
        return unit_registry.Unit(units)
    except (pint.UndefinedUnitError, ValueError, AttributeError) as e:
        raise UnitError(units, None, msg="undefined unit") from e


def symbol(units: pint.Unit | str | None) -> str:
    """
    Normalize a string or Pint units to a symbol string.

    Parameters
    ----------
    units : :class:`pint.Unit` or str or None
        Value to convert to a symbol string. ``None`` and the empty string are
        interpreted as dimensionless.

    Returns
    -------
    str
        Symbol string (*e.g.* ``'m'`` for ``'metre'``, ``'Pa'`` for
        ``'pascal'``, ``''`` for dimensionless).
    """
    return format(_as_unit(units), "~")


def units_compatible(unit1: pint.Unit | str | None, unit2: pint.Unit | str | None):
    """
    Check if two units are compatible, *i.e.* share the same dimensionality.
    """
    return _as_unit(unit1).dimensionality == _as_unit(unit2).dimensionality


def convert_units(
    values: npt.ArrayLike,
    from_unit: pint.Unit | str | None,
    to_unit: pint.Unit | str | None,
) -> np.ndarray:
    """
    Convert array values from one unit to another.

    Parameters
    ----------
    values : array-like
        Magnitudes expressed in ``from_unit``.

    from_unit, to_unit : :class:`pint.Unit` or str or None
        Source and target units. ``None`` and ``""`` are dimensionless.

    Returns
    -------
    ndarray
        Magnitudes expressed in ``to_unit``. A new array is always returned.

    Raises
    ------
    :class:`.UnitError`
        If either unit is undefined or if the units are incompatible.
    """
    values = np.array(values, dtype=np.float64)
    source = _as_unit(from_unit)
    target = _as_unit(to_unit)

    if source == target:
        return values

    try:
        return unit_registry.Quantity(values, source).m_as(target)
    except pint.DimensionalityError as e:
        raise UnitError(from_unit, to_unit, msg="incompatible dimensions") from e


def to_quantity(da: xarray.DataArray) -> pint.Quantity:
    """
    Converts a :class:`~xarray.DataArray` to a :class:`~pint.Quantity`.
    The array's ``attrs`` metadata mapping must contain a ``units`` field.

    Parameters
    ----------
    da : DataArray
        :class:`~xarray.DataArray` instance which will be converted.

    Returns
    -------
    quantity
        The corresponding Pint quantity.

    Raises
    ------
    ValueError
        If the array's metadata do not contain a ``units`` field.
    """
    try:
        units = da.attrs["units"]
    except KeyError as e:
        raise ValueError("this DataArray has no 'units' metadata field") from e
    else:
        return unit_registry.Quantity(da.values, _as_unit(units))
