"""
Conversion between products and :class:`xarray.Dataset` objects.

Dimension names encode dimension types: ``time``, ``latitude``, ``longitude``,
``vertical`` and ``spectral`` name themselves, independent dimensions are named
``independent_<extent>``. A dimension type repeated within a variable gets a
numeric suffix (``vertical``, ``vertical_1``, ...). Units are stored in the
``units`` attribute of each data variable.
"""

from __future__ import annotations

import re

import numpy as np
import xarray as xr

from ..exceptions import InvalidArgumentError
from ._dimension import DimensionType
from ._product import Product
from ._variable import Variable

_DIMENSION_NAME = re.compile(
    r"(?P<type>time|latitude|longitude|vertical|spectral|independent)"
    r"(?:_(?P<extent>\d+))?(?:_(?P<repeat>\d+))?"
)


def _dimension_type(name: str) -> DimensionType:
    match = _DIMENSION_NAME.fullmatch(name)
    if match is None:
        raise InvalidArgumentError(f"cannot map dimension '{name}' to a dimension type")
    return DimensionType(match["type"])


def _dimension_names(variable: Variable) -> list[str]:
    names = []
    for dimension_type, extent in zip(variable.dimension_types, variable.shape):
        if dimension_type is DimensionType.INDEPENDENT:
            base = f"independent_{extent}"
        else:
            base = dimension_type.value

        repeat = sum(1 for name in names if name == base or name.startswith(f"{base}_"))
        names.append(base if repeat == 0 else f"{base}_{repeat}")
    return names


def to_dataset(product: Product) -> xr.Dataset:
    """
    Convert a product to a dataset. Data are copied.
    """
    data_vars = {}
    for variable in product:
        attrs = {}
        if variable.unit is not None:
            attrs["units"] = variable.unit
        if variable.description:
            attrs["description"] = variable.description

        data_vars[variable.name] = xr.Variable(
            _dimension_names(variable), variable.data.copy(), attrs=attrs
        )

    attrs = {}
    if product.source_product is not None:
        attrs["source_product"] = product.source_product

    return xr.Dataset(data_vars, attrs=attrs)


def from_dataset(ds: xr.Dataset) -> Product:
    """
    Convert a dataset to a product. Data variables are converted in order;
    coordinate variables are ignored. Data are copied.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If a dimension name does not map to a dimension type or if extents are
        inconsistent.
    """
    product = Product(source_product=ds.attrs.get("source_product"))

    for name, da in ds.data_vars.items():
        product.add_variable(
            Variable(
                name=str(name),
                data=np.array(da.values),
                dimension_types=[_dimension_type(str(dim)) for dim in da.dims],
                unit=da.attrs.get("units"),
                description=da.attrs.get("description", ""),
            )
        )

    return product
