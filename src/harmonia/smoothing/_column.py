"""
Smoothed total columns.
"""

from __future__ import annotations

import logging
import typing as t

import numpy as np

from ..exceptions import DerivationError, InvalidArgumentError
from ..product import (
    CollocationResult,
    DimensionType,
    Product,
    Variable,
    dimension_types,
    filter_by_index,
    get_derived_bounds_for_grid,
    get_derived_variable,
    regrid_with_axis_variable,
)
from ._collocated import (
    SideVariable,
    build_side_product,
    check_collocated_target,
    gather_side_product,
)

logger = logging.getLogger(__name__)

_T = DimensionType.TIME
_V = DimensionType.VERTICAL


def _check_column_inputs(
    product: Product,
    vertical_grid: Variable,
    column_avk: Variable,
    apriori: Variable | None,
) -> None:
    if product.get_dimension(_V) == 0:
        raise InvalidArgumentError("product has no vertical dimension")

    if vertical_grid.ndim < 1 or vertical_grid.dimension_types[-1] is not _V:
        raise InvalidArgumentError(
            f"vertical grid '{vertical_grid.name}' has invalid dimensions"
        )
    if vertical_grid.dtype != np.float64:
        raise InvalidArgumentError(
            f"invalid data type for vertical grid '{vertical_grid.name}'"
        )

    if column_avk.ndim < 1 or column_avk.dimension_types[-1] is not _V:
        raise InvalidArgumentError(
            f"column averaging kernel '{column_avk.name}' has invalid dimensions"
        )
    if column_avk.shape[-1] != vertical_grid.shape[-1]:
        raise InvalidArgumentError(
            f"column averaging kernel '{column_avk.name}' and vertical grid "
            f"'{vertical_grid.name}' have inconsistent dimensions"
        )
    if column_avk.dtype != np.float64:
        raise InvalidArgumentError(
            f"invalid data type for column averaging kernel '{column_avk.name}'"
        )

    if apriori is not None:
        if apriori.dtype != np.float64:
            raise InvalidArgumentError(
                f"invalid data type for apriori '{apriori.name}'"
            )
        if (
            apriori.dimension_types != column_avk.dimension_types
            or apriori.shape != column_avk.shape
        ):
            raise InvalidArgumentError(
                f"apriori '{apriori.name}' and column averaging kernel "
                f"'{column_avk.name}' have inconsistent dimensions"
            )


def _native_grid(product: Product, vertical_grid: Variable) -> Variable:
    try:
        return get_derived_variable(
            product, vertical_grid.name, vertical_grid.unit, [_V], np.float64
        )
    except DerivationError:
        return get_derived_variable(
            product, vertical_grid.name, vertical_grid.unit, [_T, _V], np.float64
        )


def get_smoothed_column(
    product: Product,
    name: str,
    unit: str | None,
    vertical_grid: Variable,
    vertical_bounds: Variable | None,
    column_avk: Variable,
    apriori: Variable | None = None,
) -> Variable:
    r"""
    Compute a total column smoothed with a column averaging kernel.

    The partial column profile ``name`` is derived from the product on its
    native grid, regridded onto ``vertical_grid`` (by layer overlap if
    ``vertical_bounds`` is given), then combined with the column averaging
    kernel :math:`a` and the optional a priori partial column profile
    :math:`x_a`:

    .. math::
       c = \sum_j a_j (x_j - x_{a,j}) + \sum_j x_{a,j}

    Invalid (NaN) terms are skipped. The column is NaN if neither the profile
    nor the a priori has a valid level.

    Parameters
    ----------
    product : :class:`.Product`
        Product from which the partial column profile is derived. It is not
        modified.

    name : str
        Name of the column variable (*e.g.* ``"O3_column_number_density"``).

    unit : str or None
        Unit of the column.

    vertical_grid : :class:`.Variable`
        Vertical grid of the column averaging kernel, double precision.

    vertical_bounds : :class:`.Variable` or None
        Bounds of ``vertical_grid``.

    column_avk : :class:`.Variable`
        Column averaging kernel, double precision, with a last vertical
        dimension matching ``vertical_grid``.

    apriori : :class:`.Variable`, optional
        A priori partial column profile, with the dimensions of
        ``column_avk``.

    Returns
    -------
    :class:`.Variable`
        Smoothed column, with the dimensions of ``column_avk`` except the last
        one.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If inputs are inconsistent.

    :class:`.UpstreamError`
        If the partial column profile or the native grid cannot be derived, or
        if regridding fails.
    """
    _check_column_inputs(product, vertical_grid, column_avk, apriori)

    partial_column = get_derived_variable(
        product, name, unit, column_avk.dimension_types, np.float64
    )
    if partial_column.shape[:-1] != column_avk.shape[:-1]:
        raise InvalidArgumentError(
            f"column averaging kernel '{column_avk.name}' has shape "
            f"{column_avk.shape}, inconsistent with partial column profile "
            f"'{name}' of shape {partial_column.shape}"
        )

    native_grid = _native_grid(product, vertical_grid)
    native_bounds = get_derived_bounds_for_grid(product, native_grid)

    regrid_product = Product.from_variables(
        [partial_column, native_grid, native_bounds],
        source_product=product.source_product,
    )
    regrid_with_axis_variable(regrid_product, vertical_grid, vertical_bounds)

    num_levels = vertical_grid.shape[-1]
    x = regrid_product.get_variable(name).data.reshape(-1, num_levels)
    a = column_avk.data.reshape(-1, num_levels)
    x_valid = ~np.isnan(x)

    column = np.sum(np.where(x_valid, a * x, 0.0), axis=-1)
    is_valid = np.any(x_valid, axis=-1)

    if apriori is not None:
        x_a = apriori.data.reshape(-1, num_levels)
        a_valid = ~np.isnan(x_a)
        column -= np.sum(np.where(x_valid & a_valid, a * x_a, 0.0), axis=-1)
        column += np.sum(np.where(a_valid, x_a, 0.0), axis=-1)
        is_valid |= np.any(a_valid, axis=-1)

    return Variable(
        name=name,
        data=np.where(is_valid, column, np.nan).reshape(column_avk.shape[:-1]),
        dimension_types=column_avk.dimension_types[:-1],
        unit=unit,
    )


# ------------------------------------------------------------------------------
#                         Collocation-driven variants
# ------------------------------------------------------------------------------


def _column_requests(
    name: str, unit: str | None, requested_types: t.Sequence
) -> list[SideVariable]:
    types = dimension_types(requested_types)
    if not types or types[0] is not _T:
        raise InvalidArgumentError(
            "first dimension of requested smoothed column should be the time "
            "dimension"
        )

    profile_types = types + (_V,)
    return [
        SideVariable(f"{name}_avk", "", profile_types),
        SideVariable(f"{name}_apriori", unit, profile_types, False),
    ]


def _smoothed_column_from_side(
    product: Product,
    name: str,
    unit: str | None,
    vertical_axis: str,
    side: Product,
    collocation_index: np.ndarray,
) -> Variable:
    filter_by_index(side, "collocation_index", collocation_index)
    apriori_name = f"{name}_apriori"
    return get_smoothed_column(
        product,
        name,
        unit,
        side.get_variable(vertical_axis),
        side.get_variable(f"{vertical_axis}_bounds"),
        side.get_variable(f"{name}_avk"),
        side.get_variable(apriori_name) if apriori_name in side else None,
    )


def get_smoothed_column_using_collocated_product(
    product: Product,
    name: str,
    unit: str | None,
    dimension_types: t.Sequence,
    vertical_axis: str,
    vertical_unit: str,
    collocated_product: Product,
) -> Variable:
    """
    Compute a smoothed column using the column averaging kernel
    ``<name>_avk`` (and a priori ``<name>_apriori``, if available) of a
    collocated product. Collocated samples are matched to the product's
    through the ``collocation_index`` variable.

    Parameters
    ----------
    product : :class:`.Product`
        Product from which the partial column profile is derived. It is not
        modified.

    name : str
        Name of the column variable.

    unit : str or None
        Unit of the column.

    dimension_types : sequence of :class:`.DimensionType` or str
        Dimensions of the column. The first one must be time.

    vertical_axis : str
        Name of the vertical grid variable.

    vertical_unit : str
        Unit of the vertical grid.

    collocated_product : :class:`.Product`
        Product holding the collocated measurements.

    Returns
    -------
    :class:`.Variable`

    Raises
    ------
    :class:`.InvalidArgumentError`
        If the requested dimensions do not start with time or if the product
        lacks a vertical dimension or a ``collocation_index`` variable.
    """
    requests = _column_requests(name, unit, dimension_types)
    collocation_index = check_collocated_target(product)
    logger.debug(
        "begin smoothed column '%s' with collocated product '%s'",
        name,
        collocated_product.source_product,
    )

    side = build_side_product(collocated_product, vertical_axis, vertical_unit, requests)
    result = _smoothed_column_from_side(
        product, name, unit, vertical_axis, side, collocation_index
    )

    logger.debug("end smoothed column '%s'", name)
    return result


def get_smoothed_column_using_collocated_dataset(
    product: Product,
    name: str,
    unit: str | None,
    dimension_types: t.Sequence,
    vertical_axis: str,
    vertical_unit: str,
    collocation_result: CollocationResult,
) -> Variable:
    """
    Compute a smoothed column using the column averaging kernels of the
    dataset B measurements of a collocation result. See
    :func:`.get_smoothed_column_using_collocated_product`.

    Raises
    ------
    :class:`.InconsistentProductError`
        If the product and the collocation result are inconsistent.
    """
    requests = _column_requests(name, unit, dimension_types)
    collocation_index = check_collocated_target(product)
    logger.debug(
        "begin smoothed column '%s' with collocated dataset (%d pair(s))",
        name,
        collocation_result.num_pairs,
    )

    side = gather_side_product(
        collocation_result, collocation_index, vertical_axis, vertical_unit, requests
    )
    result = _smoothed_column_from_side(
        product, name, unit, vertical_axis, side, collocation_index
    )

    logger.debug("end smoothed column '%s'", name)
    return result
