"""
Vertical regridding of products.
"""

from __future__ import annotations

import logging

import numpy as np
import scipy.interpolate

from .. import profiles
from ..exceptions import DerivationError, InvalidArgumentError, RegriddingError
from ._derive import get_derived_bounds_for_grid, get_derived_variable
from ._dimension import DimensionType
from ._product import Product
from ._variable import Variable

logger = logging.getLogger(__name__)

_T = DimensionType.TIME
_V = DimensionType.VERTICAL
_I = DimensionType.INDEPENDENT


# ------------------------------------------------------------------------------
#                            Profile resampling
# ------------------------------------------------------------------------------


def interpolate_profile(
    values: np.ndarray,
    source_grid: np.ndarray,
    target_grid: np.ndarray,
    log: bool = False,
) -> np.ndarray:
    """
    Linearly interpolate a profile onto a new vertical grid. Target levels
    outside the source grid range are set to NaN. Trailing NaN padding of both
    grids is honoured.

    Parameters
    ----------
    values : ndarray
        Profile values on ``source_grid``, shaped (N,).

    source_grid, target_grid : ndarray
        Source (N,) and target (M,) grids.

    log : bool, default: False
        If ``True``, interpolate linearly in the logarithm of the grid (use for
        pressure).

    Returns
    -------
    ndarray
        Profile values on ``target_grid``, shaped (M,).
    """
    result = np.full(target_grid.shape, np.nan)
    length = profiles.valid_length(source_grid)
    target_length = profiles.valid_length(target_grid)

    with np.errstate(divide="ignore", invalid="ignore"):
        x = np.log(source_grid[:length]) if log else source_grid[:length]
        x_new = np.log(target_grid[:target_length]) if log else target_grid[:target_length]

    keep = ~np.isnan(x)
    if np.count_nonzero(keep) < 2:
        return result

    f = scipy.interpolate.interp1d(
        x[keep],
        values[:length][keep],
        bounds_error=False,
        fill_value=np.nan,
        assume_sorted=False,
    )
    result[:target_length] = f(x_new)
    return result


def resample_partial_column_profile(
    values: np.ndarray,
    source_bounds: np.ndarray,
    target_bounds: np.ndarray,
    log: bool = False,
) -> np.ndarray:
    """
    Resample a partial column profile onto new layers. Each source layer
    contributes to a target layer in proportion to the fraction of its extent
    the target layer overlaps, which preserves the total column over the common
    range.

    Parameters
    ----------
    values : ndarray
        Partial columns of the source layers, shaped (N,).

    source_bounds, target_bounds : ndarray
        Source (N, 2) and target (M, 2) layer bounds.

    log : bool, default: False
        If ``True``, compute overlaps in the logarithm of the bounds (use for
        pressure).

    Returns
    -------
    ndarray
        Partial columns of the target layers, shaped (M,). Target layers
        overlapping no valid source layer are NaN.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        if log:
            source_bounds = np.log(source_bounds)
            target_bounds = np.log(target_bounds)

        source = np.sort(source_bounds, axis=-1)
        target = np.sort(target_bounds, axis=-1)

        overlap = np.minimum(target[:, np.newaxis, 1], source[np.newaxis, :, 1]) - (
            np.maximum(target[:, np.newaxis, 0], source[np.newaxis, :, 0])
        )
        width = source[:, 1] - source[:, 0]
        fraction = np.where(overlap > 0, overlap / width[np.newaxis, :], 0.0)

    valid = ~np.isnan(values) & (width > 0)
    contributes = valid[np.newaxis, :] & (fraction > 0)
    total = np.sum(
        np.where(contributes, fraction * values[np.newaxis, :], 0.0), axis=-1
    )
    return np.where(np.any(contributes, axis=-1), total, np.nan)


# ------------------------------------------------------------------------------
#                             Product regridding
# ------------------------------------------------------------------------------


def _check_target(
    product: Product, target_grid: Variable, target_bounds: Variable | None
) -> None:
    if target_grid.dimension_types not in [(_V,), (_T, _V)]:
        raise RegriddingError(
            f"target grid '{target_grid.name}' must have dimensions {{vertical}} "
            "or {time, vertical}"
        )

    if target_grid.dtype != np.float64:
        raise RegriddingError(
            f"target grid '{target_grid.name}' must be double precision"
        )

    num_samples = product.get_dimension(_T)
    if target_grid.dimension_types[0] is _T and num_samples not in (
        0,
        target_grid.shape[0],
    ):
        raise RegriddingError(
            f"target grid '{target_grid.name}' has {target_grid.shape[0]} time "
            f"samples, product has {num_samples}"
        )

    if target_bounds is not None:
        if (
            target_bounds.dimension_types != target_grid.dimension_types + (_I,)
            or target_bounds.shape != target_grid.shape + (2,)
        ):
            raise RegriddingError(
                f"target bounds '{target_bounds.name}' are inconsistent with "
                f"target grid '{target_grid.name}'"
            )


def _source_grid(product: Product, target_grid: Variable) -> Variable:
    # Time independent grids take precedence
    try:
        return get_derived_variable(
            product, target_grid.name, target_grid.unit, [_V], np.float64
        )
    except DerivationError:
        return get_derived_variable(
            product, target_grid.name, target_grid.unit, [_T, _V], np.float64
        )


def _sample(array: np.ndarray, ndim: int, time_index: int | None) -> np.ndarray:
    # Select the grid of a time sample if the grid is time dependent
    return array[time_index] if array.ndim > ndim else array


def _regrid_variable(
    variable: Variable,
    num_samples: int,
    grids: tuple[Variable, Variable],
    bounds: tuple[Variable, Variable] | None,
    log: bool,
) -> Variable:
    data = variable.data.astype(np.float64)
    types = variable.dimension_types
    time_dependent = any(grid.ndim == 2 for grid in grids)

    if time_dependent and _T not in types:
        data = np.broadcast_to(data, (num_samples,) + data.shape)
        types = (_T,) + types

    vertical_axis = types.index(_V)
    moved = np.moveaxis(data, vertical_axis, -1)
    moved_types = [dt for i, dt in enumerate(types) if i != vertical_axis]
    time_axis = moved_types.index(_T) if _T in moved_types else None

    source_grid, target_grid = (grid.data for grid in grids)
    result = np.full(moved.shape[:-1] + target_grid.shape[-1:], np.nan)

    for index in np.ndindex(moved.shape[:-1]):
        t = None if time_axis is None else index[time_axis]

        if bounds is not None:
            source_bounds, target_bounds = (b.data for b in bounds)
            result[index] = resample_partial_column_profile(
                moved[index],
                _sample(source_bounds, 2, t),
                _sample(target_bounds, 2, t),
                log=log,
            )
        else:
            result[index] = interpolate_profile(
                moved[index],
                _sample(source_grid, 1, t),
                _sample(target_grid, 1, t),
                log=log,
            )

    return Variable(
        name=variable.name,
        data=np.moveaxis(result, -1, vertical_axis),
        dimension_types=types,
        unit=variable.unit,
        description=variable.description,
    )


def _is_partial_column(name: str) -> bool:
    return "_column_" in name and not name.endswith("_avk")


def regrid_with_axis_variable(
    product: Product,
    target_grid: Variable,
    target_bounds: Variable | None = None,
) -> None:
    """
    Regrid all vertical variables of a product onto a new vertical grid, in
    place. The operation is atomic: on failure, the product is unchanged.

    The source grid is the variable named like ``target_grid``, found or
    derived in the product in the unit of ``target_grid``. Profiles are
    interpolated linearly in the grid (in its logarithm for pressure grids),
    and set to NaN outside the source range. Partial column profiles
    (``*_column_*`` variables) are resampled by layer overlap if
    ``target_bounds`` is given and source bounds can be obtained. Variables
    spanning several vertical dimensions or holding non floating point data are
    removed. The grid and bounds variables are replaced by the targets.

    Parameters
    ----------
    product : :class:`.Product`
        Product to regrid.

    target_grid : :class:`.Variable`
        Target grid, ``{vertical}`` or ``{time, vertical}``, double precision.

    target_bounds : :class:`.Variable`, optional
        Target layer bounds, with the dimensions of ``target_grid`` followed by
        an independent dimension of extent 2.

    Raises
    ------
    :class:`.RegriddingError`
        If the product cannot be regridded.
    """
    _check_target(product, target_grid, target_bounds)
    axis = target_grid.name
    log = "pressure" in axis

    try:
        source_grid = _source_grid(product, target_grid)
    except DerivationError as e:
        raise RegriddingError(
            f"could not find or derive source grid '{axis}' in product"
        ) from e

    source_bounds = None
    if target_bounds is not None:
        source_bounds = get_derived_bounds_for_grid(product, source_grid)

    num_samples = product.get_dimension(_T)
    if target_grid.dimension_types[0] is _T:
        num_samples = target_grid.shape[0]

    result = []
    for variable in product:
        if variable.name in (axis, f"{axis}_bounds"):
            continue

        num_vertical = variable.dimension_types.count(_V)
        if num_vertical == 0:
            result.append(variable.copy())
            continue

        if num_vertical > 1 or not np.issubdtype(variable.dtype, np.floating):
            logger.debug("removing variable '%s': cannot be regridded", variable.name)
            continue

        bounds = None
        if source_bounds is not None and _is_partial_column(variable.name):
            bounds = (source_bounds, target_bounds)

        result.append(
            _regrid_variable(
                variable, num_samples, (source_grid, target_grid), bounds, log
            )
        )

    result.append(target_grid.copy())
    if target_bounds is not None:
        result.append(target_bounds.copy())

    try:
        product._reset(result)
    except InvalidArgumentError as e:
        raise RegriddingError(f"could not regrid product onto '{axis}'") from e

    logger.debug("regridded %d variable(s) onto '%s'", len(result), axis)
