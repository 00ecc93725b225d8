"""
Vertical smoothing driven by collocated measurements.

The retrieval characterisation of a collocated measurement (its vertical grid,
averaging kernels and a priori profiles) is gathered into a *side product*
holding one sample per collocation index. The side product is reordered to
match the target product, whose profiles are then regridded onto the side grid
and smoothed.
"""

from __future__ import annotations

import logging
import typing as t

import numpy as np
from tqdm.auto import tqdm

from ..config import settings
from ..exceptions import DerivationError, InconsistentProductError, InvalidArgumentError
from ..product import (
    CollocationResult,
    DimensionType,
    Product,
    append,
    filter_by_index,
    get_derived_variable,
    regrid_with_axis_variable,
    transaction,
)
from ._vertical import smooth_vertical

logger = logging.getLogger(__name__)

_T = DimensionType.TIME
_V = DimensionType.VERTICAL
_I = DimensionType.INDEPENDENT


class SideVariable(t.NamedTuple):
    """
    Request for a variable of the side product.
    """

    name: str
    unit: str | None
    dimension_types: tuple[DimensionType, ...]
    required: bool = True


# ------------------------------------------------------------------------------
#                               Side products
# ------------------------------------------------------------------------------


def check_collocated_target(
    product: Product, names: t.Sequence[str] = ()
) -> np.ndarray:
    """
    Check that a product can be smoothed with collocated measurements: it must
    have a vertical dimension, the variables ``names`` and a
    ``collocation_index`` variable.

    Returns
    -------
    ndarray
        The collocation indices of the product.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If a requirement is not met.
    """
    if product.get_dimension(_V) == 0:
        raise InvalidArgumentError("product has no vertical dimension")

    for name in names:
        if name not in product:
            raise InvalidArgumentError(f"product has no variable named '{name}'")

    if "collocation_index" not in product:
        raise InvalidArgumentError("product has no variable named 'collocation_index'")

    return product.get_variable("collocation_index").data


def build_side_product(
    collocated_product: Product,
    vertical_axis: str,
    vertical_unit: str,
    requests: t.Sequence[SideVariable],
) -> Product:
    """
    Gather the variables needed for smoothing from a collocated product.

    The side product holds ``collocation_index`` (int32, ``{time}``), the
    vertical grid ``vertical_axis`` (``{time, vertical}``) and its bounds
    (``{time, vertical, independent}``) in ``vertical_unit``, followed by the
    requested variables. All variables but ``collocation_index`` are double
    precision.

    Parameters
    ----------
    collocated_product : :class:`.Product`
        Product from which variables are taken or derived. It is not modified.

    vertical_axis : str
        Name of the vertical grid variable.

    vertical_unit : str
        Unit of the vertical grid and its bounds.

    requests : sequence of :class:`.SideVariable`
        Additional variables. Optional variables which cannot be derived are
        skipped.

    Returns
    -------
    :class:`.Product`

    Raises
    ------
    :class:`.DerivationError`
        If a mandatory variable cannot be derived.
    """
    variables = [
        get_derived_variable(collocated_product, "collocation_index", None, [_T], np.int32),
        get_derived_variable(
            collocated_product, vertical_axis, vertical_unit, [_T, _V], np.float64
        ),
        get_derived_variable(
            collocated_product,
            f"{vertical_axis}_bounds",
            vertical_unit,
            [_T, _V, _I],
            np.float64,
        ),
    ]

    for request in requests:
        try:
            variable = get_derived_variable(
                collocated_product,
                request.name,
                request.unit,
                request.dimension_types,
                np.float64,
            )
        except DerivationError:
            if request.required:
                raise
            logger.debug("optional variable '%s' is not available", request.name)
            continue

        variables.append(variable)

    return Product.from_variables(
        variables, source_product=collocated_product.source_product
    )


def gather_side_product(
    collocation_result: CollocationResult,
    collocation_index: np.ndarray,
    vertical_axis: str,
    vertical_unit: str,
    requests: t.Sequence[SideVariable],
) -> Product:
    """
    Build and concatenate the side products of all collocated products of
    dataset B matching the given collocation indices.

    Raises
    ------
    :class:`.InconsistentProductError`
        If the collocation result does not hold exactly one pair per
        collocation index.

    :class:`.InvalidArgumentError`
        If no collocated product matches.
    """
    filtered = collocation_result.filter_for_collocation_indices(collocation_index)
    if filtered.num_pairs != len(collocation_index):
        raise InconsistentProductError(
            "product and collocation result are inconsistent "
            f"({len(collocation_index)} collocation indices, "
            f"{filtered.num_pairs} matching pairs)"
        )

    merged = None
    for source_product in tqdm(
        filtered.source_products_b,
        desc="Collocated products",
        disable=not settings.progress,
    ):
        collocated_product = filtered.get_filtered_product_b(source_product)
        if collocated_product is None or collocated_product.is_empty():
            continue

        side = build_side_product(
            collocated_product, vertical_axis, vertical_unit, requests
        )
        if merged is None:
            merged = side
        else:
            append(merged, side)

    if merged is None:
        raise InvalidArgumentError(
            "collocated dataset does not contain any matching pairs"
        )

    return merged


# ------------------------------------------------------------------------------
#                              Profile smoothing
# ------------------------------------------------------------------------------


def _smoothing_requests(
    product: Product, smooth_variables: t.Sequence[str]
) -> list[SideVariable]:
    requests = []
    for name in smooth_variables:
        unit = product.get_variable(name).unit
        requests.append(SideVariable(f"{name}_avk", "", (_T, _V, _V)))
        requests.append(SideVariable(f"{name}_apriori", unit, (_T, _V), False))
    return requests


def _smooth(
    product: Product,
    smooth_variables: t.Sequence[str],
    vertical_axis: str,
    side: Product,
    collocation_index: np.ndarray,
) -> None:
    filter_by_index(side, "collocation_index", collocation_index)
    grid = side.get_variable(vertical_axis)
    bounds = side.get_variable(f"{vertical_axis}_bounds")

    with transaction(product) as working:
        regrid_with_axis_variable(working, grid, bounds)

        for name in smooth_variables:
            apriori_name = f"{name}_apriori"
            smooth_vertical(
                working.get_variable(name),
                side.get_variable(f"{name}_avk"),
                vertical_axis=grid,
                apriori=side.get_variable(apriori_name) if apriori_name in side else None,
            )


def smooth_vertical_with_collocated_product(
    product: Product,
    smooth_variables: t.Sequence[str],
    vertical_axis: str,
    vertical_unit: str,
    collocated_product: Product,
) -> None:
    """
    Smooth variables of a product with the averaging kernels (and a priori
    profiles) of a collocated product.

    The collocated product must provide (or allow to derive) the
    ``collocation_index`` variable, the vertical grid ``vertical_axis`` and
    its bounds, and ``<variable>_avk`` ``{time, vertical, vertical}`` for each
    smoothed variable. A ``<variable>_apriori`` profile is used if available.
    The product is first regridded onto the vertical grid of the collocated
    samples, matched by collocation index, then each variable is smoothed with
    :func:`.smooth_vertical`.

    The product is modified in place only if all steps succeed.

    Parameters
    ----------
    product : :class:`.Product`
        Product to smooth. It must have a vertical dimension and a
        ``collocation_index`` variable.

    smooth_variables : sequence of str
        Names of the variables to smooth.

    vertical_axis : str
        Name of the vertical grid variable (*e.g.* ``"altitude"`` or
        ``"pressure"``).

    vertical_unit : str
        Unit in which the vertical grid is brought for regridding.

    collocated_product : :class:`.Product`
        Product holding the collocated measurements.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If the product does not meet the requirements above.

    :class:`.InconsistentProductError`
        If a collocation index of the product has no collocated sample.

    :class:`.UpstreamError`
        If a derivation or the regridding fails.
    """
    collocation_index = check_collocated_target(product, smooth_variables)
    logger.debug(
        "begin smoothing %s with collocated product '%s'",
        ", ".join(smooth_variables),
        collocated_product.source_product,
    )

    side = build_side_product(
        collocated_product,
        vertical_axis,
        vertical_unit,
        _smoothing_requests(product, smooth_variables),
    )
    _smooth(product, smooth_variables, vertical_axis, side, collocation_index)

    logger.debug("end smoothing")


def smooth_vertical_with_collocated_dataset(
    product: Product,
    smooth_variables: t.Sequence[str],
    vertical_axis: str,
    vertical_unit: str,
    collocation_result: CollocationResult,
) -> None:
    """
    Smooth variables of a product (from dataset A of a collocation result)
    with the averaging kernels (and a priori profiles) of the collocated
    measurements of dataset B.

    This works like :func:`.smooth_vertical_with_collocated_product`, with the
    side product gathered from all dataset B products referenced by the
    collocation pairs of the product. Progress over dataset B products is
    displayed if the ``progress`` setting is enabled.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If the product does not meet the requirements or if no collocated
        product matches.

    :class:`.InconsistentProductError`
        If the product and the collocation result are inconsistent.

    :class:`.UpstreamError`
        If a derivation, append or regridding operation fails.
    """
    collocation_index = check_collocated_target(product, smooth_variables)
    logger.debug(
        "begin smoothing %s with collocated dataset (%d pair(s))",
        ", ".join(smooth_variables),
        collocation_result.num_pairs,
    )

    side = gather_side_product(
        collocation_result,
        collocation_index,
        vertical_axis,
        vertical_unit,
        _smoothing_requests(product, smooth_variables),
    )
    _smooth(product, smooth_variables, vertical_axis, side, collocation_index)

    logger.debug("end smoothing")
