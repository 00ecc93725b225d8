from __future__ import annotations

import logging
import typing as t
from contextlib import contextmanager

import attrs
import numpy as np

from ..attrs import define, documented
from ..exceptions import AppendError, InconsistentProductError, InvalidArgumentError
from ..units import convert_units
from ._dimension import DimensionType
from ._variable import Variable

logger = logging.getLogger(__name__)


@define(eq=False)
class Product:
    """
    An ordered, name-unique collection of :class:`.Variable` instances sharing
    one extent per dimension type.

    Variables are iterated over in insertion order. Adding a variable whose
    extents disagree with those of the product raises an
    :class:`.InvalidArgumentError`; :attr:`.DimensionType.INDEPENDENT`
    dimensions are exempt from this check.
    """

    source_product: str | None = documented(
        attrs.field(default=None),
        doc="Name of the source product this product was read or derived from.",
        type="str or None",
        default="None",
    )

    _variables: dict[str, Variable] = attrs.field(factory=dict, init=False, repr=False)
    _dimension: dict[DimensionType, int] = attrs.field(
        factory=dict, init=False, repr=False
    )

    @classmethod
    def from_variables(
        cls, variables: t.Iterable[Variable], source_product: str | None = None
    ) -> Product:
        """
        Create a product and add ``variables`` to it, in order.
        """
        product = cls(source_product=source_product)
        for variable in variables:
            product.add_variable(variable)
        return product

    # --------------------------------------------------------------------------
    #                              Mapping protocol
    # --------------------------------------------------------------------------

    def __contains__(self, name: str) -> bool:
        return name in self._variables

    def __iter__(self) -> t.Iterator[Variable]:
        return iter(list(self._variables.values()))

    def __len__(self) -> int:
        return len(self._variables)

    @property
    def variable_names(self) -> list[str]:
        """Names of all variables, in insertion order."""
        return list(self._variables)

    def is_empty(self) -> bool:
        """Return ``True`` if the product holds no variable."""
        return not self._variables

    def has_variable(self, name: str) -> bool:
        return name in self._variables

    def get_variable(self, name: str) -> Variable:
        """
        Get a stored variable by name.

        Raises
        ------
        :class:`.InvalidArgumentError`
            If the product has no variable with this name.
        """
        try:
            return self._variables[name]
        except KeyError as e:
            raise InvalidArgumentError(
                f"product has no variable named '{name}'"
            ) from e

    def get_dimension(self, dimension_type: DimensionType | str) -> int:
        """
        Get the extent of a dimension, 0 if no variable spans it.
        """
        return self._dimension.get(DimensionType.convert(dimension_type), 0)

    # --------------------------------------------------------------------------
    #                                 Mutation
    # --------------------------------------------------------------------------

    def _check_extents(self, variable: Variable) -> dict[DimensionType, int]:
        extents = {}

        for dimension_type, extent in zip(variable.dimension_types, variable.shape):
            if dimension_type is DimensionType.INDEPENDENT:
                continue

            expected = extents.get(dimension_type, self._dimension.get(dimension_type))
            if expected is not None and expected != extent:
                raise InvalidArgumentError(
                    f"variable '{variable.name}' has {dimension_type.value} "
                    f"extent {extent}, expected {expected}"
                )
            extents[dimension_type] = extent

        return extents

    def add_variable(self, variable: Variable) -> None:
        """
        Add a variable to the product, taking ownership of it.

        Raises
        ------
        :class:`.InvalidArgumentError`
            If a variable with the same name exists, if the variable is already
            owned by a product or if its extents are inconsistent with the
            product's.
        """
        if variable._owner is not None:
            raise InvalidArgumentError(
                f"variable '{variable.name}' is already owned by another product"
            )

        self._insert(variable)
        variable._owner = self

    def _insert(self, variable: Variable) -> None:
        if variable.name in self._variables:
            raise InvalidArgumentError(
                f"product already contains a variable named '{variable.name}'"
            )

        self._dimension.update(self._check_extents(variable))
        self._variables[variable.name] = variable

    def remove_variable(self, name: str) -> Variable:
        """
        Remove a variable from the product and release ownership of it.
        Dimensions no longer spanned by any variable are reset.
        """
        variable = self.get_variable(name)
        del self._variables[name]
        variable._owner = None

        spanned = {
            dimension_type
            for remaining in self._variables.values()
            for dimension_type in remaining.dimension_types
        }
        for dimension_type in list(self._dimension):
            if dimension_type not in spanned:
                del self._dimension[dimension_type]

        return variable

    def replace_variable(self, variable: Variable) -> None:
        """
        Replace the stored variable with the same name (or add it), keeping its
        position in the product. Extents must be consistent with the other
        variables.
        """
        if variable.name not in self._variables:
            self.add_variable(variable)
            return

        names = self.variable_names
        variables = [
            variable if name == variable.name else self._variables[name]
            for name in names
        ]
        self._reset(variables)

    def _reset(self, variables: t.Iterable[Variable]) -> None:
        # Replace all contents at once; variables may have new extents. Nothing
        # changes if the new contents are inconsistent.
        variables = [
            variable if variable._owner in (None, self) else variable.copy()
            for variable in variables
        ]

        staged = Product()
        for variable in variables:
            staged._insert(variable)

        for variable in self._variables.values():
            variable._owner = None
        self._variables = staged._variables
        self._dimension = staged._dimension
        for variable in variables:
            variable._owner = self

    def copy(self) -> Product:
        """
        Return a deep copy of this product.
        """
        return Product.from_variables(
            (variable.copy() for variable in self._variables.values()),
            source_product=self.source_product,
        )


@contextmanager
def transaction(product: Product) -> t.Iterator[Product]:
    """
    Run in-place modifications of a product on a working copy, and commit them
    only if the ``with`` block completes without raising.

    Examples
    --------
    >>> with transaction(product) as working:
    ...     working.remove_variable("temperature")
    """
    working = product.copy()
    yield working

    # Move the working variables over to the committed product
    variables = list(working)
    working._reset([])
    product.source_product = working.source_product
    product._reset(variables)


# ------------------------------------------------------------------------------
#                                 Filtering
# ------------------------------------------------------------------------------


def _take_samples(variable: Variable, positions: np.ndarray) -> Variable:
    # Select samples along every time dimension of a variable
    data = variable.data
    for axis, dimension_type in enumerate(variable.dimension_types):
        if dimension_type is DimensionType.TIME:
            data = np.take(data, positions, axis=axis)

    return Variable(
        name=variable.name,
        data=data,
        dimension_types=variable.dimension_types,
        unit=variable.unit,
        description=variable.description,
    )


def take_samples(product: Product, positions: t.Sequence[int]) -> None:
    """
    Keep the time samples at ``positions``, in that order. Variables without a
    time dimension are left unchanged.
    """
    positions = np.asarray(positions, dtype=np.int64)
    product._reset([_take_samples(variable, positions) for variable in product])


def filter_by_index(product: Product, name: str, indices: t.Sequence[int]) -> None:
    """
    Filter and reorder the time samples of a product such that the values of
    the index variable ``name`` follow ``indices``.

    Parameters
    ----------
    product : :class:`.Product`
        Product to filter in place.

    name : str
        Name of a ``{time}`` index variable (*e.g.* ``"collocation_index"``).

    indices : sequence of int
        Index values to keep, in the requested order.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If the index variable does not exist or is not ``{time}``.

    :class:`.InconsistentProductError`
        If an index value is absent from the product.
    """
    variable = product.get_variable(name)
    if variable.dimension_types != (DimensionType.TIME,):
        raise InvalidArgumentError(f"variable '{name}' must have dimensions {{time}}")

    lookup = {}
    for position, value in enumerate(variable.data.tolist()):
        lookup.setdefault(value, position)

    positions = []
    for index in np.asarray(indices).tolist():
        try:
            positions.append(lookup[index])
        except KeyError as e:
            raise InconsistentProductError(
                f"product has no sample with {name} {index}"
            ) from e

    take_samples(product, positions)


# ------------------------------------------------------------------------------
#                                  Append
# ------------------------------------------------------------------------------


def _fill_value(dtype: np.dtype):
    return np.nan if np.issubdtype(dtype, np.inexact) else 0


def _with_time(variable: Variable, num_samples: int) -> tuple[np.ndarray, tuple]:
    # Return data and dimension types with a leading time dimension
    if variable.dimension_types[:1] == (DimensionType.TIME,):
        return variable.data, variable.dimension_types

    if DimensionType.TIME in variable.dimension_types:
        raise AppendError(
            f"variable '{variable.name}' has a time dimension which is not "
            "the first dimension"
        )

    data = np.broadcast_to(variable.data, (num_samples,) + variable.shape).copy()
    return data, (DimensionType.TIME,) + variable.dimension_types


def _pad(data: np.ndarray, shape: tuple[int, ...]) -> np.ndarray:
    # Pad trailing ends of all axes but the first one with fill values
    pad_width = [(0, 0)] + [
        (0, target - current) for current, target in zip(data.shape[1:], shape[1:])
    ]
    if not any(after for _, after in pad_width):
        return data
    return np.pad(data, pad_width, constant_values=_fill_value(data.dtype))


def append(product: Product, other: Product) -> None:
    """
    Append the time samples of ``other`` to ``product``, in place.

    Both products must hold the same set of variable names. Non-time dimensions
    are padded to the largest extent with NaN (0 for integer data). Variables
    without a time dimension are kept as is if identical in both products, and
    made time dependent otherwise.

    Raises
    ------
    :class:`.AppendError`
        If the products cannot be concatenated.
    """
    if other.is_empty():
        return

    if product.is_empty():
        product._reset(variable.copy() for variable in other)
        return

    if sorted(product.variable_names) != sorted(other.variable_names):
        raise AppendError(
            "products do not contain the same variables: "
            f"{product.variable_names} vs {other.variable_names}"
        )

    num_samples = product.get_dimension(DimensionType.TIME)
    num_samples_other = other.get_dimension(DimensionType.TIME)
    result = []

    for variable in product:
        variable_other = other.get_variable(variable.name)

        types = [t for t in variable.dimension_types if t is not DimensionType.TIME]
        types_other = [
            t for t in variable_other.dimension_types if t is not DimensionType.TIME
        ]
        if types != types_other:
            raise AppendError(
                f"variable '{variable.name}' has inconsistent dimensions in "
                "appended products"
            )

        data_other = variable_other.data
        if variable_other.unit != variable.unit:
            try:
                data_other = convert_units(data_other, variable_other.unit, variable.unit)
            except InvalidArgumentError as e:
                raise AppendError(
                    f"variable '{variable.name}' has inconsistent units in "
                    "appended products"
                ) from e

        if (
            DimensionType.TIME not in variable.dimension_types
            and DimensionType.TIME not in variable_other.dimension_types
            and variable.shape == data_other.shape
            and np.array_equal(variable.data, data_other, equal_nan=True)
        ):
            result.append(variable.copy())
            continue

        data, dims = _with_time(variable, num_samples)
        data_other, _ = _with_time(
            attrs.evolve(variable_other, data=data_other), num_samples_other
        )
        dtype = np.result_type(data, data_other)
        shape = tuple(np.maximum(data.shape, data_other.shape))
        data = np.concatenate(
            [_pad(data.astype(dtype), shape), _pad(data_other.astype(dtype), shape)]
        )
        result.append(
            Variable(
                name=variable.name,
                data=data,
                dimension_types=dims,
                unit=variable.unit,
                description=variable.description,
            )
        )

    logger.debug(
        "appended %d sample(s) to product with %d sample(s)",
        num_samples_other,
        num_samples,
    )
    product._reset(result)
