from __future__ import annotations

import typing as t

import attrs
import numpy as np
import numpy.typing as npt

from ..attrs import define, documented
from ..exceptions import InvalidArgumentError
from ..units import convert_units
from ._dimension import DimensionType, dimension_types


def _keep_shape(instance, attribute, value):
    # Extents of owned variables are checked by the product once, on insertion
    if value.shape != instance.data.shape:
        raise InvalidArgumentError(
            f"cannot change the shape of variable '{instance.name}' from "
            f"{instance.data.shape} to {value.shape}"
        )
    return value


@define(eq=False)
class Variable:
    """
    A named, dimensioned and unit-tagged array.

    The shape of a variable is fixed at creation. A variable is owned by at
    most one :class:`.Product` at any time.
    """

    name: str = documented(
        attrs.field(converter=str),
        doc="Variable name, unique within a product.",
        type="str",
    )

    data: np.ndarray = documented(
        attrs.field(
            converter=np.asarray,
            on_setattr=attrs.setters.pipe(attrs.setters.convert, _keep_shape),
        ),
        doc="Variable data. Usually double precision, integer data is "
        "accepted and kept as is. The shape is fixed at creation.",
        type="ndarray",
    )

    dimension_types: tuple[DimensionType, ...] = documented(
        attrs.field(converter=dimension_types),
        doc="Type of each dimension of ``data``. A type may repeat (*e.g.* "
        "``(time, vertical, vertical)`` for an averaging kernel).",
        type="tuple of :class:`.DimensionType`",
    )

    unit: str | None = documented(
        attrs.field(default=None),
        doc="Unit of ``data``. ``None`` and ``''`` both mean dimensionless.",
        type="str or None",
        default="None",
    )

    description: str = documented(
        attrs.field(default="", converter=str),
        doc="Free text description.",
        type="str",
        default='""',
    )

    _owner: t.Any = attrs.field(default=None, init=False, repr=False)

    @dimension_types.validator
    def _dimension_types_validator(self, attribute, value):
        if len(value) != self.data.ndim:
            raise InvalidArgumentError(
                f"variable '{self.name}' has {self.data.ndim} dimension(s) but "
                f"{len(value)} dimension type(s)"
            )

    @property
    def shape(self) -> tuple[int, ...]:
        return self.data.shape

    @property
    def ndim(self) -> int:
        return self.data.ndim

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    @property
    def num_elements(self) -> int:
        return self.data.size

    def has_dimension_types(self, *types) -> bool:
        """
        Return ``True`` if the variable's dimension types are exactly ``types``.
        """
        return self.dimension_types == dimension_types(types)

    def copy(self, name: str | None = None) -> Variable:
        """
        Return an unowned deep copy of this variable, optionally renamed.
        """
        return Variable(
            name=self.name if name is None else name,
            data=self.data.copy(),
            dimension_types=self.dimension_types,
            unit=self.unit,
            description=self.description,
        )

    def converted(
        self, unit: str | None = None, data_type: npt.DTypeLike | None = None
    ) -> Variable:
        """
        Return an unowned copy of this variable with data converted to another
        unit and/or data type. Unit conversion always goes through double
        precision.

        Raises
        ------
        :class:`.UnitError`
            If the unit conversion is not possible.
        """
        result = self.copy()

        if unit is not None and unit != self.unit:
            result.data = convert_units(self.data, self.unit, unit)
            result.unit = unit

        if data_type is not None:
            result.data = result.data.astype(data_type, copy=False)

        return result
