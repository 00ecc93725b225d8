from __future__ import annotations

import enum
import typing as t


class DimensionType(enum.Enum):
    """
    An enumeration of the dimension types a variable may span.

    Every dimension type except :attr:`INDEPENDENT` has one authoritative
    extent per product.
    """

    TIME = "time"  #: Time (sample) dimension
    LATITUDE = "latitude"  #: Latitude grid dimension
    LONGITUDE = "longitude"  #: Longitude grid dimension
    VERTICAL = "vertical"  #: Vertical grid dimension
    SPECTRAL = "spectral"  #: Spectral grid dimension
    INDEPENDENT = "independent"  #: Dimension not shared across variables

    @staticmethod
    def convert(value: t.Any) -> DimensionType:
        """
        Attempt conversion of a value to a :class:`.DimensionType` instance.

        * A :class:`.DimensionType` instance is returned unchanged.
        * A string is matched case-insensitively against member values.
        * Otherwise, the method raises an exception.

        Raises
        ------
        TypeError
            If no conversion protocol exists for ``value``.

        ValueError
            If ``value`` is a string which does not name a dimension type.
        """
        if isinstance(value, DimensionType):
            return value
        elif isinstance(value, str):
            return DimensionType(value.lower())
        else:
            raise TypeError(f"cannot convert a {type(value)} instance to DimensionType")


def dimension_types(values: t.Iterable) -> tuple[DimensionType, ...]:
    """
    Convert a sequence of values to a tuple of :class:`.DimensionType`.
    """
    return tuple(DimensionType.convert(value) for value in values)
