"""
Vertical smoothing of profiles with averaging kernels.
"""

from __future__ import annotations

import numpy as np

from .. import profiles
from ..exceptions import InvalidArgumentError
from ..product import DimensionType, Variable

_T = DimensionType.TIME
_V = DimensionType.VERTICAL


def _check_inputs(
    variable: Variable,
    averaging_kernel: Variable,
    vertical_axis: Variable | None,
    apriori: Variable | None,
) -> None:
    for role, item in [
        ("variable", variable),
        ("averaging kernel", averaging_kernel),
        ("vertical axis", vertical_axis),
        ("apriori", apriori),
    ]:
        if item is not None and item.dtype != np.float64:
            raise InvalidArgumentError(
                f"{role} '{item.name}' must be double precision, got {item.dtype}"
            )

    types = variable.dimension_types
    if len(types) < 2 or types[0] is not _T or types[-1] is not _V:
        raise InvalidArgumentError(
            f"variable '{variable.name}' must have dimensions {{time, ..., vertical}}"
        )
    num_samples, num_levels = variable.shape[0], variable.shape[-1]

    if averaging_kernel.dimension_types != (_T, _V, _V):
        raise InvalidArgumentError(
            f"averaging kernel '{averaging_kernel.name}' must have dimensions "
            "{time, vertical, vertical}"
        )
    if averaging_kernel.shape != (num_samples, num_levels, num_levels):
        raise InvalidArgumentError(
            f"averaging kernel '{averaging_kernel.name}' has shape "
            f"{averaging_kernel.shape}, expected "
            f"{(num_samples, num_levels, num_levels)} (time and vertical "
            f"extents of '{variable.name}')"
        )

    for role, item in [("vertical axis", vertical_axis), ("apriori", apriori)]:
        if item is None:
            continue
        if item.dimension_types != (_T, _V):
            raise InvalidArgumentError(
                f"{role} '{item.name}' must have dimensions {{time, vertical}}"
            )
        if item.shape != (num_samples, num_levels):
            raise InvalidArgumentError(
                f"{role} '{item.name}' has shape {item.shape}, expected "
                f"{(num_samples, num_levels)} (time and vertical extents of "
                f"'{variable.name}')"
            )


def smooth_vertical(
    variable: Variable,
    averaging_kernel: Variable,
    vertical_axis: Variable | None = None,
    apriori: Variable | None = None,
) -> None:
    r"""
    Smooth a profile variable in place with an averaging kernel:

    .. math::
       \hat{x} = x_a + A (x - x_a)

    For each time sample, only the valid levels are processed: those before
    the trailing NaN padding of ``vertical_axis`` (all levels if no axis is
    given). Levels where :math:`x - x_a` is NaN are left untouched and do not
    contribute to other levels. Without an a priori, a level to which no valid
    level contributes through a nonzero kernel element is set to NaN.

    Parameters
    ----------
    variable : :class:`.Variable`
        Variable to smooth, ``{time, ..., vertical}``, double precision. Its
        data is overwritten.

    averaging_kernel : :class:`.Variable`
        Averaging kernel, ``{time, vertical, vertical}``, indexed
        ``[time, retrieved level, true level]``.

    vertical_axis : :class:`.Variable`, optional
        Vertical grid ``{time, vertical}`` used to find the valid length of
        each profile.

    apriori : :class:`.Variable`, optional
        A priori profile ``{time, vertical}``, in the unit of ``variable``.

    Raises
    ------
    :class:`.InvalidArgumentError`
        If inputs have unexpected data types, dimensions or extents. Data is
        left unchanged in that case.
    """
    _check_inputs(variable, averaging_kernel, vertical_axis, apriori)

    num_samples, num_levels = variable.shape[0], variable.shape[-1]
    data = variable.data.reshape(num_samples, -1, num_levels).copy()
    kernel = averaging_kernel.data

    for t in range(num_samples):
        if vertical_axis is not None:
            length = profiles.valid_length(vertical_axis.data[t])
        else:
            length = num_levels

        x = data[t, :, :length]
        x_a = apriori.data[t, :length] if apriori is not None else np.zeros(length)
        a = kernel[t, :length, :length]

        w = x - x_a
        valid = ~np.isnan(w)

        # Terms a[i, j] * w[j] for each block, masked where w[j] is NaN
        terms = a[np.newaxis, :, :] * w[:, np.newaxis, :]
        mask = np.broadcast_to(valid[:, np.newaxis, :], terms.shape)
        with np.errstate(invalid="ignore"):
            smoothed = np.sum(np.where(mask, terms, 0.0), axis=-1)

        if apriori is not None:
            smoothed = smoothed + x_a
        else:
            contributes = np.any(mask & (a[np.newaxis, :, :] != 0), axis=-1)
            smoothed = np.where(contributes, smoothed, np.nan)

        x[valid] = smoothed[valid]

    variable.data = data.reshape(variable.shape)
