"""
Averaging kernel (AVK) transforms.

Partial column AVKs are square matrices shaped (..., N, N), indexed
``[retrieved level, true level]``. Leading dimensions are treated as a batch.
Where a transform would divide by a (near) zero layer thickness or air number
density, the affected row or column is set to zero instead.
"""

from __future__ import annotations

import numpy as np

from ..constants import EPSILON
from ..exceptions import InvalidArgumentError


def _as_avk(avk) -> np.ndarray:
    avk = np.asarray(avk, dtype=np.float64)

    if avk.ndim < 2 or avk.shape[-1] != avk.shape[-2]:
        raise InvalidArgumentError(
            f"averaging kernel must be a square matrix, got shape {avk.shape}"
        )

    return avk


def _as_bounds(bounds, num_levels: int) -> np.ndarray:
    bounds = np.asarray(bounds, dtype=np.float64)

    if bounds.ndim < 2 or bounds.shape[-2:] != (num_levels, 2):
        raise InvalidArgumentError(
            f"altitude bounds must be shaped (..., {num_levels}, 2), "
            f"got {bounds.shape}"
        )

    return bounds


def _layer_thickness(altitude_bounds: np.ndarray) -> np.ndarray:
    return np.abs(altitude_bounds[..., 1] - altitude_bounds[..., 0])


def _safe_inverse(values: np.ndarray) -> np.ndarray:
    # 1 / values, or 0 where |values| is below EPSILON
    return np.divide(
        1.0, values, out=np.zeros_like(values), where=np.abs(values) >= EPSILON
    )


# ------------------------------------------------------------------------------
#                               Column AVKs
# ------------------------------------------------------------------------------


def column_avk_from_partial_column_avk(avk):
    """
    Convert a 2D partial column AVK into a 1D total column AVK by summing
    over retrieved levels.

    Parameters
    ----------
    avk : array-like
        Partial column AVK, shaped (..., N, N).

    Returns
    -------
    ndarray
        Column AVK, shaped (..., N).
    """
    return np.sum(_as_avk(avk), axis=-2)


def tropospheric_column_avk_from_column_avk(
    column_avk, altitude_bounds, tropopause_altitude
):
    """
    Derive a tropospheric column AVK by zeroing every layer whose lower bound
    is at or above the tropopause. Layers containing the tropopause are kept
    whole.

    Parameters
    ----------
    column_avk : array-like
        Column AVK, shaped (..., N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    tropopause_altitude : float or array-like
        Tropopause altitude, shaped (...) [m].

    Returns
    -------
    ndarray
        Tropospheric column AVK, shaped (..., N).
    """
    column_avk = np.asarray(column_avk, dtype=np.float64)
    bounds = _as_bounds(altitude_bounds, column_avk.shape[-1])
    trop = np.asarray(tropopause_altitude, dtype=np.float64)[..., np.newaxis]
    return np.where(bounds[..., 0] < trop, column_avk, 0.0)


def stratospheric_column_avk_from_column_avk(
    column_avk, altitude_bounds, tropopause_altitude
):
    """
    Derive a stratospheric column AVK by zeroing every layer whose upper bound
    is at or below the tropopause. Layers containing the tropopause are kept
    whole.

    Parameters
    ----------
    column_avk : array-like
        Column AVK, shaped (..., N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    tropopause_altitude : float or array-like
        Tropopause altitude, shaped (...) [m].

    Returns
    -------
    ndarray
        Stratospheric column AVK, shaped (..., N).
    """
    column_avk = np.asarray(column_avk, dtype=np.float64)
    bounds = _as_bounds(altitude_bounds, column_avk.shape[-1])
    trop = np.asarray(tropopause_altitude, dtype=np.float64)[..., np.newaxis]
    return np.where(bounds[..., 1] <= trop, 0.0, column_avk)


# ------------------------------------------------------------------------------
#                          Quantity conversions
# ------------------------------------------------------------------------------


def density_avk_from_partial_column_avk(avk, altitude_bounds):
    r"""
    Convert a partial column AVK into a density AVK:

    .. math::
       A^\rho_{ij} = A^c_{ij} \frac{h_j}{h_i}

    where :math:`h` is the layer thickness. Rows of layers thinner than
    ``EPSILON`` are zeroed.

    Parameters
    ----------
    avk : array-like
        Partial column AVK, shaped (..., N, N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    Returns
    -------
    ndarray
        Density AVK, shaped (..., N, N).
    """
    avk = _as_avk(avk)
    h = _layer_thickness(_as_bounds(altitude_bounds, avk.shape[-1]))
    return avk * _safe_inverse(h)[..., :, np.newaxis] * h[..., np.newaxis, :]


def partial_column_avk_from_density_avk(avk, altitude_bounds):
    r"""
    Convert a density AVK into a partial column AVK:

    .. math::
       A^c_{ij} = A^\rho_{ij} \frac{h_i}{h_j}

    Columns of layers thinner than ``EPSILON`` are zeroed.

    Parameters
    ----------
    avk : array-like
        Density AVK, shaped (..., N, N).

    altitude_bounds : array-like
        Altitude bounds, shaped (..., N, 2) [m].

    Returns
    -------
    ndarray
        Partial column AVK, shaped (..., N, N).
    """
    avk = _as_avk(avk)
    h = _layer_thickness(_as_bounds(altitude_bounds, avk.shape[-1]))
    return avk * h[..., :, np.newaxis] * _safe_inverse(h)[..., np.newaxis, :]


def number_density_avk_from_volume_mixing_ratio_avk(avk, number_density_air):
    r"""
    Convert a volume mixing ratio AVK into a number density AVK:

    .. math::
       A^n_{ij} = A^x_{ij} \frac{n_i}{n_j}

    where :math:`n` is the air number density. Columns where :math:`|n_j|` is
    below ``EPSILON`` are zeroed.

    Parameters
    ----------
    avk : array-like
        Volume mixing ratio AVK, shaped (..., N, N).

    number_density_air : array-like
        Air number density, shaped (..., N).

    Returns
    -------
    ndarray
        Number density AVK, shaped (..., N, N).
    """
    avk = _as_avk(avk)
    n = np.asarray(number_density_air, dtype=np.float64)
    return avk * n[..., :, np.newaxis] * _safe_inverse(n)[..., np.newaxis, :]


def volume_mixing_ratio_avk_from_number_density_avk(avk, number_density_air):
    r"""
    Convert a number density AVK into a volume mixing ratio AVK:

    .. math::
       A^x_{ij} = A^n_{ij} \frac{n_j}{n_i}

    Rows where :math:`|n_i|` is below ``EPSILON`` are zeroed.

    Parameters
    ----------
    avk : array-like
        Number density AVK, shaped (..., N, N).

    number_density_air : array-like
        Air number density, shaped (..., N).

    Returns
    -------
    ndarray
        Volume mixing ratio AVK, shaped (..., N, N).
    """
    avk = _as_avk(avk)
    n = np.asarray(number_density_air, dtype=np.float64)
    return avk * _safe_inverse(n)[..., :, np.newaxis] * n[..., np.newaxis, :]
