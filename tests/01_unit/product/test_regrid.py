import numpy as np
import pytest

from harmonia.exceptions import RegriddingError
from harmonia.product import (
    DimensionType,
    Product,
    Variable,
    interpolate_profile,
    regrid_with_axis_variable,
    resample_partial_column_profile,
)

T = DimensionType.TIME
V = DimensionType.VERTICAL
I = DimensionType.INDEPENDENT  # noqa: E741


# ------------------------------------------------------------------------------
#                            Profile resampling
# ------------------------------------------------------------------------------


def test_interpolate_profile():
    result = interpolate_profile(
        np.array([1.0, 2.0, 3.0]),
        np.array([0.0, 10.0, 20.0]),
        np.array([5.0, 15.0, 25.0]),
    )
    np.testing.assert_allclose(result, [1.5, 2.5, np.nan])


def test_interpolate_profile_log():
    result = interpolate_profile(
        np.array([0.0, 1.0, 2.0]),
        np.array([1000.0, 100.0, 10.0]),
        np.array([316.22776601683796]),
        log=True,
    )
    np.testing.assert_allclose(result, [0.5])


def test_interpolate_profile_padding():
    result = interpolate_profile(
        np.array([1.0, 2.0, np.nan]),
        np.array([0.0, 10.0, np.nan]),
        np.array([5.0, np.nan]),
    )
    np.testing.assert_allclose(result, [1.5, np.nan])

    # Too few valid source levels
    result = interpolate_profile(
        np.array([1.0]), np.array([0.0]), np.array([0.0, 1.0])
    )
    assert np.all(np.isnan(result))


def test_resample_partial_column_profile():
    values = np.array([10.0, 20.0])
    source = np.array([[0.0, 1000.0], [1000.0, 2000.0]])
    target = np.array([[0.0, 500.0], [500.0, 2000.0], [2000.0, 3000.0]])

    result = resample_partial_column_profile(values, source, target)
    np.testing.assert_allclose(result, [5.0, 25.0, np.nan])

    # Bounds order within a layer does not matter
    result = resample_partial_column_profile(values, source[:, ::-1], target)
    np.testing.assert_allclose(result, [5.0, 25.0, np.nan])


# ------------------------------------------------------------------------------
#                             Product regridding
# ------------------------------------------------------------------------------


def test_regrid_altitude(profile_product):
    target = Variable("altitude", np.array([2000.0, 4000.0, 6000.0]), [V], unit="m")
    regrid_with_axis_variable(profile_product, target)

    assert profile_product.get_dimension(V) == 3
    assert profile_product.variable_names == [
        "collocation_index",
        "O3_number_density",
        "latitude",
        "altitude",
    ]
    np.testing.assert_allclose(
        profile_product.get_variable("O3_number_density").data[0], [1.5, 2.5, 3.5]
    )
    np.testing.assert_array_equal(
        profile_product.get_variable("collocation_index").data, [10, 11, 12]
    )


def test_regrid_unit_conversion(profile_product):
    # The source grid is brought to the unit of the target grid
    target = Variable("altitude", np.array([2.0, 4.0]), [V], unit="km")
    regrid_with_axis_variable(profile_product, target)

    np.testing.assert_allclose(
        profile_product.get_variable("O3_number_density").data[1], [6.5, 7.5]
    )
    assert profile_product.get_variable("altitude").unit == "km"


def test_regrid_time_dependent(profile_product):
    target = Variable(
        "altitude",
        np.array([[1000.0, 2000.0], [3000.0, 4000.0], [9000.0, 11000.0]]),
        [T, V],
        unit="m",
    )
    regrid_with_axis_variable(profile_product, target)

    np.testing.assert_allclose(
        profile_product.get_variable("O3_number_density").data,
        [[1.0, 1.5], [7.0, 7.5], [15.0, np.nan]],
    )
    assert profile_product.get_variable("altitude").dimension_types == (T, V)


def test_regrid_removes_variables(profile_product):
    profile_product.add_variable(
        Variable("quality", np.zeros((3, 5), dtype=np.int32), [T, V])
    )
    profile_product.add_variable(
        Variable("O3_number_density_avk", np.zeros((3, 5, 5)), [T, V, V], unit="")
    )

    target = Variable("altitude", np.array([2000.0]), [V], unit="m")
    regrid_with_axis_variable(profile_product, target)

    assert "quality" not in profile_product
    assert "O3_number_density_avk" not in profile_product
    assert "O3_number_density" in profile_product


def test_regrid_pressure():
    product = Product.from_variables(
        [
            Variable("pressure", np.array([100000.0, 10000.0, 1000.0]), [V], unit="Pa"),
            Variable("temperature", np.array([[300.0, 250.0, 200.0]]), [T, V], unit="K"),
        ]
    )
    target = Variable("pressure", np.array([31622.776601683792]), [V], unit="Pa")
    regrid_with_axis_variable(product, target)

    # Pressure grids are interpolated in log space
    np.testing.assert_allclose(product.get_variable("temperature").data, [[275.0]])


def test_regrid_partial_columns():
    product = Product.from_variables(
        [
            Variable("altitude", np.array([500.0, 1500.0]), [V], unit="m"),
            Variable(
                "altitude_bounds",
                np.array([[0.0, 1000.0], [1000.0, 2000.0]]),
                [V, I],
                unit="m",
            ),
            Variable(
                "O3_column_number_density",
                np.array([[1.0, 2.0]]),
                [T, V],
                unit="molec/m^2",
            ),
            Variable("O3_number_density", np.array([[1.0, 2.0]]), [T, V], unit="molec/m^3"),
        ]
    )
    target = Variable("altitude", np.array([1000.0]), [V], unit="m")
    target_bounds = Variable(
        "altitude_bounds", np.array([[0.0, 2000.0]]), [V, I], unit="m"
    )
    regrid_with_axis_variable(product, target, target_bounds)

    # Partial columns are resampled by layer overlap, other profiles are
    # interpolated
    np.testing.assert_allclose(
        product.get_variable("O3_column_number_density").data, [[3.0]]
    )
    np.testing.assert_allclose(product.get_variable("O3_number_density").data, [[1.5]])
    np.testing.assert_array_equal(
        product.get_variable("altitude_bounds").data, [[0.0, 2000.0]]
    )


@pytest.mark.parametrize(
    "target, target_bounds, match",
    [
        (
            Variable("altitude", np.array([1.0], dtype=np.float32), [V], unit="m"),
            None,
            "double precision",
        ),
        (
            Variable("altitude", np.array([1.0]), [T], unit="m"),
            None,
            "must have dimensions",
        ),
        (
            Variable("altitude", np.ones((2, 1)), [T, V], unit="m"),
            None,
            "time samples",
        ),
        (
            Variable("altitude", np.array([1.0]), [V], unit="m"),
            Variable("altitude_bounds", np.array([1.0, 2.0]), [I], unit="m"),
            "inconsistent",
        ),
    ],
    ids=["float32", "no_vertical", "time_mismatch", "bounds"],
)
def test_regrid_invalid_target(profile_product, target, target_bounds, match):
    with pytest.raises(RegriddingError, match=match):
        regrid_with_axis_variable(profile_product, target, target_bounds)


def test_regrid_missing_source_grid(profile_product):
    profile_product.remove_variable("altitude")
    names = profile_product.variable_names

    target = Variable("altitude", np.array([2000.0]), [V], unit="m")
    with pytest.raises(RegriddingError, match="source grid"):
        regrid_with_axis_variable(profile_product, target)

    # The product is unchanged
    assert profile_product.variable_names == names
    assert profile_product.get_dimension(V) == 5
