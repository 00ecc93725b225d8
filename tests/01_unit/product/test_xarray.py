import numpy as np
import pytest
import xarray as xr

from harmonia.exceptions import InvalidArgumentError
from harmonia.product import DimensionType, Product, Variable, from_dataset, to_dataset

T = DimensionType.TIME
V = DimensionType.VERTICAL
I = DimensionType.INDEPENDENT  # noqa: E741


@pytest.fixture
def product():
    return Product.from_variables(
        [
            Variable("altitude", np.array([1000.0, 2000.0, 3000.0]), [V], unit="m"),
            Variable(
                "altitude_bounds",
                np.zeros((2, 3, 2)),
                [T, V, I],
                unit="m",
                description="layer bounds",
            ),
            Variable("O3_number_density_avk", np.zeros((2, 3, 3)), [T, V, V], unit=""),
            Variable("collocation_index", np.array([1, 2], dtype=np.int32), [T]),
        ],
        source_product="target",
    )


def test_to_dataset(product):
    ds = to_dataset(product)

    assert ds["altitude_bounds"].dims == ("time", "vertical", "independent_2")
    assert ds["O3_number_density_avk"].dims == ("time", "vertical", "vertical_1")
    assert ds["altitude"].attrs["units"] == "m"
    assert ds["altitude_bounds"].attrs["description"] == "layer bounds"
    assert "units" not in ds["collocation_index"].attrs
    assert ds.attrs["source_product"] == "target"


def test_from_dataset(product):
    result = from_dataset(to_dataset(product))

    assert result.variable_names == product.variable_names
    assert result.source_product == "target"
    assert result.get_variable("O3_number_density_avk").dimension_types == (T, V, V)
    assert result.get_variable("altitude_bounds").dimension_types == (T, V, I)
    assert result.get_variable("collocation_index").dtype == np.int32
    assert result.get_variable("collocation_index").unit is None


def test_from_dataset_unknown_dimension():
    ds = xr.Dataset({"x": (("wavelength",), np.zeros(3))})
    with pytest.raises(InvalidArgumentError, match="wavelength"):
        from_dataset(ds)
