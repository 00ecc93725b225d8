import numpy as np
import pytest

from harmonia.exceptions import InvalidArgumentError, UnitError
from harmonia.product import DimensionType, Product, Variable

T = DimensionType.TIME
V = DimensionType.VERTICAL


def test_dimension_type_convert():
    assert DimensionType.convert("time") is T
    assert DimensionType.convert("VERTICAL") is V
    assert DimensionType.convert(V) is V

    with pytest.raises(ValueError):
        DimensionType.convert("height")
    with pytest.raises(TypeError):
        DimensionType.convert(1)


def test_variable_construct():
    variable = Variable("pressure", [[1.0, 2.0]], ["time", "vertical"], unit="Pa")
    assert variable.dimension_types == (T, V)
    assert variable.shape == (1, 2)
    assert variable.num_elements == 2
    assert variable.dtype == np.float64
    assert variable.has_dimension_types("time", "vertical")

    # Dimension count must match data
    with pytest.raises(InvalidArgumentError, match="pressure"):
        Variable("pressure", [1.0, 2.0], [T, V])


def test_variable_docstring():
    # Field documentation is appended to the class docstring
    assert "Parameters" in Variable.__doc__
    assert "dimension_types : tuple of" in Variable.__doc__


def test_variable_copy():
    variable = Variable("pressure", [1.0, 2.0], [V], unit="Pa", description="p")
    copy = variable.copy(name="p")

    assert copy.name == "p"
    assert copy.unit == "Pa"
    assert copy.description == "p"
    copy.data[0] = 0.0
    assert variable.data[0] == 1.0


def test_variable_converted():
    variable = Variable("pressure", [100.0, 200.0], [V], unit="hPa")

    result = variable.converted("Pa")
    np.testing.assert_allclose(result.data, [10000.0, 20000.0])
    assert result.unit == "Pa"
    assert variable.unit == "hPa"

    result = variable.converted(data_type=np.float32)
    assert result.dtype == np.float32

    with pytest.raises(UnitError):
        variable.converted("m")


def test_variable_shape_fixed():
    variable = Variable("x", np.ones((3, 5)), [T, V])
    product = Product.from_variables([variable])

    # Data may be replaced with an array of the same shape
    variable.data = np.zeros((3, 5), dtype=np.int32)
    assert variable.dtype == np.int32

    with pytest.raises(InvalidArgumentError, match="shape"):
        product.get_variable("x").data = np.zeros((7, 2))
    assert variable.shape == (3, 5)
    assert product.get_dimension(T) == 3
    assert product.get_dimension(V) == 5
