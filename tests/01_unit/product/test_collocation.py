import numpy as np
import pandas as pd
import pytest

from harmonia.exceptions import InconsistentProductError, InvalidArgumentError
from harmonia.product import CollocationResult, DimensionType, Product, Variable

T = DimensionType.TIME


@pytest.fixture
def products_b():
    return {
        "b1": Product.from_variables(
            [Variable("value", np.array([10.0, 20.0]), [T])], source_product="b1"
        ),
        # Sample indices are given by the "index" variable
        "b2": Product.from_variables(
            [
                Variable("index", np.array([4, 5], dtype=np.int32), [T]),
                Variable("value", np.array([40.0, 50.0]), [T]),
            ],
            source_product="b2",
        ),
    }


@pytest.fixture
def pairs():
    return {
        "collocation_index": [3, 1, 2],
        "source_product_a": ["a", "a", "a"],
        "index_a": [0, 1, 2],
        "source_product_b": ["b2", "b1", "b1"],
        "index_b": [5, 0, 1],
    }


def test_collocation_result_construct(pairs, products_b):
    result = CollocationResult(pairs, products_b)

    assert isinstance(result.pairs, pd.DataFrame)
    assert result.num_pairs == 3
    # Pairs are sorted by collocation index
    assert result.pairs["collocation_index"].tolist() == [1, 2, 3]
    assert result.source_products_b == ["b1", "b2"]


def test_collocation_result_missing_column(pairs):
    del pairs["index_b"]
    with pytest.raises(InvalidArgumentError, match="index_b"):
        CollocationResult(pairs)


def test_collocation_result_filter(pairs, products_b):
    result = CollocationResult(pairs, products_b)

    filtered = result.filter_for_collocation_indices(np.array([3, 7]))
    assert filtered.num_pairs == 1
    assert filtered.source_products_b == ["b2"]
    assert filtered.products_b.keys() == result.products_b.keys()

    # The original is not modified
    assert result.num_pairs == 3


def test_get_filtered_product_b(pairs, products_b):
    result = CollocationResult(pairs, products_b)

    product = result.get_filtered_product_b("b1")
    np.testing.assert_array_equal(product.get_variable("value").data, [10.0, 20.0])
    np.testing.assert_array_equal(
        product.get_variable("collocation_index").data, [1, 2]
    )

    product = result.get_filtered_product_b("b2")
    np.testing.assert_array_equal(product.get_variable("value").data, [50.0])
    np.testing.assert_array_equal(product.get_variable("collocation_index").data, [3])

    # Stored products are left untouched
    assert products_b["b2"].get_dimension(T) == 2

    assert result.get_filtered_product_b("b3") is None


def test_get_filtered_product_b_inconsistent(pairs, products_b):
    del products_b["b2"]
    with pytest.raises(InconsistentProductError, match="not available"):
        CollocationResult(pairs, products_b).get_filtered_product_b("b2")

    pairs["index_b"] = [7, 0, 1]
    products_b["b2"] = Product.from_variables([Variable("value", np.zeros(2), [T])])
    with pytest.raises(InconsistentProductError, match="index 7"):
        CollocationResult(pairs, products_b).get_filtered_product_b("b2")
