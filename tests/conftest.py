import numpy as np
import pytest

from harmonia.product import DimensionType, Product, Variable

# ------------------------------------------------------------------------------
#                              Test configuration
# ------------------------------------------------------------------------------


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with -m 'not slow')"
    )


# ------------------------------------------------------------------------------
#                                Product fixtures
# ------------------------------------------------------------------------------

T = DimensionType.TIME
V = DimensionType.VERTICAL
I = DimensionType.INDEPENDENT  # noqa: E741


@pytest.fixture
def altitude_grid():
    """A regular surface-first altitude grid with 5 levels [m]."""
    return np.array([1000.0, 3000.0, 5000.0, 7000.0, 9000.0])


@pytest.fixture
def profile_product(altitude_grid):
    """
    A product with 3 time samples of 5-level profiles on a time independent
    altitude grid, with collocation indices 10, 11 and 12.
    """
    num_samples = 3
    levels = altitude_grid.shape[0]

    return Product.from_variables(
        [
            Variable("collocation_index", np.array([10, 11, 12], dtype=np.int32), [T]),
            Variable("altitude", altitude_grid.copy(), [V], unit="m"),
            Variable(
                "O3_number_density",
                np.arange(1.0, num_samples * levels + 1.0).reshape(num_samples, levels),
                [T, V],
                unit="molec/m^3",
            ),
            Variable("latitude", np.array([10.0, 20.0, 30.0]), [T], unit="degree_north"),
        ],
        source_product="target",
    )


@pytest.fixture
def collocated_product(altitude_grid):
    """
    A product with 4 time samples of 5-level retrieval characterisation
    (altitude grid and bounds, averaging kernel and a priori) for collocation
    indices 12, 10, 11 and 13.
    """
    num_samples = 4
    levels = altitude_grid.shape[0]
    altitude = np.broadcast_to(altitude_grid, (num_samples, levels)).copy()
    bounds = np.stack([altitude - 1000.0, altitude + 1000.0], axis=-1)
    avk = np.broadcast_to(np.eye(levels), (num_samples, levels, levels)).copy()

    return Product.from_variables(
        [
            Variable(
                "collocation_index", np.array([12, 10, 11, 13], dtype=np.int32), [T]
            ),
            Variable("altitude", altitude, [T, V], unit="m"),
            Variable("altitude_bounds", bounds, [T, V, I], unit="m"),
            Variable("O3_number_density_avk", avk, [T, V, V], unit=""),
            Variable(
                "O3_number_density_apriori",
                np.zeros((num_samples, levels)),
                [T, V],
                unit="molec/m^3",
            ),
        ],
        source_product="companion",
    )
