from __future__ import annotations

import typing as t

import attrs
import numpy as np
import pandas as pd

from ..attrs import define, documented
from ..exceptions import InconsistentProductError, InvalidArgumentError
from ._dimension import DimensionType
from ._product import Product, take_samples
from ._variable import Variable

#: Columns of a collocation result table.
COLUMNS = [
    "collocation_index",
    "source_product_a",
    "index_a",
    "source_product_b",
    "index_b",
]


def _convert_pairs(value) -> pd.DataFrame:
    pairs = pd.DataFrame(value)

    missing = [column for column in COLUMNS if column not in pairs.columns]
    if missing:
        raise InvalidArgumentError(
            f"collocation pairs are missing column(s) {', '.join(missing)}"
        )

    pairs = pairs[COLUMNS].astype(
        {
            "collocation_index": np.int32,
            "source_product_a": str,
            "index_a": np.int32,
            "source_product_b": str,
            "index_b": np.int32,
        }
    )
    return pairs.sort_values("collocation_index", kind="stable").reset_index(drop=True)


@define(eq=False)
class CollocationResult:
    """
    The pairs of matching samples of two datasets A and B, along with the
    in-memory products of dataset B they refer to.

    Each pair associates the sample ``index_a`` of product
    ``source_product_a`` with the sample ``index_b`` of product
    ``source_product_b``, and is identified by a unique ``collocation_index``.
    """

    pairs: pd.DataFrame = documented(
        attrs.field(converter=_convert_pairs),
        doc="Collocation pairs, sorted by collocation index. Columns are "
        "``collocation_index``, ``source_product_a``, ``index_a``, "
        "``source_product_b`` and ``index_b``.",
        type="DataFrame",
    )

    products_b: dict[str, Product] = documented(
        attrs.field(factory=dict, converter=dict),
        doc="Products of dataset B, keyed by source product name. Sample "
        "indices refer to the ``index`` variable of a product if it has one, "
        "and to sample positions otherwise.",
        type="dict[str, :class:`.Product`]",
        default="{}",
    )

    @property
    def num_pairs(self) -> int:
        return len(self.pairs)

    @property
    def source_products_b(self) -> list[str]:
        """
        Names of the dataset B source products referenced by pairs, in order of
        first appearance.
        """
        return list(dict.fromkeys(self.pairs["source_product_b"]))

    def filter_for_collocation_indices(
        self, indices: t.Sequence[int]
    ) -> CollocationResult:
        """
        Return a new collocation result holding only the pairs whose
        collocation index is in ``indices``.
        """
        mask = self.pairs["collocation_index"].isin(np.asarray(indices).tolist())
        return CollocationResult(self.pairs[mask], self.products_b)

    def get_filtered_product_b(self, source_product: str) -> Product | None:
        """
        Build a product holding the samples of dataset B product
        ``source_product`` referenced by pairs, in pair order, with their
        ``collocation_index`` ``{time}`` variable.

        Returns
        -------
        :class:`.Product` or None
            The filtered product, or ``None`` if no pair references
            ``source_product``.

        Raises
        ------
        :class:`.InconsistentProductError`
            If ``source_product`` is not available or if a pair refers to a
            missing sample.
        """
        rows = self.pairs[self.pairs["source_product_b"] == source_product]
        if rows.empty:
            return None

        try:
            product = self.products_b[source_product]
        except KeyError as e:
            raise InconsistentProductError(
                f"collocated product '{source_product}' is not available"
            ) from e

        num_samples = product.get_dimension(DimensionType.TIME)
        if "index" in product:
            sample_index = product.get_variable("index").data.tolist()
        else:
            sample_index = list(range(num_samples))
        lookup = {index: position for position, index in enumerate(sample_index)}

        try:
            positions = [lookup[index] for index in rows["index_b"].tolist()]
        except KeyError as e:
            raise InconsistentProductError(
                f"collocated product '{source_product}' has no sample with "
                f"index {e.args[0]}"
            ) from e

        result = product.copy()
        take_samples(result, positions)
        result.replace_variable(
            Variable(
                name="collocation_index",
                data=rows["collocation_index"].to_numpy(dtype=np.int32),
                dimension_types=[DimensionType.TIME],
            )
        )
        return result
