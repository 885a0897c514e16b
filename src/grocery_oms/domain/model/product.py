"""Product aggregate.

Products live independently of orders and are owned by the catalog.
The order engine only reads them: the price read here is copied into
the order line and never looked up again.
"""

from __future__ import annotations

from dataclasses import dataclass

from grocery_oms.domain.model.value_objects import Money


@dataclass
class Product:
    """A product in the catalog.

    ``sold_by_weight`` marks produce priced per pound; order lines for
    these products carry a weight and are charged price x weight x quantity.
    """

    id: str
    name: str
    price: Money
    category: str = ""
    sold_by_weight: bool = False

    @property
    def is_weighed(self) -> bool:
        # Legacy catalog rows flag produce only through the category name.
        return self.sold_by_weight or "vegetable" in self.category.lower()
