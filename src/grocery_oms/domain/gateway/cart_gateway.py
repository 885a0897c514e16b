"""Port to the shopping cart owned by the storefront."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    weight: Decimal | None = None


class CartGateway(ABC):

    @abstractmethod
    def items_for(self, user_id: str) -> list[CartLine]:
        """Return the lines currently in the user's cart."""

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Empty the user's cart after a successful order."""
