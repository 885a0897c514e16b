"""Application service: Show Order use cases (queries)."""

from __future__ import annotations

from grocery_oms.application.dto import OrderDTO
from grocery_oms.domain.exceptions import OrderNotFoundError
from grocery_oms.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_number: str) -> OrderDTO:
        order = self._order_repo.get_by_order_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} not found")
        return OrderDTO.from_order(order)


class ListOrdersHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, user_id: str) -> list[OrderDTO]:
        return [OrderDTO.from_order(order) for order in self._order_repo.list_for_user(user_id)]
