"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from grocery_oms.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Generate the next unique order ID."""

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Order | None:
        """Return an order by its human-facing number, or None."""

    @abstractmethod
    def get_by_processor_session(self, session_id: str) -> Order | None:
        """Return the order a processor checkout session was opened for."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[Order]:
        """Return a user's orders, newest first."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order.

        Implementations must compare ``order.version`` with the stored
        version and raise ``ConcurrentModificationError`` on mismatch,
        then increment ``order.version``.
        """
