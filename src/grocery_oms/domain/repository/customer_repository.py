"""Abstract repository for the Customer aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from grocery_oms.domain.model.customer import Customer


class CustomerRepository(ABC):

    @abstractmethod
    def get(self, user_id: str) -> Customer:
        """Return the customer, creating an empty record if none exists."""

    @abstractmethod
    def save(self, customer: Customer) -> None:
        """Persist a new or updated customer."""
