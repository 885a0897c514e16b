"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


# --- Order creation -----------------------------------------------------------


class EmptyCartError(ValidationError):
    """An order was requested with no line items."""


class InvalidAddressError(ValidationError):
    """The shipping address is missing one or more required fields."""


class OutOfStockError(ValidationError):
    """A line asks for more units than the inventory holds."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for {product_name} "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


# --- Payment / lifecycle ------------------------------------------------------


class PaymentRejectedError(DomainException):
    """A capture request was refused; the order keeps its payment state."""


class OrderNotFoundError(EntityNotFoundError):
    """No order matches the given number, id or processor reference."""


class InvalidTransitionError(DomainException):
    """A status change is not allowed from the order's current state."""


class ConcurrentModificationError(DomainException):
    """The order was saved by someone else since it was loaded."""
