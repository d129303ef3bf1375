# typed failures raised by the db package; views catch PizzaStoreError


class PizzaStoreError(Exception):
    """Base class for every failure an operation reports to its caller."""


class NotFoundError(PizzaStoreError):
    """A store, item, order or user does not exist."""


class UnauthorizedError(PizzaStoreError):
    """The requester's role does not allow the operation."""


class UnauthenticatedError(PizzaStoreError):
    """Login and password did not match."""


class ConflictError(PizzaStoreError):
    """A unique key (login, item name) is already taken."""


class ValidationError(PizzaStoreError):
    """Malformed quantity, price, status or other input."""


class StoreError(PizzaStoreError):
    """The database failed or a transaction had to be rolled back."""
