# role -> operation table; pure, no db access
from enum import Enum
from typing import Dict, FrozenSet

from db.errors import UnauthorizedError
from db.models import Role


class Operation(Enum):
    VIEW_OWN = "view own profile and orders"
    VIEW_OTHERS = "view other users' profiles and orders"
    UPDATE_OWN_PROFILE = "update own profile"
    UPDATE_ORDER_STATUS = "update order status"
    UPDATE_MENU = "update the menu"
    UPDATE_USERS = "update users"


_EVERYONE = frozenset({Operation.VIEW_OWN, Operation.UPDATE_OWN_PROFILE})
_STAFF = _EVERYONE | {Operation.VIEW_OTHERS, Operation.UPDATE_ORDER_STATUS}

PERMISSIONS: Dict[Role, FrozenSet[Operation]] = {
    Role.CUSTOMER: _EVERYONE,
    Role.DRIVER: _STAFF,
    Role.MANAGER: _STAFF | {Operation.UPDATE_MENU, Operation.UPDATE_USERS},
}


def permits(role: Role, operation: Operation) -> bool:
    """True if a user holding `role` may perform `operation`."""
    return operation in PERMISSIONS.get(role, frozenset())


def require(role: Role, operation: Operation) -> None:
    """Raise UnauthorizedError unless `role` may perform `operation`."""
    if not permits(role, operation):
        raise UnauthorizedError(f"{role} is not allowed to {operation.value}.")
