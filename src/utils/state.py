from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import db.crud as crud
from db.models import CartLine, PlacedOrder, Role, User
from utils.policy import Operation, permits
from utils.pure import merge_cart_lines


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - user: the logged-in User, None before login
      - cart: transient (item name, quantity) lines, kept until checkout or logout
    """

    user: Optional[User] = None
    cart: List[CartLine] = field(default_factory=list)

    @property
    def login(self) -> Optional[str]:
        return self.user.login if self.user else None

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None

    def can(self, operation: Operation) -> bool:
        return self.user is not None and permits(self.user.role, operation)

    def start_session(self, user: User) -> None:
        self.user = user
        self.cart = []

    async def refresh(self) -> None:
        """
        Re-read the logged-in user, so a role changed by a manager takes
        effect without logging out. Raises NotFoundError if the login is gone.
        """
        if self.user is not None:
            self.user = await crud.get_user(self.user.login)

    def end_session(self) -> None:
        """Forget the user and drop any unplaced cart."""
        self.user = None
        self.cart = []

    # cart ----------------------------------------------------------------

    def cart_quantity(self, item_name: str) -> int:
        for line in self.cart:
            if line.item_name == item_name:
                return line.quantity
        return 0

    def add_to_cart(self, item_name: str, qty: int) -> None:
        """Add qty of an item; repeated items accumulate."""
        self.cart = merge_cart_lines([*self.cart, CartLine(item_name, qty)])

    def set_cart_qty(self, item_name: str, qty: int) -> None:
        """Set the quantity of an item; 0 removes it."""
        if qty <= 0:
            self.remove_from_cart(item_name)
            return
        kept = [line for line in self.cart if line.item_name != item_name]
        if len(kept) == len(self.cart):
            self.cart = merge_cart_lines([*kept, CartLine(item_name, qty)])
        else:
            self.cart = [
                CartLine(item_name, qty) if line.item_name == item_name else line
                for line in self.cart
            ]

    def remove_from_cart(self, item_name: str) -> None:
        self.cart = [line for line in self.cart if line.item_name != item_name]

    def clear_cart(self) -> None:
        self.cart = []

    async def checkout(
        self, store_id: int, when: Optional[datetime] = None
    ) -> PlacedOrder:
        """Place the cart as an order for the current user; the cart empties only on success."""
        placed = await crud.place_order(self.user.login, store_id, self.cart, when)
        self.cart = []
        return placed
