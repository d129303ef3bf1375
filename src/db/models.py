# provide dataclass models and the enumerations stored in text columns

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import List

from db.errors import ValidationError

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a price read from the store (int, float, str or Decimal) to cents."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class Role(StrEnum):
    CUSTOMER = "Customer"
    DRIVER = "Driver"
    MANAGER = "Manager"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Accept any casing and surrounding blanks, as entered at a prompt."""
        text = (value or "").strip().lower()
        for role in cls:
            if role.value.lower() == text:
                return role
        raise ValidationError(f"Unknown role: {value!r}")


class OrderStatus(StrEnum):
    INCOMPLETE = "incomplete"
    IN_PROGRESS = "in progress"
    OUT_FOR_DELIVERY = "out for delivery"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        text = " ".join((value or "").strip().lower().replace("_", " ").split())
        for status in cls:
            if status.value == text:
                return status
        raise ValidationError(f"Unknown order status: {value!r}")


class ItemSort(StrEnum):
    NONE = "none"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


@dataclass(frozen=True)
class User:
    login: str
    password: str  # passlib hash
    role: Role
    favorite_items: str
    phone_num: str


@dataclass(frozen=True)
class Item:
    item_name: str
    ingredients: str
    type_of_item: str
    price: Decimal
    description: str


@dataclass(frozen=True)
class Store:
    store_id: int
    address: str
    city: str
    state: str
    is_open: bool
    rating: float


@dataclass(frozen=True)
class Order:
    order_id: int
    login: str
    store_id: int
    total_price: Decimal
    order_timestamp: datetime
    order_status: OrderStatus


@dataclass(frozen=True)
class OrderLine:
    order_id: int
    item_name: str
    quantity: int


@dataclass(frozen=True)
class OrderDetail:
    order: Order
    lines: List[OrderLine]


@dataclass(frozen=True)
class CartLine:
    item_name: str
    quantity: int


@dataclass(frozen=True)
class PlacedOrder:
    order_id: int
    total_price: Decimal
