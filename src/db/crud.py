# src/db/crud.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple, Union

import aiosqlite

from db import models
from db.database import connect, transaction
from db.errors import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationError,
)
from db.models import CENTS, ItemSort, OrderStatus, Role, to_money
from utils.auth import hash_password, verify_and_update, verify_password
from utils.logger import get_logger
from utils.policy import Operation, require
from utils.pure import merge_cart_lines

_logger = get_logger(__name__)

USER_COLUMNS = "login, password, role, favoriteItems, phoneNum"
ITEM_COLUMNS = "itemName, ingredients, typeOfItem, price, description"
STORE_COLUMNS = "storeID, address, city, state, isOpen, reviewScore"
ORDER_COLUMNS = "orderID, login, storeID, totalPrice, orderTimestamp, orderStatus"


def _to_user(row) -> models.User:
    return models.User(
        login=row[0],
        password=row[1],
        role=Role.parse(row[2]),
        favorite_items=row[3] or "",
        phone_num=row[4] or "",
    )


def _to_item(row) -> models.Item:
    return models.Item(
        item_name=row[0],
        ingredients=row[1] or "",
        type_of_item=(row[2] or "").strip(),
        price=to_money(row[3]),
        description=row[4] or "",
    )


def _to_store(row) -> models.Store:
    return models.Store(
        store_id=int(row[0]),
        address=row[1],
        city=row[2],
        state=row[3],
        is_open=bool(row[4]),
        rating=float(row[5]) if row[5] is not None else 0.0,
    )


def _to_order(row) -> models.Order:
    return models.Order(
        order_id=int(row[0]),
        login=row[1],
        store_id=int(row[2]),
        total_price=to_money(row[3]),
        order_timestamp=datetime.fromisoformat(row[4]),
        order_status=OrderStatus.parse(row[5]),
    )


def _timestamp(when: datetime) -> str:
    return when.isoformat(sep=" ", timespec="seconds")


async def _fetchone(conn: aiosqlite.Connection, sql: str, params: tuple = ()):
    cur = await conn.execute(sql, params)
    row = await cur.fetchone()
    await cur.close()
    return row


async def _fetchall(conn: aiosqlite.Connection, sql: str, params: tuple = ()):
    cur = await conn.execute(sql, params)
    rows = await cur.fetchall()
    await cur.close()
    return rows


async def _current_role(conn: aiosqlite.Connection, login: str) -> Role:
    row = await _fetchone(conn, "SELECT role FROM Users WHERE login = ?;", (login,))
    if not row:
        raise UnauthenticatedError(f"User {login!r} no longer exists; log in again.")
    return Role.parse(row[0])


async def _authorize(requester: models.User, operation: Operation) -> Role:
    """
    Check `operation` against the role stored for the requester right now,
    not the one on the User read at login. Denials are logged.
    """
    async with connect() as conn:
        role = await _current_role(conn, requester.login)
    try:
        require(role, operation)
    except UnauthorizedError:
        _logger.warning(f"{requester.login} ({role}) denied: {operation.value}")
        raise
    return role


async def _require_view(login: str, requester: Optional[models.User]) -> None:
    """Looking at someone else's rows needs VIEW_OTHERS."""
    if requester is not None and requester.login != login:
        await _authorize(requester, Operation.VIEW_OTHERS)


# ---------------------------
# Accounts
# ---------------------------


async def login_available(login: str) -> bool:
    """True if no user is registered under the given login."""
    async with connect() as conn:
        row = await _fetchone(
            conn, "SELECT 1 FROM Users WHERE login = ? LIMIT 1;", (login.strip(),)
        )
    return row is None


async def create_user(login: str, password: str, phone_num: str) -> models.User:
    """
    Register a Customer with no favorite items.
    Raises ConflictError if the login is taken.
    """
    login = (login or "").strip()
    if not login or not password:
        raise ValidationError("Login and password cannot be empty.")

    async with connect() as conn:
        if await _fetchone(conn, "SELECT 1 FROM Users WHERE login = ?;", (login,)):
            raise ConflictError(f"Login {login!r} is already taken.")
        async with transaction(conn):
            await conn.execute(
                f"INSERT INTO Users({USER_COLUMNS}) VALUES (?, ?, ?, '', ?);",
                (login, hash_password(password), Role.CUSTOMER.value, phone_num or ""),
            )
    _logger.info(f"Created user {login}")
    return await get_user(login)


async def authenticate(login: str, password: str) -> models.User:
    """Return the User whose login and password both match, else raise UnauthenticatedError."""
    async with connect() as conn:
        row = await _fetchone(
            conn, f"SELECT {USER_COLUMNS} FROM Users WHERE login = ?;", (login,)
        )
        if not row:
            raise UnauthenticatedError("Invalid login or password.")
        matched, new_hash = verify_and_update(password, row[1])
        if not matched:
            _logger.warning(f"Failed login for {login}")
            raise UnauthenticatedError("Invalid login or password.")
        if new_hash:
            async with transaction(conn):
                await conn.execute(
                    "UPDATE Users SET password = ? WHERE login = ?;", (new_hash, login)
                )
            _logger.info(f"Upgraded stored password hash for {login}")
            row = await _fetchone(
                conn, f"SELECT {USER_COLUMNS} FROM Users WHERE login = ?;", (login,)
            )
    _logger.info(f"User {login} logged in")
    return _to_user(row)


async def get_user(login: str, requester: Optional[models.User] = None) -> models.User:
    """Fetch a user; requesters other than the user themself need VIEW_OTHERS."""
    await _require_view(login, requester)
    async with connect() as conn:
        row = await _fetchone(
            conn, f"SELECT {USER_COLUMNS} FROM Users WHERE login = ?;", (login,)
        )
    if not row:
        raise NotFoundError(f"User {login!r} not found.")
    return _to_user(row)


async def list_users(requester: models.User) -> List[models.User]:
    await _authorize(requester, Operation.UPDATE_USERS)
    async with connect() as conn:
        rows = await _fetchall(
            conn, f"SELECT {USER_COLUMNS} FROM Users ORDER BY login;"
        )
    return [_to_user(r) for r in rows]


async def update_profile(
    login: str,
    favorite_items: Optional[str] = None,
    phone_num: Optional[str] = None,
) -> models.User:
    """Self-service update of favorite items and/or phone number."""
    changes: List[Tuple[str, str]] = []
    if favorite_items is not None:
        changes.append(("favoriteItems", favorite_items.strip()))
    if phone_num is not None:
        changes.append(("phoneNum", phone_num.strip()))
    if not changes:
        raise ValidationError("Nothing to update.")

    set_clause = ", ".join(f"{col} = ?" for col, _ in changes)
    async with connect() as conn:
        async with transaction(conn):
            cur = await conn.execute(
                f"UPDATE Users SET {set_clause} WHERE login = ?;",
                tuple(v for _, v in changes) + (login,),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"User {login!r} not found.")
    _logger.info(f"User {login} updated profile fields {[c for c, _ in changes]}")
    return await get_user(login)


async def change_password(
    login: str, current_password: str, new_password: str, confirm_password: str
) -> None:
    """
    Replace a password. The current password must match the stored one and
    the new password must be entered identically twice; otherwise nothing is
    written.
    """
    async with connect() as conn:
        row = await _fetchone(
            conn, "SELECT password FROM Users WHERE login = ?;", (login,)
        )
        if not row:
            raise NotFoundError(f"User {login!r} not found.")
        if not verify_password(current_password, row[0]):
            raise UnauthenticatedError("Current password is incorrect.")
        if not new_password:
            raise ValidationError("New password cannot be empty.")
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match.")
        async with transaction(conn):
            await conn.execute(
                "UPDATE Users SET password = ? WHERE login = ?;",
                (hash_password(new_password), login),
            )
    _logger.info(f"User {login} changed password")


async def update_user(
    requester: models.User,
    target_login: str,
    *,
    new_login: Optional[str] = None,
    role: Optional[Union[Role, str]] = None,
    favorite_items: Optional[str] = None,
    phone_num: Optional[str] = None,
) -> models.User:
    """
    Manager-only edit of any user's login, role, favorite items or phone number.
    Renaming a login carries the user's orders along (ON UPDATE CASCADE).
    """
    await _authorize(requester, Operation.UPDATE_USERS)

    changes: List[Tuple[str, str]] = []
    if new_login is not None:
        new_login = new_login.strip()
        if not new_login:
            raise ValidationError("Login cannot be empty.")
        if new_login != target_login:
            changes.append(("login", new_login))
    if role is not None:
        changes.append(("role", Role.parse(role).value))
    if favorite_items is not None:
        changes.append(("favoriteItems", favorite_items.strip()))
    if phone_num is not None:
        changes.append(("phoneNum", phone_num.strip()))
    if not changes:
        raise ValidationError("Nothing to update.")

    async with connect() as conn:
        if not await _fetchone(
            conn, "SELECT 1 FROM Users WHERE login = ?;", (target_login,)
        ):
            raise NotFoundError(f"User {target_login!r} not found.")
        if new_login and new_login != target_login:
            if await _fetchone(
                conn, "SELECT 1 FROM Users WHERE login = ?;", (new_login,)
            ):
                raise ConflictError(f"Login {new_login!r} is already taken.")
        set_clause = ", ".join(f"{col} = ?" for col, _ in changes)
        async with transaction(conn):
            await conn.execute(
                f"UPDATE Users SET {set_clause} WHERE login = ?;",
                tuple(v for _, v in changes) + (target_login,),
            )

    _logger.info(
        f"Manager {requester.login} updated user {target_login}: "
        f"{', '.join(col for col, _ in changes)}"
    )
    return await get_user(new_login or target_login)


# ---------------------------
# Catalog (Items, Stores)
# ---------------------------


async def list_items(
    item_type: Optional[str] = None,
    max_price: Optional[Decimal] = None,
    sort: ItemSort = ItemSort.NONE,
) -> List[models.Item]:
    """
    Menu items filtered by type (case-insensitive, blanks ignored) and/or a
    maximum price, ordered per `sort`. Unsorted results come in name order.
    """
    conditions: List[str] = []
    params: List[object] = []
    if item_type and item_type.strip():
        conditions.append("LOWER(TRIM(typeOfItem)) = ?")
        params.append(item_type.strip().lower())
    if max_price is not None:
        conditions.append("price <= ?")
        params.append(float(max_price))
    where_clause = ("WHERE " + " AND ".join(conditions)) if conditions else ""

    order_by = {
        ItemSort.NONE: "itemName",
        ItemSort.PRICE_ASC: "price ASC, itemName",
        ItemSort.PRICE_DESC: "price DESC, itemName",
    }[ItemSort(sort)]

    async with connect() as conn:
        rows = await _fetchall(
            conn,
            f"SELECT {ITEM_COLUMNS} FROM Items {where_clause} ORDER BY {order_by};",
            tuple(params),
        )
    return [_to_item(r) for r in rows]


async def list_item_types() -> List[str]:
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            "SELECT DISTINCT TRIM(typeOfItem) FROM Items ORDER BY TRIM(typeOfItem);",
        )
    return [r[0] for r in rows if r[0]]


async def find_item(item_name: str) -> models.Item:
    async with connect() as conn:
        row = await _fetchone(
            conn, f"SELECT {ITEM_COLUMNS} FROM Items WHERE itemName = ?;", (item_name,)
        )
    if not row:
        raise NotFoundError(f"Item {item_name!r} not found.")
    return _to_item(row)


async def list_stores() -> List[models.Store]:
    async with connect() as conn:
        rows = await _fetchall(
            conn, f"SELECT {STORE_COLUMNS} FROM Store ORDER BY storeID;"
        )
    return [_to_store(r) for r in rows]


async def find_store(store_id: int) -> models.Store:
    async with connect() as conn:
        row = await _fetchone(
            conn, f"SELECT {STORE_COLUMNS} FROM Store WHERE storeID = ?;", (store_id,)
        )
    if not row:
        raise NotFoundError(f"Store {store_id} not found.")
    return _to_store(row)


async def add_item(requester: models.User, item: models.Item) -> models.Item:
    """Manager-only: add a menu item. Raises ConflictError on a duplicate name."""
    await _authorize(requester, Operation.UPDATE_MENU)
    name = item.item_name.strip()
    if not name:
        raise ValidationError("Item name cannot be empty.")
    price = to_money(item.price)
    if price < 0:
        raise ValidationError("Price cannot be negative.")

    async with connect() as conn:
        if await _fetchone(conn, "SELECT 1 FROM Items WHERE itemName = ?;", (name,)):
            raise ConflictError(f"Item {name!r} already exists.")
        async with transaction(conn):
            await conn.execute(
                f"INSERT INTO Items({ITEM_COLUMNS}) VALUES (?, ?, ?, ?, ?);",
                (
                    name,
                    item.ingredients.strip(),
                    item.type_of_item.strip(),
                    str(price),
                    item.description.strip(),
                ),
            )
    _logger.info(f"Manager {requester.login} added item {name} at {price}")
    return await find_item(name)


async def update_item(
    requester: models.User,
    item_name: str,
    *,
    new_name: Optional[str] = None,
    ingredients: Optional[str] = None,
    type_of_item: Optional[str] = None,
    price: Optional[Decimal] = None,
    description: Optional[str] = None,
) -> models.Item:
    """
    Manager-only: update any subset of an item's fields. Renaming carries
    existing order lines along (ON UPDATE CASCADE).
    """
    await _authorize(requester, Operation.UPDATE_MENU)

    changes: List[Tuple[str, str]] = []
    if new_name is not None:
        new_name = new_name.strip()
        if not new_name:
            raise ValidationError("Item name cannot be empty.")
        if new_name != item_name:
            changes.append(("itemName", new_name))
    if ingredients is not None:
        changes.append(("ingredients", ingredients.strip()))
    if type_of_item is not None:
        changes.append(("typeOfItem", type_of_item.strip()))
    if price is not None:
        price = to_money(price)
        if price < 0:
            raise ValidationError("Price cannot be negative.")
        changes.append(("price", str(price)))
    if description is not None:
        changes.append(("description", description.strip()))
    if not changes:
        raise ValidationError("Nothing to update.")

    async with connect() as conn:
        if not await _fetchone(
            conn, "SELECT 1 FROM Items WHERE itemName = ?;", (item_name,)
        ):
            raise NotFoundError(f"Item {item_name!r} not found.")
        if new_name and new_name != item_name:
            if await _fetchone(
                conn, "SELECT 1 FROM Items WHERE itemName = ?;", (new_name,)
            ):
                raise ConflictError(f"Item {new_name!r} already exists.")
        set_clause = ", ".join(f"{col} = ?" for col, _ in changes)
        async with transaction(conn):
            await conn.execute(
                f"UPDATE Items SET {set_clause} WHERE itemName = ?;",
                tuple(v for _, v in changes) + (item_name,),
            )
    _logger.info(
        f"Manager {requester.login} updated item {item_name}: "
        f"{', '.join(col for col, _ in changes)}"
    )
    return await find_item(new_name or item_name)


# ---------------------------
# Orders
# ---------------------------


async def place_order(
    customer_login: str,
    store_id: int,
    cart: Iterable[Union[models.CartLine, Tuple[str, int]]],
    when: Optional[datetime] = None,
) -> models.PlacedOrder:
    """
    Create an order header and its lines in a single transaction and return
    (order_id, total_price).

    The total is priced from the catalog at commit time. An unknown store or
    item raises NotFoundError and nothing is written; a failure while writing
    rolls back the header together with any lines.
    """
    lines = merge_cart_lines(cart)
    if not lines:
        raise ValidationError("Cannot place an order with an empty cart.")
    when = when or datetime.now()

    async with connect() as conn:
        if not await _fetchone(
            conn, "SELECT 1 FROM Users WHERE login = ?;", (customer_login,)
        ):
            raise NotFoundError(f"User {customer_login!r} not found.")
        if not await _fetchone(
            conn, "SELECT 1 FROM Store WHERE storeID = ?;", (store_id,)
        ):
            raise NotFoundError(f"Store {store_id} not found.")

        async with transaction(conn):
            # lock out other writers so the prices read here are the ones charged
            await conn.execute("BEGIN IMMEDIATE;")
            total = Decimal("0.00")
            for line in lines:
                row = await _fetchone(
                    conn,
                    "SELECT price FROM Items WHERE itemName = ?;",
                    (line.item_name,),
                )
                if not row:
                    raise NotFoundError(f"Item {line.item_name!r} not found.")
                total += to_money(row[0]) * line.quantity
            total = total.quantize(CENTS)

            cur = await conn.execute(
                """
                INSERT INTO FoodOrder(login, storeID, totalPrice, orderTimestamp, orderStatus)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    customer_login,
                    store_id,
                    str(total),
                    _timestamp(when),
                    OrderStatus.INCOMPLETE.value,
                ),
            )
            order_id = cur.lastrowid
            await cur.close()
            await conn.executemany(
                "INSERT INTO ItemsInOrder(orderID, itemName, quantity) VALUES (?, ?, ?);",
                [(order_id, line.item_name, line.quantity) for line in lines],
            )

    _logger.info(
        f"Order {order_id} placed by {customer_login} at store {store_id}: "
        f"{len(lines)} line(s), total {total}"
    )
    return models.PlacedOrder(order_id=order_id, total_price=total)


async def get_order_history(
    login: str, requester: Optional[models.User] = None
) -> List[models.Order]:
    """All orders of `login`, in the order they were placed."""
    await _require_view(login, requester)
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            f"SELECT {ORDER_COLUMNS} FROM FoodOrder WHERE login = ? ORDER BY orderID;",
            (login,),
        )
    return [_to_order(r) for r in rows]


async def get_recent_orders(
    login: str, limit: int = 5, requester: Optional[models.User] = None
) -> List[models.Order]:
    """The newest `limit` orders of `login`, newest first."""
    await _require_view(login, requester)
    if limit < 1:
        return []
    async with connect() as conn:
        rows = await _fetchall(
            conn,
            f"""
            SELECT {ORDER_COLUMNS}
            FROM FoodOrder
            WHERE login = ?
            ORDER BY orderTimestamp DESC, orderID DESC
            LIMIT ?;
            """,
            (login, limit),
        )
    return [_to_order(r) for r in rows]


async def get_order_detail(
    order_id: int, requester: models.User
) -> models.OrderDetail:
    """
    Header and lines of one order. Visible to its owner and to anyone allowed
    to view other users' orders.
    """
    async with connect() as conn:
        row = await _fetchone(
            conn,
            f"SELECT {ORDER_COLUMNS} FROM FoodOrder WHERE orderID = ?;",
            (order_id,),
        )
        if not row:
            raise NotFoundError(f"Order {order_id} not found.")
        order = _to_order(row)
        await _require_view(order.login, requester)
        line_rows = await _fetchall(
            conn,
            "SELECT orderID, itemName, quantity FROM ItemsInOrder WHERE orderID = ? ORDER BY rowid;",
            (order_id,),
        )
    lines = [
        models.OrderLine(order_id=int(r[0]), item_name=r[1], quantity=int(r[2]))
        for r in line_rows
    ]
    return models.OrderDetail(order=order, lines=lines)


async def update_order_status(
    order_id: int,
    new_status: Union[OrderStatus, str],
    requester: models.User,
) -> models.Order:
    """Drivers and managers move an order to another status."""
    await _authorize(requester, Operation.UPDATE_ORDER_STATUS)
    status = OrderStatus.parse(new_status)

    async with connect() as conn:
        async with transaction(conn):
            cur = await conn.execute(
                "UPDATE FoodOrder SET orderStatus = ? WHERE orderID = ?;",
                (status.value, order_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Order {order_id} not found.")
        row = await _fetchone(
            conn,
            f"SELECT {ORDER_COLUMNS} FROM FoodOrder WHERE orderID = ?;",
            (order_id,),
        )
    _logger.info(f"{requester.login} set order {order_id} to '{status}'")
    return _to_order(row)
