from datetime import datetime
from decimal import Decimal

from dbcase import DbTestCase

from db import crud
from db import database as db_database
from db.errors import (
    NotFoundError,
    StoreError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationError,
)
from db.models import CartLine, OrderStatus, Role


class OrdersTestCase(DbTestCase):
    async def order_count(self) -> int:
        return await self.count_rows("SELECT COUNT(*) FROM FoodOrder;")

    async def line_count(self) -> int:
        return await self.count_rows("SELECT COUNT(*) FROM ItemsInOrder;")

    # ---------- Placing orders ----------

    async def test_place_order_prices_cart(self):
        alice = await crud.get_user("alice")
        when = datetime(2024, 4, 1, 19, 30, 0)
        placed = await crud.place_order(
            "alice", 1, [("Pepperoni Pizza", 2), ("Cola", 1)], when
        )
        self.assertEqual(placed.total_price, Decimal("26.00"))

        detail = await crud.get_order_detail(placed.order_id, alice)
        self.assertEqual(detail.order.login, "alice")
        self.assertEqual(detail.order.store_id, 1)
        self.assertEqual(detail.order.order_status, OrderStatus.INCOMPLETE)
        self.assertEqual(detail.order.order_timestamp, when)
        self.assertEqual(detail.order.total_price, Decimal("26.00"))
        self.assertEqual(
            [(line.item_name, line.quantity) for line in detail.lines],
            [("Pepperoni Pizza", 2), ("Cola", 1)],
        )

    async def test_place_order_merges_repeated_items(self):
        placed = await crud.place_order(
            "bob",
            2,
            [CartLine("Caesar Salad", 1), CartLine("Cola", 2), CartLine("Caesar Salad", 2)],
        )
        # 3 * 7.25 + 2 * 2.00
        self.assertEqual(placed.total_price, Decimal("25.75"))
        bob = await crud.get_user("bob")
        detail = await crud.get_order_detail(placed.order_id, bob)
        self.assertEqual(
            {line.item_name: line.quantity for line in detail.lines},
            {"Caesar Salad": 3, "Cola": 2},
        )

    async def test_place_order_at_missing_store_writes_nothing(self):
        orders, lines = await self.order_count(), await self.line_count()
        with self.assertRaises(NotFoundError):
            await crud.place_order("alice", 99, [("Cola", 1)])
        self.assertEqual(await self.order_count(), orders)
        self.assertEqual(await self.line_count(), lines)

    async def test_place_order_with_missing_item_writes_nothing(self):
        orders, lines = await self.order_count(), await self.line_count()
        with self.assertRaises(NotFoundError):
            await crud.place_order("alice", 1, [("Cola", 1), ("Calzone", 1)])
        self.assertEqual(await self.order_count(), orders)
        self.assertEqual(await self.line_count(), lines)

    async def test_place_order_rejects_bad_carts(self):
        orders = await self.order_count()
        with self.assertRaises(ValidationError):
            await crud.place_order("alice", 1, [])
        with self.assertRaises(ValidationError):
            await crud.place_order("alice", 1, [("Cola", 0)])
        with self.assertRaises(NotFoundError):
            await crud.place_order("nobody", 1, [("Cola", 1)])
        self.assertEqual(await self.order_count(), orders)

    async def test_failed_line_insert_rolls_back_header(self):
        async with db_database.connect() as conn:
            await conn.execute(
                """
                CREATE TRIGGER reject_lemonade BEFORE INSERT ON ItemsInOrder
                WHEN NEW.itemName = 'Lemonade'
                BEGIN
                    SELECT RAISE(ABORT, 'line rejected');
                END;
                """
            )
            await conn.commit()

        orders, lines = await self.order_count(), await self.line_count()
        with self.assertRaises(StoreError):
            await crud.place_order("carol", 1, [("Cola", 1), ("Lemonade", 1)])
        self.assertEqual(await self.order_count(), orders)
        self.assertEqual(await self.line_count(), lines)

    # ---------- History ----------

    async def test_order_history_in_placement_order(self):
        history = await crud.get_order_history("bob")
        self.assertEqual([o.order_id for o in history], [1, 2])
        self.assertEqual(await crud.get_order_history("mia"), [])

    async def test_recent_orders_capped_and_newest_first(self):
        for day in range(1, 7):
            await crud.place_order(
                "alice", 1, [("Cola", 1)], datetime(2024, 5, day, 12, 0, 0)
            )
        recent = await crud.get_recent_orders("alice")
        self.assertEqual(len(recent), 5)
        stamps = [o.order_timestamp for o in recent]
        self.assertEqual(stamps, sorted(stamps, reverse=True))
        self.assertEqual(stamps[0], datetime(2024, 5, 6, 12, 0, 0))

        self.assertEqual(len(await crud.get_order_history("alice")), 8)
        self.assertEqual(await crud.get_recent_orders("alice", limit=0), [])

    async def test_recent_orders_use_timestamp_not_id(self):
        # alice's order 6 was inserted after order 5 but is dated earlier
        recent = await crud.get_recent_orders("alice")
        self.assertEqual([o.order_id for o in recent], [5, 6])

    async def test_history_of_others_needs_staff(self):
        bob = await crud.get_user("bob")
        dan = await crud.get_user("dan")
        with self.assertRaises(UnauthorizedError):
            await crud.get_order_history("alice", requester=bob)
        with self.assertRaises(UnauthorizedError):
            await crud.get_recent_orders("alice", requester=bob)
        self.assertEqual(
            [o.order_id for o in await crud.get_order_history("alice", requester=dan)],
            [5, 6],
        )

    # ---------- Detail ----------

    async def test_customer_cannot_see_someone_elses_order(self):
        bob = await crud.get_user("bob")
        with self.assertRaises(UnauthorizedError):
            await crud.get_order_detail(5, bob)

    async def test_order_detail(self):
        mia = await crud.get_user("mia")
        detail = await crud.get_order_detail(4, mia)
        self.assertEqual(detail.order.login, "carol")
        self.assertEqual(detail.order.total_price, Decimal("14.50"))
        self.assertEqual(
            [line.item_name for line in detail.lines], ["Pepperoni Pizza", "Lemonade"]
        )
        with self.assertRaises(NotFoundError):
            await crud.get_order_detail(999, mia)

    # ---------- Status ----------

    async def test_driver_updates_status(self):
        dan = await crud.get_user("dan")
        order = await crud.update_order_status(5, "Out_For_Delivery", dan)
        self.assertEqual(order.order_status, OrderStatus.OUT_FOR_DELIVERY)

        # any status may follow any other
        order = await crud.update_order_status(5, OrderStatus.INCOMPLETE, dan)
        self.assertEqual(order.order_status, OrderStatus.INCOMPLETE)

        with self.assertRaises(ValidationError):
            await crud.update_order_status(5, "lost", dan)
        with self.assertRaises(NotFoundError):
            await crud.update_order_status(999, OrderStatus.COMPLETE, dan)

    async def test_customer_cannot_update_status(self):
        alice = await crud.get_user("alice")
        with self.assertRaises(UnauthorizedError):
            await crud.update_order_status(5, OrderStatus.COMPLETE, alice)
        detail = await crud.get_order_detail(5, alice)
        self.assertEqual(detail.order.order_status, OrderStatus.INCOMPLETE)

    async def test_status_power_follows_stored_role(self):
        mia = await crud.get_user("mia")
        dan = await crud.get_user("dan")
        await crud.update_user(mia, "dan", role="Customer")

        # `dan` is the User read while the role was still Driver
        with self.assertRaises(UnauthorizedError):
            await crud.update_order_status(5, OrderStatus.COMPLETE, dan)
        with self.assertRaises(UnauthorizedError):
            await crud.get_order_history("alice", requester=dan)
        detail = await crud.get_order_detail(5, mia)
        self.assertEqual(detail.order.order_status, OrderStatus.INCOMPLETE)

    async def test_promoted_customer_gains_status_power(self):
        mia = await crud.get_user("mia")
        bob = await crud.get_user("bob")
        await crud.update_user(mia, "bob", role=Role.DRIVER)
        order = await crud.update_order_status(5, OrderStatus.IN_PROGRESS, bob)
        self.assertEqual(order.order_status, OrderStatus.IN_PROGRESS)

    async def test_renamed_login_must_log_in_again(self):
        mia = await crud.get_user("mia")
        dan = await crud.get_user("dan")
        await crud.update_user(mia, "dan", new_login="daniel")
        with self.assertRaises(UnauthenticatedError):
            await crud.update_order_status(5, OrderStatus.COMPLETE, dan)

    async def test_denied_access_is_logged(self):
        bob = await crud.get_user("bob")
        with self.assertLogs("db.crud", level="WARNING") as logs:
            with self.assertRaises(UnauthorizedError):
                await crud.get_order_detail(5, bob)
        self.assertTrue(any("bob" in line for line in logs.output))

        with self.assertLogs("db.crud", level="WARNING"):
            with self.assertRaises(UnauthorizedError):
                await crud.list_users(bob)
