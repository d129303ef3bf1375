from decimal import Decimal

from dbcase import DbTestCase

from db import crud
from db.errors import NotFoundError
from db.models import CartLine
from utils.policy import Operation
from utils.state import GlobalState


class GlobalStateTestCase(DbTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.state = GlobalState()
        self.state.start_session(await crud.authenticate("alice", "alicepw"))

    async def test_session(self):
        self.assertEqual(self.state.login, "alice")
        self.assertTrue(self.state.can(Operation.VIEW_OWN))
        self.assertFalse(self.state.can(Operation.UPDATE_MENU))

        self.state.add_to_cart("Cola", 1)
        self.state.end_session()
        self.assertIsNone(self.state.user)
        self.assertIsNone(self.state.role)
        self.assertEqual(self.state.cart, [])
        self.assertFalse(self.state.can(Operation.VIEW_OWN))

    async def test_cart_editing(self):
        self.state.add_to_cart("Cola", 1)
        self.state.add_to_cart("Garlic Knots", 1)
        self.state.add_to_cart("Cola", 2)
        self.assertEqual(self.state.cart_quantity("Cola"), 3)

        self.state.set_cart_qty("Garlic Knots", 4)
        self.assertEqual(
            self.state.cart, [CartLine("Cola", 3), CartLine("Garlic Knots", 4)]
        )
        self.state.set_cart_qty("Cola", 0)
        self.assertEqual(self.state.cart, [CartLine("Garlic Knots", 4)])

        self.state.set_cart_qty("Lemonade", 2)
        self.state.remove_from_cart("Garlic Knots")
        self.assertEqual(self.state.cart, [CartLine("Lemonade", 2)])

        self.state.clear_cart()
        self.assertEqual(self.state.cart_quantity("Lemonade"), 0)

    async def test_checkout_clears_cart_on_success(self):
        self.state.add_to_cart("Pepperoni Pizza", 2)
        self.state.add_to_cart("Cola", 1)
        placed = await self.state.checkout(1)
        self.assertEqual(placed.total_price, Decimal("26.00"))
        self.assertEqual(self.state.cart, [])

    async def test_failed_checkout_keeps_cart(self):
        self.state.add_to_cart("Cola", 1)
        with self.assertRaises(NotFoundError):
            await self.state.checkout(42)
        self.assertEqual(self.state.cart, [CartLine("Cola", 1)])

    async def test_refresh_picks_up_role_change(self):
        mia = await crud.get_user("mia")
        await crud.update_user(mia, "alice", role="Driver")
        self.assertFalse(self.state.can(Operation.UPDATE_ORDER_STATUS))
        await self.state.refresh()
        self.assertTrue(self.state.can(Operation.UPDATE_ORDER_STATUS))
