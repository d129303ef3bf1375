from decimal import Decimal

from dbcase import DbTestCase

from db import crud
from db.errors import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationError,
)
from db.models import Item, ItemSort, Role


class AccountsTestCase(DbTestCase):
    # ---------- Registration & login ----------

    async def test_login_available_and_create_user(self):
        # From dummy-data.sql, alice exists; a new login should be available
        self.assertFalse(await crud.login_available("alice"))
        self.assertTrue(await crud.login_available("zoe"))

        user = await crud.create_user("zoe", "zoepw", "555-0999")
        self.assertEqual(user.login, "zoe")
        self.assertEqual(user.role, Role.CUSTOMER)
        self.assertEqual(user.favorite_items, "")
        self.assertEqual(user.phone_num, "555-0999")
        # stored hashed, never in clear
        self.assertNotEqual(user.password, "zoepw")

        logged_in = await crud.authenticate("zoe", "zoepw")
        self.assertEqual(logged_in.login, "zoe")

    async def test_create_user_rejects_taken_or_empty_login(self):
        with self.assertRaises(ConflictError):
            await crud.create_user("alice", "other", "")
        with self.assertRaises(ValidationError):
            await crud.create_user("   ", "pw", "")
        with self.assertRaises(ValidationError):
            await crud.create_user("yuri", "", "")
        self.assertEqual(
            await self.count_rows("SELECT COUNT(*) FROM Users WHERE login = 'alice';"),
            1,
        )

    async def test_authenticate_wrong_password_or_unknown_login(self):
        with self.assertRaises(UnauthenticatedError):
            await crud.authenticate("alice", "wrong")
        with self.assertRaises(UnauthenticatedError):
            await crud.authenticate("nobody", "alicepw")

    async def test_seeded_plaintext_password_rehashed_on_login(self):
        user = await crud.authenticate("bob", "bobpw")
        self.assertTrue(user.password.startswith("$pbkdf2-sha256$"))
        # still works after the upgrade
        again = await crud.authenticate("bob", "bobpw")
        self.assertEqual(again.password, user.password)

    # ---------- Profile ----------

    async def test_get_user_requires_view_others_for_someone_else(self):
        bob = await crud.get_user("bob")
        dan = await crud.get_user("dan")

        self.assertEqual((await crud.get_user("bob", requester=bob)).login, "bob")
        with self.assertRaises(UnauthorizedError):
            await crud.get_user("alice", requester=bob)
        self.assertEqual((await crud.get_user("alice", requester=dan)).login, "alice")
        with self.assertRaises(NotFoundError):
            await crud.get_user("nobody")

    async def test_update_profile(self):
        user = await crud.update_profile("bob", favorite_items="Cola")
        self.assertEqual(user.favorite_items, "Cola")
        self.assertEqual(user.phone_num, "555-0102")

        user = await crud.update_profile("bob", phone_num=" 555-7777 ")
        self.assertEqual(user.phone_num, "555-7777")

        with self.assertRaises(ValidationError):
            await crud.update_profile("bob")
        with self.assertRaises(NotFoundError):
            await crud.update_profile("nobody", phone_num="1")

    async def test_change_password_only_on_exact_match(self):
        # wrong current password: nothing written
        with self.assertRaises(UnauthenticatedError):
            await crud.change_password("carol", "nope", "new", "new")
        # confirmation mismatch: nothing written
        with self.assertRaises(ValidationError):
            await crud.change_password("carol", "carolpw", "new1", "new2")
        with self.assertRaises(ValidationError):
            await crud.change_password("carol", "carolpw", "", "")
        await crud.authenticate("carol", "carolpw")

        await crud.change_password("carol", "carolpw", "fresh", "fresh")
        with self.assertRaises(UnauthenticatedError):
            await crud.authenticate("carol", "carolpw")
        self.assertEqual((await crud.authenticate("carol", "fresh")).login, "carol")

    # ---------- Manager user edits ----------

    async def test_update_user_by_manager(self):
        mia = await crud.get_user("mia")
        user = await crud.update_user(mia, "bob", role="driver", phone_num="555-1111")
        self.assertEqual(user.role, Role.DRIVER)
        self.assertEqual(user.phone_num, "555-1111")

        users = await crud.list_users(mia)
        self.assertEqual([u.login for u in users], sorted(u.login for u in users))

    async def test_rename_user_carries_orders(self):
        mia = await crud.get_user("mia")
        before = await crud.get_order_history("bob")
        user = await crud.update_user(mia, "bob", new_login="robert")
        self.assertEqual(user.login, "robert")
        after = await crud.get_order_history("robert")
        self.assertEqual([o.order_id for o in after], [o.order_id for o in before])
        self.assertEqual(await crud.get_order_history("bob"), [])

    async def test_update_user_rejections(self):
        mia = await crud.get_user("mia")
        dan = await crud.get_user("dan")
        with self.assertRaises(UnauthorizedError):
            await crud.update_user(dan, "bob", role=Role.MANAGER)
        with self.assertRaises(UnauthorizedError):
            await crud.list_users(dan)
        with self.assertRaises(ConflictError):
            await crud.update_user(mia, "bob", new_login="alice")
        with self.assertRaises(ValidationError):
            await crud.update_user(mia, "bob", role="chef")
        with self.assertRaises(ValidationError):
            await crud.update_user(mia, "bob")
        with self.assertRaises(NotFoundError):
            await crud.update_user(mia, "nobody", phone_num="1")
        self.assertEqual((await crud.get_user("bob")).role, Role.CUSTOMER)


class CatalogTestCase(DbTestCase):
    # ---------- Browsing ----------

    async def test_list_items_filters(self):
        everything = await crud.list_items()
        self.assertEqual(len(everything), 8)
        names = [i.item_name for i in everything]
        self.assertEqual(names, sorted(names))

        drinks = await crud.list_items(item_type="  DRINKS ")
        self.assertEqual({i.item_name for i in drinks}, {"Cola", "Lemonade"})

        cheap = await crud.list_items(max_price=Decimal("5.00"))
        self.assertTrue(all(i.price <= Decimal("5.00") for i in cheap))
        self.assertIn("Garlic Knots", {i.item_name for i in cheap})

        cheap_entrees = await crud.list_items(
            item_type="entree", max_price=Decimal("11.00")
        )
        self.assertEqual([i.item_name for i in cheap_entrees], ["Cheese Pizza"])

        self.assertEqual(await crud.list_items(item_type="brunch"), [])

    async def test_list_items_sorted_by_price(self):
        asc = await crud.list_items(sort=ItemSort.PRICE_ASC)
        prices = [i.price for i in asc]
        self.assertEqual(prices, sorted(prices))
        self.assertEqual(asc[0].item_name, "Cola")

        desc = await crud.list_items(sort=ItemSort.PRICE_DESC)
        self.assertEqual(desc[0].item_name, "Pepperoni Pizza")
        self.assertEqual([i.price for i in desc], sorted(prices, reverse=True))

    async def test_item_types_and_lookup(self):
        self.assertEqual(
            await crud.list_item_types(), ["dessert", "drinks", "entree", "sides"]
        )
        item = await crud.find_item("Caesar Salad")
        self.assertEqual(item.price, Decimal("7.25"))
        with self.assertRaises(NotFoundError):
            await crud.find_item("Calzone")

    async def test_stores(self):
        stores = await crud.list_stores()
        self.assertEqual([s.store_id for s in stores], [1, 2, 3])
        self.assertFalse(stores[2].is_open)
        self.assertEqual((await crud.find_store(1)).city, "Riverside")
        with self.assertRaises(NotFoundError):
            await crud.find_store(99)

    # ---------- Manager edits ----------

    async def test_add_item(self):
        mia = await crud.get_user("mia")
        item = await crud.add_item(
            mia,
            Item(
                item_name="Calzone",
                ingredients="dough, ricotta, mozzarella",
                type_of_item="entree",
                price=Decimal("9.5"),
                description="Folded pizza",
            ),
        )
        self.assertEqual(item.price, Decimal("9.50"))
        self.assertIn("Calzone", {i.item_name for i in await crud.list_items("entree")})

        with self.assertRaises(ConflictError):
            await crud.add_item(mia, item)

    async def test_update_item_and_rename_keeps_order_lines(self):
        mia = await crud.get_user("mia")
        item = await crud.update_item(mia, "Cola", price=Decimal("2.25"))
        self.assertEqual(item.price, Decimal("2.25"))
        # placed orders keep the total they were charged
        bob = await crud.get_user("bob")
        detail = await crud.get_order_detail(1, bob)
        self.assertEqual(detail.order.total_price, Decimal("14.00"))

        await crud.update_item(mia, "Cola", new_name="Cola Classic")
        detail = await crud.get_order_detail(1, bob)
        self.assertIn("Cola Classic", [line.item_name for line in detail.lines])
        with self.assertRaises(NotFoundError):
            await crud.find_item("Cola")

    async def test_update_item_rejections(self):
        mia = await crud.get_user("mia")
        alice = await crud.get_user("alice")
        with self.assertRaises(UnauthorizedError):
            await crud.update_item(alice, "Cola", price=Decimal("0.01"))
        with self.assertRaises(ValidationError):
            await crud.update_item(mia, "Cola", price=Decimal("-1"))
        with self.assertRaises(ConflictError):
            await crud.update_item(mia, "Cola", new_name="Lemonade")
        with self.assertRaises(NotFoundError):
            await crud.update_item(mia, "Calzone", price=Decimal("1"))
        with self.assertRaises(ValidationError):
            await crud.update_item(mia, "Cola")
        self.assertEqual((await crud.find_item("Cola")).price, Decimal("2.00"))
