from decimal import Decimal

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Rule

import db.crud
from db.errors import NotFoundError, PizzaStoreError
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal
from views.modal_item_detail import ItemDetailModal


class CartScreen(BaseScreen):
    """
    The transient cart: edit quantities, remove lines, and check out.
    Prices shown are the current menu prices; the order is priced again
    when it is placed.
    """

    def __init__(self) -> None:
        super().__init__()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield DataTable(id="table-cart")
        yield Label("Total Cart Value: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Remove Item", id="btn-remove-item")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Item", "Quantity", "Unit Price", "Line Total")

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)  # must be exclusive, else rows can be added twice
    async def handle_cart_change(self):
        table = self.query_one(DataTable)
        table.clear()
        total = Decimal("0.00")
        for line in self.app.state.cart:
            try:
                item = await db.crud.find_item(line.item_name)
            except NotFoundError:
                table.add_row(
                    line.item_name, line.quantity, "unavailable", "-", key=line.item_name
                )
                continue
            except PizzaStoreError as e:
                self.report_error(e)
                return
            line_total = item.price * line.quantity
            total += line_total
            table.add_row(
                line.item_name,
                line.quantity,
                format_money(item.price),
                format_money(line_total),
                key=line.item_name,
            )
        self.query_one("#label-cart-total", Label).update(
            f"Total Cart Value: {format_money(total)}"
        )

    def _selected_item(self) -> str | None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        return table.get_row_at(table.cursor_row)[0]

    @on(DataTable.RowSelected, "#table-cart")
    @work()
    async def handle_edit_item(self, event: DataTable.RowSelected) -> None:
        if await self.app.push_screen_wait(ItemDetailModal(event.row_key.value)):
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-remove-item")
    @work()
    async def handle_remove_item(self) -> None:
        item_name = self._selected_item()
        if item_name is None:
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(
            DialogModal(
                f"Remove {item_name} from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            self.app.state.remove_from_cart(item_name)
            self.post_message(CartChangedMessage())
            self.notify("Item removed from cart.")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not self.app.state.cart:
            self.notify("Cart is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            self.app.state.clear_cart()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if not self.app.state.cart:
            self.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.app.post_message(NewOrderMessage(order_id))
        self.post_message(CartChangedMessage())
