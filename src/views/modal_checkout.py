from decimal import Decimal
from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

import db.crud
from db.errors import NotFoundError, PizzaStoreError
from utils.pure import format_money, generate_markdown_table
from views.modal_dialog import DialogModal


class CheckoutModal(ModalScreen[Optional[int]]):
    """
    Order summary, store choice and order placement.
    Dismisses with the new order id, or None if nothing was placed.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Store ID")
            yield Input(
                placeholder="1",
                id="input-store-id",
                type="integer",
                validators=[Number(minimum=1)],
            )
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        try:
            await self._render_summary()
        except PizzaStoreError as e:
            self.app.notify(str(e), title=type(e).__name__, severity="error")
            self.dismiss(None)
            return
        self.query_one("#input-store-id").focus()

    async def _render_summary(self) -> None:
        headers = ["Item", "Unit Price", "Quantity", "Line Total"]
        rows = []
        subtotal = Decimal("0.00")
        for line in self.app.state.cart:
            try:
                item = await db.crud.find_item(line.item_name)
            except NotFoundError:
                rows.append([line.item_name, "unavailable", line.quantity, "-"])
                continue
            subtotal += item.price * line.quantity
            rows.append(
                [
                    item.item_name,
                    format_money(item.price),
                    line.quantity,
                    format_money(item.price * line.quantity),
                ]
            )

        stores = await db.crud.list_stores()
        store_rows = [
            [s.store_id, s.address, s.city, "yes" if s.is_open else "no"]
            for s in stores
        ]

        md = "### Order Summary\n\n"
        md += generate_markdown_table(headers, rows, ["l", "r", "c", "r"])
        md += f"\n\n**Subtotal:** {format_money(subtotal)}\n\n### Stores\n\n"
        md += generate_markdown_table(["ID", "Address", "City", "Open"], store_rows)
        await self.query_one(MarkdownViewer).document.update(md)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Submitted, "#input-store-id")
    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        store_input = self.query_one("#input-store-id", Input)
        if not store_input.value or not store_input.is_valid:
            store_input.focus()
            store_input.add_class("-invalid")
            self.notify("A valid store ID is required.", severity="error")
            return
        store_id = int(store_input.value)
        try:
            store = await db.crud.find_store(store_id)
        except PizzaStoreError as e:
            store_input.add_class("-invalid")
            self.notify(str(e), severity="error")
            return
        store_input.remove_class("-invalid")

        caption = f"Place order at {store.address}, {store.city}? This cannot be undone."
        if not store.is_open:
            caption = f"{store.address} is currently closed. " + caption

        if not await self.app.push_screen_wait(
            DialogModal(
                caption,
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            placed = await self.app.state.checkout(store_id)
        except PizzaStoreError as e:
            self.notify(str(e), title="Order not placed", severity="error")
            return

        self.app.notify(
            f"Order placed. Order ID {placed.order_id}, "
            f"total {format_money(placed.total_price)}."
        )
        self.dismiss(placed.order_id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
