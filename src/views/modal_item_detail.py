import dataclasses

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

import db.crud
from db.errors import PizzaStoreError, ValidationError
from db.models import Item
from utils.pure import format_money, generate_markdown_table, parse_quantity


class ItemDetailModal(ModalScreen[bool]):
    """
    Item detail plus quantity picker.
    Returns True if the cart changed, False if not.
    """

    order_qty = reactive(1)

    def __init__(self, item_name: str) -> None:
        super().__init__()
        self._item_name = item_name
        self._item: Item | None = None
        self._in_cart = 0

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-item-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(
                        value="1",
                        id="input-order-qty",
                        type="integer",
                        validators=[Number(minimum=1)],
                    )
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        try:
            self._item = await db.crud.find_item(self._item_name)
        except PizzaStoreError as e:
            self.app.notify(str(e), severity="error")
            self.dismiss(False)
            return

        rows = []
        for k, v in dataclasses.asdict(self._item).items():
            label = k.replace("_", " ").title()
            rows.append([label, format_money(v) if k == "price" else v])
        md_table_str = generate_markdown_table(["Attribute", "Value"], rows)
        header_md = f"### {self._item.item_name}\n\n"
        await self.query_one(MarkdownViewer).document.update(header_md + md_table_str)

        self._in_cart = self.app.state.cart_quantity(self._item_name)
        if self._in_cart:
            self.order_qty = self._in_cart
            self.query_one("#btn-addcart", Button).label = "Update Cart"

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id != "input-order-qty" or not message.value:
            return
        try:
            self.order_qty = parse_quantity(message.value)
        except ValidationError:
            message.input.add_class("-invalid")
        else:
            message.input.remove_class("-invalid")

    def watch_order_qty(self, qty: int) -> None:
        self.query_one("#btn-sub-qty", Button).disabled = qty <= 1
        input_order_qty = self.query_one("#input-order-qty", Input)
        if input_order_qty.value != str(qty):
            input_order_qty.value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        if self.order_qty > 1:
            self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Input.Submitted, "#input-order-qty")
    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        if self._item is None:
            return
        if not self._in_cart:
            self.app.state.add_to_cart(self._item.item_name, self.order_qty)
            self.app.notify(f"Added {self.order_qty} x {self._item.item_name} to cart.")
        else:
            self.app.state.set_cart_qty(self._item.item_name, self.order_qty)
            self.app.notify("Updated cart item quantity.")
        self.dismiss(True)
