from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import DataTable, Input, Label, RadioButton, RadioSet

import db.crud
from db.errors import PizzaStoreError
from db.models import ItemSort
from utils.messages import CartChangedMessage, MenuChangedMessage
from utils.pure import format_money, parse_price
from views.base_screen import BaseScreen
from views.modal_item_detail import ItemDetailModal

SORT_BY_BUTTON = {
    "radio-sort-none": ItemSort.NONE,
    "radio-sort-asc": ItemSort.PRICE_ASC,
    "radio-sort-desc": ItemSort.PRICE_DESC,
}


class MenuScreen(BaseScreen):
    """
    Browse the menu, filtered by type and/or max price, optionally sorted by price.
    Selecting a row opens the item detail, where it can be added to the cart.
    """

    def __init__(self):
        super().__init__()
        self._sort = ItemSort.NONE

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-menu"):
            with Horizontal(id="hort-menu-filters"):
                with Vertical():
                    yield Label("Type", id="label-types")
                    yield Input(
                        placeholder="entree, sides, drinks...", id="input-type"
                    )
                with Vertical():
                    yield Label("Max Price ($)")
                    yield Input(
                        placeholder="any",
                        id="input-max-price",
                        type="number",
                        validators=[Number(minimum=0.0)],
                    )
                with RadioSet(id="radio-sort"):
                    yield RadioButton("No Sort", id="radio-sort-none", value=True)
                    yield RadioButton("Price: Low to High", id="radio-sort-asc")
                    yield RadioButton("Price: High to Low", id="radio-sort-desc")
            yield DataTable(id="table-menu")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Item", "Type", "Price", "Description", "Ingredients")
        self.query_one("#input-type").focus()

    @on(Input.Changed, "#input-type")
    @on(Input.Changed, "#input-max-price")
    @on(MenuChangedMessage)
    @on(ScreenResume)
    def handle_filter_change(self) -> None:
        self.update_menu()

    @on(RadioSet.Changed, "#radio-sort")
    def handle_sort_change(self, event: RadioSet.Changed) -> None:
        self._sort = SORT_BY_BUTTON[event.pressed.id]
        self.update_menu()

    @work(exclusive=True)
    async def update_menu(self) -> None:
        item_type = self.query_one("#input-type", Input).value
        price_text = self.query_one("#input-max-price", Input).value.strip()
        try:
            max_price = parse_price(price_text) if price_text else None
            items = await db.crud.list_items(item_type, max_price, self._sort)
            types = await db.crud.list_item_types()
        except PizzaStoreError as e:
            self.report_error(e)
            return

        self.query_one("#label-types", Label).update(f"Type ({', '.join(types)})")
        table = self.query_one(DataTable)
        table.clear()
        for item in items:
            table.add_row(
                item.item_name,
                item.type_of_item,
                format_money(item.price),
                item.description,
                item.ingredients,
                key=item.item_name,
            )

    @on(DataTable.RowSelected, "#table-menu")
    @work()
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        item_name = event.row_key.value
        if await self.app.push_screen_wait(ItemDetailModal(item_name)):
            self.app.post_message(CartChangedMessage())
