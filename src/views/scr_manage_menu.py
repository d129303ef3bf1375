from __future__ import annotations

from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import (
    Button,
    Input,
    Label,
    MarkdownViewer,
    OptionList,
    TabbedContent,
    TabPane,
)
from textual.widgets.option_list import Option

import db.crud
from db.errors import PizzaStoreError
from db.models import Item
from utils.messages import MenuChangedMessage
from utils.pure import format_money, generate_markdown_table, parse_price
from views.base_screen import BaseScreen

ITEM_FIELDS = ("name", "type", "price", "ingredients", "description")
UPDATE_KWARGS = {
    "name": "new_name",
    "type": "type_of_item",
    "price": "price",
    "ingredients": "ingredients",
    "description": "description",
}


def item_markdown(item: Item) -> str:
    rows = [
        ["Name", item.item_name],
        ["Type", item.type_of_item],
        ["Price", format_money(item.price)],
        ["Ingredients", item.ingredients],
        ["Description", item.description],
    ]
    return f"### Menu Item: {item.item_name}\n\n" + generate_markdown_table(
        ["Attribute", "Value"], rows, ["l", "l"]
    )


class ManageMenuScreen(BaseScreen):
    """
    Managers search the menu for an item and edit any of its fields,
    or add a new item.
    """

    current_item: Optional[str] = None

    def __init__(self) -> None:
        super().__init__()
        self._items: List[Item] = []

    def _field_inputs(self, prefix: str) -> ComposeResult:
        for field in ITEM_FIELDS:
            with Vertical():
                yield Label(field.title())
                if field == "price":
                    yield Input(
                        id=f"input-{prefix}-{field}",
                        type="number",
                        validators=[Number(minimum=0.0)],
                    )
                else:
                    yield Input(id=f"input-{prefix}-{field}")

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-manage-menu"):
            with TabPane("Edit Item", id="tab-edit"):
                yield Input(id="input-search", placeholder="Search for an item...")
                yield OptionList(id="optlist-items")
                yield MarkdownViewer(id="md-item", show_table_of_contents=False)
                with Horizontal(id="hort-edit-controls"):
                    yield from self._field_inputs("edit")
                    yield Button("Update", id="btn-update", variant="success")
            with TabPane("Add Item", id="tab-add"):
                with Horizontal(id="hort-add-controls"):
                    yield from self._field_inputs("add")
                    yield Button("Add", id="btn-add", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#md-item").add_class("hidden")
        self.query_one("#hort-edit-controls").add_class("hidden")

    @on(ScreenResume)
    @on(MenuChangedMessage)
    def handle_reload(self) -> None:
        self.update_optlist(self.query_one("#input-search", Input).value)

    @on(Input.Changed, "#input-search")
    def handle_search(self, message: Input.Changed) -> None:
        self.query_one("#optlist-items").remove_class("hidden")
        self.update_optlist(message.value)

    @on(OptionList.OptionSelected, "#optlist-items")
    def handle_item_selected(self, message: OptionList.OptionSelected) -> None:
        self.current_item = message.option.id
        self.render_item()

        self.query_one("#optlist-items").add_class("hidden")
        self.query_one("#md-item").remove_class("hidden")
        self.query_one("#hort-edit-controls").remove_class("hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str) -> None:
        """fill option list with items whose name or type contains the query"""
        try:
            items = await db.crud.list_items()
        except PizzaStoreError as e:
            self.report_error(e)
            return
        needle = query.strip().lower()
        self._items = [
            i
            for i in items
            if needle in i.item_name.lower() or needle in i.type_of_item.lower()
        ]
        opt_list = self.query_one("#optlist-items", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [
                Option(f"{i.item_name} ({i.type_of_item})", id=i.item_name)
                for i in self._items
            ]
        )

    @work(exclusive=True, group="render")
    async def render_item(self) -> None:
        try:
            item = await db.crud.find_item(self.current_item)
        except PizzaStoreError as e:
            self.report_error(e)
            return
        await self.query_one("#md-item", MarkdownViewer).document.update(
            item_markdown(item)
        )

        # prefill inputs with current values
        values = {
            "name": item.item_name,
            "type": item.type_of_item,
            "price": f"{item.price:.2f}",
            "ingredients": item.ingredients,
            "description": item.description,
        }
        for field, value in values.items():
            self.query_one(f"#input-edit-{field}", Input).value = value

    def _read_fields(self, prefix: str) -> Optional[dict]:
        values = {
            f: self.query_one(f"#input-{prefix}-{f}", Input).value.strip()
            for f in ITEM_FIELDS
        }
        price_input = self.query_one(f"#input-{prefix}-price", Input)
        try:
            values["price"] = parse_price(values["price"])
        except PizzaStoreError as e:
            price_input.focus()
            price_input.add_class("-invalid")
            self.report_error(e)
            return None
        price_input.remove_class("-invalid")
        return values

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True)
    async def handle_update(self) -> None:
        if self.current_item is None:
            self.notify("Select an item first.", severity="warning")
            return
        values = self._read_fields("edit")
        if values is None:
            return
        try:
            old = await db.crud.find_item(self.current_item)
            current = {
                "name": old.item_name,
                "type": old.type_of_item,
                "price": old.price,
                "ingredients": old.ingredients,
                "description": old.description,
            }
            changed = {
                UPDATE_KWARGS[f]: values[f]
                for f in ITEM_FIELDS
                if values[f] != current[f]
            }
            if not changed:
                self.notify("Nothing to update.", severity="warning")
                return
            item = await db.crud.update_item(
                self.app.state.user, old.item_name, **changed
            )
        except PizzaStoreError as e:
            self.report_error(e)
            return

        self.current_item = item.item_name
        self.notify("Item updated successfully.")
        self.post_message(MenuChangedMessage())
        self.render_item()

    @on(Button.Pressed, "#btn-add")
    @work(exclusive=True)
    async def handle_add(self) -> None:
        values = self._read_fields("add")
        if values is None:
            return
        item = Item(
            item_name=values["name"],
            ingredients=values["ingredients"],
            type_of_item=values["type"],
            price=values["price"],
            description=values["description"],
        )
        try:
            item = await db.crud.add_item(self.app.state.user, item)
        except PizzaStoreError as e:
            self.report_error(e)
            return

        for f in ITEM_FIELDS:
            self.query_one(f"#input-add-{f}", Input).value = ""
        self.notify(f"Added {item.item_name} at {format_money(item.price)}.")
        self.post_message(MenuChangedMessage())
