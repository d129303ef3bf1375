from textual import on, work
from textual.app import ComposeResult
from textual.events import ScreenResume
from textual.widgets import DataTable

import db.crud
from db.errors import PizzaStoreError
from views.base_screen import BaseScreen


class StoresScreen(BaseScreen):
    """All store locations, with open flag and rating."""

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield DataTable(id="table-stores")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Address", "City", "State", "Open", "Rating")

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        try:
            stores = await db.crud.list_stores()
        except PizzaStoreError as e:
            self.report_error(e)
            return
        table = self.query_one(DataTable)
        table.clear()
        for s in stores:
            table.add_row(
                s.store_id,
                s.address,
                s.city,
                s.state,
                "yes" if s.is_open else "no",
                f"{s.rating:.1f}",
            )
