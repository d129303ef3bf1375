
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import (
    Button,
    DataTable,
    Input,
    Label,
    MarkdownViewer,
    RadioButton,
    RadioSet,
)

import db.crud
from db.errors import PizzaStoreError
from db.models import OrderDetail, OrderStatus
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.policy import Operation
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen

RECENT_LIMIT = 5


class OrdersScreen(BaseScreen):
    """
    Order history of the logged-in user (drivers and managers may pick any login),
    either in full or the most recent five, with the selected order's details.
    Drivers and managers can also change the status of the selected order.

    Layout:
    - Markdown detail view at the top, showing the selected order.
    - Orders table below.
    - Status controls for staff.
    """

    show_recent = reactive(False)

    def __init__(self) -> None:
        super().__init__()
        self.selected_order_id: int | None = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-orders-query"):
            yield Input(placeholder="login", id="input-target-login")
            with RadioSet(id="radio-history"):
                yield RadioButton("Full History", id="radio-full", value=True)
                yield RadioButton("Recent 5", id="radio-recent")
            yield Input(placeholder="order id", id="input-order-id", type="integer")
            yield Button("View Order", id="btn-view-order")
            yield Button("Refresh", id="btn-refresh")
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-status-control"):
            yield Label("New Status:")
            with RadioSet(id="radio-status"):
                for status in OrderStatus:
                    yield RadioButton(
                        status.value.title(),
                        id="radio-status-" + status.name.lower(),
                        value=status is OrderStatus.INCOMPLETE,
                    )
            yield Button("Update Status", id="btn-update-status", variant="warning")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Store", "Status", "Total")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_resume(self) -> None:
        # the user may have changed since the screen was last shown
        target = self.query_one("#input-target-login", Input)
        staff = self.app.state.can(Operation.VIEW_OTHERS)
        target.disabled = not staff
        if not staff or not target.value:
            target.value = self.app.state.login or ""
        self.query_one("#hort-status-control").set_class(
            not self.app.state.can(Operation.UPDATE_ORDER_STATUS), "hidden"
        )
        self._load_orders()

    @on(Button.Pressed, "#btn-refresh")
    @on(Input.Submitted, "#input-target-login")
    @on(NewOrderMessage)
    @on(OrderStatusChangedMessage)
    def handle_refresh(self) -> None:
        self._load_orders()

    @on(RadioSet.Changed, "#radio-history")
    def handle_history_mode(self, event: RadioSet.Changed) -> None:
        self.show_recent = event.pressed.id == "radio-recent"

    def watch_show_recent(self) -> None:
        if self.is_mounted:
            self._load_orders()

    @on(DataTable.RowHighlighted, "#table-orders")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value is not None:
            self._select(int(event.row_key.value))

    @on(Input.Submitted, "#input-order-id")
    @on(Button.Pressed, "#btn-view-order")
    def handle_view_order(self) -> None:
        text = self.query_one("#input-order-id", Input).value.strip()
        if not text.isdigit():
            self.notify("Enter an order ID.", severity="warning")
            return
        self._select(int(text))

    def _select(self, order_id: int) -> None:
        self.selected_order_id = order_id
        self._load_and_render_detail(order_id)

    def _target_login(self) -> str:
        value = self.query_one("#input-target-login", Input).value.strip()
        return value or self.app.state.login

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        if not self.app.state.user:
            return
        target = self._target_login()
        try:
            if self.show_recent:
                orders = await db.crud.get_recent_orders(
                    target, RECENT_LIMIT, requester=self.app.state.user
                )
            else:
                orders = await db.crud.get_order_history(
                    target, requester=self.app.state.user
                )
        except PizzaStoreError as e:
            self.report_error(e)
            return

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.order_id,
                o.order_timestamp.strftime("%Y-%m-%d %H:%M"),
                o.store_id,
                o.order_status.value,
                format_money(o.total_price),
                key=str(o.order_id),
            )
        if orders:
            table.move_cursor(row=0)
            self._select(orders[0].order_id)
        else:
            self.selected_order_id = None
            self._render_detail(None, f"No orders for {target}.")

    @work(exclusive=True, group="detail")
    async def _load_and_render_detail(self, order_id: int) -> None:
        try:
            detail = await db.crud.get_order_detail(order_id, self.app.state.user)
        except PizzaStoreError as e:
            self.report_error(e)
            self._render_detail(None)
            return
        self._render_detail(detail)

    def _render_detail(self, detail: OrderDetail | None, caption: str = "") -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if detail is None:
            viewer.document.update(
                f"### {caption or 'Select an order to view its details.'}"
            )
            return

        order = detail.order
        header = (
            f"### Order #{order.order_id}\n"
            f"Customer: {order.login}  \n"
            f"Store: {order.store_id}  \n"
            f"Date: {order.order_timestamp}  \n"
            f"Status: **{order.order_status.value}**\n\n"
        )
        rows = [[line.item_name, line.quantity] for line in detail.lines]
        table = generate_markdown_table(["Item", "Qty"], rows, ["l", "r"])
        footer = f"\n\n**Total Price:** {format_money(order.total_price)}"
        viewer.document.update(
            header + (table if rows else "No items in this order.") + footer
        )

    @on(Button.Pressed, "#btn-update-status")
    @work(exclusive=True)
    async def handle_update_status(self) -> None:
        if self.selected_order_id is None:
            self.notify("Select an order first.", severity="warning")
            return
        pressed = self.query_one("#radio-status", RadioSet).pressed_button
        if pressed is None:
            self.notify("Choose a status.", severity="warning")
            return
        status = OrderStatus[pressed.id.removeprefix("radio-status-").upper()]
        try:
            order = await db.crud.update_order_status(
                self.selected_order_id, status, self.app.state.user
            )
        except PizzaStoreError as e:
            self.report_error(e)
            return
        self.notify(f"Order {order.order_id} is now '{order.order_status.value}'.")
        self.post_message(OrderStatusChangedMessage(order.order_id, status.value))
