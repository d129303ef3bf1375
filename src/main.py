import argparse
from typing import Dict, Optional, Tuple

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

import db.database
from utils.logger import get_logger
from utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from utils.policy import Operation
from utils.state import GlobalState
from views.scr_cart import CartScreen
from views.scr_login import LoginScreen
from views.scr_manage_menu import ManageMenuScreen
from views.scr_manage_users import ManageUsersScreen
from views.scr_menu import MenuScreen
from views.scr_orders import OrdersScreen
from views.scr_profile import ProfileScreen
from views.scr_stores import StoresScreen

_logger = get_logger(__name__)


class PizzaStoreApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "menu": MenuScreen,
        "cart": CartScreen,
        "orders": OrdersScreen,
        "stores": StoresScreen,
        "profile": ProfileScreen,
        "manage_menu": ManageMenuScreen,
        "manage_users": ManageUsersScreen,
    }

    # mode -> (sidebar label, operation the user must be permitted)
    MODE_LABELS: Dict[str, Tuple[str, Operation]] = {
        "menu": ("Browse Menu", Operation.VIEW_OWN),
        "cart": ("Cart", Operation.VIEW_OWN),
        "orders": ("Orders", Operation.VIEW_OWN),
        "stores": ("Stores", Operation.VIEW_OWN),
        "profile": ("Profile", Operation.UPDATE_OWN_PROFILE),
        "manage_menu": ("Manage Menu", Operation.UPDATE_MENU),
        "manage_users": ("Manage Users", Operation.UPDATE_USERS),
    }

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/menu.tcss",
        "styles/cart.tcss",
        "styles/orders.tcss",
        "styles/profile.tcss",
        "styles/manage.tcss",
    ]

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def modes_for_current_user(self) -> Dict[str, str]:
        """mode -> label for every mode the logged-in user may open"""
        return {
            mode: label
            for mode, (label, operation) in self.MODE_LABELS.items()
            if self.state.can(operation)
        }

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        _logger.info(f"User {self.state.login} logged out")
        self.state.end_session()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        if self.state.user:
            self.state.end_session()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        self.post_message(ModeSwitchedMessage(self.current_mode, "menu"))
        await self.switch_mode("menu")


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Pizza store text client")
    parser.add_argument(
        "--db", help="path to the SQLite database (default: $PIZZA_DB_PATH)"
    )
    args = parser.parse_args(argv)
    if args.db:
        db.database.DB_PATH = args.db

    _logger.info(f"Using database {db.database.DB_PATH}")
    PizzaStoreApp().run()


if __name__ == "__main__":
    main()
