from __future__ import annotations

from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import (
    Button,
    Input,
    Label,
    MarkdownViewer,
    OptionList,
    RadioButton,
    RadioSet,
)
from textual.widgets.option_list import Option

import db.crud
from db.errors import PizzaStoreError
from db.models import Role, User
from views.base_screen import BaseScreen
from views.scr_profile import profile_markdown


class ManageUsersScreen(BaseScreen):
    """
    Managers look up any user and change their login, role,
    favorite items or phone number.
    """

    current_login: Optional[str] = None

    def __init__(self) -> None:
        super().__init__()
        self._users: List[User] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Input(id="input-search", placeholder="Search for a user...")
            yield OptionList(id="optlist-users")
            yield MarkdownViewer(id="md-user", show_table_of_contents=False)
            with Horizontal(id="hort-user-controls"):
                with Vertical():
                    yield Label("Login")
                    yield Input(id="input-login")
                with Vertical():
                    yield Label("Favorite Items")
                    yield Input(id="input-favorite")
                with Vertical():
                    yield Label("Phone Number")
                    yield Input(id="input-phone")
                with RadioSet(id="radio-role"):
                    for role in Role:
                        yield RadioButton(role.value, id="radio-role-" + role.name.lower())
                yield Button("Update", id="btn-update", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#md-user").add_class("hidden")
        self.query_one("#hort-user-controls").add_class("hidden")

    @on(ScreenResume)
    def handle_reload(self) -> None:
        self.update_optlist(self.query_one("#input-search", Input).value)

    @on(Input.Changed, "#input-search")
    def handle_search(self, message: Input.Changed) -> None:
        self.query_one("#optlist-users").remove_class("hidden")
        self.update_optlist(message.value)

    @on(OptionList.OptionSelected, "#optlist-users")
    def handle_user_selected(self, message: OptionList.OptionSelected) -> None:
        self.current_login = message.option.id
        self.render_user()

        self.query_one("#optlist-users").add_class("hidden")
        self.query_one("#md-user").remove_class("hidden")
        self.query_one("#hort-user-controls").remove_class("hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str) -> None:
        try:
            users = await db.crud.list_users(self.app.state.user)
        except PizzaStoreError as e:
            self.report_error(e)
            return
        needle = query.strip().lower()
        self._users = [u for u in users if needle in u.login.lower()]
        opt_list = self.query_one("#optlist-users", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [Option(f"{u.login} ({u.role.value})", id=u.login) for u in self._users]
        )

    @work(exclusive=True, group="render")
    async def render_user(self) -> None:
        try:
            user = await db.crud.get_user(
                self.current_login, requester=self.app.state.user
            )
        except PizzaStoreError as e:
            self.report_error(e)
            return
        await self.query_one("#md-user", MarkdownViewer).document.update(
            profile_markdown(user)
        )

        self.query_one("#input-login", Input).value = user.login
        self.query_one("#input-favorite", Input).value = user.favorite_items
        self.query_one("#input-phone", Input).value = user.phone_num
        self.query_one(
            "#radio-role-" + user.role.name.lower(), RadioButton
        ).value = True

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True)
    async def handle_update(self) -> None:
        if self.current_login is None:
            self.notify("Select a user first.", severity="warning")
            return

        pressed = self.query_one("#radio-role", RadioSet).pressed_button
        new_login = self.query_one("#input-login", Input).value.strip()
        favorite = self.query_one("#input-favorite", Input).value.strip()
        phone = self.query_one("#input-phone", Input).value.strip()
        try:
            old = await db.crud.get_user(
                self.current_login, requester=self.app.state.user
            )
            role = (
                Role[pressed.id.removeprefix("radio-role-").upper()]
                if pressed
                else old.role
            )
            if (new_login, role, favorite, phone) == (
                old.login,
                old.role,
                old.favorite_items,
                old.phone_num,
            ):
                self.notify("Nothing to update.", severity="warning")
                return
            user = await db.crud.update_user(
                self.app.state.user,
                old.login,
                new_login=new_login if new_login != old.login else None,
                role=role if role != old.role else None,
                favorite_items=favorite if favorite != old.favorite_items else None,
                phone_num=phone if phone != old.phone_num else None,
            )
        except PizzaStoreError as e:
            self.report_error(e)
            return

        self.current_login = user.login
        if self.app.state.login == old.login:
            # a manager editing their own account
            self.app.state.user = user
        self.notify(f"User {user.login} updated.")
        self.render_user()
        self.update_optlist(self.query_one("#input-search", Input).value)
