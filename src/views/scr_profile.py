from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, MarkdownViewer, Rule

import db.crud
from db.errors import PizzaStoreError
from db.models import User
from utils.policy import Operation
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_dialog import PromptModal


def profile_markdown(user: User) -> str:
    rows = [
        ["Login", user.login],
        ["Role", user.role.value],
        ["Favorite Items", user.favorite_items or "N/A"],
        ["Phone Number", user.phone_num or "N/A"],
    ]
    return f"### Profile: {user.login}\n\n" + generate_markdown_table(
        ["Field", "Value"], rows
    )


class ProfileScreen(BaseScreen):
    """
    View and update the logged-in user's profile and password.
    Drivers and managers can also look at another user's profile.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-profile"):
            yield MarkdownViewer(id="md-profile", show_table_of_contents=False)
            with Horizontal(id="hort-profile-fields"):
                with Vertical():
                    yield Label("Favorite Items")
                    yield Input(id="input-favorite")
                with Vertical():
                    yield Label("Phone Number")
                    yield Input(id="input-phone")
                yield Button("Save", id="btn-save-profile", variant="primary")
            yield Rule(line_style="dashed")
            with Horizontal(id="hort-password"):
                yield Input(
                    placeholder="current password", password=True, id="input-pwd-cur"
                )
                yield Input(placeholder="new password", password=True, id="input-pwd-new")
                yield Input(
                    placeholder="re-enter new password",
                    password=True,
                    id="input-pwd-confirm",
                )
                yield Button("Change Password", id="btn-change-pwd", variant="warning")
            yield Button("View Another User", id="btn-view-other")

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        self.query_one("#btn-view-other").set_class(
            not self.app.state.can(Operation.VIEW_OTHERS), "hidden"
        )
        await self._show_own_profile()

    async def _show_own_profile(self) -> None:
        try:
            user = await db.crud.get_user(self.app.state.login)
        except PizzaStoreError as e:
            self.report_error(e)
            return
        self.app.state.user = user
        self.query_one("#input-favorite", Input).value = user.favorite_items
        self.query_one("#input-phone", Input).value = user.phone_num
        await self.query_one("#md-profile", MarkdownViewer).document.update(
            profile_markdown(user)
        )

    @on(Button.Pressed, "#btn-save-profile")
    @work(exclusive=True)
    async def handle_save_profile(self) -> None:
        user = self.app.state.user
        favorite = self.query_one("#input-favorite", Input).value.strip()
        phone = self.query_one("#input-phone", Input).value.strip()
        if favorite == user.favorite_items and phone == user.phone_num:
            self.notify("Nothing to update.", severity="warning")
            return
        try:
            await db.crud.update_profile(
                user.login,
                favorite_items=favorite if favorite != user.favorite_items else None,
                phone_num=phone if phone != user.phone_num else None,
            )
        except PizzaStoreError as e:
            self.report_error(e)
            return
        self.notify("Profile updated.")
        await self._show_own_profile()

    @on(Input.Submitted, "#input-pwd-confirm")
    @on(Button.Pressed, "#btn-change-pwd")
    @work(exclusive=True)
    async def handle_change_password(self) -> None:
        inputs = [
            self.query_one(f"#input-pwd-{k}", Input) for k in ("cur", "new", "confirm")
        ]
        current, new, confirm = (i.value for i in inputs)
        try:
            await db.crud.change_password(self.app.state.login, current, new, confirm)
        except PizzaStoreError as e:
            self.report_error(e)
            inputs[0 if "Current" in str(e) else 1].focus()
            return
        for i in inputs:
            i.value = ""
        self.notify("Password has been updated.")

    @on(Button.Pressed, "#btn-view-other")
    @work(exclusive=True)
    async def handle_view_other(self) -> None:
        login = await self.app.push_screen_wait(
            PromptModal("Enter the login of the user to view:", "alice")
        )
        if not login:
            return
        try:
            user = await db.crud.get_user(login, requester=self.app.state.user)
        except PizzaStoreError as e:
            self.report_error(e)
            return
        await self.query_one("#md-profile", MarkdownViewer).document.update(
            profile_markdown(user)
        )
