from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

import db.crud
from db.errors import PizzaStoreError
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal, SimpleDialogModal


class LoginScreen(BaseScreen):
    """
    Log in or sign up. Dismissed once a user is authenticated; the user is
    stored on app.state.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Login")
                    yield Input(placeholder="alice", id="input-login-name")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Login")
                    yield Input(placeholder="jane", id="input-reg-name")
                    yield Label("Phone Number")
                    yield Input(placeholder="555-0100", id="input-reg-phone")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd"
                    )
                    with Container(id="div-reg-btns"):
                        yield Button("Register", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-name").focus()

    @on(Input.Submitted, "#input-login-pwd")
    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        login = self.query_one("#input-login-name", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value

        if not login or not pwd:
            self.notify("Login or password cannot be empty!", severity="error")
            return

        try:
            user = await db.crud.authenticate(login, pwd)
        except PizzaStoreError as e:
            self.notify(str(e), severity="error")
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")
            return

        self.app.state.start_session(user)
        self.notify(f"Hello {user.login}!")
        self.dismiss()

    @on(Input.Submitted, "#input-reg-pwd")
    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        login = self.query_one("#input-reg-name", Input).value.strip()
        phone = self.query_one("#input-reg-phone", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value

        if not login or not phone or not pwd:
            self.notify("Make sure all inputs are filled.", severity="error")
            return

        try:
            if not await db.crud.login_available(login):
                self.notify("Login already taken.", severity="error")
                self.query_one("#input-reg-name", Input).add_class("-invalid")
                return
            user = await db.crud.create_user(login, pwd, phone)
        except PizzaStoreError as e:
            self.notify(str(e), severity="error")
            self.query_one("#input-reg-name", Input).add_class("-invalid")
            return

        await self.app.push_screen_wait(
            SimpleDialogModal(f"Registration successful. Welcome, {user.login}!")
        )

        self.query_one(TabbedContent).active = "tab-login"
        self.query_one("#input-login-name", Input).value = user.login
        input_login_pwd = self.query_one("#input-login-pwd", Input)
        input_login_pwd.value = pwd
        input_login_pwd.focus()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
