"""Top-level navigation state for the mobile app.

A single ``ViewState`` replaces the separate profile/messages/chat/listing
flags, so two overlays can never be visible at once.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ViewState(str, Enum):
    LOADING = "loading"
    LOGIN = "login"
    REGISTER = "register"
    HOME = "home"
    DELIVER = "deliver"
    CREATE_LISTING = "create_listing"
    PROFILE = "profile"
    MESSAGES = "messages"
    CHAT = "chat"


AUTH_VIEWS = frozenset({ViewState.LOGIN, ViewState.REGISTER})
TABS = frozenset({ViewState.HOME, ViewState.DELIVER})
OVERLAYS = frozenset(
    {ViewState.CREATE_LISTING, ViewState.PROFILE, ViewState.MESSAGES, ViewState.CHAT}
)


class InvalidTransition(ValueError):
    pass


@dataclass
class Shell:
    view: ViewState = ViewState.LOADING
    tab: ViewState = ViewState.HOME
    chat_id: Optional[str] = None
    contact_name: Optional[str] = None
    dark_mode: bool = False

    @property
    def logged_in(self) -> bool:
        return self.view in TABS or self.view in OVERLAYS

    def _require(self, *allowed: ViewState) -> None:
        if self.view not in allowed:
            raise InvalidTransition(f"Cannot do that from {self.view.value}")

    def _require_logged_in(self) -> None:
        if not self.logged_in:
            raise InvalidTransition(f"Cannot do that from {self.view.value}")

    def session_restored(self, has_session: bool) -> ViewState:
        self._require(ViewState.LOADING)
        self.view = self.tab if has_session else ViewState.LOGIN
        return self.view

    def show_register(self) -> ViewState:
        self._require(*AUTH_VIEWS)
        self.view = ViewState.REGISTER
        return self.view

    def show_login(self) -> ViewState:
        self._require(*AUTH_VIEWS)
        self.view = ViewState.LOGIN
        return self.view

    def login_succeeded(self) -> ViewState:
        self._require(*AUTH_VIEWS)
        self.tab = ViewState.HOME
        self.view = self.tab
        return self.view

    def logout(self) -> ViewState:
        self._require_logged_in()
        self._clear_chat()
        self.tab = ViewState.HOME
        self.view = ViewState.LOGIN
        return self.view

    def select_tab(self, tab: ViewState) -> ViewState:
        if tab not in TABS:
            raise InvalidTransition(f"{tab.value} is not a tab")
        self._require(*TABS)
        self.tab = tab
        self.view = tab
        return self.view

    def open_profile(self) -> ViewState:
        self._require(*TABS)
        self.view = ViewState.PROFILE
        return self.view

    def open_messages(self) -> ViewState:
        self._require(*TABS)
        self.view = ViewState.MESSAGES
        return self.view

    def start_listing(self) -> ViewState:
        self._require(ViewState.DELIVER)
        self.view = ViewState.CREATE_LISTING
        return self.view

    def open_chat(self, chat_id: str, contact_name: str) -> ViewState:
        # Opening a chat replaces the messages list.
        self._require(ViewState.MESSAGES, *TABS)
        self.chat_id = chat_id
        self.contact_name = contact_name
        self.view = ViewState.CHAT
        return self.view

    def close(self) -> ViewState:
        """Dismiss the current overlay and return to the active tab."""
        if self.view not in OVERLAYS:
            raise InvalidTransition(f"Nothing to close on {self.view.value}")
        if self.view is ViewState.CHAT:
            self._clear_chat()
        self.view = self.tab
        return self.view

    def toggle_dark_mode(self) -> bool:
        self.dark_mode = not self.dark_mode
        return self.dark_mode

    def _clear_chat(self) -> None:
        self.chat_id = None
        self.contact_name = None
