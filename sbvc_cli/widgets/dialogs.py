"""
Dialog Widgets

Modal confirmation and text prompt dialogs.
"""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


class ConfirmDialog(ModalScreen[bool]):
    """Yes/no question. Dismisses with True for yes."""

    DEFAULT_CSS = """
    ConfirmDialog {
        align: center middle;
    }

    ConfirmDialog > Container {
        width: 70;
        height: auto;
        background: $surface;
        border: thick $warning;
        padding: 1 2;
    }

    ConfirmDialog .dialog-title {
        text-style: bold;
        color: $warning;
        text-align: center;
        padding: 1;
    }

    ConfirmDialog Horizontal {
        height: 3;
        align: center middle;
        margin-top: 1;
    }

    ConfirmDialog Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=True, priority=True),
        Binding("n", "answer(False)", "No", show=True, priority=True),
        Binding("escape", "answer(False)", "Cancel", show=True, priority=True),
    ]

    def __init__(self, title: str, message: str, **kwargs):
        super().__init__(**kwargs)
        self.dialog_title = title
        self.message = message

    def compose(self) -> ComposeResult:
        with Container():
            yield Static(self.dialog_title, classes="dialog-title")
            yield Static(self.message, classes="dialog-message")
            with Horizontal():
                yield Button("Yes [y]", id="yes", variant="warning")
                yield Button("No [n]", id="no", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#no", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_answer(self, answer: bool) -> None:
        self.dismiss(answer)


class PromptDialog(ModalScreen[Optional[str]]):
    """Single-line text prompt. Dismisses with the text, or None if cancelled."""

    DEFAULT_CSS = """
    PromptDialog {
        align: center middle;
    }

    PromptDialog > Container {
        width: 70;
        height: auto;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }

    PromptDialog .dialog-title {
        text-style: bold;
        text-align: center;
        padding: 1;
    }

    PromptDialog Horizontal {
        height: 3;
        align: center middle;
        margin-top: 1;
    }

    PromptDialog Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True, priority=True),
    ]

    def __init__(self, title: str, placeholder: str = "", value: str = "", **kwargs):
        super().__init__(**kwargs)
        self.dialog_title = title
        self.placeholder = placeholder
        self.initial_value = value

    def compose(self) -> ComposeResult:
        with Container():
            yield Static(self.dialog_title, classes="dialog-title")
            yield Input(value=self.initial_value, placeholder=self.placeholder, id="prompt-input")
            with Horizontal():
                yield Button("Ok", id="ok", variant="primary")
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self.dismiss(self.query_one("#prompt-input", Input).value)
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)
