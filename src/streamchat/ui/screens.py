"""Modal screens for the TUI.

This module hides the design decisions about:
- Dialog appearance (CSS, layout)
- Button styling and variants
- Keyboard shortcuts for dialogs
- How confirmations, renames and model settings are collected

To change how dialogs look, modify only this file.
"""

from collections.abc import Awaitable, Callable

from rich.text import Text
from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from ..session.controller import ConnectionTestResult
from ..settings import ModelSettings

ConnectionTester = Callable[[ModelSettings], Awaitable[ConnectionTestResult]]

DIALOG_CSS = """
{screen} {{
    align: center middle;
    background: $background 70%;
}}

.dialog {{
    width: 64;
    height: auto;
    max-height: 30;
    border: tall $accent;
    background: $surface;
    padding: 1 2;
}}

.dialog-title {{
    width: 100%;
    height: auto;
    text-align: center;
    text-style: bold;
    color: $accent;
    padding: 0 0 1 0;
    border-bottom: solid $border;
    margin-bottom: 1;
}}

.dialog-prompt {{
    width: 100%;
    height: auto;
    text-align: center;
    padding: 1 2;
    background: $panel;
    border: round $border;
    color: $foreground;
    margin-bottom: 1;
}}

.dialog Label {{
    margin-top: 1;
    color: $text-muted;
}}

.dialog-buttons {{
    width: 100%;
    height: 3;
    align: center middle;
    margin-top: 1;
}}

.dialog-buttons Button {{
    margin: 0 1;
    min-width: 10;
}}
"""


class ConfirmationScreen(ModalScreen[bool]):
    """Yes/no dialog; dismisses with True only on an explicit confirm."""

    CSS = DIALOG_CSS.format(screen="ConfirmationScreen")

    BINDINGS = [
        Binding("y", "confirm_yes", "Yes", show=False),
        Binding("n", "confirm_no", "No", show=False),
        Binding("escape", "confirm_no", "Cancel", show=False),
    ]

    def __init__(self, prompt: str, title: str = "Confirmation Required", confirm_label: str = "Yes") -> None:
        super().__init__()
        self._prompt = prompt
        self._title = title
        self._confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static(self._title, classes="dialog-title")
            yield Static(Text(self._prompt), classes="dialog-prompt")
            with Horizontal(classes="dialog-buttons"):
                yield Button(self._confirm_label, id="btn-yes", variant="error")
                yield Button("Cancel", id="btn-no", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-yes")

    def action_confirm_yes(self) -> None:
        self.dismiss(True)

    def action_confirm_no(self) -> None:
        self.dismiss(False)


class RenameScreen(ModalScreen[str | None]):
    """Single-field dialog returning the new title, or None when cancelled.

    Blank titles are refused in place so the dialog stays open.
    """

    CSS = DIALOG_CSS.format(screen="RenameScreen")

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def __init__(self, current_title: str) -> None:
        super().__init__()
        self._current_title = current_title

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static("Rename conversation", classes="dialog-title")
            yield Input(value=self._current_title, id="rename-input")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Save", id="btn-save", variant="success")
                yield Button("Cancel", id="btn-cancel", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#rename-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._accept()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-save":
            self._accept()
        else:
            self.dismiss(None)

    def _accept(self) -> None:
        title = self.query_one("#rename-input", Input).value.strip()
        if not title:
            self.notify("Title cannot be empty", severity="warning")
            return
        self.dismiss(title)

    def action_cancel(self) -> None:
        self.dismiss(None)


class ModelSettingsScreen(ModalScreen[ModelSettings | None]):
    """Model name, API Base and API Key form with a connection test.

    Dismisses with the edited settings on save, or None on cancel.
    """

    CSS = DIALOG_CSS.format(screen="ModelSettingsScreen") + """
    #test-result {
        width: 100%;
        height: auto;
        margin-top: 1;
        padding: 0 1;

        &.-success {
            color: $success;
            border: round $success;
        }

        &.-failure {
            color: $error;
            border: round $error;
        }
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def __init__(self, settings: ModelSettings, tester: ConnectionTester) -> None:
        super().__init__()
        self._settings = settings
        self._tester = tester

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static("Model settings", classes="dialog-title")
            yield Label("Model name")
            yield Input(value=self._settings.name, placeholder="glm-4-flash", id="settings-name")
            yield Label("API Base")
            yield Input(
                value=self._settings.base_url,
                placeholder="https://example.com/v1",
                id="settings-base-url",
            )
            yield Label("API Key")
            yield Input(value=self._settings.api_key, password=True, id="settings-api-key")
            yield Static("", id="test-result")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Test", id="btn-test", variant="warning")
                yield Button("Save", id="btn-save", variant="success")
                yield Button("Cancel", id="btn-cancel", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#test-result", Static).display = False
        self.query_one("#settings-name", Input).focus()

    def _form_settings(self) -> ModelSettings:
        return ModelSettings(
            name=self.query_one("#settings-name", Input).value.strip(),
            base_url=self.query_one("#settings-base-url", Input).value.strip(),
            api_key=self.query_one("#settings-api-key", Input).value.strip(),
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "btn-test":
            self._run_test(self._form_settings())
        elif button_id == "btn-save":
            self.dismiss(self._form_settings())
        else:
            self.dismiss(None)

    @work(exclusive=True)
    async def _run_test(self, settings: ModelSettings) -> None:
        """Run the connection test without blocking the dialog."""
        button = self.query_one("#btn-test", Button)
        result_view = self.query_one("#test-result", Static)
        button.disabled = True
        button.label = "Testing…"
        try:
            result = await self._tester(settings)
        finally:
            button.disabled = False
            button.label = "Test"

        result_view.set_class(result.success, "-success")
        result_view.set_class(not result.success, "-failure")
        result_view.update(Text(result.message))
        result_view.display = True

    def action_cancel(self) -> None:
        self.dismiss(None)
