"""Single-field entry modal for quantities, tax and the delivery address."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from tablepos.variant_modal import MAX_QUANTITY

# Returns an error message, or None when the value is acceptable.
Validator = Callable[[str], str | None]


def validate_quantity(value: str) -> str | None:
    if not value:
        return "Quantity is required."
    if not 1 <= int(value) <= MAX_QUANTITY:
        return f"Quantity must be between 1 and {MAX_QUANTITY}."
    return None


class EntryModal(ModalScreen[str | None]):
    """Prompt for one value; dismisses with the text or None on cancel."""

    CSS = """
    EntryModal {
        align: center middle;
        background: $background 60%;
    }

    #entry-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #entry-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #entry-prompt {
        color: white;
        margin-bottom: 1;
    }

    #entry-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #entry-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #entry-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        value: str = "",
        digits_only: bool = False,
        max_length: int = 120,
        validator: Validator | None = None,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt = prompt
        self.value = value
        self.digits_only = digits_only
        self.max_length = max_length
        self.validator = validator
        self.error = ""

    def compose(self) -> ComposeResult:
        kind = "Digits only" if self.digits_only else "Type text"
        with Container(id="entry-dialog"):
            yield Static(self.title_text, id="entry-title")
            yield Static(self.prompt, id="entry-prompt")
            yield Static(id="entry-value")
            yield Static(id="entry-error")
            yield Static(f"{kind}. Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="entry-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if not (event.is_printable and event.character):
            return
        if self.digits_only and not event.character.isdigit():
            event.stop()
            return
        if len(self.value) < self.max_length:
            self.value += event.character
        self.error = ""
        self._refresh_content()
        event.stop()

    def _confirm(self) -> None:
        value = self.value.strip()
        if self.validator is not None:
            error = self.validator(value)
            if error:
                self.error = error
                self._refresh_content()
                return
        self.dismiss(value)

    def _refresh_content(self) -> None:
        self.query_one("#entry-value", Static).update(self.value or "")
        self.query_one("#entry-error", Static).update(self.error or "")
