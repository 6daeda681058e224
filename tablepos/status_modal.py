"""Table status menu."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from tablepos.models import Table, TableStatus
from tablepos.rendering import format_status_badge
from tablepos.table_status import ALL_STATUSES


class StatusModal(ModalScreen[TableStatus | None]):
    """Centered menu offering every status for one table."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("up", "move_cursor(-1)", "Previous"),
        ("enter", "choose", "Choose"),
    ]

    CSS = """
    StatusModal {
        align: center middle;
        background: $background 60%;
    }

    #status-dialog {
        width: 44;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #status-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #status-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, table: Table) -> None:
        super().__init__()
        self.table = table
        self.cursor_index = ALL_STATUSES.index(table.status)

    def compose(self) -> ComposeResult:
        with Container(id="status-dialog"):
            yield Static(f"Status of {self.table.display_name}", id="status-title")
            yield Static(id="status-body")
            yield Static("J/K/↑/↓ move, Enter set, Esc/q close", id="status-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_close(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        self.cursor_index = (self.cursor_index + delta) % len(ALL_STATUSES)
        self._refresh_content()

    def action_choose(self) -> None:
        self.dismiss(ALL_STATUSES[self.cursor_index])

    def _refresh_content(self) -> None:
        content = Text(style="white")
        for idx, status in enumerate(ALL_STATUSES):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            content.append(pointer)
            content.append_text(format_status_badge(status))
            if status is self.table.status:
                content.append("  (current)", style="dim")
        self.query_one("#status-body", Static).update(content)
