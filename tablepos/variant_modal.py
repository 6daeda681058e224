"""Variant and quantity picker shown before a product is added."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from tablepos.models import Product
from tablepos.rendering import format_price

# (variant_id, quantity)
VariantChoice = tuple[int | None, int]

MAX_QUANTITY = 99


class VariantModal(ModalScreen[VariantChoice | None]):
    """Pick a size/variant and a quantity for one product."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("q", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("up", "move_cursor(-1)", "Previous"),
        ("enter", "confirm", "Add"),
    ]

    CSS = """
    VariantModal {
        align: center middle;
        background: $background 60%;
    }

    #variant-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #variant-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #variant-body {
        margin-bottom: 1;
        color: white;
    }

    #variant-help {
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, product: Product) -> None:
        super().__init__()
        self.product = product
        self.quantity = 1
        default = product.default_variant()
        if default is not None:
            self.cursor_index = list(product.variants).index(default)

    def compose(self) -> ComposeResult:
        with Container(id="variant-dialog"):
            yield Static(self.product.name, id="variant-title")
            yield Static(id="variant-body")
            yield Static("J/K/↑/↓ size, +/- quantity, Enter add, Esc/q cancel", id="variant-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.character == "+":
            self._change_quantity(1)
            event.stop()
            return
        if event.character == "-":
            self._change_quantity(-1)
            event.stop()

    def _change_quantity(self, delta: int) -> None:
        self.quantity = min(MAX_QUANTITY, max(1, self.quantity + delta))
        self._refresh_content()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        if not self.product.variants:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.product.variants)
        self._refresh_content()

    def action_confirm(self) -> None:
        variant_id = self.product.variants[self.cursor_index].id if self.product.variants else None
        self.dismiss((variant_id, self.quantity))

    def _unit_price(self) -> Decimal:
        if self.product.variants:
            return self.product.variants[self.cursor_index].price
        return self.product.price

    def _refresh_content(self) -> None:
        body = self.query_one("#variant-body", Static)
        content = Text(style="white")
        for idx, variant in enumerate(self.product.variants):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            style = "bold white" if idx == self.cursor_index else "white"
            content.append(f"{pointer}{variant.name}  {format_price(variant.price)}", style=style)
        if self.product.variants:
            content.append("\n\n")
        unit_price = self._unit_price()
        content.append(f"Quantity: {self.quantity}", style="bold white")
        content.append(f"\nTotal: {format_price(unit_price * self.quantity)}")
        body.update(content)
