"""Three-pane Textual POS: tables, menu and the open order."""

from __future__ import annotations

import logging
from decimal import Decimal

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from tablepos import cart as cart_ops
from tablepos.constant import PAYMENT_METHODS
from tablepos.entry_modal import EntryModal, validate_quantity
from tablepos.models import CartLine, Product, Table, TableStatus
from tablepos.rendering import format_cart_line, format_price, format_product_label, format_table_label
from tablepos.session import Outcome, PosSession
from tablepos.status_modal import StatusModal
from tablepos.variant_modal import VariantChoice, VariantModal

logger = logging.getLogger(__name__)

PANES = ("tables", "catalog", "order")


class TablePosApp(App):
    """A Textual POS screen: pick a table, build its order, check out."""

    TITLE = "Table POS"
    SUB_TITLE = "Tables / Menu / Order"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #tables-pane {
        width: 2fr;
        border: round $surface;
        padding: 0 1;
    }

    #catalog-pane {
        width: 2fr;
        border: round $surface;
        padding: 0 1;
    }

    #order-pane {
        width: 2fr;
        border: round $surface;
        padding: 0 1;
    }

    .active-pane {
        border: round $primary;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        height: 3;
    }

    #tables-list, #results, #order-lines {
        height: 1fr;
        padding: 0 1;
    }

    #order-header, #order-totals, #tables-filter {
        height: auto;
        padding: 0 1;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    .pane-title {
        text-style: bold;
    }
    """

    input_state = reactive("normal")
    focus_pane = reactive("tables")
    search_query = reactive("")
    table_index = reactive(0)
    product_index = reactive(0)
    line_index = reactive(0)

    BINDINGS = [
        Binding("tab", "cycle_pane(1)", "Next pane", priority=True),
        Binding("shift+tab", "cycle_pane(-1)", "Previous pane", priority=True),
        ("up", "move_cursor(-1)", "Up"),
        ("down", "move_cursor(1)", "Down"),
        ("enter", "activate", "Select"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "checkout", "Checkout", priority=True),
        Binding("ctrl+x", "cancel_order", "Cancel order", priority=True),
        ("ctrl+r", "reload", "Reload"),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: PosSession) -> None:
        super().__init__()
        self.session = session
        self.area_index: int | None = None
        self.category_index: int | None = None
        self.payment_method = "cash"
        self.tax_amount = Decimal("0")
        self.shipping_address = ""
        self.system_status = "Loading..."

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="tables-pane"):
                yield Static("Tables", classes="pane-title")
                yield Static(id="tables-filter")
                yield Static(id="tables-list")
            with Vertical(id="catalog-pane"):
                yield Static("Menu", classes="pane-title")
                yield Static(id="search-bar")
                yield Static(id="results")
            with Vertical(id="order-pane"):
                yield Static("Order", classes="pane-title")
                yield Static(id="order-header")
                yield Static(id="order-lines")
                yield Static(id="order-totals")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        self._refresh_all()
        self.run_worker(self._load(), exclusive=True, group="load")

    async def on_unmount(self) -> None:
        self.session.abandon_checkout()
        await self.session.gateway.aclose()

    async def _load(self) -> None:
        outcome = await self.session.load()
        self._apply(outcome)

    def _apply(self, outcome: Outcome) -> None:
        if outcome.message:
            self.system_status = outcome.message
        if outcome.error is not None:
            logger.info("ui_error kind=%s", outcome.error.kind)
        self._refresh_all()

    # -- key handling ----------------------------------------------------

    def _modal_open(self) -> bool:
        return isinstance(self.screen, (StatusModal, VariantModal, EntryModal))

    def on_key(self, event: Key) -> None:
        if self._modal_open():
            return
        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        char = event.character
        if self.input_state == "active":
            self.search_query += char
            self.product_index = 0
            self._refresh_catalog()
            event.stop()
            return

        handlers = {
            "j": lambda: self.action_move_cursor(1),
            "k": lambda: self.action_move_cursor(-1),
            "/": self._start_search,
            "a": self._cycle_area,
            "c": self._cycle_category,
            "s": self._open_status_menu,
            "+": lambda: self._adjust_selected_line(1),
            "-": lambda: self._adjust_selected_line(-1),
            "d": self._remove_selected_line,
            "p": self._cycle_payment_method,
            "=": self._edit_line_quantity,
            "t": self._edit_tax,
            "h": self._edit_shipping_address,
        }
        handler = handlers.get(char.lower() if char.isalpha() else char)
        if handler is None:
            return
        handler()
        event.stop()

    def action_cycle_pane(self, delta: int) -> None:
        if self._modal_open():
            return
        idx = PANES.index(self.focus_pane)
        self.focus_pane = PANES[(idx + delta) % len(PANES)]
        self._refresh_all()

    def action_move_cursor(self, delta: int) -> None:
        if self._modal_open():
            return
        if self.focus_pane == "tables":
            tables = self._visible_tables()
            if tables:
                self.table_index = (self.table_index + delta) % len(tables)
        elif self.focus_pane == "catalog":
            results = self._filtered_products()
            if results:
                self.product_index = (self.product_index + delta) % len(results)
        else:
            lines = self.session.state.cart.lines
            if lines:
                self.line_index = (self.line_index + delta) % len(lines)
        self._refresh_all()

    def action_activate(self) -> None:
        if self._modal_open():
            return
        if self.focus_pane == "tables":
            table = self._highlighted_table()
            if table is not None:
                self._apply(self.session.select_table(table.id))
            return
        if self.focus_pane == "catalog":
            product = self._highlighted_product()
            if product is None:
                return
            if not product.is_available:
                self._apply(self.session.add_product(product.id))
                return
            self.push_screen(VariantModal(product), lambda choice: self._on_variant_chosen(product, choice))

    def action_backspace_query(self) -> None:
        if self._modal_open() or self.input_state != "active":
            return
        if not self.search_query:
            return
        self.search_query = self.search_query[:-1]
        self.product_index = 0
        self._refresh_catalog()

    def action_cancel_active_mode(self) -> None:
        if self._modal_open() or self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_query = ""
        self.product_index = 0
        self._refresh_catalog()

    def action_checkout(self) -> None:
        if self._modal_open():
            return
        if self.session.checkout_pending:
            self.system_status = "Checkout already in progress"
            self._refresh_status_bar()
            return
        self.system_status = "Submitting order..."
        self._refresh_status_bar()
        self.run_worker(self._checkout(), group="checkout")

    async def _checkout(self) -> None:
        outcome = await self.session.checkout(
            self.payment_method,
            tax_amount=self.tax_amount,
            shipping_address=self.shipping_address,
        )
        if outcome.receipt is not None and not outcome.stale:
            self._reset_checkout_fields()
        self._apply(outcome)

    def action_cancel_order(self) -> None:
        if self._modal_open():
            return
        self.run_worker(self._cancel_order(), group="cancel")

    async def _cancel_order(self) -> None:
        outcome = await self.session.cancel_order()
        self._reset_checkout_fields()
        self._apply(outcome)

    def action_reload(self) -> None:
        self.system_status = "Reloading..."
        self._refresh_status_bar()
        self.run_worker(self._load(), exclusive=True, group="load")

    # -- intents ---------------------------------------------------------

    def _start_search(self) -> None:
        self.focus_pane = "catalog"
        self.input_state = "active"
        self.search_query = ""
        self.product_index = 0
        self._refresh_all()

    def _cycle_area(self) -> None:
        areas = self.session.areas
        if not areas:
            return
        if self.area_index is None:
            self.area_index = 0
        elif self.area_index + 1 >= len(areas):
            self.area_index = None
        else:
            self.area_index += 1
        self.table_index = 0
        self._refresh_tables()

    def _cycle_category(self) -> None:
        categories = self.session.active_categories()
        if not categories:
            return
        if self.category_index is None:
            self.category_index = 0
        elif self.category_index + 1 >= len(categories):
            self.category_index = None
        else:
            self.category_index += 1
        self.product_index = 0
        self._refresh_catalog()

    def _cycle_payment_method(self) -> None:
        methods = list(PAYMENT_METHODS)
        self.payment_method = methods[(methods.index(self.payment_method) + 1) % len(methods)]
        self._refresh_order()

    def _reset_checkout_fields(self) -> None:
        self.line_index = 0
        self.tax_amount = Decimal("0")
        self.shipping_address = ""

    def _edit_line_quantity(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        modal = EntryModal(
            "Quantity",
            f"New quantity for {line.name}",
            value=str(line.quantity),
            digits_only=True,
            max_length=2,
            validator=validate_quantity,
        )
        self.push_screen(modal, lambda value: self._on_quantity_entered(line, value))

    def _on_quantity_entered(self, line: CartLine, value: str | None) -> None:
        if value is None:
            return
        self._apply(self.session.set_quantity(line.key, int(value)))

    def _edit_tax(self) -> None:
        modal = EntryModal(
            "Tax",
            "Tax amount added on top of the order total",
            value=str(int(self.tax_amount)) if self.tax_amount else "",
            digits_only=True,
            max_length=9,
        )
        self.push_screen(modal, self._on_tax_entered)

    def _on_tax_entered(self, value: str | None) -> None:
        if value is None:
            return
        self.tax_amount = Decimal(value or "0")
        self._refresh_order()

    def _edit_shipping_address(self) -> None:
        modal = EntryModal("Delivery address", "Leave empty for dine-in", value=self.shipping_address)
        self.push_screen(modal, self._on_shipping_address_entered)

    def _on_shipping_address_entered(self, value: str | None) -> None:
        if value is None:
            return
        self.shipping_address = value
        self._refresh_order()

    def _open_status_menu(self) -> None:
        table = self._highlighted_table()
        if table is None:
            return
        self.push_screen(StatusModal(table), lambda status: self._on_status_chosen(table, status))

    def _on_status_chosen(self, table: Table, status: TableStatus | None) -> None:
        if status is None:
            return
        self.run_worker(self._change_status(table.id, status), group="status")

    async def _change_status(self, table_id: int, status: TableStatus) -> None:
        self._apply(await self.session.change_table_status(table_id, status))

    def _on_variant_chosen(self, product: Product, choice: VariantChoice | None) -> None:
        if choice is None:
            return
        variant_id, quantity = choice
        outcome = self.session.add_product(product.id, variant_id, quantity)
        if outcome.ok:
            self.line_index = len(outcome.state.cart.lines) - 1
        self._apply(outcome)

    def _adjust_selected_line(self, delta: int) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._apply(self.session.update_quantity(line.key, delta))

    def _remove_selected_line(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._apply(self.session.remove_item(line.key))

    # -- selection helpers -----------------------------------------------

    def _current_area_id(self) -> int | None:
        if self.area_index is None or self.area_index >= len(self.session.areas):
            return None
        return self.session.areas[self.area_index].id

    def _current_category_id(self) -> int | None:
        categories = self.session.active_categories()
        if self.category_index is None or self.category_index >= len(categories):
            return None
        return categories[self.category_index].id

    def _visible_tables(self) -> list[Table]:
        return self.session.tables_in_area(self._current_area_id())

    def _filtered_products(self) -> list[Product]:
        return self.session.search_products(self.search_query, self._current_category_id())

    def _highlighted_table(self) -> Table | None:
        tables = self._visible_tables()
        if not (0 <= self.table_index < len(tables)):
            return None
        return tables[self.table_index]

    def _highlighted_product(self) -> Product | None:
        results = self._filtered_products()
        if not (0 <= self.product_index < len(results)):
            return None
        return results[self.product_index]

    def _selected_line(self) -> CartLine | None:
        lines = self.session.state.cart.lines
        if not (0 <= self.line_index < len(lines)):
            return None
        return lines[self.line_index]

    # -- rendering -------------------------------------------------------

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _render_rows(self, widget: Static, rows: list[Text], selected: int | None, active: bool) -> None:
        start, end = self._window_bounds(len(rows), self._visible_rows(widget), selected)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if active and idx == selected else "  "
            lines.append(pointer)
            lines.append_text(rows[idx])
        if end < len(rows):
            lines.append("\n⋮", style="dim")
        widget.update(lines)

    def _refresh_all(self) -> None:
        try:
            self.query_one("#tables-list", Static)
        except NoMatches:
            return
        for pane in PANES:
            self.query_one(f"#{pane}-pane").set_class(pane == self.focus_pane, "active-pane")
        self._refresh_tables()
        self._refresh_catalog()
        self._refresh_order()
        self._refresh_status_bar()

    def _refresh_tables(self) -> None:
        area_id = self._current_area_id()
        area_name = "All areas"
        for area in self.session.areas:
            if area.id == area_id:
                area_name = area.name
        self.query_one("#tables-filter", Static).update(Text(f"Area: {area_name}  (A to switch)", style="dim"))

        widget = self.query_one("#tables-list", Static)
        tables = self._visible_tables()
        if not tables:
            widget.update("(no tables)")
            return
        if self.table_index >= len(tables):
            self.table_index = len(tables) - 1
        bound = self.session.state.selected_table
        rows = [format_table_label(t, bound=bound is not None and bound.id == t.id) for t in tables]
        self._render_rows(widget, rows, self.table_index, self.focus_pane == "tables")

    def _refresh_catalog(self) -> None:
        bar = self.query_one("#search-bar", Static)
        category_id = self._current_category_id()
        category_name = "All"
        for category in self.session.categories:
            if category.id == category_id:
                category_name = category.name
        if self.input_state == "normal":
            bar.update(f"{category_name}  (C category, / search)")
        else:
            bar.update(Text(f"{category_name} / search: {self.search_query}", style="bold"))

        widget = self.query_one("#results", Static)
        results = self._filtered_products()
        if not results:
            widget.update("No results")
            return
        if self.product_index >= len(results):
            self.product_index = 0
        rows = [format_product_label(p) for p in results]
        self._render_rows(widget, rows, self.product_index, self.focus_pane == "catalog")

    def _refresh_order(self) -> None:
        state = self.session.state
        header = self.query_one("#order-header", Static)
        if state.selected_table is None:
            header.update(Text("No table selected", style="dim"))
        else:
            header.update(
                Text(
                    f"Table: {state.selected_table.display_name}  "
                    f"({cart_ops.line_count(state.cart)} lines, {cart_ops.item_count(state.cart)} items)",
                    style="bold",
                )
            )

        widget = self.query_one("#order-lines", Static)
        lines = state.cart.lines
        if not lines:
            self.line_index = 0
            widget.update("(no items yet)")
        else:
            if self.line_index >= len(lines):
                self.line_index = len(lines) - 1
            rows = [format_cart_line(line) for line in lines]
            self._render_rows(widget, rows, self.line_index, self.focus_pane == "order")

        totals = Text()
        subtotal = self.session.total()
        totals.append(f"Subtotal: {format_price(subtotal)}")
        totals.append(f"\nTax: {format_price(self.tax_amount)}  (T to edit)", style="dim")
        totals.append(f"\nTotal: {format_price(subtotal + self.tax_amount)}", style="bold")
        totals.append(f"\nAddress: {self.shipping_address or '-'}  (H to edit)", style="dim")
        totals.append(f"\nPayment: {PAYMENT_METHODS[self.payment_method]}  (P to switch)", style="dim")
        totals.append("\n+/- qty  = set qty  D remove  Ctrl+S checkout  Ctrl+X cancel", style="dim")
        self.query_one("#order-totals", Static).update(totals)

    def _refresh_status_bar(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        bar.update(self.system_status or "Ready")
