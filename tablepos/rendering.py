"""Rendering helpers for tables, products and order lines."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text

from tablepos.constant import CURRENCY_SUFFIX, TABLE_STATUS_STYLES
from tablepos.models import CartLine, Product, Table, TableStatus
from tablepos.table_status import status_label


def format_price(amount: Decimal) -> str:
    """Group thousands; show decimals only when there are any."""
    if amount == amount.to_integral_value():
        return f"{int(amount):,}{CURRENCY_SUFFIX}"
    return f"{amount:,.2f}{CURRENCY_SUFFIX}"


def status_style(status: TableStatus) -> str:
    return TABLE_STATUS_STYLES[status.value]


def format_status_badge(status: TableStatus) -> Text:
    return Text(f" {status_label(status)} ", style=status_style(status))


def format_table_label(table: Table, bound: bool = False) -> Text:
    """Render a table row: name, seats, status badge and an optional note."""
    text = Text()
    text.append(table.display_name, style="bold" if bound else "")
    text.append(f"  {table.capacity} seats  ", style="dim")
    text.append_text(format_status_badge(table.status))
    if bound:
        text.append("  ● current", style="bold #5fbf72")
    if table.note:
        text.append(f"\n      {table.note}", style="dim italic")
    return text


def format_product_label(product: Product) -> Text:
    text = Text()
    if not product.is_available:
        text.append(product.name, style="dim strike")
        text.append("  sold out", style="dim")
        return text
    text.append(product.name)
    if product.variants:
        prices = sorted(v.price for v in product.variants)
        if prices[0] == prices[-1]:
            text.append(f"  {format_price(prices[0])}", style="dim")
        else:
            text.append(f"  {format_price(prices[0])} - {format_price(prices[-1])}", style="dim")
    else:
        text.append(f"  {format_price(product.price)}", style="dim")
    return text


def format_cart_line(line: CartLine) -> Text:
    """Render one order line with its quantity and line total."""
    text = Text()
    text.append(line.name or f"Product {line.product_id}")
    if line.variant_name:
        text.append(f" ({line.variant_name})", style="bold")
    text.append(f"\n      {line.quantity} x {format_price(line.unit_price)}", style="dim")
    text.append(f" = {format_price(line.line_total)}")
    return text
