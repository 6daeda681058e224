"""Pure cart transformations.

Every function takes a ``Cart`` and returns a new one; inputs are never
modified. Lines are identified by ``(product_id, variant_id)`` and keep their
position when merged or updated.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from tablepos.errors import InvalidAmount, InvalidQuantity
from tablepos.models import Cart, CartLine, LineKey


def is_valid_amount(amount: Decimal) -> bool:
    """Finite and not negative."""
    return amount.is_finite() and amount >= 0


def add_lines(cart: Cart, incoming: Iterable[CartLine]) -> Cart:
    """Merge ``incoming`` into ``cart`` left to right.

    A line whose key is already present adds its quantity to the existing line,
    which keeps the unit price captured when it was first added. New keys are
    appended. Raises ``InvalidQuantity`` if any incoming quantity is not
    positive, or ``InvalidAmount`` if any unit price is negative or not finite,
    before merging anything.
    """
    batch = list(incoming)
    for line in batch:
        if line.quantity <= 0:
            raise InvalidQuantity(f"quantity={line.quantity} product_id={line.product_id}")
        if not is_valid_amount(line.unit_price):
            raise InvalidAmount(f"unit_price={line.unit_price} product_id={line.product_id}")

    lines = list(cart.lines)
    positions = {line.key: idx for idx, line in enumerate(lines)}
    for line in batch:
        idx = positions.get(line.key)
        if idx is None:
            positions[line.key] = len(lines)
            lines.append(line)
            continue
        existing = lines[idx]
        lines[idx] = existing.with_quantity(existing.quantity + line.quantity)
    return Cart(lines=tuple(lines))


def _replace_line(cart: Cart, key: LineKey, quantity: int) -> Cart:
    return Cart(lines=tuple(line.with_quantity(quantity) if line.key == key else line for line in cart.lines))


def adjust_quantity(cart: Cart, key: LineKey, delta: int) -> Cart:
    """Shift a line's quantity by ``delta``, never below 1."""
    line = cart.find(key)
    if line is None:
        return cart
    return _replace_line(cart, key, max(1, line.quantity + delta))


def set_quantity(cart: Cart, key: LineKey, quantity: int) -> Cart:
    """Set a line's quantity outright."""
    if quantity <= 0:
        raise InvalidQuantity(f"quantity={quantity}")
    if cart.find(key) is None:
        return cart
    return _replace_line(cart, key, quantity)


def remove_line(cart: Cart, key: LineKey) -> Cart:
    if cart.find(key) is None:
        return cart
    return Cart(lines=tuple(line for line in cart.lines if line.key != key))


def clear(cart: Cart) -> Cart:
    return Cart()


def total(cart: Cart) -> Decimal:
    return sum((line.line_total for line in cart.lines), Decimal("0"))


def line_count(cart: Cart) -> int:
    return len(cart.lines)


def item_count(cart: Cart) -> int:
    return sum(line.quantity for line in cart.lines)
