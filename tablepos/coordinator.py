"""Session transitions composing table selection with the cart.

Each operation takes the current ``SessionState`` and returns the next one, or
raises a ``PosError`` subclass leaving the caller's state as it was. Only
``checkout`` touches the network.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from tablepos import cart as cart_ops
from tablepos.constant import PAYMENT_METHODS
from tablepos.errors import EmptyOrder, InvalidAmount, NoTableSelected, OrderInProgress, TableUnavailable
from tablepos.models import CartLine, LineKey, OrderReceipt, OrderSubmission, SessionState, Table, TableStatus

if TYPE_CHECKING:
    from tablepos.gateway import BackendGateway

logger = logging.getLogger(__name__)

_RELEASING_STATUSES = frozenset({TableStatus.AVAILABLE, TableStatus.CLEANING, TableStatus.MAINTENANCE})


def select_table(state: SessionState, table: Table) -> SessionState:
    """Bind ``table`` to the session, keeping any cart already built.

    An occupied table can only be selected when it is the table already bound,
    so an order in progress can always be resumed.
    """
    bound = state.selected_table
    if table.status is TableStatus.OCCUPIED and (bound is None or bound.id != table.id):
        raise TableUnavailable(f"table_id={table.id}")
    return SessionState(selected_table=table, cart=state.cart)


def add_to_order(state: SessionState, lines: Iterable[CartLine]) -> SessionState:
    if state.selected_table is None:
        raise NoTableSelected()
    return SessionState(selected_table=state.selected_table, cart=cart_ops.add_lines(state.cart, lines))


def update_quantity(state: SessionState, key: LineKey, delta: int) -> SessionState:
    return SessionState(selected_table=state.selected_table, cart=cart_ops.adjust_quantity(state.cart, key, delta))


def set_quantity(state: SessionState, key: LineKey, quantity: int) -> SessionState:
    return SessionState(selected_table=state.selected_table, cart=cart_ops.set_quantity(state.cart, key, quantity))


def remove_item(state: SessionState, key: LineKey) -> SessionState:
    return SessionState(selected_table=state.selected_table, cart=cart_ops.remove_line(state.cart, key))


def cancel_order(state: SessionState) -> SessionState:
    """Drop the cart and unbind the table. Never fails."""
    return SessionState(selected_table=None, cart=cart_ops.clear(state.cart))


def guard_status_change(state: SessionState, table: Table, new_status: TableStatus) -> None:
    """Refuse to free the bound table while its order still has lines."""
    bound = state.selected_table
    if bound is None or bound.id != table.id or state.cart.is_empty:
        return
    if new_status in _RELEASING_STATUSES:
        raise OrderInProgress(f"table_id={table.id} status={new_status.value}")


def build_submission(
    state: SessionState,
    payment_method: str = "cash",
    note: str | None = None,
    tax_amount: Decimal = Decimal("0"),
    shipping_address: str | None = None,
) -> OrderSubmission:
    """Validate ``state`` for checkout and build the gateway payload."""
    if state.cart.is_empty:
        raise EmptyOrder()
    if state.selected_table is None:
        raise NoTableSelected()
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Unsupported payment method: {payment_method!r}")
    if not cart_ops.is_valid_amount(tax_amount):
        raise InvalidAmount(f"tax_amount={tax_amount}")
    return OrderSubmission(
        table_id=state.selected_table.id,
        lines=state.cart.lines,
        total=cart_ops.total(state.cart),
        payment_method=payment_method,
        note=note or None,
        tax_amount=tax_amount,
        shipping_address=(shipping_address or "").strip() or None,
    )


async def checkout(
    state: SessionState,
    gateway: BackendGateway,
    payment_method: str = "cash",
    note: str | None = None,
    tax_amount: Decimal = Decimal("0"),
    shipping_address: str | None = None,
) -> tuple[SessionState, OrderReceipt]:
    """Submit the order and return the reset session once it is accepted.

    Local validation runs first, so an empty cart or missing table never
    reaches the gateway. A ``GatewayError`` propagates unchanged; nothing is
    cleared until the gateway has answered with a receipt.
    """
    submission = build_submission(
        state,
        payment_method=payment_method,
        note=note,
        tax_amount=tax_amount,
        shipping_address=shipping_address,
    )
    logger.info(
        "checkout_submit table_id=%s lines=%s total=%s tax=%s method=%s",
        submission.table_id,
        len(submission.lines),
        submission.total,
        submission.tax_amount,
        submission.payment_method,
    )
    receipt = await gateway.submit_order(submission)
    logger.info("checkout_accepted table_id=%s order_id=%s", submission.table_id, receipt.order_id)
    return SessionState(), receipt
