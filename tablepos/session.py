"""The operator session: one current SessionState plus floor and catalog data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from tablepos import cart as cart_ops
from tablepos import coordinator
from tablepos.errors import CheckoutPending, GatewayError, PosError, ProductUnavailable, user_message
from tablepos.models import (
    Area,
    CartLine,
    Category,
    LineKey,
    OrderReceipt,
    Product,
    SessionState,
    Table,
    TableStatus,
)
from tablepos.table_status import coerce_status, request_transition, status_label

if TYPE_CHECKING:
    from tablepos.gateway import BackendGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of one operator action, ready for the view to bind to.

    ``state`` is always the session's current snapshot. When ``error`` is set
    the action did not take effect, except for the table release that follows a
    checkout or cancel, which is reported here after the order itself was
    committed.
    """

    state: SessionState
    error: PosError | None = None
    message: str = ""
    receipt: OrderReceipt | None = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class PosSession:
    """Feeds each action the previous state and keeps the one it returns."""

    def __init__(
        self,
        gateway: BackendGateway,
        release_table_on_close: bool = True,
        state: SessionState | None = None,
    ) -> None:
        self.gateway = gateway
        self.release_table_on_close = release_table_on_close
        self.state = state or SessionState()
        self.tables: list[Table] = []
        self.areas: list[Area] = []
        self.categories: list[Category] = []
        self.products: list[Product] = []
        self._checkout_seq = 0
        self._active_checkout: int | None = None

    # -- bookkeeping -----------------------------------------------------

    def _commit(self, state: SessionState, message: str = "") -> Outcome:
        self.state = state
        return Outcome(state=state, message=message)

    def _fail(self, error: PosError) -> Outcome:
        logger.info("action_rejected kind=%s detail=%r", error.kind, error.detail)
        return Outcome(state=self.state, error=error, message=user_message(error))

    def _pending_checkout(self) -> Outcome | None:
        """Refuse order and table edits while a checkout is waiting on the gateway."""
        if self._active_checkout is None:
            return None
        return self._fail(CheckoutPending())

    def _replace_table(self, table: Table) -> None:
        self.tables = [table if t.id == table.id else t for t in self.tables]
        bound = self.state.selected_table
        if bound is not None and bound.id == table.id:
            self._commit(SessionState(selected_table=table, cart=self.state.cart))

    def table(self, table_id: int) -> Table | None:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def _require_table(self, table_id: int) -> Table:
        table = self.table(table_id)
        if table is None:
            raise KeyError(f"Unknown table id {table_id}")
        return table

    def product(self, product_id: int) -> Product | None:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    @property
    def checkout_pending(self) -> bool:
        return self._active_checkout is not None

    def total(self) -> Decimal:
        return cart_ops.total(self.state.cart)

    # -- loading and filters ---------------------------------------------

    async def load(self) -> Outcome:
        """Fetch tables, areas and catalog from the gateway."""
        try:
            tables = await self.gateway.fetch_tables()
            areas = await self.gateway.fetch_areas()
            categories = await self.gateway.fetch_categories()
            products = await self.gateway.fetch_products()
        except GatewayError as exc:
            return self._fail(exc)

        self.tables = tables
        self.areas = areas
        self.categories = categories
        self.products = products
        logger.info("session_loaded tables=%s products=%s", len(tables), len(products))

        bound = self.state.selected_table
        if bound is not None and self._active_checkout is None:
            fresh = self.table(bound.id)
            if fresh is not None and fresh != bound:
                self._commit(SessionState(selected_table=fresh, cart=self.state.cart))
        return Outcome(state=self.state, message=f"Loaded {len(tables)} tables, {len(products)} products")

    def tables_in_area(self, area_id: int | None = None) -> list[Table]:
        if area_id is None:
            return list(self.tables)
        return [t for t in self.tables if t.area_id == area_id]

    def active_categories(self) -> list[Category]:
        return [c for c in self.categories if c.is_active]

    def products_in_category(self, category_id: int | None = None) -> list[Product]:
        if category_id is None:
            return list(self.products)
        return [p for p in self.products if p.category_id == category_id]

    def search_products(self, query: str, category_id: int | None = None) -> list[Product]:
        source = self.products_in_category(category_id)
        q = query.strip().lower()
        if not q:
            return source
        return [p for p in source if q in p.name.lower()]

    # -- order building --------------------------------------------------

    def select_table(self, table_id: int) -> Outcome:
        table = self._require_table(table_id)
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        try:
            state = coordinator.select_table(self.state, table)
        except PosError as exc:
            return self._fail(exc)
        logger.info("table_selected table_id=%s lines=%s", table.id, len(state.cart.lines))
        return self._commit(state, f"{table.display_name} selected")

    def add_to_order(self, lines: Iterable[CartLine]) -> Outcome:
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        try:
            state = coordinator.add_to_order(self.state, lines)
        except PosError as exc:
            return self._fail(exc)
        return self._commit(state, "Added to order")

    def line_for_product(self, product_id: int, variant_id: int | None = None, quantity: int = 1) -> CartLine:
        """Price a catalog product at its current price.

        With no ``variant_id`` the product's default variant is used, if it has
        any variants at all.
        """
        product = self.product(product_id)
        if product is None or not product.is_available:
            raise ProductUnavailable(f"product_id={product_id}")
        if not product.variants:
            if variant_id is not None:
                raise ProductUnavailable(f"product_id={product_id} variant_id={variant_id}")
            return CartLine(product.id, None, product.price, quantity, name=product.name)

        variant = product.default_variant() if variant_id is None else product.variant(variant_id)
        if variant is None:
            raise ProductUnavailable(f"product_id={product_id} variant_id={variant_id}")
        return CartLine(product.id, variant.id, variant.price, quantity, name=product.name, variant_name=variant.name)

    def add_product(self, product_id: int, variant_id: int | None = None, quantity: int = 1) -> Outcome:
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        try:
            line = self.line_for_product(product_id, variant_id, quantity)
        except PosError as exc:
            return self._fail(exc)
        outcome = self.add_to_order([line])
        if not outcome.ok:
            return outcome
        label = f"{line.name} ({line.variant_name})" if line.variant_name else line.name
        return Outcome(state=outcome.state, message=f"{label} x {quantity} added")

    def update_quantity(self, key: LineKey, delta: int) -> Outcome:
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        return self._commit(coordinator.update_quantity(self.state, key, delta))

    def set_quantity(self, key: LineKey, quantity: int) -> Outcome:
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        try:
            state = coordinator.set_quantity(self.state, key, quantity)
        except PosError as exc:
            return self._fail(exc)
        return self._commit(state)

    def remove_item(self, key: LineKey) -> Outcome:
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        return self._commit(coordinator.remove_item(self.state, key), "Item removed")

    # -- table status ----------------------------------------------------

    async def change_table_status(self, table_id: int, status: TableStatus | str) -> Outcome:
        """Persist a status change; local data changes only once it is accepted."""
        table = self._require_table(table_id)
        new_status = coerce_status(status)
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked
        if new_status is table.status:
            return Outcome(state=self.state, message=f"{table.display_name} already {status_label(new_status)}")
        try:
            coordinator.guard_status_change(self.state, table, new_status)
            persisted = await self.gateway.update_table(request_transition(table, new_status))
        except PosError as exc:
            return self._fail(exc)

        self._replace_table(persisted)
        logger.info(
            "table_status_changed table_id=%s from=%s to=%s",
            table.id,
            table.status.value,
            persisted.status.value,
        )
        return Outcome(state=self.state, message=f"{table.display_name} is now {status_label(persisted.status)}")

    async def _release_table(self, table: Table | None) -> GatewayError | None:
        if table is None or not self.release_table_on_close:
            return None
        current = self.table(table.id) or table
        if current.status is not TableStatus.OCCUPIED:
            return None
        try:
            persisted = await self.gateway.update_table(request_transition(current, TableStatus.AVAILABLE))
        except GatewayError as exc:
            logger.warning("table_release_failed table_id=%s detail=%r", table.id, exc.detail)
            return exc
        self._replace_table(persisted)
        return None

    # -- closing the order -----------------------------------------------

    async def cancel_order(self) -> Outcome:
        """Drop the order and unbind the table; then free the table if occupied."""
        bound = self.state.selected_table
        self._active_checkout = None
        outcome = self._commit(coordinator.cancel_order(self.state), "Order cancelled")
        logger.info("order_cancelled table_id=%s", bound.id if bound else None)

        release_error = await self._release_table(bound)
        if release_error is not None:
            return Outcome(
                state=self.state,
                error=release_error,
                message="Order cancelled, but the table status could not be updated",
            )
        return outcome

    def abandon_checkout(self) -> None:
        """Forget the checkout in flight; its response will be discarded."""
        if self._active_checkout is not None:
            logger.info("checkout_abandoned seq=%s", self._active_checkout)
        self._active_checkout = None

    async def checkout(
        self,
        payment_method: str = "cash",
        note: str | None = None,
        tax_amount: Decimal = Decimal("0"),
        shipping_address: str | None = None,
    ) -> Outcome:
        """Submit the current order.

        Order and table edits are refused until the gateway answers, so an
        accepted order always matches the cart it clears. Only
        ``abandon_checkout`` or ``cancel_order`` can orphan the response, which
        is then marked ``stale`` and leaves the current state alone.
        """
        blocked = self._pending_checkout()
        if blocked is not None:
            return blocked

        self._checkout_seq += 1
        seq = self._checkout_seq
        snapshot = self.state
        self._active_checkout = seq
        try:
            new_state, receipt = await coordinator.checkout(
                snapshot,
                self.gateway,
                payment_method=payment_method,
                note=note,
                tax_amount=tax_amount,
                shipping_address=shipping_address,
            )
        except PosError as exc:
            if self._active_checkout == seq:
                self._active_checkout = None
                return self._fail(exc)
            logger.info("checkout_failure_discarded seq=%s kind=%s", seq, exc.kind)
            return Outcome(state=self.state, error=exc, message=user_message(exc), stale=True)
        except BaseException:
            if self._active_checkout == seq:
                self._active_checkout = None
            raise

        if self._active_checkout != seq:
            logger.warning("checkout_response_discarded seq=%s order_id=%s", seq, receipt.order_id)
            return Outcome(
                state=self.state,
                message=f"Order {receipt.order_id[:8]} placed after the checkout was abandoned",
                receipt=receipt,
                stale=True,
            )

        self._active_checkout = None
        self._commit(new_state)
        release_error = await self._release_table(snapshot.selected_table)
        if release_error is not None:
            return Outcome(
                state=self.state,
                error=release_error,
                message=f"Order {receipt.order_id[:8]} placed, but the table status could not be updated",
                receipt=receipt,
            )
        return Outcome(state=self.state, message=f"Order {receipt.order_id[:8]} placed", receipt=receipt)
