from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from conftest import FakeGateway
from tablepos.errors import (
    CheckoutPending,
    EmptyOrder,
    GatewayError,
    InvalidAmount,
    NoTableSelected,
    OrderInProgress,
    ProductUnavailable,
    TableUnavailable,
)
from tablepos.models import SessionState, TableStatus
from tablepos.session import PosSession


def _loaded(gateway, **kwargs) -> PosSession:
    session = PosSession(gateway, **kwargs)
    asyncio.run(session.load())
    return session


class GatedGateway(FakeGateway):
    """Holds submit_order until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def submit_order(self, submission):
        self.entered.set()
        await self.gate.wait()
        return await super().submit_order(submission)


def test_load_populates_floor_and_catalog(gateway):
    session = PosSession(gateway)

    outcome = asyncio.run(session.load())

    assert outcome.ok
    assert outcome.message == "Loaded 4 tables, 3 products"
    assert [t.id for t in session.tables] == [1, 2, 5, 7]
    assert [t.id for t in session.tables_in_area(2)] == [7]
    assert [c.name for c in session.active_categories()] == ["Coffee"]
    assert [p.name for p in session.products_in_category(1)] == ["Espresso", "Jasmine Tea"]
    assert [p.name for p in session.search_products("  espr ")] == ["Espresso"]
    assert session.search_products("tea", category_id=2) == []


def test_load_failure_is_reported(gateway):
    gateway.fail_fetch = True
    session = PosSession(gateway)

    outcome = asyncio.run(session.load())

    assert not outcome.ok
    assert isinstance(outcome.error, GatewayError)
    assert outcome.message == "Could not reach the server"
    assert session.tables == []


def test_select_table(gateway):
    session = _loaded(gateway)

    outcome = session.select_table(1)

    assert outcome.ok
    assert outcome.message == "T1 selected"
    assert session.state.selected_table.id == 1


def test_select_occupied_table_fails_without_changing_state(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    before = session.state

    outcome = session.select_table(5)

    assert isinstance(outcome.error, TableUnavailable)
    assert outcome.message == "Table is occupied"
    assert session.state is before


def test_select_unknown_table_raises(gateway):
    session = _loaded(gateway)

    with pytest.raises(KeyError):
        session.select_table(99)


def test_add_product_without_table(gateway):
    session = _loaded(gateway)

    outcome = session.add_product(1)

    assert isinstance(outcome.error, NoTableSelected)
    assert session.state.cart.is_empty


def test_add_product_uses_default_variant_and_merges(gateway):
    session = _loaded(gateway)
    session.select_table(1)

    first = session.add_product(1)
    session.add_product(1, quantity=2)
    session.add_product(1, variant_id=11)

    assert first.message == "Espresso (S) x 1 added"
    lines = session.state.cart.lines
    assert [(l.key, l.quantity) for l in lines] == [((1, 10), 3), ((1, 11), 1)]
    assert session.total() == Decimal("110000")


def test_add_product_without_variants(gateway):
    session = _loaded(gateway)
    session.select_table(1)

    outcome = session.add_product(2)

    assert outcome.message == "Tiramisu x 1 added"
    assert session.state.cart.lines[0].key == (2, 0)


@pytest.mark.parametrize("product_id,variant_id", [(3, None), (99, None), (1, 99), (2, 10)])
def test_add_product_rejects_unavailable(gateway, product_id, variant_id):
    session = _loaded(gateway)
    session.select_table(1)

    outcome = session.add_product(product_id, variant_id)

    assert isinstance(outcome.error, ProductUnavailable)
    assert session.state.cart.is_empty


def test_quantity_edits(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)

    session.update_quantity((1, 10), -3)
    assert session.state.cart.lines[0].quantity == 1

    session.set_quantity((1, 10), 4)
    assert session.state.cart.lines[0].quantity == 4

    rejected = session.set_quantity((1, 10), 0)
    assert not rejected.ok
    assert session.state.cart.lines[0].quantity == 4

    removed = session.remove_item((1, 10))
    assert removed.message == "Item removed"
    assert session.state.cart.is_empty


def test_change_table_status_commits_after_gateway_accepts(gateway):
    session = _loaded(gateway)

    outcome = asyncio.run(session.change_table_status(2, "cleaning"))

    assert outcome.ok
    assert outcome.message == "T2 is now Cleaning"
    assert session.table(2).status is TableStatus.CLEANING
    assert gateway.updates[-1].status is TableStatus.CLEANING


def test_change_table_status_failure_keeps_local_status(gateway):
    session = _loaded(gateway)
    gateway.fail_update = True

    outcome = asyncio.run(session.change_table_status(2, TableStatus.RESERVED))

    assert isinstance(outcome.error, GatewayError)
    assert session.table(2).status is TableStatus.AVAILABLE


def test_change_to_same_status_skips_gateway(gateway):
    session = _loaded(gateway)

    outcome = asyncio.run(session.change_table_status(7, TableStatus.RESERVED))

    assert outcome.ok
    assert outcome.message == "T7 already Reserved"
    assert gateway.updates == []


def test_bound_table_snapshot_follows_status_change(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)

    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))

    assert session.state.selected_table.status is TableStatus.OCCUPIED
    assert len(session.state.cart.lines) == 1


def test_cannot_free_bound_table_with_open_order(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))

    outcome = asyncio.run(session.change_table_status(1, TableStatus.AVAILABLE))

    assert isinstance(outcome.error, OrderInProgress)
    assert session.table(1).status is TableStatus.OCCUPIED


def test_checkout_success_releases_table(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1, quantity=2)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))

    outcome = asyncio.run(session.checkout(payment_method="transfer"))

    assert outcome.ok
    assert outcome.receipt.order_id == "order-0001"
    assert outcome.message == "Order order-00 placed"
    assert session.state == SessionState()
    assert session.table(1).status is TableStatus.AVAILABLE
    submission = gateway.submissions[0]
    assert submission.table_id == 1
    assert submission.total == Decimal("50000")
    assert submission.payment_method == "transfer"


def test_checkout_keeps_table_when_release_disabled(gateway):
    session = _loaded(gateway, release_table_on_close=False)
    session.select_table(1)
    session.add_product(1)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))

    asyncio.run(session.checkout())

    assert session.table(1).status is TableStatus.OCCUPIED


def test_checkout_reports_failed_release_but_keeps_order_closed(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))
    gateway.fail_update = True

    outcome = asyncio.run(session.checkout())

    assert isinstance(outcome.error, GatewayError)
    assert outcome.receipt is not None
    assert session.state == SessionState()


def test_gateway_failure_leaves_order_intact(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1, quantity=2)
    before = session.state
    gateway.fail_submit = True

    outcome = asyncio.run(session.checkout())

    assert isinstance(outcome.error, GatewayError)
    assert outcome.message == "The server rejected the request"
    assert session.state is before
    assert not session.checkout_pending


def test_empty_checkout_is_rejected(gateway):
    session = _loaded(gateway)
    session.select_table(1)

    outcome = asyncio.run(session.checkout())

    assert isinstance(outcome.error, EmptyOrder)
    assert gateway.submissions == []


def test_abandoned_checkout_response_is_discarded(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    before = session.state
    gateway.on_submit = session.abandon_checkout

    outcome = asyncio.run(session.checkout())

    assert outcome.stale
    assert outcome.receipt is not None
    assert session.state is before
    assert len(gateway.submissions) == 1


def test_edits_during_checkout_are_refused_and_order_is_sent_once(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    attempts = []

    def edit_while_pending():
        attempts.append(session.add_product(1, variant_id=11))
        attempts.append(session.update_quantity((1, 10), 2))
        attempts.append(session.set_quantity((1, 10), 5))
        attempts.append(session.remove_item((1, 10)))
        attempts.append(session.select_table(2))

    gateway.on_submit = edit_while_pending

    outcome = asyncio.run(session.checkout())
    again = asyncio.run(session.checkout())

    assert all(isinstance(a.error, CheckoutPending) for a in attempts)
    assert outcome.ok and not outcome.stale
    assert session.state == SessionState()
    assert isinstance(again.error, EmptyOrder)
    assert len(gateway.submissions) == 1
    assert [(l.key, l.quantity) for l in gateway.submissions[0].lines] == [((1, 10), 1)]


def test_status_change_during_checkout_is_refused():
    gateway = GatedGateway()
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)

    async def scenario():
        pending = asyncio.create_task(session.checkout())
        await gateway.entered.wait()
        refused = await session.change_table_status(1, TableStatus.OCCUPIED)
        gateway.gate.set()
        return refused, await pending

    refused, outcome = asyncio.run(scenario())

    assert isinstance(refused.error, CheckoutPending)
    assert gateway.updates == []
    assert outcome.ok
    assert len(gateway.submissions) == 1


def test_checkout_sends_tax_and_shipping_address(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1, quantity=2)

    outcome = asyncio.run(session.checkout(tax_amount=Decimal("5000"), shipping_address="  12 Hang Bac  "))

    assert outcome.ok
    submission = gateway.submissions[0]
    assert submission.total == Decimal("50000")
    assert submission.tax_amount == Decimal("5000")
    assert submission.amount_due == Decimal("55000")
    assert submission.shipping_address == "12 Hang Bac"


def test_negative_tax_is_rejected_before_the_gateway(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    before = session.state

    outcome = asyncio.run(session.checkout(tax_amount=Decimal("-1")))

    assert isinstance(outcome.error, InvalidAmount)
    assert session.state is before
    assert gateway.submissions == []
    assert not session.checkout_pending


def test_second_checkout_while_pending_is_rejected():
    gateway = GatedGateway()
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)

    async def scenario():
        first = asyncio.create_task(session.checkout())
        await gateway.entered.wait()
        second = await session.checkout()
        gateway.gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert isinstance(second.error, CheckoutPending)
    assert first.ok
    assert len(gateway.submissions) == 1


def test_cancel_order_releases_table(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))

    outcome = asyncio.run(session.cancel_order())

    assert outcome.ok
    assert outcome.message == "Order cancelled"
    assert session.state == SessionState()
    assert session.table(1).status is TableStatus.AVAILABLE


def test_cancel_order_release_failure_still_cancels(gateway):
    session = _loaded(gateway)
    session.select_table(1)
    session.add_product(1)
    asyncio.run(session.change_table_status(1, TableStatus.OCCUPIED))
    gateway.fail_update = True

    outcome = asyncio.run(session.cancel_order())

    assert isinstance(outcome.error, GatewayError)
    assert outcome.message == "Order cancelled, but the table status could not be updated"
    assert session.state == SessionState()


def test_cancel_with_nothing_bound(gateway):
    session = _loaded(gateway)

    outcome = asyncio.run(session.cancel_order())

    assert outcome.ok
    assert gateway.updates == []
