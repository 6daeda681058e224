from __future__ import annotations

import asyncio
import sqlite3
import threading
from decimal import Decimal

import pytest

from conftest import make_line
from tablepos.errors import GatewayError
from tablepos.models import OrderSubmission, Table, TableStatus
from tablepos.persistence import LocalGateway
from tablepos.table_status import request_transition


@pytest.fixture()
def local(tmp_path) -> LocalGateway:
    return LocalGateway(str(tmp_path / "nested" / "pos.db"))


def test_seeds_demo_floor_on_first_use(local):
    tables = asyncio.run(local.fetch_tables())
    areas = asyncio.run(local.fetch_areas())

    assert [t.id for t in tables] == [1, 2, 3, 4, 5, 6, 7]
    assert all(t.status is TableStatus.AVAILABLE for t in tables)
    assert tables[2].note == "Window seat"
    assert [a.name for a in areas] == ["Indoor", "Outdoor", "VIP"]


def test_bootstrap_does_not_reseed(local):
    local.bootstrap_schema()
    table = asyncio.run(local.fetch_tables())[0]
    asyncio.run(local.update_table(request_transition(table, TableStatus.OCCUPIED)))

    local.bootstrap_schema()

    assert asyncio.run(local.fetch_tables())[0].status is TableStatus.OCCUPIED


def test_update_table_persists_status_and_meta(local):
    table = asyncio.run(local.fetch_tables())[1]
    moved = request_transition(table, TableStatus.CLEANING)

    result = asyncio.run(local.update_table(moved))
    reread = LocalGateway(local.db_path)

    assert result == moved
    fresh = asyncio.run(reread.fetch_tables())[1]
    assert fresh.status is TableStatus.CLEANING
    assert fresh.meta == {}


def test_update_unknown_table_is_not_found(local):
    ghost = Table(id=404, area_id=1, capacity=2, status=TableStatus.RESERVED)

    with pytest.raises(GatewayError) as excinfo:
        asyncio.run(local.update_table(ghost))

    assert excinfo.value.status_code == 404


def test_submit_order_saves_order_and_lines(local):
    submission = OrderSubmission(
        table_id=2,
        lines=(make_line(1, 10, qty=2, price="25000", name="Espresso"), make_line(6, None, qty=1, price="55000")),
        total=Decimal("105000"),
        payment_method="cash",
        note="no sugar",
    )

    receipt = asyncio.run(local.submit_order(submission))

    conn = sqlite3.connect(local.db_path)
    try:
        order = conn.execute(
            "SELECT table_id, total_amount, payment_method, note, status FROM orders WHERE id = ?",
            (receipt.order_id,),
        ).fetchone()
        items = conn.execute(
            "SELECT line_index, product_id, variant_id, product_name, quantity, unit_price "
            "FROM order_items WHERE order_id = ? ORDER BY line_index",
            (receipt.order_id,),
        ).fetchall()
    finally:
        conn.close()

    assert order == (2, "105000", "cash", "no sugar", "PLACED")
    assert items == [
        (0, 1, 10, "Espresso", 2, "25000"),
        (1, 6, None, "Product 6", 1, "55000"),
    ]


def test_submit_empty_order_is_rejected(local):
    submission = OrderSubmission(table_id=1, lines=(), total=Decimal("0"))

    with pytest.raises(GatewayError) as excinfo:
        asyncio.run(local.submit_order(submission))

    assert excinfo.value.status_code == 422


def test_catalog_comes_from_static_data(local):
    products = asyncio.run(local.fetch_products())
    categories = asyncio.run(local.fetch_categories())

    assert [c.name for c in categories] == ["Coffee", "Tea", "Cakes"]
    espresso = products[0]
    assert espresso.default_variant().id == 10
    assert espresso.variant(12).price == Decimal("35000")
    assert not next(p for p in products if p.name == "Jasmine Tea").is_available


def test_submit_order_stores_tax_and_shipping_address(local):
    submission = OrderSubmission(
        table_id=3,
        lines=(make_line(1, 10, qty=2, price="25000"),),
        total=Decimal("50000"),
        tax_amount=Decimal("5000"),
        shipping_address="12 Hang Bac",
    )

    receipt = asyncio.run(local.submit_order(submission))

    conn = sqlite3.connect(local.db_path)
    try:
        row = conn.execute(
            "SELECT total_amount, tax_amount, shipping_address FROM orders WHERE id = ?",
            (receipt.order_id,),
        ).fetchone()
    finally:
        conn.close()

    assert row == ("55000", "5000", "12 Hang Bac")


def test_bootstrap_adds_missing_order_columns(tmp_path):
    db_path = tmp_path / "old.db"
    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute(
            """
            CREATE TABLE orders (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                table_id INTEGER NOT NULL,
                total_amount TEXT NOT NULL,
                payment_method TEXT NOT NULL,
                note TEXT,
                status TEXT NOT NULL
            )
            """
        )
        conn.execute(
            "INSERT INTO orders VALUES ('old', '2024-01-01T00:00:00+00:00', 1, '30000', 'cash', NULL, 'PLACED')"
        )
    conn.close()

    local = LocalGateway(str(db_path))
    local.bootstrap_schema()
    asyncio.run(
        local.submit_order(
            OrderSubmission(table_id=1, lines=(make_line(),), total=Decimal("25000"), shipping_address="Quay 2")
        )
    )

    conn = sqlite3.connect(db_path)
    try:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(orders)")}
        rows = conn.execute("SELECT id, tax_amount, shipping_address FROM orders ORDER BY created_at").fetchall()
    finally:
        conn.close()

    assert {"tax_amount", "shipping_address"} <= columns
    assert rows[0] == ("old", "0", None)
    assert rows[1][1:] == ("0", "Quay 2")


def test_calls_run_off_the_event_loop_thread(local, monkeypatch):
    seen = []
    original = local._read_tables

    def tracking():
        seen.append(threading.current_thread())
        return original()

    monkeypatch.setattr(local, "_read_tables", tracking)

    async def scenario():
        loop_thread = threading.current_thread()
        tables = await local.fetch_tables()
        return loop_thread, tables

    loop_thread, tables = asyncio.run(scenario())

    assert len(tables) == 7
    assert seen and seen[0] is not loop_thread
