"""SQLite-backed gateway for running without the REST backend."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from tablepos.config import DB_PATH
from tablepos.constant import DEMO_AREAS, DEMO_TABLES
from tablepos.data import DEMO_CATEGORY_LIST, DEMO_PRODUCT_LIST, table_from_record, table_to_record
from tablepos.errors import GatewayError
from tablepos.models import Area, Category, OrderReceipt, OrderSubmission, Product, Table

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalGateway:
    """Tables and orders in a local SQLite file; catalog from static data."""

    def __init__(
        self,
        db_path: str = DB_PATH,
        products: list[Product] | None = None,
        categories: list[Category] | None = None,
    ) -> None:
        self.db_path = db_path
        self.products = list(DEMO_PRODUCT_LIST if products is None else products)
        self.categories = list(DEMO_CATEGORY_LIST if categories is None else categories)
        self._bootstrapped = False
        self._schema_lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        db_file = Path(self.db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(db_file)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def bootstrap_schema(self) -> None:
        """Create the schema and seed demo tables if the file is new."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS areas (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS pos_tables (
                    id INTEGER PRIMARY KEY,
                    area_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    capacity INTEGER NOT NULL,
                    status INTEGER NOT NULL,
                    notes TEXT,
                    meta TEXT NOT NULL DEFAULT '{}',
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS orders (
                    id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    table_id INTEGER NOT NULL,
                    total_amount TEXT NOT NULL,
                    tax_amount TEXT NOT NULL DEFAULT '0',
                    payment_method TEXT NOT NULL,
                    note TEXT,
                    shipping_address TEXT,
                    status TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS order_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id TEXT NOT NULL,
                    line_index INTEGER NOT NULL,
                    product_id INTEGER NOT NULL,
                    variant_id INTEGER,
                    product_name TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    unit_price TEXT NOT NULL,
                    FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_order_items_order_id_line
                    ON order_items(order_id, line_index);
                """
            )
            order_columns = {row[1] for row in conn.execute("PRAGMA table_info(orders)")}
            if "tax_amount" not in order_columns:
                conn.execute("ALTER TABLE orders ADD COLUMN tax_amount TEXT NOT NULL DEFAULT '0'")
            if "shipping_address" not in order_columns:
                conn.execute("ALTER TABLE orders ADD COLUMN shipping_address TEXT")
            if conn.execute("SELECT COUNT(*) FROM areas").fetchone()[0] == 0:
                conn.executemany(
                    "INSERT INTO areas (id, name) VALUES (?, ?)",
                    [(area["id"], area["name"]) for area in DEMO_AREAS],
                )
            if conn.execute("SELECT COUNT(*) FROM pos_tables").fetchone()[0] == 0:
                conn.executemany(
                    """
                    INSERT INTO pos_tables (id, area_id, name, capacity, status, notes)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (t["id"], t["area_id"], t["name"], t["capacity"], t["status"], t["note"])
                        for t in DEMO_TABLES
                    ],
                )
        self._bootstrapped = True

    def _ensure_schema(self) -> None:
        with self._schema_lock:
            if not self._bootstrapped:
                self.bootstrap_schema()

    async def aclose(self) -> None:
        return None

    # sqlite3 blocks, so each call runs in a worker thread on its own connection.

    def _read_tables(self) -> list[Table]:
        try:
            self._ensure_schema()
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT id, area_id, name, capacity, status, notes, meta FROM pos_tables ORDER BY id"
                ).fetchall()
        except sqlite3.Error as exc:
            raise GatewayError(f"fetch_tables failed: {exc}") from exc
        return [
            table_from_record(
                {
                    "id": row[0],
                    "area_id": row[1],
                    "name": row[2],
                    "capacity": row[3],
                    "status": row[4],
                    "notes": row[5],
                    "meta": json.loads(row[6] or "{}"),
                }
            )
            for row in rows
        ]

    def _read_areas(self) -> list[Area]:
        try:
            self._ensure_schema()
            with self._connect() as conn:
                rows = conn.execute("SELECT id, name FROM areas ORDER BY id").fetchall()
        except sqlite3.Error as exc:
            raise GatewayError(f"fetch_areas failed: {exc}") from exc
        return [Area(id=row[0], name=row[1]) for row in rows]

    def _write_table(self, table: Table) -> Table:
        record = table_to_record(table)
        try:
            self._ensure_schema()
            with self._connect() as conn:
                with conn:
                    cur = conn.execute(
                        """
                        UPDATE pos_tables
                        SET area_id = ?, name = ?, capacity = ?, status = ?, notes = ?, meta = ?, updated_at = ?
                        WHERE id = ?
                        """,
                        (
                            record["areaId"],
                            record["name"],
                            record["capacity"],
                            record["status"],
                            record["notes"],
                            json.dumps(record["meta"]),
                            _utc_now_iso(),
                            table.id,
                        ),
                    )
        except sqlite3.Error as exc:
            raise GatewayError(f"update_table failed: {exc}") from exc
        if cur.rowcount == 0:
            raise GatewayError(f"Unknown table id {table.id}", status_code=404)
        logger.info("table_updated table_id=%s status=%s", table.id, table.status.value)
        return table

    def _write_order(self, submission: OrderSubmission) -> OrderReceipt:
        """Persist an order with its lines in one transaction."""
        if not submission.lines:
            raise GatewayError("Cannot save empty order", status_code=422)

        order_id = uuid4().hex
        try:
            self._ensure_schema()
            with self._connect() as conn:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO orders
                            (id, created_at, table_id, total_amount, tax_amount, payment_method, note, shipping_address, status)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'PLACED')
                        """,
                        (
                            order_id,
                            _utc_now_iso(),
                            submission.table_id,
                            str(submission.amount_due),
                            str(submission.tax_amount),
                            submission.payment_method,
                            submission.note,
                            submission.shipping_address,
                        ),
                    )
                    conn.executemany(
                        """
                        INSERT INTO order_items
                            (order_id, line_index, product_id, variant_id, product_name, quantity, unit_price)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                order_id,
                                idx,
                                line.product_id,
                                line.variant_id,
                                line.name,
                                line.quantity,
                                str(line.unit_price),
                            )
                            for idx, line in enumerate(submission.lines)
                        ],
                    )
        except sqlite3.Error as exc:
            raise GatewayError(f"submit_order failed: {exc}") from exc
        logger.info("order_saved order_id=%s table_id=%s", order_id, submission.table_id)
        return OrderReceipt(order_id=order_id)

    async def fetch_tables(self) -> list[Table]:
        return await asyncio.to_thread(self._read_tables)

    async def fetch_areas(self) -> list[Area]:
        return await asyncio.to_thread(self._read_areas)

    async def update_table(self, table: Table) -> Table:
        return await asyncio.to_thread(self._write_table, table)

    async def fetch_categories(self) -> list[Category]:
        return list(self.categories)

    async def fetch_products(self) -> list[Product]:
        return list(self.products)

    async def submit_order(self, submission: OrderSubmission) -> OrderReceipt:
        return await asyncio.to_thread(self._write_order, submission)
