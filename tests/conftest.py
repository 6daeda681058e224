from __future__ import annotations

from decimal import Decimal
from typing import List

import pytest

from tablepos.errors import GatewayError
from tablepos.models import (
    Area,
    CartLine,
    Category,
    OrderReceipt,
    OrderSubmission,
    Product,
    Table,
    TableStatus,
    Variant,
)


def make_line(product_id: int = 1, variant_id: int | None = 10, qty: int = 1, price: str = "25000", name: str = "") -> CartLine:
    return CartLine(
        product_id=product_id,
        variant_id=variant_id,
        unit_price=Decimal(price),
        quantity=qty,
        name=name or f"Product {product_id}",
    )


def make_table(table_id: int = 1, status: TableStatus = TableStatus.AVAILABLE, area_id: int = 1) -> Table:
    return Table(id=table_id, area_id=area_id, capacity=4, status=status, name=f"T{table_id}")


class FakeGateway:
    """In-memory gateway that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.tables: List[Table] = [
            make_table(1),
            make_table(2),
            make_table(5, TableStatus.OCCUPIED),
            make_table(7, TableStatus.RESERVED, area_id=2),
        ]
        self.areas = [Area(1, "Indoor"), Area(2, "Outdoor")]
        self.categories = [Category(1, "Coffee"), Category(2, "Cakes", is_active=False)]
        self.products = [
            Product(
                id=1,
                name="Espresso",
                price=Decimal("25000"),
                category_id=1,
                variants=(
                    Variant(10, "S", Decimal("25000"), is_default=True),
                    Variant(11, "L", Decimal("35000")),
                ),
            ),
            Product(id=2, name="Tiramisu", price=Decimal("55000"), category_id=2),
            Product(id=3, name="Jasmine Tea", price=Decimal("30000"), category_id=1, is_available=False),
        ]
        self.submissions: List[OrderSubmission] = []
        self.updates: List[Table] = []
        self.fail_submit = False
        self.fail_update = False
        self.fail_fetch = False
        self.closed = False
        self.on_submit = None

    async def fetch_tables(self):
        if self.fail_fetch:
            raise GatewayError("down")
        return list(self.tables)

    async def fetch_areas(self):
        return list(self.areas)

    async def fetch_categories(self):
        return list(self.categories)

    async def fetch_products(self):
        return list(self.products)

    async def update_table(self, table):
        if self.fail_update:
            raise GatewayError("update refused", status_code=500)
        self.updates.append(table)
        self.tables = [table if t.id == table.id else t for t in self.tables]
        return table

    async def submit_order(self, submission):
        if self.on_submit is not None:
            self.on_submit()
        if self.fail_submit:
            raise GatewayError("validation failed", status_code=422)
        self.submissions.append(submission)
        return OrderReceipt(order_id=f"order-{len(self.submissions):04d}")

    async def aclose(self):
        self.closed = True


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()
