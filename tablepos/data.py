"""Record <-> model conversion and static demo data."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from tablepos.constant import DEMO_CATEGORIES, DEMO_PRODUCTS
from tablepos.models import Area, Category, OrderSubmission, Product, Table, Variant
from tablepos.table_status import status_from_code, status_to_code


def _first(record: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return default


def to_decimal(value: Any) -> Decimal:
    """Parse a price; floats go through str so 0.1 stays 0.1.

    Negative, NaN and infinite amounts raise ``ValueError``.
    """
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Invalid price: {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid price: {value!r}")
    return amount


def to_json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def table_from_record(record: Mapping[str, Any]) -> Table:
    """Build a Table from a backend record (camelCase or snake_case keys)."""
    area = record.get("area")
    area_id = _first(record, "areaId", "area_id")
    if area_id is None and isinstance(area, Mapping):
        area_id = area.get("id")
    note = _first(record, "note", "notes")
    return Table(
        id=int(record["id"]),
        area_id=int(area_id or 0),
        capacity=int(_first(record, "capacity", default=1)),
        status=status_from_code(record.get("status")),
        name=str(_first(record, "name", default="")),
        note=str(note) if note else None,
        meta=dict(record.get("meta") or {}),
    )


def table_to_record(table: Table) -> dict[str, Any]:
    """Table update payload; status goes back out as its numeric code."""
    return {
        "id": table.id,
        "name": table.name,
        "areaId": table.area_id,
        "capacity": table.capacity,
        "notes": table.note or "",
        "status": status_to_code(table.status),
        "meta": dict(table.meta),
    }


def area_from_record(record: Mapping[str, Any]) -> Area:
    return Area(id=int(record["id"]), name=str(_first(record, "name", default="")))


def category_from_record(record: Mapping[str, Any]) -> Category:
    return Category(
        id=int(record["id"]),
        name=str(_first(record, "name", default="")),
        is_active=bool(_first(record, "is_active", "isActive", default=True)),
    )


def variant_from_record(record: Mapping[str, Any]) -> Variant:
    return Variant(
        id=int(record["id"]),
        name=str(_first(record, "name", "sku", default="")),
        price=to_decimal(_first(record, "price", default="0")),
        is_default=bool(_first(record, "is_default", "isDefault", default=False)),
    )


def product_from_record(record: Mapping[str, Any]) -> Product:
    category_id = _first(record, "category_id", "categoryId")
    if category_id is None:
        categories = record.get("categories") or []
        category_id = categories[0] if categories else None
    return Product(
        id=int(record["id"]),
        name=str(_first(record, "name", default="")),
        price=to_decimal(_first(record, "price", default="0")),
        category_id=int(category_id) if category_id is not None else None,
        variants=tuple(variant_from_record(v) for v in record.get("variants") or []),
        is_available=bool(_first(record, "is_available", "isAvailable", default=True)),
    )


def submission_to_record(submission: OrderSubmission) -> dict[str, Any]:
    return {
        "table_id": submission.table_id,
        "items": [
            {
                "product_id": line.product_id,
                "variant_id": line.variant_id,
                "quantity": line.quantity,
                "unit_price": to_json_number(line.unit_price),
            }
            for line in submission.lines
        ],
        "subtotal": to_json_number(submission.total),
        "tax_amount": to_json_number(submission.tax_amount),
        "total_amount": to_json_number(submission.amount_due),
        "payment_method": submission.payment_method,
        "note": submission.note or "",
        "shipping_address": submission.shipping_address or "",
        "meta": {"table_id": submission.table_id},
    }


DEMO_CATEGORY_LIST: list[Category] = [category_from_record(r) for r in DEMO_CATEGORIES]
DEMO_PRODUCT_LIST: list[Product] = [product_from_record(r) for r in DEMO_PRODUCTS]  # type: ignore[arg-type]
