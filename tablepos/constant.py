"""Editable static status, catalog and floor configuration."""

from __future__ import annotations

# Numeric codes used by the backend for table status.
TABLE_STATUS_CODES: dict[str, int] = {
    "available": 1,
    "occupied": 2,
    "reserved": 3,
    "cleaning": 4,
    "maintenance": 5,
}

TABLE_STATUS_LABELS: dict[str, str] = {
    "available": "Available",
    "occupied": "Occupied",
    "reserved": "Reserved",
    "cleaning": "Cleaning",
    "maintenance": "Maintenance",
}

TABLE_STATUS_STYLES: dict[str, str] = {
    "available": "bold #0b1f0f on #5fbf72",
    "occupied": "bold #ffffff on #b23a48",
    "reserved": "bold #1f1600 on #e0b040",
    "cleaning": "bold #ffffff on #2f6db5",
    "maintenance": "bold #ffffff on #6b6b6b",
}

PAYMENT_METHODS: dict[str, str] = {
    "cash": "Cash",
    "transfer": "Bank transfer",
}

CURRENCY_SUFFIX = "đ"

# Seed data for the local gateway; the HTTP backend serves its own.
DEMO_AREAS: list[dict[str, int | str]] = [
    {"id": 1, "name": "Indoor"},
    {"id": 2, "name": "Outdoor"},
    {"id": 3, "name": "VIP"},
]

DEMO_TABLES: list[dict[str, int | str | None]] = [
    {"id": 1, "area_id": 1, "name": "T1", "capacity": 2, "status": 1, "note": None},
    {"id": 2, "area_id": 1, "name": "T2", "capacity": 4, "status": 1, "note": None},
    {"id": 3, "area_id": 1, "name": "T3", "capacity": 4, "status": 1, "note": "Window seat"},
    {"id": 4, "area_id": 1, "name": "T4", "capacity": 6, "status": 1, "note": None},
    {"id": 5, "area_id": 2, "name": "O1", "capacity": 2, "status": 1, "note": None},
    {"id": 6, "area_id": 2, "name": "O2", "capacity": 4, "status": 1, "note": "Shaded"},
    {"id": 7, "area_id": 3, "name": "V1", "capacity": 8, "status": 1, "note": None},
]

DEMO_CATEGORIES: list[dict[str, int | str | bool]] = [
    {"id": 1, "name": "Coffee", "is_active": True},
    {"id": 2, "name": "Tea", "is_active": True},
    {"id": 3, "name": "Cakes", "is_active": True},
]

# Prices are strings so they load straight into Decimal.
DEMO_PRODUCTS: list[dict[str, object]] = [
    {
        "id": 1,
        "name": "Espresso",
        "price": "25000",
        "category_id": 1,
        "is_available": True,
        "variants": [
            {"id": 10, "name": "S", "price": "25000", "is_default": True},
            {"id": 11, "name": "M", "price": "30000"},
            {"id": 12, "name": "L", "price": "35000"},
        ],
    },
    {
        "id": 2,
        "name": "Milk Coffee",
        "price": "29000",
        "category_id": 1,
        "is_available": True,
        "variants": [
            {"id": 20, "name": "S", "price": "29000", "is_default": True},
            {"id": 21, "name": "L", "price": "39000"},
        ],
    },
    {
        "id": 3,
        "name": "Cold Brew",
        "price": "45000",
        "category_id": 1,
        "is_available": True,
        "variants": [],
    },
    {
        "id": 4,
        "name": "Peach Tea",
        "price": "35000",
        "category_id": 2,
        "is_available": True,
        "variants": [
            {"id": 40, "name": "M", "price": "35000", "is_default": True},
            {"id": 41, "name": "L", "price": "42000"},
        ],
    },
    {
        "id": 5,
        "name": "Jasmine Tea",
        "price": "30000",
        "category_id": 2,
        "is_available": False,
        "variants": [],
    },
    {
        "id": 6,
        "name": "Tiramisu",
        "price": "55000",
        "category_id": 3,
        "is_available": True,
        "variants": [],
    },
]
