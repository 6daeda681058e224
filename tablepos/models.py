"""Domain models for tablepos."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

# Variant id used in line keys when a product has no variant dimension.
NO_VARIANT = 0

LineKey = tuple[int, int]


def line_key(product_id: int, variant_id: int | None) -> LineKey:
    """Identity key of a cart line."""
    return (product_id, NO_VARIANT if variant_id is None else variant_id)


class TableStatus(str, Enum):
    """Lifecycle state of a physical table."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class Area:
    """A seating area tables belong to."""

    id: int
    name: str


@dataclass(frozen=True)
class Table:
    """A physical seating unit as last seen from the backend."""

    id: int
    area_id: int
    capacity: int
    status: TableStatus = TableStatus.AVAILABLE
    name: str = ""
    note: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def display_name(self) -> str:
        return self.name or f"Table {self.id}"


@dataclass(frozen=True)
class CartLine:
    """One purchasable unit in the order being built."""

    product_id: int
    variant_id: int | None
    unit_price: Decimal
    quantity: int
    name: str = ""
    variant_name: str = ""

    @property
    def key(self) -> LineKey:
        return line_key(self.product_id, self.variant_id)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> CartLine:
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class Cart:
    """Ordered order lines; merging keeps a line in place."""

    lines: tuple[CartLine, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, key: LineKey) -> CartLine | None:
        for line in self.lines:
            if line.key == key:
                return line
        return None


@dataclass(frozen=True)
class SessionState:
    """The snapshot the view binds to after every operation."""

    selected_table: Table | None = None
    cart: Cart = field(default_factory=Cart)


@dataclass(frozen=True)
class Category:
    """A product category."""

    id: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class Variant:
    """A sellable size/option of a product with its own price."""

    id: int
    name: str
    price: Decimal
    is_default: bool = False


@dataclass(frozen=True)
class Product:
    """A catalog product."""

    id: int
    name: str
    price: Decimal
    category_id: int | None = None
    variants: tuple[Variant, ...] = ()
    is_available: bool = True

    def default_variant(self) -> Variant | None:
        for variant in self.variants:
            if variant.is_default:
                return variant
        return self.variants[0] if self.variants else None

    def variant(self, variant_id: int | None) -> Variant | None:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None


@dataclass(frozen=True)
class OrderSubmission:
    """Payload handed to the gateway at checkout.

    ``total`` is the sum of the lines; ``amount_due`` adds the tax on top.
    """

    table_id: int
    lines: tuple[CartLine, ...]
    total: Decimal
    payment_method: str = "cash"
    note: str | None = None
    tax_amount: Decimal = Decimal("0")
    shipping_address: str | None = None

    @property
    def amount_due(self) -> Decimal:
        return self.total + self.tax_amount


@dataclass(frozen=True)
class OrderReceipt:
    """Gateway acknowledgement of an accepted order."""

    order_id: str
