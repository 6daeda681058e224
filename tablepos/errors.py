"""Typed failures raised by the POS core and gateways."""

from __future__ import annotations


class PosError(Exception):
    """Base class for every failure the operator can be shown."""

    kind = "pos_error"
    message = "Something went wrong"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail


class TableUnavailable(PosError):
    kind = "table_unavailable"
    message = "Table is occupied"


class NoTableSelected(PosError):
    kind = "no_table_selected"
    message = "Select a table first"


class InvalidQuantity(PosError):
    kind = "invalid_quantity"
    message = "Quantity must be at least 1"


class InvalidAmount(PosError):
    kind = "invalid_amount"
    message = "Amounts cannot be negative"


class EmptyOrder(PosError):
    kind = "empty_order"
    message = "Nothing to check out"


class ProductUnavailable(PosError):
    kind = "product_unavailable"
    message = "Product is not available"


class OrderInProgress(PosError):
    kind = "order_in_progress"
    message = "Finish or cancel the open order first"


class CheckoutPending(PosError):
    kind = "checkout_pending"
    message = "Checkout already in progress"


class GatewayError(PosError):
    """The backend rejected a request or could not be reached."""

    kind = "gateway_error"
    message = "Could not reach the server"

    def __init__(self, detail: str | None = None, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code
        if status_code is not None and 400 <= status_code < 500:
            self.message = "The server rejected the request"


def user_message(error: BaseException) -> str:
    """Short operator-facing text; details stay in the log."""
    if isinstance(error, PosError):
        return error.message
    return PosError.message
