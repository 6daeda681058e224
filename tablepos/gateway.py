"""Backend gateway contract and its REST implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from tablepos.config import API_TIMEOUT_SECONDS, Settings
from tablepos.data import (
    area_from_record,
    category_from_record,
    product_from_record,
    submission_to_record,
    table_from_record,
    table_to_record,
)
from tablepos.errors import GatewayError
from tablepos.models import Area, Category, OrderReceipt, OrderSubmission, Product, Table

logger = logging.getLogger(__name__)


class BackendGateway(Protocol):
    """What the POS needs from the backend. Failures raise ``GatewayError``."""

    async def fetch_tables(self) -> list[Table]: ...

    async def fetch_areas(self) -> list[Area]: ...

    async def update_table(self, table: Table) -> Table: ...

    async def fetch_categories(self) -> list[Category]: ...

    async def fetch_products(self) -> list[Product]: ...

    async def submit_order(self, submission: OrderSubmission) -> OrderReceipt: ...

    async def aclose(self) -> None: ...


def _unwrap(body: Any) -> Any:
    """Responses come either bare or wrapped as {"data": ...}."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or response.reason_phrase


class HttpGateway:
    """REST gateway over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpGateway:
        return cls(settings.api_base_url, token=settings.api_token, timeout=settings.api_timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            logger.warning(
                "gateway_rejected method=%s path=%s status=%s detail=%r",
                method,
                path,
                exc.response.status_code,
                detail,
            )
            raise GatewayError(detail, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.warning("gateway_unreachable method=%s path=%s error=%r", method, path, exc)
            raise GatewayError(str(exc) or type(exc).__name__) from exc

        if not response.content:
            return None
        try:
            return _unwrap(response.json())
        except ValueError as exc:
            raise GatewayError(f"Malformed response from {path}", status_code=response.status_code) from exc

    async def _fetch_list(self, path: str) -> list[dict[str, Any]]:
        body = await self._request("GET", path)
        if not isinstance(body, list):
            raise GatewayError(f"Expected a list from {path}")
        return body

    def _parse(self, path: str, parser: Any, records: list[dict[str, Any]]) -> list[Any]:
        try:
            return [parser(record) for record in records]
        except (KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Malformed record from {path}: {exc}") from exc

    async def fetch_tables(self) -> list[Table]:
        return self._parse("/tables", table_from_record, await self._fetch_list("/tables"))

    async def fetch_areas(self) -> list[Area]:
        return self._parse("/table-areas", area_from_record, await self._fetch_list("/table-areas"))

    async def fetch_categories(self) -> list[Category]:
        return self._parse("/categories", category_from_record, await self._fetch_list("/categories"))

    async def fetch_products(self) -> list[Product]:
        return self._parse("/products", product_from_record, await self._fetch_list("/products"))

    async def update_table(self, table: Table) -> Table:
        body = await self._request("PUT", f"/tables/{table.id}", json=table_to_record(table))
        logger.info("table_updated table_id=%s status=%s", table.id, table.status.value)
        if isinstance(body, dict) and "id" in body:
            try:
                return table_from_record(body)
            except (KeyError, TypeError, ValueError) as exc:
                raise GatewayError(f"Malformed table in update response: {exc}") from exc
        return table

    async def submit_order(self, submission: OrderSubmission) -> OrderReceipt:
        body = await self._request("POST", "/orders", json=submission_to_record(submission))
        order_id = body.get("id") if isinstance(body, dict) else None
        if order_id is None:
            raise GatewayError("Order response carried no id")
        return OrderReceipt(order_id=str(order_id))


def build_gateway(settings: Settings) -> BackendGateway:
    """REST gateway when an API URL is configured, else the local SQLite one."""
    if settings.uses_local_gateway:
        from tablepos.persistence import LocalGateway

        return LocalGateway(settings.db_path)
    return HttpGateway.from_settings(settings)
