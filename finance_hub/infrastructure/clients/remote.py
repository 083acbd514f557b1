"""Remote backend HTTP client for record CRUD and paginated listing"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

import httpx

from finance_hub.config import settings
from finance_hub.domain.exceptions import InvalidRecordError, InvalidRemotePayloadError, RemoteSyncError
from finance_hub.domain.models import Budget, Record, RecordKind, SyncStatus, Transaction, TransactionType
from finance_hub.infrastructure.observability.metrics import remote_call_latency_histogram, remote_failure_counter
from finance_hub.utils.date_utils import from_epoch_millis, to_epoch_millis


class RemoteClient:
    """Client for the remote backend-as-a-service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.remote_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.api_key = api_key if api_key is not None else settings.remote_api_key
        self.transport = transport

    async def health(self) -> None:
        """Raises RemoteSyncError when the backend is unreachable or unhealthy"""
        await self._request("health", "GET", "/health")

    async def create(self, kind: RecordKind, payload: Dict[str, Any]) -> str:
        """
        Create a record remotely.

        Returns:
            Remote id assigned by the backend

        Raises:
            RemoteSyncError: On timeout, HTTP errors, or a response without an id
        """
        response = await self._request(f"create_{kind.value}", "POST", f"/{kind.value}", json=payload)
        data = _json(response).get("data")
        if not isinstance(data, dict) or not data.get("id"):
            raise InvalidRemotePayloadError(f"Create {kind.value} response has no record id")
        return str(data["id"])

    async def update(self, kind: RecordKind, remote_id: str, payload: Dict[str, Any]) -> None:
        await self._request(f"update_{kind.value}", "PUT", f"/{kind.value}/{remote_id}", json=payload)

    async def delete(self, kind: RecordKind, remote_id: str) -> None:
        await self._request(f"delete_{kind.value}", "DELETE", f"/{kind.value}/{remote_id}")

    async def list_page(self, kind: RecordKind, offset: int, limit: int) -> List[Dict[str, Any]]:
        """One page of raw rows, newest remote creation time first"""
        response = await self._request(
            f"list_{kind.value}",
            "GET",
            f"/{kind.value}",
            params={"offset": offset, "limit": limit, "order": "created_desc"},
        )
        rows = _json(response).get("data")
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise InvalidRemotePayloadError(f"List {kind.value} response is not a list of records")
        return rows

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, headers=headers, transport=self.transport
        ) as client:
            try:
                with remote_call_latency_histogram.labels(operation=operation).time():
                    response = await client.request(method, path, **kwargs)
                    response.raise_for_status()
                    return response

            except httpx.TimeoutException as e:
                remote_failure_counter.labels(operation=operation).inc()
                raise RemoteSyncError(f"Remote {operation} timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                remote_failure_counter.labels(operation=operation).inc()
                raise RemoteSyncError(
                    f"Remote {operation} error: {e.response.status_code}", status_code=e.response.status_code
                ) from e
            except httpx.RequestError as e:
                remote_failure_counter.labels(operation=operation).inc()
                raise RemoteSyncError(f"Remote {operation} request failed: {e}") from e


def _json(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise InvalidRemotePayloadError(f"Invalid JSON from remote: {e}") from e
    if not isinstance(body, dict):
        raise InvalidRemotePayloadError("Remote response is not a JSON object")
    return body


def kind_of(record: Record) -> RecordKind:
    return RecordKind.TRANSACTION if isinstance(record, Transaction) else RecordKind.BUDGET


def to_payload(record: Record) -> Dict[str, Any]:
    """Wire representation of a local record, without local-only fields"""
    if isinstance(record, Transaction):
        return {
            "amount": float(record.amount),
            "type": TransactionType(record.type).value,
            "category": record.category,
            "description": record.description,
            "transaction_date": to_epoch_millis(record.occurred_at),
        }
    return {
        "category": record.category,
        "budget_amount": float(record.budget_amount),
        "month": record.month,
        "year": record.year,
        "is_active": record.is_active,
        "created_date": to_epoch_millis(record.created_at),
    }


def parse_record(kind: RecordKind, row: Dict[str, Any]) -> Record:
    """
    Build a SYNCED local entity from one remote row.

    Raises:
        InvalidRecordError: Missing field or wrong type
    """
    try:
        if kind == RecordKind.TRANSACTION:
            return _parse_transaction(row)
        return _parse_budget(row)
    except (KeyError, TypeError, ValueError, InvalidOperation, OverflowError) as e:
        raise InvalidRecordError(f"Invalid {kind.value} row {row.get('id')!r}: {e!r}") from e


def _parse_transaction(row: Dict[str, Any]) -> Transaction:
    amount = _decimal(row["amount"])
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {amount}")
    return Transaction(
        remote_id=_remote_id(row),
        amount=amount,
        type=TransactionType(row["type"]),
        category=_text(row["category"]),
        description=_text(row.get("description") or ""),
        occurred_at=_timestamp(row["transaction_date"]),
        sync_status=SyncStatus.SYNCED,
    )


def _parse_budget(row: Dict[str, Any]) -> Budget:
    amount = _decimal(row["budget_amount"])
    if amount < 0:
        raise ValueError(f"budget_amount must not be negative, got {amount}")
    month = _integer(row["month"])
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    created = row.get("created_date")
    is_active = row.get("is_active", True)
    return Budget(
        remote_id=_remote_id(row),
        category=_text(row["category"]),
        budget_amount=amount,
        month=month,
        year=_integer(row["year"]),
        created_at=_timestamp(created) if created is not None else datetime.now(),
        is_active=True if is_active is None else bool(is_active),
        sync_status=SyncStatus.SYNCED,
    )


def _remote_id(row: Dict[str, Any]) -> str:
    value = row["id"]
    if value is None or value == "":
        raise ValueError("id is empty")
    return str(value)


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected text, got {type(value).__name__}")
    return value


def _decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"expected number, got {type(value).__name__}")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"amount is not finite: {value}")
    return amount


def _integer(value: Any) -> int:
    """Integer field that may arrive as a number or numeric string"""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"expected integer, got {type(value).__name__}")
    return int(value)


def _timestamp(value: Any) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected epoch milliseconds, got {type(value).__name__}")
    return from_epoch_millis(int(value))
