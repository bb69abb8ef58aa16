from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import ValidationError

from washdesk.clients.store import StoreClient
from washdesk.schemas.records import (
    Appointment,
    Customer,
    Employee,
    Expense,
    Feedback,
    InventoryItem,
    Payment,
    StoreRecord,
)
from washdesk.services.changes import ChangeCallback, ChangeFeed
from washdesk.services.exceptions import ServiceError, UnknownRecordKindError
from washdesk.services.mock_store import MockDataStore, get_mock_store

logger = logging.getLogger(__name__)

RECORD_MODELS: Dict[str, Type[StoreRecord]] = {
    "appointments": Appointment,
    "expenses": Expense,
    "payments": Payment,
    "feedback": Feedback,
    "customers": Customer,
    "employees": Employee,
    "inventory": InventoryItem,
}


def _model_for(kind: str) -> Type[StoreRecord]:
    try:
        return RECORD_MODELS[kind]
    except KeyError:
        raise UnknownRecordKindError(kind) from None


class TenantDataReader:
    """Read tenant-scoped rows and normalize them into record models.

    A failed read for one kind is logged and reported as "no records" so the
    caller can still aggregate the remaining kinds.
    """

    def __init__(
        self,
        client: StoreClient,
        *,
        store: MockDataStore | None = None,
        feed: ChangeFeed | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._feed = feed
        if self._client.use_mock_data:
            self._store = store or get_mock_store()
            self._feed = feed or self._store.feed
        if self._feed is None:
            self._feed = ChangeFeed()

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    def on_change(
        self,
        kind: str,
        callback: ChangeCallback,
        *,
        business_id: Optional[str] = None,
    ):
        """Register ``callback`` for changes to ``kind``; returns an unsubscribe callable.

        With ``business_id`` the callback only hears changes for that business
        and changes announced without a business.
        """

        _model_for(kind)
        return self._feed.subscribe(kind, callback, business_id=business_id)

    async def publish_change(self, kind: str, business_id: Optional[str] = None) -> int:
        """Announce that ``kind`` changed; returns the number of notified subscribers."""

        _model_for(kind)
        return await self._feed.publish(kind, business_id)

    async def fetch(self, kind: str, tenant_id: Optional[str]) -> List[Any]:
        model = _model_for(kind)
        if not tenant_id:
            logger.info("No business id available; skipping %s fetch", kind)
            return []

        try:
            rows = await self._fetch_rows(kind, tenant_id)
        except ServiceError as exc:
            logger.warning(
                "Fetching %s for business %s failed, treating as empty: %s",
                kind,
                tenant_id,
                exc,
            )
            return []

        return self._normalize(model, rows, kind=kind, tenant_id=tenant_id)

    async def _fetch_rows(self, kind: str, tenant_id: str) -> List[Mapping[str, Any]]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._store:
                raise RuntimeError("Mock data store not configured")
            return await self._store.table(kind).list(tenant_id)

        return await self._client.select(kind, self.query_params(kind, tenant_id))

    @staticmethod
    def query_params(kind: str, tenant_id: str) -> Dict[str, str]:
        if kind == "payments":
            return {
                "select": "*,appointments!inner(business_id)",
                "appointments.business_id": f"eq.{tenant_id}",
            }
        return {"select": "*", "business_id": f"eq.{tenant_id}"}

    @staticmethod
    def _normalize(
        model: Type[StoreRecord],
        rows: Iterable[Mapping[str, Any]],
        *,
        kind: str,
        tenant_id: str,
    ) -> List[Any]:
        records: List[Any] = []
        for row in rows:
            try:
                record = model.model_validate(row)
            except ValidationError as exc:
                logger.debug("Dropping malformed %s row %s: %s", kind, row.get("id"), exc)
                continue
            if record.business_id is not None and record.business_id != tenant_id:
                logger.warning(
                    "Dropping %s row %s scoped to another business", kind, record.id
                )
                continue
            records.append(record)
        return records
