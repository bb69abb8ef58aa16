from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from washdesk.services.changes import ChangeFeed

DEMO_BUSINESS_ID = "biz-demo"

RECORD_KINDS = (
    "appointments",
    "expenses",
    "payments",
    "feedback",
    "customers",
    "employees",
    "inventory",
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class TableRepository(_BaseRepository):
    """In-memory stand-in for one tenant-scoped table of the hosted store."""

    def __init__(self, kind: str, prefix: str, feed: ChangeFeed) -> None:
        super().__init__(prefix)
        self.kind = kind
        self._feed = feed
        self._rows: Dict[str, Dict[str, object]] = {}

    def _store(self, business_id: Optional[str], row: Mapping[str, object]) -> Dict[str, object]:
        record = dict(row)
        record.setdefault("id", self._next_id())
        if business_id is not None:
            record["business_id"] = business_id
        record.setdefault("created_at", _utc_now_iso())
        self._rows[str(record["id"])] = record
        return dict(record)

    async def insert(self, business_id: Optional[str], row: Mapping[str, object]) -> Dict[str, object]:
        record = self._store(business_id, row)
        await self._feed.publish(self.kind, business_id)
        return record

    async def list(self, business_id: Optional[str] = None) -> List[Dict[str, object]]:
        return [
            dict(row)
            for row in self._rows.values()
            if business_id is None or row.get("business_id") == business_id
        ]

    async def get(self, record_id: str) -> Optional[Dict[str, object]]:
        row = self._rows.get(record_id)
        return dict(row) if row is not None else None

    async def delete(self, record_id: str) -> bool:
        removed = self._rows.pop(record_id, None)
        if removed is None:
            return False
        await self._feed.publish(self.kind, await self._owner(removed))
        return True

    async def _owner(self, row: Mapping[str, object]) -> Optional[str]:
        owner = row.get("business_id")
        return str(owner) if owner is not None else None


class PaymentRepository(TableRepository):
    """Payments carry no tenant column; they belong to a tenant through their appointment."""

    def __init__(self, appointments: TableRepository, feed: ChangeFeed) -> None:
        super().__init__("payments", "PAY", feed)
        self._appointments = appointments

    async def insert(self, business_id: Optional[str], row: Mapping[str, object]) -> Dict[str, object]:
        record = self._store(None, row)
        await self._feed.publish(self.kind, await self._owner(record))
        return record

    async def _owner(self, row: Mapping[str, object]) -> Optional[str]:
        appointment = await self._appointments.get(str(row.get("appointment_id")))
        if appointment is None:
            return None
        return await self._appointments._owner(appointment)

    async def list(self, business_id: Optional[str] = None) -> List[Dict[str, object]]:
        if business_id is None:
            return [dict(row) for row in self._rows.values()]
        owned = {str(item["id"]) for item in await self._appointments.list(business_id)}
        return [
            {**row, "appointments": {"business_id": business_id}}
            for row in self._rows.values()
            if str(row.get("appointment_id")) in owned
        ]


@dataclass
class MockDataStore:
    feed: ChangeFeed
    appointments: TableRepository
    expenses: TableRepository
    payments: PaymentRepository
    feedback: TableRepository
    customers: TableRepository
    employees: TableRepository
    inventory: TableRepository

    def table(self, kind: str) -> TableRepository:
        if kind not in RECORD_KINDS:
            raise KeyError(kind)
        return getattr(self, kind)

    def iter_tables(self) -> Iterable[TableRepository]:
        return (self.table(kind) for kind in RECORD_KINDS)


def _seed_demo_business(store: MockDataStore, today: Optional[datetime] = None) -> None:
    """Populate a demo tenant so a fresh deployment has something to chart."""

    now = today or datetime.now(timezone.utc)
    business_id = DEMO_BUSINESS_ID

    customers = [
        ("Wanjiru Kamau", "0712000001", 6),
        ("Otieno Odhiambo", "0712000002", 3),
        ("Achieng Njeri", "0712000003", 9),
    ]
    customer_ids = []
    for name, phone, visits in customers:
        record = store.customers._store(
            business_id,
            {"name": name, "phone": phone, "total_visits": visits, "loyalty_points": visits * 10},
        )
        customer_ids.append(record["id"])

    for position, active in (("Washer", True), ("Detailer", True), ("Cashier", False)):
        store.employees._store(business_id, {"position": position, "is_active": active})

    inventory = [
        ("Car Shampoo", 4, 10, "litres"),
        ("Microfiber Towels", 40, 20, "pieces"),
        ("Tyre Shine", 2, 5, "bottles"),
    ]
    for name, stock, minimum, unit in inventory:
        store.inventory._store(
            business_id,
            {"name": name, "current_stock": stock, "minimum_stock": minimum, "unit": unit},
        )

    packages = [("Basic Wash", 500.0), ("Full Valet", 1500.0), ("Engine Wash", 800.0)]
    for days_ago in range(0, 10):
        day = (now - timedelta(days=days_ago)).date()
        slot = datetime.combine(day, time(hour=9 + days_ago % 6), tzinfo=timezone.utc)
        for index, (service, price) in enumerate(packages[: 1 + days_ago % 3]):
            status = "completed" if days_ago > 0 or index == 0 else "confirmed"
            appointment = store.appointments._store(
                business_id,
                {
                    "customer_id": customer_ids[(days_ago + index) % len(customer_ids)],
                    "service_id": service,
                    "scheduled_date": (slot + timedelta(hours=index)).isoformat(),
                    "status": status,
                    "total_amount": price,
                },
            )
            if status == "completed" and days_ago % 2 == 0:
                store.payments._store(
                    None,
                    {
                        "appointment_id": appointment["id"],
                        "amount": price,
                        "status": "completed",
                        "payment_method": "mpesa",
                        "created_at": (slot + timedelta(hours=index, minutes=30)).isoformat(),
                    },
                )
            if status == "completed":
                store.feedback._store(
                    business_id,
                    {
                        "customer_id": appointment["customer_id"],
                        "appointment_id": appointment["id"],
                        "rating": 3 + (days_ago + index) % 3,
                        "created_at": (slot + timedelta(hours=index + 1)).isoformat(),
                    },
                )
        if days_ago % 3 == 0:
            store.expenses._store(
                business_id,
                {
                    "category": "supplies",
                    "description": "Detergent restock",
                    "amount": 350.0,
                    "expense_date": day.isoformat(),
                    "status": "approved",
                },
            )


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        feed = ChangeFeed()
        appointments = TableRepository("appointments", "APT", feed)
        _mock_store = MockDataStore(
            feed=feed,
            appointments=appointments,
            expenses=TableRepository("expenses", "EXP", feed),
            payments=PaymentRepository(appointments, feed),
            feedback=TableRepository("feedback", "FBK", feed),
            customers=TableRepository("customers", "CUS", feed),
            employees=TableRepository("employees", "EMP", feed),
            inventory=TableRepository("inventory", "INV", feed),
        )
        _seed_demo_business(_mock_store)
    return _mock_store


def reset_mock_store() -> None:
    global _mock_store
    _mock_store = None
