"""Row models for the tenant-scoped tables read by the metrics pipeline.

Rows come back from the hosted store as loosely typed JSON: numeric columns
may be null, statuses may be missing and timestamps arrive as ISO strings.
Every model here coerces those shapes once, so downstream code can rely on
plain floats, lower-case statuses and real ``datetime``/``date`` values.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def coerce_amount(value: Any) -> float:
    """Return ``value`` as a float, treating null or malformed input as zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return 0.0


def _normalize_status(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    return text or default


class StoreRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    business_id: Optional[str] = None

    @field_validator("id", "business_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class Appointment(StoreRecord):
    customer_id: Optional[str] = None
    service_id: Optional[str] = None
    scheduled_at: datetime = Field(alias="scheduled_date")
    status: str = AppointmentStatus.PENDING.value
    total_amount: float = 0.0
    created_at: Optional[datetime] = None

    @field_validator("customer_id", "service_id", mode="before")
    @classmethod
    def _stringify_refs(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return _normalize_status(value, AppointmentStatus.PENDING.value)

    @field_validator("total_amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return coerce_amount(value)

    @property
    def is_completed(self) -> bool:
        return self.status == AppointmentStatus.COMPLETED.value


class Expense(StoreRecord):
    category: Optional[str] = None
    description: Optional[str] = None
    amount: float = 0.0
    expense_date: date
    status: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return coerce_amount(value)

    @field_validator("expense_date", mode="before")
    @classmethod
    def _date_only(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value


class Payment(StoreRecord):
    appointment_id: Optional[str] = None
    amount: float = 0.0
    status: str = PaymentStatus.PENDING.value
    payment_method: Optional[str] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _fallback_timestamp(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("created_at") and data.get("payment_date"):
            data = {**data, "created_at": data["payment_date"]}
        if isinstance(data, dict) and data.get("business_id") is None:
            owner = data.get("appointments")
            if isinstance(owner, dict) and owner.get("business_id") is not None:
                data = {**data, "business_id": owner["business_id"]}
        return data

    @field_validator("appointment_id", mode="before")
    @classmethod
    def _stringify_ref(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return _normalize_status(value, PaymentStatus.PENDING.value)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return coerce_amount(value)

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value


class Feedback(StoreRecord):
    customer_id: Optional[str] = None
    appointment_id: Optional[str] = None
    rating: float = 0.0
    comment: Optional[str] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _fallback_timestamp(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("created_at") and data.get("feedback_date"):
            data = {**data, "created_at": data["feedback_date"]}
        return data

    @field_validator("customer_id", "appointment_id", mode="before")
    @classmethod
    def _stringify_refs(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator("rating", mode="before")
    @classmethod
    def _rating(cls, value: Any) -> float:
        return coerce_amount(value)


class Customer(StoreRecord):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    last_visit: Optional[date] = None
    total_visits: int = 0
    loyalty_points: int = 0

    @field_validator("total_visits", "loyalty_points", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> int:
        return int(coerce_amount(value))

    @field_validator("last_visit", mode="before")
    @classmethod
    def _visit_date(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value or None


class Employee(StoreRecord):
    position: str = ""
    is_active: bool = False
    salary: float = 0.0

    @field_validator("is_active", mode="before")
    @classmethod
    def _active(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("salary", mode="before")
    @classmethod
    def _salary(cls, value: Any) -> float:
        return coerce_amount(value)


class InventoryItem(StoreRecord):
    name: str = ""
    category: Optional[str] = None
    current_stock: float = 0.0
    minimum_stock: float = 0.0
    unit: Optional[str] = None

    @field_validator("current_stock", "minimum_stock", mode="before")
    @classmethod
    def _stock(cls, value: Any) -> float:
        return coerce_amount(value)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.minimum_stock
