from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from washdesk.schemas.metrics import ChartPoint


class StatCard(BaseModel):
    key: str = Field(..., description="Machine readable card identifier")
    label: str = Field(..., description="Human friendly card title")
    value: str = Field(..., description="Formatted value shown on the card")
    change_percentage: Optional[float] = Field(
        default=None,
        description="Percentage change compared to the previous day.",
    )


class ActivityItem(BaseModel):
    """One entry of the dashboard's recent-activity feed."""

    id: str
    type: Literal["appointment", "completion", "payment"]
    title: str
    description: str
    amount: float = 0.0
    time: datetime
    status: Optional[str] = None


class DashboardStats(BaseModel):
    """Today's operational snapshot for the dashboard landing page."""

    business_id: Optional[str] = None
    date: str
    currency: str
    today_revenue: float = 0.0
    today_washes: int = 0
    today_customers: int = 0
    today_expenses: float = 0.0
    total_customers: int = 0
    active_employees: int = 0
    low_stock_items: int = 0
    average_rating: float = 0.0
    monthly_growth: float = 0.0
    cards: List[StatCard] = Field(default_factory=list)
    growth: List[ChartPoint] = Field(default_factory=list)
    recent_activity: List[ActivityItem] = Field(default_factory=list)
