"""Schemas for transactions, the dashboard and admin analytics."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from findash.schemas.auth import PublicUser

TransactionStatus = Literal["completed", "pending", "failed"]
TransactionType = Literal["income", "expense"]
PaymentMethod = Literal["card", "bank_transfer", "cash", "crypto"]


class TransactionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(default="", max_length=255)
    amount: float = Field(..., description="Positive for income, negative for expenses")
    date: datetime
    status: TransactionStatus = "completed"
    category: str = Field(..., min_length=1, max_length=64)
    description: str = ""
    type: TransactionType
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    merchant: Optional[str] = None
    payment_method: PaymentMethod = "card"
    currency: Optional[str] = Field(default=None, max_length=8)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    email: str
    amount: float
    date: datetime
    status: TransactionStatus
    category: str
    description: str
    type: TransactionType
    tags: List[str]
    location: Optional[str] = None
    merchant: Optional[str] = None
    payment_method: PaymentMethod
    currency: str
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(BaseModel):
    transactions: List[TransactionOut]
    total: int
    page: int
    limit: int


class DashboardMetrics(BaseModel):
    balance: int
    revenue: int
    expenses: int
    savings: int


class ChartPoint(BaseModel):
    month: str
    year: int
    income: float
    expenses: float


class CategoryTotal(BaseModel):
    category: str
    total: float
    count: int


class DashboardResponse(BaseModel):
    metrics: DashboardMetrics
    transactions: List[TransactionOut]
    chart_data: List[ChartPoint]
    category_breakdown: List[CategoryTotal]
    analytics: Dict[str, float]


class UserStats(BaseModel):
    total_users: int = 0
    verified_users: int = 0
    admin_users: int = 0


class AdminUserListResponse(BaseModel):
    users: List[PublicUser]
    total: int
    stats: UserStats


class SystemAnalyticsResponse(BaseModel):
    user_stats: UserStats
    transaction_stats: Dict[str, float]
    monthly_growth: List[Dict[str, int]]
    monthly_transaction_volume: List[Dict[str, Any]]
    top_categories: List[Dict[str, Any]]


class AuditLogItem(BaseModel):
    action: str
    resource: str
    user_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogItem]
    total: int
