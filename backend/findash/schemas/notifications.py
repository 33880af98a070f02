"""Schemas for the notification tray."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: Literal["transaction", "balance", "system", "security"]
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    priority: Literal["low", "medium", "high"]
    read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationOut]
    total: int


class MarkReadRequest(BaseModel):
    notification_ids: Optional[List[str]] = Field(default=None, max_length=500)
    mark_all: bool = False
