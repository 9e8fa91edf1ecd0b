from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: str
    title: str
    message: str
    link: Optional[str] = None
    priority: str
    read_status: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    unreadCount: int
    items: List[NotificationOut] = Field(default_factory=list)


class MarkAllReadResponse(BaseModel):
    updated: int
