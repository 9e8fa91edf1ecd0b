from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from app.models.enums import RTOStatus
from app.schemas.deals import RTODocument


class RTOInitiateRequest(BaseModel):
    transactionId: str = Field(..., min_length=1)
    applicationFee: int = 0
    documents: List[RTODocument] = Field(default_factory=list)


class RTOStatusRequest(BaseModel):
    status: RTOStatus
