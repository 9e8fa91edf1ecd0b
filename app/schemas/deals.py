from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import DealAction

# numeric or string; range and format are checked by the money helpers
LakhsInput = Union[Decimal, str]


class MakeOfferRequest(BaseModel):
    vehicleId: str = Field(..., min_length=1)
    amountLakhs: LakhsInput


class DealActionRequest(BaseModel):
    """
    One deal room action. Only the fields the action needs are read.
    """
    action: DealAction

    # counter_offer
    amountLakhs: Optional[LakhsInput] = None

    # payment_success
    paymentReference: Optional[str] = Field(default=None, max_length=128)
    paymentMethod: Optional[str] = Field(default=None, max_length=32)
    paidAmountLakhs: Optional[LakhsInput] = None

    # book_transport
    partner: Optional[str] = None
    pickupDate: Optional[datetime] = None
    pickupAddress: Optional[str] = Field(default=None, max_length=512)
    deliveryAddress: Optional[str] = Field(default=None, max_length=512)

    # submit_rating
    rating: Optional[int] = None
    review: Optional[str] = None

    # send_message
    text: Optional[str] = None


class DealerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    verification_status: str
    rating: float
    rating_count: int
    completed_deals: int


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    dealer_id: uuid.UUID
    make: str
    model: str
    year: int
    price: int
    status: str
    vin: Optional[str] = None
    kilometers: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    date_sold: Optional[datetime] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vehicle_id: uuid.UUID
    seller_id: uuid.UUID
    buyer_id: Optional[uuid.UUID] = None
    status: str
    offer_amount: int
    final_amount: Optional[int] = None

    escrow_status: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_confirmed_at: Optional[datetime] = None
    funds_released_at: Optional[datetime] = None

    transport_status: str
    logistics_partner: Optional[str] = None
    transport_booking_id: Optional[str] = None
    pickup_address: Optional[str] = None
    delivery_address: Optional[str] = None
    pickup_eta: Optional[datetime] = None
    delivery_eta: Optional[datetime] = None
    delivery_confirmed_at: Optional[datetime] = None

    messages: List[Dict[str, Any]] = Field(default_factory=list)
    seller_rating: Optional[Dict[str, Any]] = None
    buyer_rating: Optional[Dict[str, Any]] = None

    deal_archived: bool
    archived_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime


class NegotiationEventOut(BaseModel):
    id: Optional[str] = None
    type: str
    amount: Optional[int] = None
    sender_id: Optional[str] = None
    sender: str
    is_current_user: bool
    timestamp: Optional[str] = None
    text: Optional[str] = None


class RTODocument(BaseModel):
    type: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    name: Optional[str] = None


class RTOApplicationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    transaction_id: uuid.UUID
    vehicle_id: uuid.UUID
    seller_name: str
    seller_address: Optional[str] = None
    buyer_name: str
    buyer_address: Optional[str] = None
    application_fee: int
    document_urls: List[Dict[str, Any]] = Field(default_factory=list)
    status: str
    submitted_at: datetime
    updated_at: datetime


class DealRoomResponse(BaseModel):
    transaction: TransactionOut
    vehicle: VehicleOut
    seller: Optional[DealerOut] = None
    buyer: Optional[DealerOut] = None
    sellerName: str
    buyerName: str
    currentDealer: Optional[DealerOut] = None
    rtoApplication: Optional[RTOApplicationOut] = None

    isSellerView: bool
    isBuyerView: bool
    role: Optional[str] = None
    stage: str
    allowedActions: List[str] = Field(default_factory=list)

    negotiationHistory: List[NegotiationEventOut] = Field(default_factory=list)
    marketInsights: Optional[Dict[str, Any]] = None
    payoutDetails: Optional[Dict[str, Any]] = None
    showRatingPrompt: bool = False


class NegotiationHistoryResponse(BaseModel):
    transactionId: str
    events: List[NegotiationEventOut] = Field(default_factory=list)
