from app.schemas.deals import MakeOfferRequest, DealActionRequest, DealRoomResponse, NegotiationHistoryResponse
from app.schemas.notifications import NotificationOut, NotificationListResponse
from app.schemas.market import MarketInsightsResponse
from app.schemas.rto import RTOInitiateRequest, RTOStatusRequest
