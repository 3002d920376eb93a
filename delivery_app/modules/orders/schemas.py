# delivery_app/modules/orders/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List, Literal
from datetime import datetime, date

from delivery_app.shared.schemas.common import BaseResponse, UserSummary
from delivery_app.shared.schemas.enums import OrderStatus

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

class OrderCreate(BaseModel):
    pickup_address: str = Field(..., min_length=1, description="Dirección de recogida")
    pickup_postal_code: str = Field(..., min_length=1, max_length=20)
    delivery_address: str = Field(..., min_length=1, description="Dirección de entrega")
    delivery_postal_code: str = Field(..., min_length=1, max_length=20)
    recipient_name: str = Field(..., min_length=1, max_length=255)
    recipient_phone: str = Field(..., min_length=1, max_length=50)
    pickup_date: date
    pickup_time: str = Field(..., pattern=HHMM_PATTERN, description="HH:MM")
    delivery_date: date
    delivery_time: str = Field(..., pattern=HHMM_PATTERN, description="HH:MM")
    notes: Optional[str] = Field(None, max_length=1000)
    client_id: Optional[int] = Field(None, description="Solo admin: crear en nombre de un remitente")

    @field_validator('delivery_date')
    @classmethod
    def validate_delivery_date(cls, v, info):
        pickup = info.data.get('pickup_date')
        if pickup and v < pickup:
            raise ValueError("La fecha de entrega no puede ser anterior a la de recogida")
        return v

class StatusUpdate(BaseModel):
    status: OrderStatus = Field(..., description="Nuevo estado del pedido")

class OrderResponse(BaseModel):
    id: int
    order_number: str
    client_id: int
    driver_id: Optional[int] = None
    pickup_address: str
    pickup_postal_code: str
    delivery_address: str
    delivery_postal_code: str
    recipient_name: str
    recipient_phone: str
    pickup_date: date
    pickup_time: str
    delivery_date: date
    delivery_time: str
    notes: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime
    client: Optional[UserSummary] = None
    driver: Optional[UserSummary] = None

    # Calculados
    effective_status: Optional[str] = None
    has_pending_incident: bool = False
    at_risk: bool = False

    class Config:
        from_attributes = True

class OrderListResponse(BaseResponse):
    orders: List[OrderResponse]
    count: int

class CourierQueuesResponse(BaseResponse):
    assigned: List[OrderResponse]
    picked_up: List[OrderResponse]
    incident_reported: List[OrderResponse]

class FeedResponse(BaseModel):
    """Identificadores relevantes para el ciclo de polling del actor"""
    order_ids: List[int]
    count: int
    generated_at: datetime

DispatcherFilter = Literal["todos", "pendientes", "recogidos", "entregados"]

class StatsResponse(BaseResponse):
    role: str
    stats: Dict[str, Any]
