# delivery_app/modules/assignments/schemas.py
from pydantic import BaseModel, Field
from typing import Optional, List

from delivery_app.shared.schemas.common import BaseResponse

class AssignCourier(BaseModel):
    driver_id: int = Field(..., gt=0, description="ID del repartidor")

class CourierCandidate(BaseModel):
    id: int
    nombre: str
    email: str
    telefono: Optional[str] = None
    vehiculo: Optional[str] = None
    online_status: str

    class Config:
        from_attributes = True

class CourierCandidatesResponse(BaseResponse):
    couriers: List[CourierCandidate]
    count: int
    online_count: int

class AssignmentResponse(BaseResponse):
    order_id: int
    order_number: str
    driver_id: int
    status: str
