# delivery_app/modules/evidence/schemas.py
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from delivery_app.shared.schemas.common import BaseResponse

class EvidenceResponse(BaseModel):
    id: int
    order_id: int
    driver_id: int
    recipient_name: str
    recipient_id_number: str
    signature_url: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class DeliveryFinalizedResponse(BaseResponse):
    order_id: int
    order_number: str
    status: str
    evidence: EvidenceResponse

class EvidenceListResponse(BaseResponse):
    evidence: List[EvidenceResponse]
    count: int
