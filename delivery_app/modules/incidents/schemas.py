# delivery_app/modules/incidents/schemas.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from delivery_app.shared.schemas.common import BaseResponse
from delivery_app.shared.schemas.enums import ResolutionDecision

class IncidentResolve(BaseModel):
    decision: Optional[ResolutionDecision] = Field(None, description="retry, return, reassign o waiting_client")
    admin_notes: Optional[str] = Field(None, max_length=1000)
    new_driver_id: Optional[int] = Field(None, gt=0, description="Obligatorio para 'reassign'")

class IncidentResponse(BaseModel):
    id: int
    order_id: int
    driver_id: int
    incident_type: str
    description: str
    photo_url: Optional[str] = None
    status: str
    order_status_at_report: str
    admin_notes: Optional[str] = None
    resolved_decision: Optional[str] = None
    new_driver_id: Optional[int] = None
    resolved_by_id: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

class IncidentReportedResponse(BaseResponse):
    incident: IncidentResponse
    photo_attached: bool

class IncidentListResponse(BaseResponse):
    incidents: List[IncidentResponse]
    count: int
    pending_count: int
