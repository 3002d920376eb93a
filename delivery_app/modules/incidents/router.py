# delivery_app/modules/incidents/router.py
from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.orm import Session
from typing import Optional

from delivery_app.config.database import get_db
from delivery_app.core.auth.dependencies import get_admin_user, get_current_user, require_roles
from delivery_app.shared.schemas.enums import IncidentStatus, UserRole
from delivery_app.shared.services.cloudinary_service import CloudinaryService, get_attachment_service
from .service import IncidentService
from .schemas import (
    IncidentResolve, IncidentResponse, IncidentReportedResponse, IncidentListResponse
)

router = APIRouter()

@router.post("/orders/{order_id}", response_model=IncidentReportedResponse)
async def report_incident(
    order_id: int = Path(..., description="ID del pedido"),
    incident_type: str = Form(..., description="Tipo de incidencia"),
    description: str = Form(..., description="Descripción (mínimo 5 caracteres)"),
    photo: Optional[UploadFile] = File(None, description="Foto opcional"),
    current_user = Depends(require_roles([UserRole.REPARTIDOR.value])),
    attachments: CloudinaryService = Depends(get_attachment_service),
    db: Session = Depends(get_db)
):
    """
    Reportar incidencia sobre un pedido en recogida o en tránsito

    La foto es opcional: si la subida falla, la incidencia se registra sin foto.
    """
    content = await photo.read() if photo else None
    content_type = photo.content_type if photo else None

    incident = await IncidentService(db, attachments).report(
        order_id, current_user, incident_type, description, content, content_type
    )
    return IncidentReportedResponse(
        success=True,
        message="Incidencia reportada, el despachador será notificado",
        incident=IncidentResponse.model_validate(incident),
        photo_attached=incident.photo_url is not None
    )

@router.patch("/{incident_id}", response_model=IncidentResponse)
async def resolve_incident(
    payload: IncidentResolve,
    incident_id: int = Path(..., description="ID de la incidencia"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Resolver incidencia (solo despachador)"""
    decision = payload.decision.value if payload.decision else None
    return IncidentService(db).resolve(
        incident_id, current_user, decision, payload.admin_notes, payload.new_driver_id
    )

@router.get("/", response_model=IncidentListResponse)
async def list_incidents(
    order_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None, description="pending o resolved"),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Listar incidencias visibles para el usuario, más recientes primero"""
    incidents = IncidentService(db).list_incidents(current_user, order_id, status)
    return IncidentListResponse(
        success=True,
        message="Incidencias",
        incidents=[IncidentResponse.model_validate(i) for i in incidents],
        count=len(incidents),
        pending_count=len([i for i in incidents if i.status == IncidentStatus.PENDING.value])
    )

@router.get("/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: int = Path(..., description="ID de la incidencia"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return IncidentService(db).get_incident(incident_id)
