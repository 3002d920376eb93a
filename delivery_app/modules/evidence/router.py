# delivery_app/modules/evidence/router.py
from fastapi import APIRouter, Depends, File, Form, Path, UploadFile
from sqlalchemy.orm import Session
from typing import Optional

from delivery_app.config.database import get_db
from delivery_app.core.auth.dependencies import get_courier_user, get_current_user
from delivery_app.shared.services.cloudinary_service import CloudinaryService, get_attachment_service
from .service import EvidenceService
from .schemas import EvidenceResponse, DeliveryFinalizedResponse, EvidenceListResponse

router = APIRouter()

@router.post("/orders/{order_id}", response_model=DeliveryFinalizedResponse)
async def finalize_delivery(
    order_id: int = Path(..., description="ID del pedido"),
    recipient_name: str = Form(..., description="Nombre de quien recibe"),
    recipient_id_number: str = Form(..., description="Documento de identidad de quien recibe"),
    notes: Optional[str] = Form(None),
    signature: UploadFile = File(..., description="Firma capturada (PNG)"),
    current_user = Depends(get_courier_user),
    attachments: CloudinaryService = Depends(get_attachment_service),
    db: Session = Depends(get_db)
):
    """
    Finalizar entrega con evidencia firmada

    **Validaciones:**
    - Nombre y documento del destinatario obligatorios
    - La firma no puede estar en blanco
    - Solo el repartidor asignado (o el despachador) puede finalizar
    - El pedido debe estar en tránsito y sin incidencias abiertas
    """
    service = EvidenceService(db, attachments)
    content = await signature.read()
    evidence, order = await service.finalize_delivery(
        order_id, current_user, recipient_name, recipient_id_number, content, notes
    )
    return DeliveryFinalizedResponse(
        success=True,
        message="La entrega ha sido finalizada correctamente",
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        evidence=EvidenceResponse.model_validate(evidence)
    )

@router.post("/orders/{order_id}/retry")
async def retry_finalize(
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_courier_user),
    db: Session = Depends(get_db)
):
    """Reintentar el cambio a 'delivered' cuando la evidencia ya quedó guardada"""
    service = EvidenceService(db)
    order = service.retry_delivered_transition(order_id, current_user)
    return {
        "success": True,
        "message": "Entrega completada",
        "order_id": order.id,
        "status": order.status
    }

@router.get("/orders/{order_id}", response_model=EvidenceResponse)
async def get_order_evidence(
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ver la evidencia de entrega de un pedido"""
    return EvidenceService(db).get_evidence(order_id, current_user)

@router.get("/drivers/{driver_id}", response_model=EvidenceListResponse)
async def list_driver_evidence(
    driver_id: int = Path(..., description="ID del repartidor"),
    current_user = Depends(get_courier_user),
    db: Session = Depends(get_db)
):
    """Historial de entregas firmadas de un repartidor"""
    evidence = EvidenceService(db).list_by_driver(driver_id, current_user)
    return EvidenceListResponse(
        success=True,
        message="Entregas registradas",
        evidence=[EvidenceResponse.model_validate(e) for e in evidence],
        count=len(evidence)
    )
