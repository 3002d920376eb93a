# delivery_app/modules/assignments/router.py
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import Optional

from delivery_app.config.database import get_db
from delivery_app.core.auth.dependencies import get_admin_user
from delivery_app.shared.schemas.enums import OnlineStatus
from .service import AssignmentService
from .schemas import AssignCourier, AssignmentResponse, CourierCandidate, CourierCandidatesResponse

router = APIRouter()

@router.get("/couriers", response_model=CourierCandidatesResponse)
async def list_eligible_couriers(
    order_id: Optional[int] = Query(None, description="Excluir al repartidor actual de este pedido"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Repartidores elegibles

    - Solo repartidores activos
    - Excluye al repartidor actual del pedido indicado
    - El estado en línea es informativo: se puede asignar a un repartidor desconectado
    """
    couriers = AssignmentService(db).eligible_couriers(current_user, order_id)
    return CourierCandidatesResponse(
        success=True,
        message="Repartidores disponibles",
        couriers=[CourierCandidate.model_validate(c) for c in couriers],
        count=len(couriers),
        online_count=len([c for c in couriers if c.online_status == OnlineStatus.ONLINE.value])
    )

@router.post("/orders/{order_id}/assign", response_model=AssignmentResponse)
async def assign_courier(
    payload: AssignCourier,
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Asignar repartidor a un pedido pendiente"""
    order = AssignmentService(db).assign(order_id, payload.driver_id, current_user)
    return AssignmentResponse(
        success=True,
        message="Repartidor asignado",
        order_id=order.id,
        order_number=order.order_number,
        driver_id=order.driver_id,
        status=order.status
    )

@router.post("/orders/{order_id}/transfer", response_model=AssignmentResponse)
async def transfer_order(
    payload: AssignCourier,
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Transferir el pedido a otro repartidor (el estado no cambia)"""
    order = AssignmentService(db).transfer(order_id, payload.driver_id, current_user)
    return AssignmentResponse(
        success=True,
        message="Pedido transferido",
        order_id=order.id,
        order_number=order.order_number,
        driver_id=order.driver_id,
        status=order.status
    )
