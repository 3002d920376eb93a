# delivery_app/modules/orders/router.py
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from datetime import datetime

from delivery_app.config.database import get_db
from delivery_app.core.auth.dependencies import (
    get_admin_user, get_client_user, get_courier_user, get_current_user
)
from .service import OrderService
from .schemas import (
    OrderCreate, StatusUpdate, OrderResponse, OrderListResponse,
    CourierQueuesResponse, FeedResponse, DispatcherFilter, StatsResponse
)

router = APIRouter()

@router.post("/", response_model=OrderResponse)
async def create_order(
    order_data: OrderCreate,
    current_user = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    """
    Crear pedido

    El servidor asigna el número de pedido y el estado inicial 'pending'.
    """
    service = OrderService(db)
    order = service.create_order(order_data, current_user)
    return service.to_response(order, [])

@router.get("/", response_model=OrderListResponse)
async def list_orders(
    filter_name: DispatcherFilter = Query("todos", alias="filter", description="Filtro del panel del despachador"),
    today_only: bool = Query(False, description="Solo pedidos de hoy"),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Listar pedidos visibles para el usuario

    - **admin**: todos, con filtros pendientes/recogidos/entregados
    - **cliente**: sus pedidos
    - **repartidor**: pedidos asignados
    """
    service = OrderService(db)
    orders = service.list_orders_for(current_user, filter_name, today_only)
    return OrderListResponse(
        success=True,
        message=f"{len(orders)} pedidos",
        orders=service.to_responses(orders),
        count=len(orders)
    )

@router.get("/mine", response_model=FeedResponse)
async def order_feed(
    today_only: bool = Query(False),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Identificadores de los pedidos relevantes (consumido por el polling de avisos)"""
    orders = OrderService(db).list_orders_for(current_user, today_only=today_only)
    ids = [order.id for order in orders]
    return FeedResponse(order_ids=ids, count=len(ids), generated_at=datetime.now())

@router.get("/queues", response_model=CourierQueuesResponse)
async def courier_queues(
    today_only: bool = Query(True),
    current_user = Depends(get_courier_user),
    db: Session = Depends(get_db)
):
    """Pestañas del repartidor: asignados, recogidos, con incidencia"""
    service = OrderService(db)
    groups = service.courier_queues(current_user, today_only)
    return CourierQueuesResponse(
        success=True,
        message="Pedidos del repartidor",
        **{tab: service.to_responses(orders) for tab, orders in groups.items()}
    )

@router.get("/stats", response_model=StatsResponse)
async def order_stats(
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    stats = OrderService(db).stats_for(current_user)
    return StatsResponse(success=True, message="Estadísticas", role=current_user.rol, stats=stats)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    order = service.get_order_for(order_id, current_user)
    return service.to_response(order, service.incidents_for([order]))

@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    payload: StatusUpdate,
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Cambiar estado del pedido

    **Reglas:**
    - El repartidor solo avanza sus propios pedidos
    - 'delivered' solo a través de la evidencia de entrega
    - 'assigned' desde 'pending' solo a través de la asignación
    """
    service = OrderService(db)
    order = service.transition(order_id, payload.status, current_user)
    return service.to_response(order, service.incidents_for([order]))

@router.delete("/{order_id}")
async def delete_order(
    order_id: int = Path(..., description="ID del pedido"),
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Eliminar pedido definitivamente (solo despachador)"""
    OrderService(db).delete_order(order_id, current_user)
    return {"success": True, "message": "Pedido eliminado", "order_id": order_id}
