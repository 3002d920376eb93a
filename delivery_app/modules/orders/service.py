# delivery_app/modules/orders/service.py
from typing import Dict, Any, Optional, List, Iterable
from datetime import datetime, date
import logging

from sqlalchemy.orm import Session

from delivery_app.core.exceptions import Forbidden, NotFound, ValidationError, WrongOrderState
from delivery_app.shared.database.models import Order, User
from delivery_app.shared.schemas.enums import (
    OrderStatus, UserRole, TERMINAL_STATUSES, COURIER_HELD_STATUSES
)
from delivery_app.modules.evidence.repository import EvidenceRepository
from .repository import OrderRepository
from .schemas import OrderCreate, OrderResponse
from .state_machine import check_transition
from .queues import (
    effective_queue, pending_incident, group_for_courier, filter_for_dispatcher
)
from .schedule import filter_orders_by_today, is_order_at_risk

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = [
    OrderStatus.PENDING.value,
    OrderStatus.ASSIGNED.value,
    OrderStatus.GOING_TO_PICKUP.value,
    OrderStatus.IN_TRANSIT.value,
    OrderStatus.INCIDENT_REPORTED.value,
]


class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = OrderRepository(db)

    # ==================== CONSULTAS ====================

    def get_order(self, order_id: int) -> Order:
        order = self.repository.get_order(order_id)
        if not order:
            raise NotFound(f"Pedido {order_id} no encontrado", order_id=order_id)
        return order

    def get_order_for(self, order_id: int, actor: User) -> Order:
        """Obtener pedido verificando que el actor puede verlo"""
        order = self.get_order(order_id)
        if actor.rol == UserRole.ADMIN.value:
            return order
        if actor.rol == UserRole.CLIENTE.value and order.client_id == actor.id:
            return order
        if actor.rol == UserRole.REPARTIDOR.value and order.driver_id == actor.id:
            return order
        raise Forbidden("No tienes acceso a este pedido")

    def incidents_for(self, orders: Iterable[Order]) -> List:
        return self.repository.list_incidents_for_orders([o.id for o in orders])

    def list_orders_for(
        self,
        actor: User,
        filter_name: str = "todos",
        today_only: bool = False,
        now: Optional[datetime] = None
    ) -> List[Order]:
        """Pedidos relevantes para el actor (misma vista que refresca el polling)"""
        if actor.rol == UserRole.ADMIN.value:
            orders = self.repository.list_orders()
            try:
                orders = filter_for_dispatcher(orders, filter_name)
            except KeyError:
                raise ValidationError(f"Filtro desconocido '{filter_name}'")
        elif actor.rol == UserRole.CLIENTE.value:
            orders = self.repository.list_orders(client_id=actor.id)
        else:
            orders = self.repository.list_orders(driver_id=actor.id)

        if today_only:
            orders = filter_orders_by_today(orders, now)
        return orders

    def courier_queues(self, actor: User, today_only: bool = True) -> Dict[str, List[Order]]:
        orders = self.list_orders_for(actor, today_only=today_only)
        return group_for_courier(orders, self.incidents_for(orders))

    def to_response(self, order: Order, incidents: Iterable, now: Optional[datetime] = None) -> OrderResponse:
        incidents = list(incidents)
        response = OrderResponse.model_validate(order)
        response.effective_status = effective_queue(order, incidents).value
        response.has_pending_incident = pending_incident(incidents, order.id) is not None
        response.at_risk = is_order_at_risk(order, now)
        return response

    def to_responses(self, orders: List[Order]) -> List[OrderResponse]:
        incidents = self.incidents_for(orders)
        now = datetime.now()
        return [self.to_response(order, incidents, now) for order in orders]

    # ==================== CREACIÓN / BORRADO ====================

    def create_order(self, data: OrderCreate, actor: User) -> Order:
        """Crear pedido en 'pending' (remitente, o admin en nombre de uno)"""
        if actor.rol == UserRole.REPARTIDOR.value:
            raise Forbidden("Los repartidores no pueden crear pedidos")

        draft = data.model_dump(exclude={"client_id"})
        client_id = actor.id
        if actor.rol == UserRole.ADMIN.value and data.client_id is not None:
            client = self.db.query(User).filter(User.id == data.client_id).first()
            if not client or client.rol != UserRole.CLIENTE.value:
                raise ValidationError("El remitente indicado no existe")
            client_id = client.id

        logger.info(f"📦 Creando pedido para remitente {client_id}")
        return self.repository.create_order(draft, client_id)

    def delete_order(self, order_id: int, actor: User) -> None:
        """Borrado definitivo (solo despachador)"""
        if actor.rol != UserRole.ADMIN.value:
            raise Forbidden("Solo el despachador puede eliminar pedidos")
        order = self.get_order(order_id)
        logger.warning(f"🗑️ Eliminando pedido #{order.order_number} por usuario {actor.id}")
        self.repository.delete_order(order)

    # ==================== TRANSICIONES ====================

    def transition(self, order_id: int, target: OrderStatus, actor: User) -> Order:
        """
        Transición solicitada directamente por un usuario.

        Con una incidencia pendiente solo se admite cancelar; el resto de
        cambios pasa por la resolución de la incidencia.
        """
        target = OrderStatus(target)
        order = self.get_order(order_id)
        incidents = self.incidents_for([order])

        incident = pending_incident(incidents, order.id)
        if incident is not None and target != OrderStatus.CANCELLED and actor.rol == UserRole.ADMIN.value:
            raise WrongOrderState(
                f"El pedido #{order.order_number} tiene la incidencia {incident.id} pendiente; "
                f"resuélvela para cambiar su estado",
                order_id=order.id,
                incident_id=incident.id,
            )
        return self.apply_transition(order, target, actor, incidents)

    def apply_transition(
        self,
        order: Order,
        target: OrderStatus,
        actor: User,
        incidents: Iterable,
        via_evidence_gate: bool = False,
        via_assignment: bool = False,
        commit: bool = True
    ) -> Order:
        """
        Validar y aplicar ``order -> target``.

        Al entrar en un estado terminal se libera ``driver_id``; el
        repartidor queda registrado en la evidencia y en las incidencias.
        """
        target = OrderStatus(target)
        current = check_transition(
            order, target, actor, incidents,
            via_evidence_gate=via_evidence_gate,
            via_assignment=via_assignment
        )

        if target == OrderStatus.CANCELLED and EvidenceRepository(self.db).get_by_order(order.id):
            raise WrongOrderState(
                f"El pedido #{order.order_number} ya tiene evidencia de entrega; "
                f"completa la entrega en lugar de cancelarlo",
                order_id=order.id,
            )

        fields: Dict[str, Any] = {"status": target.value}
        if target in TERMINAL_STATUSES:
            fields["driver_id"] = None

        self.repository.update_order(order, fields, commit=commit)
        logger.info(
            f"🔄 Pedido #{order.order_number}: {current.value} → {target.value} "
            f"(usuario {actor.id}, rol {actor.rol})"
        )
        return order

    # ==================== ESTADÍSTICAS ====================

    def stats_for(self, actor: User, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()

        if actor.rol == UserRole.ADMIN.value:
            return {
                "total_active_orders": self.repository.count_orders(statuses=ACTIVE_STATUSES),
                "total_drivers": self.repository.count_active_couriers(),
                "deliveries_today": self.repository.count_orders(
                    statuses=[OrderStatus.DELIVERED.value], updated_on=today
                ),
                "pending_orders": self.repository.count_orders(statuses=[OrderStatus.PENDING.value]),
                "pending_incidents": self.repository.count_pending_incidents(),
            }

        if actor.rol == UserRole.CLIENTE.value:
            return {
                "total_orders": self.repository.count_orders(client_id=actor.id),
                "active_orders": self.repository.count_orders(client_id=actor.id, statuses=ACTIVE_STATUSES),
                "completed_orders": self.repository.count_orders(
                    client_id=actor.id, statuses=[OrderStatus.DELIVERED.value]
                ),
            }

        evidence_repository = EvidenceRepository(self.db)
        return {
            "assigned_orders": self.repository.count_orders(
                driver_id=actor.id, statuses=[s.value for s in COURIER_HELD_STATUSES]
            ),
            "completed_today": evidence_repository.count_by_driver(actor.id, created_on=today),
            "in_progress": self.repository.count_orders(
                driver_id=actor.id, statuses=[OrderStatus.IN_TRANSIT.value]
            ),
        }
