# delivery_app/modules/assignments/service.py
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from delivery_app.core.exceptions import (
    AlreadyAssigned, Forbidden, IneligibleCourier, NoCurrentCourier, SameCourier
)
from delivery_app.shared.database.models import Order, User
from delivery_app.shared.schemas.enums import OrderStatus, UserRole
from delivery_app.modules.orders.service import OrderService
from delivery_app.modules.orders.state_machine import check_transition
from .repository import CourierRepository

logger = logging.getLogger(__name__)


def ensure_eligible(courier: Optional[User]) -> User:
    if courier is None:
        raise IneligibleCourier("El repartidor no existe")
    if courier.rol != UserRole.REPARTIDOR.value:
        raise IneligibleCourier(f"El usuario {courier.id} no tiene rol de repartidor")
    if not courier.is_active:
        raise IneligibleCourier(f"El repartidor {courier.nombre} está inactivo")
    return courier


class AssignmentService:
    """Un pedido tiene como máximo un repartidor activo"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = CourierRepository(db)
        self.orders = OrderService(db)

    def _require_dispatcher(self, actor: User) -> None:
        if actor.rol != UserRole.ADMIN.value:
            raise Forbidden("Solo el despachador puede asignar repartidores")

    def _get_courier(self, courier_id: int) -> User:
        return ensure_eligible(self.repository.get_user(courier_id))

    def assign(self, order_id: int, courier_id: int, actor: User) -> Order:
        """Asignación inicial: pending → assigned"""
        self._require_dispatcher(actor)
        order = self.orders.get_order(order_id)

        if order.driver_id is not None:
            raise AlreadyAssigned(order_id=order.id, driver_id=order.driver_id)

        courier = self._get_courier(courier_id)
        incidents = self.orders.incidents_for([order])
        check_transition(order, OrderStatus.ASSIGNED, actor, incidents, via_assignment=True)

        self.orders.repository.update_order(
            order,
            {"driver_id": courier.id, "status": OrderStatus.ASSIGNED.value}
        )
        logger.info(f"🚚 Pedido #{order.order_number} asignado a {courier.nombre} ({courier.id})")
        return order

    def transfer(self, order_id: int, courier_id: int, actor: User) -> Order:
        """Cambiar de repartidor sin tocar el estado del pedido"""
        self._require_dispatcher(actor)
        order = self.orders.get_order(order_id)
        return self.transfer_order(order, courier_id)

    def transfer_order(self, order: Order, courier_id: int, commit: bool = True) -> Order:
        if order.driver_id is None:
            raise NoCurrentCourier(order_id=order.id)
        if courier_id == order.driver_id:
            raise SameCourier(order_id=order.id, driver_id=courier_id)

        courier = self._get_courier(courier_id)
        previous = order.driver_id
        self.orders.repository.update_order(order, {"driver_id": courier.id}, commit=commit)
        logger.info(
            f"🔁 Pedido #{order.order_number} transferido: repartidor {previous} → {courier.id}"
        )
        return order

    def eligible_couriers(self, actor: User, order_id: Optional[int] = None) -> List[User]:
        """Candidatos para asignar o transferir (excluye al repartidor actual)"""
        self._require_dispatcher(actor)
        exclude_id = None
        if order_id is not None:
            exclude_id = self.orders.get_order(order_id).driver_id
        return self.repository.list_eligible_couriers(exclude_id=exclude_id)
