# delivery_app/modules/orders/repository.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import and_, func
from typing import List, Dict, Any, Optional, Iterable
from datetime import datetime, date
import secrets
import string
import logging

from delivery_app.config.settings import settings
from delivery_app.core.exceptions import StoreUnavailable
from delivery_app.shared.database.errors import store_errors
from delivery_app.shared.database.models import Order, Incident, User
from delivery_app.shared.schemas.enums import OrderStatus, IncidentStatus, UserRole

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(length: Optional[int] = None) -> str:
    """Código corto alfanumérico legible (unicidad garantizada por la BD)"""
    length = length or settings.order_number_length
    return "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(length))


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    # ==================== LECTURA ====================

    def get_order(self, order_id: int) -> Optional[Order]:
        with store_errors(self.db, "obteniendo pedido"):
            return self.db.query(Order).filter(Order.id == order_id).first()

    def list_orders(
        self,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None
    ) -> List[Order]:
        """Pedidos filtrados, ordenados por fecha y hora de entrega"""
        with store_errors(self.db, "listando pedidos"):
            query = self.db.query(Order)
            if status:
                query = query.filter(Order.status == status)
            if statuses:
                query = query.filter(Order.status.in_(list(statuses)))
            if client_id is not None:
                query = query.filter(Order.client_id == client_id)
            if driver_id is not None:
                query = query.filter(Order.driver_id == driver_id)

            return query.order_by(
                Order.delivery_date.asc(),
                Order.delivery_time.asc(),
                Order.id.asc()
            ).all()

    def list_incidents_for_orders(self, order_ids: List[int]) -> List[Incident]:
        if not order_ids:
            return []
        with store_errors(self.db, "listando incidencias de pedidos"):
            return self.db.query(Incident).filter(
                Incident.order_id.in_(order_ids)
            ).all()

    def order_number_exists(self, order_number: str) -> bool:
        with store_errors(self.db, "verificando número de pedido"):
            return self.db.query(Order.id).filter(
                Order.order_number == order_number
            ).first() is not None

    # ==================== ESCRITURA ====================

    def create_order(self, draft: Dict[str, Any], client_id: int) -> Order:
        """
        Crear pedido en 'pending' con número único.

        El número se regenera si colisiona con uno existente. Un fallo de
        almacenamiento se reporta como no reintentable: repetir la creación
        a ciegas podría duplicar el pedido.
        """
        for attempt in range(1, settings.order_number_max_attempts + 1):
            order_number = generate_order_number()
            if self.order_number_exists(order_number):
                logger.warning(f"⚠️ Número de pedido repetido {order_number}, intento {attempt}")
                continue

            order = Order(
                **draft,
                order_number=order_number,
                client_id=client_id,
                driver_id=None,
                status=OrderStatus.PENDING.value
            )
            self.db.add(order)
            with store_errors(self.db, "creando pedido", retryable=False):
                try:
                    self.db.commit()
                except IntegrityError as e:
                    if "order_number" not in str(e.orig):
                        raise
                    self.db.rollback()
                    logger.warning(f"⚠️ Colisión al insertar {order_number}, intento {attempt}")
                    continue

            self.db.refresh(order)
            logger.info(f"✅ Pedido creado #{order.order_number} (ID {order.id})")
            return order

        raise StoreUnavailable(
            "No se pudo generar un número de pedido único",
            retryable=False
        )

    def update_order(self, order: Order, fields: Dict[str, Any], commit: bool = True) -> Order:
        """Parche genérico de campos; siempre sella updated_at"""
        for key, value in fields.items():
            setattr(order, key, value)
        order.updated_at = datetime.now()

        if commit:
            self.commit("actualizando pedido")
            self.db.refresh(order)
        return order

    def delete_order(self, order: Order) -> None:
        with store_errors(self.db, "eliminando pedido"):
            self.db.delete(order)
            self.db.commit()

    def commit(self, action: str = "guardando cambios") -> None:
        with store_errors(self.db, action):
            self.db.commit()

    # ==================== ESTADÍSTICAS ====================

    def count_orders(
        self,
        statuses: Optional[Iterable[str]] = None,
        client_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        updated_on: Optional[date] = None
    ) -> int:
        with store_errors(self.db, "contando pedidos"):
            conditions = []
            if statuses:
                conditions.append(Order.status.in_(list(statuses)))
            if client_id is not None:
                conditions.append(Order.client_id == client_id)
            if driver_id is not None:
                conditions.append(Order.driver_id == driver_id)
            if updated_on is not None:
                conditions.append(func.date(Order.updated_at) == updated_on.isoformat())

            query = self.db.query(func.count(Order.id))
            if conditions:
                query = query.filter(and_(*conditions))
            return query.scalar() or 0

    def count_active_couriers(self) -> int:
        with store_errors(self.db, "contando repartidores"):
            return self.db.query(func.count(User.id)).filter(
                User.rol == UserRole.REPARTIDOR.value,
                User.is_active.is_(True)
            ).scalar() or 0

    def count_pending_incidents(self) -> int:
        with store_errors(self.db, "contando incidencias"):
            return self.db.query(func.count(Incident.id)).filter(
                Incident.status == IncidentStatus.PENDING.value
            ).scalar() or 0
