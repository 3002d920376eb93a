# delivery_app/modules/evidence/service.py
from typing import Optional, Tuple, List
import logging

from sqlalchemy.orm import Session

from delivery_app.core.exceptions import Forbidden, NotFound, ValidationError
from delivery_app.shared.database.models import DeliveryEvidence, Order, User
from delivery_app.shared.schemas.enums import OrderStatus, UserRole
from delivery_app.shared.services.cloudinary_service import CloudinaryService, cloudinary_service
from delivery_app.modules.orders.service import OrderService
from delivery_app.modules.orders.state_machine import check_transition
from .repository import EvidenceRepository
from .signature import validate_signature

logger = logging.getLogger(__name__)


class EvidenceService:
    """Compuerta de evidencia: ningún pedido llega a 'delivered' sin prueba firmada"""

    def __init__(self, db: Session, attachments: Optional[CloudinaryService] = None):
        self.db = db
        self.repository = EvidenceRepository(db)
        self.orders = OrderService(db)
        self.attachments = attachments or cloudinary_service

    async def finalize_delivery(
        self,
        order_id: int,
        actor: User,
        recipient_name: str,
        recipient_id_number: str,
        signature: bytes,
        notes: Optional[str] = None
    ) -> Tuple[DeliveryEvidence, Order]:
        """
        Registrar la evidencia y pasar el pedido a 'delivered'.

        La evidencia se confirma antes que el cambio de estado. Si el cambio
        de estado falla, la evidencia queda guardada y una nueva llamada solo
        reintenta la transición, sin volver a capturar ni subir la firma.
        """
        recipient_name = (recipient_name or "").strip()
        recipient_id_number = (recipient_id_number or "").strip()

        if not recipient_name:
            raise ValidationError("Por favor ingresa el nombre del destinatario", field="recipient_name")
        if not recipient_id_number:
            raise ValidationError("Por favor ingresa el documento del destinatario", field="recipient_id_number")
        validate_signature(signature)

        order = self.orders.get_order(order_id)
        incidents = self.orders.incidents_for([order])

        # Guardas antes de cualquier escritura
        check_transition(order, OrderStatus.DELIVERED, actor, incidents, via_evidence_gate=True)

        evidence = self.repository.get_by_order(order.id)
        if evidence is None:
            driver_id = order.driver_id
            signature_url = await self.attachments.upload_signature(signature, order.id, driver_id)
            evidence = self.repository.create_evidence({
                "order_id": order.id,
                "driver_id": driver_id,
                "recipient_name": recipient_name,
                "recipient_id_number": recipient_id_number,
                "signature_url": signature_url,
                "notes": notes or None,
            })
        else:
            logger.warning(
                f"⚠️ Pedido #{order.order_number} ya tiene evidencia {evidence.id}; "
                f"solo se reintenta el cambio de estado"
            )

        self.orders.apply_transition(
            order, OrderStatus.DELIVERED, actor, incidents, via_evidence_gate=True
        )
        logger.info(f"🏁 Pedido #{order.order_number} entregado")
        return evidence, order

    def retry_delivered_transition(self, order_id: int, actor: User) -> Order:
        """Completar una entrega cuya evidencia ya existe"""
        order = self.orders.get_order(order_id)
        if self.repository.get_by_order(order.id) is None:
            raise ValidationError("El pedido no tiene evidencia de entrega registrada")

        incidents = self.orders.incidents_for([order])
        return self.orders.apply_transition(
            order, OrderStatus.DELIVERED, actor, incidents, via_evidence_gate=True
        )

    def get_evidence(self, order_id: int, actor: User) -> DeliveryEvidence:
        order = self.orders.get_order(order_id)
        evidence = self.repository.get_by_order(order.id)
        if evidence is None:
            raise NotFound(f"El pedido {order_id} no tiene evidencia de entrega")
        if actor.rol == UserRole.CLIENTE.value and order.client_id != actor.id:
            raise Forbidden("No tienes acceso a este pedido")
        if actor.rol == UserRole.REPARTIDOR.value and evidence.driver_id != actor.id:
            raise Forbidden("No tienes acceso a esta evidencia")
        return evidence

    def list_by_driver(self, driver_id: int, actor: User) -> List[DeliveryEvidence]:
        if actor.rol != UserRole.ADMIN.value and actor.id != driver_id:
            raise Forbidden("Solo puedes ver tus propias entregas")
        return self.repository.list_by_driver(driver_id)
