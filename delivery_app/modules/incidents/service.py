# delivery_app/modules/incidents/service.py
from typing import Optional, List
from datetime import datetime
import logging

from sqlalchemy.orm import Session

from delivery_app.config.settings import settings
from delivery_app.core.exceptions import (
    AlreadyResolved, DomainError, Forbidden, MissingCourier, MissingDecision,
    NotFound, ValidationError, WrongOrderState
)
from delivery_app.shared.database.models import Incident, Order, User
from delivery_app.shared.schemas.enums import (
    IncidentStatus, IncidentType, OrderStatus, ResolutionDecision, UserRole
)
from delivery_app.shared.services.cloudinary_service import CloudinaryService, cloudinary_service
from delivery_app.modules.orders.service import OrderService
from delivery_app.modules.orders.queues import effective_queue
from delivery_app.modules.assignments.service import AssignmentService
from .repository import IncidentRepository

logger = logging.getLogger(__name__)

REPORTABLE_STATUSES = frozenset({OrderStatus.GOING_TO_PICKUP, OrderStatus.IN_TRANSIT})


class IncidentService:
    """
    Flujo de incidencias: ``pending → resolved`` (una sola vez).

    Reportar no cambia el estado guardado del pedido; mientras la incidencia
    esté pendiente el estado efectivo del pedido es ``incident_reported``.
    """

    def __init__(self, db: Session, attachments: Optional[CloudinaryService] = None):
        self.db = db
        self.repository = IncidentRepository(db)
        self.orders = OrderService(db)
        self.assignments = AssignmentService(db)
        self.attachments = attachments or cloudinary_service

    # ==================== REPORTE ====================

    async def report(
        self,
        order_id: int,
        actor: User,
        incident_type: str,
        description: str,
        photo: Optional[bytes] = None,
        content_type: Optional[str] = None
    ) -> Incident:
        description = (description or "").strip()
        if len(description) < settings.incident_min_description_length:
            raise ValidationError(
                f"La descripción debe tener al menos "
                f"{settings.incident_min_description_length} caracteres",
                field="description"
            )
        try:
            incident_type = IncidentType(incident_type)
        except ValueError:
            raise ValidationError(f"Tipo de incidencia desconocido '{incident_type}'", field="incident_type")

        order = self.orders.get_order(order_id)
        if actor.rol != UserRole.REPARTIDOR.value or order.driver_id != actor.id:
            raise Forbidden("Solo el repartidor asignado puede reportar incidencias")

        current = effective_queue(order, self.orders.incidents_for([order]))
        if current not in REPORTABLE_STATUSES:
            raise WrongOrderState(
                "Solo se pueden reportar incidencias en recogida o en tránsito",
                current_status=current.value
            )

        photo_url = None
        attachment = await self.attachments.try_upload_incident_photo(photo, content_type, order.id)
        if attachment is not None:
            if attachment.ok:
                photo_url = attachment.url
            else:
                logger.warning(
                    f"⚠️ Foto de incidencia no subida para pedido #{order.order_number}: "
                    f"{attachment.error}. Se crea la incidencia sin foto"
                )

        incident = self.repository.create_incident({
            "order_id": order.id,
            "driver_id": actor.id,
            "incident_type": incident_type.value,
            "description": description,
            "photo_url": photo_url,
            "status": IncidentStatus.PENDING.value,
            "order_status_at_report": order.status,
        })
        logger.info(
            f"🚨 Incidencia {incident.id} ({incident.incident_type}) en pedido "
            f"#{order.order_number} reportada por repartidor {actor.id}"
        )
        return incident

    # ==================== RESOLUCIÓN ====================

    def resolve(
        self,
        incident_id: int,
        actor: User,
        decision: Optional[str],
        notes: Optional[str] = None,
        new_courier_id: Optional[int] = None
    ) -> Incident:
        """
        Resolver la incidencia y aplicar exactamente un efecto sobre el pedido.

        El cambio de la incidencia y el del pedido se confirman juntos; si
        alguna validación falla la incidencia sigue pendiente.
        """
        if actor.rol != UserRole.ADMIN.value:
            raise Forbidden("Solo el despachador puede resolver incidencias")

        incident = self.get_incident(incident_id)
        if incident.status == IncidentStatus.RESOLVED.value:
            raise AlreadyResolved(incident_id=incident.id)

        if not decision:
            raise MissingDecision(incident_id=incident.id)
        try:
            decision = ResolutionDecision(decision)
        except ValueError:
            raise ValidationError(f"Decisión desconocida '{decision}'", field="decision")

        if decision == ResolutionDecision.REASSIGN and new_courier_id is None:
            raise MissingCourier(incident_id=incident.id)

        order = self.orders.get_order(incident.order_id)
        # La incidencia sigue pendiente aquí: las guardas ven 'incident_reported'
        incidents = self.orders.incidents_for([order])

        try:
            self._apply_decision(order, incident, decision, actor, incidents, new_courier_id)
            self.repository.update_incident(incident, {
                "status": IncidentStatus.RESOLVED.value,
                "resolved_decision": decision.value,
                "admin_notes": notes or None,
                "new_driver_id": new_courier_id if decision == ResolutionDecision.REASSIGN else None,
                "resolved_by_id": actor.id,
                "resolved_at": datetime.now(),
            }, commit=False)
            self.orders.repository.commit("resolviendo incidencia")
        except DomainError:
            self.db.rollback()
            raise

        self.db.refresh(incident)
        self.db.refresh(order)
        logger.info(
            f"✅ Incidencia {incident.id} resuelta con '{decision.value}' por {actor.id}; "
            f"pedido #{order.order_number} en '{order.status}'"
        )
        return incident

    def _apply_decision(
        self,
        order: Order,
        incident: Incident,
        decision: ResolutionDecision,
        actor: User,
        incidents: List[Incident],
        new_courier_id: Optional[int]
    ) -> None:
        if decision == ResolutionDecision.RETRY:
            target = OrderStatus(incident.order_status_at_report)
            self.orders.apply_transition(order, target, actor, incidents, commit=False)
        elif decision == ResolutionDecision.RETURN:
            self.orders.apply_transition(order, OrderStatus.CANCELLED, actor, incidents, commit=False)
        elif decision == ResolutionDecision.REASSIGN:
            self.assignments.transfer_order(order, new_courier_id, commit=False)
            self.orders.apply_transition(order, OrderStatus.ASSIGNED, actor, incidents, commit=False)
        else:
            # waiting_client: el pedido queda en pausa hasta la próxima acción
            logger.info(f"⏸️ Pedido #{order.order_number} en espera del cliente")

    # ==================== CONSULTAS ====================

    def get_incident(self, incident_id: int) -> Incident:
        incident = self.repository.get_incident(incident_id)
        if not incident:
            raise NotFound(f"Incidencia {incident_id} no encontrada", incident_id=incident_id)
        return incident

    def list_incidents(
        self,
        actor: User,
        order_id: Optional[int] = None,
        status: Optional[str] = None
    ) -> List[Incident]:
        if status is not None:
            try:
                status = IncidentStatus(status).value
            except ValueError:
                raise ValidationError(f"Estado de incidencia desconocido '{status}'", field="status")

        if actor.rol == UserRole.ADMIN.value:
            return self.repository.list_incidents(order_id=order_id, status=status)
        if actor.rol == UserRole.REPARTIDOR.value:
            return self.repository.list_incidents(order_id=order_id, driver_id=actor.id, status=status)

        if order_id is None:
            raise Forbidden("Los remitentes solo pueden consultar incidencias de un pedido propio")
        self.orders.get_order_for(order_id, actor)
        return self.repository.list_incidents(order_id=order_id, status=status)
