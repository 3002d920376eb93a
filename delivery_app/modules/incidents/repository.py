# delivery_app/modules/incidents/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List, Dict, Any, Optional
import logging

from delivery_app.shared.database.errors import store_errors
from delivery_app.shared.database.models import Incident

logger = logging.getLogger(__name__)


class IncidentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_incident(self, incident_id: int) -> Optional[Incident]:
        with store_errors(self.db, "obteniendo incidencia"):
            return self.db.query(Incident).filter(Incident.id == incident_id).first()

    def list_incidents(
        self,
        order_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[str] = None
    ) -> List[Incident]:
        """Incidencias filtradas, más recientes primero"""
        with store_errors(self.db, "listando incidencias"):
            query = self.db.query(Incident)
            if order_id is not None:
                query = query.filter(Incident.order_id == order_id)
            if driver_id is not None:
                query = query.filter(Incident.driver_id == driver_id)
            if status:
                query = query.filter(Incident.status == status)
            return query.order_by(desc(Incident.created_at), desc(Incident.id)).all()

    def create_incident(self, draft: Dict[str, Any]) -> Incident:
        incident = Incident(**draft)
        with store_errors(self.db, "creando incidencia"):
            self.db.add(incident)
            self.db.commit()
        self.db.refresh(incident)
        logger.info(f"✅ Incidencia {incident.id} creada para pedido {incident.order_id}")
        return incident

    def update_incident(self, incident: Incident, fields: Dict[str, Any], commit: bool = True) -> Incident:
        for key, value in fields.items():
            setattr(incident, key, value)

        if commit:
            with store_errors(self.db, "actualizando incidencia"):
                self.db.commit()
            self.db.refresh(incident)
        return incident
