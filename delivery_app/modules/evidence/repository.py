# delivery_app/modules/evidence/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import func, desc
from typing import List, Dict, Any, Optional
from datetime import date
import logging

from delivery_app.shared.database.errors import store_errors
from delivery_app.shared.database.models import DeliveryEvidence

logger = logging.getLogger(__name__)


class EvidenceRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: int) -> Optional[DeliveryEvidence]:
        with store_errors(self.db, "obteniendo evidencia"):
            return self.db.query(DeliveryEvidence).filter(
                DeliveryEvidence.order_id == order_id
            ).first()

    def list_by_driver(self, driver_id: int) -> List[DeliveryEvidence]:
        with store_errors(self.db, "listando evidencias"):
            return self.db.query(DeliveryEvidence).filter(
                DeliveryEvidence.driver_id == driver_id
            ).order_by(desc(DeliveryEvidence.created_at)).all()

    def count_by_driver(self, driver_id: int, created_on: Optional[date] = None) -> int:
        with store_errors(self.db, "contando evidencias"):
            query = self.db.query(func.count(DeliveryEvidence.id)).filter(
                DeliveryEvidence.driver_id == driver_id
            )
            if created_on is not None:
                query = query.filter(func.date(DeliveryEvidence.created_at) == created_on.isoformat())
            return query.scalar() or 0

    def create_evidence(self, record: Dict[str, Any]) -> DeliveryEvidence:
        """Insertar y confirmar la evidencia (sin ruta de sobrescritura)"""
        evidence = DeliveryEvidence(**record)
        with store_errors(self.db, "guardando evidencia de entrega"):
            self.db.add(evidence)
            self.db.commit()
        self.db.refresh(evidence)
        logger.info(f"✅ Evidencia {evidence.id} registrada para pedido {evidence.order_id}")
        return evidence
