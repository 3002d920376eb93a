# delivery_app/modules/assignments/repository.py
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from delivery_app.shared.database.errors import store_errors
from delivery_app.shared.database.models import User
from delivery_app.shared.schemas.enums import UserRole

logger = logging.getLogger(__name__)


class CourierRepository:
    """Directorio de repartidores (solo lo necesario para elegibilidad)"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        with store_errors(self.db, "obteniendo usuario"):
            return self.db.query(User).filter(User.id == user_id).first()

    def list_eligible_couriers(self, exclude_id: Optional[int] = None) -> List[User]:
        """Repartidores activos; la conexión (online/offline) no filtra"""
        with store_errors(self.db, "listando repartidores"):
            query = self.db.query(User).filter(
                User.rol == UserRole.REPARTIDOR.value,
                User.is_active.is_(True)
            )
            if exclude_id is not None:
                query = query.filter(User.id != exclude_id)
            couriers = query.order_by(User.nombre.asc()).all()

        logger.info(f"🚚 {len(couriers)} repartidores elegibles")
        return couriers
