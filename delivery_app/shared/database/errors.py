# delivery_app/shared/database/errors.py
from contextlib import contextmanager
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from delivery_app.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, action: str, retryable: bool = True):
    """Revertir la sesión y traducir fallos de SQLAlchemy a ``StoreUnavailable``"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error de base de datos {action}: {e}")
        raise StoreUnavailable(
            f"Error de almacenamiento {action}",
            retryable=retryable,
        ) from e
