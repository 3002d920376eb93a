# delivery_app/modules/notifications/sink.py
from typing import List, Tuple
import logging

from delivery_app.shared.schemas.enums import NotificationKind

logger = logging.getLogger(__name__)

MESSAGES = {
    NotificationKind.NEW_ORDER: "📦 {count} pedido(s) nuevo(s)",
    NotificationKind.NEW_ASSIGNMENT: "🚚 {count} pedido(s) asignado(s)",
}


class NotificationSink:
    """Destino de avisos: sin confirmación ni reintentos"""

    async def notify(self, kind: NotificationKind, count: int) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    async def notify(self, kind: NotificationKind, count: int) -> None:
        kind = NotificationKind(kind)
        logger.info(MESSAGES[kind].format(count=count))


class MemoryNotificationSink(NotificationSink):
    """Guarda los avisos recibidos; útil para consolas y pruebas"""

    def __init__(self):
        self.received: List[Tuple[NotificationKind, int]] = []

    async def notify(self, kind: NotificationKind, count: int) -> None:
        self.received.append((NotificationKind(kind), count))
