# delivery_app/modules/notifications/poller.py
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, Set

from delivery_app.config.settings import settings
from delivery_app.core.exceptions import StoreUnavailable
from delivery_app.shared.schemas.enums import NotificationKind, UserRole
from .client import ApiRequestError, DeliveryApiClient
from .detector import ChangeDetector, ChangeEvent
from .sink import NotificationSink

logger = logging.getLogger(__name__)

FetchIds = Callable[[], Awaitable[Iterable[int]]]

KIND_BY_ROLE = {
    UserRole.ADMIN: NotificationKind.NEW_ORDER,
    UserRole.CLIENTE: NotificationKind.NEW_ORDER,
    UserRole.REPARTIDOR: NotificationKind.NEW_ASSIGNMENT,
}


class OrderFeedPoller:
    """
    Ciclo de polling de un actor.

    Cada ciclo recibe un número de secuencia; si otro ciclo empezó después
    (por ejemplo con ``refresh_now()``), el resultado del anterior se
    descarta al llegar. Los avisos se envían al sink sin esperar respuesta.
    """

    def __init__(
        self,
        fetch_ids: FetchIds,
        detector: ChangeDetector,
        sink: NotificationSink,
        interval_seconds: Optional[float] = None
    ):
        self._fetch_ids = fetch_ids
        self.detector = detector
        self.sink = sink
        self.interval_seconds = (
            settings.order_poll_interval_seconds if interval_seconds is None else interval_seconds
        )
        self._seq = 0
        self._task: Optional[asyncio.Task] = None
        self._pending_notifications: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> Optional[ChangeEvent]:
        self._seq += 1
        seq = self._seq

        ids = await self._fetch_ids()

        if seq != self._seq:
            logger.debug(f"🗑️ Ciclo {seq} descartado: ya empezó el ciclo {self._seq}")
            return None

        event = self.detector.observe(ids)
        if event is not None:
            self._dispatch(event)
        return event

    def refresh_now(self) -> asyncio.Task:
        """Lanzar un ciclo inmediato; los ciclos anteriores en curso quedan obsoletos"""
        return asyncio.create_task(self.poll_once())

    def suppress_alerts(self, seconds: Optional[float] = None) -> None:
        """El usuario cambió los filtros: silenciar avisos unos segundos"""
        self.detector.suppress(seconds)

    def _dispatch(self, event: ChangeEvent) -> None:
        task = asyncio.create_task(self._notify(event))
        self._pending_notifications.add(task)
        task.add_done_callback(self._pending_notifications.discard)

    async def _notify(self, event: ChangeEvent) -> None:
        try:
            await self.sink.notify(event.kind, event.count)
        except Exception as e:
            logger.error(f"❌ Aviso {event.kind.value} ({event.count}) perdido: {e}")

    async def drain(self) -> None:
        """Esperar a que terminen los avisos ya lanzados"""
        if self._pending_notifications:
            await asyncio.gather(*self._pending_notifications, return_exceptions=True)

    async def run(self) -> None:
        logger.info(
            f"🔄 Polling {self.detector.kind.value} cada {self.interval_seconds}s"
        )
        while True:
            try:
                await self.poll_once()
            except (StoreUnavailable, ApiRequestError) as e:
                # Un ciclo fallido no detiene el polling; el siguiente lo reintenta
                logger.warning(f"⚠️ Ciclo de polling fallido: {e}")
            except Exception:
                logger.exception("❌ Error inesperado en el ciclo de polling; se reintenta en el siguiente")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        await self.drain()
        logger.info(f"⏹️ Polling {self.detector.kind.value} detenido")


def poller_for_role(
    client: DeliveryApiClient,
    role: str,
    sink: NotificationSink,
    today_only: bool = False
) -> OrderFeedPoller:
    """Un poller por sesión, con su propio detector"""
    kind = KIND_BY_ROLE[UserRole(role)]

    async def fetch_ids():
        return await client.fetch_relevant_order_ids(today_only=today_only)

    return OrderFeedPoller(fetch_ids, ChangeDetector(kind), sink)
