# delivery_app/modules/notifications/detector.py
"""
Detector de pedidos nuevos entre dos ciclos de polling.

Es un detector de flancos con antirrebote sobre una serie de conjuntos de
IDs: no encola eventos, solo informa cuántos IDs nuevos había al detectar.
"""
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, FrozenSet
import logging
import time

from delivery_app.config.settings import settings
from delivery_app.shared.schemas.enums import NotificationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    kind: NotificationKind
    count: int


class ChangeDetector:
    """
    Estado privado de un subsistema de avisos: ``previous``, la hora del
    último aviso y la ventana de supresión. Solo el propio poller escribe
    en él.
    """

    def __init__(
        self,
        kind: NotificationKind,
        cooldown_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.kind = NotificationKind(kind)
        self.cooldown_seconds = (
            settings.alert_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self._clock = clock
        self._previous: Optional[FrozenSet[int]] = None
        self._last_alert_at: Optional[float] = None
        self._suppressed_until: Optional[float] = None

    @property
    def seeded(self) -> bool:
        return self._previous is not None

    @property
    def previous(self) -> FrozenSet[int]:
        return self._previous or frozenset()

    def suppress(self, seconds: Optional[float] = None) -> None:
        """El usuario está usando los filtros: no avisar durante unos segundos"""
        seconds = settings.filter_suppression_seconds if seconds is None else seconds
        self._suppressed_until = self._clock() + seconds

    def is_suppressed(self) -> bool:
        return self._suppressed_until is not None and self._clock() < self._suppressed_until

    def _cooldown_elapsed(self, now: float) -> bool:
        return self._last_alert_at is None or now - self._last_alert_at >= self.cooldown_seconds

    def observe(self, current_ids: Iterable[int]) -> Optional[ChangeEvent]:
        """
        Comparar el ciclo actual con el anterior.

        Devuelve como mucho un evento. ``previous`` se reemplaza siempre al
        terminar, haya aviso o no.
        """
        current = frozenset(current_ids)
        previous = self._previous
        self._previous = current

        if previous is None:
            logger.debug(f"🌱 {self.kind.value}: estado inicial con {len(current)} pedidos")
            return None

        added = current - previous
        if not added or len(current) <= len(previous):
            return None

        now = self._clock()
        if self.is_suppressed():
            logger.debug(f"🔕 {self.kind.value}: {len(added)} nuevos durante interacción con filtros")
            return None
        if not self._cooldown_elapsed(now):
            logger.debug(f"🔕 {self.kind.value}: {len(added)} nuevos dentro del tiempo de espera")
            return None

        self._last_alert_at = now
        logger.info(f"🔔 {self.kind.value}: {len(added)} pedidos nuevos")
        return ChangeEvent(kind=self.kind, count=len(added))
