# delivery_app/modules/notifications/client.py
import httpx
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Set

from delivery_app.config.settings import settings
from delivery_app.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class ActionInProgress(Exception):
    """La misma acción ya tiene una petición en curso"""

    def __init__(self, action: str):
        super().__init__(f"La acción '{action}' ya está en curso")
        self.action = action


class ApiRequestError(Exception):
    """Respuesta de error del servicio de entregas"""

    def __init__(self, status_code: int, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error_code = error_code


class DeliveryApiClient:
    """
    Cliente del servicio de entregas para procesos de polling y consolas.

    Las acciones de usuario pasan por ``action()``: mientras una petición
    está en curso, repetir la misma acción lanza ``ActionInProgress``. El
    polling no usa esa guarda y sigue funcionando en paralelo.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token
        self._in_flight: Set[str] = set()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.api_timeout_seconds,
            transport=transport
        )

    async def __aenter__(self) -> "DeliveryApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _get_headers(self) -> Dict[str, str]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._get_headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"⏱️ Timeout en {method} {path}")
            raise StoreUnavailable(f"Timeout consultando {path}") from e
        except httpx.TransportError as e:
            logger.error(f"❌ Error de conexión en {method} {path}: {e}")
            raise StoreUnavailable(f"Servicio de entregas no disponible: {e}") from e

        if response.status_code >= 500:
            logger.error(f"❌ {method} {path}: {response.status_code} - {response.text}")
            raise StoreUnavailable(f"Error del servicio de entregas: {response.status_code}")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise ApiRequestError(
                response.status_code,
                body.get("message") or body.get("detail") or response.text,
                body.get("error_code")
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"❌ {method} {path}: respuesta no es JSON ({response.status_code})")
            raise StoreUnavailable(f"Respuesta inválida del servicio de entregas en {path}") from e

    @asynccontextmanager
    async def action(self, name: str):
        """Guarda de envío duplicado para una acción de usuario"""
        if name in self._in_flight:
            logger.warning(f"⏳ Acción '{name}' ignorada: ya hay una en curso")
            raise ActionInProgress(name)
        self._in_flight.add(name)
        try:
            yield
        finally:
            self._in_flight.discard(name)

    def is_in_flight(self, name: str) -> bool:
        return name in self._in_flight

    # ==================== SESIÓN ====================

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        async with self.action("login"):
            data = await self._request(
                "POST", "/api/v1/auth/login-json",
                json={"email": email, "password": password}
            )
        self.token = data["access_token"]
        logger.info(f"🔑 Sesión iniciada como {email}")
        return data["user"]

    # ==================== POLLING ====================

    async def fetch_relevant_order_ids(self, today_only: bool = False) -> Set[int]:
        """IDs de pedidos relevantes para el usuario autenticado"""
        data = await self._request(
            "GET", "/api/v1/orders/mine",
            params={"today_only": str(today_only).lower()}
        )
        try:
            return set(data["order_ids"])
        except (KeyError, TypeError) as e:
            logger.error(f"❌ Respuesta sin order_ids: {data!r}")
            raise StoreUnavailable("Respuesta inválida del servicio de entregas: falta order_ids") from e

    # ==================== ACCIONES ====================

    async def update_status(self, order_id: int, status: str) -> Dict[str, Any]:
        async with self.action(f"status:{order_id}"):
            return await self._request(
                "PATCH", f"/api/v1/orders/{order_id}/status", json={"status": status}
            )

    async def assign_courier(self, order_id: int, driver_id: int) -> Dict[str, Any]:
        async with self.action(f"assign:{order_id}"):
            return await self._request(
                "POST", f"/api/v1/assignments/orders/{order_id}/assign",
                json={"driver_id": driver_id}
            )

    async def resolve_incident(
        self,
        incident_id: int,
        decision: str,
        notes: Optional[str] = None,
        new_driver_id: Optional[int] = None
    ) -> Dict[str, Any]:
        async with self.action(f"resolve:{incident_id}"):
            return await self._request(
                "PATCH", f"/api/v1/incidents/{incident_id}",
                json={"decision": decision, "admin_notes": notes, "new_driver_id": new_driver_id}
            )
