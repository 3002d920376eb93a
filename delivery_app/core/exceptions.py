# delivery_app/core/exceptions.py
"""
Taxonomía de errores del dominio de entregas.

Cada error es un ``HTTPException`` con un ``error_code`` estable y una marca
``retryable``: todos se recuperan en el borde de la acción del usuario y se
muestran como mensaje, ninguno es fatal para el proceso.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base de los errores de negocio"""
    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "domain_error"
    default_detail: str = "Operación no válida"
    retryable: bool = False

    def __init__(self, detail: Optional[str] = None, **context: Any):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.detail,
            "error_code": self.error_code,
            "details": {"retryable": self.retryable, **self.context},
        }


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"
    default_detail = "Recurso no encontrado"


# ---- Validación ----

class ValidationError(DomainError):
    status_code = 422
    error_code = "validation_error"
    default_detail = "Datos de entrada inválidos"


# ---- Máquina de estados ----

class InvalidTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_transition"
    default_detail = "Transición de estado no permitida"


class WrongOrderState(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "wrong_order_state"
    default_detail = "El pedido no está en un estado válido para esta acción"


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"
    default_detail = "No tienes permisos para esta acción"


# ---- Asignación ----

class IneligibleCourier(DomainError):
    error_code = "ineligible_courier"
    default_detail = "El repartidor no está activo o no tiene rol de repartidor"


class AlreadyAssigned(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "already_assigned"
    default_detail = "El pedido ya tiene repartidor; usa la transferencia"


class NoCurrentCourier(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "no_current_courier"
    default_detail = "El pedido no tiene repartidor asignado; usa la asignación"


class SameCourier(DomainError):
    error_code = "same_courier"
    default_detail = "El pedido ya está asignado a ese repartidor"


# ---- Incidencias ----

class AlreadyResolved(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "already_resolved"
    default_detail = "La incidencia ya fue resuelta"


class MissingDecision(DomainError):
    error_code = "missing_decision"
    default_detail = "Debes seleccionar una decisión"


class MissingCourier(DomainError):
    error_code = "missing_courier"
    default_detail = "Debes seleccionar un repartidor para reasignar"


# ---- Almacenamiento ----

class StoreUnavailable(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "store_unavailable"
    default_detail = "El almacenamiento no está disponible, intenta de nuevo"
    retryable = True

    def __init__(self, detail: Optional[str] = None, retryable: bool = True, **context: Any):
        super().__init__(detail, **context)
        self.retryable = retryable
