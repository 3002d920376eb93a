# delivery_app/shared/schemas/enums.py

"""
Enumeraciones del dominio de entregas
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles de usuario"""
    ADMIN = "admin"              # despachador
    CLIENTE = "cliente"          # remitente
    REPARTIDOR = "repartidor"    # courier


class OnlineStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class OrderStatus(str, Enum):
    """Estados del pedido"""
    PENDING = "pending"
    ASSIGNED = "assigned"
    GOING_TO_PICKUP = "going_to_pickup"
    IN_TRANSIT = "in_transit"
    INCIDENT_REPORTED = "incident_reported"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Estados en los que el pedido tiene un repartidor asignado
COURIER_HELD_STATUSES = frozenset({
    OrderStatus.ASSIGNED,
    OrderStatus.GOING_TO_PICKUP,
    OrderStatus.IN_TRANSIT,
    OrderStatus.INCIDENT_REPORTED,
})

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class IncidentType(str, Enum):
    PACKAGE_NOT_READY = "package_not_ready"
    RECIPIENT_UNAVAILABLE = "recipient_unavailable"
    WRONG_ADDRESS = "wrong_address"
    DAMAGED_PACKAGE = "damaged_package"
    OTHER = "other"


class IncidentStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class ResolutionDecision(str, Enum):
    """Decisiones del despachador al resolver una incidencia"""
    RETRY = "retry"
    RETURN = "return"
    REASSIGN = "reassign"
    WAITING_CLIENT = "waiting_client"


class NotificationKind(str, Enum):
    NEW_ORDER = "new_order"
    NEW_ASSIGNMENT = "new_assignment"
