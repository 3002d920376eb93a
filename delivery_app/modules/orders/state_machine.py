# delivery_app/modules/orders/state_machine.py
"""
Máquina de estados del pedido.

Funciones puras: validan una transición contra el estado *efectivo* del
pedido (ver ``queues.effective_queue``) y el rol de quien la inicia. No
escriben en la base de datos; ``OrderService.transition`` aplica el cambio.
"""
from typing import Dict, FrozenSet, Iterable, Optional

from delivery_app.core.exceptions import Forbidden, InvalidTransition
from delivery_app.shared.schemas.enums import OrderStatus, UserRole
from .queues import effective_queue

S = OrderStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING: frozenset({S.ASSIGNED, S.CANCELLED}),
    S.ASSIGNED: frozenset({S.GOING_TO_PICKUP, S.CANCELLED}),
    S.GOING_TO_PICKUP: frozenset({S.IN_TRANSIT, S.INCIDENT_REPORTED, S.CANCELLED}),
    S.IN_TRANSIT: frozenset({S.DELIVERED, S.INCIDENT_REPORTED, S.CANCELLED}),
    S.INCIDENT_REPORTED: frozenset({S.GOING_TO_PICKUP, S.IN_TRANSIT, S.ASSIGNED, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
}

# Avances que un repartidor puede hacer sobre sus propios pedidos
COURIER_FORWARD_EDGES = frozenset({
    (S.ASSIGNED, S.GOING_TO_PICKUP),
    (S.GOING_TO_PICKUP, S.IN_TRANSIT),
    (S.IN_TRANSIT, S.DELIVERED),
})


def allowed_successors(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return ALLOWED_TRANSITIONS[OrderStatus(status)]


def check_transition(
    order,
    target: OrderStatus,
    actor,
    incidents: Optional[Iterable] = None,
    via_evidence_gate: bool = False,
    via_assignment: bool = False,
) -> OrderStatus:
    """
    Validar ``order -> target`` para ``actor``.

    Devuelve el estado efectivo desde el que se transiciona. Lanza
    ``InvalidTransition`` si el destino no es sucesor legal o solo se
    alcanza por su propia vía de entrada, y ``Forbidden`` si el rol no puede iniciar esa arista.
    """
    target = OrderStatus(target)
    current = effective_queue(order, incidents or [])

    if actor.rol == UserRole.CLIENTE.value:
        raise Forbidden("Los remitentes no pueden cambiar el estado del pedido")

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"No se puede pasar de '{current.value}' a '{target.value}'",
            current_status=current.value,
            target_status=target.value,
        )

    if actor.rol == UserRole.REPARTIDOR.value:
        if order.driver_id != actor.id:
            raise Forbidden("Solo el repartidor asignado puede actualizar este pedido")
        if (current, target) not in COURIER_FORWARD_EDGES:
            raise Forbidden(
                f"Un repartidor no puede pasar un pedido de '{current.value}' a '{target.value}'"
            )
    elif actor.rol != UserRole.ADMIN.value:
        raise Forbidden(f"Rol '{actor.rol}' no autorizado")

    if target == S.DELIVERED and not via_evidence_gate:
        raise InvalidTransition(
            "La entrega solo se puede finalizar registrando la evidencia de entrega",
            current_status=current.value,
            target_status=target.value,
        )

    # La arista existe en el grafo, pero el estado se deriva de la incidencia
    if target == S.INCIDENT_REPORTED:
        raise InvalidTransition(
            "Un pedido solo pasa a incidencia cuando el repartidor reporta una",
            current_status=current.value,
            target_status=target.value,
        )

    if target == S.ASSIGNED and order.driver_id is None and not via_assignment:
        raise InvalidTransition(
            "El pedido no tiene repartidor; usa la asignación",
            current_status=current.value,
            target_status=target.value,
        )

    return current
