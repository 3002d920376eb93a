# delivery_app/modules/orders/queues.py
"""
Estado efectivo y agrupación de pedidos por cola.

``incident_reported`` se calcula a partir de las incidencias del pedido en
lugar de guardarse dos veces.
"""
from typing import Dict, Iterable, List, Optional

from delivery_app.shared.schemas.enums import (
    OrderStatus, IncidentStatus, ResolutionDecision, TERMINAL_STATUSES
)

# Pestañas de la app del repartidor
COURIER_TABS: Dict[str, frozenset] = {
    "assigned": frozenset({OrderStatus.PENDING, OrderStatus.ASSIGNED, OrderStatus.GOING_TO_PICKUP}),
    "picked_up": frozenset({OrderStatus.IN_TRANSIT}),
    "incident_reported": frozenset({OrderStatus.INCIDENT_REPORTED}),
}

# Filtros del panel del despachador; None = todos
DISPATCHER_FILTERS: Dict[str, Optional[frozenset]] = {
    "todos": None,
    "pendientes": frozenset({OrderStatus.PENDING, OrderStatus.ASSIGNED, OrderStatus.GOING_TO_PICKUP}),
    "recogidos": frozenset({OrderStatus.IN_TRANSIT}),
    "entregados": frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
}


def _is_waiting_client_pause(order, incident) -> bool:
    if incident.resolved_decision != ResolutionDecision.WAITING_CLIENT.value:
        return False
    if incident.resolved_at is None or order.updated_at is None:
        return True
    # Cualquier cambio posterior del pedido libera la pausa
    return order.updated_at <= incident.resolved_at


def effective_queue(order, incidents: Iterable) -> OrderStatus:
    """
    Estado efectivo del pedido.

    - Pedidos terminados: su estado guardado.
    - ``incident_reported`` si hay una incidencia pendiente, o si la última
      incidencia se resolvió con ``waiting_client`` y el pedido no cambió
      desde entonces.
    - En otro caso, el estado guardado.
    """
    stored = OrderStatus(order.status)
    if stored in TERMINAL_STATUSES:
        return stored

    own = [i for i in incidents if i.order_id == order.id]
    if any(i.status == IncidentStatus.PENDING.value for i in own):
        return OrderStatus.INCIDENT_REPORTED

    if own:
        latest = max(own, key=lambda i: (i.created_at, i.id))
        if _is_waiting_client_pause(order, latest):
            return OrderStatus.INCIDENT_REPORTED

    return stored


def pending_incident(incidents: Iterable, order_id: int):
    """Incidencia pendiente del pedido, si existe"""
    for incident in incidents:
        if incident.order_id == order_id and incident.status == IncidentStatus.PENDING.value:
            return incident
    return None


def courier_tab(order, incidents: Iterable) -> Optional[str]:
    status = effective_queue(order, incidents)
    for tab, statuses in COURIER_TABS.items():
        if status in statuses:
            return tab
    return None


def group_for_courier(orders: Iterable, incidents: Iterable) -> Dict[str, List]:
    incidents = list(incidents)
    groups: Dict[str, List] = {tab: [] for tab in COURIER_TABS}
    for order in orders:
        tab = courier_tab(order, incidents)
        if tab:
            groups[tab].append(order)
    return groups


def filter_for_dispatcher(orders: Iterable, filter_name: str) -> List:
    if filter_name not in DISPATCHER_FILTERS:
        raise KeyError(filter_name)
    statuses = DISPATCHER_FILTERS[filter_name]
    if statuses is None:
        return list(orders)
    return [o for o in orders if OrderStatus(o.status) in statuses]
