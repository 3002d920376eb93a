from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from delivery_app.core.exceptions import Forbidden, InvalidTransition
from delivery_app.modules.orders.state_machine import (
    ALLOWED_TRANSITIONS, COURIER_FORWARD_EDGES, check_transition
)
from delivery_app.shared.schemas.enums import OrderStatus, UserRole

S = OrderStatus

ADMIN = SimpleNamespace(id=1, rol=UserRole.ADMIN.value)
SENDER = SimpleNamespace(id=2, rol=UserRole.CLIENTE.value)
COURIER = SimpleNamespace(id=3, rol=UserRole.REPARTIDOR.value)
OTHER_COURIER = SimpleNamespace(id=4, rol=UserRole.REPARTIDOR.value)


def make_order(status, driver_id=3):
    return SimpleNamespace(id=10, status=status.value, driver_id=driver_id, updated_at=datetime.now())


def pending_incident(order_id=10):
    return SimpleNamespace(
        id=1, order_id=order_id, status="pending",
        resolved_decision=None, resolved_at=None,
        created_at=datetime.now() - timedelta(minutes=5)
    )


ALL_EDGES = [(source, target) for source, targets in ALLOWED_TRANSITIONS.items() for target in targets]
NON_EDGES = [
    (source, target)
    for source in S for target in S
    if target not in ALLOWED_TRANSITIONS[source]
]


@pytest.mark.parametrize("source,target", [(s, t) for s, t in ALL_EDGES if t != S.INCIDENT_REPORTED])
def test_dispatcher_can_take_every_edge(source, target):
    order = make_order(source)
    incidents = [pending_incident()] if source == S.INCIDENT_REPORTED else []

    current = check_transition(
        order, target, ADMIN, incidents,
        via_evidence_gate=True, via_assignment=True
    )

    assert current == source


@pytest.mark.parametrize("source,target", [(s, t) for s, t in NON_EDGES if s != S.INCIDENT_REPORTED])
def test_non_successors_are_rejected(source, target):
    with pytest.raises(InvalidTransition):
        check_transition(make_order(source), target, ADMIN, [], via_evidence_gate=True, via_assignment=True)


def test_terminal_states_have_no_successors():
    assert ALLOWED_TRANSITIONS[S.DELIVERED] == frozenset()
    assert ALLOWED_TRANSITIONS[S.CANCELLED] == frozenset()


@pytest.mark.parametrize("source,target", ALL_EDGES)
def test_sender_can_never_transition(source, target):
    with pytest.raises(Forbidden):
        check_transition(make_order(source), target, SENDER, [], via_evidence_gate=True)


@pytest.mark.parametrize("source,target", sorted(COURIER_FORWARD_EDGES))
def test_courier_moves_own_order_forward(source, target):
    assert check_transition(make_order(source), target, COURIER, [], via_evidence_gate=True) == source


@pytest.mark.parametrize("source,target", sorted(COURIER_FORWARD_EDGES))
def test_courier_cannot_touch_other_couriers_order(source, target):
    with pytest.raises(Forbidden):
        check_transition(make_order(source), target, OTHER_COURIER, [], via_evidence_gate=True)


def test_courier_cannot_cancel():
    with pytest.raises(Forbidden):
        check_transition(make_order(S.IN_TRANSIT), S.CANCELLED, COURIER)


def test_courier_cannot_leave_incident_reported():
    order = make_order(S.IN_TRANSIT)
    with pytest.raises(Forbidden):
        check_transition(order, S.IN_TRANSIT, COURIER, [pending_incident()])


def test_delivered_requires_evidence_gate():
    with pytest.raises(InvalidTransition):
        check_transition(make_order(S.IN_TRANSIT), S.DELIVERED, ADMIN)


@pytest.mark.parametrize("source", [S.GOING_TO_PICKUP, S.IN_TRANSIT])
def test_incident_reported_is_never_a_direct_target(source):
    assert S.INCIDENT_REPORTED in ALLOWED_TRANSITIONS[source]

    with pytest.raises(InvalidTransition) as exc:
        check_transition(make_order(source), S.INCIDENT_REPORTED, ADMIN, [])

    assert exc.value.context["target_status"] == S.INCIDENT_REPORTED.value


def test_assigned_without_courier_requires_assignment():
    order = make_order(S.PENDING, driver_id=None)
    with pytest.raises(InvalidTransition):
        check_transition(order, S.ASSIGNED, ADMIN)

    assert check_transition(order, S.ASSIGNED, ADMIN, via_assignment=True) == S.PENDING


def test_pending_incident_blocks_delivery():
    order = make_order(S.IN_TRANSIT)
    with pytest.raises(InvalidTransition) as exc:
        check_transition(order, S.DELIVERED, COURIER, [pending_incident()], via_evidence_gate=True)

    assert exc.value.context["current_status"] == S.INCIDENT_REPORTED.value
