import asyncio

import pytest

from delivery_app.core.exceptions import (
    AlreadyResolved, Forbidden, MissingCourier, MissingDecision, SameCourier,
    ValidationError, WrongOrderState
)
from delivery_app.modules.incidents.service import IncidentService
from delivery_app.modules.orders.queues import effective_queue
from delivery_app.modules.orders.service import OrderService
from delivery_app.shared.schemas.enums import IncidentStatus, OrderStatus

DESCRIPTION = "El portal está cerrado y nadie contesta"


def report(db, attachments, order, actor, incident_type="wrong_address", description=DESCRIPTION, photo=None):
    service = IncidentService(db, attachments)
    return asyncio.run(service.report(
        order.id, actor, incident_type, description, photo, "image/jpeg" if photo else None
    ))


def effective(db, order):
    db.refresh(order)
    return effective_queue(order, OrderService(db).incidents_for([order]))


def test_report_incident_on_order_in_transit(db, attachments, courier, make_order):
    order = make_order("in_transit", driver=courier)
    description = "La dirección no existe en el callejero."
    assert len(description) >= 30

    incident = report(db, attachments, order, courier, description=description)

    assert incident.status == IncidentStatus.PENDING.value
    assert incident.order_status_at_report == OrderStatus.IN_TRANSIT.value
    assert incident.photo_url is None
    db.refresh(order)
    assert order.status == OrderStatus.IN_TRANSIT.value
    assert effective(db, order) == OrderStatus.INCIDENT_REPORTED


def test_short_description_is_rejected(db, attachments, courier, make_order):
    order = make_order("in_transit", driver=courier)
    with pytest.raises(ValidationError):
        report(db, attachments, order, courier, description="  mal ")


def test_unknown_incident_type(db, attachments, courier, make_order):
    order = make_order("in_transit", driver=courier)
    with pytest.raises(ValidationError):
        report(db, attachments, order, courier, incident_type="flat_tire")


@pytest.mark.parametrize("status", ["assigned", "pending"])
def test_report_requires_pickup_or_transit(db, attachments, courier, make_order, status):
    order = make_order(status, driver=courier)
    with pytest.raises(WrongOrderState):
        report(db, attachments, order, courier)


def test_report_only_by_assigned_courier(db, attachments, courier, other_courier, admin, make_order):
    order = make_order("going_to_pickup", driver=courier)
    for actor in (other_courier, admin):
        with pytest.raises(Forbidden):
            report(db, attachments, order, actor)


def test_second_incident_while_pending_is_rejected(db, attachments, courier, make_order):
    order = make_order("going_to_pickup", driver=courier)
    report(db, attachments, order, courier)

    with pytest.raises(WrongOrderState):
        report(db, attachments, order, courier, incident_type="package_not_ready")


def test_photo_is_attached(db, attachments, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier, photo=b"\xff\xd8jpeg")
    assert incident.photo_url.endswith(f"order_{order.id}.jpg")


def test_photo_failure_does_not_block_report(db, attachments, courier, make_order):
    attachments.fail_photo = True
    order = make_order("in_transit", driver=courier)

    incident = report(db, attachments, order, courier, photo=b"\xff\xd8jpeg")

    assert incident.status == IncidentStatus.PENDING.value
    assert incident.photo_url is None


def test_resolve_with_return_cancels_order(db, attachments, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    resolved = IncidentService(db).resolve(incident.id, admin, "return", "Devolver al remitente")

    assert resolved.status == IncidentStatus.RESOLVED.value
    assert resolved.resolved_decision == "return"
    assert resolved.resolved_by_id == admin.id
    assert resolved.admin_notes == "Devolver al remitente"
    db.refresh(order)
    assert order.status == OrderStatus.CANCELLED.value
    assert order.driver_id is None


def test_resolve_with_reassign(db, attachments, admin, courier, other_courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    resolved = IncidentService(db).resolve(incident.id, admin, "reassign", new_courier_id=other_courier.id)

    assert resolved.new_driver_id == other_courier.id
    db.refresh(order)
    assert order.driver_id == other_courier.id
    assert order.status == OrderStatus.ASSIGNED.value


def test_reassign_without_courier_keeps_incident_pending(db, attachments, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    with pytest.raises(MissingCourier):
        IncidentService(db).resolve(incident.id, admin, "reassign")

    db.refresh(incident)
    assert incident.status == IncidentStatus.PENDING.value
    assert incident.resolved_at is None


def test_reassign_to_same_courier_rolls_back(db, attachments, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    with pytest.raises(SameCourier):
        IncidentService(db).resolve(incident.id, admin, "reassign", new_courier_id=courier.id)

    db.refresh(incident)
    db.refresh(order)
    assert incident.status == IncidentStatus.PENDING.value
    assert order.status == OrderStatus.IN_TRANSIT.value
    assert order.driver_id == courier.id


def test_resolve_twice_fails(db, attachments, admin, courier, other_courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)
    service = IncidentService(db)
    service.resolve(incident.id, admin, "return", "primera")
    db.refresh(incident)
    before = (incident.resolved_decision, incident.admin_notes, incident.resolved_at)

    with pytest.raises(AlreadyResolved):
        service.resolve(incident.id, admin, "reassign", "segunda", other_courier.id)

    db.refresh(incident)
    assert (incident.resolved_decision, incident.admin_notes, incident.resolved_at) == before


@pytest.mark.parametrize("decision", [None, ""])
def test_decision_is_required(db, attachments, admin, courier, make_order, decision):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    with pytest.raises(MissingDecision):
        IncidentService(db).resolve(incident.id, admin, decision)


def test_only_dispatcher_resolves(db, attachments, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    with pytest.raises(Forbidden):
        IncidentService(db).resolve(incident.id, courier, "retry")


@pytest.mark.parametrize("status", ["going_to_pickup", "in_transit"])
def test_retry_returns_to_status_at_report(db, attachments, admin, courier, make_order, status):
    order = make_order(status, driver=courier)
    incident = report(db, attachments, order, courier)

    IncidentService(db).resolve(incident.id, admin, "retry")

    db.refresh(order)
    assert order.status == status
    assert order.driver_id == courier.id
    assert effective(db, order) == OrderStatus(status)


def test_waiting_client_pauses_order(db, attachments, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    IncidentService(db).resolve(incident.id, admin, "waiting_client", "Cliente llamará")

    db.refresh(order)
    assert order.status == OrderStatus.IN_TRANSIT.value
    assert effective(db, order) == OrderStatus.INCIDENT_REPORTED

    # El despachador retoma el pedido manualmente
    OrderService(db).transition(order.id, OrderStatus.IN_TRANSIT, admin)
    assert effective(db, order) == OrderStatus.IN_TRANSIT


def test_list_incidents_newest_first(db, attachments, admin, courier, make_order):
    first = make_order("in_transit", driver=courier)
    second = make_order("going_to_pickup", driver=courier)
    older = report(db, attachments, first, courier)
    newer = report(db, attachments, second, courier)
    IncidentService(db).resolve(older.id, admin, "return")

    service = IncidentService(db)
    assert [i.id for i in service.list_incidents(admin)] == [newer.id, older.id]
    assert [i.id for i in service.list_incidents(admin, status="pending")] == [newer.id]
    assert [i.id for i in service.list_incidents(courier, order_id=first.id)] == [older.id]


def test_dispatcher_cannot_move_order_with_pending_incident(db, attachments, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)
    incident = report(db, attachments, order, courier)

    with pytest.raises(WrongOrderState) as exc:
        OrderService(db).transition(order.id, OrderStatus.GOING_TO_PICKUP, admin)

    assert exc.value.context["incident_id"] == incident.id
    db.refresh(order)
    assert order.status == OrderStatus.IN_TRANSIT.value
    assert effective(db, order) == OrderStatus.INCIDENT_REPORTED

    # Resolver con 'retry' vuelve al estado del reporte
    IncidentService(db).resolve(incident.id, admin, "retry")
    db.refresh(order)
    assert order.status == OrderStatus.IN_TRANSIT.value


def test_dispatcher_can_cancel_order_with_pending_incident(db, attachments, admin, courier, make_order):
    order = make_order("going_to_pickup", driver=courier)
    report(db, attachments, order, courier)

    OrderService(db).transition(order.id, OrderStatus.CANCELLED, admin)

    db.refresh(order)
    assert order.status == OrderStatus.CANCELLED.value
    assert order.driver_id is None
