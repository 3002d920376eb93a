"""
Flujo completo por HTTP: crear, asignar, recoger, entregar con firma
"""
from datetime import date

from conftest import PASSWORD


def order_payload():
    today = date.today().isoformat()
    return {
        "pickup_address": "Calle Mayor 1",
        "pickup_postal_code": "28013",
        "delivery_address": "Avenida del Puerto 20",
        "delivery_postal_code": "46023",
        "recipient_name": "Laura Gómez",
        "recipient_phone": "600999888",
        "pickup_date": today,
        "pickup_time": "10:00",
        "delivery_date": today,
        "delivery_time": "12:00",
    }


def test_login_json(client, courier):
    response = client.post("/api/v1/auth/login-json", json={"email": courier.email, "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["rol"] == "repartidor"

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.json()["id"] == courier.id


def test_login_with_wrong_password(client, courier):
    response = client.post("/api/v1/auth/login-json", json={"email": courier.email, "password": "wrong-password"})
    assert response.status_code == 401


def test_full_delivery_flow(client, auth_headers, admin, sender, courier, signed_png):
    created = client.post("/api/v1/orders/", json=order_payload(), headers=auth_headers(sender))
    assert created.status_code == 200
    order = created.json()
    assert order["status"] == "pending"
    order_id = order["id"]

    feed = client.get("/api/v1/orders/mine", headers=auth_headers(admin)).json()
    assert feed["order_ids"] == [order_id]

    assigned = client.post(
        f"/api/v1/assignments/orders/{order_id}/assign",
        json={"driver_id": courier.id},
        headers=auth_headers(admin)
    )
    assert assigned.status_code == 200
    assert assigned.json()["status"] == "assigned"

    for status in ("going_to_pickup", "in_transit"):
        response = client.patch(
            f"/api/v1/orders/{order_id}/status",
            json={"status": status},
            headers=auth_headers(courier)
        )
        assert response.status_code == 200
        assert response.json()["status"] == status

    queues = client.get("/api/v1/orders/queues", headers=auth_headers(courier)).json()
    assert [o["id"] for o in queues["picked_up"]] == [order_id]

    delivered = client.post(
        f"/api/v1/evidence/orders/{order_id}",
        data={"recipient_name": "Laura Gómez", "recipient_id_number": "12345678Z"},
        files={"signature": ("firma.png", signed_png, "image/png")},
        headers=auth_headers(courier)
    )
    assert delivered.status_code == 200
    assert delivered.json()["status"] == "delivered"

    evidence = client.get(f"/api/v1/evidence/orders/{order_id}", headers=auth_headers(sender))
    assert evidence.status_code == 200
    assert evidence.json()["recipient_name"] == "Laura Gómez"


def test_domain_errors_are_rendered(client, auth_headers, admin, courier, make_order):
    order = make_order("in_transit", driver=courier)

    response = client.patch(
        f"/api/v1/orders/{order.id}/status",
        json={"status": "delivered"},
        headers=auth_headers(admin)
    )

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "invalid_transition"
    assert body["details"]["retryable"] is False


def test_blank_signature_is_rejected(client, auth_headers, courier, make_order, blank_png):
    order = make_order("in_transit", driver=courier)

    response = client.post(
        f"/api/v1/evidence/orders/{order.id}",
        data={"recipient_name": "Laura Gómez", "recipient_id_number": "12345678Z"},
        files={"signature": ("firma.png", blank_png, "image/png")},
        headers=auth_headers(courier)
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "validation_error"


def test_sender_cannot_change_status(client, auth_headers, sender, make_order):
    order = make_order()

    response = client.patch(
        f"/api/v1/orders/{order.id}/status",
        json={"status": "cancelled"},
        headers=auth_headers(sender)
    )

    assert response.status_code == 403


def test_incident_report_and_resolution(client, auth_headers, admin, courier, other_courier, make_order):
    order = make_order("going_to_pickup", driver=courier)

    reported = client.post(
        f"/api/v1/incidents/orders/{order.id}",
        data={"incident_type": "package_not_ready", "description": "El paquete aún no está embalado"},
        files={"photo": ("foto.jpg", b"\xff\xd8jpeg", "image/jpeg")},
        headers=auth_headers(courier)
    )
    assert reported.status_code == 200
    assert reported.json()["photo_attached"] is True
    incident_id = reported.json()["incident"]["id"]

    detail = client.get(f"/api/v1/orders/{order.id}", headers=auth_headers(admin)).json()
    assert detail["status"] == "going_to_pickup"
    assert detail["effective_status"] == "incident_reported"
    assert detail["has_pending_incident"] is True

    missing = client.patch(
        f"/api/v1/incidents/{incident_id}",
        json={"decision": "reassign"},
        headers=auth_headers(admin)
    )
    assert missing.status_code == 400
    assert missing.json()["error_code"] == "missing_courier"

    resolved = client.patch(
        f"/api/v1/incidents/{incident_id}",
        json={"decision": "reassign", "new_driver_id": other_courier.id, "admin_notes": "Cambio de ruta"},
        headers=auth_headers(admin)
    )
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"

    detail = client.get(f"/api/v1/orders/{order.id}", headers=auth_headers(admin)).json()
    assert detail["status"] == "assigned"
    assert detail["driver_id"] == other_courier.id

    again = client.patch(
        f"/api/v1/incidents/{incident_id}",
        json={"decision": "return"},
        headers=auth_headers(admin)
    )
    assert again.status_code == 409
    assert again.json()["error_code"] == "already_resolved"


def test_eligible_couriers(client, auth_headers, admin, courier, other_courier, inactive_courier, make_order):
    order = make_order("assigned", driver=courier)

    response = client.get(f"/api/v1/assignments/couriers?order_id={order.id}", headers=auth_headers(admin))

    data = response.json()
    assert [c["id"] for c in data["couriers"]] == [other_courier.id]
    assert data["online_count"] == 0
