"""
Pytest configuration and fixtures for the delivery service
"""
from datetime import date
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from delivery_app.config.database import Base, get_db
from delivery_app.core.auth.service import AuthService
from delivery_app.core.exceptions import StoreUnavailable
from delivery_app.main import app
from delivery_app.modules.orders.repository import OrderRepository
from delivery_app.shared.database.models import User
from delivery_app.shared.schemas.enums import OnlineStatus, UserRole
from delivery_app.shared.services.cloudinary_service import AttachmentResult, get_attachment_service

PASSWORD = "secret123"
PASSWORD_HASH = AuthService.get_password_hash(PASSWORD)


class FakeAttachmentStorage:
    """Almacenamiento de adjuntos en memoria"""

    def __init__(self):
        self.signatures = []
        self.photos = []
        self.fail_signature = False
        self.fail_photo = False

    async def upload_signature(self, content, order_id, driver_id):
        if self.fail_signature:
            raise StoreUnavailable("Error subiendo imagen: timeout")
        self.signatures.append(order_id)
        return f"https://files.test/signatures/order_{order_id}.png"

    async def try_upload_incident_photo(self, content, content_type, order_id):
        if not content:
            return None
        if self.fail_photo:
            return AttachmentResult.failure("Error subiendo imagen: timeout")
        self.photos.append(order_id)
        return AttachmentResult.success(f"https://files.test/incidents/order_{order_id}.jpg")


@pytest.fixture(scope='function')
def db():
    """Base de datos SQLite en memoria, nueva en cada test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _create_user(db, email, nombre, rol, is_active=True, online_status=OnlineStatus.ONLINE.value):
    user = User(
        email=email,
        password_hash=PASSWORD_HASH,
        nombre=nombre,
        rol=rol,
        is_active=is_active,
        online_status=online_status
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _create_user(db, "admin@delivery.test", "Ana Despachadora", UserRole.ADMIN.value)


@pytest.fixture
def sender(db):
    return _create_user(db, "cliente@delivery.test", "Tienda Centro", UserRole.CLIENTE.value)


@pytest.fixture
def courier(db):
    return _create_user(db, "luis@delivery.test", "Luis", UserRole.REPARTIDOR.value)


@pytest.fixture
def other_courier(db):
    return _create_user(
        db, "marta@delivery.test", "Marta", UserRole.REPARTIDOR.value,
        online_status=OnlineStatus.OFFLINE.value
    )


@pytest.fixture
def inactive_courier(db):
    return _create_user(db, "pedro@delivery.test", "Pedro", UserRole.REPARTIDOR.value, is_active=False)


def order_draft(**overrides):
    today = date.today()
    draft = {
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
        "notes": None,
    }
    draft.update(overrides)
    return draft


@pytest.fixture
def make_order(db, sender):
    """Crear pedido en el estado indicado (con repartidor si el estado lo requiere)"""
    repository = OrderRepository(db)

    def _make(status="pending", driver=None, client=None, **overrides):
        order = repository.create_order(order_draft(**overrides), (client or sender).id)
        if status != "pending" or driver is not None:
            repository.update_order(order, {
                "status": status,
                "driver_id": driver.id if driver else None
            })
        return order

    return _make


def _png(draw_stroke: bool, mode="RGB") -> bytes:
    background = (255, 255, 255, 0) if mode == "RGBA" else "white"
    image = Image.new(mode, (120, 60), background)
    if draw_stroke:
        ImageDraw.Draw(image).line((10, 30, 110, 35), fill="black", width=3)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def signed_png():
    return _png(draw_stroke=True)


@pytest.fixture
def blank_png():
    return _png(draw_stroke=False)


@pytest.fixture
def transparent_blank_png():
    return _png(draw_stroke=False, mode="RGBA")


@pytest.fixture
def attachments():
    return FakeAttachmentStorage()


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = AuthService.create_access_token(data={"user_id": user.id, "rol": user.rol})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def client(db, attachments):
    """Cliente HTTP con la BD de pruebas y adjuntos en memoria"""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_attachment_service] = lambda: attachments
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
